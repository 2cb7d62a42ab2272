"""Unit tests for target scope lookup."""

import json
from typing import Any
from unittest.mock import AsyncMock, MagicMock

import asyncpg
import pytest

from portal_handoff.core.config import Settings
from portal_handoff.core.errors import ErrorKind
from portal_handoff.core.result_types import Err, Ok
from portal_handoff.models.handoff import Principal, TargetScope
from portal_handoff.scopes import (
    GLOBAL_SCOPE_ID,
    PostgresTargetScopeRepository,
    StaticTargetScopeRepository,
    resolve_scope,
)

from tests.fixtures.handoff_data import GLOBAL_SECRET, SCOPE_SECRET, make_settings


def deployment_row(**overrides: Any) -> dict[str, Any]:
    row: dict[str, Any] = {
        "id": "dep-1",
        "name": "Market Mapper",
        "env_config": {"JWT_SECRET": SCOPE_SECRET},
        "authorized_emails": ["a@x.com"],
        "is_active": True,
        "cloud_run_url": "https://app.dexintelligence.ai",
    }
    row.update(overrides)
    return row


class TestStaticRepository:
    """Scopes declared in settings."""

    @pytest.mark.asyncio
    async def test_get_known_and_unknown(self, settings: Settings) -> None:
        repo = StaticTargetScopeRepository.from_settings(settings)

        found = await repo.get("dep-1")
        assert isinstance(found, Ok)
        assert found.value is not None
        assert found.value.secret == SCOPE_SECRET
        assert found.value.app_url == "https://app.dexintelligence.ai"

        missing = await repo.get("nope")
        assert isinstance(missing, Ok)
        assert missing.value is None

    @pytest.mark.asyncio
    async def test_global_scope_is_added(self, settings: Settings) -> None:
        repo = StaticTargetScopeRepository.from_settings(settings)

        found = (await repo.get(GLOBAL_SCOPE_ID)).unwrap()

        assert found is not None
        assert found.secret == GLOBAL_SECRET
        assert found.name == settings.handoff_purpose

    @pytest.mark.asyncio
    async def test_no_global_scope_without_configuration(self) -> None:
        repo = StaticTargetScopeRepository.from_settings(
            make_settings(global_jwt_secret=None, global_authorized_emails=[])
        )
        assert (await repo.get(GLOBAL_SCOPE_ID)).unwrap() is None

    @pytest.mark.asyncio
    async def test_list_filters_by_email(
        self, settings: Settings, principal: Principal
    ) -> None:
        repo = StaticTargetScopeRepository.from_settings(settings)

        listed = (await repo.list_for_principal(principal)).unwrap()

        assert [s.id for s in listed] == ["dep-1", GLOBAL_SCOPE_ID]

    @pytest.mark.asyncio
    async def test_list_matches_email_case_insensitively(self, settings: Settings) -> None:
        repo = StaticTargetScopeRepository.from_settings(settings)
        listed = (await repo.list_for_principal(Principal(id="u2", email="B@Y.com"))).unwrap()
        assert [s.id for s in listed] == ["dep-2"]

    @pytest.mark.asyncio
    async def test_list_skips_inactive(self, principal: Principal, scope: TargetScope) -> None:
        inactive = TargetScope(
            id="dep-off",
            name="Off",
            secret="x",
            authorized_emails=frozenset({"a@x.com"}),
            is_active=False,
        )
        repo = StaticTargetScopeRepository([inactive, scope])

        listed = (await repo.list_for_principal(principal)).unwrap()

        assert [s.id for s in listed] == ["dep-1"]


class TestResolveScope:
    """Choosing the scope a request targets."""

    @pytest.mark.asyncio
    async def test_named_scope(self, settings: Settings, principal: Principal) -> None:
        repo = StaticTargetScopeRepository.from_settings(settings)
        result = await resolve_scope(repo, principal, "dep-1")
        assert isinstance(result, Ok)
        assert result.value.id == "dep-1"

    @pytest.mark.asyncio
    async def test_named_scope_is_returned_even_when_not_authorized(
        self, settings: Settings, principal: Principal
    ) -> None:
        repo = StaticTargetScopeRepository.from_settings(settings)
        result = await resolve_scope(repo, principal, "dep-2")
        assert result.unwrap().id == "dep-2"

    @pytest.mark.asyncio
    async def test_unknown_scope_is_forbidden(
        self, settings: Settings, principal: Principal
    ) -> None:
        repo = StaticTargetScopeRepository.from_settings(settings)
        result = await resolve_scope(repo, principal, "missing")
        assert isinstance(result, Err)
        assert result.error.kind is ErrorKind.FORBIDDEN

    @pytest.mark.asyncio
    async def test_default_is_first_authorized(
        self, settings: Settings, principal: Principal
    ) -> None:
        repo = StaticTargetScopeRepository.from_settings(settings)
        assert (await resolve_scope(repo, principal, None)).unwrap().id == "dep-1"

    @pytest.mark.asyncio
    async def test_no_authorized_scope(self, settings: Settings) -> None:
        repo = StaticTargetScopeRepository.from_settings(settings)
        result = await resolve_scope(repo, Principal(id="u9", email="z@z.com"), None)
        assert isinstance(result, Err)
        assert result.error.kind is ErrorKind.FORBIDDEN
        assert result.error.message == "No authorized deployments"

    @pytest.mark.asyncio
    async def test_lookup_failure_propagates(self, principal: Principal) -> None:
        db = MagicMock()
        db.fetchrow = AsyncMock(side_effect=asyncpg.PostgresError("boom"))
        result = await resolve_scope(PostgresTargetScopeRepository(db), principal, "dep-1")
        assert isinstance(result, Err)
        assert result.error.kind is ErrorKind.TRANSIENT_ERROR


class TestPostgresRepository:
    """Scopes read from the deployments table."""

    @pytest.mark.asyncio
    async def test_get_maps_row(self, mock_db: MagicMock) -> None:
        mock_db.fetchrow.return_value = deployment_row()

        scope = (await PostgresTargetScopeRepository(mock_db).get("dep-1")).unwrap()

        assert scope is not None
        assert scope.secret == SCOPE_SECRET
        assert scope.authorized_emails == frozenset({"a@x.com"})
        assert scope.app_url == "https://app.dexintelligence.ai"
        assert mock_db.fetchrow.await_args.args[1] == "dep-1"

    @pytest.mark.asyncio
    async def test_env_config_as_json_text(self, mock_db: MagicMock) -> None:
        mock_db.fetchrow.return_value = deployment_row(
            env_config=json.dumps({"JWT_SECRET": "from-json"})
        )
        scope = (await PostgresTargetScopeRepository(mock_db).get("dep-1")).unwrap()
        assert scope is not None
        assert scope.secret == "from-json"

    @pytest.mark.asyncio
    async def test_missing_secret_maps_to_empty(self, mock_db: MagicMock) -> None:
        mock_db.fetchrow.return_value = deployment_row(env_config=None)
        scope = (await PostgresTargetScopeRepository(mock_db).get("dep-1")).unwrap()
        assert scope is not None
        assert scope.secret == ""

    @pytest.mark.asyncio
    @pytest.mark.parametrize(
        "env_config",
        ["{not json", json.dumps(["JWT_SECRET"]), {"JWT_SECRET": 12345}],
    )
    async def test_invalid_env_config_is_config_error(
        self, mock_db: MagicMock, env_config: Any
    ) -> None:
        mock_db.fetchrow.return_value = deployment_row(env_config=env_config)

        result = await PostgresTargetScopeRepository(mock_db).get("dep-1")

        assert isinstance(result, Err)
        assert result.error.kind is ErrorKind.CONFIG_ERROR
        assert result.error.message == "Server configuration error"
        assert result.error.detail == "deployment dep-1 has invalid env_config"

    @pytest.mark.asyncio
    async def test_list_with_invalid_env_config_is_config_error(
        self, mock_db: MagicMock, principal: Principal
    ) -> None:
        mock_db.fetch.return_value = [
            deployment_row(),
            deployment_row(id="dep-3", env_config="[]"),
        ]

        result = await PostgresTargetScopeRepository(mock_db).list_for_principal(principal)

        assert isinstance(result, Err)
        assert result.error.kind is ErrorKind.CONFIG_ERROR
        assert result.error.detail == "deployment dep-3 has invalid env_config"

    @pytest.mark.asyncio
    async def test_get_unknown(self, mock_db: MagicMock) -> None:
        assert (await PostgresTargetScopeRepository(mock_db).get("x")).unwrap() is None

    @pytest.mark.asyncio
    async def test_list_for_principal(
        self, mock_db: MagicMock, principal: Principal
    ) -> None:
        mock_db.fetch.return_value = [
            deployment_row(),
            deployment_row(id="dep-3", name="Third"),
        ]

        listed = (await PostgresTargetScopeRepository(mock_db).list_for_principal(principal)).unwrap()

        assert [s.id for s in listed] == ["dep-1", "dep-3"]
        assert mock_db.fetch.await_args.args[1] == "a@x.com"

    @pytest.mark.asyncio
    async def test_list_failure_is_transient(
        self, mock_db: MagicMock, principal: Principal
    ) -> None:
        mock_db.fetch.side_effect = asyncpg.PostgresError("down")
        result = await PostgresTargetScopeRepository(mock_db).list_for_principal(principal)
        assert isinstance(result, Err)
        assert result.error.kind is ErrorKind.TRANSIENT_ERROR
        assert "down" not in result.error.message
