# PortalHandoff - Cross-Domain Access Handoff Service
# Copyright (C) 2025 Luiz Frias <luizf35@gmail.com>
# Form F[x] Labs
#
# This software is dual-licensed under AGPL-3.0 and Commercial License.
# For commercial licensing, contact: luizf35@gmail.com
# See LICENSE file for full terms.

"""Read-only access to target scopes (deployments).

Scopes are owned by an external configuration store; this service reads them
and never writes them.
"""

import json
from typing import Any, Protocol, runtime_checkable

import asyncpg
from beartype import beartype

from ..core.config import Settings, get_settings
from ..core.database import Database, DatabaseUnavailableError, get_database
from ..core.errors import HandoffError, config_error, forbidden, transient
from ..core.logging_utils import get_logger
from ..core.result_types import Err, Ok, Result
from ..models.handoff import Principal, TargetScope

logger = get_logger(__name__)

GLOBAL_SCOPE_ID = "global"


@runtime_checkable
class TargetScopeRepository(Protocol):
    """Lookup of scopes by id and by authorized principal."""

    async def get(self, scope_id: str) -> Result[TargetScope | None, HandoffError]:
        ...

    async def list_for_principal(
        self, principal: Principal
    ) -> Result[list[TargetScope], HandoffError]:
        """Active scopes that authorize ``principal``, in stable order."""
        ...


class StaticTargetScopeRepository:
    """Scopes declared in settings, plus the optional global scope."""

    def __init__(self, scopes: list[TargetScope]) -> None:
        self._scopes = {scope.id: scope for scope in scopes}

    @classmethod
    def from_settings(cls, settings: Settings | None = None) -> "StaticTargetScopeRepository":
        settings = settings or get_settings()
        scopes = [
            TargetScope(
                id=cfg.id,
                name=cfg.name,
                secret=cfg.secret,
                authorized_emails=frozenset(cfg.authorized_emails),
                is_active=cfg.is_active,
                app_url=cfg.app_url,
            )
            for cfg in settings.target_scopes
        ]
        if settings.global_jwt_secret is not None or settings.global_authorized_emails:
            scopes.append(
                TargetScope(
                    id=GLOBAL_SCOPE_ID,
                    name=settings.handoff_purpose,
                    secret=settings.global_jwt_secret or "",
                    authorized_emails=frozenset(settings.global_authorized_emails),
                )
            )
        return cls(scopes)

    @beartype
    async def get(self, scope_id: str) -> Result[TargetScope | None, HandoffError]:
        return Ok(self._scopes.get(scope_id))

    @beartype
    async def list_for_principal(
        self, principal: Principal
    ) -> Result[list[TargetScope], HandoffError]:
        return Ok(
            [
                scope
                for scope in self._scopes.values()
                if scope.is_active and scope.authorizes(principal)
            ]
        )


class PostgresTargetScopeRepository:
    """Scopes read from the ``deployments`` table.

    The signing secret lives in ``env_config ->> 'JWT_SECRET'``.
    """

    _COLUMNS = "id, name, env_config, authorized_emails, is_active, cloud_run_url"

    def __init__(self, db: Database) -> None:
        self._db = db

    @staticmethod
    def _row_to_scope(row: Any) -> Result[TargetScope, HandoffError]:
        scope_id = str(row["id"])
        try:
            env_config = row["env_config"] or {}
            if isinstance(env_config, str):
                env_config = json.loads(env_config)
            if not isinstance(env_config, dict):
                raise TypeError(f"env_config is {type(env_config).__name__}")
            return Ok(
                TargetScope(
                    id=scope_id,
                    name=row["name"],
                    secret=env_config.get("JWT_SECRET") or "",
                    authorized_emails=frozenset(row["authorized_emails"] or []),
                    is_active=bool(row["is_active"]),
                    app_url=row["cloud_run_url"],
                )
            )
        except (ValueError, TypeError) as e:
            # json.JSONDecodeError and pydantic.ValidationError are ValueErrors
            logger.error("Deployment %s has invalid configuration: %s", scope_id, e)
            return Err(config_error(f"deployment {scope_id} has invalid env_config"))

    @beartype
    async def get(self, scope_id: str) -> Result[TargetScope | None, HandoffError]:
        try:
            row = await self._db.fetchrow(
                f"SELECT {self._COLUMNS} FROM deployments WHERE id::text = $1",
                scope_id,
            )
        except (DatabaseUnavailableError, asyncpg.PostgresError) as e:
            logger.error("Deployment lookup failed for %s: %s", scope_id, e)
            return Err(transient(f"deployment lookup failed: {e}"))
        if not row:
            return Ok(None)
        return self._row_to_scope(row)

    @beartype
    async def list_for_principal(
        self, principal: Principal
    ) -> Result[list[TargetScope], HandoffError]:
        try:
            rows = await self._db.fetch(
                f"""
                SELECT {self._COLUMNS} FROM deployments
                WHERE is_active
                  AND EXISTS (
                      SELECT 1 FROM unnest(authorized_emails) AS e
                      WHERE lower(e) = lower($1)
                  )
                ORDER BY created_at, id
                """,
                principal.email,
            )
        except (DatabaseUnavailableError, asyncpg.PostgresError) as e:
            logger.error("Deployment listing failed for user %s: %s", principal.id, e)
            return Err(transient(f"deployment listing failed: {e}"))
        scopes: list[TargetScope] = []
        for row in rows:
            mapped = self._row_to_scope(row)
            if isinstance(mapped, Err):
                return mapped
            scopes.append(mapped.value)
        return Ok(scopes)


@beartype
async def resolve_scope(
    repo: TargetScopeRepository, principal: Principal, scope_id: str | None
) -> Result[TargetScope, HandoffError]:
    """Pick the scope a request targets.

    A named scope is returned as stored; authorization is left to the issuer.
    Without a name, the principal's first authorized active scope is used.
    """
    if scope_id:
        found = await repo.get(scope_id)
        if isinstance(found, Err):
            return found
        if found.value is None:
            logger.warning(
                "Unknown deployment %s requested by user %s", scope_id, principal.id
            )
            return Err(forbidden("Deployment not found or access denied"))
        return Ok(found.value)

    listed = await repo.list_for_principal(principal)
    if isinstance(listed, Err):
        return listed
    if not listed.value:
        logger.warning("User %s has no authorized deployments", principal.id)
        return Err(forbidden("No authorized deployments"))
    return Ok(listed.value[0])


_repository: TargetScopeRepository | None = None


@beartype
def get_scope_repository() -> TargetScopeRepository:
    """Get the global scope repository for the configured backend."""
    global _repository
    if _repository is None:
        if get_settings().scope_backend == "postgres":
            _repository = PostgresTargetScopeRepository(get_database())
        else:
            _repository = StaticTargetScopeRepository.from_settings()
    return _repository


@beartype
def reset_scope_repository() -> None:
    """Drop the global repository (for testing)."""
    global _repository
    _repository = None
