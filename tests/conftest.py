"""Test configuration and fixtures.

This module provides pytest configuration and fixtures for the handoff
service: settings, principals, scopes, datastore doubles and an HTTP client.
"""

from collections.abc import AsyncGenerator, Generator
from typing import Any
from unittest.mock import AsyncMock, MagicMock

import pytest
import pytest_asyncio
from fakeredis import FakeAsyncRedis
from fastapi.testclient import TestClient

from portal_handoff.core import config as config_module
from portal_handoff.core.cache import Cache
from portal_handoff.core.config import Settings, clear_settings_cache
from portal_handoff.core.rate_limiter import reset_rate_limiter
from portal_handoff.exchange import reset_exchange_store
from portal_handoff.identity import reset_session_verifier
from portal_handoff.models.handoff import Principal, TargetScope
from portal_handoff.scopes import reset_scope_repository
from portal_handoff.services import reset_handoff_service
from tests.fixtures.handoff_data import SCOPE_SECRET, bearer, make_settings


def _reset_all() -> None:
    clear_settings_cache()
    reset_rate_limiter()
    reset_exchange_store()
    reset_scope_repository()
    reset_session_verifier()
    reset_handoff_service()


@pytest.fixture(autouse=True)
def reset_singletons() -> Generator[None, None, None]:
    """Give every test fresh global services."""
    _reset_all()
    yield
    _reset_all()


@pytest.fixture
def settings() -> Settings:
    """Default test settings."""
    return make_settings()


@pytest.fixture
def install_settings(monkeypatch: pytest.MonkeyPatch) -> Any:
    """Install a Settings instance as the process-wide settings."""

    def _install(settings: Settings) -> Settings:
        monkeypatch.setattr(config_module, "_settings", settings)
        return settings

    return _install


@pytest.fixture
def principal() -> Principal:
    return Principal(id="u1", email="a@x.com")


@pytest.fixture
def scope() -> TargetScope:
    return TargetScope(
        id="dep-1",
        name="Market Mapper",
        secret=SCOPE_SECRET,
        authorized_emails=frozenset({"a@x.com"}),
    )


@pytest.fixture
def session_headers() -> dict[str, str]:
    return bearer()


@pytest_asyncio.fixture  # type: ignore[misc]
async def fake_redis() -> AsyncGenerator[Any, None]:
    """In-memory Redis double."""
    client = FakeAsyncRedis(decode_responses=True)
    yield client
    await client.flushall()
    await client.aclose()


@pytest_asyncio.fixture  # type: ignore[misc]
async def cache(fake_redis: Any) -> Cache:
    """Cache bound to the fake Redis."""
    return Cache(fake_redis, timeout_seconds=1.0)


@pytest.fixture
def mock_db() -> MagicMock:
    """Mock database for unit tests."""
    db = MagicMock()
    db.fetchrow = AsyncMock(return_value=None)
    db.fetch = AsyncMock(return_value=[])
    db.execute = AsyncMock(return_value="INSERT 0 1")
    return db


@pytest.fixture
def client_for(install_settings: Any) -> Any:
    """Build a TestClient for an app created under the given settings."""

    def _build(settings: Settings | None = None) -> TestClient:
        install_settings(settings or make_settings())
        from portal_handoff.main import create_app

        return TestClient(create_app())

    return _build


@pytest.fixture
def test_client(client_for: Any) -> TestClient:
    """Test client for the state-exchange deployment."""
    return client_for()
