# PortalHandoff - Cross-Domain Access Handoff Service
# Copyright (C) 2025 Luiz Frias <luizf35@gmail.com>
# Form F[x] Labs
#
# This software is dual-licensed under AGPL-3.0 and Commercial License.
# For commercial licensing, contact: luizf35@gmail.com
# See LICENSE file for full terms.

"""One-time state exchange stores."""

from beartype import beartype

from ..core.cache import get_cache
from ..core.config import get_settings
from ..core.database import get_database
from .base import (
    DEFAULT_STATE_TTL_SECONDS,
    ExchangeStore,
    is_valid_state_id,
    new_state_id,
)
from .memory_store import InMemoryExchangeStore
from .postgres_store import PostgresExchangeStore
from .redis_store import RedisExchangeStore
from .sweeper import ExchangeSweeper

__all__ = [
    "DEFAULT_STATE_TTL_SECONDS",
    "ExchangeStore",
    "ExchangeSweeper",
    "InMemoryExchangeStore",
    "PostgresExchangeStore",
    "RedisExchangeStore",
    "get_exchange_store",
    "reset_exchange_store",
    "is_valid_state_id",
    "new_state_id",
]

_store: ExchangeStore | None = None


@beartype
def get_exchange_store() -> ExchangeStore:
    """Get the global exchange store for the configured backend."""
    global _store
    if _store is None:
        backend = get_settings().exchange_backend
        if backend == "postgres":
            _store = PostgresExchangeStore(get_database())
        elif backend == "redis":
            _store = RedisExchangeStore(get_cache())
        else:
            _store = InMemoryExchangeStore()
    return _store


@beartype
def reset_exchange_store() -> None:
    """Drop the global store (for testing)."""
    global _store
    _store = None
