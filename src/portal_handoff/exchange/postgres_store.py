# PortalHandoff - Cross-Domain Access Handoff Service
# Copyright (C) 2025 Luiz Frias <luizf35@gmail.com>
# Form F[x] Labs
#
# This software is dual-licensed under AGPL-3.0 and Commercial License.
# For commercial licensing, contact: luizf35@gmail.com
# See LICENSE file for full terms.

"""PostgreSQL exchange store on the ``auth_states`` table."""

import time
import uuid
from datetime import datetime, timezone

import asyncpg
from beartype import beartype

from ..core.database import Database, DatabaseUnavailableError
from ..core.errors import HandoffError, transient
from ..core.logging_utils import get_logger
from ..core.result_types import Err, Ok, Result
from ..models.handoff import ConsumedState, Principal
from .base import DEFAULT_STATE_TTL_SECONDS, EXPIRED, NOT_FOUND, new_state_id

logger = get_logger(__name__)


def _as_datetime(ts: float | int) -> datetime:
    return datetime.fromtimestamp(ts, tz=timezone.utc)


class PostgresExchangeStore:
    """Exchange store whose consume is a single ``DELETE ... RETURNING``.

    The row lock taken by DELETE serializes concurrent consumers of the same
    id; the losers see zero rows.
    """

    def __init__(self, db: Database) -> None:
        self._db = db

    @beartype
    async def create(
        self,
        principal: Principal,
        token: str,
        ttl_seconds: int = DEFAULT_STATE_TTL_SECONDS,
        now: float | int | None = None,
    ) -> Result[str, HandoffError]:
        created_at = time.time() if now is None else now
        state_id = new_state_id()
        try:
            await self._db.execute(
                """
                INSERT INTO auth_states (state_id, token, user_id, created_at, expires_at)
                VALUES ($1, $2, $3, $4, $5)
                """,
                uuid.UUID(state_id),
                token,
                principal.id,
                _as_datetime(created_at),
                _as_datetime(created_at + ttl_seconds),
            )
        except (DatabaseUnavailableError, asyncpg.PostgresError) as e:
            logger.error("Failed to store auth state for user %s: %s", principal.id, e)
            return Err(transient(f"auth state insert failed: {e}"))
        return Ok(state_id)

    @beartype
    async def consume(
        self, state_id: str, now: float | int | None = None
    ) -> Result[ConsumedState, HandoffError]:
        current_time = time.time() if now is None else now
        try:
            key = uuid.UUID(state_id)
        except ValueError:
            return Err(NOT_FOUND)

        try:
            row = await self._db.fetchrow(
                """
                DELETE FROM auth_states
                WHERE state_id = $1
                RETURNING token, user_id, expires_at
                """,
                key,
            )
        except (DatabaseUnavailableError, asyncpg.PostgresError) as e:
            logger.error("Failed to consume auth state: %s", e)
            return Err(transient(f"auth state delete failed: {e}"))

        if row is None:
            return Err(NOT_FOUND)
        if current_time > row["expires_at"].timestamp():
            return Err(EXPIRED)
        return Ok(ConsumedState(token=row["token"], principal_id=row["user_id"]))

    @beartype
    async def sweep(self, now: float | int | None = None) -> int:
        current_time = time.time() if now is None else now
        status = await self._db.execute(
            "DELETE FROM auth_states WHERE expires_at < $1",
            _as_datetime(current_time),
        )
        # asyncpg returns the command tag, e.g. "DELETE 3"
        try:
            return int(status.split()[-1])
        except (IndexError, ValueError):
            return 0
