# PortalHandoff - Cross-Domain Access Handoff Service
# Copyright (C) 2025 Luiz Frias <luizf35@gmail.com>
# Form F[x] Labs
#
# This software is dual-licensed under AGPL-3.0 and Commercial License.
# For commercial licensing, contact: luizf35@gmail.com
# See LICENSE file for full terms.

"""Redis exchange store: one key per state, consumed with GETDEL."""

import time

from beartype import beartype

from ..core.cache import Cache, CacheUnavailableError
from ..core.errors import HandoffError, transient
from ..core.logging_utils import get_logger
from ..core.result_types import Err, Ok, Result
from ..models.handoff import ConsumedState, Principal
from .base import DEFAULT_STATE_TTL_SECONDS, EXPIRED, NOT_FOUND, new_state_id

logger = get_logger(__name__)

# Keys outlive their logical expiry briefly so a late consume reports EXPIRED.
EXPIRY_GRACE_SECONDS = 60


class RedisExchangeStore:
    """Exchange store backed by Redis key expiry.

    Redis deletes expired keys on its own, so :meth:`sweep` has nothing to do.
    """

    KEY_PREFIX = "auth_state:"

    def __init__(self, cache: Cache) -> None:
        self._cache = cache

    def _key(self, state_id: str) -> str:
        return f"{self.KEY_PREFIX}{state_id.lower()}"

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
        record = {
            "token": token,
            "user_id": principal.id,
            "created_at": created_at,
            "expires_at": created_at + ttl_seconds,
        }
        try:
            stored = await self._cache.set(
                self._key(state_id),
                record,
                ttl_seconds + EXPIRY_GRACE_SECONDS,
                only_if_absent=True,
            )
        except CacheUnavailableError as e:
            logger.error("Failed to store auth state for user %s: %s", principal.id, e)
            return Err(transient(str(e)))
        if not stored:
            return Err(transient("state id collision"))
        return Ok(state_id)

    @beartype
    async def consume(
        self, state_id: str, now: float | int | None = None
    ) -> Result[ConsumedState, HandoffError]:
        current_time = time.time() if now is None else now
        try:
            record = await self._cache.getdel(self._key(state_id))
        except CacheUnavailableError as e:
            logger.error("Failed to consume auth state: %s", e)
            return Err(transient(str(e)))

        if not isinstance(record, dict):
            return Err(NOT_FOUND)
        if current_time > float(record["expires_at"]):
            return Err(EXPIRED)
        return Ok(ConsumedState(token=record["token"], principal_id=record["user_id"]))

    @beartype
    async def sweep(self, now: float | int | None = None) -> int:
        return 0
