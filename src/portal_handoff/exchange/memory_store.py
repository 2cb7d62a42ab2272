# PortalHandoff - Cross-Domain Access Handoff Service
# Copyright (C) 2025 Luiz Frias <luizf35@gmail.com>
# Form F[x] Labs
#
# This software is dual-licensed under AGPL-3.0 and Commercial License.
# For commercial licensing, contact: luizf35@gmail.com
# See LICENSE file for full terms.

"""In-process exchange store for tests and single-process development."""

import asyncio
import time

from beartype import beartype

from ..core.errors import HandoffError
from ..core.result_types import Err, Ok, Result
from ..models.handoff import ConsumedState, ExchangeState, Principal
from .base import DEFAULT_STATE_TTL_SECONDS, EXPIRED, NOT_FOUND, new_state_id


class InMemoryExchangeStore:
    """Dict-backed store guarded by one lock."""

    def __init__(self) -> None:
        self._states: dict[str, ExchangeState] = {}
        self._lock = asyncio.Lock()

    def __len__(self) -> int:
        return len(self._states)

    @beartype
    async def create(
        self,
        principal: Principal,
        token: str,
        ttl_seconds: int = DEFAULT_STATE_TTL_SECONDS,
        now: float | int | None = None,
    ) -> Result[str, HandoffError]:
        created_at = time.time() if now is None else now
        state = ExchangeState(
            state_id=new_state_id(),
            token=token,
            principal_id=principal.id,
            created_at=created_at,
            expires_at=created_at + ttl_seconds,
        )
        async with self._lock:
            self._states[state.state_id] = state
        return Ok(state.state_id)

    @beartype
    async def consume(
        self, state_id: str, now: float | int | None = None
    ) -> Result[ConsumedState, HandoffError]:
        current_time = time.time() if now is None else now
        async with self._lock:
            state = self._states.pop(state_id.lower(), None)

        if state is None:
            return Err(NOT_FOUND)
        if state.is_expired(current_time):
            return Err(EXPIRED)
        return Ok(ConsumedState(token=state.token, principal_id=state.principal_id))

    @beartype
    async def sweep(self, now: float | int | None = None) -> int:
        current_time = time.time() if now is None else now
        async with self._lock:
            expired = [
                state_id
                for state_id, state in self._states.items()
                if state.expires_at < current_time
            ]
            for state_id in expired:
                del self._states[state_id]
        return len(expired)
