# PortalHandoff - Cross-Domain Access Handoff Service
# Copyright (C) 2025 Luiz Frias <luizf35@gmail.com>
# Form F[x] Labs
#
# This software is dual-licensed under AGPL-3.0 and Commercial License.
# For commercial licensing, contact: luizf35@gmail.com
# See LICENSE file for full terms.

"""Interface shared by every exchange-state backend.

A state handle maps to exactly one token and yields it at most once:
``consume`` removes the record atomically with reading it, so of any number
of concurrent callers only one receives the token.
"""

import re
import uuid
from typing import Protocol, runtime_checkable

from ..core.errors import ErrorKind, HandoffError
from ..core.result_types import Result
from ..models.handoff import ConsumedState, Principal

DEFAULT_STATE_TTL_SECONDS = 300

STATE_ID_PATTERN = re.compile(
    r"^[0-9a-f]{8}-[0-9a-f]{4}-4[0-9a-f]{3}-[89ab][0-9a-f]{3}-[0-9a-f]{12}$",
    re.IGNORECASE,
)


def new_state_id() -> str:
    """Generate a random 128-bit handle formatted as a UUIDv4."""
    return str(uuid.uuid4())


def is_valid_state_id(state_id: str) -> bool:
    """Check that ``state_id`` has the shape of a UUIDv4."""
    return bool(STATE_ID_PATTERN.fullmatch(state_id))


NOT_FOUND = HandoffError(ErrorKind.NOT_FOUND)
EXPIRED = HandoffError(ErrorKind.EXPIRED, "Invalid or expired state")


@runtime_checkable
class ExchangeStore(Protocol):
    """One-time state storage."""

    async def create(
        self,
        principal: Principal,
        token: str,
        ttl_seconds: int = DEFAULT_STATE_TTL_SECONDS,
        now: float | int | None = None,
    ) -> Result[str, HandoffError]:
        """Persist ``token`` under a fresh state id and return the id."""
        ...

    async def consume(
        self, state_id: str, now: float | int | None = None
    ) -> Result[ConsumedState, HandoffError]:
        """Atomically read and delete the record for ``state_id``."""
        ...

    async def sweep(self, now: float | int | None = None) -> int:
        """Delete every record whose expiry has passed; return the count."""
        ...
