# PortalHandoff - Cross-Domain Access Handoff Service
# Copyright (C) 2025 Luiz Frias <luizf35@gmail.com>
# Form F[x] Labs
#
# This software is dual-licensed under AGPL-3.0 and Commercial License.
# For commercial licensing, contact: luizf35@gmail.com
# See LICENSE file for full terms.

"""Business logic services."""

from .cookies import HandoffCookie, build_handoff_cookie
from .handoff_service import (
    HandoffService,
    StateHandle,
    get_handoff_service,
    reset_handoff_service,
)

__all__ = [
    "HandoffCookie",
    "HandoffService",
    "StateHandle",
    "build_handoff_cookie",
    "get_handoff_service",
    "reset_handoff_service",
]
