# PortalHandoff - Cross-Domain Access Handoff Service
# Copyright (C) 2025 Luiz Frias <luizf35@gmail.com>
# Form F[x] Labs
#
# This software is dual-licensed under AGPL-3.0 and Commercial License.
# For commercial licensing, contact: luizf35@gmail.com
# See LICENSE file for full terms.

"""Target scope (deployment) lookup."""

from .repository import (
    GLOBAL_SCOPE_ID,
    PostgresTargetScopeRepository,
    StaticTargetScopeRepository,
    TargetScopeRepository,
    get_scope_repository,
    reset_scope_repository,
    resolve_scope,
)

__all__ = [
    "GLOBAL_SCOPE_ID",
    "PostgresTargetScopeRepository",
    "StaticTargetScopeRepository",
    "TargetScopeRepository",
    "get_scope_repository",
    "reset_scope_repository",
    "resolve_scope",
]
