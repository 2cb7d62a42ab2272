# PortalHandoff - Cross-Domain Access Handoff Service
# Copyright (C) 2025 Luiz Frias <luizf35@gmail.com>
# Form F[x] Labs
#
# This software is dual-licensed under AGPL-3.0 and Commercial License.
# For commercial licensing, contact: luizf35@gmail.com
# See LICENSE file for full terms.

"""Core infrastructure components for the handoff service."""

from .cache import Cache
from .config import get_settings
from .database import Database
from .errors import ErrorKind, HandoffError
from .rate_limiter import RateLimiter

__all__ = ["get_settings", "Database", "Cache", "ErrorKind", "HandoffError", "RateLimiter"]
