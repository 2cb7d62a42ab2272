# PortalHandoff - Cross-Domain Access Handoff Service
# Copyright (C) 2025 Luiz Frias <luizf35@gmail.com>
# Form F[x] Labs
#
# This software is dual-licensed under AGPL-3.0 and Commercial License.
# For commercial licensing, contact: luizf35@gmail.com
# See LICENSE file for full terms.

"""Central logging utilities for the handoff service.

Key Features
------------
1. configure_logging(): idempotent initialization of the root logger.
2. get_logger(name): helper that always returns a configured logger.
3. redact_token(token): safe representation of a bearer token for logs.

Audit lines go through the ``portal_handoff.audit`` logger so they can be
routed separately from operational logs.
"""

from __future__ import annotations

import logging
from typing import Final

from beartype import beartype

__all__: Final = [
    "configure_logging",
    "get_logger",
    "get_audit_logger",
    "redact_token",
]

_DEFAULT_LOG_FORMAT: Final = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
_AUDIT_LOGGER_NAME: Final = "portal_handoff.audit"
_is_configured: bool = False


@beartype
def configure_logging(
    *, level: int = logging.INFO, fmt: str = _DEFAULT_LOG_FORMAT
) -> None:
    """Configure the root logger exactly once.

    Calling this function multiple times is safe, configuration will only
    be applied on the first invocation.
    """
    global _is_configured
    if _is_configured:
        return

    logging.basicConfig(level=level, format=fmt)
    _is_configured = True


@beartype
def get_logger(name: str | None = None, *, level: int | None = None) -> logging.Logger:
    """Return a module-scoped logger that is guaranteed to be configured."""
    configure_logging()
    logger = logging.getLogger(name or "portal_handoff")
    if level is not None:
        logger.setLevel(level)
    return logger


@beartype
def get_audit_logger() -> logging.Logger:
    """Return the logger used for security audit events."""
    return get_logger(_AUDIT_LOGGER_NAME)


@beartype
def redact_token(token: str | None) -> str:
    """Return a log-safe fingerprint of a token.

    Only the first eight characters of the signature segment survive, which is
    enough to correlate log lines but never enough to replay the token.
    """
    if not token:
        return "<none>"
    tail = token.rsplit(".", 1)[-1]
    return f"…{tail[:8]}" if len(tail) > 8 else "<redacted>"
