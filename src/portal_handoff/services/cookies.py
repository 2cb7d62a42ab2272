# PortalHandoff - Cross-Domain Access Handoff Service
# Copyright (C) 2025 Luiz Frias <luizf35@gmail.com>
# Form F[x] Labs
#
# This software is dual-licensed under AGPL-3.0 and Commercial License.
# For commercial licensing, contact: luizf35@gmail.com
# See LICENSE file for full terms.

"""Attributes of the cross-subdomain handoff cookie."""

from typing import Literal

from attrs import field, frozen
from beartype import beartype
from fastapi import Response


@frozen
class HandoffCookie:
    """A ready-to-set cookie carrying a handoff token."""

    name: str = field()
    value: str = field(repr=False)
    max_age: int = field()
    domain: str | None = field(default=None)
    secure: bool = field(default=True)
    path: str = field(default="/")
    samesite: Literal["lax", "strict", "none"] = field(default="lax")

    def apply(self, response: Response) -> None:
        """Emit the ``Set-Cookie`` header on ``response``."""
        response.set_cookie(
            key=self.name,
            value=self.value,
            max_age=self.max_age,
            path=self.path,
            domain=self.domain,
            secure=self.secure,
            httponly=False,
            samesite=self.samesite,
        )


@beartype
def normalize_host(host: str | None) -> str:
    """Lower-case host name without port."""
    if not host:
        return ""
    host = host.strip().lower()
    if host.startswith("["):
        return host.split("]", 1)[0] + "]"
    return host.rsplit(":", 1)[0] if ":" in host else host


@beartype
def build_handoff_cookie(
    token: str,
    host: str | None,
    *,
    name: str,
    parent_domain: str,
    max_age: int,
) -> HandoffCookie:
    """Build the cookie for ``host``.

    ``domain=.<parent>`` is set only when serving under the parent domain and
    ``secure`` is dropped only on ``localhost``.
    """
    hostname = normalize_host(host)
    parent = parent_domain.lower().lstrip(".")
    under_parent = hostname == parent or hostname.endswith(f".{parent}")
    return HandoffCookie(
        name=name,
        value=token,
        max_age=max_age,
        domain=f".{parent}" if under_parent else None,
        secure=hostname != "localhost",
    )
