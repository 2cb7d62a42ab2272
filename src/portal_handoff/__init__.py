# PortalHandoff - Cross-Domain Access Handoff Service
# Copyright (C) 2025 Luiz Frias <luizf35@gmail.com>
# Form F[x] Labs
#
# This software is dual-licensed under AGPL-3.0 and Commercial License.
# For commercial licensing, contact: luizf35@gmail.com
# See LICENSE file for full terms.

"""Portal Handoff: short-lived tokens and one-time state exchange for
launching a separately hosted application from an authenticated portal."""

__version__ = "1.0.0"
