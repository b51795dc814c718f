# SPDX-License-Identifier: MIT
# Copyright (c) 2025 Blackcat Informatics® Inc.
"""Platform-specific heuristics (host detection, paths, routes, shells)."""

from __future__ import annotations

import sys

from .paths import identity_path, windows_to_wsl_path
from .routes import RouteParseError, parse_default_gateway
from .shell import LinuxShell, native_shell, wsl_shell


def host_needs_bridge(platform_name: str | None = None) -> bool:
    """Return whether the analysis tool cannot run natively on this host.

    Args:
        platform_name: Optional override of :data:`sys.platform`.

    Returns:
        bool: ``True`` on Windows, where the tool must run inside WSL.
    """

    name = platform_name if platform_name is not None else sys.platform
    return name.startswith("win")


__all__ = [
    "LinuxShell",
    "RouteParseError",
    "host_needs_bridge",
    "identity_path",
    "native_shell",
    "parse_default_gateway",
    "windows_to_wsl_path",
    "wsl_shell",
]
