# SPDX-License-Identifier: MIT
# Copyright (c) 2025 Blackcat Informatics® Inc.
"""Parse the default network route reported inside the Linux layer."""

from __future__ import annotations

import ipaddress
import re
from typing import Final

_DEFAULT_VIA: Final[re.Pattern[str]] = re.compile(r"^default\s+via\s+(\S+)", re.MULTILINE)


class RouteParseError(ValueError):
    """Raised when no usable IPv4 default gateway appears in route output."""


def parse_default_gateway(output: str) -> str:
    """Return the IPv4 gateway from ``ip route show default`` output.

    Inside WSL the default gateway is the Windows host, which is where the
    bridge's TCP listener is reachable.

    Args:
        output: Text printed by ``ip route show default``.

    Returns:
        str: Dotted-quad address of the first IPv4 default gateway.

    Raises:
        RouteParseError: If no ``default via <ipv4>`` entry is present.
    """

    for match in _DEFAULT_VIA.finditer(output):
        candidate = match.group(1)
        try:
            address = ipaddress.ip_address(candidate)
        except ValueError:
            continue
        if address.version == 4:
            return str(address)
    snippet = output.strip().splitlines()[0] if output.strip() else "<empty>"
    raise RouteParseError(f"No IPv4 default route found in route table output: {snippet}")


__all__ = ["RouteParseError", "parse_default_gateway"]
