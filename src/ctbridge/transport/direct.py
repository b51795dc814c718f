# SPDX-License-Identifier: MIT
# Copyright (c) 2025 Blackcat Informatics® Inc.
"""Direct transport: the tool runs on the host and writes to a stdout pipe."""

from __future__ import annotations

import asyncio
from collections.abc import Sequence

from ..config import TransportMode
from ..errors import ToolLaunchError
from ..resolver import ResolvedBinary
from ..session import BridgeSession
from .base import TransportStrategy


class DirectStrategy(TransportStrategy):
    """Run the resolved binary natively and relay its standard output."""

    mode = TransportMode.DIRECT

    @property
    def exit_code_authoritative(self) -> bool:
        # The pipe belongs to the tool: stream end and exit are the same event.
        return True

    def tool_command(self, binary: ResolvedBinary, args: Sequence[str]) -> list[str]:
        return [str(binary.path), *args]

    async def open_stream(self, session: BridgeSession) -> asyncio.StreamReader:
        if session.tool is None or session.tool.stdout is None:
            raise ToolLaunchError("ctrace was not started with a stdout pipe")
        return session.tool.stdout


__all__ = ["DirectStrategy"]
