# SPDX-License-Identifier: MIT
# Copyright (c) 2025 Blackcat Informatics® Inc.
"""Spawn the analysis tool for the selected transport."""

from __future__ import annotations

import asyncio
import logging

from .errors import ToolLaunchError
from .resolver import ResolvedBinary
from .session import BridgeSession
from .transport.base import TransportStrategy

LOGGER = logging.getLogger(__name__)


class ToolLauncher:
    """Start the tool with piped standard streams.

    Both streams are always captured, even when the domain socket carries the
    output, so a crashed tool can be told apart from a broken bridge.
    """

    def __init__(self, strategy: TransportStrategy) -> None:
        self._strategy = strategy

    def command(self, binary: ResolvedBinary, session: BridgeSession) -> list[str]:
        return self._strategy.tool_command(binary, session.args)

    async def launch(self, binary: ResolvedBinary, session: BridgeSession) -> asyncio.subprocess.Process:
        """Spawn the tool and attach it to ``session``.

        Args:
            binary: Resolved tool executable.
            session: Session providing the arguments and receiving the handle.

        Returns:
            asyncio.subprocess.Process: Running tool process.

        Raises:
            ToolLaunchError: If the process cannot be created.
        """

        command = self.command(binary, session)
        LOGGER.debug("Launching ctrace (%s): %s", self._strategy.mode.value, " ".join(command))
        try:
            process = await asyncio.create_subprocess_exec(
                *command,
                stdin=asyncio.subprocess.DEVNULL,
                stdout=asyncio.subprocess.PIPE,
                stderr=asyncio.subprocess.PIPE,
            )
        except OSError as exc:
            raise ToolLaunchError(f"Unable to start {command[0]}: {exc}") from exc
        session.tool = process
        return process


__all__ = ["ToolLauncher"]
