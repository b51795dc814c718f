# SPDX-License-Identifier: MIT
# Copyright (c) 2025 Blackcat Informatics® Inc.
"""Strategy interface selecting how the tool's output reaches the caller."""

from __future__ import annotations

import asyncio
from abc import ABC, abstractmethod
from collections.abc import Sequence
from pathlib import Path

from ..config import BridgeConfig, TransportMode
from ..platform.shell import LinuxShell
from ..resolver import ResolvedBinary
from ..session import BridgeSession


class TransportStrategy(ABC):
    """Per-session transport chosen once at session start."""

    mode: TransportMode

    def __init__(self, config: BridgeConfig, shell: LinuxShell) -> None:
        self._config = config
        self._shell = shell

    @property
    def config(self) -> BridgeConfig:
        return self._config

    @property
    def shell(self) -> LinuxShell:
        return self._shell

    @property
    @abstractmethod
    def exit_code_authoritative(self) -> bool:
        """Return whether the tool's exit status decides success over end-of-stream."""

    async def establish(self, session: BridgeSession) -> None:
        """Prepare transport resources before the tool is launched."""

    @abstractmethod
    def tool_command(self, binary: ResolvedBinary, args: Sequence[str]) -> list[str]:
        """Return the argument vector that launches the tool for this transport."""

    @abstractmethod
    async def open_stream(self, session: BridgeSession) -> asyncio.StreamReader:
        """Return the reader carrying the tool's primary output."""

    def map_path(self, path: str | Path) -> str:
        """Translate a host path into the tool's execution environment."""

        return str(path)

    def remove_socket(self, session: BridgeSession) -> None:
        """Delete transport files left behind by the session."""

    async def aclose(self) -> None:
        """Finish background tasks owned by the strategy."""


__all__ = ["TransportStrategy"]
