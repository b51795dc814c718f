# SPDX-License-Identifier: MIT
# Copyright (c) 2025 Blackcat Informatics® Inc.
"""Rich consoles shared by the ctbridge status messages."""

from __future__ import annotations

import sys
from functools import cache

from rich.console import Console


def detect_tty() -> bool:
    """Return ``True`` when stdout appears to be backed by a terminal."""

    try:
        return sys.stdout.isatty()
    except (AttributeError, ValueError):
        return False


class RichConsoleManager:
    """Hand out one :class:`Console` per colour and emoji combination.

    Consoles are created without a bound file so they always write to the
    current ``sys.stdout``; CLI test runners swap that stream per invocation.
    """

    def __init__(self) -> None:
        self._consoles: dict[tuple[bool, bool, bool], Console] = {}

    def get(self, *, color: bool, emoji: bool) -> Console:
        """Return the console for ``color`` and ``emoji``.

        Colour is only honoured on a terminal; status lines redirected to a
        file or pipe stay plain text.

        Args:
            color: ``True`` when status lines should be coloured.
            emoji: ``True`` when Rich should render emoji glyphs.

        Returns:
            Console: Cached console for the requested presentation.
        """

        tty = detect_tty()
        key = (color and tty, emoji, tty)
        console = self._consoles.get(key)
        if console is None:
            console = Console(
                color_system="auto" if key[0] else None,
                force_terminal=tty,
                no_color=not key[0],
                emoji=emoji,
                soft_wrap=True,
            )
            self._consoles[key] = console
        return console


@cache
def get_console_manager() -> RichConsoleManager:
    """Return the process-wide :class:`RichConsoleManager`."""

    return RichConsoleManager()


__all__ = ["RichConsoleManager", "detect_tty", "get_console_manager"]
