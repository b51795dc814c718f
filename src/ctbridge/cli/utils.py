# SPDX-License-Identifier: MIT
# Copyright (c) 2025 Blackcat Informatics® Inc.
"""Output helpers shared by the ctbridge commands."""

from __future__ import annotations

import re
import sys
from typing import Final, TextIO

ANSI_ESCAPE: Final[re.Pattern[str]] = re.compile(r"\x1b\[[0-9;?]*[ -/]*[@-~]|\x1b[@-Z\\-_]")
# An escape sequence cut off at the end of a chunk.
_PARTIAL_ESCAPE: Final[re.Pattern[str]] = re.compile(r"\x1b(\[[0-9;?]*[ -/]*)?$")


def strip_ansi(text: str) -> str:
    """Return ``text`` without ANSI colour and cursor escape sequences."""

    return ANSI_ESCAPE.sub("", text)


class AnsiStripper:
    """Remove ANSI sequences from streamed text, including ones split across chunks."""

    def __init__(self) -> None:
        self._pending = ""

    def feed(self, chunk: str) -> str:
        """Return the printable part of ``chunk``, holding back an unfinished escape."""

        text = self._pending + chunk
        match = _PARTIAL_ESCAPE.search(text)
        if match is not None:
            self._pending = text[match.start() :]
            text = text[: match.start()]
        else:
            self._pending = ""
        return strip_ansi(text)

    def flush(self) -> str:
        tail, self._pending = self._pending, ""
        return strip_ansi(tail)


class ChunkPrinter:
    """Write streamed ctrace output to a text stream as it arrives."""

    def __init__(self, *, strip: bool, stream: TextIO | None = None) -> None:
        self._stripper = AnsiStripper() if strip else None
        self._stream = stream
        self.printed = False
        self._at_line_start = True

    def __call__(self, chunk: str) -> None:
        self._write(self._stripper.feed(chunk) if self._stripper is not None else chunk)

    def close(self) -> None:
        """Flush held-back text and terminate the last line."""

        if self._stripper is not None:
            self._write(self._stripper.flush())
        if self.printed and not self._at_line_start:
            self._write("\n")

    def _write(self, text: str) -> None:
        if not text:
            return
        stream = self._stream or sys.stdout
        stream.write(text)
        stream.flush()
        self.printed = True
        self._at_line_start = text.endswith("\n")


__all__ = ["ANSI_ESCAPE", "AnsiStripper", "ChunkPrinter", "strip_ansi"]
