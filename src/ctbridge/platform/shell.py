# SPDX-License-Identifier: MIT
# Copyright (c) 2025 Blackcat Informatics® Inc.
"""Command prefixes for running programs inside the Linux execution layer."""

from __future__ import annotations

import shlex
from collections.abc import Callable, Sequence
from dataclasses import dataclass, field
from pathlib import Path

from .paths import identity_path, windows_to_wsl_path

PathMapper = Callable[[str | Path], str]


@dataclass(slots=True, frozen=True)
class LinuxShell:
    """Build argument vectors that execute inside the Linux layer.

    Attributes:
        prefix: Launcher tokens placed before every command (``("wsl",)`` on
            Windows, empty when the host already is Linux).
        path_mapper: Translator from host paths to Linux paths.
    """

    prefix: tuple[str, ...] = ("wsl",)
    path_mapper: PathMapper = field(default=windows_to_wsl_path)

    @property
    def is_native(self) -> bool:
        """Return ``True`` when commands run on the host without a launcher."""

        return not self.prefix

    def command(self, argv: Sequence[str]) -> list[str]:
        """Return ``argv`` wrapped for execution inside the Linux layer."""

        return [*self.prefix, *argv]

    def root_command(self, argv: Sequence[str]) -> list[str]:
        """Return ``argv`` wrapped to run as root without a password prompt.

        ``wsl --user root`` elevates through the Windows account instead of
        ``sudo``; a native shell runs the command unchanged.
        """

        if self.is_native:
            return list(argv)
        return [*self.prefix, "--user", "root", *argv]

    def script(self, script: str) -> list[str]:
        """Return a ``bash -c`` invocation of ``script`` inside the layer."""

        return self.command(["bash", "-c", script])

    def to_linux_path(self, path: str | Path) -> str:
        """Translate a host path into the Linux layer's convention."""

        return self.path_mapper(path)


def wsl_shell(prefix: Sequence[str] = ("wsl",)) -> LinuxShell:
    """Return a shell that reaches WSL through ``wsl.exe``."""

    return LinuxShell(prefix=tuple(prefix), path_mapper=windows_to_wsl_path)


def native_shell() -> LinuxShell:
    """Return a shell for hosts that already are Linux-like."""

    return LinuxShell(prefix=(), path_mapper=identity_path)


def quote(value: str) -> str:
    """Quote ``value`` for interpolation into a ``bash -c`` script."""

    return shlex.quote(value)


__all__ = ["LinuxShell", "PathMapper", "native_shell", "quote", "wsl_shell"]
