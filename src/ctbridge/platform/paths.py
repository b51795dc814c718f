# SPDX-License-Identifier: MIT
# Copyright (c) 2025 Blackcat Informatics® Inc.
"""Translate host filesystem paths into the Linux layer's path convention."""

from __future__ import annotations

import re
from pathlib import Path, PureWindowsPath
from typing import Final

WSL_MOUNT_ROOT: Final[str] = "/mnt"
_DRIVE_PATTERN: Final[re.Pattern[str]] = re.compile(r"^([A-Za-z]):[\\/]")


def windows_to_wsl_path(path: str | Path, *, mount_root: str = WSL_MOUNT_ROOT) -> str:
    """Return the WSL view of a Windows drive path.

    ``C:\\Users\\dev\\bin\\ctrace`` becomes ``/mnt/c/Users/dev/bin/ctrace``.
    Paths that are already POSIX style are returned unchanged.

    Args:
        path: Host path to translate.
        mount_root: Directory under which WSL mounts Windows drives.

    Returns:
        str: Path usable inside the Linux layer.

    Raises:
        ValueError: If ``path`` is a Windows path without a drive letter
            (for example a UNC share), which WSL cannot address by mount.
    """

    text = str(path)
    match = _DRIVE_PATTERN.match(text)
    if match is None:
        if "\\" in text:
            raise ValueError(f"Cannot map Windows path without a drive letter: {text}")
        return text
    drive = match.group(1).lower()
    remainder = PureWindowsPath(text).parts[1:]
    suffix = "/".join(remainder)
    base = f"{mount_root.rstrip('/')}/{drive}"
    return f"{base}/{suffix}" if suffix else base


def identity_path(path: str | Path) -> str:
    """Return ``path`` unchanged as a string.

    Args:
        path: Host path that is already valid in the execution environment.

    Returns:
        str: String form of ``path``.
    """

    return str(path)


__all__ = ["WSL_MOUNT_ROOT", "identity_path", "windows_to_wsl_path"]
