# SPDX-License-Identifier: MIT
# Copyright (c) 2025 Blackcat Informatics® Inc.
"""Locate the analysis tool executable for the active deployment layout."""

from __future__ import annotations

import logging
import sys
from dataclasses import dataclass
from enum import StrEnum
from pathlib import Path
from typing import Final

from .config import BridgeConfig
from .errors import BinaryNotFoundError

LOGGER = logging.getLogger(__name__)

BIN_DIR_NAME: Final[str] = "bin"
# src/ctbridge/resolver.py -> repository root
PROJECT_ROOT: Final[Path] = Path(__file__).resolve().parents[2]


class DeploymentLayout(StrEnum):
    """Where the tool executable is shipped."""

    PACKAGED = "packaged"
    DEVELOPMENT = "development"


@dataclass(slots=True, frozen=True)
class ResolvedBinary:
    """Absolute tool path together with the layout that produced it."""

    path: Path
    layout: DeploymentLayout


def detect_layout(config: BridgeConfig) -> DeploymentLayout:
    """Return the deployment layout implied by ``config`` and the interpreter.

    Args:
        config: Bridge configuration; a configured ``resources_dir`` selects the
            packaged layout.

    Returns:
        DeploymentLayout: ``PACKAGED`` for frozen builds or explicit resource
        directories, ``DEVELOPMENT`` otherwise.
    """

    if config.resources_dir is not None or getattr(sys, "frozen", False):
        return DeploymentLayout.PACKAGED
    return DeploymentLayout.DEVELOPMENT


def _packaged_resources_dir() -> Path:
    bundle = getattr(sys, "_MEIPASS", None)
    if bundle:
        return Path(bundle)
    return Path(sys.executable).resolve().parent


class BinaryResolver:
    """Resolve exactly one well-known tool path per deployment layout."""

    def __init__(self, config: BridgeConfig) -> None:
        self._config = config

    def expected_path(self) -> tuple[Path, DeploymentLayout]:
        """Return the single path inspected for the active layout."""

        layout = detect_layout(self._config)
        if layout is DeploymentLayout.PACKAGED:
            base = self._config.resources_dir or _packaged_resources_dir()
        else:
            base = self._config.dev_root or PROJECT_ROOT
        return (base / BIN_DIR_NAME / self._config.tool_name).absolute(), layout

    def resolve(self) -> ResolvedBinary:
        """Return the resolved executable or raise with diagnostics.

        Returns:
            ResolvedBinary: The tool path and the layout searched.

        Raises:
            BinaryNotFoundError: If the expected file does not exist; the error
                carries the searched path and a listing of its parent.
        """

        path, layout = self.expected_path()
        if path.is_file():
            LOGGER.debug("Resolved %s (%s layout)", path, layout.value)
            return ResolvedBinary(path=path, layout=layout)
        raise BinaryNotFoundError(path, describe_directory(path.parent))


def describe_directory(directory: Path) -> list[str] | str:
    """Return the sorted entries of ``directory`` for troubleshooting.

    Args:
        directory: Folder expected to contain the tool executable.

    Returns:
        list[str] | str: Entry names, or a note describing why the listing
        failed. Listing errors are never raised.
    """

    try:
        return sorted(entry.name for entry in directory.iterdir())
    except OSError as exc:
        LOGGER.debug("Unable to list %s: %s", directory, exc)
        return f"<unavailable: {exc.strerror or exc}>"


__all__ = [
    "BIN_DIR_NAME",
    "PROJECT_ROOT",
    "BinaryResolver",
    "DeploymentLayout",
    "ResolvedBinary",
    "describe_directory",
    "detect_layout",
]
