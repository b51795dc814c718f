# SPDX-License-Identifier: MIT
# Copyright (c) 2025 Blackcat Informatics® Inc.
"""Options shared by every ctbridge command."""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import Annotated

import typer

from ...config import BridgeConfig, ConfigError, TransportMode
from ...config_loader import ConfigLoader
from ...core.logging import configure_logging

ROOT_OPTION = Annotated[
    Path,
    typer.Option("--root", "-r", help="Project root used to discover configuration."),
]
TRANSPORT_OPTION = Annotated[
    TransportMode | None,
    typer.Option("--transport", "-t", help="Force the transport instead of detecting it.", case_sensitive=False),
]
EMOJI_OPTION = Annotated[
    bool,
    typer.Option("--emoji/--no-emoji", help="Toggle emoji in CLI output."),
]
STRIP_ANSI_OPTION = Annotated[
    bool,
    typer.Option("--strip-ansi/--keep-ansi", help="Remove ANSI escape sequences from ctrace output."),
]
VERBOSE_OPTION = Annotated[
    bool,
    typer.Option("--verbose", "-v", help="Stream diagnostic logging to stderr."),
]


@dataclass(slots=True)
class CommonOptions:
    """Normalised options shared by the ctbridge commands."""

    root: Path
    transport: TransportMode | None
    use_emoji: bool
    strip_ansi: bool
    verbose: bool

    def load_config(self) -> BridgeConfig:
        """Load configuration for :attr:`root` and apply the CLI overrides.

        Returns:
            BridgeConfig: Validated configuration.

        Raises:
            ConfigError: If the configuration sources are invalid.
        """

        config = ConfigLoader.for_root(self.root).load()
        if self.transport is not None:
            config = config.model_copy(update={"transport": self.transport})
        return config


def build_common_options(
    root: Path,
    transport: TransportMode | None,
    emoji: bool,
    strip_ansi: bool = True,
    verbose: bool = False,
) -> CommonOptions:
    """Construct :class:`CommonOptions` and configure diagnostic logging.

    Args:
        root: Project root supplied on the command line.
        transport: Optional transport override.
        emoji: Flag controlling emoji usage in console output.
        strip_ansi: Flag controlling ANSI escape removal from ctrace output.
        verbose: Flag enabling debug logging on stderr.

    Returns:
        CommonOptions: Normalised options.
    """

    if verbose:
        configure_logging(verbose)
    return CommonOptions(
        root=root.resolve(),
        transport=transport,
        use_emoji=emoji,
        strip_ansi=strip_ansi,
        verbose=verbose,
    )


__all__ = [
    "EMOJI_OPTION",
    "ROOT_OPTION",
    "STRIP_ANSI_OPTION",
    "TRANSPORT_OPTION",
    "VERBOSE_OPTION",
    "CommonOptions",
    "ConfigError",
    "build_common_options",
]
