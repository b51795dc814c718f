# SPDX-License-Identifier: MIT
# Copyright (c) 2025 Blackcat Informatics® Inc.
"""Implementation of the `ctbridge install-bridge` command."""

from __future__ import annotations

from pathlib import Path
from typing import Annotated

import typer

from ....capability import CapabilityProber
from ....config import ConfigError
from ....logging import fail, info, ok, warn
from ....transport import select_shell
from ...core.options import EMOJI_OPTION, ROOT_OPTION, VERBOSE_OPTION, build_common_options

YES_OPTION = Annotated[
    bool,
    typer.Option("--yes", "-y", help="Install without asking for confirmation."),
]


def install_bridge_command(
    yes: YES_OPTION = False,
    root: ROOT_OPTION = Path("."),
    emoji: EMOJI_OPTION = True,
    verbose: VERBOSE_OPTION = False,
) -> None:
    """Install the socat bridging utility inside the Linux layer."""

    options = build_common_options(root, None, emoji, verbose=verbose)
    try:
        config = options.load_config()
    except ConfigError as exc:
        fail(f"Invalid configuration: {exc}", use_emoji=options.use_emoji)
        raise typer.Exit(code=1) from exc

    prober = CapabilityProber(config, select_shell(config))
    utility = config.bridge_utility
    if prober.bridge_utility_present():
        ok(f"{utility} is already installed", use_emoji=options.use_emoji)
        raise typer.Exit(code=0)
    if not yes and not typer.confirm(f"{utility} is not installed. Install it now?", default=True):
        warn(f"Skipping {utility} installation. The bridge will not work without it.", use_emoji=options.use_emoji)
        raise typer.Exit(code=1)

    info(f"Installing {utility}; this may take a few moments...", use_emoji=options.use_emoji)
    if not prober.install_bridge_utility():
        fail(f"Failed to install {utility}", use_emoji=options.use_emoji)
        info(
            f'Install it manually: wsl --user root bash -c "apt-get install -y {utility}"',
            use_emoji=options.use_emoji,
        )
        raise typer.Exit(code=1)
    ok(f"{utility} installed successfully", use_emoji=options.use_emoji)
    raise typer.Exit(code=0)


__all__ = ["install_bridge_command"]
