# SPDX-License-Identifier: MIT
# Copyright (c) 2025 Blackcat Informatics® Inc.
"""Implementation of the `ctbridge doctor` command."""

from __future__ import annotations

from pathlib import Path

import typer

from ....config import ConfigError
from ....logging import fail
from ...core.options import EMOJI_OPTION, ROOT_OPTION, TRANSPORT_OPTION, VERBOSE_OPTION, build_common_options
from ...doctor import run_doctor


def doctor_command(
    root: ROOT_OPTION = Path("."),
    transport: TRANSPORT_OPTION = None,
    emoji: EMOJI_OPTION = True,
    verbose: VERBOSE_OPTION = False,
) -> None:
    """Check that ctrace can run through the selected transport."""

    options = build_common_options(root, transport, emoji, verbose=verbose)
    try:
        config = options.load_config()
    except ConfigError as exc:
        fail(f"Invalid configuration: {exc}", use_emoji=options.use_emoji)
        raise typer.Exit(code=1) from exc
    raise typer.Exit(code=run_doctor(config))


__all__ = ["doctor_command"]
