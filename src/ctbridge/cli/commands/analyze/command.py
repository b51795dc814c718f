# SPDX-License-Identifier: MIT
# Copyright (c) 2025 Blackcat Informatics® Inc.
"""Implementation of the `ctbridge analyze` command."""

from __future__ import annotations

from pathlib import Path
from typing import Annotated

import typer

from ....orchestrator import build_analysis_args
from ...core.execution import execute_analysis
from ...core.options import (
    EMOJI_OPTION,
    ROOT_OPTION,
    STRIP_ANSI_OPTION,
    TRANSPORT_OPTION,
    VERBOSE_OPTION,
    build_common_options,
)
from ..run.command import JSON_OPTION

FILE_ARGUMENT = Annotated[
    Path,
    typer.Argument(exists=True, dir_okay=False, resolve_path=True, help="Source file to analyse."),
]


def analyze_command(
    file: FILE_ARGUMENT,
    json_output: JSON_OPTION = False,
    root: ROOT_OPTION = Path("."),
    transport: TRANSPORT_OPTION = None,
    emoji: EMOJI_OPTION = True,
    strip_ansi: STRIP_ANSI_OPTION = True,
    verbose: VERBOSE_OPTION = False,
) -> None:
    """Run a static SARIF analysis of FILE."""

    options = build_common_options(root, transport, emoji, strip_ansi, verbose)
    execute_analysis(options, lambda strategy: build_analysis_args(file, strategy), json_output=json_output)


__all__ = ["analyze_command"]
