# SPDX-License-Identifier: MIT
# Copyright (c) 2025 Blackcat Informatics® Inc.
"""Implementation of the `ctbridge run` command."""

from __future__ import annotations

from pathlib import Path
from typing import Annotated, Any, Final

import typer

from ...core.execution import execute_analysis
from ...core.options import (
    EMOJI_OPTION,
    ROOT_OPTION,
    STRIP_ANSI_OPTION,
    TRANSPORT_OPTION,
    VERBOSE_OPTION,
    build_common_options,
)

# ctrace flags such as ``--static`` must reach the tool untouched.
PASSTHROUGH_CONTEXT: Final[dict[str, Any]] = {
    "ignore_unknown_options": True,
    "allow_interspersed_args": False,
}

ARGS_ARGUMENT = Annotated[
    list[str] | None,
    typer.Argument(help="Arguments passed to ctrace unchanged.", show_default=False),
]
JSON_OPTION = Annotated[
    bool,
    typer.Option("--json", help="Print the result dictionary as JSON instead of streaming."),
]


def run_command(
    args: ARGS_ARGUMENT = None,
    json_output: JSON_OPTION = False,
    root: ROOT_OPTION = Path("."),
    transport: TRANSPORT_OPTION = None,
    emoji: EMOJI_OPTION = True,
    strip_ansi: STRIP_ANSI_OPTION = True,
    verbose: VERBOSE_OPTION = False,
) -> None:
    """Run ctrace with ARGS, streaming its output.

    Options for ctbridge itself must come before the first ctrace argument.
    """

    options = build_common_options(root, transport, emoji, strip_ansi, verbose)
    tool_args = list(args or [])
    execute_analysis(options, lambda _strategy: tool_args, json_output=json_output)


__all__ = ["PASSTHROUGH_CONTEXT", "run_command"]
