# SPDX-License-Identifier: MIT
# Copyright (c) 2025 Blackcat Informatics® Inc.

"""Run CLI command package."""

from __future__ import annotations

from typer import Typer

from ...core.shared import register_command
from .command import PASSTHROUGH_CONTEXT, run_command

__all__ = ["register"]


def register(app: Typer) -> None:
    """Register the run command with ``app``.

    Args:
        app: Typer application receiving the run command registration.
    """

    register_command(app, run_command, name="run", context_settings=PASSTHROUGH_CONTEXT)
