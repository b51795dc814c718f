# SPDX-License-Identifier: MIT
# Copyright (c) 2025 Blackcat Informatics® Inc.

"""Analyze CLI command package."""

from __future__ import annotations

from typer import Typer

from ...core.shared import register_command
from .command import analyze_command

__all__ = ["register"]


def register(app: Typer) -> None:
    """Register the analyze command with ``app``.

    Args:
        app: Typer application receiving the analyze command registration.
    """

    register_command(app, analyze_command, name="analyze")
