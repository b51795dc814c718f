# SPDX-License-Identifier: MIT
# Copyright (c) 2025 Blackcat Informatics® Inc.
"""Command registration helpers shared by every CLI command package."""

from __future__ import annotations

from collections.abc import Callable, Mapping
from typing import Any, TypeVar

import typer

CommandCallable = TypeVar("CommandCallable", bound=Callable[..., Any])


def register_command(
    app: typer.Typer,
    callback: CommandCallable,
    *,
    name: str,
    help_text: str | None = None,
    context_settings: Mapping[str, Any] | None = None,
) -> CommandCallable:
    """Register ``callback`` on ``app`` with consistent metadata handling.

    Args:
        app: Typer application receiving the command registration.
        callback: Command callable registered immediately.
        name: Command name shown in CLI usage output.
        help_text: Optional help text; the callback docstring is used otherwise.
        context_settings: Optional Click context settings for the command.

    Returns:
        CommandCallable: The registered callback, unchanged.
    """

    decorator = app.command(
        name=name,
        help=help_text,
        context_settings=dict(context_settings) if context_settings else None,
    )
    decorator(callback)
    return callback


__all__ = ["register_command"]
