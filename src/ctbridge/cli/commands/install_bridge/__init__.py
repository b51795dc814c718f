# SPDX-License-Identifier: MIT
# Copyright (c) 2025 Blackcat Informatics® Inc.

"""Install-bridge CLI command package."""

from __future__ import annotations

from typer import Typer

from ...core.shared import register_command
from .command import install_bridge_command

__all__ = ["register"]


def register(app: Typer) -> None:
    """Register the install-bridge command with ``app``.

    Args:
        app: Typer application receiving the install-bridge command registration.
    """

    register_command(app, install_bridge_command, name="install-bridge")
