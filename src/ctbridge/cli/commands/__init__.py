# SPDX-License-Identifier: MIT
# Copyright (c) 2025 Blackcat Informatics® Inc.

"""CLI command registry."""

from __future__ import annotations

import typer

from . import analyze, doctor, install_bridge, run

__all__ = ["register_commands"]


def register_commands(app: typer.Typer) -> None:
    """Register the built-in ctbridge commands on ``app``."""

    run.register(app)
    analyze.register(app)
    doctor.register(app)
    install_bridge.register(app)
