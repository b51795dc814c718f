# SPDX-License-Identifier: MIT
# Copyright (c) 2025 Blackcat Informatics® Inc.
"""Console utilities for runtime output."""

from __future__ import annotations

from .manager import RichConsoleManager, get_console_manager

__all__ = ["RichConsoleManager", "get_console_manager"]
