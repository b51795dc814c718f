# SPDX-License-Identifier: MIT
# Copyright (c) 2025 Blackcat Informatics® Inc.
"""Subprocess execution primitives."""

from __future__ import annotations

from .process import (
    TIMEOUT_RETURNCODE,
    CommandOptions,
    SubprocessExecutionError,
    decode_output,
    run_command,
    run_command_async,
)

__all__ = [
    "TIMEOUT_RETURNCODE",
    "CommandOptions",
    "SubprocessExecutionError",
    "decode_output",
    "run_command",
    "run_command_async",
]
