# SPDX-License-Identifier: MIT
# Copyright (c) 2025 Blackcat Informatics® Inc.
"""Run the Linux-only ctrace analyser from any host and relay its output."""

from __future__ import annotations

from importlib import metadata

from .config import BridgeConfig, TransportMode
from .errors import BridgeError
from .orchestrator import build_analysis_args, run_analysis, run_analysis_sync
from .session import AnalysisResult

__all__ = [
    "AnalysisResult",
    "BridgeConfig",
    "BridgeError",
    "TransportMode",
    "__version__",
    "build_analysis_args",
    "run_analysis",
    "run_analysis_sync",
]

try:
    __version__ = metadata.version("ctrace-bridge")
except metadata.PackageNotFoundError:  # pragma: no cover - local development fallback
    __version__ = "0.0.0"
