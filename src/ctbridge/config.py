# SPDX-License-Identifier: MIT
# Copyright (c) 2025 Blackcat Informatics® Inc.
"""Configuration models for the ctrace bridge."""

from __future__ import annotations

from enum import StrEnum
from pathlib import Path
from typing import Any, Final

from pydantic import BaseModel, ConfigDict, Field, field_validator

DEFAULT_SOCKET_PATH: Final[str] = "/tmp/ctrace.sock"
DEFAULT_TOOL_NAME: Final[str] = "ctrace"


class ConfigError(Exception):
    """Raised when configuration input is invalid."""


class TransportMode(StrEnum):
    """Enumerate the transports used to reach the analysis tool."""

    AUTO = "auto"
    DIRECT = "direct"
    BRIDGED = "bridged"


class BridgeConfig(BaseModel):
    """Settings controlling probing, bridging, and relay timeouts."""

    model_config = ConfigDict(validate_assignment=True, extra="forbid")

    tool_name: str = DEFAULT_TOOL_NAME
    transport: TransportMode = TransportMode.AUTO
    dev_root: Path | None = None
    resources_dir: Path | None = None
    socket_path: str = DEFAULT_SOCKET_PATH
    listen_host: str = "0.0.0.0"  # nosec B104 - the Linux layer reaches us over the virtual NIC
    bridge_host: str | None = None
    bridge_utility: str = "socat"
    linux_prefix: list[str] = Field(default_factory=lambda: ["wsl"])
    auto_install_bridge: bool = False
    probe_timeout: float = 5.0
    install_timeout: float = 120.0
    bridge_ready_timeout: float = 5.0
    bridge_poll_interval: float = 0.1
    accept_timeout: float = 30.0
    session_timeout: float = 600.0
    exit_timeout: float = 5.0

    @field_validator(
        "probe_timeout",
        "install_timeout",
        "bridge_ready_timeout",
        "bridge_poll_interval",
        "accept_timeout",
        "session_timeout",
        "exit_timeout",
    )
    @classmethod
    def _positive(cls, value: float) -> float:
        """Reject non-positive timeouts so every wait stays bounded.

        Args:
            value: Candidate timeout in seconds.

        Returns:
            float: The validated timeout.

        Raises:
            ValueError: If ``value`` is zero or negative.
        """

        if value <= 0:
            raise ValueError("timeouts must be positive")
        return value

    @field_validator("socket_path")
    @classmethod
    def _absolute_socket(cls, value: str) -> str:
        if not value.startswith("/"):
            raise ValueError("socket_path must be an absolute Linux path")
        return value

    def to_dict(self) -> dict[str, Any]:
        """Return a JSON-compatible mapping of the configuration.

        Returns:
            dict[str, Any]: Serialisable configuration payload.
        """

        return self.model_dump(mode="json")


__all__ = [
    "DEFAULT_SOCKET_PATH",
    "DEFAULT_TOOL_NAME",
    "BridgeConfig",
    "ConfigError",
    "TransportMode",
]
