# SPDX-License-Identifier: MIT
# Copyright (c) 2025 Blackcat Informatics® Inc.
"""Transport strategies and their one-time selection per session."""

from __future__ import annotations

from ..config import BridgeConfig, TransportMode
from ..platform import host_needs_bridge
from ..platform.shell import LinuxShell, native_shell, wsl_shell
from .base import TransportStrategy
from .bridged import IPC_MODE_FLAG, IPC_PATH_FLAG, BridgedStrategy, bridge_script, ipc_flags
from .direct import DirectStrategy


def select_shell(config: BridgeConfig, *, platform_name: str | None = None) -> LinuxShell:
    """Return the shell used to reach the Linux layer from this host.

    Args:
        config: Bridge configuration supplying the launcher prefix.
        platform_name: Optional override of :data:`sys.platform`.

    Returns:
        LinuxShell: A WSL shell on Windows hosts with a non-empty prefix,
        otherwise a native shell.
    """

    if host_needs_bridge(platform_name) and config.linux_prefix:
        return wsl_shell(config.linux_prefix)
    return native_shell()


def resolve_mode(config: BridgeConfig, *, platform_name: str | None = None) -> TransportMode:
    """Return the concrete transport for ``config`` (``AUTO`` resolved)."""

    if config.transport is not TransportMode.AUTO:
        return config.transport
    return TransportMode.BRIDGED if host_needs_bridge(platform_name) else TransportMode.DIRECT


def select_strategy(config: BridgeConfig, *, platform_name: str | None = None) -> TransportStrategy:
    """Build the transport strategy for one session.

    Args:
        config: Bridge configuration.
        platform_name: Optional override of :data:`sys.platform`.

    Returns:
        TransportStrategy: :class:`BridgedStrategy` or :class:`DirectStrategy`.
    """

    shell = select_shell(config, platform_name=platform_name)
    if resolve_mode(config, platform_name=platform_name) is TransportMode.BRIDGED:
        return BridgedStrategy(config, shell)
    return DirectStrategy(config, shell)


__all__ = [
    "IPC_MODE_FLAG",
    "IPC_PATH_FLAG",
    "BridgedStrategy",
    "DirectStrategy",
    "TransportStrategy",
    "bridge_script",
    "ipc_flags",
    "resolve_mode",
    "select_shell",
    "select_strategy",
]
