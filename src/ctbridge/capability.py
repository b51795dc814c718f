# SPDX-License-Identifier: MIT
# Copyright (c) 2025 Blackcat Informatics® Inc.
"""Preflight checks for the Linux execution layer and the bridging utility."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from subprocess import CompletedProcess
from typing import Final

from .config import BridgeConfig, TransportMode
from .core.runtime.process import CommandOptions, run_command
from .platform.shell import LinuxShell, quote

LOGGER = logging.getLogger(__name__)

LAYER_MISSING_REMEDIATION: Final[str] = (
    "ctrace needs WSL (Windows Subsystem for Linux). Follow these remediation steps:\n"
    "  1. Open PowerShell as Administrator (right-click Start > Windows PowerShell (Admin)).\n"
    "  2. Run: wsl --install\n"
    "  3. Restart your computer when prompted.\n"
    "  4. Complete the Ubuntu setup (create a username and password).\n"
    "  5. Run this command again."
)

NO_DISTRIBUTION_REMEDIATION: Final[str] = (
    "WSL has no Linux distribution installed. Follow these remediation steps:\n"
    "  1. Open PowerShell (administrator rights are not required).\n"
    "  2. List available distributions: wsl --list --online\n"
    "  3. Install Ubuntu (recommended): wsl --install Ubuntu\n"
    "  4. Complete the distribution setup (create a username and password).\n"
    "  5. Run this command again."
)

BRIDGE_UTILITY_REMEDIATION: Final[str] = (
    "The socat bridging utility is missing inside WSL. Follow these remediation steps:\n"
    "  1. Run: ctbridge install-bridge\n"
    "  2. Or manually: wsl --user root bash -c \"apt-get update -qq && apt-get install -y socat\"\n"
    "  3. Run this command again."
)


@dataclass(slots=True, frozen=True)
class CapabilityStatus:
    """Outcome of a capability probe."""

    environment_available: bool
    distribution_present: bool
    bridge_utility_present: bool
    message: str
    remediation: str = ""

    @property
    def ready(self) -> bool:
        """Return ``True`` when a bridged session can be attempted."""

        return self.environment_available and self.distribution_present and self.bridge_utility_present


NATIVE_STATUS: Final[CapabilityStatus] = CapabilityStatus(
    environment_available=True,
    distribution_present=True,
    bridge_utility_present=True,
    message="native execution",
)


class CapabilityProber:
    """Probe the Linux layer with bounded, non-interactive commands."""

    def __init__(self, config: BridgeConfig, shell: LinuxShell) -> None:
        self._config = config
        self._shell = shell

    @property
    def shell(self) -> LinuxShell:
        return self._shell

    def probe(self) -> CapabilityStatus:
        """Return the current capability status without raising.

        Returns:
            CapabilityStatus: Status describing the layer, distributions, and
            bridging utility, with remediation text for the first gap found.
        """

        if self._shell.is_native:
            if self._config.transport is not TransportMode.BRIDGED:
                return NATIVE_STATUS
            utility = self.bridge_utility_present()
            return CapabilityStatus(
                environment_available=True,
                distribution_present=True,
                bridge_utility_present=utility,
                message="native Linux host" if utility else f"{self._config.bridge_utility} is not installed",
                remediation="" if utility else BRIDGE_UTILITY_REMEDIATION,
            )
        if not self.layer_installed():
            return CapabilityStatus(
                environment_available=False,
                distribution_present=False,
                bridge_utility_present=False,
                message="WSL is not installed",
                remediation=LAYER_MISSING_REMEDIATION,
            )
        if not self.distributions():
            return CapabilityStatus(
                environment_available=True,
                distribution_present=False,
                bridge_utility_present=False,
                message="WSL is installed but no Linux distributions are available",
                remediation=NO_DISTRIBUTION_REMEDIATION,
            )
        if not self.bridge_utility_present():
            return CapabilityStatus(
                environment_available=True,
                distribution_present=True,
                bridge_utility_present=False,
                message=f"{self._config.bridge_utility} is not installed inside WSL",
                remediation=BRIDGE_UTILITY_REMEDIATION,
            )
        return CapabilityStatus(
            environment_available=True,
            distribution_present=True,
            bridge_utility_present=True,
            message="WSL is available and ready",
        )

    def layer_installed(self) -> bool:
        """Return whether ``wsl --status`` succeeds within the probe timeout."""

        return self._succeeds([*self._shell.prefix, "--status"])

    def distributions(self) -> list[str]:
        """Return the names of installed WSL distributions.

        ``wsl --list --quiet`` prints UTF-16 text on Windows;
        :func:`run_command` decodes it.
        """

        completed = self._run([*self._shell.prefix, "--list", "--quiet"], self._config.probe_timeout)
        if completed is None or completed.returncode != 0:
            return []
        return [line.strip() for line in completed.stdout.splitlines() if line.strip()]

    def bridge_utility_present(self) -> bool:
        """Return whether the bridging utility resolves inside the layer."""

        return self._succeeds(self._shell.script(f"command -v {quote(self._config.bridge_utility)}"))

    def install_bridge_utility(self) -> bool:
        """Install the bridging utility unattended through the root account.

        Returns:
            bool: ``True`` when the package manager reports success before
            ``install_timeout`` expires.
        """

        script = f"apt-get update -qq && apt-get install -y {quote(self._config.bridge_utility)}"
        command = self._shell.root_command(["bash", "-c", script])
        LOGGER.info("Installing %s: %s", self._config.bridge_utility, " ".join(command))
        completed = self._run(command, self._config.install_timeout)
        if completed is None:
            return False
        if completed.returncode != 0:
            LOGGER.warning(
                "Installing %s failed with status %s: %s",
                self._config.bridge_utility,
                completed.returncode,
                completed.stderr.strip(),
            )
            return False
        return True

    def _succeeds(self, command: list[str]) -> bool:
        completed = self._run(command, self._config.probe_timeout)
        return completed is not None and completed.returncode == 0

    def _run(self, command: list[str], timeout: float) -> CompletedProcess[str] | None:
        try:
            completed = run_command(command, options=CommandOptions(timeout=timeout))
        except OSError as exc:
            LOGGER.debug("Probe %s could not start: %s", command[0], exc)
            return None
        LOGGER.debug("Probe %s exited with %s", " ".join(command), completed.returncode)
        return completed


__all__ = [
    "BRIDGE_UTILITY_REMEDIATION",
    "LAYER_MISSING_REMEDIATION",
    "NATIVE_STATUS",
    "NO_DISTRIBUTION_REMEDIATION",
    "CapabilityProber",
    "CapabilityStatus",
]
