# SPDX-License-Identifier: MIT
# Copyright (c) 2025 Blackcat Informatics® Inc.
"""Environment diagnostics for running ctrace through the bridge."""

from __future__ import annotations

import asyncio
import platform
import sys
from dataclasses import dataclass
from pathlib import Path

from rich import box
from rich.console import Console
from rich.panel import Panel
from rich.pretty import Pretty
from rich.rule import Rule
from rich.table import Table

from ..capability import CapabilityProber
from ..config import BridgeConfig, TransportMode
from ..core.runtime.process import CommandOptions, run_command
from ..errors import BinaryNotFoundError, BridgeSetupError
from ..resolver import BinaryResolver, ResolvedBinary
from ..transport import BridgedStrategy, TransportStrategy, select_strategy

SAMPLE_WINDOWS_PATHS: tuple[str, ...] = (
    "C:\\Users\\test\\file.c",
    "C:\\Program Files\\test\\file.cpp",
    "D:\\Projects\\test\\main.c",
)
HELP_PREVIEW_CHARS = 200


@dataclass(slots=True)
class EnvironmentCheck:
    """Represents the outcome of a doctor environment probe."""

    name: str
    status: str
    ok: bool
    detail: str


def run_doctor(
    config: BridgeConfig,
    *,
    console: Console | None = None,
    strategy: TransportStrategy | None = None,
) -> int:
    """Run diagnostic checks and return an exit status (0 healthy, 1 otherwise)."""

    console = console or Console()
    strategy = strategy or select_strategy(config)
    console.print(Rule("[bold cyan]ctbridge Doctor[/bold cyan]"))

    checks = collect_checks(config, strategy)
    table = Table(title="Environment", box=box.SIMPLE, expand=True)
    table.add_column("Check", style="bold")
    table.add_column("Status", style="bold")
    table.add_column("Details", overflow="fold")
    for check in checks:
        style = "green" if check.ok else "red"
        table.add_row(check.name, f"[{style}]{check.status}[/]", check.detail or "-")
    console.print(table)

    mapping = Table(title="Path Conversion", box=box.SIMPLE, expand=True)
    mapping.add_column("Host path", style="bold")
    mapping.add_column("Linux path", overflow="fold")
    for host_path, linux_path in path_conversions(strategy):
        mapping.add_row(host_path, linux_path)
    console.print(mapping)
    console.print(Panel(Pretty(config.to_dict()), title="Configuration"))

    unhealthy = any(not check.ok for check in checks)
    overall_style = "red" if unhealthy else "green"
    console.print(Panel(f"[{overall_style}]Doctor completed[/]", border_style=overall_style))
    return 1 if unhealthy else 0


def collect_checks(config: BridgeConfig, strategy: TransportStrategy) -> list[EnvironmentCheck]:
    """Return every environment check for the selected transport, in display order."""

    checks = [
        EnvironmentCheck(
            name="Platform",
            status="ok",
            ok=True,
            detail=f"{sys.platform} ({platform.platform()}), {strategy.mode.value} transport",
        ),
    ]
    if strategy.mode is TransportMode.BRIDGED:
        checks.extend(_capability_checks(CapabilityProber(config, strategy.shell), config))
    binary_check, binary = _binary_check(config)
    checks.append(binary_check)
    if binary is not None:
        checks.append(_help_check(config, strategy, binary))
    if isinstance(strategy, BridgedStrategy):
        checks.append(_host_address_check(strategy))
    return checks


def path_conversions(strategy: TransportStrategy) -> list[tuple[str, str]]:
    """Return sample host paths with their translation for ``strategy``."""

    samples = SAMPLE_WINDOWS_PATHS if not strategy.shell.is_native else (str(Path.cwd()),)
    return [(sample, strategy.map_path(sample)) for sample in samples]


def _capability_checks(prober: CapabilityProber, config: BridgeConfig) -> list[EnvironmentCheck]:
    if prober.shell.is_native:
        layer = EnvironmentCheck(name="Linux layer", status="ok", ok=True, detail="native Linux host")
        distributions: list[str] = ["native"]
    else:
        installed = prober.layer_installed()
        layer = EnvironmentCheck(
            name="Linux layer",
            status="ok" if installed else "missing",
            ok=installed,
            detail="wsl --status succeeded" if installed else "wsl --status failed or timed out",
        )
        distributions = prober.distributions() if installed else []
    distribution = EnvironmentCheck(
        name="Distribution",
        status="ok" if distributions else "missing",
        ok=bool(distributions),
        detail=", ".join(distributions) or "No Linux distribution installed",
    )
    present = bool(distributions) and prober.bridge_utility_present()
    utility = EnvironmentCheck(
        name=config.bridge_utility,
        status="ok" if present else "missing",
        ok=present,
        detail="found on PATH" if present else "Run `ctbridge install-bridge` to install it",
    )
    return [layer, distribution, utility]


def _binary_check(config: BridgeConfig) -> tuple[EnvironmentCheck, ResolvedBinary | None]:
    try:
        binary = BinaryResolver(config).resolve()
    except BinaryNotFoundError as exc:
        return EnvironmentCheck(name="ctrace binary", status="missing", ok=False, detail=str(exc)), None
    detail = f"{binary.path} ({binary.layout.value} layout)"
    return EnvironmentCheck(name="ctrace binary", status="ok", ok=True, detail=detail), binary


def _help_check(config: BridgeConfig, strategy: TransportStrategy, binary: ResolvedBinary) -> EnvironmentCheck:
    command = strategy.shell.command([strategy.map_path(binary.path), "--help"])
    try:
        completed = run_command(command, options=CommandOptions(timeout=config.probe_timeout * 2))
    except OSError as exc:
        return EnvironmentCheck(name="ctrace --help", status="not ok", ok=False, detail=str(exc))
    output = (completed.stdout or completed.stderr).strip()
    # A usage banner proves the binary is reachable even when --help exits non-zero.
    reachable = completed.returncode == 0 or bool(output)
    return EnvironmentCheck(
        name="ctrace --help",
        status="ok" if reachable else "not ok",
        ok=reachable,
        detail=f"exit {completed.returncode}: {output[:HELP_PREVIEW_CHARS] or '<no output>'}",
    )


def _host_address_check(strategy: BridgedStrategy) -> EnvironmentCheck:
    try:
        address = asyncio.run(strategy.resolve_host_address())
    except BridgeSetupError as exc:
        return EnvironmentCheck(name="Host address", status="not ok", ok=False, detail=str(exc))
    return EnvironmentCheck(name="Host address", status="ok", ok=True, detail=address)


__all__ = ["EnvironmentCheck", "collect_checks", "path_conversions", "run_doctor"]
