# SPDX-License-Identifier: MIT
# Copyright (c) 2025 Blackcat Informatics® Inc.
"""Entry point running one ctrace invocation end to end."""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Sequence
from functools import partial
from pathlib import Path

from .capability import CapabilityProber, CapabilityStatus
from .cleanup import CleanupCoordinator
from .config import BridgeConfig, TransportMode
from .errors import BridgeError, BridgeSetupError, EnvironmentUnavailableError, ToolRuntimeError
from .launcher import ToolLauncher
from .relay import ChunkCallback, RelaySession
from .resolver import BinaryResolver, ResolvedBinary
from .session import AnalysisResult, BridgeSession, acquire_session
from .transport import TransportStrategy, select_strategy

LOGGER = logging.getLogger(__name__)

ANALYSIS_FLAGS: tuple[str, ...] = ("--static", "--sarif-format")


async def run_analysis(
    args: Sequence[str],
    *,
    config: BridgeConfig | None = None,
    on_chunk: ChunkCallback | None = None,
    strategy: TransportStrategy | None = None,
    prober: CapabilityProber | None = None,
) -> AnalysisResult:
    """Run ctrace with ``args`` and return its outcome.

    Stages run in order and each one fails closed: capability preflight
    (bridged transport only), binary resolution, session acquisition, bridge
    setup, tool launch, and relay. Resources are released before the result
    is returned, whatever the outcome.

    Args:
        args: Arguments passed to ctrace unchanged.
        config: Bridge configuration; defaults are used when omitted.
        on_chunk: Callback receiving each decoded output chunk in arrival order.
        strategy: Transport override; selected from ``config`` when omitted.
        prober: Capability prober override for the bridged preflight.

    Returns:
        AnalysisResult: Success with the full output, or failure with a
        human-readable error and the diagnostics gathered so far.
    """

    config = config or BridgeConfig()
    strategy = strategy or select_strategy(config)
    LOGGER.debug("Running ctrace with %s transport: %s", strategy.mode.value, list(args))
    try:
        if strategy.mode is TransportMode.BRIDGED:
            await preflight(prober or CapabilityProber(config, strategy.shell), config)
        binary = BinaryResolver(config).resolve()
        with acquire_session(args, strategy.mode) as session:
            return await _run_session(session, strategy, binary, config, on_chunk)
    except BridgeError as exc:
        LOGGER.debug("ctrace invocation failed: %s", exc)
        return _failure_from(exc)


def run_analysis_sync(
    args: Sequence[str],
    *,
    config: BridgeConfig | None = None,
    on_chunk: ChunkCallback | None = None,
) -> AnalysisResult:
    """Blocking wrapper around :func:`run_analysis` for synchronous callers."""

    return asyncio.run(run_analysis(args, config=config, on_chunk=on_chunk))


async def preflight(prober: CapabilityProber, config: BridgeConfig) -> CapabilityStatus:
    """Verify the Linux layer can host a bridged session.

    Args:
        prober: Prober bound to the session's shell.
        config: Bridge configuration controlling unattended installation.

    Returns:
        CapabilityStatus: The ready status.

    Raises:
        EnvironmentUnavailableError: If the layer or a distribution is missing.
        BridgeSetupError: If the bridging utility is missing and could not be
            installed.
    """

    status = await asyncio.to_thread(prober.probe)
    if not status.environment_available or not status.distribution_present:
        raise EnvironmentUnavailableError(status.message, status.remediation)
    if status.bridge_utility_present:
        return status
    if config.auto_install_bridge:
        LOGGER.info("%s missing; attempting unattended installation", config.bridge_utility)
        if await asyncio.to_thread(prober.install_bridge_utility):
            status = await asyncio.to_thread(prober.probe)
            if status.ready:
                return status
    raise BridgeSetupError(f"{status.message}\n\n{status.remediation}")


def build_analysis_args(file: str | Path, strategy: TransportStrategy) -> list[str]:
    """Return the arguments for a static SARIF analysis of ``file``.

    Args:
        file: Host path of the source file to analyse.
        strategy: Transport whose path mapping applies to ``file``.

    Returns:
        list[str]: ``--input=<mapped path>`` followed by the analysis flags.
    """

    return [f"--input={strategy.map_path(file)}", *ANALYSIS_FLAGS]


async def _run_session(
    session: BridgeSession,
    strategy: TransportStrategy,
    binary: ResolvedBinary,
    config: BridgeConfig,
    on_chunk: ChunkCallback | None,
) -> AnalysisResult:
    coordinator = CleanupCoordinator(
        session,
        remove_socket=partial(strategy.remove_socket, session),
        exit_timeout=config.exit_timeout,
    )
    coordinator.install_handlers()
    try:
        await strategy.establish(session)
        process = await ToolLauncher(strategy).launch(binary, session)
        relay = RelaySession(
            session,
            on_chunk=on_chunk,
            exit_code_authoritative=strategy.exit_code_authoritative,
            accept_timeout=config.accept_timeout,
            session_timeout=config.session_timeout,
            exit_timeout=config.exit_timeout,
        )
        outcome = await relay.run(
            strategy.open_stream(session),
            process,
            stdout_is_transport=strategy.mode is TransportMode.DIRECT,
        )
        session.complete(AnalysisResult.succeeded(outcome.output, exit_code=outcome.exit_code))
    except BridgeError as exc:
        LOGGER.debug("Session failed: %s", exc)
        session.complete(_failure_from(exc))
    finally:
        try:
            await coordinator.shutdown()
        finally:
            await strategy.aclose()
            coordinator.release_handlers()
    return session.result or AnalysisResult.failed("ctrace session ended without a result")


def _failure_from(exc: BridgeError) -> AnalysisResult:
    if isinstance(exc, ToolRuntimeError):
        return AnalysisResult.failed(str(exc), exit_code=exc.exit_code, stderr=exc.stderr, output=exc.output)
    return AnalysisResult.failed(str(exc))


__all__ = ["ANALYSIS_FLAGS", "build_analysis_args", "preflight", "run_analysis", "run_analysis_sync"]
