# SPDX-License-Identifier: MIT
# Copyright (c) 2025 Blackcat Informatics® Inc.
"""Run an analysis from the command line and render its result."""

from __future__ import annotations

import asyncio
import json
from collections.abc import Callable, Sequence

import typer

from ...config import BridgeConfig, ConfigError
from ...logging import fail, info, ok
from ...orchestrator import run_analysis
from ...session import AnalysisResult
from ...transport import TransportStrategy, select_strategy
from ..utils import ChunkPrinter, strip_ansi
from .options import CommonOptions

ArgsBuilder = Callable[[TransportStrategy], Sequence[str]]


def execute_analysis(options: CommonOptions, build_args: ArgsBuilder, *, json_output: bool) -> None:
    """Run ctrace with the arguments from ``build_args`` and exit accordingly.

    Output is streamed to stdout as it arrives unless ``json_output`` is set,
    in which case only the result dictionary is printed.

    Args:
        options: Normalised shared CLI options.
        build_args: Callable producing the ctrace arguments for the selected
            transport.
        json_output: ``True`` to print the result as JSON.

    Raises:
        typer.Exit: Always; code ``0`` on success and ``1`` otherwise.
    """

    try:
        config: BridgeConfig = options.load_config()
    except ConfigError as exc:
        fail(f"Invalid configuration: {exc}", use_emoji=options.use_emoji)
        raise typer.Exit(code=1) from exc

    strategy = select_strategy(config)
    args = list(build_args(strategy))
    printer = None if json_output else ChunkPrinter(strip=options.strip_ansi)
    if printer is not None:
        info(f"Running ctrace ({strategy.mode.value}): {' '.join(args)}", use_emoji=options.use_emoji)
    result = asyncio.run(run_analysis(args, config=config, on_chunk=printer, strategy=strategy))
    if printer is not None:
        printer.close()

    if json_output:
        typer.echo(json.dumps(_printable(result, strip=options.strip_ansi).to_dict(), indent=2))
    else:
        _report(result, printed=printer is not None and printer.printed, options=options)
    raise typer.Exit(code=0 if result.success else 1)


def _printable(result: AnalysisResult, *, strip: bool) -> AnalysisResult:
    if not strip:
        return result
    return AnalysisResult(
        success=result.success,
        output=strip_ansi(result.output),
        error=result.error,
        exit_code=result.exit_code,
        stderr=strip_ansi(result.stderr),
    )


def _report(result: AnalysisResult, *, printed: bool, options: CommonOptions) -> None:
    if result.success:
        if not printed:
            info("(no output)", use_emoji=options.use_emoji)
        ok("ctrace completed successfully", use_emoji=options.use_emoji)
        return
    fail(result.error or "Unknown error", use_emoji=options.use_emoji)
    stderr = strip_ansi(result.stderr) if options.strip_ansi else result.stderr
    if stderr.strip():
        typer.echo(stderr.rstrip(), err=True)


__all__ = ["execute_analysis"]
