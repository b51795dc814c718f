# SPDX-License-Identifier: MIT
# Copyright (c) 2025 Blackcat Informatics® Inc.
"""Safe wrappers around ``subprocess`` execution for probes and bridge helpers."""

from __future__ import annotations

import asyncio
import shutil

# Bandit: subprocess usage is intentional; commands are argument lists built by
# the bridge itself and ``shell=True`` is never used.
import subprocess  # nosec B404
from collections.abc import Mapping, Sequence
from dataclasses import dataclass
from pathlib import Path
from subprocess import CompletedProcess
from typing import Final

TIMEOUT_RETURNCODE: Final[int] = 124


@dataclass(slots=True, frozen=True)
class CommandOptions:
    """Immutable command execution options."""

    cwd: Path | None = None
    env: Mapping[str, str] | None = None
    check: bool = False
    timeout: float | None = None
    discard_stdin: bool = True


class SubprocessExecutionError(RuntimeError):
    """Raised when a subprocess exits with a non-zero status while ``check`` is true."""

    def __init__(
        self,
        command: Sequence[str],
        returncode: int,
        stdout: str | None,
        stderr: str | None,
    ) -> None:
        """Initialise the error with captured subprocess metadata.

        Args:
            command: Normalised command sequence that was executed.
            returncode: Exit status reported by the subprocess.
            stdout: Captured standard output stream.
            stderr: Captured standard error stream.
        """
        super().__init__(
            f"Command '{command[0]}' exited with status {returncode}. stderr: {stderr or '<none>'}",
        )
        self.command = tuple(command)
        self.returncode = returncode
        self.stdout = stdout
        self.stderr = stderr


def decode_output(value: str | bytes | None) -> str:
    """Return ``value`` as text, tolerating the UTF-16 output of ``wsl.exe``.

    Args:
        value: Raw stream output captured from a subprocess.

    Returns:
        str: Decoded text with NUL padding removed.
    """

    if value is None:
        return ""
    if isinstance(value, str):
        return value.replace("\x00", "")
    if value.startswith((b"\xff\xfe", b"\xfe\xff")):
        return value.decode("utf-16", errors="ignore")
    if len(value) >= 2 and value[1::2].count(0) > len(value) // 4:
        return value.decode("utf-16-le", errors="ignore")
    return value.decode("utf-8", errors="ignore").replace("\x00", "")


def _normalize_args(args: Sequence[str]) -> list[str]:
    """Normalise the subprocess argument sequence.

    Args:
        args: Raw command arguments supplied by the caller.

    Returns:
        list[str]: Validated argument list suitable for subprocess execution.

    Raises:
        ValueError: If no arguments are provided.
        FileNotFoundError: If the executable cannot be resolved on ``PATH``.
    """

    if not args:
        msg = "subprocess command requires at least one argument"
        raise ValueError(msg)

    head, *rest = args
    head_path = Path(head)
    if head_path.is_absolute():
        return [str(head_path), *rest]

    resolved = shutil.which(head)
    if resolved is None:
        msg = f"Executable '{head}' was not found on PATH"
        raise FileNotFoundError(msg)
    return [resolved, *rest]


def _timeout_message(timeout: float | None, stderr: str) -> str:
    timeout_msg = f"Command timed out after {timeout:.1f}s" if timeout is not None else "Command timed out"
    return f"{stderr}\n{timeout_msg}" if stderr else timeout_msg


def _checked(
    normalized: Sequence[str],
    completed: CompletedProcess[str],
    options: CommandOptions,
) -> CompletedProcess[str]:
    if options.check and completed.returncode != 0:
        raise SubprocessExecutionError(normalized, completed.returncode, completed.stdout, completed.stderr)
    return completed


def run_command(
    args: Sequence[str],
    *,
    options: CommandOptions | None = None,
) -> CompletedProcess[str]:
    """Execute ``args`` synchronously and capture decoded output.

    A timeout never raises: the result carries return code ``124`` and a
    timeout note appended to ``stderr``.

    Args:
        args: Command and argument sequence to execute.
        options: Options configuring execution semantics.

    Returns:
        CompletedProcess: Subprocess execution metadata with text streams.

    Raises:
        FileNotFoundError: If the executable cannot be resolved on ``PATH``.
        SubprocessExecutionError: When ``check`` is true and the process exits
            with a non-zero status.
    """

    resolved_options = options or CommandOptions()
    normalized = _normalize_args(args)
    try:
        # Bandit: argument list built internally, no shell expansion.
        raw = subprocess.run(  # nosec B603
            normalized,
            cwd=str(resolved_options.cwd) if resolved_options.cwd is not None else None,
            env=dict(resolved_options.env) if resolved_options.env is not None else None,
            check=False,
            capture_output=True,
            timeout=resolved_options.timeout,
            stdin=subprocess.DEVNULL if resolved_options.discard_stdin else None,
        )
    except subprocess.TimeoutExpired as exc:
        completed = CompletedProcess(
            args=list(normalized),
            returncode=TIMEOUT_RETURNCODE,
            stdout=decode_output(exc.stdout),
            stderr=_timeout_message(resolved_options.timeout, decode_output(exc.stderr)),
        )
    else:
        completed = CompletedProcess(
            args=list(normalized),
            returncode=raw.returncode,
            stdout=decode_output(raw.stdout),
            stderr=decode_output(raw.stderr),
        )
    return _checked(normalized, completed, resolved_options)


async def run_command_async(
    args: Sequence[str],
    *,
    options: CommandOptions | None = None,
) -> CompletedProcess[str]:
    """Asynchronous counterpart of :func:`run_command`.

    The child is killed and reaped when ``options.timeout`` expires or when the
    awaiting task is cancelled.

    Args:
        args: Command and argument sequence to execute.
        options: Options configuring execution semantics.

    Returns:
        CompletedProcess: Subprocess execution metadata with text streams.

    Raises:
        FileNotFoundError: If the executable cannot be resolved on ``PATH``.
        SubprocessExecutionError: When ``check`` is true and the process exits
            with a non-zero status.
    """

    resolved_options = options or CommandOptions()
    normalized = _normalize_args(args)
    process = await asyncio.create_subprocess_exec(
        *normalized,
        cwd=str(resolved_options.cwd) if resolved_options.cwd is not None else None,
        env=dict(resolved_options.env) if resolved_options.env is not None else None,
        stdin=asyncio.subprocess.DEVNULL if resolved_options.discard_stdin else None,
        stdout=asyncio.subprocess.PIPE,
        stderr=asyncio.subprocess.PIPE,
    )
    try:
        stdout, stderr = await asyncio.wait_for(process.communicate(), timeout=resolved_options.timeout)
    except asyncio.TimeoutError:
        await _reap(process)
        completed = CompletedProcess(
            args=list(normalized),
            returncode=TIMEOUT_RETURNCODE,
            stdout="",
            stderr=_timeout_message(resolved_options.timeout, ""),
        )
        return _checked(normalized, completed, resolved_options)
    except asyncio.CancelledError:
        await _reap(process)
        raise
    completed = CompletedProcess(
        args=list(normalized),
        returncode=process.returncode if process.returncode is not None else 0,
        stdout=decode_output(stdout),
        stderr=decode_output(stderr),
    )
    return _checked(normalized, completed, resolved_options)


async def _reap(process: asyncio.subprocess.Process) -> None:
    if process.returncode is None:
        try:
            process.kill()
        except ProcessLookupError:
            pass
    await process.wait()


__all__ = [
    "TIMEOUT_RETURNCODE",
    "CommandOptions",
    "SubprocessExecutionError",
    "decode_output",
    "run_command",
    "run_command_async",
]
