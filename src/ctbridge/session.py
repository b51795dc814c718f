# SPDX-License-Identifier: MIT
# Copyright (c) 2025 Blackcat Informatics® Inc.
"""Per-invocation session state and the single-bridged-session guard."""

from __future__ import annotations

import asyncio
import threading
from collections.abc import Iterator, Sequence
from contextlib import contextmanager
from dataclasses import dataclass, field
from typing import Any

from .config import TransportMode
from .errors import SessionBusyError

_BRIDGED_SESSION_LOCK = threading.Lock()


@dataclass(slots=True, frozen=True)
class AnalysisResult:
    """Final outcome returned to the caller of one invocation."""

    success: bool
    output: str = ""
    error: str | None = None
    exit_code: int | None = None
    stderr: str = ""

    @classmethod
    def succeeded(cls, output: str, *, exit_code: int | None = 0) -> AnalysisResult:
        return cls(success=True, output=output, exit_code=exit_code)

    @classmethod
    def failed(
        cls,
        error: str,
        *,
        exit_code: int | None = None,
        stderr: str = "",
        output: str = "",
    ) -> AnalysisResult:
        return cls(success=False, output=output, error=error, exit_code=exit_code, stderr=stderr)

    def to_dict(self) -> dict[str, Any]:
        """Return the wire shape consumed by UI and JSON callers.

        Returns:
            dict[str, Any]: ``{"success": True, "output": ...}`` on success, or
            ``{"success": False, "error": ...}`` with the exit code, stderr,
            and partial output attached when known.
        """

        if self.success:
            return {"success": True, "output": self.output}
        payload: dict[str, Any] = {"success": False, "error": self.error or "Unknown error"}
        if self.exit_code is not None:
            payload["exitCode"] = self.exit_code
        if self.stderr:
            payload["stderr"] = self.stderr
        if self.output:
            payload["output"] = self.output
        return payload


@dataclass(slots=True)
class BridgeSession:
    """Resources and progress of a single invocation.

    Mutated by the transport, launcher, and relay stages; released by the
    cleanup coordinator before the result leaves the orchestrator.
    """

    args: tuple[str, ...]
    mode: TransportMode
    port: int | None = None
    socket_path: str | None = None
    listener: asyncio.AbstractServer | None = None
    connection: asyncio.StreamWriter | None = None
    helper: asyncio.subprocess.Process | None = None
    tool: asyncio.subprocess.Process | None = None
    chunks: list[str] = field(default_factory=list)
    tool_stderr: list[str] = field(default_factory=list)
    helper_stderr: list[str] = field(default_factory=list)
    result: AnalysisResult | None = None

    @property
    def output(self) -> str:
        """Return the output accumulated so far."""

        return "".join(self.chunks)

    @property
    def completed(self) -> bool:
        return self.result is not None

    def complete(self, result: AnalysisResult) -> bool:
        """Record ``result`` unless another completion already won.

        Args:
            result: Candidate final outcome.

        Returns:
            bool: ``True`` when ``result`` became the session result.
        """

        if self.result is not None:
            return False
        self.result = result
        return True

    def processes(self) -> list[asyncio.subprocess.Process]:
        """Return the child processes spawned so far (helper first)."""

        return [process for process in (self.helper, self.tool) if process is not None]


@contextmanager
def acquire_session(args: Sequence[str], mode: TransportMode) -> Iterator[BridgeSession]:
    """Create a session, holding the process-wide bridged guard when needed.

    Bridged sessions share a fixed socket path inside the Linux layer, so at
    most one may be active per controlling process. Direct sessions own all of
    their resources and are not serialised.

    Args:
        args: Tool arguments of the invocation.
        mode: Resolved transport mode (``DIRECT`` or ``BRIDGED``).

    Yields:
        BridgeSession: Fresh session owned by the caller.

    Raises:
        SessionBusyError: If a bridged session is already active.
    """

    bridged = mode is TransportMode.BRIDGED
    if bridged and not _BRIDGED_SESSION_LOCK.acquire(blocking=False):
        raise SessionBusyError("Another bridged ctrace session is already active; only one may run at a time")
    try:
        yield BridgeSession(args=tuple(args), mode=mode)
    finally:
        if bridged:
            _BRIDGED_SESSION_LOCK.release()


def bridged_session_active() -> bool:
    """Return whether a bridged session currently holds the guard."""

    return _BRIDGED_SESSION_LOCK.locked()


__all__ = ["AnalysisResult", "BridgeSession", "acquire_session", "bridged_session_active"]
