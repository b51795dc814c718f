# SPDX-License-Identifier: MIT
# Copyright (c) 2025 Blackcat Informatics® Inc.
"""Idempotent teardown of a bridge session's listener, processes, and socket."""

from __future__ import annotations

import asyncio
import atexit
import logging
import signal
import threading
from collections.abc import Callable
from types import FrameType
from typing import Any, Final

from .config import TransportMode
from .session import BridgeSession

LOGGER = logging.getLogger(__name__)

HANDLED_SIGNALS: Final[tuple[signal.Signals, ...]] = tuple(
    sig
    for sig in (
        getattr(signal, "SIGINT", None),
        getattr(signal, "SIGTERM", None),
        getattr(signal, "SIGBREAK", None),
    )
    if sig is not None
)

SignalHandler = Callable[[int, FrameType | None], Any] | int | None


class CleanupCoordinator:
    """Release every resource of one session exactly once.

    :meth:`cleanup` is synchronous so it can run from signal handlers and
    ``atexit`` hooks; :meth:`shutdown` adds the awaited reaping used on the
    normal control-flow path.
    """

    def __init__(
        self,
        session: BridgeSession,
        *,
        remove_socket: Callable[[], None] | None = None,
        exit_timeout: float = 5.0,
    ) -> None:
        """Bind the coordinator to ``session``.

        Args:
            session: Session whose resources are released.
            remove_socket: Callable deleting the domain-socket file inside the
                Linux layer; only used for bridged sessions.
            exit_timeout: Seconds to wait for each child before killing it.
        """

        self._session = session
        self._remove_socket = remove_socket
        self._exit_timeout = exit_timeout
        self._ran = False
        self._previous_handlers: dict[int, SignalHandler] = {}
        self._atexit_registered = False

    @property
    def ran(self) -> bool:
        """Return whether :meth:`cleanup` has already executed."""

        return self._ran

    def cleanup(self) -> bool:
        """Tear down the session; later calls are no-ops.

        Steps run in order and each is guarded so one failure does not block
        the rest: close the listener, terminate the bridge helper, terminate
        the tool, and remove the bridged socket file.

        Returns:
            bool: ``True`` for the call that performed the teardown.
        """

        if self._ran:
            return False
        self._ran = True
        session = self._session
        LOGGER.debug("Cleaning up %s session", session.mode.value)
        self._step("close listener", self._close_listener)
        self._step("terminate bridge helper", lambda: _terminate(session.helper))
        self._step("terminate tool", lambda: _terminate(session.tool))
        if session.mode is TransportMode.BRIDGED and self._remove_socket is not None:
            self._step("remove socket file", self._remove_socket)
        return True

    async def shutdown(self) -> None:
        """Run :meth:`cleanup` then reap both children within ``exit_timeout``."""

        self.cleanup()
        for process in self._session.processes():
            await self._reap(process)
        listener = self._session.listener
        if listener is not None:
            try:
                await asyncio.wait_for(listener.wait_closed(), timeout=self._exit_timeout)
            except asyncio.TimeoutError:
                LOGGER.warning("Listener did not close within %.1fs", self._exit_timeout)

    def install_handlers(self) -> None:
        """Register :meth:`cleanup` for interpreter exit and termination signals.

        Signal handlers can only be installed from the main thread; elsewhere
        only the ``atexit`` hook is registered.
        """

        if not self._atexit_registered:
            atexit.register(self.cleanup)
            self._atexit_registered = True
        if threading.current_thread() is not threading.main_thread():
            LOGGER.debug("Not on the main thread; signal handlers left unchanged")
            return
        for sig in HANDLED_SIGNALS:
            if sig in self._previous_handlers:
                continue
            try:
                self._previous_handlers[sig] = signal.signal(sig, self._handle_signal)
            except (OSError, ValueError) as exc:
                LOGGER.debug("Unable to install handler for %s: %s", sig, exc)

    def release_handlers(self) -> None:
        """Restore the handlers replaced by :meth:`install_handlers`."""

        if self._atexit_registered:
            atexit.unregister(self.cleanup)
            self._atexit_registered = False
        for sig, previous in list(self._previous_handlers.items()):
            try:
                signal.signal(sig, previous if previous is not None else signal.SIG_DFL)
            except (OSError, ValueError) as exc:
                LOGGER.debug("Unable to restore handler for %s: %s", sig, exc)
        self._previous_handlers.clear()

    def _handle_signal(self, signum: int, frame: FrameType | None) -> None:
        LOGGER.warning("Received signal %s; tearing down the ctrace session", signum)
        previous = self._previous_handlers.get(signum)
        self.cleanup()
        self.release_handlers()
        if callable(previous):
            previous(signum, frame)
            return
        if previous == signal.SIG_IGN:
            return
        raise SystemExit(128 + signum)

    def _close_listener(self) -> None:
        connection = self._session.connection
        if connection is not None:
            connection.close()
        listener = self._session.listener
        if listener is not None:
            listener.close()

    def _step(self, name: str, action: Callable[[], None]) -> None:
        try:
            action()
        except Exception as exc:  # noqa: BLE001 - one failed step must not skip the others
            LOGGER.warning("Cleanup step '%s' failed: %s", name, exc)

    async def _reap(self, process: asyncio.subprocess.Process) -> None:
        try:
            await asyncio.wait_for(process.wait(), timeout=self._exit_timeout)
        except asyncio.TimeoutError:
            LOGGER.warning("Process %s ignored SIGTERM; killing it", process.pid)
            try:
                process.kill()
            except ProcessLookupError:
                return
            await process.wait()


def _terminate(process: asyncio.subprocess.Process | None) -> None:
    if process is None or process.returncode is not None:
        return
    try:
        process.terminate()
    except ProcessLookupError:
        LOGGER.debug("Process %s already exited", process.pid)


__all__ = ["HANDLED_SIGNALS", "CleanupCoordinator"]
