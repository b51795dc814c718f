# SPDX-License-Identifier: MIT
# Copyright (c) 2025 Blackcat Informatics® Inc.
"""Tests for the idempotent cleanup coordinator."""

from __future__ import annotations

import logging
import signal

import pytest

from ctbridge.cleanup import CleanupCoordinator
from ctbridge.config import TransportMode
from ctbridge.session import BridgeSession


class FakeListener:
    def __init__(self, *, fail: bool = False) -> None:
        self.closed = 0
        self._fail = fail

    def close(self) -> None:
        self.closed += 1
        if self._fail:
            raise OSError("listener already gone")

    async def wait_closed(self) -> None:
        return None


def _session(mode: TransportMode, stub_process, *, listener: FakeListener | None = None) -> BridgeSession:
    session = BridgeSession(args=(), mode=mode)
    session.listener = listener or FakeListener()
    session.helper = stub_process(delay=30, pid=1001)
    session.tool = stub_process(delay=30, pid=1002)
    return session


def test_cleanup_runs_exactly_once(stub_process) -> None:
    removed: list[str] = []
    session = _session(TransportMode.BRIDGED, stub_process)
    coordinator = CleanupCoordinator(session, remove_socket=lambda: removed.append("rm"))

    assert coordinator.cleanup()
    assert not coordinator.cleanup()
    assert coordinator.ran
    assert session.listener.closed == 1
    assert session.helper.terminated == 1
    assert session.tool.terminated == 1
    assert removed == ["rm"]


def test_direct_cleanup_leaves_socket_alone(stub_process) -> None:
    removed: list[str] = []
    session = _session(TransportMode.DIRECT, stub_process)

    CleanupCoordinator(session, remove_socket=lambda: removed.append("rm")).cleanup()

    assert removed == []
    assert session.tool.terminated == 1


def test_failed_step_does_not_block_the_rest(stub_process, caplog: pytest.LogCaptureFixture) -> None:
    def broken_remove() -> None:
        raise OSError("rm -f exited with status 1")

    session = _session(TransportMode.BRIDGED, stub_process, listener=FakeListener(fail=True))
    caplog.set_level(logging.WARNING, logger="ctbridge.cleanup")

    assert CleanupCoordinator(session, remove_socket=broken_remove).cleanup()

    assert session.helper.terminated == 1
    assert session.tool.terminated == 1
    messages = [record.getMessage() for record in caplog.records]
    assert any("close listener" in message for message in messages)
    assert any("remove socket file" in message for message in messages)


def test_exited_processes_are_not_signalled(stub_process) -> None:
    session = _session(TransportMode.DIRECT, stub_process)
    session.tool.returncode = 0

    CleanupCoordinator(session).cleanup()

    assert session.tool.terminated == 0


@pytest.mark.asyncio
async def test_shutdown_kills_processes_that_ignore_terminate(stub_process) -> None:
    class Stubborn(stub_process):
        def terminate(self) -> None:
            self.terminated += 1

    session = BridgeSession(args=(), mode=TransportMode.DIRECT)
    session.tool = Stubborn(delay=30)

    await CleanupCoordinator(session, exit_timeout=0.1).shutdown()

    assert session.tool.terminated == 1
    assert session.tool.killed == 1
    assert session.tool.returncode == -9


def test_signal_handler_cleans_up_and_chains(stub_process) -> None:
    received: list[int] = []
    original = signal.signal(signal.SIGTERM, lambda signum, frame: received.append(signum))
    try:
        session = _session(TransportMode.DIRECT, stub_process)
        coordinator = CleanupCoordinator(session)
        coordinator.install_handlers()

        assert signal.getsignal(signal.SIGTERM) == coordinator._handle_signal

        coordinator._handle_signal(signal.SIGTERM, None)

        assert coordinator.ran
        assert received == [signal.SIGTERM]
        assert session.tool.terminated == 1
        assert signal.getsignal(signal.SIGTERM) != coordinator._handle_signal
    finally:
        signal.signal(signal.SIGTERM, original)


def test_signal_handler_exits_when_no_previous_handler(stub_process) -> None:
    original = signal.signal(signal.SIGTERM, signal.SIG_DFL)
    try:
        coordinator = CleanupCoordinator(_session(TransportMode.DIRECT, stub_process))
        coordinator.install_handlers()

        with pytest.raises(SystemExit) as excinfo:
            coordinator._handle_signal(signal.SIGTERM, None)

        assert excinfo.value.code == 128 + signal.SIGTERM
        assert signal.getsignal(signal.SIGTERM) == signal.SIG_DFL
    finally:
        signal.signal(signal.SIGTERM, original)


def test_release_restores_previous_handlers(stub_process) -> None:
    original = signal.getsignal(signal.SIGINT)
    coordinator = CleanupCoordinator(_session(TransportMode.DIRECT, stub_process))

    coordinator.install_handlers()
    coordinator.release_handlers()

    assert signal.getsignal(signal.SIGINT) == original
