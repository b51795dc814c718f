# SPDX-License-Identifier: MIT
# Copyright (c) 2025 Blackcat Informatics® Inc.

"""Shared pytest fixtures.

End-to-end tests run the real orchestrator against a fake ``ctrace`` and,
for the bridged transport, a fake ``socat`` on ``PATH``. Both are small
Python scripts driven by ``FAKE_*`` environment variables.
"""

from __future__ import annotations

import asyncio
import shutil
import stat
import sys
import tempfile
import textwrap
from collections.abc import Iterator
from pathlib import Path

import pytest

from ctbridge.config import BridgeConfig, TransportMode
from ctbridge.platform.shell import native_shell
from ctbridge.transport import BridgedStrategy, DirectStrategy

FAKE_CTRACE = """
import json
import os
import socket
import sys
import time

args = sys.argv[1:]
env = os.environ
if "--help" in args:
    sys.stdout.write("usage: ctrace --input=<file> [--static] [--sarif-format]\\n")
    sys.exit(0)
if env.get("FAKE_CTRACE_ARGS_FILE"):
    with open(env["FAKE_CTRACE_ARGS_FILE"], "w", encoding="utf-8") as handle:
        json.dump(args, handle)
if env.get("FAKE_CTRACE_PIDFILE"):
    with open(env["FAKE_CTRACE_PIDFILE"], "w", encoding="utf-8") as handle:
        handle.write(str(os.getpid()))

chunks = env.get("FAKE_CTRACE_OUTPUT", "ok").split("|")
delay = float(env.get("FAKE_CTRACE_DELAY", "0"))
hold = float(env.get("FAKE_CTRACE_HOLD", "0"))
exit_code = int(env.get("FAKE_CTRACE_EXIT", "0"))
ipc_path = next((arg.split("=", 1)[1] for arg in args if arg.startswith("--ipc-path=")), None)

if env.get("FAKE_CTRACE_STDERR"):
    sys.stderr.write(env["FAKE_CTRACE_STDERR"])
    sys.stderr.flush()

if "--ipc=socket" in args and ipc_path and not env.get("FAKE_CTRACE_NO_CONNECT"):
    channel = socket.socket(socket.AF_UNIX, socket.SOCK_STREAM)
    channel.connect(ipc_path)

    def write(text):
        channel.sendall(text.encode("utf-8"))

else:
    channel = None

    def write(text):
        sys.stdout.buffer.write(text.encode("utf-8"))
        sys.stdout.flush()

if "--ipc=socket" in args and env.get("FAKE_CTRACE_NO_CONNECT"):
    sys.exit(exit_code)

for index, chunk in enumerate(chunks):
    if index and delay:
        time.sleep(delay)
    write(chunk)
if hold:
    time.sleep(hold)
if channel is not None:
    channel.close()
sys.exit(exit_code)
"""

FAKE_SOCAT = """
import os
import socket
import sys
import threading
import time

mode = os.environ.get("FAKE_SOCAT_MODE", "forward")
if os.environ.get("FAKE_SOCAT_PIDFILE"):
    with open(os.environ["FAKE_SOCAT_PIDFILE"], "w", encoding="utf-8") as handle:
        handle.write(str(os.getpid()))
if mode == "exit":
    sys.stderr.write("socat: E unable to start\\n")
    sys.exit(1)

listen, connect = sys.argv[1], sys.argv[2]
path = listen.split(":", 1)[1].split(",", 1)[0]
_, host, port = connect.split(":")

if mode == "nosocket":
    while True:
        time.sleep(1)

if os.path.exists(path):
    os.unlink(path)
server = socket.socket(socket.AF_UNIX, socket.SOCK_STREAM)
server.bind(path)
server.listen(8)


def pump(source, target):
    try:
        while True:
            data = source.recv(65536)
            if not data:
                break
            target.sendall(data)
    except OSError:
        pass
    finally:
        try:
            target.shutdown(socket.SHUT_WR)
        except OSError:
            pass


def handle(client):
    upstream = socket.create_connection((host, int(port)))
    back = threading.Thread(target=pump, args=(upstream, client), daemon=True)
    back.start()
    pump(client, upstream)
    back.join(0.5)
    client.close()
    upstream.close()


while True:
    connection, _ = server.accept()
    threading.Thread(target=handle, args=(connection,), daemon=True).start()
"""


def _write_script(path: Path, body: str) -> Path:
    path.write_text(f"#!{sys.executable}\n{textwrap.dedent(body).lstrip()}", encoding="utf-8")
    path.chmod(path.stat().st_mode | stat.S_IXUSR | stat.S_IXGRP | stat.S_IXOTH)
    return path


@pytest.fixture
def dev_root(tmp_path: Path) -> Path:
    """Return a development tree holding ``bin/ctrace``."""

    root = tmp_path / "project"
    (root / "bin").mkdir(parents=True)
    _write_script(root / "bin" / "ctrace", FAKE_CTRACE)
    return root


@pytest.fixture
def fake_socat(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> Path:
    """Put a fake ``socat`` first on ``PATH``."""

    bin_dir = tmp_path / "fake-bin"
    bin_dir.mkdir()
    script = _write_script(bin_dir / "socat", FAKE_SOCAT)
    monkeypatch.setenv("PATH", f"{bin_dir}:{Path(sys.executable).parent}:/usr/bin:/bin")
    return script


@pytest.fixture
def socket_dir() -> Iterator[Path]:
    """Return a short directory for domain sockets (``AF_UNIX`` paths are length limited)."""

    directory = Path(tempfile.mkdtemp(prefix="ctb", dir="/tmp"))
    try:
        yield directory
    finally:
        shutil.rmtree(directory, ignore_errors=True)


@pytest.fixture
def direct_config(dev_root: Path) -> BridgeConfig:
    return BridgeConfig(
        transport=TransportMode.DIRECT,
        dev_root=dev_root,
        accept_timeout=5,
        session_timeout=20,
        exit_timeout=2,
    )


@pytest.fixture
def bridged_config(dev_root: Path, socket_dir: Path) -> BridgeConfig:
    return BridgeConfig(
        transport=TransportMode.BRIDGED,
        dev_root=dev_root,
        socket_path=str(socket_dir / "ctrace.sock"),
        listen_host="127.0.0.1",
        bridge_host="127.0.0.1",
        linux_prefix=[],
        bridge_ready_timeout=5,
        accept_timeout=5,
        session_timeout=20,
        exit_timeout=2,
    )


@pytest.fixture
def direct_strategy(direct_config: BridgeConfig) -> DirectStrategy:
    return DirectStrategy(direct_config, native_shell())


@pytest.fixture
def bridged_strategy(bridged_config: BridgeConfig, fake_socat: Path) -> BridgedStrategy:
    return BridgedStrategy(bridged_config, native_shell())


class StubProcess:
    """Minimal stand-in for :class:`asyncio.subprocess.Process`."""

    def __init__(self, *, returncode: int = 0, delay: float = 0.0, pid: int = 4242) -> None:
        self.pid = pid
        self.returncode: int | None = None
        self.stdout = None
        self.stderr = None
        self.terminated = 0
        self.killed = 0
        self._code = returncode
        self._delay = delay
        self._exited = asyncio.Event()

    async def wait(self) -> int:
        if self.returncode is None:
            try:
                await asyncio.wait_for(self._exited.wait(), timeout=self._delay)
            except asyncio.TimeoutError:
                pass
            if self.returncode is None:
                self.returncode = self._code
        return self.returncode

    def terminate(self) -> None:
        self.terminated += 1
        self.returncode = -15
        self._exited.set()

    def kill(self) -> None:
        self.killed += 1
        self.returncode = -9
        self._exited.set()


@pytest.fixture
def stub_process() -> type[StubProcess]:
    return StubProcess
