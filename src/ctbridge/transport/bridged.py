# SPDX-License-Identifier: MIT
# Copyright (c) 2025 Blackcat Informatics® Inc.
"""Bridged transport: a socat helper forwards a Linux domain socket to a host TCP listener.

The tool runs inside WSL and writes to ``--ipc-path``; socat listens on that
Unix socket and forwards each connection to the listener opened here.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Sequence
from pathlib import Path
from typing import Final

from ..config import BridgeConfig, TransportMode
from ..core.runtime.process import CommandOptions, run_command, run_command_async
from ..errors import BridgeSetupError, ToolRuntimeError
from ..platform.routes import RouteParseError, parse_default_gateway
from ..platform.shell import LinuxShell, quote
from ..relay import drain_stream
from ..resolver import ResolvedBinary
from ..session import BridgeSession
from .base import TransportStrategy

LOGGER = logging.getLogger(__name__)

IPC_MODE_FLAG: Final[str] = "--ipc=socket"
IPC_PATH_FLAG: Final[str] = "--ipc-path"


def ipc_flags(socket_path: str) -> list[str]:
    """Return the flags selecting the socket transport at ``socket_path``."""

    return [IPC_MODE_FLAG, f"{IPC_PATH_FLAG}={socket_path}"]


def bridge_script(utility: str, socket_path: str, host: str, port: int) -> str:
    """Return the shell script run by the bridging helper.

    The script removes a stale socket file, then replaces itself with a
    ``fork``-mode listener so sequential reconnects are forwarded too.

    Args:
        utility: Bridging utility executable (``socat``).
        socket_path: Domain-socket path inside the Linux layer.
        host: Controlling host address as seen from the Linux layer.
        port: Ephemeral TCP port of the host listener.

    Returns:
        str: Script suitable for ``bash -c``.
    """

    listen = quote(f"UNIX-LISTEN:{socket_path},fork")
    connect = quote(f"TCP:{host}:{port}")
    return f"rm -f {quote(socket_path)} && exec {quote(utility)} {listen} {connect}"


class BridgedStrategy(TransportStrategy):
    """Open the TCP listener, start the helper, and wait for the socket file."""

    mode = TransportMode.BRIDGED

    def __init__(self, config: BridgeConfig, shell: LinuxShell) -> None:
        super().__init__(config, shell)
        self._connection: asyncio.Future[tuple[asyncio.StreamReader, asyncio.StreamWriter]] | None = None
        self._tasks: list[asyncio.Future[None]] = []

    @property
    def exit_code_authoritative(self) -> bool:
        return False

    def map_path(self, path: str | Path) -> str:
        return self._shell.to_linux_path(path)

    def tool_command(self, binary: ResolvedBinary, args: Sequence[str]) -> list[str]:
        linux_binary = self._shell.to_linux_path(binary.path)
        return self._shell.command([linux_binary, *args, *ipc_flags(self._config.socket_path)])

    async def establish(self, session: BridgeSession) -> None:
        """Bring the bridge up for ``session``.

        Args:
            session: Session receiving the listener, port, socket path, and
                helper process.

        Raises:
            BridgeSetupError: If the listener cannot bind, the host address is
                unknown, the helper cannot start or exits early, or the socket
                file does not appear within ``bridge_ready_timeout``.
        """

        config = self._config
        session.socket_path = config.socket_path
        self._connection = asyncio.get_running_loop().create_future()
        try:
            server = await asyncio.start_server(self._on_connection, host=config.listen_host, port=0)
        except OSError as exc:
            raise BridgeSetupError(f"Unable to open TCP listener on {config.listen_host}: {exc}") from exc
        session.listener = server
        session.port = server.sockets[0].getsockname()[1]
        LOGGER.debug("Bridge listener bound to %s:%s", config.listen_host, session.port)

        host = await self.resolve_host_address()
        await self._remove_stale_socket(config.socket_path)
        command = self._shell.script(bridge_script(config.bridge_utility, config.socket_path, host, session.port))
        try:
            session.helper = await asyncio.create_subprocess_exec(
                *command,
                stdin=asyncio.subprocess.DEVNULL,
                stdout=asyncio.subprocess.PIPE,
                stderr=asyncio.subprocess.PIPE,
            )
        except OSError as exc:
            raise BridgeSetupError(f"Unable to start the {config.bridge_utility} bridge: {exc}") from exc
        self._tasks.append(asyncio.ensure_future(drain_stream(session.helper.stderr, session.helper_stderr)))
        self._tasks.append(asyncio.ensure_future(drain_stream(session.helper.stdout, session.helper_stderr)))
        await self._wait_for_socket(session)

    async def resolve_host_address(self) -> str:
        """Return the controlling host's address as seen from the Linux layer.

        Returns:
            str: ``bridge_host`` when configured, otherwise the default gateway
            reported by ``ip route show default`` inside the layer.

        Raises:
            BridgeSetupError: If the route command fails or cannot be parsed.
        """

        if self._config.bridge_host:
            return self._config.bridge_host
        command = self._shell.command(["ip", "route", "show", "default"])
        try:
            completed = await run_command_async(command, options=CommandOptions(timeout=self._config.probe_timeout))
        except OSError as exc:
            raise BridgeSetupError(f"Unable to query the default route: {exc}") from exc
        if completed.returncode != 0:
            raise BridgeSetupError(
                f"Default route query exited with status {completed.returncode}: {completed.stderr.strip()}",
            )
        try:
            return parse_default_gateway(completed.stdout)
        except RouteParseError as exc:
            raise BridgeSetupError(str(exc)) from exc

    async def open_stream(self, session: BridgeSession) -> asyncio.StreamReader:
        if self._connection is None:
            raise ToolRuntimeError("The bridge listener was never opened")
        reader, writer = await self._connection
        session.connection = writer
        LOGGER.debug("Accepted bridged connection on port %s", session.port)
        return reader

    def remove_socket(self, session: BridgeSession) -> None:
        path = session.socket_path or self._config.socket_path
        completed = run_command(
            self._shell.command(["rm", "-f", path]),
            options=CommandOptions(timeout=self._config.exit_timeout),
        )
        if completed.returncode != 0:
            raise OSError(f"rm -f {path} exited with status {completed.returncode}: {completed.stderr.strip()}")

    async def aclose(self) -> None:
        connection = self._connection
        if connection is not None:
            if not connection.done():
                connection.cancel()
            elif not connection.cancelled():
                connection.result()[1].close()
        if not self._tasks:
            return
        _, pending = await asyncio.wait(self._tasks, timeout=self._config.exit_timeout)
        for task in pending:
            task.cancel()
        await asyncio.gather(*self._tasks, return_exceptions=True)
        self._tasks.clear()

    def _on_connection(self, reader: asyncio.StreamReader, writer: asyncio.StreamWriter) -> None:
        if self._connection is None or self._connection.done():
            LOGGER.debug("Rejecting additional bridged connection")
            writer.close()
            return
        self._connection.set_result((reader, writer))

    async def _remove_stale_socket(self, socket_path: str) -> None:
        command = self._shell.command(["rm", "-f", socket_path])
        try:
            await run_command_async(command, options=CommandOptions(timeout=self._config.probe_timeout))
        except OSError as exc:
            raise BridgeSetupError(f"Unable to reach the Linux layer: {exc}") from exc

    async def _wait_for_socket(self, session: BridgeSession) -> None:
        config = self._config
        loop = asyncio.get_running_loop()
        deadline = loop.time() + config.bridge_ready_timeout
        check = self._shell.command(["test", "-S", config.socket_path])
        helper = session.helper
        while True:
            if helper is not None and helper.returncode is not None:
                detail = "".join(session.helper_stderr).strip() or "<no output>"
                raise BridgeSetupError(
                    f"The {config.bridge_utility} bridge exited with code {helper.returncode} "
                    f"before {config.socket_path} was ready: {detail}",
                )
            remaining = deadline - loop.time()
            try:
                completed = await run_command_async(
                    check,
                    options=CommandOptions(timeout=max(remaining, config.bridge_poll_interval)),
                )
            except OSError as exc:
                raise BridgeSetupError(f"Unable to check for {config.socket_path}: {exc}") from exc
            if completed.returncode == 0:
                LOGGER.debug("Bridge socket %s is ready", config.socket_path)
                return
            if loop.time() >= deadline:
                raise BridgeSetupError(
                    f"The bridge socket {config.socket_path} was not ready within {config.bridge_ready_timeout:.1f}s",
                )
            await asyncio.sleep(config.bridge_poll_interval)


__all__ = ["IPC_MODE_FLAG", "IPC_PATH_FLAG", "BridgedStrategy", "bridge_script", "ipc_flags"]
