# SPDX-License-Identifier: MIT
# Copyright (c) 2025 Blackcat Informatics® Inc.
"""Stream the tool's output to the caller and decide the session outcome."""

from __future__ import annotations

import asyncio
import codecs
import logging
from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from typing import Final

from .errors import BridgeError, ToolRuntimeError
from .session import BridgeSession

LOGGER = logging.getLogger(__name__)

CHUNK_SIZE: Final[int] = 64 * 1024

ChunkCallback = Callable[[str], None]


@dataclass(slots=True, frozen=True)
class RelayOutcome:
    """Successful relay result."""

    output: str
    exit_code: int | None


async def drain_stream(stream: asyncio.StreamReader | None, sink: list[str]) -> None:
    """Read ``stream`` to end-of-file, appending decoded text to ``sink``.

    Used for diagnostic streams so a chatty child never blocks on a full pipe.

    Args:
        stream: Reader to consume; ``None`` is ignored.
        sink: List receiving decoded text pieces.
    """

    if stream is None:
        return
    decoder = codecs.getincrementaldecoder("utf-8")(errors="replace")
    while True:
        data = await stream.read(CHUNK_SIZE)
        if not data:
            tail = decoder.decode(b"", final=True)
            if tail:
                sink.append(tail)
            return
        text = decoder.decode(data)
        if text:
            sink.append(text)


class RelaySession:
    """Relay one transport stream while supervising the tool process.

    Whichever of end-of-stream and process exit is seen first, the other is
    awaited for at most ``exit_timeout`` so the two are judged together: a
    non-zero exit status fails the session, including one reported just after
    the stream closed. When the stream closes cleanly but no exit status
    arrives in time, the clean close is authoritative for bridged transport
    (cleanup stops the tool); direct transport requires the exit status.
    """

    def __init__(
        self,
        session: BridgeSession,
        *,
        on_chunk: ChunkCallback | None = None,
        exit_code_authoritative: bool,
        accept_timeout: float,
        session_timeout: float,
        exit_timeout: float,
    ) -> None:
        self._session = session
        self._on_chunk = on_chunk
        self._exit_code_authoritative = exit_code_authoritative
        self._accept_timeout = accept_timeout
        self._session_timeout = session_timeout
        self._exit_timeout = exit_timeout

    async def run(
        self,
        connect: Awaitable[asyncio.StreamReader],
        process: asyncio.subprocess.Process,
        *,
        stdout_is_transport: bool,
    ) -> RelayOutcome:
        """Relay the stream produced by ``connect`` until it ends.

        Args:
            connect: Awaitable yielding the transport reader (the accepted
                connection in bridged mode, the stdout pipe in direct mode).
            process: The running tool process.
            stdout_is_transport: ``False`` when stdout is only diagnostic and
                must be drained alongside stderr.

        Returns:
            RelayOutcome: Full output and the exit status when known.

        Raises:
            ToolRuntimeError: On transport errors, timeouts, or a failing exit
                status; the error carries partial output and diagnostics.
        """

        session = self._session
        connect_task = asyncio.ensure_future(connect)
        exit_task = asyncio.ensure_future(process.wait())
        diagnostics = [asyncio.ensure_future(drain_stream(process.stderr, session.tool_stderr))]
        if not stdout_is_transport:
            diagnostics.append(asyncio.ensure_future(drain_stream(process.stdout, session.tool_stderr)))
        read_task: asyncio.Future[None] | None = None
        try:
            reader = await self._await_connection(connect_task, exit_task)
            read_task = asyncio.ensure_future(self._relay(reader))
            exit_code = await self._supervise(read_task, exit_task)
            await self._settle(diagnostics)
            return RelayOutcome(output=session.output, exit_code=exit_code)
        except ToolRuntimeError as exc:
            if exit_task.done():
                await self._settle(diagnostics)
            exc.stderr = "".join(session.tool_stderr)
            exc.output = session.output
            raise
        finally:
            pending = [task for task in (connect_task, exit_task, read_task, *diagnostics) if task is not None]
            for task in pending:
                if not task.done():
                    task.cancel()
            await asyncio.gather(*pending, return_exceptions=True)

    async def _await_connection(
        self,
        connect_task: asyncio.Future[asyncio.StreamReader],
        exit_task: asyncio.Future[int],
    ) -> asyncio.StreamReader:
        done, _ = await asyncio.wait(
            {connect_task, exit_task},
            timeout=self._accept_timeout,
            return_when=asyncio.FIRST_COMPLETED,
        )
        if not done:
            raise self._failure(f"ctrace did not connect within {self._accept_timeout:.1f}s")
        if connect_task not in done:
            # The bridge may still be forwarding a connection made just before exit.
            done, _ = await asyncio.wait({connect_task}, timeout=self._exit_timeout)
        if connect_task in done:
            try:
                return connect_task.result()
            except BridgeError:
                raise
            except OSError as exc:
                raise self._failure(f"Transport error while connecting: {exc}") from exc
        code = exit_task.result()
        raise self._failure(f"ctrace exited with code {code} before opening the transport", exit_code=code)

    async def _supervise(self, read_task: asyncio.Future[None], exit_task: asyncio.Future[int]) -> int | None:
        done, _ = await asyncio.wait(
            {read_task, exit_task},
            timeout=self._session_timeout,
            return_when=asyncio.FIRST_COMPLETED,
        )
        if not done:
            raise self._failure(f"ctrace did not finish within {self._session_timeout:.1f}s")
        if read_task in done:
            self._raise_transport_error(read_task)
            exit_code = await self._exit_code_after_close(exit_task)
        else:
            exit_code = exit_task.result()
            await self._drain_after_exit(read_task, exit_code)
        if exit_code is not None and exit_code != 0:
            raise self._failure(f"ctrace exited with code {exit_code}", exit_code=exit_code)
        return exit_code

    async def _drain_after_exit(self, read_task: asyncio.Future[None], exit_code: int) -> None:
        try:
            await asyncio.wait_for(asyncio.shield(read_task), timeout=self._exit_timeout)
        except asyncio.TimeoutError as exc:
            raise self._failure(
                f"ctrace exited with code {exit_code} but the transport stayed open for {self._exit_timeout:.1f}s",
                exit_code=exit_code,
            ) from exc
        except (OSError, asyncio.IncompleteReadError) as exc:
            raise self._failure(f"Transport error: {exc}", exit_code=exit_code) from exc

    async def _exit_code_after_close(self, exit_task: asyncio.Future[int]) -> int | None:
        done, _ = await asyncio.wait({exit_task}, timeout=self._exit_timeout)
        if exit_task in done:
            return exit_task.result()
        if self._exit_code_authoritative:
            raise self._failure(f"ctrace closed its output but did not exit within {self._exit_timeout:.1f}s")
        LOGGER.debug("ctrace still running after the transport closed; cleanup will stop it")
        return None

    def _raise_transport_error(self, read_task: asyncio.Future[None]) -> None:
        exc = read_task.exception()
        if exc is None:
            return
        if isinstance(exc, (OSError, asyncio.IncompleteReadError)):
            raise self._failure(f"Transport error: {exc}") from exc
        raise exc

    async def _relay(self, reader: asyncio.StreamReader) -> None:
        decoder = codecs.getincrementaldecoder("utf-8")(errors="replace")
        while True:
            data = await reader.read(CHUNK_SIZE)
            if not data:
                self._emit(decoder.decode(b"", final=True))
                return
            self._emit(decoder.decode(data))

    def _emit(self, text: str) -> None:
        if not text:
            return
        self._session.chunks.append(text)
        if self._on_chunk is not None:
            self._on_chunk(text)

    async def _settle(self, diagnostics: list[asyncio.Future[None]]) -> None:
        if not diagnostics:
            return
        await asyncio.wait(diagnostics, timeout=self._exit_timeout)
        stderr = "".join(self._session.tool_stderr).strip()
        if stderr:
            LOGGER.debug("ctrace diagnostics: %s", stderr)

    def _failure(self, message: str, *, exit_code: int | None = None) -> ToolRuntimeError:
        session = self._session
        return ToolRuntimeError(
            message,
            exit_code=exit_code,
            stderr="".join(session.tool_stderr),
            output=session.output,
        )


__all__ = ["CHUNK_SIZE", "ChunkCallback", "RelayOutcome", "RelaySession", "drain_stream"]
