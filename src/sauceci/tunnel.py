# tunnel.py
from __future__ import annotations

import asyncio
from enum import Enum
from typing import List, Optional, Sequence, Union

from . import settings
from .errors import CleanupError, TunnelLaunchError
from .model import JobConfig
from .notifications import (
    Sink,
    TunnelClose,
    TunnelEvent,
    TunnelOpen,
    TunnelOpened,
    null_sink,
)

# Sauce Connect prints one of these (case-insensitive) once traffic can flow.
READY_MARKERS = (
    "you may start your tests",
    "connected! you may start",
)

# Per-line buffer for tunnel output; longer lines are dropped with a warning.
STREAM_LIMIT = 1024 * 1024


class TunnelState(str, Enum):
    IDLE = "idle"
    OPENING = "opening"
    OPEN = "open"
    CLOSING = "closing"
    CLOSED = "closed"
    FAILED = "failed"


class Tunnel:
    """
    One Sauce Connect session, owned by a single job.

    The tunnel id is the job's identifier; the grid uses it to route test
    traffic through this tunnel. `close()` never raises and may be called
    in any state.
    """

    def __init__(
        self,
        config: JobConfig,
        sink: Sink = null_sink,
        *,
        binary: Union[str, Sequence[str], None] = None,
        startup_timeout: Optional[float] = None,
        shutdown_timeout: Optional[float] = None,
    ):
        self.id = config.identifier
        self.username = config.username
        self.key = config.key
        self.extra_args = list(config.tunnel_args)
        self.sink = sink

        binary = binary if binary is not None else settings.SAUCE_CONNECT_BINARY
        self.binary: List[str] = [binary] if isinstance(binary, str) else list(binary)
        self.startup_timeout = (
            startup_timeout if startup_timeout is not None else settings.TUNNEL_STARTUP_TIMEOUT
        )
        self.shutdown_timeout = (
            shutdown_timeout if shutdown_timeout is not None else settings.TUNNEL_SHUTDOWN_TIMEOUT
        )

        self.state = TunnelState.IDLE
        self._opened = False
        self._closed = False
        self._watcher: Optional[asyncio.Task] = None
        self._proc: Optional[asyncio.subprocess.Process] = None
        self._readers: List[asyncio.Task] = []
        self._ready: Optional[asyncio.Event] = None

    # ------------------------------------------------------------------
    # helpers
    # ------------------------------------------------------------------

    def command(self) -> List[str]:
        cmd = list(self.binary)
        if self.username:
            cmd += ["-u", self.username]
        if self.key:
            cmd += ["-k", self.key]
        cmd += ["-i", self.id]
        cmd += self.extra_args
        return cmd

    def _emit(self, notification) -> None:
        self.sink(notification)

    async def _pump(self, stream: asyncio.StreamReader, method: str, verbose: bool) -> None:
        while True:
            try:
                raw = await stream.readline()
            except (ValueError, asyncio.LimitOverrunError):
                # readline has already discarded the oversized line
                self._emit(TunnelEvent(method="warn", text=f"Tunnel output line over {STREAM_LIMIT} bytes skipped"))
                continue
            if not raw:
                break
            line = raw.decode("utf-8", errors="replace").rstrip()
            if not line:
                continue
            self._emit(TunnelEvent(method=method, text=line, verbose=verbose))
            if self._ready is not None and not self._ready.is_set():
                lowered = line.lower()
                if any(marker in lowered for marker in READY_MARKERS):
                    self._ready.set()

    async def _drain_readers(self) -> None:
        if not self._readers:
            return
        done, pending = await asyncio.wait(self._readers, timeout=1.0)
        for task in pending:
            task.cancel()
        await asyncio.gather(*pending, return_exceptions=True)
        for task in done:
            if not task.cancelled() and task.exception() is not None:
                self._emit(TunnelEvent(method="warn", text=f"Tunnel output reader failed: {task.exception()!r}"))
        self._readers = []

    async def _kill(self) -> None:
        proc = self._proc
        if proc is None or proc.returncode is not None:
            return
        try:
            proc.kill()
        except ProcessLookupError:
            return
        await proc.wait()

    # ------------------------------------------------------------------
    # lifecycle
    # ------------------------------------------------------------------

    async def open(self) -> None:
        """
        Launch the tunnel and wait until it reports it is live.

        Raises:
            TunnelLaunchError: If the binary cannot be started, exits early,
                or does not become ready within the startup timeout.
        """
        if self.state is not TunnelState.IDLE:
            raise TunnelLaunchError(self.id, f"cannot open a tunnel that is {self.state.value}")

        self.state = TunnelState.OPENING
        self._emit(TunnelOpen())
        self._emit(TunnelEvent(method="writeln", text=f"Tunnel identifier: {self.id}", verbose=True))

        try:
            self._proc = await asyncio.create_subprocess_exec(
                *self.command(),
                stdout=asyncio.subprocess.PIPE,
                stderr=asyncio.subprocess.PIPE,
                limit=STREAM_LIMIT,
            )
        except OSError as e:
            self.state = TunnelState.FAILED
            raise TunnelLaunchError(self.id, f"could not start {self.binary[0]}: {e}") from e

        self._ready = asyncio.Event()
        self._readers = [
            asyncio.create_task(self._pump(self._proc.stdout, "writeln", True)),
            asyncio.create_task(self._pump(self._proc.stderr, "error", False)),
        ]
        ready_task = asyncio.create_task(self._ready.wait())
        exit_task = asyncio.create_task(self._proc.wait())

        try:
            await asyncio.wait(
                {ready_task, exit_task},
                timeout=self.startup_timeout,
                return_when=asyncio.FIRST_COMPLETED,
            )
        except BaseException:
            # cancelled while starting: do not leave the process behind
            await self._fail_open()
            raise
        finally:
            ready_task.cancel()
            exit_task.cancel()

        if self._ready.is_set():
            self.state = TunnelState.OPEN
            self._opened = True
            self._watcher = asyncio.create_task(self._watch_exit())
            self._emit(TunnelOpened())
            return

        exit_code = self._proc.returncode
        await self._fail_open()
        if exit_code is not None:
            raise TunnelLaunchError(self.id, "process exited before the tunnel was ready", exit_code)
        raise TunnelLaunchError(self.id, f"not ready after {self.startup_timeout:g}s")

    async def _fail_open(self) -> None:
        self.state = TunnelState.FAILED
        await self._kill()
        await self._drain_readers()

    async def _watch_exit(self) -> None:
        code = await self._proc.wait()
        if self.state is TunnelState.OPEN:
            self.state = TunnelState.FAILED
            self._emit(TunnelEvent(method="error", text=f"Tunnel process exited unexpectedly (exit={code})"))

    async def close(self) -> None:
        """
        Shut the tunnel down: SIGTERM, wait for the shutdown timeout, then
        SIGKILL. Does nothing if the tunnel never opened or is already closed.
        """
        if not self._opened or self._closed:
            return
        self._closed = True

        failed = self.state is TunnelState.FAILED
        if not failed:
            self.state = TunnelState.CLOSING
        self._emit(TunnelClose())

        proc = self._proc
        try:
            if self._watcher is not None:
                self._watcher.cancel()
                await asyncio.gather(self._watcher, return_exceptions=True)
            if proc.returncode is None:
                try:
                    proc.terminate()
                except ProcessLookupError:
                    pass
                try:
                    await asyncio.wait_for(proc.wait(), timeout=self.shutdown_timeout)
                except asyncio.TimeoutError:
                    self._emit(TunnelEvent(
                        method="warn",
                        text=str(CleanupError(self.id, f"no exit after {self.shutdown_timeout:g}s, killing")),
                    ))
                    await self._kill()
            elif proc.returncode != 0:
                self._emit(TunnelEvent(
                    method="warn",
                    text=str(CleanupError(self.id, f"process had already exited (exit={proc.returncode})")),
                ))
            await self._drain_readers()
        except Exception as e:
            self._emit(TunnelEvent(method="warn", text=str(CleanupError(self.id, str(e)))))
        finally:
            if not failed:
                self.state = TunnelState.CLOSED

        self._emit(TunnelEvent(method="ok", text="Tunnel closed"))

    async def __aenter__(self) -> Tunnel:
        await self.open()
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        await self.close()
