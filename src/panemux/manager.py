"""Session manager — the registry of panes and everything that drives them.

One asyncio task per blocking source: the keyboard, each child's output,
each child's exit, SIGWINCH, and a single render loop. They share two
things only: the pane registry (guarded by one lock, never held across a
render or a physical write) and a single-slot render signal that folds
bursts of changes into one repaint.
"""

from __future__ import annotations

import asyncio
import logging
import os
import signal
import sys
import threading
from typing import Any, Awaitable, BinaryIO, Callable, Coroutine

from panemux import escapes
from panemux.config import MuxConfig
from panemux.emulator import TerminalMode
from panemux.errors import ChildExitError, ResizeQueryError
from panemux.pane import Pane, PanePosition, compute_geometry
from panemux.pty.spawn import SpawnedProcess, spawn, terminal_size, watch_readable
from panemux.session import (
    LogSession,
    PaneLogHandler,
    ProcessSession,
    SessionInfo,
    SessionKind,
    StatusSession,
)

logger = logging.getLogger(__name__)

Spawner = Callable[..., Awaitable[SpawnedProcess]]

_MODE_ESCAPES = (
    (TerminalMode.APP_CURSOR, escapes.app_cursor),
    (TerminalMode.APP_KEYPAD, escapes.app_keypad),
)


class RenderSignal:
    """Single-slot render request; posting while one is pending is a no-op.

    ``wait()`` returns after taking the pending request and everything that
    piled up behind it, so any burst becomes one render.
    """

    def __init__(self) -> None:
        self._slot: asyncio.Queue[None] = asyncio.Queue(maxsize=1)

    def post(self) -> None:
        try:
            self._slot.put_nowait(None)
        except asyncio.QueueFull:
            pass

    @property
    def pending(self) -> bool:
        return not self._slot.empty()

    async def wait(self) -> int:
        """Block until a request arrives, then drain; return how many were taken."""
        await self._slot.get()
        taken = 1
        while True:
            try:
                self._slot.get_nowait()
            except asyncio.QueueEmpty:
                break
            taken += 1
        return taken


class SessionManager:
    """Owns the panes, the active-pane pointer, input routing and rendering.

    Use as ``async with SessionManager(...) as sm`` or call ``start()`` /
    ``stop()``. The status pane is created on start and never removed, so
    there is always an active pane.
    """

    def __init__(
        self,
        config: MuxConfig | None = None,
        *,
        output: BinaryIO | None = None,
        input_fd: int | None = None,
        size_fd: int | None = None,
        watch_resize: bool = False,
        spawner: Spawner = spawn,
    ) -> None:
        self.config = config or MuxConfig()
        self._out = output if output is not None else sys.stdout.buffer
        self._input_fd = input_fd
        self._size_fd = size_fd
        self._watch_resize = watch_resize
        self._spawn = spawner

        self._lock = threading.Lock()
        self._panes: list[Pane] = []
        self._active: Pane | None = None
        self._next_id = 0
        self._size = (self.config.default_cols, self.config.default_rows)
        self._modes = TerminalMode.NONE

        self.render_signal = RenderSignal()
        self._tasks: set[asyncio.Task[Any]] = set()
        self._live = 0
        self._all_exited = asyncio.Event()
        self._all_exited.set()

        self._status: StatusSession | None = None
        self._status_pane: Pane | None = None
        self._log_handler: PaneLogHandler | None = None
        self._started = False
        self._output_failed = False

    # -- lifecycle ---------------------------------------------------------

    async def __aenter__(self) -> SessionManager:
        await self.start()
        return self

    async def __aexit__(self, *exc_info: object) -> None:
        await self.stop()

    async def start(self) -> None:
        """Create the status pane and launch the input, resize and render tasks."""
        if self._started:
            return
        self._started = True
        loop = asyncio.get_running_loop()
        cols, rows = self.terminal_size()

        self._status = StatusSession(self._allocate_id(), SessionInfo(0, cols, rows))
        self._status_pane = Pane(
            self._status,
            PanePosition.FULL_SCREEN,
            compute_geometry(PanePosition.FULL_SCREEN, cols, rows),
        )
        with self._lock:
            self._panes.append(self._status_pane)

        if self.config.log_pane:
            log_session = LogSession(self._allocate_id(), self.config.log_pane_lines)
            log_pane = Pane(
                log_session,
                PanePosition.FULL_SCREEN,
                compute_geometry(PanePosition.FULL_SCREEN, cols, rows),
            )
            with self._lock:
                self._panes.append(log_pane)
            self._log_handler = PaneLogHandler(
                log_session, loop, on_update=lambda: self._request_render(log_pane)
            )
            self._log_handler.setFormatter(
                logging.Formatter("%(asctime)s %(levelname)s %(name)s: %(message)s", "%H:%M:%S")
            )
            logging.getLogger().addHandler(self._log_handler)

        self.select(self._status_pane)

        self._start_task(self._render_loop(), "render")
        if self._input_fd is not None:
            self._start_task(self._read_input(self._input_fd), "input")
        if self._watch_resize:
            self._start_task(self._watch_window_size(), "resize")

    async def stop(self) -> None:
        """Close every process pane, wait for the children, stop the tasks."""
        for pane in self.panes:
            if pane.session.kind is SessionKind.PROCESS:
                self.close(pane)
        await self.wait()

        tasks = list(self._tasks)
        for task in tasks:
            task.cancel()
        await asyncio.gather(*tasks, return_exceptions=True)

        if self._log_handler is not None:
            logging.getLogger().removeHandler(self._log_handler)
            self._log_handler = None

    async def wait(self) -> None:
        """Block until every spawned child has exited and been reaped."""
        await self._all_exited.wait()

    # -- registry ----------------------------------------------------------

    @property
    def panes(self) -> list[Pane]:
        with self._lock:
            return list(self._panes)

    @property
    def active(self) -> Pane | None:
        with self._lock:
            return self._active

    @property
    def status_pane(self) -> Pane | None:
        return self._status_pane

    @property
    def size(self) -> tuple[int, int]:
        """Last known physical terminal size as ``(cols, rows)``."""
        return self._size

    def _allocate_id(self) -> int:
        session_id = self._next_id
        self._next_id += 1
        return session_id

    async def create(
        self,
        argv: list[str],
        position: PanePosition = PanePosition.FULL_SCREEN,
    ) -> Pane:
        """Spawn ``argv`` in a new pane and start reading its output.

        Returns once the pane's output reader is running. The pane is not
        selected.

        Raises:
            SpawnError: The child could not be started; nothing is registered.
        """
        cols, rows = self.terminal_size()
        geometry = compute_geometry(position, cols, rows)
        spawned = await self._spawn(
            argv,
            max(geometry.cols - 2, 1),
            max(geometry.rows - 2, 1),
            term=self.config.term,
        )

        session = ProcessSession.from_spawned(
            self._allocate_id(), spawned, read_size=self.config.read_chunk_size
        )
        pane = Pane(session, position, geometry)
        with self._lock:
            self._panes.append(pane)
        self._live += 1
        self._all_exited.clear()

        ready: asyncio.Future[None] = asyncio.get_running_loop().create_future()
        self._start_task(self._read_output(pane, ready), f"output-{session.id}")
        await ready
        self._start_task(self._wait_exit(pane, spawned), f"exit-{session.id}")

        logger.info(
            "Created session %d (%s, pid %d): %s",
            session.id,
            position.value,
            spawned.pid,
            " ".join(argv),
        )
        self._refresh_status()
        return pane

    def select(self, pane: Pane) -> None:
        """Make ``pane`` the active pane and schedule a full repaint of it."""
        with self._lock:
            if pane not in self._panes:
                raise ValueError(f"{pane!r} is not registered")
            previous = self._active
            self._active = pane
        self._switched(pane, previous)

    def _switched(self, pane: Pane, previous: Pane | None) -> None:
        if self._status_pane is not None and self._status_pane in (pane, previous):
            self._refresh_status()
        pane.invalidate()
        self.render_signal.post()

    def next(self) -> None:
        """Activate the pane after the active one, wrapping to the first."""
        with self._lock:
            if not self._panes:
                return
            try:
                index = self._panes.index(self._active)
            except ValueError:
                index = -1
            target = self._panes[(index + 1) % len(self._panes)]
        self.select(target)

    def close(self, pane: Pane) -> None:
        """Remove ``pane`` and release its session.

        If it was active, the pane that followed it takes over, or the
        status pane when no process panes are left. The status and log
        panes are permanent and are never closed.
        """
        if pane.session.kind is not SessionKind.PROCESS:
            logger.debug("Refusing to close permanent pane %r", pane)
            return

        successor: Pane | None = None
        with self._lock:
            try:
                index = self._panes.index(pane)
            except ValueError:
                index = None
            else:
                del self._panes[index]
            was_active = self._active is pane
            if was_active:
                if not any(p.session.kind is SessionKind.PROCESS for p in self._panes):
                    successor = self._status_pane
                else:
                    successor = self._panes[(index or 0) % len(self._panes)]
                self._active = successor

        pane.session.close()
        if index is None:
            return
        logger.info("Closed session %d", pane.id)
        self._refresh_status()
        if was_active and successor is not None:
            self._switched(successor, pane)

    # -- input -------------------------------------------------------------

    def handle_input(self, buf: bytearray, n: int) -> int:
        """Route the first ``n`` bytes of ``buf`` and return how many were forwarded.

        Hotkey bytes switch panes and are dropped; the rest are compacted to
        the front of ``buf`` and written to the active session in one call.
        """
        hotkey = self.config.hotkey
        kept = 0
        for i in range(n):
            byte = buf[i]
            if byte == hotkey:
                self.next()
            else:
                buf[kept] = byte
                kept += 1

        if kept:
            with self._lock:
                target = self._active
            if target is not None:
                target.session.write(bytes(buf[:kept]))
        return kept

    async def _read_input(self, fd: int) -> None:
        loop = asyncio.get_running_loop()
        buf = bytearray(self.config.input_chunk_size)
        while True:
            readable = watch_readable(loop, fd)
            try:
                await readable
            finally:
                loop.remove_reader(fd)
            try:
                n = os.readv(fd, [buf])
            except OSError as e:
                logger.warning("Input read failed: %s", e)
                return
            if n == 0:
                logger.info("Input stream closed")
                return
            self.handle_input(buf, n)

    # -- child processes ---------------------------------------------------

    async def _read_output(self, pane: Pane, ready: asyncio.Future[None]) -> None:
        session = pane.session
        ready.set_result(None)
        try:
            while True:
                data = await session.read()
                if not data:
                    break
                session.write_background(data)
                self._request_render(pane)
        except Exception:
            logger.exception("Output reader for session %d failed", session.id)
            self.close(pane)
        logger.debug("Output reader for session %d finished", session.id)

    async def _wait_exit(self, pane: Pane, process: SpawnedProcess) -> None:
        session = pane.session
        try:
            returncode = await process.wait()
            if returncode != 0:
                logger.warning("%s", ChildExitError(session.id, returncode))
            else:
                logger.info("Session %d exited", session.id)
        finally:
            self.close(pane)
            self._live -= 1
            if self._live == 0:
                self._all_exited.set()

    # -- resize ------------------------------------------------------------

    def terminal_size(self) -> tuple[int, int]:
        """Query the physical size, falling back to the last known one."""
        if self._size_fd is None:
            return self._size
        try:
            self._size = terminal_size(self._size_fd)
        except ResizeQueryError as e:
            logger.warning("%s; using %dx%d", e, *self._size)
        return self._size

    def resize(self, cols: int | None = None, rows: int | None = None) -> None:
        """Re-lay out every pane for the current (or given) terminal size."""
        if cols is None or rows is None:
            cols, rows = self.terminal_size()
        else:
            self._size = (cols, rows)

        for pane in self.panes:
            try:
                pane.set_size(cols, rows)
            except OSError as e:
                logger.warning("Resize of session %d failed: %s", pane.id, e)
        logger.info("Resized to %dx%d", cols, rows)
        self._refresh_status()
        self.render_signal.post()

    async def _watch_window_size(self) -> None:
        loop = asyncio.get_running_loop()
        changed = asyncio.Event()
        loop.add_signal_handler(signal.SIGWINCH, changed.set)
        try:
            while True:
                await changed.wait()
                changed.clear()
                self.resize()
        finally:
            loop.remove_signal_handler(signal.SIGWINCH)

    # -- rendering ---------------------------------------------------------

    def _request_render(self, pane: Pane | None = None) -> None:
        if pane is not None:
            with self._lock:
                if pane is not self._active:
                    return
        self.render_signal.post()

    def _refresh_status(self) -> None:
        if self._status is None:
            return
        with self._lock:
            count = sum(1 for p in self._panes if p.session.kind is SessionKind.PROCESS)
        cols, rows = self._size
        self._status.refresh(SessionInfo(count, cols, rows))
        self._request_render(self._status_pane)

    def mode_escapes(self, pane: Pane) -> str:
        """Escapes for mode flags that changed since the last render."""
        session = pane.session
        if not isinstance(session, ProcessSession):
            return ""
        mode = session.emulator.mode()
        out = []
        for flag, toggle in _MODE_ESCAPES:
            enabled = flag in mode
            if enabled != (flag in self._modes):
                out.append(toggle(enabled))
        self._modes = mode
        return "".join(out)

    def render(self) -> None:
        """Paint the active pane onto the physical terminal in one write."""
        if self._output_failed:
            return
        with self._lock:
            pane = self._active
        if pane is None:
            return
        frame = self.mode_escapes(pane) + pane.render()
        try:
            self._out.write(frame.encode("utf-8", errors="replace"))
            self._out.flush()
        except OSError as e:
            if pane.session.kind is SessionKind.PROCESS:
                logger.error("Writing frame for session %d failed: %s", pane.id, e)
                self.close(pane)
                return
            # Permanent panes cannot be closed; the output is gone for good
            self._output_failed = True
            logger.error(
                "Writing frame for session %d failed, rendering stopped: %s", pane.id, e
            )

    async def _render_loop(self) -> None:
        while True:
            await self.render_signal.wait()
            self.render()

    # -- tasks -------------------------------------------------------------

    def _start_task(self, coro: Coroutine[Any, Any, None], name: str) -> asyncio.Task[None]:
        task = asyncio.create_task(coro, name=f"panemux-{name}")
        self._tasks.add(task)
        task.add_done_callback(self._task_done)
        return task

    def _task_done(self, task: asyncio.Task[Any]) -> None:
        self._tasks.discard(task)
        if task.cancelled():
            return
        exc = task.exception()
        if exc is not None:
            logger.error("Task %s failed", task.get_name(), exc_info=exc)
