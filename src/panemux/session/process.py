"""Process session — a child on a pty, mirrored into an emulated terminal."""

from __future__ import annotations

import asyncio
import logging
import os

from panemux import escapes
from panemux.emulator import EmulatedTerminal
from panemux.pty.spawn import SpawnedProcess, set_winsize, watch_readable
from panemux.session.base import SessionKind, SessionStatus

logger = logging.getLogger(__name__)

BORDER = 1  # Gutter cells on each side of the interior


def _printable(char: str) -> str:
    # NUL is the emulator's empty cell; "" is the tail of a wide character.
    if char == "\x00":
        return " "
    return char


class ProcessSession:
    """An interactive child process rendered through a line-diff renderer.

    Output from the child is fed into an ``EmulatedTerminal`` whether or
    not the pane is visible; ``render()`` turns the emulator grid into the
    minimum escape output by comparing each composed row with the row sent
    last time.
    """

    kind = SessionKind.PROCESS

    def __init__(
        self,
        session_id: int,
        master_fd: int,
        *,
        emulator: EmulatedTerminal | None = None,
        read_size: int = 4096,
    ) -> None:
        self.id = session_id
        self.emulator = emulator or EmulatedTerminal()
        self._master_fd = master_fd
        self._read_size = read_size
        self._status = SessionStatus.CREATED
        self._prev_frame: dict[int, str] = {}
        self._x0 = BORDER
        self._y0 = BORDER
        self._loop: asyncio.AbstractEventLoop | None = None
        self._readable: asyncio.Future[None] | None = None
        self._pending = bytearray()
        self._writer_loop: asyncio.AbstractEventLoop | None = None
        # Writes must never block the loop when the child stops reading
        os.set_blocking(master_fd, False)

    @classmethod
    def from_spawned(
        cls, session_id: int, spawned: SpawnedProcess, read_size: int = 4096
    ) -> ProcessSession:
        return cls(session_id, spawned.master_fd, read_size=read_size)

    @property
    def status(self) -> SessionStatus:
        return self._status

    @property
    def alive(self) -> bool:
        return self._status is not SessionStatus.EXITED

    @property
    def offset(self) -> tuple[int, int]:
        """Interior origin ``(x, y)`` on the physical screen, 0-indexed."""
        return self._x0, self._y0

    async def read(self) -> bytes:
        """Wait for child output and return it; b"" once the session is over.

        The pty master raises EIO after the child exits, which is reported
        as end of stream like a closed descriptor.
        """
        if self._status is SessionStatus.EXITED:
            return b""
        if self._status is SessionStatus.CREATED:
            self._status = SessionStatus.RUNNING

        fd = self._master_fd
        self._loop = asyncio.get_running_loop()
        while True:
            self._readable = watch_readable(self._loop, fd)
            try:
                await self._readable
            finally:
                self._readable = None
                if self._status is not SessionStatus.EXITED:
                    self._loop.remove_reader(fd)

            if self._status is SessionStatus.EXITED:
                return b""
            try:
                return os.read(fd, self._read_size)
            except BlockingIOError:
                continue
            except OSError as e:
                logger.debug("Session %d read ended: %s", self.id, e)
                return b""

    @property
    def pending(self) -> int:
        """Input bytes accepted but not yet taken by the child."""
        return len(self._pending)

    def write(self, data: bytes) -> int:
        """Queue ``data`` for the child and return how many bytes were accepted.

        Never blocks. What the pty cannot take right away is kept in order
        and flushed from the event loop once the child reads again.
        """
        if self._status is SessionStatus.EXITED or not data:
            return 0
        if self._pending:
            self._pending += data
            return len(data)
        try:
            written = os.write(self._master_fd, data)
        except BlockingIOError:
            written = 0
        except OSError as e:
            logger.debug("Session %d write failed: %s", self.id, e)
            return 0
        if written < len(data):
            self._pending += data[written:]
            loop = self._loop or asyncio.get_running_loop()
            loop.add_writer(self._master_fd, self._flush_pending)
            self._writer_loop = loop
            logger.debug(
                "Session %d queued %d input bytes", self.id, len(data) - written
            )
        return len(data)

    def _flush_pending(self) -> None:
        try:
            written = os.write(self._master_fd, self._pending)
        except BlockingIOError:
            return
        except OSError as e:
            logger.debug(
                "Session %d dropped %d queued bytes: %s", self.id, len(self._pending), e
            )
            self._pending.clear()
            written = 0
        del self._pending[:written]
        if not self._pending:
            self._stop_flushing()

    def _stop_flushing(self) -> None:
        if self._writer_loop is not None:
            self._writer_loop.remove_writer(self._master_fd)
            self._writer_loop = None

    def write_background(self, data: bytes) -> int:
        return self.emulator.write(data)

    def set_rect(self, cols: int, rows: int, x_offset: int, y_offset: int) -> None:
        """Fit the child into the interior of a ``cols`` x ``rows`` pane.

        Both the kernel's window size (what the child sees via ioctl) and
        the emulator grid are resized, otherwise full-screen programs draw
        for the wrong geometry.
        """
        inner_cols = max(cols - 2 * BORDER, 1)
        inner_rows = max(rows - 2 * BORDER, 1)
        if self._status is not SessionStatus.EXITED:
            set_winsize(self._master_fd, inner_cols, inner_rows)
        self.emulator.resize(inner_cols, inner_rows)
        self._x0 = x_offset + BORDER
        self._y0 = y_offset + BORDER
        self.invalidate()
        logger.debug(
            "Session %d resized to %dx%d at (%d, %d)",
            self.id,
            inner_cols,
            inner_rows,
            self._x0,
            self._y0,
        )

    def invalidate(self) -> None:
        self._prev_frame = {}

    def render(self) -> str:
        """Return the escapes that bring the physical screen up to date.

        Rows whose composed text matches the previous frame produce no
        output at all. A changed row is cleared and rewritten in full,
        gutter glyphs included since the clear wipes them. The frame ends
        with a colour reset and the cursor placed where the child left it.
        """
        out: list[str] = []
        with self.emulator.locked() as term:
            cols, rows = term.size()
            for y in range(rows):
                line = self._compose_row(term, y, cols)
                if self._prev_frame.get(y) == line:
                    continue
                self._prev_frame[y] = line
                out.append(
                    escapes.cursor_position(self._y0 + y + 1, self._x0 - BORDER + 1)
                    + escapes.SGR_RESET
                    + escapes.CLEAR_LINE
                    + escapes.VERTICAL
                    + line
                    + escapes.SGR_RESET
                    + escapes.VERTICAL
                )
            cursor_x, cursor_y = term.cursor()

        out.append(escapes.SGR_RESET)
        out.append(escapes.cursor_position(self._y0 + cursor_y + 1, self._x0 + cursor_x + 1))
        return "".join(out)

    @staticmethod
    def _compose_row(term: EmulatedTerminal, y: int, cols: int) -> str:
        parts: list[str] = []
        # Colour state restarts on every row
        prev_fg = ""
        prev_bg = ""
        for x in range(cols):
            cell = term.cell(x, y)
            fg = escapes.foreground(cell.fg)
            if fg != prev_fg:
                parts.append(fg)
                prev_fg = fg
            bg = escapes.background(cell.bg)
            if bg != prev_bg:
                parts.append(bg)
                prev_bg = bg
            parts.append(_printable(cell.char))
        return "".join(parts)

    def close(self) -> None:
        """Close the pty master. Safe to call more than once."""
        if self._status is SessionStatus.EXITED:
            return
        self._status = SessionStatus.EXITED
        if self._readable is not None and self._loop is not None:
            self._loop.remove_reader(self._master_fd)
            if not self._readable.done():
                self._readable.set_result(None)
        self._stop_flushing()
        self._pending.clear()
        try:
            os.close(self._master_fd)
        except OSError as e:
            logger.debug("Session %d close: %s", self.id, e)
        logger.info("Session %d closed", self.id)
