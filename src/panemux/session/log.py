"""Log session — recent log records shown in a pane of their own."""

from __future__ import annotations

import asyncio
import logging
from collections import deque
from typing import Callable

from panemux.session.base import SessionKind
from panemux.session.status import BORDER, render_text_block


class LogSession:
    """A read-only pane listing the newest log lines, oldest scrolled off."""

    kind = SessionKind.LOG

    def __init__(self, session_id: int, max_lines: int = 200) -> None:
        self.id = session_id
        self._lines: deque[str] = deque(maxlen=max_lines)
        self._cols = 1
        self._rows = 1
        self._x0 = BORDER
        self._y0 = BORDER

    def append(self, text: str) -> None:
        for line in text.splitlines() or [""]:
            self._lines.append(line)

    @property
    def lines(self) -> list[str]:
        return list(self._lines)

    async def read(self) -> bytes:
        return b""

    def write(self, data: bytes) -> int:
        return 0

    def write_background(self, data: bytes) -> int:
        self.append(data.decode("utf-8", errors="replace"))
        return len(data)

    def set_rect(self, cols: int, rows: int, x_offset: int, y_offset: int) -> None:
        self._cols = max(cols - 2 * BORDER, 1)
        self._rows = max(rows - 2 * BORDER, 1)
        self._x0 = x_offset + BORDER
        self._y0 = y_offset + BORDER

    def invalidate(self) -> None:
        pass

    def render(self) -> str:
        # Tail that fits, one row kept free for the cursor
        visible = list(self._lines)[-(self._rows - 1) :] if self._rows > 1 else []
        return render_text_block(visible, self._x0, self._y0, self._cols, self._rows)

    def close(self) -> None:
        pass


class PaneLogHandler(logging.Handler):
    """Logging handler that routes records into a ``LogSession``.

    Records may come from any thread; they are handed to the event loop
    with ``call_soon_threadsafe`` and appended there, after which
    ``on_update`` is called so the pane can be re-rendered.
    """

    def __init__(
        self,
        session: LogSession,
        loop: asyncio.AbstractEventLoop,
        on_update: Callable[[], None] | None = None,
        level: int = logging.INFO,
    ) -> None:
        super().__init__(level)
        self._session = session
        self._loop = loop
        self._on_update = on_update

    def emit(self, record: logging.LogRecord) -> None:
        try:
            message = self.format(record)
            self._loop.call_soon_threadsafe(self._deliver, message)
        except Exception:
            self.handleError(record)

    def _deliver(self, message: str) -> None:
        self._session.append(message)
        if self._on_update is not None:
            self._on_update()
