"""Status session — a read-only pane reporting multiplexer state."""

from __future__ import annotations

from panemux import escapes
from panemux.session.base import SessionInfo, SessionKind

BORDER = 1


class StatusSession:
    """Shows how many sessions run and how big the terminal is.

    Has no child process: reads return nothing and keystrokes are dropped.
    """

    kind = SessionKind.STATUS
    title = "Control Pane"

    def __init__(self, session_id: int, info: SessionInfo) -> None:
        self.id = session_id
        self.info = info
        self._lines: list[str] = []
        self._cols = info.cols
        self._rows = info.rows
        self._x0 = BORDER
        self._y0 = BORDER
        self.refresh(info)

    def refresh(self, info: SessionInfo) -> None:
        """Rebuild the report from a new snapshot."""
        self.info = info
        self._lines = [
            self.title,
            f"Number of sessions: {info.session_count}",
            f"Height: {info.rows}",
            f"Width: {info.cols}",
        ]

    @property
    def lines(self) -> list[str]:
        return list(self._lines)

    async def read(self) -> bytes:
        return b""

    def write(self, data: bytes) -> int:
        return 0

    def write_background(self, data: bytes) -> int:
        return 0

    def set_rect(self, cols: int, rows: int, x_offset: int, y_offset: int) -> None:
        self._cols = max(cols - 2 * BORDER, 1)
        self._rows = max(rows - 2 * BORDER, 1)
        self._x0 = x_offset + BORDER
        self._y0 = y_offset + BORDER

    def invalidate(self) -> None:
        pass

    def render(self) -> str:
        return render_text_block(self._lines, self._x0, self._y0, self._cols, self._rows)

    def close(self) -> None:
        pass


def render_text_block(lines: list[str], x0: int, y0: int, cols: int, rows: int) -> str:
    """Overwrite a ``cols`` x ``rows`` region with ``lines``, blank-padded.

    The cursor is left just below the last line of text.
    """
    out = [escapes.SGR_RESET]
    for y in range(rows):
        text = lines[y] if y < len(lines) else ""
        out.append(escapes.cursor_position(y0 + y + 1, x0 + 1))
        out.append(text[:cols].ljust(cols))
    last = min(len(lines), rows - 1)
    out.append(escapes.cursor_position(y0 + last + 1, x0 + 1))
    return "".join(out)
