"""The capability contract every session variant fulfils."""

from __future__ import annotations

import enum
from dataclasses import dataclass
from typing import Protocol


class SessionKind(enum.Enum):
    """Tag for the session variants."""

    PROCESS = "process"
    STATUS = "status"
    LOG = "log"


class SessionStatus(enum.Enum):
    """Lifecycle states for a process session."""

    CREATED = "created"
    RUNNING = "running"
    EXITED = "exited"


@dataclass(frozen=True)
class SessionInfo:
    """Snapshot of multiplexer state handed to the status session."""

    session_count: int
    cols: int
    rows: int


class Session(Protocol):
    """Something that takes keystrokes, a size, and produces a frame."""

    id: int
    kind: SessionKind

    async def read(self) -> bytes:
        """Return the next chunk of child output, or b"" at end of stream."""
        ...

    def write(self, data: bytes) -> int:
        """Forward input bytes to the session in one call."""
        ...

    def write_background(self, data: bytes) -> int:
        """Feed output bytes into the session's screen state."""
        ...

    def set_rect(self, cols: int, rows: int, x_offset: int, y_offset: int) -> None:
        """Apply the outer pane rect; the session draws inside its border."""
        ...

    def render(self) -> str:
        """Return the escape-sequence text that brings the screen up to date."""
        ...

    def invalidate(self) -> None:
        """Forget the previous frame so the next render repaints everything."""
        ...

    def close(self) -> None:
        ...
