"""Emulated terminal — a pyte screen behind a small, lockable interface.

The emulator turns a child's raw output into a grid of cells. Renderers
read it through ``locked()`` so a grid is never observed half-updated.
"""

from __future__ import annotations

import enum
import threading
from contextlib import contextmanager
from dataclasses import dataclass
from typing import Iterator

import pyte
from pyte.graphics import FG_BG_256

# pyte stores private (DEC) modes shifted left by five bits; DECCKM is mode 1.
_DECCKM = 1 << 5

_NAMED_COLORS = {
    "black": 0,
    "red": 1,
    "green": 2,
    "brown": 3,
    "yellow": 3,
    "blue": 4,
    "magenta": 5,
    "cyan": 6,
    "white": 7,
}
_NAMED_COLORS.update({f"bright{name}": idx + 8 for name, idx in list(_NAMED_COLORS.items())})

# Lowest palette index wins for duplicated hex values.
_PALETTE_INDEX: dict[str, int] = {}
for _idx, _hex in enumerate(FG_BG_256):
    _PALETTE_INDEX.setdefault(_hex.lower(), _idx)


class TerminalMode(enum.Flag):
    """Input-affecting modes a child can switch on."""

    NONE = 0
    APP_CURSOR = enum.auto()
    APP_KEYPAD = enum.auto()


@dataclass(frozen=True)
class Cell:
    """One grid cell: its character and 256-colour indexes (None = default)."""

    char: str = " "
    fg: int | None = None
    bg: int | None = None


def color_index(value: str) -> int | None:
    """Convert a pyte colour value into a 256-colour palette index.

    Named colours map to 0-15, palette hex strings back to their index.
    ``"default"`` and true colours outside the palette give None.
    """
    if not value or value == "default":
        return None
    named = _NAMED_COLORS.get(value)
    if named is not None:
        return named
    return _PALETTE_INDEX.get(value.lower())


class EmulatedTerminal:
    """A VT screen fed with bytes, readable cell by cell.

    Application keypad mode (``ESC =`` / ``ESC >``) is tracked here because
    pyte does not keep it; everything else comes from the pyte screen.
    """

    def __init__(self, cols: int = 80, rows: int = 24) -> None:
        self._screen = pyte.Screen(cols, rows)
        self._stream = pyte.ByteStream(self._screen)
        self._lock = threading.RLock()
        self._app_keypad = False
        self._pending_esc = False

    @contextmanager
    def locked(self) -> Iterator[EmulatedTerminal]:
        """Hold the emulator lock for a consistent read of the grid."""
        with self._lock:
            yield self

    def write(self, data: bytes) -> int:
        with self._lock:
            self._track_keypad(data)
            self._stream.feed(data)
        return len(data)

    def _track_keypad(self, data: bytes) -> None:
        if self._pending_esc and data[:1] in (b"=", b">"):
            self._app_keypad = data[:1] == b"="
        on = data.rfind(b"\x1b=")
        off = data.rfind(b"\x1b>")
        if on != off:
            self._app_keypad = on > off
        self._pending_esc = data.endswith(b"\x1b")

    def resize(self, cols: int, rows: int) -> None:
        with self._lock:
            self._screen.resize(lines=rows, columns=cols)

    def size(self) -> tuple[int, int]:
        """Return ``(cols, rows)``."""
        with self._lock:
            return self._screen.columns, self._screen.lines

    def cell(self, x: int, y: int) -> Cell:
        with self._lock:
            char = self._screen.buffer[y][x]
            return Cell(char=char.data, fg=color_index(char.fg), bg=color_index(char.bg))

    def cursor(self) -> tuple[int, int]:
        """Return the cursor as ``(x, y)``, clamped inside the grid."""
        with self._lock:
            cursor = self._screen.cursor
            x = min(max(cursor.x, 0), self._screen.columns - 1)
            y = min(max(cursor.y, 0), self._screen.lines - 1)
            return x, y

    def mode(self) -> TerminalMode:
        with self._lock:
            mode = TerminalMode.NONE
            if _DECCKM in self._screen.mode:
                mode |= TerminalMode.APP_CURSOR
            if self._app_keypad:
                mode |= TerminalMode.APP_KEYPAD
            return mode
