"""Panes — rectangles on the physical screen, each wrapping one session."""

from __future__ import annotations

import enum
from dataclasses import dataclass

from panemux import escapes
from panemux.session.base import Session


class PanePosition(enum.Enum):
    """Where a pane sits on the physical terminal."""

    FULL_SCREEN = "full"
    LEFT = "left"
    RIGHT = "right"


@dataclass(frozen=True)
class PaneGeometry:
    """Outer rect of a pane, border included. Offsets are 0-indexed."""

    cols: int
    rows: int
    x_offset: int = 0
    y_offset: int = 0


def compute_geometry(position: PanePosition, cols: int, rows: int) -> PaneGeometry:
    """Lay out a pane of kind ``position`` on a ``cols`` x ``rows`` terminal."""
    if position is PanePosition.LEFT:
        return PaneGeometry(cols // 2, rows, 0, 0)
    if position is PanePosition.RIGHT:
        half = cols // 2
        return PaneGeometry(cols - half, rows, half, 0)
    return PaneGeometry(cols, rows, 0, 0)


class Pane:
    """A bordered viewport that owns exactly one session.

    The border is drawn on the first render after an invalidation (creation,
    switch-in, resize); later renders only carry what the session changed.
    """

    def __init__(
        self,
        session: Session,
        position: PanePosition,
        geometry: PaneGeometry,
    ) -> None:
        self.session = session
        self.position = position
        self.geometry = geometry
        self._needs_border = True
        session.set_rect(geometry.cols, geometry.rows, geometry.x_offset, geometry.y_offset)

    @property
    def id(self) -> int:
        return self.session.id

    def set_size(self, cols: int, rows: int) -> None:
        """Recompute the rect for a terminal of ``cols`` x ``rows``."""
        self.geometry = compute_geometry(self.position, cols, rows)
        g = self.geometry
        self.session.set_rect(g.cols, g.rows, g.x_offset, g.y_offset)
        self.invalidate()

    def invalidate(self) -> None:
        self._needs_border = True
        self.session.invalidate()

    def render(self) -> str:
        out = ""
        if self._needs_border:
            out = escapes.CLEAR_SCREEN_HOME + self.border()
            self._needs_border = False
        return out + self.session.render()

    def border(self) -> str:
        """Box-drawing frame around the pane, in absolute positions."""
        g = self.geometry
        if g.cols < 2 or g.rows < 2:
            return ""
        top = g.y_offset + 1
        bottom = g.y_offset + g.rows
        left = g.x_offset + 1
        right = g.x_offset + g.cols
        inner = escapes.HORIZONTAL * (g.cols - 2)

        parts = [
            escapes.SGR_RESET,
            escapes.cursor_position(top, left),
            escapes.TOP_LEFT + inner + escapes.TOP_RIGHT,
        ]
        for row in range(top + 1, bottom):
            parts.append(escapes.cursor_position(row, left) + escapes.VERTICAL)
            parts.append(escapes.cursor_position(row, right) + escapes.VERTICAL)
        parts.append(escapes.cursor_position(bottom, left))
        parts.append(escapes.BOTTOM_LEFT + inner + escapes.BOTTOM_RIGHT)
        return "".join(parts)

    def __repr__(self) -> str:
        return f"Pane(id={self.id}, kind={self.session.kind.value}, position={self.position.value})"
