"""Tests for panemux.pane (geometry, borders, delegation)."""

from __future__ import annotations

from panemux import escapes
from panemux.pane import Pane, PaneGeometry, PanePosition, compute_geometry
from panemux.session import SessionKind


class RecordingSession:
    """Minimal session that records what the pane asks of it."""

    kind = SessionKind.STATUS

    def __init__(self, session_id: int = 5) -> None:
        self.id = session_id
        self.rects: list[tuple[int, int, int, int]] = []
        self.invalidations = 0

    async def read(self) -> bytes:
        return b""

    def write(self, data: bytes) -> int:
        return 0

    def write_background(self, data: bytes) -> int:
        return 0

    def set_rect(self, cols: int, rows: int, x_offset: int, y_offset: int) -> None:
        self.rects.append((cols, rows, x_offset, y_offset))

    def invalidate(self) -> None:
        self.invalidations += 1

    def render(self) -> str:
        return "<body>"

    def close(self) -> None:
        pass


# ---------------------------------------------------------------------------
# compute_geometry
# ---------------------------------------------------------------------------


class TestComputeGeometry:
    def test_full_screen(self) -> None:
        assert compute_geometry(PanePosition.FULL_SCREEN, 80, 24) == PaneGeometry(80, 24, 0, 0)

    def test_left_half(self) -> None:
        assert compute_geometry(PanePosition.LEFT, 81, 24) == PaneGeometry(40, 24, 0, 0)

    def test_right_half_takes_remainder(self) -> None:
        assert compute_geometry(PanePosition.RIGHT, 81, 24) == PaneGeometry(41, 24, 40, 0)

    def test_halves_cover_screen(self) -> None:
        left = compute_geometry(PanePosition.LEFT, 101, 30)
        right = compute_geometry(PanePosition.RIGHT, 101, 30)
        assert left.cols + right.cols == 101
        assert right.x_offset == left.cols


# ---------------------------------------------------------------------------
# Pane
# ---------------------------------------------------------------------------


class TestPane:
    def test_forwards_rect_on_creation(self) -> None:
        session = RecordingSession()
        pane = Pane(session, PanePosition.RIGHT, compute_geometry(PanePosition.RIGHT, 80, 24))
        assert session.rects == [(40, 24, 40, 0)]
        assert pane.id == 5

    def test_set_size_recomputes_from_position(self) -> None:
        session = RecordingSession()
        pane = Pane(session, PanePosition.LEFT, compute_geometry(PanePosition.LEFT, 80, 24))
        pane.set_size(100, 30)
        assert pane.geometry == PaneGeometry(50, 30, 0, 0)
        assert session.rects[-1] == (50, 30, 0, 0)
        assert session.invalidations == 1

    def test_first_render_clears_and_draws_border(self) -> None:
        pane = Pane(RecordingSession(), PanePosition.FULL_SCREEN, PaneGeometry(10, 4))
        out = pane.render()
        assert out.startswith(escapes.CLEAR_SCREEN_HOME)
        assert out.endswith("<body>")
        assert escapes.TOP_LEFT + escapes.HORIZONTAL * 8 + escapes.TOP_RIGHT in out

    def test_border_only_after_invalidation(self) -> None:
        session = RecordingSession()
        pane = Pane(session, PanePosition.FULL_SCREEN, PaneGeometry(10, 4))
        pane.render()
        assert pane.render() == "<body>"
        pane.invalidate()
        assert session.invalidations == 1
        assert escapes.CLEAR_SCREEN_HOME in pane.render()

    def test_border_positions(self) -> None:
        pane = Pane(RecordingSession(), PanePosition.RIGHT, PaneGeometry(10, 4, 10, 0))
        border = pane.border()
        assert escapes.cursor_position(1, 11) + escapes.TOP_LEFT in border
        assert escapes.cursor_position(2, 11) + escapes.VERTICAL in border
        assert escapes.cursor_position(3, 20) + escapes.VERTICAL in border
        assert escapes.cursor_position(4, 11) + escapes.BOTTOM_LEFT in border
        assert border.endswith(escapes.BOTTOM_RIGHT)

    def test_degenerate_geometry_has_no_border(self) -> None:
        pane = Pane(RecordingSession(), PanePosition.FULL_SCREEN, PaneGeometry(1, 1))
        assert pane.border() == ""
