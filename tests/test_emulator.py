"""Tests for panemux.emulator (pyte-backed EmulatedTerminal)."""

from __future__ import annotations

from pyte.graphics import FG_BG_256

from panemux.emulator import Cell, EmulatedTerminal, TerminalMode, color_index


# ---------------------------------------------------------------------------
# color_index
# ---------------------------------------------------------------------------


class TestColorIndex:
    def test_default_is_none(self) -> None:
        assert color_index("default") is None

    def test_named_colours(self) -> None:
        assert color_index("black") == 0
        assert color_index("red") == 1
        assert color_index("brown") == 3
        assert color_index("white") == 7

    def test_bright_names(self) -> None:
        assert color_index("brightred") == 9
        assert color_index("brightwhite") == 15

    def test_palette_hex_maps_back(self) -> None:
        # 33 sits in the colour cube and has no duplicate in the palette
        assert color_index(FG_BG_256[33]) == 33

    def test_true_colour_outside_palette(self) -> None:
        assert color_index("123456") is None


# ---------------------------------------------------------------------------
# Grid
# ---------------------------------------------------------------------------


class TestGrid:
    def test_write_fills_cells(self) -> None:
        term = EmulatedTerminal(10, 3)
        term.write(b"hi")
        assert term.cell(0, 0).char == "h"
        assert term.cell(1, 0).char == "i"
        assert term.cell(2, 0) == Cell(" ", None, None)

    def test_cursor_follows_output(self) -> None:
        term = EmulatedTerminal(10, 3)
        term.write(b"abc\r\nd")
        assert term.cursor() == (1, 1)

    def test_cursor_clamped_at_right_edge(self) -> None:
        term = EmulatedTerminal(4, 2)
        term.write(b"abcd")
        x, y = term.cursor()
        assert x == 3
        assert y == 0

    def test_sgr_colours(self) -> None:
        term = EmulatedTerminal(10, 2)
        term.write(b"\x1b[31;44mX\x1b[0mY")
        assert term.cell(0, 0) == Cell("X", 1, 4)
        assert term.cell(1, 0) == Cell("Y", None, None)

    def test_256_colour(self) -> None:
        term = EmulatedTerminal(10, 2)
        term.write(b"\x1b[38;5;33mZ")
        assert term.cell(0, 0).fg == 33

    def test_resize(self) -> None:
        term = EmulatedTerminal(10, 3)
        term.resize(20, 5)
        assert term.size() == (20, 5)

    def test_locked_is_reentrant(self) -> None:
        term = EmulatedTerminal(5, 1)
        term.write(b"q")
        with term.locked() as view:
            assert view.cell(0, 0).char == "q"
            assert view.size() == (5, 1)


# ---------------------------------------------------------------------------
# Modes
# ---------------------------------------------------------------------------


class TestModes:
    def test_starts_without_modes(self) -> None:
        assert EmulatedTerminal().mode() == TerminalMode.NONE

    def test_app_cursor_toggle(self) -> None:
        term = EmulatedTerminal()
        term.write(b"\x1b[?1h")
        assert TerminalMode.APP_CURSOR in term.mode()
        term.write(b"\x1b[?1l")
        assert TerminalMode.APP_CURSOR not in term.mode()

    def test_app_keypad_toggle(self) -> None:
        term = EmulatedTerminal()
        term.write(b"\x1b=")
        assert TerminalMode.APP_KEYPAD in term.mode()
        term.write(b"\x1b>")
        assert TerminalMode.APP_KEYPAD not in term.mode()

    def test_app_keypad_split_across_writes(self) -> None:
        term = EmulatedTerminal()
        term.write(b"text\x1b")
        term.write(b"=more")
        assert TerminalMode.APP_KEYPAD in term.mode()

    def test_last_keypad_sequence_wins(self) -> None:
        term = EmulatedTerminal()
        term.write(b"\x1b>\x1b=")
        assert TerminalMode.APP_KEYPAD in term.mode()
        term.write(b"\x1b=\x1b>")
        assert TerminalMode.APP_KEYPAD not in term.mode()
