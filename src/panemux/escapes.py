"""Escape sequences written to the physical terminal.

Rows and columns passed to these helpers are 1-indexed, as the terminal
expects them.
"""

from __future__ import annotations

ESC = "\x1b"
CSI = ESC + "["

CLEAR_LINE = CSI + "2K"
CLEAR_SCREEN_HOME = CSI + "2J" + CSI + "H"
SGR_RESET = CSI + "0m"
FG_DEFAULT = CSI + "39m"
BG_DEFAULT = CSI + "49m"

APP_CURSOR_ON = CSI + "?1h"
APP_CURSOR_OFF = CSI + "?1l"
APP_KEYPAD_ON = ESC + "="
APP_KEYPAD_OFF = ESC + ">"

# Box-drawing glyphs for pane borders
TOP_LEFT = "┌"
TOP_RIGHT = "┐"
BOTTOM_LEFT = "└"
BOTTOM_RIGHT = "┘"
VERTICAL = "│"
HORIZONTAL = "─"


def cursor_position(row: int, col: int) -> str:
    return f"{CSI}{row};{col}H"


def foreground(color: int | None) -> str:
    """SGR for a 256-colour foreground index, or the default colour for None."""
    if color is None:
        return FG_DEFAULT
    return f"{CSI}38;5;{color}m"


def background(color: int | None) -> str:
    """SGR for a 256-colour background index, or the default colour for None."""
    if color is None:
        return BG_DEFAULT
    return f"{CSI}48;5;{color}m"


def app_cursor(enabled: bool) -> str:
    return APP_CURSOR_ON if enabled else APP_CURSOR_OFF


def app_keypad(enabled: bool) -> str:
    return APP_KEYPAD_ON if enabled else APP_KEYPAD_OFF
