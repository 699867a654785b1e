"""Pseudo-terminal primitives — spawning children and sizing terminals."""

from panemux.pty.spawn import (
    SpawnedProcess,
    set_winsize,
    spawn,
    terminal_size,
    watch_readable,
)

__all__ = [
    "SpawnedProcess",
    "set_winsize",
    "spawn",
    "terminal_size",
    "watch_readable",
]
