"""Spawning children on a pseudo-terminal, and the fd plumbing around it."""

from __future__ import annotations

import asyncio
import fcntl
import logging
import os
import pty
import struct
import subprocess
import termios
from dataclasses import dataclass

from panemux.errors import ResizeQueryError, SpawnError

logger = logging.getLogger(__name__)


@dataclass
class SpawnedProcess:
    """A running child bound to the slave side of a pty.

    The parent keeps only ``master_fd``; the slave is closed right after
    the child starts.
    """

    argv: list[str]
    master_fd: int
    process: asyncio.subprocess.Process

    @property
    def pid(self) -> int:
        return self.process.pid

    async def wait(self) -> int:
        """Wait for the child to be reaped and return its exit status."""
        return await self.process.wait()


def _acquire_controlling_tty() -> None:
    # Runs in the child after setsid(); stdin is the pty slave.
    fcntl.ioctl(0, termios.TIOCSCTTY, 0)


async def spawn(
    argv: list[str],
    cols: int,
    rows: int,
    *,
    term: str = "xterm-256color",
    env: dict[str, str] | None = None,
    cwd: str | None = None,
) -> SpawnedProcess:
    """Start ``argv`` attached to a new pty sized ``cols`` x ``rows``.

    Raises:
        SpawnError: The pty pair could not be opened or the child could
            not be executed. No descriptors are left open in that case.
    """
    if not argv:
        raise SpawnError(argv, "empty command")

    try:
        master_fd, slave_fd = pty.openpty()
    except OSError as e:
        raise SpawnError(argv, f"openpty failed: {e}") from e

    child_env = {**os.environ, **(env or {})}
    child_env["TERM"] = term

    try:
        set_winsize(slave_fd, cols, rows)
        process = await asyncio.create_subprocess_exec(
            *argv,
            stdin=slave_fd,
            stdout=slave_fd,
            stderr=slave_fd,
            start_new_session=True,
            preexec_fn=_acquire_controlling_tty,
            env=child_env,
            cwd=cwd,
        )
    except (OSError, subprocess.SubprocessError) as e:
        os.close(master_fd)
        raise SpawnError(argv, str(e)) from e
    finally:
        # Parent always closes slave fd
        os.close(slave_fd)

    logger.info("Spawned pid=%d size=%dx%d cmd=%s", process.pid, cols, rows, " ".join(argv))
    return SpawnedProcess(argv=list(argv), master_fd=master_fd, process=process)


def set_winsize(fd: int, cols: int, rows: int) -> None:
    """Set the window size the kernel reports for the tty behind ``fd``."""
    fcntl.ioctl(fd, termios.TIOCSWINSZ, struct.pack("HHHH", rows, cols, 0, 0))


def terminal_size(fd: int) -> tuple[int, int]:
    """Return ``(cols, rows)`` of the terminal on ``fd``.

    Raises:
        ResizeQueryError: ``fd`` is not a terminal or reports a zero size.
    """
    try:
        size = os.get_terminal_size(fd)
    except OSError as e:
        raise ResizeQueryError(fd, str(e)) from e
    if size.columns <= 0 or size.lines <= 0:
        raise ResizeQueryError(fd, f"reported size {size.columns}x{size.lines}")
    return size.columns, size.lines


def _mark_ready(fut: asyncio.Future[None]) -> None:
    if not fut.done():
        fut.set_result(None)


def watch_readable(loop: asyncio.AbstractEventLoop, fd: int) -> asyncio.Future[None]:
    """Return a future resolved once ``fd`` is readable.

    The caller owns the registration and must ``loop.remove_reader(fd)``
    when done, before the descriptor is closed.
    """
    fut: asyncio.Future[None] = loop.create_future()
    loop.add_reader(fd, _mark_ready, fut)
    return fut
