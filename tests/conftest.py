"""Shared fixtures: pty pairs standing in for children, and a fake spawner."""

from __future__ import annotations

import asyncio
import os
import pty
import select
import tty

import pytest

from panemux.errors import SpawnError
from panemux.session import ProcessSession


def read_available(fd: int, timeout: float = 0.5) -> bytes:
    """Read whatever arrives on ``fd`` within ``timeout``; b"" if nothing."""
    chunks = []
    while True:
        ready, _, _ = select.select([fd], [], [], timeout)
        if not ready:
            break
        try:
            data = os.read(fd, 4096)
        except OSError:
            break
        if not data:
            break
        chunks.append(data)
        timeout = 0.05
    return b"".join(chunks)


async def read_until(fd: int, size: int, timeout: float = 5.0) -> bytes:
    """Collect ``size`` bytes from ``fd``, yielding to the loop between reads."""
    loop = asyncio.get_running_loop()
    deadline = loop.time() + timeout
    received = bytearray()
    while len(received) < size and loop.time() < deadline:
        await asyncio.sleep(0.005)
        received += read_available(fd, timeout=0.005)
    return bytes(received)


class PtyPair:
    """A raw-mode pty pair; the test plays the child on the slave end.

    Sessions made with ``session()`` get their own duplicate of the master
    so they can close it without touching the fixture's descriptors.
    """

    def __init__(self) -> None:
        self.master, self.slave = pty.openpty()
        tty.setraw(self.slave)
        self._sessions: list[ProcessSession] = []

    def session(self, session_id: int = 1) -> ProcessSession:
        session = ProcessSession(session_id, os.dup(self.master))
        self._sessions.append(session)
        return session

    def close_slave(self) -> None:
        os.close(self.slave)
        self.slave = -1

    def close(self) -> None:
        for session in self._sessions:
            session.close()
        for fd in (self.master, self.slave):
            if fd >= 0:
                os.close(fd)


@pytest.fixture
def pty_pair():
    pair = PtyPair()
    yield pair
    pair.close()


class FakeChild:
    """Looks like a SpawnedProcess, but exits only when told to."""

    def __init__(self, argv: list[str], cols: int, rows: int) -> None:
        self.argv = argv
        self.cols = cols
        self.rows = rows
        self.master_fd, self.slave_fd = pty.openpty()
        tty.setraw(self.slave_fd)
        self.returncode: int | None = None
        self._exited = asyncio.Event()

    @property
    def pid(self) -> int:
        return 0

    async def wait(self) -> int:
        await self._exited.wait()
        assert self.returncode is not None
        return self.returncode

    def exit(self, code: int = 0) -> None:
        self.returncode = code
        self._exited.set()

    def output(self, data: bytes) -> None:
        """Write ``data`` as if the child printed it."""
        os.write(self.slave_fd, data)


class FakeSpawner:
    def __init__(self) -> None:
        self.children: list[FakeChild] = []
        self.fail = False

    async def __call__(self, argv: list[str], cols: int, rows: int, *, term: str) -> FakeChild:
        if self.fail:
            raise SpawnError(argv, "no such file")
        child = FakeChild(argv, cols, rows)
        self.children.append(child)
        return child

    def cleanup(self) -> None:
        for child in self.children:
            try:
                os.close(child.slave_fd)
            except OSError:
                pass


@pytest.fixture
def spawner():
    s = FakeSpawner()
    yield s
    s.cleanup()
