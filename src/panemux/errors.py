"""Error taxonomy for panemux.

Every failure is scoped to the pane that owns it; nothing here is meant to
bring down unrelated panes.
"""

from __future__ import annotations


class PanemuxError(Exception):
    """Base class for all panemux errors."""


class SpawnError(PanemuxError):
    """The pseudo-terminal could not be created or the child could not exec."""

    def __init__(self, argv: list[str], reason: str) -> None:
        self.argv = list(argv)
        self.reason = reason
        super().__init__(f"cannot spawn {' '.join(argv) or '<empty argv>'}: {reason}")


class ChildExitError(PanemuxError):
    """A child process ended with a non-zero or abnormal status.

    Only ever logged; the pane is cleaned up normally afterwards.
    """

    def __init__(self, session_id: int, returncode: int | None) -> None:
        self.session_id = session_id
        self.returncode = returncode
        if returncode is not None and returncode < 0:
            detail = f"was killed by signal {-returncode}"
        else:
            detail = f"ended with exit status {returncode}"
        super().__init__(f"session {session_id} {detail}")


class ResizeQueryError(PanemuxError):
    """The size of the physical terminal could not be determined."""

    def __init__(self, fd: int, reason: str) -> None:
        self.fd = fd
        self.reason = reason
        super().__init__(f"cannot query terminal size on fd {fd}: {reason}")
