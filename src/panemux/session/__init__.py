"""Session variants — what a pane shows and where its keystrokes go.

Process sessions run a child on a pseudo-terminal; status and log sessions
are synthetic and have no child at all.
"""

from panemux.session.base import Session, SessionInfo, SessionKind, SessionStatus
from panemux.session.log import LogSession, PaneLogHandler
from panemux.session.process import ProcessSession
from panemux.session.status import StatusSession

__all__ = [
    "LogSession",
    "PaneLogHandler",
    "ProcessSession",
    "Session",
    "SessionInfo",
    "SessionKind",
    "SessionStatus",
    "StatusSession",
]
