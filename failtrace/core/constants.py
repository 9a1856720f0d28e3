"""
Constants
Centralised storage for failure kinds, frame origins and command states.
"""
from typing import Literal


class FailureKind:
    """How a failed command failed.  Values are matched verbatim by reporters."""
    EXCEPTION = "Exception"
    ASSERTION = "AssertionFailure"
    TIMEOUT   = "Timeout"


FailureKindName = Literal["Exception", "AssertionFailure", "Timeout"]


class Origin:
    """Where a stack frame's source file lives relative to the project."""
    PROJECT  = "ProjectFile"
    SUPPORT  = "SupportFile"
    EXTERNAL = "ExternalFile"


OriginName = Literal["ProjectFile", "SupportFile", "ExternalFile"]


class CommandState:
    PENDING   = "pending"
    RUNNING   = "running"
    RETRYING  = "retrying"
    SUSPENDED = "suspended"
    RESOLVED  = "resolved"
    FAILED    = "failed"
    ABANDONED = "abandoned"


TERMINAL_STATES = frozenset({
    CommandState.RESOLVED,
    CommandState.FAILED,
    CommandState.ABANDONED,
})

TIMEOUT_PREFIX = "Timed out retrying: "
INTERNAL_MARKER = "[internal]"
CARET = "^"
GUTTER = " | "
