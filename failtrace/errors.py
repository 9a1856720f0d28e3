"""
Errors
======
Exception taxonomy shared by the parser, scheduler and harness.

Failures of the code under test are never propagated as these exceptions;
the scheduler turns them into FailureRecord data. These types describe the
signals crossing the collaborator boundaries.
"""
from typing import Any


class FailtraceError(Exception):
    """Base class for engine-level errors."""


class UnparsableStackError(FailtraceError):
    """Raised when a raw stack yields zero frames."""

    def __init__(self, raw_stack: str) -> None:
        self.raw_stack = raw_stack
        preview = raw_stack.strip().splitlines()[:1]
        super().__init__(f"No stack frames found in: {preview[0] if preview else '<empty>'}")


class AssertionFailure(AssertionError):
    """
    Structured expectation mismatch raised by assertion libraries.

    Carries the expected/actual pair so reporters can show both; the stack
    comes from the traceback like any other exception.
    """

    def __init__(self, message: str, expected: Any = None, actual: Any = None) -> None:
        super().__init__(message)
        self.message = message
        self.expected = expected
        self.actual = actual


class ElementNotFoundError(FailtraceError):
    """A DOM query resolved to no elements."""

    def __init__(self, selector: str) -> None:
        self.selector = selector
        super().__init__(f"Expected to find element: {selector}, but never found it")


class VerificationError(AssertionError):
    """An emitted FailureRecord did not match its expected descriptor."""

    def __init__(self, mismatches: list[str]) -> None:
        self.mismatches = mismatches
        super().__init__("Failure verification failed:\n  - " + "\n  - ".join(mismatches))


class CommandUsageError(FailtraceError):
    """A command was used incorrectly (e.g. chained off nothing). Never retried."""
