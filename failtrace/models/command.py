"""
Command Model
=============
One node of the command tree. Commands live in the scheduler's arena and
refer to each other by index, never by object reference.

Fields
------
index : int
    Position in the arena.
name : str
    Command name ("get", "then", "should", ...; "test" for the body).
resolver : Callable[[Any], Any]
    Called with the incoming subject; returns the new subject or raises.
retry : bool
    Re-run the resolver on error until ``timeout_ms`` has elapsed.
timeout_ms : int
    Per-command budget; a nested command gets its own.
parent : int | None
    Command whose callback enqueued this one (None for the test body).
previous : int | None
    Command whose subject this one receives.
children : list[int]
    Commands enqueued while this command's resolver ran, in order.
passthrough : bool
    A None result means "keep the subject" (then-callbacks).
user_callback : bool
    The resolver runs user code, so failures are located from the thrown
    error's traceback instead of the enqueue-time call site.
call_stack : str
    Raw stack (frames only) captured at enqueue time.
"""
from dataclasses import dataclass, field
from typing import Any, Callable, Optional

from failtrace.core.config import DEFAULT_TIMEOUT_MS
from failtrace.core.constants import CommandState, TERMINAL_STATES


@dataclass
class Command:
    index: int
    name: str
    resolver: Callable[[Any], Any]
    retry: bool = False
    timeout_ms: int = DEFAULT_TIMEOUT_MS
    parent: Optional[int] = None
    previous: Optional[int] = None
    children: list[int] = field(default_factory=list)
    state: str = CommandState.PENDING
    subject: Any = None
    passthrough: bool = False
    user_callback: bool = False
    call_stack: str = ""
    args: tuple = ()
    attempts: int = 0
    last_error: Optional[BaseException] = None

    @property
    def finished(self) -> bool:
        return self.state in TERMINAL_STATES

    def describe(self) -> str:
        shown = ", ".join(repr(a) for a in self.args if not callable(a))
        return f"{self.name}({shown})" if shown else self.name
