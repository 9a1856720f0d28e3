"""
Scheduler
=========
Runs a test body and the command tree it builds, one command at a time.

State machine (per command):
    Pending → Running → Resolved
                      → Retrying → Running ...        (retryable commands)
                      → Suspended → Resolved          (children enqueued)
                      → Failed
    Pending → Abandoned                               (after any failure)

Execution model:
    - Single-threaded, cooperative (asyncio). Retry backoff suspends only
      the current command, through the injected clock.
    - Nested commands (enqueued while a callback runs) drain as a sub-queue
      before their parent resolves. Suspension is an explicit state driven
      by a cursor stack, never by native recursion.
    - Each command has its own timeout budget.
    - The first Failed transition abandons every Pending command, fails all
      ancestors and produces exactly one RawFailure / FailureRecord.
    - Not resumable: one scheduler runs one test.

Contract:
    run_test() NEVER raises for failures of the code under test; failures
    are returned as data.
"""
import logging
from dataclasses import dataclass
from typing import Any, Callable, Optional

from failtrace.core.config import DEFAULT_TIMEOUT_MS, RETRY_INTERVAL_MS
from failtrace.core.constants import CommandState, FailureKind
from failtrace.core.output_formatter import format_timeout_message
from failtrace.errors import AssertionFailure, CommandUsageError
from failtrace.models.command import Command
from failtrace.models.failure import FailureRecord, RawFailure
from failtrace.parser.stack_capture import stack_from_exception
from failtrace.reporting.failure_reporter import FailureReporter
from failtrace.scheduler.chain import Chain, DomQuery
from failtrace.scheduler.clock import Clock, MonotonicClock

logger = logging.getLogger(__name__)

__tracebackhide__ = True


@dataclass
class _Cursor:
    """Position in one queue of the command tree."""
    owner: Optional[int]
    queue: list[int]
    position: int = 0

    @property
    def exhausted(self) -> bool:
        return self.position >= len(self.queue)


class Scheduler:
    """
    Command queue with retry/timeout handling.

    Parameters
    ----------
    failure_reporter : FailureReporter | None
        Builds and emits the FailureRecord when the chain fails.
    dom : DomQuery | None
        DOM query layer used by get/find.
    clock : Clock | None
        Time source; MonotonicClock by default, VirtualClock in tests.
    default_timeout_ms : int
        Budget for retryable commands without an explicit timeout.
    retry_interval_ms : int
        Backoff between attempts of a retryable command.
    """

    def __init__(
        self,
        failure_reporter: Optional[FailureReporter] = None,
        dom: Optional[DomQuery] = None,
        clock: Optional[Clock] = None,
        default_timeout_ms: int = DEFAULT_TIMEOUT_MS,
        retry_interval_ms: int = RETRY_INTERVAL_MS,
    ) -> None:
        self.failure_reporter = failure_reporter or FailureReporter()
        self.dom = dom
        self.clock = clock or MonotonicClock()
        self.default_timeout_ms = default_timeout_ms
        self.retry_interval_ms = max(retry_interval_ms, 1)

        self._arena: list[Command] = []
        self._collector: Optional[int] = None
        self._started = False
        self._raw_failure: Optional[RawFailure] = None
        self._outcome: Optional[FailureRecord] = None
        self.cy = Chain(self)

    # ------------------------------------------------------------------
    # Introspection
    # ------------------------------------------------------------------
    @property
    def commands(self) -> tuple[Command, ...]:
        return tuple(self._arena)

    @property
    def failed(self) -> bool:
        return self._raw_failure is not None

    @property
    def raw_failure(self) -> Optional[RawFailure]:
        return self._raw_failure

    @property
    def outcome(self) -> Optional[FailureRecord]:
        return self._outcome

    def state_of(self, index: int) -> str:
        return self._arena[index].state

    # ------------------------------------------------------------------
    # Enqueue
    # ------------------------------------------------------------------
    def enqueue(
        self,
        name: str,
        resolver: Callable[[Any], Any],
        *,
        retry: bool = False,
        timeout_ms: Optional[int] = None,
        previous: Optional[int] = None,
        passthrough: bool = False,
        user_callback: bool = False,
        call_stack: str = "",
        args: tuple = (),
    ) -> int:
        """Append a command to the queue of the callback currently running."""
        if self._collector is None:
            raise CommandUsageError(
                f"{name}() was called outside of a running test body or callback"
            )
        owner = self._arena[self._collector]
        if owner.retry:
            raise CommandUsageError(
                f"{name}() was called inside a should() callback, which is retried; "
                "use then() to run commands"
            )

        command = self._add(
            name, resolver,
            retry=retry,
            timeout_ms=self.default_timeout_ms if timeout_ms is None else timeout_ms,
            parent=owner.index,
            previous=previous,
            passthrough=passthrough,
            user_callback=user_callback,
            call_stack=call_stack,
            args=args,
        )
        owner.children.append(command.index)
        logger.debug("Enqueued #%d %s under #%d", command.index, command.describe(), owner.index)
        return command.index

    def _add(self, name: str, resolver: Callable[[Any], Any], **fields: Any) -> Command:
        command = Command(index=len(self._arena), name=name, resolver=resolver, **fields)
        self._arena.append(command)
        return command

    # ------------------------------------------------------------------
    # Run
    # ------------------------------------------------------------------
    async def run_test(self, body: Callable[[Chain], Any], name: str = "test") -> Optional[FailureRecord]:
        """
        Run ``body(cy)`` and drain every command it enqueues.

        Returns
        -------
        FailureRecord | None
            The single failure of the chain, or None when everything resolved.
        """
        if self._started:
            logger.warning("Scheduler already ran a test; returning its recorded outcome")
            return self._outcome
        self._started = True

        root = self._add(name, lambda _subject: body(self.cy), user_callback=True)
        await self._drive(root.index)

        if self._raw_failure is None:
            logger.debug("All %d command(s) resolved", len(self._arena))
        return self._outcome

    async def _drive(self, root: int) -> None:
        cursors: list[_Cursor] = [_Cursor(owner=None, queue=[root])]

        while cursors:
            cursor = cursors[-1]

            if cursor.exhausted:
                cursors.pop()
                if cursor.owner is not None:
                    self._resolve(self._arena[cursor.owner])
                continue

            command = self._arena[cursor.queue[cursor.position]]
            cursor.position += 1

            if not await self._execute(command):
                return

            if command.children:
                self._transition(command, CommandState.SUSPENDED)
                cursors.append(_Cursor(owner=command.index, queue=command.children))
            else:
                self._resolve(command)

    def _incoming_subject(self, command: Command) -> Any:
        if command.previous is None:
            return None
        return self._arena[command.previous].subject

    def _resolve(self, command: Command) -> None:
        if command.passthrough and isinstance(command.subject, Chain) and command.subject.index is not None:
            command.subject = self._arena[command.subject.index].subject
        elif command.passthrough and command.subject is None:
            if command.children:
                command.subject = self._arena[command.children[-1]].subject
            else:
                command.subject = self._incoming_subject(command)
        self._transition(command, CommandState.RESOLVED)

    def _invoke(self, command: Command, subject: Any) -> Any:
        outer = self._collector
        self._collector = command.index
        try:
            return command.resolver(subject)
        finally:
            self._collector = outer

    async def _execute(self, command: Command) -> bool:
        """Run one command to Resolved-ready or Failed. Returns False on failure."""
        subject = self._incoming_subject(command)
        started = self.clock.now_ms()
        self._transition(command, CommandState.RUNNING)

        while True:
            command.attempts += 1
            try:
                value = self._invoke(command, subject)
            except CommandUsageError as err:
                self._fail(command, FailureKind.EXCEPTION, err)
                return False
            except Exception as err:
                if not command.retry:
                    kind = FailureKind.ASSERTION if isinstance(err, AssertionError) else FailureKind.EXCEPTION
                    self._fail(command, kind, err)
                    return False

                command.last_error = err
                elapsed = self.clock.now_ms() - started
                if elapsed >= command.timeout_ms:
                    logger.debug("#%d %s timed out after %.1fms (%d attempts)",
                                 command.index, command.name, elapsed, command.attempts)
                    self._fail(command, FailureKind.TIMEOUT, err)
                    return False

                self._transition(command, CommandState.RETRYING)
                await self.clock.sleep_ms(min(self.retry_interval_ms, command.timeout_ms - elapsed))
                self._transition(command, CommandState.RUNNING)
                continue

            command.subject = value
            command.last_error = None
            return True

    # ------------------------------------------------------------------
    # Failure
    # ------------------------------------------------------------------
    def _transition(self, command: Command, state: str) -> None:
        if command.state != state:
            logger.debug("#%d %s: %s → %s", command.index, command.name, command.state, state)
            command.state = state

    def _raw_stack_for(self, command: Command, err: BaseException, header: str) -> str:
        if command.user_callback:
            stack = stack_from_exception(err)
            return header + stack[stack.find("\n"):] if "\n" in stack else header
        if command.call_stack:
            return f"{header}\n{command.call_stack}"
        return stack_from_exception(err)

    def _fail(self, command: Command, kind: str, err: BaseException) -> None:
        if self._raw_failure is not None:
            logger.debug("Ignoring second failure of #%d %s: %s", command.index, command.name, err)
            return

        message = str(err) or type(err).__name__
        if kind == FailureKind.TIMEOUT:
            message = format_timeout_message(message)
        header = f"{type(err).__name__}: {message}"

        self._transition(command, CommandState.FAILED)
        ancestor = command.parent
        while ancestor is not None:
            self._transition(self._arena[ancestor], CommandState.FAILED)
            ancestor = self._arena[ancestor].parent

        abandoned = 0
        for other in self._arena:
            if other.state == CommandState.PENDING:
                self._transition(other, CommandState.ABANDONED)
                abandoned += 1

        self._raw_failure = RawFailure(
            kind=kind,
            message=message,
            raw_stack=self._raw_stack_for(command, err, header),
            error_name=type(err).__name__,
            expected=err.expected if isinstance(err, AssertionFailure) else None,
            actual=err.actual if isinstance(err, AssertionFailure) else None,
            command_name=command.describe(),
        )
        logger.info("Command #%d %s failed (%s); %d pending command(s) abandoned",
                    command.index, command.describe(), kind, abandoned)

        try:
            self._outcome = self.failure_reporter.emit(self._raw_failure)
        except Exception as e:
            logger.error("Failure reporting raised for %s: %s", command.describe(), e, exc_info=True)
