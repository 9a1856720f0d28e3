"""
Chain
=====
The user-facing command API (the ``cy`` object handed to test bodies).

Every call enqueues a Command on the scheduler and returns a new Chain bound
to that command, so the next call receives its subject:

    cy.get("div").find("h1", timeout=1)
    cy.wrap({"foo": "foo"}).should("have.property", "foo").should("equal", "bar")
    cy.wrap({}).then(callback)

The call-site stack is captured at enqueue time; built-in commands are
located there when they fail. Callbacks (then / should(fn)) are located from
the error they raise.
"""
from typing import TYPE_CHECKING, Any, Callable, Optional, Protocol, Sequence

from failtrace.errors import CommandUsageError, ElementNotFoundError, FailtraceError
from failtrace.parser.stack_capture import capture_call_site
from failtrace.scheduler.chainers import resolve_chainer

if TYPE_CHECKING:
    from failtrace.scheduler.scheduler import Scheduler

__tracebackhide__ = True


class DomQuery(Protocol):
    """The DOM query boundary: resolve a selector, optionally within elements."""

    def query(self, selector: str, within: Optional[Sequence[Any]] = None) -> Sequence[Any]:
        ...


class Chain:

    def __init__(self, scheduler: "Scheduler", previous: Optional[int] = None) -> None:
        self._scheduler = scheduler
        self._previous = previous

    @property
    def index(self) -> Optional[int]:
        """Arena index of the command this chain continues from."""
        return self._previous

    # ------------------------------------------------------------------
    # Plumbing
    # ------------------------------------------------------------------
    def _enqueue(
        self,
        name: str,
        resolver: Callable[[Any], Any],
        *,
        retry: bool = False,
        timeout: Optional[int] = None,
        passthrough: bool = False,
        user_callback: bool = False,
        args: tuple = (),
    ) -> "Chain":
        index = self._scheduler.enqueue(
            name,
            resolver,
            retry=retry,
            timeout_ms=timeout,
            previous=self._previous,
            passthrough=passthrough,
            user_callback=user_callback,
            call_stack=capture_call_site(header="", skip=1),
            args=args,
        )
        return Chain(self._scheduler, previous=index)

    def _require_subject(self, name: str) -> None:
        if self._previous is None:
            raise CommandUsageError(f"{name}() must be chained off a previous command")

    def _query(self, selector: str, within: Optional[Sequence[Any]]) -> Sequence[Any]:
        dom = self._scheduler.dom
        if dom is None:
            raise FailtraceError("No DOM query layer is configured")
        found = dom.query(selector, within)
        if not found:
            raise ElementNotFoundError(selector)
        return found

    # ------------------------------------------------------------------
    # Commands
    # ------------------------------------------------------------------
    def get(self, selector: str, timeout: Optional[int] = None) -> "Chain":
        """Query the document for ``selector``, retrying until found."""
        return self._enqueue(
            "get", lambda _subject: self._query(selector, None),
            retry=True, timeout=timeout, args=(selector,),
        )

    def find(self, selector: str, timeout: Optional[int] = None) -> "Chain":
        """Query ``selector`` within the previous subject, retrying until found."""
        self._require_subject("find")

        def resolve(subject: Any) -> Sequence[Any]:
            within = subject if isinstance(subject, (list, tuple)) else [subject]
            return self._query(selector, within)

        return self._enqueue("find", resolve, retry=True, timeout=timeout, args=(selector,))

    def wrap(self, value: Any) -> "Chain":
        """Yield ``value`` as the subject."""
        return self._enqueue("wrap", lambda _subject: value, args=(value,))

    def then(self, callback: Callable[[Any], Any]) -> "Chain":
        """
        Run ``callback(subject)`` once. Commands it enqueues run as a nested
        queue before the chain continues.
        """
        return self._enqueue(
            "then", callback,
            passthrough=True, user_callback=True, args=(callback,),
        )

    def should(self, assertion: Any, *args: Any, timeout: Optional[int] = None) -> "Chain":
        """
        Retry an assertion against the subject until it passes or times out.

        ``assertion`` is either a callback ``fn(subject)`` that raises when
        unsatisfied, or a chainer name followed by its arguments.
        """
        self._require_subject("should")

        if callable(assertion):
            def resolve(subject: Any) -> Any:
                assertion(subject)
                return subject

            return self._enqueue(
                "should", resolve,
                retry=True, timeout=timeout, user_callback=True, args=(assertion,),
            )

        resolver = resolve_chainer(str(assertion), args)
        return self._enqueue(
            "should", resolver,
            retry=True, timeout=timeout, args=(assertion, *args),
        )
