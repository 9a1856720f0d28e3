"""
Verification Harness
====================
Checks an emitted FailureRecord against an expected descriptor.

Descriptor fields (all optional except message):
    message          — substring of the record's message
    column / line    — exact anchor position
    kind             — exact failure kind
    regex            — re.search against the full rendered failure (incl. stack)
    code_frame_text  — whitespace-insensitive substring of the code frame excerpt

A mismatch raises VerificationError, an AssertionError subclass that is
distinct from whatever failure the test under verification produced.

Typical use is a fail/verify pair:

    harness = VerificationHarness(project_root=..., dom=...)
    harness.fail(body)
    harness.verify(ExpectedFailure(column=5, message="expected True to be false"))
"""
import asyncio
import logging
import re
from typing import Any, Callable, Optional

import yaml
from pydantic import BaseModel, ConfigDict

from failtrace.core.config import DEFAULT_TIMEOUT_MS, PROJECT_ROOT, RETRY_INTERVAL_MS, SUPPORT_DIR
from failtrace.core.constants import FailureKindName
from failtrace.errors import VerificationError
from failtrace.models.failure import FailureRecord
from failtrace.parser.source_classifier import SourceClassifier
from failtrace.reporting.failure_reporter import FailureReporter
from failtrace.reporting.reporters import CollectingReporter
from failtrace.scheduler.chain import Chain, DomQuery
from failtrace.scheduler.clock import Clock
from failtrace.scheduler.scheduler import Scheduler
from failtrace.services.code_frame import CodeFrameExtractor

logger = logging.getLogger(__name__)

__tracebackhide__ = True

_WHITESPACE_RE = re.compile(r"\s+")


class ExpectedFailure(BaseModel):
    model_config = ConfigDict(frozen=True, extra="forbid")

    message: str
    column: Optional[int] = None
    line: Optional[int] = None
    kind: Optional[FailureKindName] = None
    regex: Optional[str] = None
    code_frame_text: Optional[str] = None


# ---------------------------------------------------------------------------
# Comparison
# ---------------------------------------------------------------------------
def _mismatches(record: FailureRecord, expected: ExpectedFailure) -> list[str]:
    problems: list[str] = []

    if expected.message not in record.message:
        problems.append(f"message {record.message!r} does not contain {expected.message!r}")

    if expected.column is not None and record.column != expected.column:
        problems.append(f"column is {record.column}, expected {expected.column}")

    if expected.line is not None and record.line != expected.line:
        problems.append(f"line is {record.line}, expected {expected.line}")

    if expected.kind is not None and record.kind != expected.kind:
        problems.append(f"kind is {record.kind}, expected {expected.kind}")

    if expected.regex is not None and not re.search(expected.regex, record.render()):
        problems.append(f"rendered failure does not match /{expected.regex}/")

    if expected.code_frame_text is not None:
        wanted = _WHITESPACE_RE.sub("", expected.code_frame_text)
        flattened = record.code_frame.flatten()
        if wanted not in flattened:
            problems.append(f"code frame {flattened!r} does not contain {wanted!r}")

    return problems


def verify_failure(record: Optional[FailureRecord], expected: ExpectedFailure) -> None:
    """
    Compare ``record`` with ``expected``.

    Raises
    ------
    VerificationError
        Listing every mismatching field, or when no record was emitted.
    """
    if record is None:
        raise VerificationError(["no failure was reported"])
    problems = _mismatches(record, expected)
    if problems:
        raise VerificationError(problems)
    logger.debug("Verified %s failure against %r", record.kind, expected.message)


def load_expectations(path: str) -> dict[str, ExpectedFailure]:
    """
    Load named descriptors from a YAML file:

        assertion_failure:
          column: 5
          message: expected True to be false
    """
    with open(path, "r", encoding="utf-8") as f:
        data = yaml.safe_load(f) or {}
    if not isinstance(data, dict):
        raise ValueError(f"{path}: expected a mapping of scenario name → descriptor")
    return {name: ExpectedFailure.model_validate(descriptor) for name, descriptor in data.items()}


# ---------------------------------------------------------------------------
# Harness
# ---------------------------------------------------------------------------
class VerificationHarness:
    """Runs failing bodies on fresh schedulers and verifies the last record."""

    def __init__(
        self,
        project_root: str = PROJECT_ROOT,
        support_dir: str = SUPPORT_DIR,
        dom: Optional[DomQuery] = None,
        clock_factory: Optional[Callable[[], Clock]] = None,
        default_timeout_ms: int = DEFAULT_TIMEOUT_MS,
        retry_interval_ms: int = RETRY_INTERVAL_MS,
        context_lines: Optional[int] = None,
    ) -> None:
        self.reporter = CollectingReporter()
        extractor = CodeFrameExtractor() if context_lines is None else CodeFrameExtractor(context_lines=context_lines)
        self.failure_reporter = FailureReporter(
            classifier=SourceClassifier(project_root, support_dir),
            extractor=extractor,
            reporter=self.reporter,
        )
        self.dom = dom
        self.clock_factory = clock_factory
        self.default_timeout_ms = default_timeout_ms
        self.retry_interval_ms = retry_interval_ms
        self.last_scheduler: Optional[Scheduler] = None

    def scheduler(self) -> Scheduler:
        return Scheduler(
            failure_reporter=self.failure_reporter,
            dom=self.dom,
            clock=self.clock_factory() if self.clock_factory else None,
            default_timeout_ms=self.default_timeout_ms,
            retry_interval_ms=self.retry_interval_ms,
        )

    async def fail_async(self, body: Callable[[Chain], Any], name: str = "test") -> Optional[FailureRecord]:
        self.last_scheduler = self.scheduler()
        return await self.last_scheduler.run_test(body, name=name)

    def fail(self, body: Callable[[Chain], Any], name: str = "test") -> Optional[FailureRecord]:
        """Run ``body`` to completion; the body is expected to fail."""
        return asyncio.run(self.fail_async(body, name=name))

    @property
    def last(self) -> Optional[FailureRecord]:
        return self.reporter.last

    def verify(self, expected: ExpectedFailure) -> FailureRecord:
        record = self.last
        verify_failure(record, expected)
        return record
