"""
Unit Tests — Failure Reporter
=============================
RawFailure → FailureRecord merging, degraded records and emission.
"""
import logging
from unittest.mock import MagicMock

from failtrace.core.constants import FailureKind, Origin
from failtrace.models.failure import RawFailure
from failtrace.parser.source_classifier import SourceClassifier
from failtrace.reporting.failure_reporter import FailureReporter
from failtrace.reporting.reporters import CollectingReporter, LoggingReporter
from failtrace.services.code_frame import CodeFrameExtractor
from failtrace.services.source_reader import InMemorySourceReader

SOURCES = {
    "/proj/spec/login.py": "def test(cy):\n    expect(True).to.be.false\n",
    "/proj/support/assertions.py": "def false(self):\n    raise AssertionFailure(msg)\n",
}

RAW_STACK = (
    "AssertionFailure: expected True to be false\n"
    "    at Expectation.false (/proj/support/assertions.py:2:5)\n"
    "    at test (/proj/spec/login.py:2:5)\n"
    "    at Scheduler._invoke [internal] (/engine/scheduler.py:230:20)"
)


def make_reporter(reporter=None):
    return FailureReporter(
        classifier=SourceClassifier("/proj", "/proj/support"),
        extractor=CodeFrameExtractor(InMemorySourceReader(SOURCES)),
        reporter=reporter or CollectingReporter(),
    )


def raw(stack=RAW_STACK, **kwargs):
    return RawFailure(kind=FailureKind.ASSERTION, message="expected True to be false", raw_stack=stack, **kwargs)


def test_build_locates_project_frame():
    record = make_reporter().build(raw())

    assert record.anchor_frame.origin == Origin.PROJECT
    assert (record.line, record.column) == (2, 5)
    assert record.code_frame.marker_line == 2
    assert len(record.frames) == 3
    assert not record.degraded


def test_build_carries_raw_fields():
    failure = raw(expected=False, actual=True, command_name="test", error_name="AssertionFailure")
    record = make_reporter().build(failure)

    assert record.kind == "AssertionFailure"
    assert record.expected is False
    assert record.actual is True
    assert record.command_name == "test"
    assert record.raw_stack == RAW_STACK
    assert record.thrown_at == failure.thrown_at


def test_unparsable_stack_is_degraded_not_fatal():
    record = make_reporter().build(raw(stack="AssertionFailure: no frames"))

    assert record.degraded
    assert record.anchor_frame is None
    assert record.code_frame.is_empty
    assert record.frames == []
    assert record.message == "expected True to be false"


def test_all_internal_stack_has_no_anchor():
    stack = "Error: x\n    at run [internal] (/engine/scheduler.py:1:1)"
    record = make_reporter().build(raw(stack=stack))

    assert record.anchor_frame is None
    assert record.code_frame.is_empty
    assert not record.degraded


def test_emit_reports_exactly_once():
    sink = MagicMock()
    record = make_reporter(reporter=sink).emit(raw())

    sink.report.assert_called_once_with(record)


def test_collecting_reporter_keeps_order():
    collector = CollectingReporter()
    reporter = make_reporter(reporter=collector)
    first = reporter.emit(raw())
    second = reporter.emit(raw(stack="nothing"))

    assert collector.records == [first, second]
    assert collector.last is second
    collector.clear()
    assert collector.last is None


def test_logging_reporter_writes_rendered_failure(caplog):
    reporter = make_reporter(reporter=LoggingReporter())
    with caplog.at_level(logging.ERROR, logger="failtrace"):
        reporter.emit(raw())

    assert "Command chain failed" in caplog.text
    assert "AssertionFailure: expected True to be false" in caplog.text
    assert "> 2 |     expect(True).to.be.false" in caplog.text
