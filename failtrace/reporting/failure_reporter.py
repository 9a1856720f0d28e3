"""
Failure Reporter
================
Merges a RawFailure with parsed, classified stack information and a code
frame into a FailureRecord, then hands it to the reporting collaborator.

Pipeline:
    1. Parse raw_stack into StackFrames (stack_parser)
    2. Classify origins and select the anchor frame (source_classifier)
    3. Extract the code frame at the anchor (code_frame)
    4. Build the immutable FailureRecord
    5. Emit it to the Reporter (exactly once per call to emit)

Contract:
    - build() is pure: no retries, no side effects.
    - An unparsable stack never crashes: the record is emitted degraded,
      with no anchor and an empty code frame.
"""
import logging
from typing import Optional

from failtrace.errors import UnparsableStackError
from failtrace.models.failure import CodeFrame, FailureRecord, RawFailure
from failtrace.models.stack_frame import ClassifiedFrame
from failtrace.parser.source_classifier import SourceClassifier
from failtrace.parser.stack_parser import parse_stack
from failtrace.reporting.reporters import LoggingReporter, Reporter
from failtrace.services.code_frame import CodeFrameExtractor

logger = logging.getLogger(__name__)


class FailureReporter:

    def __init__(
        self,
        classifier: Optional[SourceClassifier] = None,
        extractor: Optional[CodeFrameExtractor] = None,
        reporter: Optional[Reporter] = None,
    ) -> None:
        self.classifier = classifier or SourceClassifier()
        self.extractor = extractor or CodeFrameExtractor()
        self.reporter = reporter or LoggingReporter()

    def build(self, raw: RawFailure) -> FailureRecord:
        """Merge a RawFailure into a located, framed FailureRecord."""
        frames: list[ClassifiedFrame] = []
        anchor: Optional[ClassifiedFrame] = None
        code_frame = CodeFrame()
        degraded = False

        try:
            parsed = parse_stack(raw.raw_stack)
        except UnparsableStackError as e:
            logger.warning("Degraded failure record for %r: %s", raw.message, e)
            degraded = True
        else:
            frames = self.classifier.classify(parsed)
            anchor = self.classifier.select_anchor(frames)
            code_frame = self.extractor.extract(anchor)

        return FailureRecord(
            kind=raw.kind,
            message=raw.message,
            anchor_frame=anchor,
            code_frame=code_frame,
            frames=frames,
            raw_stack=raw.raw_stack,
            error_name=raw.error_name,
            expected=raw.expected,
            actual=raw.actual,
            command_name=raw.command_name,
            degraded=degraded,
            thrown_at=raw.thrown_at,
        )

    def emit(self, raw: RawFailure) -> FailureRecord:
        """Build the record and report it exactly once."""
        record = self.build(raw)
        if record.anchor_frame is not None:
            logger.info(
                "%s in %s at %s:%d:%d (%s)",
                record.kind, record.command_name or "command",
                record.anchor_frame.source_file, record.anchor_frame.line,
                record.anchor_frame.column, record.anchor_frame.origin,
            )
        else:
            logger.info("%s in %s with no anchor frame", record.kind, record.command_name or "command")
        self.reporter.report(record)
        return record
