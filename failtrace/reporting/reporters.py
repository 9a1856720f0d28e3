"""
Reporters
=========
Implementations of the reporting boundary. A reporter receives each
FailureRecord exactly once and returns nothing.
"""
import logging
from typing import Optional, Protocol

from failtrace.models.failure import FailureRecord

logger = logging.getLogger(__name__)


class Reporter(Protocol):
    def report(self, record: FailureRecord) -> None:
        ...


class LoggingReporter:
    """Writes the rendered failure to the failtrace logger."""

    def __init__(self, level: int = logging.ERROR) -> None:
        self.level = level

    def report(self, record: FailureRecord) -> None:
        logger.log(self.level, "Command chain failed\n%s", record.render())


class CollectingReporter:
    """Keeps every record in emission order; the harness verifies ``last``."""

    def __init__(self) -> None:
        self.records: list[FailureRecord] = []

    def report(self, record: FailureRecord) -> None:
        self.records.append(record)

    @property
    def last(self) -> Optional[FailureRecord]:
        return self.records[-1] if self.records else None

    def clear(self) -> None:
        self.records.clear()
