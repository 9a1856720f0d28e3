"""
Failure Models
==============
Pydantic models for everything a failing command produces.

RawFailure      — what the scheduler knows at the moment a command fails:
                  kind, message and the raw stack string. Produced once per
                  failing chain, handed to the FailureReporter.
CodeFrame       — excerpt of the failing source with a marker position.
FailureRecord   — the merged, immutable unit handed to the reporting
                  collaborator and the verification harness.
"""
import re
from datetime import datetime, timezone
from typing import Any, List, Optional, Tuple
from pydantic import BaseModel, ConfigDict, Field

from failtrace.core.constants import FailureKindName
from failtrace.core.output_formatter import format_code_frame, format_failure
from failtrace.models.stack_frame import ClassifiedFrame

_WHITESPACE_RE = re.compile(r"\s+")


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class RawFailure(BaseModel):
    model_config = ConfigDict(frozen=True, arbitrary_types_allowed=True)

    kind: FailureKindName
    message: str
    raw_stack: str = ""
    thrown_at: datetime = Field(default_factory=_utcnow)
    error_name: str = ""
    expected: Any = None
    actual: Any = None
    command_name: Optional[str] = None


class CodeFrame(BaseModel):
    model_config = ConfigDict(frozen=True)

    lines: List[Tuple[int, str]] = []
    marker_line: Optional[int] = None
    marker_column: Optional[int] = None

    @property
    def is_empty(self) -> bool:
        return not self.lines

    def render(self) -> str:
        """Render the excerpt with a gutter and a caret under the marker column."""
        return format_code_frame(self)

    def flatten(self) -> str:
        """Excerpt text with all whitespace removed (for substring checks)."""
        return "".join(_WHITESPACE_RE.sub("", text) for _, text in self.lines)


class FailureRecord(BaseModel):
    model_config = ConfigDict(frozen=True, arbitrary_types_allowed=True)

    kind: FailureKindName
    message: str
    anchor_frame: Optional[ClassifiedFrame] = None
    code_frame: CodeFrame = CodeFrame()
    frames: List[ClassifiedFrame] = []
    raw_stack: str = ""
    error_name: str = ""
    expected: Any = None
    actual: Any = None
    command_name: Optional[str] = None
    degraded: bool = False
    thrown_at: datetime = Field(default_factory=_utcnow)

    @property
    def column(self) -> Optional[int]:
        return self.anchor_frame.column if self.anchor_frame else None

    @property
    def line(self) -> Optional[int]:
        return self.anchor_frame.line if self.anchor_frame else None

    def render(self) -> str:
        return format_failure(self)
