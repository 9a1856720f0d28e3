"""
Stack Frame Model
=================
Pydantic models for parsed and classified stack frames.

Fields:
    source_file     — path as it appeared in the raw stack (normalised separators)
    line            — 1-based line number
    column          — 1-based column (characters; a tab counts as one)
    function_name   — None for anonymous frames
    internal        — True when the frame was generated from engine code
    origin          — ProjectFile / SupportFile / ExternalFile (classified only)
    vendor          — True for installed-package or stdlib files (classified only)
"""
from typing import Optional
from pydantic import BaseModel, ConfigDict, PositiveInt

from failtrace.core.constants import OriginName


class StackFrame(BaseModel):
    model_config = ConfigDict(frozen=True)

    source_file: str
    line: PositiveInt
    column: PositiveInt
    function_name: Optional[str] = None
    internal: bool = False

    @property
    def location(self) -> str:
        """file:line:column, the form stack traces and regex checks use."""
        return f"{self.source_file}:{self.line}:{self.column}"


class ClassifiedFrame(StackFrame):
    origin: OriginName
    vendor: bool = False
