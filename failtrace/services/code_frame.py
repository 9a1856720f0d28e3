"""
Code Frame Extractor
====================
Turns an anchor frame into a CodeFrame: the failing line, a few lines of
context and the marker position.

Rules:
    - Window: failing line ± context_lines, clipped to the file
    - Marker column is the frame's 1-based column, clamped to the last
      character of the failing line
    - Unreadable file or line outside the file → empty CodeFrame, never an error
    - No caching: sources are read fresh for every failure
"""
import logging
from typing import Optional

from failtrace.core.config import CODE_FRAME_CONTEXT
from failtrace.models.failure import CodeFrame
from failtrace.models.stack_frame import StackFrame
from failtrace.services.source_reader import FileSourceReader, SourceReader

logger = logging.getLogger(__name__)

EMPTY_CODE_FRAME = CodeFrame()


class CodeFrameExtractor:

    def __init__(
        self,
        reader: Optional[SourceReader] = None,
        context_lines: int = CODE_FRAME_CONTEXT,
    ) -> None:
        self.reader = reader or FileSourceReader()
        self.context_lines = max(context_lines, 0)

    def extract(self, frame: Optional[StackFrame]) -> CodeFrame:
        """
        Build the CodeFrame for ``frame``.

        Parameters
        ----------
        frame : StackFrame | None
            The anchor frame. None yields an empty CodeFrame.

        Returns
        -------
        CodeFrame
            Excerpt lines as (line_number, text) with the marker on the
            failing line.
        """
        if frame is None:
            return EMPTY_CODE_FRAME

        source = self.reader.read(frame.source_file)
        if source is None:
            logger.debug("No source for %s — empty code frame", frame.source_file)
            return EMPTY_CODE_FRAME

        # Only "\n" ends a line; str.splitlines would also split on form feeds
        # and other separators the interpreter counts as ordinary characters.
        lines = source.replace("\r\n", "\n").replace("\r", "\n").split("\n")
        if lines[-1] == "":
            lines.pop()
        if frame.line > len(lines):
            logger.warning(
                "Line %d is outside %s (%d lines) — empty code frame",
                frame.line, frame.source_file, len(lines),
            )
            return EMPTY_CODE_FRAME

        start = max(frame.line - self.context_lines, 1)
        end = min(frame.line + self.context_lines, len(lines))
        excerpt = [(number, lines[number - 1]) for number in range(start, end + 1)]

        failing_text = lines[frame.line - 1]
        column = max(min(frame.column, len(failing_text)), 1)

        return CodeFrame(lines=excerpt, marker_line=frame.line, marker_column=column)
