"""
Output Formatter
================
THE SINGLE SOURCE OF TRUTH for all human-readable failure strings.

STRICT DETERMINISM CONTRACT:
  - This module NEVER reads files or environment variables.
  - Given the same inputs, it ALWAYS returns the exact same output string.

The formatter OUTPUTS:

  Anchor line (byte-for-byte, location from StackFrame.location):
    at {source_file}:{line}:{column} ({origin})

  Code frames (gutter width follows the widest line number):
      3 |     def callback(subject):
    > 4 |         expect(True).to.be.false
        |         ^
      5 |     cy.wrap({}).then(callback)

  Failures:
    {kind}: {message}
    <blank>
    {raw stack, frames only}
    <blank>
    {code frame}
"""
from typing import TYPE_CHECKING, Any

from failtrace.core.constants import CARET, GUTTER, TIMEOUT_PREFIX

if TYPE_CHECKING:
    from failtrace.models.failure import CodeFrame, FailureRecord


# ---------------------------------------------------------------------------
# Small Formatters
# ---------------------------------------------------------------------------
def format_value(value: Any) -> str:
    """Render a subject/expected value the way assertion messages show it."""
    return repr(value)


def format_timeout_message(message: str) -> str:
    """Prefix a retry error message exactly once."""
    if message.startswith(TIMEOUT_PREFIX):
        return message
    return f"{TIMEOUT_PREFIX}{message}"


# ---------------------------------------------------------------------------
# Code Frame
# ---------------------------------------------------------------------------
def format_code_frame(code_frame: "CodeFrame") -> str:
    """
    Render a CodeFrame as a gutter-numbered excerpt with a caret line.

    The caret line repeats the failing line's leading tabs so the caret
    lines up in terminals that expand tabs; every other character before the
    marker becomes a space. Empty frames render as an empty string.
    """
    if not code_frame.lines:
        return ""

    width = max(len(str(number)) for number, _ in code_frame.lines)
    out: list[str] = []

    for number, text in code_frame.lines:
        is_marker = number == code_frame.marker_line
        prefix = ">" if is_marker else " "
        out.append(f"{prefix} {str(number).rjust(width)}{GUTTER}{text}".rstrip())

        if is_marker and code_frame.marker_column:
            lead = "".join(
                ch if ch == "\t" else " "
                for ch in text[:code_frame.marker_column - 1]
            )
            out.append(f"  {' ' * width}{GUTTER}{lead}{CARET}")

    return "\n".join(out)


# ---------------------------------------------------------------------------
# Failure
# ---------------------------------------------------------------------------
def _stack_body(raw_stack: str) -> str:
    """Drop the header line(s) of a raw stack, keeping only frame lines."""
    lines = raw_stack.splitlines()
    body = [ln for ln in lines if ln.startswith((" ", "\t")) or "@" in ln]
    return "\n".join(body) if body else raw_stack.strip()


def format_failure(record: "FailureRecord") -> str:
    """Full failure text: header, stack, code frame."""
    parts = [f"{record.kind}: {record.message}"]

    if record.raw_stack.strip():
        parts.append(_stack_body(record.raw_stack))

    if record.anchor_frame is not None:
        parts.append(f"at {record.anchor_frame.location} ({record.anchor_frame.origin})")

    frame_text = format_code_frame(record.code_frame)
    if frame_text:
        parts.append(frame_text)

    return "\n\n".join(parts)
