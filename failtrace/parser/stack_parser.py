"""
Stack Parser
============
Converts raw, engine-native stack trace strings into ordered StackFrame lists.

Pipeline:
    1. Split the stack into lines
    2. Match each line against the known frame dialects
    3. Extract file path, line and column (last two numeric groups)
    4. Normalise file paths (forward slashes, no "." / ".." segments)
    5. Order frames innermost (throw site) first

Supported dialects:
    V8 / Node       at fn (path:line:col)      at path:line:col
    Gecko / WebKit  fn@path:line:col            @path:line:col
    Python          File "path", line N, in fn   (no column: reported as 1)

Contract:
    - PURE: same raw stack → equal StackFrame lists, always.
    - Tolerant: unrecognised lines are skipped, never fatal.
    - UnparsableStackError only when zero frames were extracted.
"""
import itertools
import re
import logging
from typing import Iterable, Optional

from failtrace.core.constants import INTERNAL_MARKER
from failtrace.errors import UnparsableStackError
from failtrace.models.stack_frame import StackFrame
from failtrace.utils.path_utils import normalize_path

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Frame Line Patterns
# ---------------------------------------------------------------------------
# V8: "    at fn (path:line:col)"; fn may contain spaces ("async x", "new Foo").
# The location runs to the last ")" so paths like "Program Files (x86)" survive.
_V8_NAMED = re.compile(r'^\s*at\s+(?P<fn>[^()]*?)\s*\((?P<loc>.*)\)\s*$')

# V8: "    at path:line:col"; the path may contain spaces and parentheses
_V8_BARE = re.compile(r'^\s*at\s+(?:async\s+)?(?P<loc>[^\s(].*?)\s*$')

# Gecko / WebKit: "fn@path:line:col"
_GECKO = re.compile(r'^\s*(?P<fn>[^@\s]*)@(?P<loc>\S.*?)\s*$')

# Python traceback: File "path", line N, in fn
_PYTHON = re.compile(r'^\s*File\s+"(?P<file>[^"]+)",\s+line\s+(?P<line>\d+)(?:,\s+in\s+(?P<fn>.+?))?\s*$')

# Location: last two colon-delimited numeric groups (drive letters survive)
_LOC_LINE_COL = re.compile(r'^(?P<file>.+):(?P<line>\d+):(?P<col>\d+)$')
_LOC_LINE_ONLY = re.compile(r'^(?P<file>.+):(?P<line>\d+)$')

_ANONYMOUS_NAMES = {"", "<anonymous>", "anonymous"}


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------
def _split_location(loc: str) -> Optional[tuple[str, int, int]]:
    """Split 'path:line:col' (or 'path:line') into its parts."""
    loc = loc.strip()
    m = _LOC_LINE_COL.match(loc)
    if m:
        return m.group("file"), int(m.group("line")), int(m.group("col"))
    m = _LOC_LINE_ONLY.match(loc)
    if m:
        return m.group("file"), int(m.group("line")), 1
    return None


def _clean_function_name(raw_name: Optional[str]) -> tuple[Optional[str], bool]:
    """Strip the internal marker; return (function_name, internal)."""
    name = (raw_name or "").strip()
    internal = False
    if name.endswith(INTERNAL_MARKER):
        internal = True
        name = name[:-len(INTERNAL_MARKER)].strip()
    if name in _ANONYMOUS_NAMES:
        return None, internal
    return name, internal


def _build_frame(
    raw_file: str,
    line: int,
    column: int,
    raw_name: Optional[str],
) -> Optional[StackFrame]:
    if line < 1 or not raw_file.strip():
        return None
    function_name, internal = _clean_function_name(raw_name)
    return StackFrame(
        source_file=normalize_path(raw_file),
        line=line,
        column=max(column, 1),
        function_name=function_name,
        internal=internal,
    )


def _parse_line(text: str) -> tuple[Optional[str], Optional[StackFrame]]:
    """Return (dialect, frame) for a single line, or (None, None)."""
    m = _PYTHON.match(text)
    if m:
        return "python", _build_frame(m.group("file"), int(m.group("line")), 1, m.group("fn"))

    m = _V8_NAMED.match(text)
    if m:
        parts = _split_location(m.group("loc"))
        if parts is None:
            # "at fn (native)" and friends carry no location
            return "v8", None
        return "v8", _build_frame(parts[0], parts[1], parts[2], m.group("fn"))

    m = _V8_BARE.match(text)
    if m:
        parts = _split_location(m.group("loc"))
        if parts is None:
            return "v8", None
        return "v8", _build_frame(parts[0], parts[1], parts[2], None)

    m = _GECKO.match(text)
    if m:
        parts = _split_location(m.group("loc"))
        if parts is None:
            return None, None
        return "gecko", _build_frame(parts[0], parts[1], parts[2], m.group("fn"))

    return None, None


# ---------------------------------------------------------------------------
# Public API
# ---------------------------------------------------------------------------
def parse_stack(raw_stack: str) -> list[StackFrame]:
    """
    Parse a raw stack trace into StackFrames, innermost first.

    Parameters
    ----------
    raw_stack : str
        Engine-native stack string, one frame per line. Header lines
        ("TypeError: ...") and unrecognised lines are ignored.

    Returns
    -------
    list[StackFrame]
        Ordered frames, throw site first.

    Raises
    ------
    UnparsableStackError
        If no frame at all could be extracted.

    Notes
    -----
    The dialect of the last frame line is the stack's own dialect. Frame-like
    lines of another dialect before its first frame belong to the header
    (an error message quoting a traceback, say) and are dropped. Ordering is
    decided per run of same-dialect lines.
    """
    parsed: list[tuple[str, StackFrame]] = []
    skipped = 0

    for text in (raw_stack or "").splitlines():
        if not text.strip():
            continue
        dialect, frame = _parse_line(text)
        if frame is None:
            if dialect is not None:
                skipped += 1
            continue
        parsed.append((dialect, frame))

    if not parsed:
        raise UnparsableStackError(raw_stack or "")

    body_dialect = parsed[-1][0]
    body_start = next(i for i, (dialect, _) in enumerate(parsed) if dialect == body_dialect)
    if body_start:
        logger.debug("Dropped %d frame-like header line(s) before the %s frames", body_start, body_dialect)

    frames: list[StackFrame] = []
    for dialect, run in itertools.groupby(parsed[body_start:], key=lambda item: item[0]):
        block = [frame for _, frame in run]
        # Python tracebacks print the most recent call last
        if dialect == "python":
            block.reverse()
        frames.extend(block)

    if skipped:
        logger.debug("Skipped %d frame line(s) without a location", skipped)
    return frames


def format_stack(frames: Iterable[StackFrame], header: str = "") -> str:
    """
    Render frames in the V8 dialect understood by parse_stack.

    Internal frames keep their tag as an "[internal]" suffix on the function
    name so it survives a round trip through the string form.
    """
    out: list[str] = [header] if header else []
    for frame in frames:
        name = frame.function_name or ""
        if frame.internal:
            name = f"{name} {INTERNAL_MARKER}".strip()
        loc = f"{frame.source_file}:{frame.line}:{frame.column}"
        out.append(f"    at {name} ({loc})" if name else f"    at {loc}")
    return "\n".join(out)
