"""
Stack Capture
=============
Builds raw stack strings from live Python frames and tracebacks.

Two sources:
    capture_call_site()        — the current call stack, taken when a command
                                 is enqueued (its user-facing call site)
    stack_from_exception(err)  — the traceback of an exception raised while a
                                 resolver or callback ran

Column convention:
    1-based character offset of the start of the expression the interpreter
    reports for the frame's current instruction (PEP 657 positions). A method
    call is reported at its method name, so each command of a one-line chain
    (``cy.get("div").find("h1")``) gets its own column. CPython reports UTF-8
    byte offsets; they are converted to characters using the source line. A
    tab counts as one column. Frames without position info
    (e.g. -X no_debug_ranges) get column 1.

Internal frames:
    A frame whose locals or globals define a truthy ``__tracebackhide__``
    (pytest's convention) is tagged internal at capture time. Engine modules
    set it at module level, so tagging never depends on where they live.
"""
import ast
import functools
import itertools
import linecache
import sys
from types import CodeType, FrameType, TracebackType
from typing import Iterator, Optional

from failtrace.core.config import STACK_TRACE_LIMIT
from failtrace.models.stack_frame import StackFrame
from failtrace.parser.stack_parser import format_stack
from failtrace.utils.path_utils import normalize_path

__tracebackhide__ = True


# ---------------------------------------------------------------------------
# Position Helpers
# ---------------------------------------------------------------------------
Positions = tuple[Optional[int], Optional[int], Optional[int], Optional[int]]

_NO_POSITIONS: Positions = (None, None, None, None)


def _code_positions(code: CodeType, lasti: int) -> Positions:
    """(lineno, end_lineno, col_offset, end_col_offset) for the instruction at ``lasti``."""
    if lasti < 0:
        return _NO_POSITIONS
    positions = next(itertools.islice(code.co_positions(), lasti // 2, None), None)
    return positions or _NO_POSITIONS


@functools.lru_cache(maxsize=64)
def _method_calls(filename: str, source: str) -> dict[tuple[int, int], list[ast.Call]]:
    """Calls whose callee is an attribute, keyed by their (end_lineno, end_col_offset)."""
    try:
        tree = ast.parse(source, filename=filename)
    except (SyntaxError, ValueError):
        return {}
    calls: dict[tuple[int, int], list[ast.Call]] = {}
    for node in ast.walk(tree):
        if isinstance(node, ast.Call) and isinstance(node.func, ast.Attribute):
            calls.setdefault((node.end_lineno, node.end_col_offset), []).append(node)
    return calls


def _method_name_position(filename: str, positions: Positions) -> Optional[tuple[int, int]]:
    """
    (lineno, byte col_offset) of the method name when ``positions`` cover a
    method call.

    CPython reports a call by the span of the whole call expression, which in
    ``cy.get("div").find("h1")`` starts at ``cy`` for both calls. Pointing at
    the attribute name tells the calls of one chain apart. Multi-line calls
    are already reported from the attribute line; both forms are matched.
    """
    lineno, end_lineno, col_offset, end_col_offset = positions
    if None in positions:
        return None
    source = "".join(linecache.getlines(filename))
    if not source:
        return None
    for call in _method_calls(filename, source).get((end_lineno, end_col_offset), []):
        func = call.func
        name_col = func.end_col_offset - len(func.attr.encode("utf-8"))
        if (lineno, col_offset) in ((call.lineno, call.col_offset), (func.end_lineno, name_col)):
            return func.end_lineno, name_col
    return None


def _char_column(filename: str, lineno: int, byte_offset: Optional[int]) -> int:
    """Convert a UTF-8 byte offset on a source line into a 1-based column."""
    if byte_offset is None:
        return 1
    text = linecache.getline(filename, lineno)
    if not text:
        return byte_offset + 1
    prefix = text.encode("utf-8")[:byte_offset]
    return len(prefix.decode("utf-8", errors="replace")) + 1


def _is_hidden(frame: FrameType) -> bool:
    for namespace in (frame.f_locals, frame.f_globals):
        if namespace.get("__tracebackhide__", False):
            return True
    return False


def _to_stack_frame(frame: FrameType, lasti: int, fallback_lineno: Optional[int]) -> Optional[StackFrame]:
    code = frame.f_code
    positions = _code_positions(code, lasti)
    lineno, byte_col = _method_name_position(code.co_filename, positions) or (positions[0], positions[2])
    lineno = lineno or fallback_lineno
    if not lineno:
        return None
    return StackFrame(
        source_file=normalize_path(code.co_filename),
        line=lineno,
        column=_char_column(code.co_filename, lineno, byte_col),
        function_name=getattr(code, "co_qualname", code.co_name),
        internal=_is_hidden(frame),
    )


# ---------------------------------------------------------------------------
# Frame Walkers
# ---------------------------------------------------------------------------
def _walk_traceback(tb: Optional[TracebackType]) -> Iterator[StackFrame]:
    """Outermost-first frames from a traceback chain."""
    while tb is not None:
        frame = _to_stack_frame(tb.tb_frame, tb.tb_lasti, tb.tb_lineno)
        if frame is not None:
            yield frame
        tb = tb.tb_next


def _walk_call_stack(start: Optional[FrameType]) -> Iterator[StackFrame]:
    """Innermost-first frames from a live frame upwards."""
    frame = start
    while frame is not None:
        converted = _to_stack_frame(frame, frame.f_lasti, frame.f_lineno)
        if converted is not None:
            yield converted
        frame = frame.f_back


# ---------------------------------------------------------------------------
# Public API
# ---------------------------------------------------------------------------
def frames_from_exception(err: BaseException, limit: int = STACK_TRACE_LIMIT) -> list[StackFrame]:
    """Frames of an exception's traceback, innermost (raise site) first."""
    frames = list(_walk_traceback(err.__traceback__))
    frames.reverse()
    return frames[:limit]


def stack_from_exception(err: BaseException, limit: int = STACK_TRACE_LIMIT) -> str:
    """Raw stack string for an exception: header plus V8-dialect frames."""
    header = f"{type(err).__name__}: {err}"
    return format_stack(frames_from_exception(err, limit), header=header)


def capture_call_site(
    header: str = "Error",
    skip: int = 0,
    limit: int = STACK_TRACE_LIMIT,
) -> str:
    """
    Raw stack string of the caller's current stack.

    ``skip`` drops that many frames above this function. Engine frames are
    kept (tagged internal) so the classifier can exclude them itself.
    """
    start = sys._getframe(1 + skip)
    frames = list(itertools.islice(_walk_call_stack(start), limit))
    return format_stack(frames, header=header)
