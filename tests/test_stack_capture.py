"""
Unit Tests — Stack Capture
==========================
Frames built from live Python frames and tracebacks.
"""
from failtrace.parser.stack_capture import capture_call_site, frames_from_exception, stack_from_exception
from failtrace.parser.stack_parser import parse_stack


def raise_here():
    raise ValueError("boom")


def capture_here():
    return capture_call_site()


def test_exception_frames_are_innermost_first():
    try:
        raise_here()
    except ValueError as err:
        frames = frames_from_exception(err)

    assert frames[0].function_name == "raise_here"
    assert frames[0].line == raise_here.__code__.co_firstlineno + 1
    assert frames[0].column == 5
    assert frames[1].function_name == "test_exception_frames_are_innermost_first"


def test_stack_from_exception_has_header_and_parses():
    try:
        raise_here()
    except ValueError as err:
        stack = stack_from_exception(err)

    assert stack.splitlines()[0] == "ValueError: boom"
    frames = parse_stack(stack)
    assert frames[0].source_file.endswith("tests/test_stack_capture.py")


def test_unicode_before_expression_counts_characters():
    try:
        label = "é"; {}[label]  # noqa: E702
    except KeyError as err:
        frame = frames_from_exception(err)[0]

    assert frame.column == len('        label = "é"; ') + 1


def test_hidden_frames_are_tagged_internal():
    def helper():
        __tracebackhide__ = True
        return capture_call_site()

    frames = parse_stack(helper())

    assert frames[0].internal
    assert frames[0].function_name.endswith("helper")
    assert not frames[1].internal


def test_capture_call_site_limit_and_header():
    stack = capture_call_site(header="Error: here", limit=1)
    lines = stack.splitlines()

    assert lines[0] == "Error: here"
    assert len(lines) == 2
    assert "test_capture_call_site_limit_and_header" in lines[1]


class Recorder:
    """Captures its caller's stack on every call, the way commands do."""

    def __init__(self):
        self.stacks = []

    def step(self, *args):
        self.stacks.append(capture_call_site(skip=1))
        return self


def test_one_line_chain_locates_each_method_name():
    recorder = Recorder()
    recorder.step().step("x")
    line = test_one_line_chain_locates_each_method_name.__code__.co_firstlineno + 2

    first, second = (parse_stack(stack)[0] for stack in recorder.stacks)

    assert (first.line, first.column) == (line, len("    recorder.") + 1)
    assert (second.line, second.column) == (line, len("    recorder.step().") + 1)


def test_chain_continued_on_next_line_is_located_at_method_name():
    recorder = Recorder()
    (
        recorder
        .step()
    )
    line = test_chain_continued_on_next_line_is_located_at_method_name.__code__.co_firstlineno + 4

    frame = parse_stack(recorder.stacks[0])[0]

    assert (frame.line, frame.column) == (line, len("        .") + 1)


def test_plain_function_call_keeps_expression_start():
    stack = capture_here()
    frame = parse_stack(stack)[1]

    assert frame.function_name == "test_plain_function_call_keeps_expression_start"
    assert frame.column == len("    stack = ") + 1
