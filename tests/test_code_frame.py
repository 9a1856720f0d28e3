"""
Unit Tests — Code Frame Extractor
=================================
"""
from failtrace.models.stack_frame import StackFrame
from failtrace.services.code_frame import CodeFrameExtractor
from failtrace.services.source_reader import FileSourceReader, InMemorySourceReader

SOURCE = "def body(cy):\n    cy.get('h1')\n    cy.wrap({})\n\tx = 1\n"


def extractor(context_lines=1):
    return CodeFrameExtractor(InMemorySourceReader({"/p/a.py": SOURCE}), context_lines=context_lines)


def at(line, column, path="/p/a.py"):
    return StackFrame(source_file=path, line=line, column=column)


def test_window_around_failing_line():
    frame = extractor().extract(at(2, 5))
    assert frame.lines == [(1, "def body(cy):"), (2, "    cy.get('h1')"), (3, "    cy.wrap({})")]
    assert frame.marker_line == 2
    assert frame.marker_column == 5


def test_window_is_clipped_at_file_start():
    frame = extractor(context_lines=2).extract(at(1, 1))
    assert [n for n, _ in frame.lines] == [1, 2, 3]


def test_window_is_clipped_at_file_end():
    frame = extractor(context_lines=3).extract(at(4, 1))
    assert [n for n, _ in frame.lines] == [1, 2, 3, 4]


def test_zero_context_shows_only_failing_line():
    frame = extractor(context_lines=0).extract(at(3, 5))
    assert frame.lines == [(3, "    cy.wrap({})")]


def test_column_past_line_end_is_clamped():
    frame = extractor().extract(at(2, 200))
    assert frame.marker_column == len("    cy.get('h1')")


def test_line_outside_file_gives_empty_frame():
    assert extractor().extract(at(40, 1)).is_empty


def test_unknown_file_gives_empty_frame():
    assert extractor().extract(at(1, 1, path="/p/missing.py")).is_empty


def test_no_anchor_gives_empty_frame():
    assert extractor().extract(None).is_empty


def test_file_reader_reads_fresh_each_time(tmp_path):
    path = tmp_path / "spec.py"
    path.write_text("a = 1\n", encoding="utf-8")
    ex = CodeFrameExtractor(FileSourceReader(), context_lines=0)
    assert ex.extract(at(1, 1, str(path))).lines == [(1, "a = 1")]

    path.write_text("b = 2\n", encoding="utf-8")
    assert ex.extract(at(1, 1, str(path))).lines == [(1, "b = 2")]


def test_file_reader_missing_file_returns_none(tmp_path):
    assert FileSourceReader().read(str(tmp_path / "nope.py")) is None
    assert FileSourceReader().read("<string>") is None


def test_flatten_ignores_whitespace():
    frame = extractor().extract(at(2, 5))
    assert "cy.get('h1')" in frame.flatten()
    assert " " not in frame.flatten()


def test_form_feed_does_not_split_a_line():
    source = "import os\n\x0c\ndef body(cy):\n    x = 1\x0c  # page break\n    cy.get('h1')\n"
    ex = CodeFrameExtractor(InMemorySourceReader({"/p/ff.py": source}), context_lines=0)

    assert ex.extract(at(5, 5, "/p/ff.py")).lines == [(5, "    cy.get('h1')")]
    assert ex.extract(at(4, 5, "/p/ff.py")).lines == [(4, "    x = 1\x0c  # page break")]


def test_windows_line_endings():
    ex = CodeFrameExtractor(InMemorySourceReader({"/p/crlf.py": "a = 1\r\nb = 2\r\n"}), context_lines=0)
    assert ex.extract(at(2, 1, "/p/crlf.py")).lines == [(2, "b = 2")]
    assert ex.extract(at(3, 1, "/p/crlf.py")).is_empty
