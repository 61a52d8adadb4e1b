"""Tests for console log window extraction."""

from agentic_reporter.log_window import (
    COMPACTION_FACTOR,
    TRUNCATION_MARKER,
    LineWindow,
    extract,
    extract_lines,
    render_window,
)


class TestExtract:
    """Tests for extract()."""

    def test_filters_blank_lines(self):
        assert extract(["line1\n", "\n", "line2\n", "   \n"], [], 10, 100) == "line1\nline2"

    def test_respects_max_lines(self):
        assert extract(["1\n", "2\n", "3\n", "4\n", "5\n"], [], 3, 100) == "3\n4\n5"

    def test_respects_max_chars(self):
        assert extract(["12345\n", "67890\n"], [], 10, 8) == f"12345\n67\n{TRUNCATION_MARKER}"

    def test_unbounded_lines(self):
        assert extract(["1\n", "2\n", "3\n"], [], None, 100) == "1\n2\n3"

    def test_unbounded_lines_still_capped_by_chars(self):
        output = extract(["x" * 50 + "\n"] * 10, [], None, 20)
        assert output == "x" * 20 + "\n" + TRUNCATION_MARKER

    def test_zero_lines_is_empty(self):
        assert extract(["a\n", "b\n"], ["c\n"], 0, 100) == ""
        assert extract([], [], 0, None) == ""

    def test_stdout_before_stderr(self):
        assert extract(["out1\n"], ["err1\n"], 10, 100) == "out1\nerr1"

    def test_byte_chunks(self):
        assert extract([b"buf1\n"], [b"buf2\n"], 10, 100) == "buf1\nbuf2"

    def test_chunks_without_trailing_newline(self):
        assert extract(["a\nb\n"], ["c"], 10, 100) == "a\nb\nc"

    def test_window_spans_streams(self):
        assert extract(["A\n", "B\n"], ["C\n", "D\n"], 3, 100) == "B\nC\nD"

    def test_lines_split_across_chunks(self):
        assert extract(["hel", "lo\nwor", "ld\n"], [], 10, 100) == "hello\nworld"

    def test_chunking_does_not_change_result(self):
        text = "first line\nsecond\n\nthird one\nfourth\n"
        whole = extract([text], [], 3, None)
        for size in (1, 2, 3, 7):
            chunks = [text[i:i + size] for i in range(0, len(text), size)]
            assert extract(chunks, [], 3, None) == whole

    def test_multibyte_character_split_across_byte_chunks(self):
        data = "héllo wörld\n".encode("utf-8")
        chunks = [data[i:i + 1] for i in range(len(data))]
        assert extract(chunks, [], 10, None) == "héllo wörld"

    def test_incomplete_bytes_before_text_chunk(self):
        assert extract([b"ab\xc3", "cd\n"], [], None, None) == "ab\ufffdcd"

    def test_mixed_byte_and_text_chunks(self):
        data = "é\n".encode("utf-8")
        assert extract([b"x", data[:1], data[1:], "y\n"], [], None, None) == "xé\ny"

    def test_partial_line_does_not_join_streams(self):
        assert extract(["out"], ["err"], 10, None) == "out\nerr"

    def test_crlf_line_endings(self):
        assert extract(["a\r\nb\r\n"], [], 10, None) == "a\nb"

    def test_stderr_order_preserved(self):
        output = extract([], ["e1\n", "e2\n", "e3\n"], 10, None)
        assert output.split("\n") == ["e1", "e2", "e3"]


class TestExtractLines:
    """Tests for the full view and its bounded derivative."""

    def test_bounded_view_from_full_view(self):
        stdout = [f"line {i}\n" for i in range(20)]
        full = extract_lines(stdout, [], None)
        assert len(full) == 20
        assert render_window(full, 5, 500) == extract(stdout, [], 5, 500)

    def test_predicate(self):
        lines = extract_lines(["ok\n", "warning: x\n"], ["fine\n"], None,
                              predicate=lambda line: "warning" in line)
        assert lines == ["warning: x"]


class TestLineWindow:
    """Tests for the compacting line buffer."""

    def test_keeps_last_lines(self):
        window = LineWindow(3)
        for i in range(100):
            window.push(str(i))
        assert window.lines() == ["97", "98", "99"]

    def test_buffer_stays_bounded(self):
        window = LineWindow(4)
        for i in range(1000):
            window.push(str(i))
            assert len(window._lines) < COMPACTION_FACTOR * 4

    def test_unbounded(self):
        window = LineWindow(None)
        for i in range(10):
            window.push(str(i))
        assert len(window.lines()) == 10

    def test_zero_capacity(self):
        window = LineWindow(0)
        window.push("x")
        assert window.lines() == []
