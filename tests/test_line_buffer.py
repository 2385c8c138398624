"""Tests for chunk to line framing."""

from lse.line_buffer import LineBuffer


def test_complete_lines():
    buf = LineBuffer()
    assert buf.feed(b"one\ntwo\n") == ["one", "two"]
    assert buf.pending == ""


def test_line_split_across_chunks():
    buf = LineBuffer()
    assert buf.feed(b"\xe2\x9c\x93 [0] launch") == []
    assert buf.feed(b"App (2395ms)\nnext") == ["✓ [0] launchApp (2395ms)"]
    assert buf.pending == "next"


def test_multibyte_glyph_split_across_chunks():
    data = "✓ [1] tap (5ms)\n".encode("utf-8")
    buf = LineBuffer()
    # Split inside the three-byte check mark
    assert buf.feed(data[:1]) == []
    assert buf.feed(data[1:2]) == []
    assert buf.feed(data[2:]) == ["✓ [1] tap (5ms)"]


def test_crlf_split_between_chunks():
    buf = LineBuffer()
    assert buf.feed(b"line one\r") == []
    assert buf.feed(b"\nline two\r\n") == ["line one", "line two"]


def test_bare_cr_ends_line():
    buf = LineBuffer()
    assert buf.feed(b"\xe2\xa0\x8b [0] a...\r\xe2\xa0\x99 [0] a...\rdone\n") == [
        "⠋ [0] a...",
        "⠙ [0] a...",
        "done",
    ]


def test_str_input():
    buf = LineBuffer()
    assert buf.feed("a\nb") == ["a"]
    assert buf.flush() == ["b"]


def test_flush_returns_partial_line():
    buf = LineBuffer()
    buf.feed(b"no newline")
    assert buf.flush() == ["no newline"]
    assert buf.flush() == []


def test_flush_pending_cr():
    buf = LineBuffer()
    buf.feed(b"last\r")
    assert buf.flush() == ["last"]


def test_invalid_utf8_replaced():
    buf = LineBuffer()
    assert buf.feed(b"bad \xff byte\n") == ["bad \ufffd byte"]


def test_long_line_force_broken():
    buf = LineBuffer(max_line_chars=10)
    lines = buf.feed(b"x" * 25)
    assert lines == ["x" * 10, "x" * 10]
    assert buf.pending == "x" * 5


def test_clear_discards_partial():
    buf = LineBuffer()
    buf.feed(b"partial")
    buf.clear()
    assert buf.pending == ""
    assert buf.flush() == []


def test_long_complete_line_cut_like_split_line():
    data = b"x" * 25 + b"\n"
    whole = LineBuffer(max_line_chars=10).feed(data)
    assert whole == ["x" * 10, "x" * 10, "x" * 5]

    for split in range(1, len(data)):
        buf = LineBuffer(max_line_chars=10)
        assert buf.feed(data[:split]) + buf.feed(data[split:]) == whole


def test_long_unterminated_line_cut_like_terminated_one():
    buf = LineBuffer(max_line_chars=4)
    assert buf.feed(b"abcdefghij") == ["abcd", "efgh"]
    assert buf.flush() == ["ij"]
    assert LineBuffer(max_line_chars=4).feed(b"abcdefghij\n") == ["abcd", "efgh", "ij"]
