import io

import pytest

from tinyunix.ulib import atoi, gets, strcmp


@pytest.mark.parametrize(
    "text, expected",
    [("123", 123), ("123abc", 123), ("abc", 0), ("", 0), ("-5", 0), (" 12", 0), ("007", 7)],
)
def test_atoi(text, expected):
    assert atoi(text) == expected


def test_strcmp_equal():
    assert strcmp("hello", "hello") == 0
    assert strcmp("", "") == 0


def test_strcmp_order():
    assert strcmp("a", "b") < 0
    assert strcmp("b", "a") > 0
    assert strcmp("abc", "ab") == ord("c")
    assert strcmp("ab", "abc") == -ord("c")


def test_strcmp_stops_at_nul():
    assert strcmp("ab\0x", "ab\0y") == 0


def test_gets_reads_lines():
    stream = io.StringIO("hello\nworld")
    assert gets(stream, 100) == "hello\n"
    assert gets(stream, 100) == "world"
    assert gets(stream, 100) == ""


def test_gets_respects_max():
    stream = io.StringIO("abcdef")
    assert gets(stream, 4) == "abc"
    assert gets(stream, 4) == "def"


def test_gets_stops_at_carriage_return():
    assert gets(io.StringIO("ab\rcd"), 100) == "ab\r"


def test_gets_with_tiny_max():
    assert gets(io.StringIO("abc"), 1) == ""