"""Tests for sentence boundary lookup."""

from chatstream.services.tts.delimiters import (
    find_first_delimiter,
    find_last_delimiter,
)


def test_returns_minus_one_without_terminator() -> None:
    assert find_last_delimiter("no terminator here") == -1
    assert find_last_delimiter("") == -1


def test_picks_rightmost_terminator() -> None:
    text = "Hello world. How are you? Fine"
    assert find_last_delimiter(text) == text.index("?")


def test_full_width_punctuation() -> None:
    text = "你好。今天怎么样？很好"
    assert find_last_delimiter(text) == text.index("？")


def test_newline_is_a_terminator() -> None:
    text = "first line\nsecond"
    assert find_last_delimiter(text) == 10


def test_custom_delimiters() -> None:
    assert find_last_delimiter("a; b; c", delimiters=(";",)) == 4
    assert find_last_delimiter("a. b", delimiters=(";",)) == -1


def test_multi_character_delimiter_ends_at_last_char() -> None:
    assert find_last_delimiter("one. two", delimiters=(". ",)) == 4


def test_first_delimiter_picks_leftmost() -> None:
    text = ". D. E"
    assert find_first_delimiter(text) == 0
    assert find_first_delimiter("one two") == -1
    assert find_first_delimiter("a?b.", delimiters=(".", "?")) == 1
