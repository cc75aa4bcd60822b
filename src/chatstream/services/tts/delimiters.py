"""Sentence boundary lookup for the narration buffer."""

from __future__ import annotations

from typing import Sequence

# Full-width and half-width sentence punctuation plus newline.
DEFAULT_DELIMITERS: tuple[str, ...] = ("。", "！", "？", "\n", ".", "?", "!")


def find_last_delimiter(
    text: str, delimiters: Sequence[str] = DEFAULT_DELIMITERS
) -> int:
    """Return the index of the rightmost terminator in ``text`` or ``-1``.

    Picking the rightmost boundary lets a delta carrying several sentences
    flush as one segment instead of fragmenting into many short utterances.
    """

    last = -1
    for delimiter in delimiters:
        index = text.rfind(delimiter)
        if index == -1:
            continue
        # Multi-character delimiters end at their final character.
        end = index + len(delimiter) - 1
        if end > last:
            last = end
    return last


def find_first_delimiter(
    text: str, delimiters: Sequence[str] = DEFAULT_DELIMITERS
) -> int:
    """Return the index where the leftmost terminator in ``text`` ends, or ``-1``."""

    first = -1
    for delimiter in delimiters:
        index = text.find(delimiter)
        if index == -1:
            continue
        end = index + len(delimiter) - 1
        if first == -1 or end < first:
            first = end
    return first


__all__ = ["DEFAULT_DELIMITERS", "find_first_delimiter", "find_last_delimiter"]
