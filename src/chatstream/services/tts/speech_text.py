"""Markdown cleanup applied to segments right before they are spoken."""

from __future__ import annotations

import re

_SUBSTITUTIONS: tuple[tuple[re.Pattern[str], str], ...] = (
    (re.compile(r"`[^`]*`"), ""),
    (re.compile(r"<[^>]*>"), ""),
    # Images go before links so the leading "!" is not left behind.
    (re.compile(r"!\[([^\]]*)\]\([^)]+\)"), ""),
    (re.compile(r"\[([^\]]+)\]\([^)]+\)"), r"\1"),
    (re.compile(r"^#+\s+", re.MULTILINE), ""),
    (re.compile(r"(\*\*|__)(.*?)\1"), r"\2"),
    (re.compile(r"(\*|_)(.*?)\1"), r"\2"),
    (re.compile(r"^>\s+", re.MULTILINE), ""),
    (re.compile(r"^[*\-]\s+", re.MULTILINE), ""),
    (re.compile(r"^\d+\.\s+", re.MULTILINE), ""),
    (re.compile(r"\n+"), ". "),
    (re.compile(r"\s+"), " "),
)


def clean_for_speech(text: str) -> str:
    """Strip markdown decoration so a synthesizer reads only the prose."""

    if not text.strip():
        return ""
    cleaned = text
    for pattern, replacement in _SUBSTITUTIONS:
        cleaned = pattern.sub(replacement, cleaned)
    return cleaned.strip()


__all__ = ["clean_for_speech"]
