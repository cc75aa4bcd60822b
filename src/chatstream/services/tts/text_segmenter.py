"""
Speech Segmenter for Streaming Narration.

This module turns cumulative text snapshots from a streaming chat response
into sentence-level segments ready for speech synthesis. Fenced code blocks
are filtered out before anything reaches the narration buffer.

Architecture:
    snapshot → SpeechSegmenter.on_delta() → [segments] → speech sink

Each snapshot is the full text received so far, not a delta. The segmenter
keeps a read offset into that text, so delivering the same snapshot twice is
harmless.

Usage:
    segmenter = SpeechSegmenter()

    # During streaming:
    for snapshot in stream:
        for segment in segmenter.on_delta(snapshot.text):
            speech_sink.speak(segment)

    # After streaming completes (success or error, not cancel):
    final = segmenter.on_session_end()
    if final:
        speech_sink.speak(final)
"""

from __future__ import annotations

import logging
from typing import Optional, Sequence

from .delimiters import (
    DEFAULT_DELIMITERS,
    find_first_delimiter,
    find_last_delimiter,
)
from .fence import CodeFenceTracker

logger = logging.getLogger(__name__)


class SpeechSegmenter:
    """
    Stateful segmenter that splits streamed reply text into narration units.

    A segment is flushed whenever the narration buffer contains a sentence
    terminator. The flush always cuts at the rightmost terminator, so a
    snapshot that brings several sentences at once yields a single segment
    while character-by-character delivery yields one segment per sentence.

    Attributes:
        delimiters: Terminator strings that end a segment
    """

    def __init__(self, delimiters: Optional[Sequence[str]] = None):
        """
        Initialize the segmenter.

        Args:
            delimiters: Sentence terminators. Defaults to full-width and
                        half-width sentence punctuation plus newline.
        """
        self.delimiters = tuple(delimiters or DEFAULT_DELIMITERS)
        self._fence = CodeFenceTracker()
        self._read_offset = 0
        self._buffer = ""
        # Set while the buffer continues a sentence that began during skip().
        self._muted_tail = False
        self._total_emitted = 0

    def _consume(self, full_text: str) -> bool:
        """Advance the cursor and run the new suffix through the fence filter."""
        delta = full_text[self._read_offset:]
        if not delta:
            return False
        self._read_offset = len(full_text)
        self._buffer += self._fence.feed(delta)
        return True

    def on_delta(self, full_text: str) -> list[str]:
        """
        Consume a cumulative snapshot and return any completed segments.

        Args:
            full_text: Everything the backend has produced so far

        Returns:
            Zero or one whitespace-trimmed segment
        """
        if not self._consume(full_text):
            return []

        if self._muted_tail:
            first = find_first_delimiter(self._buffer, self.delimiters)
            if first == -1:
                return []
            self._buffer = self._buffer[first + 1 :]
            self._muted_tail = False

        boundary = find_last_delimiter(self._buffer, self.delimiters)
        if boundary == -1:
            return []

        segment = self._buffer[: boundary + 1].strip()
        self._buffer = self._buffer[boundary + 1 :]
        if not segment:
            return []

        self._total_emitted += len(segment)
        return [segment]

    def skip(self, full_text: str) -> None:
        """
        Consume a snapshot without narrating it.

        Used while narration is off. Skipped text still passes through the
        fence filter so the fence state matches the full reply. The tail of an
        unfinished sentence is remembered so that, once narration resumes,
        speech starts at the next sentence rather than mid-sentence.
        """
        self._consume(full_text)
        boundary = find_last_delimiter(self._buffer, self.delimiters)
        if boundary != -1:
            self._muted_tail = bool(self._buffer[boundary + 1 :].strip())
        elif self._buffer.strip():
            self._muted_tail = True
        self._buffer = ""

    def on_session_end(self) -> Optional[str]:
        """
        Flush the remainder of the buffer and clear all state.

        The remainder is returned even when it does not end on a terminator,
        unless it only finishes a sentence that started while skipping.

        Returns:
            Remaining narratable text if any, None otherwise
        """
        self._buffer += self._fence.flush()
        segment = "" if self._muted_tail else self._buffer.strip()
        self._buffer = ""
        self.reset()
        if not segment:
            return None
        self._total_emitted += len(segment)
        return segment

    def reset(self) -> None:
        """Drop buffered text and rewind the cursor without emitting anything."""
        if self._buffer.strip():
            logger.debug("Discarding %d buffered narration chars", len(self._buffer))
        self._buffer = ""
        self._read_offset = 0
        self._muted_tail = False
        self._fence.reset()

    @property
    def read_offset(self) -> int:
        """Length of the snapshot prefix already consumed."""
        return self._read_offset

    @property
    def inside_fence(self) -> bool:
        return self._fence.inside_fence

    @property
    def buffered_text(self) -> str:
        """Narratable text waiting for a terminator."""
        return self._buffer

    @property
    def total_emitted_chars(self) -> int:
        """Total characters emitted across all segments."""
        return self._total_emitted


__all__ = ["SpeechSegmenter"]
