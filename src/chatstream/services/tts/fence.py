"""Code-fence tracking for narration.

The tracker recognises only the literal three-backtick marker. It has no notion
of language tags, opening versus closing fences or nesting. Every marker simply
toggles the state.
"""

from __future__ import annotations

FENCE_MARKER = "```"


class CodeFenceTracker:
    """Filter streamed characters, dropping everything inside fenced blocks.

    Batches are logically concatenated for marker matching. A trailing run of
    one or two backticks is held back until the next batch shows whether it
    completes a marker.
    """

    def __init__(self, marker: str = FENCE_MARKER) -> None:
        self.marker = marker
        self._inside = False
        self._pending = ""

    @property
    def inside_fence(self) -> bool:
        return self._inside

    @property
    def pending(self) -> str:
        """Characters held back as a possible partial marker."""
        return self._pending

    def feed(self, chunk: str) -> str:
        """Consume ``chunk`` and return the characters observed outside fences."""

        if not chunk:
            return ""

        text = self._pending + chunk
        self._pending = ""
        marker = self.marker
        narratable: list[str] = []
        i = 0
        length = len(text)

        while i < length:
            if text.startswith(marker, i):
                self._inside = not self._inside
                i += len(marker)
                continue
            if length - i < len(marker) and marker.startswith(text[i:]):
                self._pending = text[i:]
                break
            if not self._inside:
                narratable.append(text[i])
            i += 1

        return "".join(narratable)

    def flush(self) -> str:
        """Release held characters; they can no longer become a marker."""

        held, self._pending = self._pending, ""
        if self._inside:
            return ""
        return held

    def reset(self) -> None:
        self._inside = False
        self._pending = ""


__all__ = ["CodeFenceTracker", "FENCE_MARKER"]
