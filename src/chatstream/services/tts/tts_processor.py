"""
Queue-Based Speech Sink.

This module provides the speech sink used by the chat orchestrator. Segments
are accepted synchronously, cleaned of markdown and queued; a background task
drains the queue and hands each segment to a synthesizer in emission order.

Architecture:
    SpeechSegmenter → SpeechQueue.speak() → queue → SpeechQueue.process() → synthesizer

The orchestrator never waits for playback. Stopping generation calls
interrupt(), which drops queued segments and cancels the one being spoken.

Usage:
    speech = SpeechQueue(synthesize)

    # Start processing task BEFORE streaming begins
    process_task = asyncio.create_task(speech.process())

    speech.speak("Hello there.")
    ...
    speech.close()  # Signal end
    await process_task
"""

from __future__ import annotations

import asyncio
import logging
import time
from typing import Awaitable, Callable, Optional

from .speech_text import clean_for_speech

logger = logging.getLogger(__name__)

Synthesizer = Callable[[str], Awaitable[None]]


class SpeechQueue:
    """
    Speech sink that queues segments for sequential synthesis.

    Attributes:
        synthesize: Coroutine function that speaks one cleaned segment
        spoken_count: Number of segments synthesized to completion
    """

    def __init__(
        self,
        synthesize: Synthesizer,
        *,
        clean: Callable[[str], str] = clean_for_speech,
    ):
        """
        Initialize the speech queue.

        Args:
            synthesize: Coroutine function receiving cleaned segment text
            clean: Text cleanup applied before a segment is queued
        """
        self.synthesize = synthesize
        self._clean = clean
        self._queue: asyncio.Queue[Optional[str]] = asyncio.Queue()
        self._current: Optional[asyncio.Future[None]] = None
        self.spoken_count = 0

    def speak(self, text: str) -> None:
        """Queue a segment without waiting for playback."""
        phrase = self._clean(text)
        if not phrase:
            return
        self._queue.put_nowait(phrase)

    def interrupt(self) -> None:
        """Drop queued segments and cancel the segment being synthesized."""
        dropped = 0
        closing = False
        while True:
            try:
                item = self._queue.get_nowait()
            except asyncio.QueueEmpty:
                break
            if item is None:
                closing = True
            else:
                dropped += 1
        if closing:
            self._queue.put_nowait(None)
        if self._current is not None and not self._current.done():
            self._current.cancel()
        if dropped:
            logger.info("Speech interrupted, dropped %d queued segment(s)", dropped)

    def close(self) -> None:
        """Signal the processing loop to stop once the queue drains."""
        self._queue.put_nowait(None)

    @property
    def pending(self) -> int:
        return self._queue.qsize()

    async def process(self) -> None:
        """
        Synthesize queued segments until close() is called.

        Synthesizer failures are logged and the next segment is processed.
        """
        start_time = time.monotonic()

        while True:
            phrase = await self._queue.get()

            # None signals end of speech
            if phrase is None:
                break

            logger.debug("Speaking segment (%d chars): %s", len(phrase), phrase[:50])

            current = asyncio.ensure_future(self.synthesize(phrase))
            self._current = current
            try:
                await asyncio.wait({current})
            except asyncio.CancelledError:
                current.cancel()
                raise
            finally:
                self._current = None

            if current.cancelled():
                logger.debug("Segment synthesis interrupted")
                continue
            exc = current.exception()
            if exc is not None:
                logger.error("Speech synthesis error for segment: %s", exc)
                continue
            self.spoken_count += 1

        elapsed = (time.monotonic() - start_time) * 1000
        logger.info(
            "Speech processing complete: %d segment(s) in %.0fms",
            self.spoken_count,
            elapsed,
        )


__all__ = ["SpeechQueue", "Synthesizer"]
