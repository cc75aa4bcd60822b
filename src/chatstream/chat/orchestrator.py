"""Chat orchestrator coordinating the backend stream, rendering and narration."""

from __future__ import annotations

import logging
from typing import Any, Mapping, Optional, Sequence

from ..services.tts.text_segmenter import SpeechSegmenter
from .cancellation import CancellationController
from .streaming import StreamingHandler
from .streaming.types import (
    BackendAdapter,
    FinalState,
    NarrationSettings,
    RenderSink,
    SpeechSink,
    StreamSession,
)

logger = logging.getLogger(__name__)


class ChatOrchestrator:
    """Own the single active stream of one conversation.

    ``send`` runs a whole exchange and returns its terminal state. Issuing a
    new ``send`` while one is running stops the running one first, so two
    sessions never interleave their render updates or speech.
    """

    def __init__(
        self,
        adapter: BackendAdapter,
        render_sink: RenderSink,
        speech_sink: SpeechSink,
        *,
        narration: Optional[NarrationSettings] = None,
        segmenter: Optional[SpeechSegmenter] = None,
    ) -> None:
        self._adapter = adapter
        self._speech = speech_sink
        self._narration = narration or NarrationSettings()
        self._segmenter = segmenter or SpeechSegmenter()
        self._controller = CancellationController()
        self._handler = StreamingHandler(
            render_sink, speech_sink, self._segmenter, self._narration
        )
        self._session: Optional[StreamSession] = None

    @property
    def is_streaming(self) -> bool:
        return self._controller.active

    @property
    def active_session(self) -> Optional[StreamSession]:
        return self._session

    @property
    def narration_enabled(self) -> bool:
        return self._narration.narration_enabled

    async def send(
        self,
        prompt: str,
        context: Optional[Sequence[Mapping[str, Any]]] = None,
    ) -> FinalState:
        """Stream the backend's reply to ``prompt`` into the sinks."""

        if self._controller.active:
            logger.info("New prompt while streaming; stopping the previous reply")
            self.cancel()

        token = self._controller.start()
        session = StreamSession(token=token)
        self._session = session
        self._segmenter.reset()
        self._interrupt_speech()
        history = list(context or [])
        logger.info(
            "Starting session %s (prompt %d chars, %d context messages)",
            session.session_id,
            len(prompt),
            len(history),
        )

        try:
            return await self._handler.stream_session(
                session, lambda: self._adapter.send(prompt, history, token)
            )
        finally:
            self._controller.release(token)
            if self._session is session:
                self._session = None

    def cancel(self) -> bool:
        """Stop the active reply. Returns False when nothing was streaming."""

        session = self._session
        token = self._controller.cancel()
        if token is None:
            return False
        self._interrupt_speech()
        if session is not None and session.token is token:
            self._handler.cancel_session(session)
        return True

    def set_narration_enabled(self, enabled: bool) -> None:
        """Toggle narration; turning it off discards anything not yet spoken."""

        self._narration.narration_enabled = enabled
        if enabled:
            return
        if self._session is not None:
            self._segmenter.skip(self._session.text)
        else:
            self._segmenter.reset()
        self._interrupt_speech()

    def _interrupt_speech(self) -> None:
        interrupt = getattr(self._speech, "interrupt", None)
        if callable(interrupt):
            interrupt()


__all__ = ["ChatOrchestrator"]
