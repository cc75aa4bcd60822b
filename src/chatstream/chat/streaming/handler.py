"""Stream consumption: render every snapshot and narrate finished sentences."""

from __future__ import annotations

import asyncio
import logging
from typing import AsyncIterator, Callable

from ...services.tts.text_segmenter import SpeechSegmenter
from ..cancellation import StreamCancelledError
from ..errors import normalize_error_message
from .metadata import parse_grounding_metadata
from .types import (
    FinalState,
    NarrationSettingsProvider,
    RenderSink,
    RenderSnapshot,
    SpeechSink,
    StreamSession,
    StreamSnapshot,
)

logger = logging.getLogger(__name__)

SnapshotStreamFactory = Callable[[], AsyncIterator[StreamSnapshot]]


class StreamingHandler:
    """Drive one backend stream into the render sink and the speech segmenter.

    All handlers run on the event loop thread. The only suspension point is
    the adapter's ``__anext__``; every sink call after it happens only when the
    session's token is still live.
    """

    def __init__(
        self,
        render_sink: RenderSink,
        speech_sink: SpeechSink,
        segmenter: SpeechSegmenter,
        narration: NarrationSettingsProvider,
    ) -> None:
        self._render = render_sink
        self._speech = speech_sink
        self._segmenter = segmenter
        self._narration = narration

    async def stream_session(
        self,
        session: StreamSession,
        open_stream: SnapshotStreamFactory,
    ) -> FinalState:
        """Consume snapshots until completion, failure or cancellation."""

        snapshots: AsyncIterator[StreamSnapshot] | None = None
        try:
            snapshots = open_stream()
            async for snapshot in snapshots:
                if session.token.cancelled or session.terminated:
                    break
                self.handle_snapshot(session, snapshot)
        except asyncio.CancelledError:
            logger.info("Stream task for session %s cancelled", session.session_id)
            self.cancel_session(session)
            raise
        except StreamCancelledError:
            self.cancel_session(session)
        except Exception as exc:
            if session.token.cancelled:
                logger.debug(
                    "Adapter raised after cancellation for session %s: %s",
                    session.session_id,
                    exc,
                )
                self.cancel_session(session)
            else:
                self.fail_session(session, exc)
        else:
            if session.token.cancelled:
                self.cancel_session(session)
            else:
                self.complete_session(session)
        finally:
            if snapshots is not None:
                await self._close_stream(snapshots, session)

        return session.final_state()

    def handle_snapshot(self, session: StreamSession, snapshot: StreamSnapshot) -> None:
        """Render the snapshot and feed its new suffix to the segmenter."""

        if len(snapshot.text) < len(session.text):
            logger.warning(
                "Session %s received a shorter snapshot (%d < %d chars)",
                session.session_id,
                len(snapshot.text),
                len(session.text),
            )
        session.text = snapshot.text
        if snapshot.metadata is not None:
            session.metadata = parse_grounding_metadata(snapshot.metadata)

        self._render.update(
            RenderSnapshot(
                session_id=session.session_id,
                text=session.text,
                metadata=session.metadata,
            )
        )

        if self._narration.narration_enabled:
            for segment in self._segmenter.on_delta(session.text):
                self._speech.speak(segment)
        else:
            self._segmenter.skip(session.text)

    def complete_session(self, session: StreamSession) -> None:
        if not session.terminate("completed"):
            return
        self._finish_narration()
        logger.info(
            "Session %s completed (%d chars)", session.session_id, len(session.text)
        )
        self._render.finalize(session.final_state())

    def fail_session(self, session: StreamSession, exc: BaseException) -> None:
        message = normalize_error_message(exc)
        if not session.terminate("error", message):
            return
        logger.warning("Session %s failed: %s", session.session_id, message)
        # Text already rendered was seen by the user, so it is still read out.
        self._finish_narration()
        self._render.finalize(session.final_state())

    def cancel_session(self, session: StreamSession) -> None:
        """Tear down without narrating what is left in the buffer."""

        if not session.terminate("cancelled"):
            return
        self._segmenter.reset()
        logger.info(
            "Session %s cancelled after %d chars",
            session.session_id,
            len(session.text),
        )
        self._render.finalize(session.final_state())

    def _finish_narration(self) -> None:
        if not self._narration.narration_enabled:
            self._segmenter.reset()
            return
        final = self._segmenter.on_session_end()
        if final:
            self._speech.speak(final)

    @staticmethod
    async def _close_stream(
        snapshots: AsyncIterator[StreamSnapshot], session: StreamSession
    ) -> None:
        aclose = getattr(snapshots, "aclose", None)
        if aclose is None:
            return
        try:
            await aclose()
        except Exception as exc:  # pragma: no cover - best effort cleanup
            logger.debug(
                "Error closing stream for session %s: %s", session.session_id, exc
            )


__all__ = ["SnapshotStreamFactory", "StreamingHandler"]
