"""In-memory conversation view fed by the streaming handler."""

from __future__ import annotations

import logging
import time
import uuid
from typing import Any, Callable, Optional

from ..schemas.chat import ChatMessage
from .streaming.types import FinalState, RenderSnapshot

logger = logging.getLogger(__name__)

ERROR_PREFIX = "Request failed: "


class ConversationHistory:
    """Render sink that keeps the message list a chat view displays.

    Model messages are keyed by stream session id. Every update replaces the
    stored message with a new record instead of patching it.
    """

    def __init__(self, clock: Callable[[], float] = time.time) -> None:
        self._clock = clock
        self._messages: list[ChatMessage] = []

    @property
    def messages(self) -> list[ChatMessage]:
        return list(self._messages)

    def __len__(self) -> int:
        return len(self._messages)

    def add_user_message(self, content: str) -> ChatMessage:
        message = ChatMessage(
            id=uuid.uuid4().hex,
            role="user",
            content=content,
            timestamp=self._clock(),
        )
        self._messages.append(message)
        return message

    def get(self, message_id: str) -> Optional[ChatMessage]:
        for message in self._messages:
            if message.id == message_id:
                return message
        return None

    def context(self) -> list[dict[str, Any]]:
        """Messages to send as backend history, minus errors and system notes."""

        return [
            message.to_context_dict()
            for message in self._messages
            if not message.is_error and message.role != "system" and message.content
        ]

    def clear(self) -> None:
        self._messages.clear()

    def update(self, snapshot: RenderSnapshot) -> None:
        self._replace(
            snapshot.session_id,
            content=snapshot.text,
            is_streaming=True,
            grounding_metadata=snapshot.metadata,
        )

    def finalize(self, state: FinalState) -> None:
        changes: dict[str, Any] = {
            "is_streaming": False,
            "grounding_metadata": state.metadata,
        }
        if state.outcome == "error":
            changes["is_error"] = True
            changes["content"] = ERROR_PREFIX + (state.error or "")
        else:
            changes["content"] = state.text
        self._replace(state.session_id, **changes)

    def _replace(self, session_id: str, **changes: Any) -> None:
        for index, message in enumerate(self._messages):
            if message.id == session_id:
                self._messages[index] = message.model_copy(update=changes)
                return
        logger.debug("Creating model message for session %s", session_id)
        self._messages.append(
            ChatMessage(
                id=session_id,
                role="model",
                timestamp=self._clock(),
                **changes,
            )
        )


__all__ = ["ConversationHistory", "ERROR_PREFIX"]
