"""Chat orchestration package."""

from .cancellation import (
    CancellationController,
    CancellationToken,
    SessionActiveError,
    StreamCancelledError,
)
from .history import ConversationHistory
from .orchestrator import ChatOrchestrator

__all__ = [
    "CancellationController",
    "CancellationToken",
    "ChatOrchestrator",
    "ConversationHistory",
    "SessionActiveError",
    "StreamCancelledError",
]
