"""Chat streaming package."""

from .handler import StreamingHandler
from .types import (
    BackendAdapter,
    FinalState,
    NarrationSettings,
    RenderSink,
    RenderSnapshot,
    SpeechSink,
    StreamSession,
    StreamSnapshot,
)

__all__ = [
    "BackendAdapter",
    "FinalState",
    "NarrationSettings",
    "RenderSink",
    "RenderSnapshot",
    "SpeechSink",
    "StreamSession",
    "StreamSnapshot",
    "StreamingHandler",
]
