"""Type definitions for the chat streaming subsystem."""

from __future__ import annotations

import uuid
from dataclasses import dataclass, field
from typing import Any, AsyncIterator, Literal, Mapping, Protocol, Sequence

from ...schemas.chat import GroundingMetadata
from ..cancellation import CancellationToken

StreamOutcome = Literal["completed", "cancelled", "error"]


@dataclass(frozen=True)
class StreamSnapshot:
    """Cumulative text delivered by a backend adapter (never a delta)."""

    text: str
    metadata: Mapping[str, Any] | None = None


@dataclass(frozen=True)
class RenderSnapshot:
    session_id: str
    text: str
    metadata: GroundingMetadata | None = None
    is_streaming: bool = True


@dataclass(frozen=True)
class FinalState:
    session_id: str
    text: str
    outcome: StreamOutcome
    metadata: GroundingMetadata | None = None
    error: str | None = None

    @property
    def is_streaming(self) -> bool:
        return False


class BackendAdapter(Protocol):
    def send(
        self,
        prompt: str,
        context: Sequence[Mapping[str, Any]],
        token: CancellationToken,
    ) -> AsyncIterator[StreamSnapshot]:
        ...


class RenderSink(Protocol):
    def update(self, snapshot: RenderSnapshot) -> None:
        ...

    def finalize(self, state: FinalState) -> None:
        ...


class SpeechSink(Protocol):
    def speak(self, text: str) -> None:
        ...


class NarrationSettingsProvider(Protocol):
    @property
    def narration_enabled(self) -> bool:
        ...


@dataclass
class NarrationSettings:
    """Mutable narration switch held by one orchestrator."""

    narration_enabled: bool = False


@dataclass
class StreamSession:
    """One request/response exchange, from prompt submission to terminal state."""

    token: CancellationToken
    session_id: str = field(default_factory=lambda: uuid.uuid4().hex)
    text: str = ""
    metadata: GroundingMetadata | None = None
    is_streaming: bool = True
    outcome: StreamOutcome | None = None
    error: str | None = None

    @property
    def terminated(self) -> bool:
        return self.outcome is not None

    def terminate(self, outcome: StreamOutcome, error: str | None = None) -> bool:
        """Record the terminal outcome; returns False if one was already set."""

        if self.outcome is not None:
            return False
        self.outcome = outcome
        self.error = error
        self.is_streaming = False
        return True

    def final_state(self) -> FinalState:
        if self.outcome is None:
            raise RuntimeError(f"Session {self.session_id} has not terminated")
        return FinalState(
            session_id=self.session_id,
            text=self.text,
            outcome=self.outcome,
            metadata=self.metadata,
            error=self.error,
        )


__all__ = [
    "BackendAdapter",
    "FinalState",
    "NarrationSettings",
    "NarrationSettingsProvider",
    "RenderSink",
    "RenderSnapshot",
    "SpeechSink",
    "StreamOutcome",
    "StreamSession",
    "StreamSnapshot",
]
