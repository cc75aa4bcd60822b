import pathlib
import sys

import pytest

PROJECT_ROOT = pathlib.Path(__file__).resolve().parents[1]
SRC_DIR = PROJECT_ROOT / "src"
if str(SRC_DIR) not in sys.path:
    sys.path.insert(0, str(SRC_DIR))

from chatstream.chat.streaming.types import FinalState, RenderSnapshot  # noqa: E402


class RecordingRenderSink:
    """Render sink that keeps every call for assertions."""

    def __init__(self) -> None:
        self.updates: list[RenderSnapshot] = []
        self.finals: list[FinalState] = []

    def update(self, snapshot: RenderSnapshot) -> None:
        self.updates.append(snapshot)

    def finalize(self, state: FinalState) -> None:
        self.finals.append(state)


class RecordingSpeechSink:
    def __init__(self) -> None:
        self.spoken: list[str] = []
        self.interrupts = 0

    def speak(self, text: str) -> None:
        self.spoken.append(text)

    def interrupt(self) -> None:
        self.interrupts += 1


@pytest.fixture
def render_sink() -> RecordingRenderSink:
    return RecordingRenderSink()


@pytest.fixture
def speech_sink() -> RecordingSpeechSink:
    return RecordingSpeechSink()
