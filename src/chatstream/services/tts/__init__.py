"""Narration services: segmentation, cleanup and queued synthesis."""

from .delimiters import (
    DEFAULT_DELIMITERS,
    find_first_delimiter,
    find_last_delimiter,
)
from .fence import CodeFenceTracker
from .speech_text import clean_for_speech
from .text_segmenter import SpeechSegmenter
from .tts_processor import SpeechQueue, Synthesizer

__all__ = [
    "CodeFenceTracker",
    "DEFAULT_DELIMITERS",
    "SpeechQueue",
    "SpeechSegmenter",
    "Synthesizer",
    "clean_for_speech",
    "find_first_delimiter",
    "find_last_delimiter",
]
