"""Streaming chat orchestration with live narration."""

__version__ = "0.1.0"
