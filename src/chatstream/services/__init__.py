"""Narration and speech services."""
