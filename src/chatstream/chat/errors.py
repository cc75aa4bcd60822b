"""Turn backend failures into one human-readable line for the chat view."""

from __future__ import annotations

import json
from typing import Any, Mapping

UNKNOWN_ERROR = "Unknown error"
CONNECTION_ERROR = "Connection failed, check the network or credentials"


def _format_api_error(payload: Mapping[str, Any]) -> str | None:
    error = payload.get("error")
    if isinstance(error, Mapping):
        code = error.get("code", "?")
        message = error.get("message") or UNKNOWN_ERROR
        return f"API error ({code}): {message}"
    if isinstance(error, str) and error.strip():
        return f"API error: {error.strip()}"
    return None


def _from_embedded_json(message: str) -> str | None:
    start = message.find("{")
    if start == -1:
        return None
    try:
        parsed = json.loads(message[start:])
    except json.JSONDecodeError:
        return None
    if isinstance(parsed, Mapping):
        return _format_api_error(parsed)
    return None


def normalize_error_message(exc: BaseException) -> str:
    """Return a display string for an adapter or transport failure."""

    detail = getattr(exc, "detail", None)
    if isinstance(detail, Mapping):
        formatted = _format_api_error(detail)
        if formatted is not None:
            return formatted
        message = detail.get("message")
        if isinstance(message, str) and message.strip():
            return message.strip()
        return CONNECTION_ERROR
    if detail is not None and not isinstance(detail, str):
        return CONNECTION_ERROR

    message = str(exc).strip()
    if not message:
        return UNKNOWN_ERROR

    formatted = _from_embedded_json(message)
    if formatted is not None:
        return formatted
    return message


__all__ = ["CONNECTION_ERROR", "UNKNOWN_ERROR", "normalize_error_message"]
