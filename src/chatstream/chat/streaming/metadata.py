"""Helpers for the grounding side-channel that accompanies snapshots."""

from __future__ import annotations

import logging
from typing import Any, Mapping

from pydantic import ValidationError

from ...schemas.chat import GroundingMetadata

logger = logging.getLogger(__name__)


def parse_grounding_metadata(raw: Any) -> GroundingMetadata | None:
    """Validate raw metadata, returning ``None`` when it is missing or malformed."""

    if raw is None:
        return None
    if isinstance(raw, GroundingMetadata):
        return raw
    if not isinstance(raw, Mapping):
        logger.debug("Ignoring non-mapping grounding metadata: %r", type(raw).__name__)
        return None
    try:
        return GroundingMetadata.model_validate(dict(raw))
    except ValidationError as exc:
        logger.debug("Dropping malformed grounding metadata: %s", exc)
        return None


__all__ = ["parse_grounding_metadata"]
