"""Pydantic models for chat messages and response metadata."""

from __future__ import annotations

from typing import Any, Dict, List, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field


class WebSource(BaseModel):
    """A web page the backend used to ground its answer."""

    uri: str
    title: Optional[str] = None

    model_config = ConfigDict(populate_by_name=True, extra="allow")


class GroundingChunk(BaseModel):
    web: Optional[WebSource] = None

    model_config = ConfigDict(populate_by_name=True, extra="allow")


class GroundingSegment(BaseModel):
    start_index: int = Field(default=0, alias="startIndex", ge=0)
    end_index: int = Field(alias="endIndex", ge=0)

    model_config = ConfigDict(populate_by_name=True, extra="allow")


class GroundingSupport(BaseModel):
    segment: GroundingSegment
    grounding_chunk_indices: List[int] = Field(
        default_factory=list, alias="groundingChunkIndices"
    )

    model_config = ConfigDict(populate_by_name=True, extra="allow")


class GroundingMetadata(BaseModel):
    """Citation side-channel attached to a streamed reply."""

    grounding_chunks: List[GroundingChunk] = Field(
        default_factory=list, alias="groundingChunks"
    )
    grounding_supports: Optional[List[GroundingSupport]] = Field(
        default=None, alias="groundingSupports"
    )
    web_search_queries: Optional[List[str]] = Field(
        default=None, alias="webSearchQueries"
    )

    model_config = ConfigDict(populate_by_name=True, extra="allow")

    def sources(self) -> List[WebSource]:
        return [chunk.web for chunk in self.grounding_chunks if chunk.web is not None]


class ChatMessage(BaseModel):
    """Represents a single message in the conversation view."""

    id: str
    role: Literal["user", "model", "system"]
    content: str = ""
    timestamp: float
    is_streaming: bool = False
    is_error: bool = False
    grounding_metadata: Optional[GroundingMetadata] = None

    model_config = ConfigDict(populate_by_name=True, extra="allow")

    def to_context_dict(self) -> Dict[str, Any]:
        """Serialize for the backend as an OpenAI-style chat message."""

        role = "assistant" if self.role == "model" else self.role
        return {"role": role, "content": self.content}


__all__ = [
    "ChatMessage",
    "GroundingChunk",
    "GroundingMetadata",
    "GroundingSegment",
    "GroundingSupport",
    "WebSource",
]
