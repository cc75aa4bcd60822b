"""OpenRouter streaming client used as the chat backend adapter."""

from __future__ import annotations

import asyncio
import json
import logging
from contextlib import aclosing
from dataclasses import dataclass
from typing import Any, AsyncGenerator, Iterable, Mapping, Optional, Sequence

import httpx

from .chat.cancellation import CancellationToken
from .chat.streaming.types import StreamSnapshot
from .config import Settings

logger = logging.getLogger(__name__)


class OpenRouterError(Exception):
    """Wrap transport or API failures when communicating with OpenRouter."""

    def __init__(self, status_code: int, detail: Any):
        super().__init__(str(detail))
        self.status_code = status_code
        self.detail = detail


@dataclass
class ServerSentEvent:
    """Represents a parsed Server-Sent Event."""

    data: str
    event: str = "message"
    event_id: Optional[str] = None

    def asdict(self) -> dict[str, Optional[str]]:
        payload: dict[str, Optional[str]] = {"event": self.event, "data": self.data}
        if self.event_id is not None:
            payload["id"] = self.event_id
        return payload


class OpenRouterClient:
    """Stream chat completions and expose them as cumulative snapshots."""

    _client_lock: asyncio.Lock = asyncio.Lock()
    _client_pool: dict[tuple[str, float], httpx.AsyncClient] = {}

    def __init__(
        self,
        settings: Settings,
        *,
        http_client: Optional[httpx.AsyncClient] = None,
    ):
        self._settings = settings
        self._http_client = http_client

    def _client_key(self) -> tuple[str, float]:
        return (self._base_url, float(self._settings.request_timeout))

    async def _get_http_client(self) -> httpx.AsyncClient:
        if self._http_client is not None:
            return self._http_client

        key = self._client_key()
        client = self.__class__._client_pool.get(key)
        if client is not None:
            return client

        async with self.__class__._client_lock:
            client = self.__class__._client_pool.get(key)
            if client is None:
                timeout = httpx.Timeout(self._settings.request_timeout, connect=10.0)
                limits = httpx.Limits(
                    max_connections=20,
                    max_keepalive_connections=10,
                )
                client = httpx.AsyncClient(
                    timeout=timeout,
                    limits=limits,
                    http2=True,
                )
                self.__class__._client_pool[key] = client
        return client

    @property
    def _headers(self) -> dict[str, str]:
        headers = {
            "Authorization": f"Bearer {self._settings.openrouter_api_key.get_secret_value()}",
            "Content-Type": "application/json",
            "Accept": "text/event-stream",
        }
        if self._settings.openrouter_app_name:
            headers["X-Title"] = self._settings.openrouter_app_name
        return headers

    @property
    def _base_url(self) -> str:
        """Return the OpenRouter API base URL without a trailing slash."""

        return str(self._settings.openrouter_base_url).rstrip("/")

    def build_payload(
        self, prompt: str, context: Sequence[Mapping[str, Any]]
    ) -> dict[str, Any]:
        messages: list[dict[str, Any]] = []
        if self._settings.system_prompt:
            messages.append({"role": "system", "content": self._settings.system_prompt})
        messages.extend(dict(message) for message in context)
        messages.append({"role": "user", "content": prompt})
        return {
            "model": self._settings.default_model,
            "messages": messages,
            "temperature": self._settings.temperature,
            "stream": True,
        }

    async def send(
        self,
        prompt: str,
        context: Sequence[Mapping[str, Any]],
        token: CancellationToken,
    ) -> AsyncGenerator[StreamSnapshot, None]:
        """Yield the reply text so far after every content delta.

        Raises ``StreamCancelledError`` once ``token`` fires; leaving the
        generator closes the underlying HTTP response.
        """

        payload = self.build_payload(prompt, context)
        logger.info(
            "OpenRouter request: model=%s, %d messages",
            payload["model"],
            len(payload["messages"]),
        )

        full_text = ""
        citations: list[dict[str, Any]] = []
        async with aclosing(self.stream_chat_raw(payload)) as events:
            while True:
                event = await self._next_event(events, token)
                if event is None:
                    break
                data = event.get("data")
                if not data or (event.get("event") or "message") != "message":
                    continue
                if data == "[DONE]":
                    break
                try:
                    chunk = json.loads(data)
                except json.JSONDecodeError:
                    logger.debug("Skipping non-JSON SSE payload: %s", data)
                    continue
                if not isinstance(chunk, dict):
                    continue
                if "error" in chunk:
                    raise OpenRouterError(httpx.codes.BAD_GATEWAY, chunk)

                changed = False
                for choice in chunk.get("choices") or []:
                    delta = choice.get("delta") or {}
                    content = delta.get("content")
                    if isinstance(content, str) and content:
                        full_text += content
                        changed = True
                    annotations = delta.get("annotations")
                    if isinstance(annotations, list) and annotations:
                        citations.extend(
                            item for item in annotations if isinstance(item, dict)
                        )
                        changed = True

                if changed:
                    yield StreamSnapshot(
                        text=full_text,
                        metadata=self._grounding_from_citations(citations),
                    )

        token.raise_if_cancelled()
        logger.info("OpenRouter stream finished: %d chars", len(full_text))

    @staticmethod
    async def _next_event(
        events: AsyncGenerator[dict[str, Optional[str]], None],
        token: CancellationToken,
    ) -> Optional[dict[str, Optional[str]]]:
        """Wait for the next SSE event, giving up as soon as ``token`` fires.

        Returns ``None`` at the end of the stream. A pending read is cancelled
        when the token fires, which closes the HTTP response.
        """

        token.raise_if_cancelled()
        pull = asyncio.ensure_future(anext(events))
        stop = asyncio.ensure_future(token.wait())
        try:
            await asyncio.wait({pull, stop}, return_when=asyncio.FIRST_COMPLETED)
        finally:
            stop.cancel()
            if not pull.done():
                pull.cancel()
                await asyncio.wait({pull})

        if pull.cancelled():
            token.raise_if_cancelled()
        try:
            return pull.result()
        except StopAsyncIteration:
            return None

    @staticmethod
    def _grounding_from_citations(
        citations: Iterable[Mapping[str, Any]],
    ) -> Optional[dict[str, Any]]:
        """Map OpenRouter ``url_citation`` annotations onto grounding metadata."""

        chunks: list[dict[str, Any]] = []
        supports: list[dict[str, Any]] = []
        for annotation in citations:
            if annotation.get("type") != "url_citation":
                continue
            citation = annotation.get("url_citation")
            if not isinstance(citation, Mapping):
                continue
            url = citation.get("url")
            if not isinstance(url, str) or not url:
                logger.debug("Skipping url_citation without a url: %s", citation)
                continue
            chunks.append({"web": {"uri": url, "title": citation.get("title")}})
            if "end_index" in citation:
                supports.append(
                    {
                        "segment": {
                            "startIndex": citation.get("start_index", 0),
                            "endIndex": citation.get("end_index"),
                        },
                        "groundingChunkIndices": [len(chunks) - 1],
                    }
                )
        if not chunks:
            return None
        metadata: dict[str, Any] = {"groundingChunks": chunks}
        if supports:
            metadata["groundingSupports"] = supports
        return metadata

    async def stream_chat_raw(
        self, payload: dict[str, Any]
    ) -> AsyncGenerator[dict[str, Optional[str]], None]:
        """Low-level streaming helper accepting a prebuilt payload."""

        url = f"{self._base_url}/chat/completions"

        client = await self._get_http_client()
        try:
            async with client.stream(
                "POST",
                url,
                headers=self._headers,
                json=payload,
            ) as response:
                if response.status_code >= 400:
                    body = await response.aread()
                    detail = self._extract_error_detail(body)
                    raise OpenRouterError(response.status_code, detail)

                async for event in self._iter_events(response):
                    yield event.asdict()
        except httpx.HTTPError as exc:
            raise OpenRouterError(httpx.codes.BAD_GATEWAY, str(exc)) from exc

    async def aclose(self) -> None:
        if self._http_client is not None:
            await self._http_client.aclose()
            return
        await self.__class__.aclose_shared()

    @classmethod
    async def aclose_shared(cls) -> None:
        async with cls._client_lock:
            clients = list(cls._client_pool.values())
            cls._client_pool.clear()
        for client in clients:
            try:
                await client.aclose()
            except Exception:  # pragma: no cover - best effort cleanup
                logger.debug("Failed to close pooled HTTP client", exc_info=True)

    async def _iter_events(
        self, response: httpx.Response
    ) -> AsyncGenerator[ServerSentEvent, None]:
        buffer: list[str] = []
        async for line in response.aiter_lines():
            if not line:
                if buffer:
                    yield self._parse_event(buffer)
                    buffer.clear()
                continue
            if line.startswith(":"):
                continue
            buffer.append(line)
        if buffer:
            yield self._parse_event(buffer)

    def _parse_event(self, lines: Iterable[str]) -> ServerSentEvent:
        event_name: Optional[str] = None
        event_id: Optional[str] = None
        data_lines: list[str] = []

        for line in lines:
            field, _, value = line.partition(":")
            value = value.lstrip(" ")
            if field == "event":
                event_name = value or None
            elif field == "data":
                data_lines.append(value)
            elif field == "id":
                event_id = value or None

        data = "\n".join(data_lines)
        return ServerSentEvent(
            data=data, event=event_name or "message", event_id=event_id
        )

    @staticmethod
    def _extract_error_detail(raw: bytes) -> Any:
        if not raw:
            return "OpenRouter returned an empty error response."
        try:
            text = raw.decode("utf-8")
        except UnicodeDecodeError:
            text = raw.decode("utf-8", errors="ignore")
        try:
            payload = json.loads(text)
        except json.JSONDecodeError:
            return text
        return payload


__all__ = ["OpenRouterClient", "OpenRouterError", "ServerSentEvent"]
