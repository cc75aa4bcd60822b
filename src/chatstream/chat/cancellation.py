"""Cooperative cancellation for in-flight chat streams."""

from __future__ import annotations

import asyncio
import itertools
import logging
from typing import Optional

logger = logging.getLogger(__name__)

_token_ids = itertools.count(1)


class StreamCancelledError(Exception):
    """Raised by a backend adapter that stopped because its token fired."""


class SessionActiveError(RuntimeError):
    """Raised when a new token is requested while another one is live."""


class CancellationToken:
    """Abort signal shared by the stream consumer and the backend adapter.

    The token is inert once signalled; it never becomes live again and a new
    session always receives a new token.
    """

    def __init__(self) -> None:
        self.id = next(_token_ids)
        self._event = asyncio.Event()

    @property
    def cancelled(self) -> bool:
        return self._event.is_set()

    def cancel(self) -> None:
        self._event.set()

    async def wait(self) -> None:
        await self._event.wait()

    def raise_if_cancelled(self) -> None:
        if self._event.is_set():
            raise StreamCancelledError(f"Stream {self.id} cancelled")

    def __repr__(self) -> str:
        state = "cancelled" if self.cancelled else "active"
        return f"CancellationToken(id={self.id}, {state})"


class CancellationController:
    """Two-state machine: Idle, or Active with exactly one live token."""

    def __init__(self) -> None:
        self._token: Optional[CancellationToken] = None

    @property
    def active(self) -> bool:
        return self._token is not None

    @property
    def token(self) -> Optional[CancellationToken]:
        return self._token

    def start(self) -> CancellationToken:
        """Issue a fresh token; the previous one must be terminated first."""

        if self._token is not None:
            raise SessionActiveError(
                f"Stream {self._token.id} is still active; cancel or release it first"
            )
        self._token = CancellationToken()
        logger.debug("Issued cancellation token %s", self._token.id)
        return self._token

    def cancel(
        self, token: Optional[CancellationToken] = None
    ) -> Optional[CancellationToken]:
        """Signal the live token and return to Idle.

        Passing a token that is no longer the live one is a no-op, so a late
        stop request for an old session cannot touch the current one.
        """

        current = self._token
        if current is None:
            return None
        if token is not None and token is not current:
            logger.debug("Ignoring cancel for stale token %s", token.id)
            return None
        self._token = None
        current.cancel()
        logger.debug("Cancelled token %s", current.id)
        return current

    def release(self, token: CancellationToken) -> None:
        """Return to Idle after a session finished without being cancelled."""

        if self._token is token:
            self._token = None


__all__ = [
    "CancellationController",
    "CancellationToken",
    "SessionActiveError",
    "StreamCancelledError",
]
