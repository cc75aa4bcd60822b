import asyncio

import pytest

from chatstream.chat.cancellation import (
    CancellationController,
    CancellationToken,
    SessionActiveError,
    StreamCancelledError,
)


class TestCancellationToken:
    def test_new_token_is_live(self) -> None:
        token = CancellationToken()
        assert token.cancelled is False
        token.raise_if_cancelled()

    def test_cancel_is_sticky(self) -> None:
        token = CancellationToken()
        token.cancel()
        token.cancel()
        assert token.cancelled is True
        with pytest.raises(StreamCancelledError):
            token.raise_if_cancelled()

    def test_tokens_have_distinct_ids(self) -> None:
        assert CancellationToken().id != CancellationToken().id

    @pytest.mark.asyncio
    async def test_wait_returns_after_cancel(self) -> None:
        token = CancellationToken()
        waiter = asyncio.create_task(token.wait())
        await asyncio.sleep(0)
        assert not waiter.done()
        token.cancel()
        await asyncio.wait_for(waiter, timeout=1)


class TestCancellationController:
    def test_starts_idle(self) -> None:
        controller = CancellationController()
        assert controller.active is False
        assert controller.token is None

    def test_start_issues_token(self) -> None:
        controller = CancellationController()
        token = controller.start()
        assert controller.active is True
        assert controller.token is token
        assert token.cancelled is False

    def test_start_while_active_fails(self) -> None:
        controller = CancellationController()
        controller.start()
        with pytest.raises(SessionActiveError):
            controller.start()

    def test_cancel_signals_token_and_goes_idle(self) -> None:
        controller = CancellationController()
        token = controller.start()
        assert controller.cancel() is token
        assert token.cancelled is True
        assert controller.active is False

    def test_cancel_while_idle_is_noop(self) -> None:
        controller = CancellationController()
        assert controller.cancel() is None

    def test_stale_token_cannot_cancel_new_session(self) -> None:
        controller = CancellationController()
        old = controller.start()
        controller.cancel()
        new = controller.start()

        assert controller.cancel(old) is None
        assert new.cancelled is False
        assert controller.token is new

    def test_each_start_gets_a_fresh_token(self) -> None:
        controller = CancellationController()
        first = controller.start()
        controller.cancel()
        second = controller.start()
        assert second is not first
        assert second.cancelled is False

    def test_release_only_for_current_token(self) -> None:
        controller = CancellationController()
        old = controller.start()
        controller.cancel()
        new = controller.start()

        controller.release(old)
        assert controller.token is new

        controller.release(new)
        assert controller.active is False
        assert new.cancelled is False
