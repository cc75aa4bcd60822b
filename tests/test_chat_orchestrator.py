import asyncio
from typing import AsyncIterator

import pytest

from chatstream.chat import ChatOrchestrator
from chatstream.chat.cancellation import CancellationToken, StreamCancelledError
from chatstream.chat.streaming.types import NarrationSettings, StreamSnapshot
from chatstream.openrouter import OpenRouterError


class ScriptedAdapter:
    """Backend adapter replaying one async generator function per send()."""

    def __init__(self, *scripts) -> None:
        self.scripts = list(scripts)
        self.calls: list[tuple[str, list, CancellationToken]] = []

    def send(self, prompt, context, token):
        self.calls.append((prompt, list(context), token))
        script = self.scripts.pop(0)
        return script(token)


def replay(*texts: str):
    async def script(token: CancellationToken) -> AsyncIterator[StreamSnapshot]:
        for text in texts:
            token.raise_if_cancelled()
            yield StreamSnapshot(text)

    return script


def until_cancelled(*texts: str):
    """Yield ``texts`` then block like a slow network until the token fires."""

    async def script(token: CancellationToken) -> AsyncIterator[StreamSnapshot]:
        for text in texts:
            yield StreamSnapshot(text)
        await token.wait()
        token.raise_if_cancelled()

    return script


async def wait_for_updates(render_sink, count: int) -> None:
    for _ in range(100):
        if len(render_sink.updates) >= count:
            return
        await asyncio.sleep(0)
    raise AssertionError(f"expected {count} render updates")


def make_orchestrator(adapter, render_sink, speech_sink, *, narrate: bool = True):
    return ChatOrchestrator(
        adapter,
        render_sink,
        speech_sink,
        narration=NarrationSettings(narration_enabled=narrate),
    )


@pytest.mark.asyncio
async def test_send_streams_to_completion(render_sink, speech_sink) -> None:
    adapter = ScriptedAdapter(replay("Hi", "Hi there.", "Hi there. Bye"))
    orchestrator = make_orchestrator(adapter, render_sink, speech_sink)
    context = [{"role": "user", "content": "earlier"}]

    final = await orchestrator.send("hello", context)

    assert final.outcome == "completed"
    assert final.text == "Hi there. Bye"
    assert speech_sink.spoken == ["Hi there.", "Bye"]
    assert orchestrator.is_streaming is False
    assert orchestrator.active_session is None

    prompt, sent_context, token = adapter.calls[0]
    assert prompt == "hello"
    assert sent_context == context
    assert token.cancelled is False


@pytest.mark.asyncio
async def test_cancel_mid_stream(render_sink, speech_sink) -> None:
    adapter = ScriptedAdapter(until_cancelled("Hello world. How"))
    orchestrator = make_orchestrator(adapter, render_sink, speech_sink)

    task = asyncio.create_task(orchestrator.send("hello"))
    await wait_for_updates(render_sink, 1)
    assert orchestrator.is_streaming is True
    interrupts_before = speech_sink.interrupts

    assert orchestrator.cancel() is True
    # Teardown happens before the adapter has even noticed the token.
    assert [state.outcome for state in render_sink.finals] == ["cancelled"]
    assert speech_sink.interrupts == interrupts_before + 1

    final = await asyncio.wait_for(task, timeout=1)

    assert final.outcome == "cancelled"
    assert final.error is None
    assert final.text == "Hello world. How"
    assert speech_sink.spoken == ["Hello world."]
    assert len(render_sink.finals) == 1
    assert orchestrator.is_streaming is False
    assert adapter.calls[0][2].cancelled is True


@pytest.mark.asyncio
async def test_cancel_when_idle_is_noop(render_sink, speech_sink) -> None:
    orchestrator = make_orchestrator(ScriptedAdapter(), render_sink, speech_sink)
    assert orchestrator.cancel() is False
    assert render_sink.finals == []


@pytest.mark.asyncio
async def test_new_send_cancels_previous_session(render_sink, speech_sink) -> None:
    adapter = ScriptedAdapter(
        until_cancelled("Old answer. More"),
        replay("New reply."),
    )
    orchestrator = make_orchestrator(adapter, render_sink, speech_sink)

    first = asyncio.create_task(orchestrator.send("first"))
    await wait_for_updates(render_sink, 1)

    second = await orchestrator.send("second")
    first_final = await asyncio.wait_for(first, timeout=1)

    assert first_final.outcome == "cancelled"
    assert second.outcome == "completed"
    assert first_final.session_id != second.session_id
    assert [state.outcome for state in render_sink.finals] == [
        "cancelled",
        "completed",
    ]

    second_updates = [
        update.text
        for update in render_sink.updates
        if update.session_id == second.session_id
    ]
    assert second_updates == ["New reply."]
    assert speech_sink.spoken == ["Old answer.", "New reply."]

    first_token = adapter.calls[0][2]
    second_token = adapter.calls[1][2]
    assert first_token.cancelled is True
    assert second_token.cancelled is False


@pytest.mark.asyncio
async def test_adapter_error_does_not_escape(render_sink, speech_sink) -> None:
    async def failing(token: CancellationToken) -> AsyncIterator[StreamSnapshot]:
        yield StreamSnapshot("Some text")
        raise OpenRouterError(502, "upstream unavailable")

    orchestrator = make_orchestrator(
        ScriptedAdapter(failing), render_sink, speech_sink
    )

    final = await orchestrator.send("hello")

    assert final.outcome == "error"
    assert final.error == "upstream unavailable"
    assert orchestrator.is_streaming is False


@pytest.mark.asyncio
async def test_disabling_narration_mid_stream(render_sink, speech_sink) -> None:
    gate = asyncio.Event()

    async def script(token: CancellationToken) -> AsyncIterator[StreamSnapshot]:
        yield StreamSnapshot("One. Tw")
        await gate.wait()
        yield StreamSnapshot("One. Two. Three.")

    orchestrator = make_orchestrator(
        ScriptedAdapter(script), render_sink, speech_sink
    )
    task = asyncio.create_task(orchestrator.send("count"))
    await wait_for_updates(render_sink, 1)

    interrupts_before = speech_sink.interrupts
    orchestrator.set_narration_enabled(False)
    assert orchestrator.narration_enabled is False
    assert speech_sink.interrupts == interrupts_before + 1

    gate.set()
    final = await asyncio.wait_for(task, timeout=1)

    assert final.outcome == "completed"
    assert speech_sink.spoken == ["One."]


@pytest.mark.asyncio
async def test_reenabling_narration_skips_text_seen_while_off(
    render_sink, speech_sink
) -> None:
    first_gate = asyncio.Event()
    second_gate = asyncio.Event()

    async def script(token: CancellationToken) -> AsyncIterator[StreamSnapshot]:
        yield StreamSnapshot("A. B")
        await first_gate.wait()
        yield StreamSnapshot("A. B. C")
        await second_gate.wait()
        yield StreamSnapshot("A. B. C. D.")

    orchestrator = make_orchestrator(
        ScriptedAdapter(script), render_sink, speech_sink
    )
    task = asyncio.create_task(orchestrator.send("letters"))
    await wait_for_updates(render_sink, 1)

    orchestrator.set_narration_enabled(False)
    first_gate.set()
    await wait_for_updates(render_sink, 2)

    orchestrator.set_narration_enabled(True)
    second_gate.set()
    await asyncio.wait_for(task, timeout=1)

    assert speech_sink.spoken == ["A.", "D."]


@pytest.mark.asyncio
async def test_adapter_stopping_on_its_own_token(render_sink, speech_sink) -> None:
    async def script(token: CancellationToken) -> AsyncIterator[StreamSnapshot]:
        yield StreamSnapshot("Partial")
        raise StreamCancelledError("stopped upstream")

    orchestrator = make_orchestrator(
        ScriptedAdapter(script), render_sink, speech_sink
    )

    final = await orchestrator.send("hello")

    assert final.outcome == "cancelled"
    assert speech_sink.spoken == []


@pytest.mark.asyncio
async def test_narration_toggled_inside_code_block(render_sink, speech_sink) -> None:
    gates = [asyncio.Event(), asyncio.Event()]

    async def script(token: CancellationToken) -> AsyncIterator[StreamSnapshot]:
        text = "Intro.\n```py\nx = 1"
        yield StreamSnapshot(text)
        await gates[0].wait()
        text += "\ny = 2"
        yield StreamSnapshot(text)
        await gates[1].wait()
        yield StreamSnapshot(text + "\nsecret()\n```\nOutro.")

    orchestrator = make_orchestrator(
        ScriptedAdapter(script), render_sink, speech_sink
    )
    task = asyncio.create_task(orchestrator.send("code please"))
    await wait_for_updates(render_sink, 1)

    orchestrator.set_narration_enabled(False)
    gates[0].set()
    await wait_for_updates(render_sink, 2)

    orchestrator.set_narration_enabled(True)
    gates[1].set()
    final = await asyncio.wait_for(task, timeout=1)

    assert final.outcome == "completed"
    assert speech_sink.spoken == ["Intro.", "Outro."]
