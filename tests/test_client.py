from __future__ import annotations

import asyncio

import pytest

from agentbridge import AgentClient, ClientConfig
from agentbridge.core import ChunkType, FinishReason, GenerateChunk, NativeMessage, NativeRole
from agentbridge.core.adapters.projector import ProjectionDefaults, ResponseProjector
from agentbridge.core.adapters.stream import replay_stream
from tests.conftest import FIXED_CREATED
from tests.fixtures.transport_fake import FakeTransport, ScriptedStreamHandle

RESPONSE = {
    "sessionId": "s1",
    "message": {"role": "ROLE_ASSISTANT", "content": "hello"},
    "finishReason": "FINISH_REASON_STOP",
    "usage": {"promptTokens": 3, "completionTokens": 2, "totalTokens": 5},
}


def _client(transport: FakeTransport, **config: str) -> AgentClient:
    projector = ResponseProjector(ProjectionDefaults(model="anthropic/claude", clock=lambda: FIXED_CREATED))
    return AgentClient(transport, config=ClientConfig(**config), projector=projector)


def test_generate_sends_normalized_messages() -> None:
    transport = FakeTransport(responses={"generate": RESPONSE})
    client = _client(transport)

    response = asyncio.run(
        client.generate(
            "s1",
            [
                {"role": "system", "content": "be brief"},
                NativeMessage(role=NativeRole.USER, content="hi", metadata={"trace": "t-1"}),
            ],
        )
    )

    assert transport.calls == [
        (
            "generate",
            {
                "sessionId": "s1",
                "messages": [
                    {"role": "system", "content": "be brief"},
                    {"role": "user", "content": "hi", "metadata": {"trace": "t-1"}},
                ],
            },
        )
    ]
    assert response.message == NativeMessage(role=NativeRole.ASSISTANT, content="hello")
    assert response.finish_reason is FinishReason.STOP


def test_chat_completion_projects_the_response() -> None:
    transport = FakeTransport(responses={"generate": RESPONSE})
    client = _client(transport)

    completion = asyncio.run(
        client.chat_completion("s1", [{"role": "user", "content": [{"type": "text", "text": "hi"}]}])
    )

    assert transport.calls[0][1]["messages"] == [{"role": "user", "content": "hi"}]
    assert completion.to_dict() == {
        "id": "chatcmpl-s1",
        "object": "chat.completion",
        "created": FIXED_CREATED,
        "model": "anthropic/claude",
        "choices": [
            {
                "index": 0,
                "message": {"role": "assistant", "content": "hello"},
                "finish_reason": "stop",
            }
        ],
        "usage": {"prompt_tokens": 3, "completion_tokens": 2, "total_tokens": 5},
    }


def test_default_projector_uses_configured_model() -> None:
    transport = FakeTransport(responses={"generate": RESPONSE})
    client = AgentClient(
        transport,
        config=ClientConfig(default_provider="openai", default_model_id="gpt-4o", id_prefix="cmpl-"),
    )

    completion = asyncio.run(client.chat_completion("s1", [{"role": "user", "content": "hi"}]))

    assert completion.model == "openai/gpt-4o"
    assert completion.id == "cmpl-s1"


def test_transport_errors_propagate_unchanged() -> None:
    failure = ConnectionRefusedError("agent service unavailable")
    client = _client(FakeTransport(responses={"generate": failure}))

    with pytest.raises(ConnectionRefusedError) as excinfo:
        asyncio.run(client.generate("s1", [{"role": "user", "content": "hi"}]))

    assert excinfo.value is failure


def test_structured_generation_forwards_the_schema() -> None:
    transport = FakeTransport(
        responses={"generateStructured": {"sessionId": "s1", "data": '{"answer": 42}'}}
    )
    client = _client(transport)

    response = asyncio.run(
        client.generate_structured("s1", [{"role": "user", "content": "answer?"}], '{"type": "object"}')
    )

    method, request = transport.calls[0]
    assert method == "generateStructured"
    assert request["schema"] == '{"type": "object"}'
    assert response.data == '{"answer": 42}'


def test_stream_generate_opens_the_call_on_entry() -> None:
    handle = ScriptedStreamHandle(
        [
            ("item", {"type": "content", "sessionId": "s1", "content": "Hel"}),
            ("item", {"type": "content", "sessionId": "s1", "content": "lo"}),
            ("item", {"type": "done", "sessionId": "s1"}),
            ("end",),
        ]
    )
    transport = FakeTransport(streams={"streamGenerate": handle})
    client = _client(transport)

    async def _scenario() -> list[GenerateChunk]:
        stream = client.stream_generate("s1", [{"role": "user", "content": "hi"}])
        assert transport.calls == []
        async with stream as chunks:
            return [chunk async for chunk in chunks]

    chunks = asyncio.run(_scenario())

    assert [chunk.type for chunk in chunks] == [ChunkType.CONTENT, ChunkType.CONTENT, ChunkType.DONE]
    assert "".join(chunk.content for chunk in chunks) == "Hello"
    assert transport.calls[0][0] == "streamGenerate"
    assert handle.listener_count() == 0
    assert not handle.cancelled


def test_stream_chat_completion_yields_chunk_envelopes() -> None:
    handle = ScriptedStreamHandle(
        [
            ("item", {"type": "CHUNK_TYPE_CONTENT", "sessionId": "s1", "content": "Hi"}),
            ("item", {"type": "CHUNK_TYPE_DONE", "sessionId": "s1"}),
            ("end",),
        ]
    )
    client = _client(FakeTransport(streams={"streamGenerate": handle}))

    stream = client.stream_chat_completion("s1", [{"role": "user", "content": "hi"}], model="m")
    envelopes = [chunk.to_dict() for chunk in asyncio.run(replay_stream(stream))]

    assert [envelope["choices"][0] for envelope in envelopes] == [
        {"index": 0, "delta": {"content": "Hi"}, "finish_reason": None},
        {"index": 0, "delta": {}, "finish_reason": "stop"},
    ]
    assert {envelope["model"] for envelope in envelopes} == {"m"}
    assert {envelope["object"] for envelope in envelopes} == {"chat.completion.chunk"}


def _slow_stream() -> ScriptedStreamHandle:
    return ScriptedStreamHandle(
        [
            ("item", {"type": "content", "sessionId": "s1", "content": "a"}),
            ("item", {"type": "content", "sessionId": "s1", "content": "b"}),
            ("end",),
        ],
        delays=[0, 0.01, 0.01],
    )


def test_break_out_of_stream_generate_releases_the_call() -> None:
    handle = _slow_stream()
    client = _client(FakeTransport(streams={"streamGenerate": handle}))

    async def _scenario() -> list[str]:
        received: list[str] = []
        async with client.stream_generate("s1", [{"role": "user", "content": "hi"}]) as chunks:
            async for chunk in chunks:
                received.append(chunk.content)
                break
        await asyncio.sleep(0.03)
        return received

    assert asyncio.run(_scenario()) == ["a"]
    assert handle.listener_count() == 0
    assert handle.cancelled
    assert handle.emitted == 1


def test_break_out_of_stream_chat_completion_releases_the_call() -> None:
    handle = _slow_stream()
    client = _client(FakeTransport(streams={"streamGenerate": handle}))

    async def _scenario() -> list[str | None]:
        received: list[str | None] = []
        async with client.stream_chat_completion("s1", [{"role": "user", "content": "hi"}]) as stream:
            async for envelope in stream:
                received.append(envelope.choices[0].delta.content)
                break
        await asyncio.sleep(0.03)
        return received

    assert asyncio.run(_scenario()) == ["a"]
    assert handle.listener_count() == 0
    assert handle.cancelled
    assert handle.emitted == 1


def test_consumer_exception_releases_the_call() -> None:
    handle = _slow_stream()
    client = _client(FakeTransport(streams={"streamGenerate": handle}))

    async def _scenario() -> None:
        async with client.stream_chat_completion("s1", [{"role": "user", "content": "hi"}]) as stream:
            async for _envelope in stream:
                raise ValueError("consumer bug")

    with pytest.raises(ValueError, match="consumer bug"):
        asyncio.run(_scenario())
    assert handle.listener_count() == 0
    assert handle.cancelled


def test_stream_must_be_entered_before_iterating() -> None:
    handle = _slow_stream()
    transport = FakeTransport(streams={"streamGenerate": handle})
    client = _client(transport)
    stream = client.stream_generate("s1", [{"role": "user", "content": "hi"}])

    assert not hasattr(stream, "__aiter__")
    assert transport.calls == []


def test_structured_stream_reports_done() -> None:
    handle = ScriptedStreamHandle(
        [
            ("item", {"sessionId": "s1", "data": '{"a"'}),
            ("item", {"sessionId": "s1", "data": ": 1}", "done": True}),
            ("end",),
        ]
    )
    transport = FakeTransport(streams={"streamGenerateStructured": handle})
    client = _client(transport)

    stream = client.stream_generate_structured("s1", [{"role": "user", "content": "go"}], "{}")
    chunks = asyncio.run(replay_stream(stream))

    assert "".join(chunk.data for chunk in chunks) == '{"a": 1}'
    assert [chunk.done for chunk in chunks] == [False, True]
    assert transport.calls[0][1]["schema"] == "{}"
