"""Generation calls against the remote agent service."""

from __future__ import annotations

import logging
from collections.abc import AsyncIterator, Callable, Iterable
from contextlib import aclosing, asynccontextmanager
from typing import Any, AsyncContextManager, TypeVar

from .config import ClientConfig
from .core.adapters.base import SessionTransport
from .core.adapters.normalize import InputMessage, MessageSchema, messages_to_wire
from .core.adapters.openai import ChatCompletion, ChatCompletionChunk
from .core.adapters.projector import ResponseProjector
from .core.adapters.stream import StreamAdapter
from .core.message import GenerateChunk, GenerateResponse, StructuredChunk, StructuredResponse

LOGGER = logging.getLogger(__name__)

T = TypeVar("T")


class AgentClient:
    """Send conversations to agent sessions and read back the results.

    Every call accepts OpenAI-shaped or native messages and normalizes them
    before they reach the transport. Transport errors propagate unchanged.

    Streaming calls return async context managers::

        async with client.stream_generate(session_id, messages) as chunks:
            async for chunk in chunks:
                ...

    The server stream is opened when the block is entered and released when
    it exits, whether iteration finished, hit ``break`` or raised.
    """

    def __init__(
        self,
        transport: SessionTransport,
        *,
        config: ClientConfig | None = None,
        projector: ResponseProjector | None = None,
    ) -> None:
        self._transport = transport
        self._config = config or ClientConfig()
        self._projector = projector or ResponseProjector(self._config.projection_defaults())

    @property
    def config(self) -> ClientConfig:
        return self._config

    @property
    def projector(self) -> ResponseProjector:
        return self._projector

    async def generate(
        self,
        session_id: str,
        messages: Iterable[InputMessage],
        *,
        schema: MessageSchema | str = MessageSchema.AUTO,
    ) -> GenerateResponse:
        request = _build_request(session_id, messages, schema)
        LOGGER.debug("generate session=%s messages=%s", session_id, len(request["messages"]))
        payload = await self._transport.unary("generate", request)
        return GenerateResponse.from_wire(payload)

    def stream_generate(
        self,
        session_id: str,
        messages: Iterable[InputMessage],
        *,
        schema: MessageSchema | str = MessageSchema.AUTO,
    ) -> AsyncContextManager[AsyncIterator[GenerateChunk]]:
        request = _build_request(session_id, messages, schema)
        return self._stream("streamGenerate", request, GenerateChunk.from_wire)

    async def generate_structured(
        self,
        session_id: str,
        messages: Iterable[InputMessage],
        json_schema: str,
        *,
        schema: MessageSchema | str = MessageSchema.AUTO,
    ) -> StructuredResponse:
        """Ask for output matching ``json_schema`` (a serialized JSON Schema)."""

        request = _build_request(session_id, messages, schema)
        request["schema"] = json_schema
        LOGGER.debug("generateStructured session=%s messages=%s", session_id, len(request["messages"]))
        payload = await self._transport.unary("generateStructured", request)
        return StructuredResponse.from_wire(payload)

    def stream_generate_structured(
        self,
        session_id: str,
        messages: Iterable[InputMessage],
        json_schema: str,
        *,
        schema: MessageSchema | str = MessageSchema.AUTO,
    ) -> AsyncContextManager[AsyncIterator[StructuredChunk]]:
        request = _build_request(session_id, messages, schema)
        request["schema"] = json_schema
        return self._stream("streamGenerateStructured", request, StructuredChunk.from_wire)

    async def chat_completion(
        self,
        session_id: str,
        messages: Iterable[InputMessage],
        *,
        model: str | None = None,
    ) -> ChatCompletion:
        """Generate and return the result as a ``chat.completion`` object."""

        response = await self.generate(session_id, messages, schema=MessageSchema.OPENAI)
        return self._projector.project_response(response, model=model)

    def stream_chat_completion(
        self,
        session_id: str,
        messages: Iterable[InputMessage],
        *,
        model: str | None = None,
    ) -> AsyncContextManager[AsyncIterator[ChatCompletionChunk]]:
        """Stream the result as ``chat.completion.chunk`` objects."""

        chunks = self.stream_generate(session_id, messages, schema=MessageSchema.OPENAI)
        return self._projected(chunks, model)

    @asynccontextmanager
    async def _stream(
        self,
        method: str,
        request: dict[str, Any],
        decode: Callable[[Any], T],
    ) -> AsyncIterator[AsyncIterator[T]]:
        LOGGER.debug("%s session=%s messages=%s", method, request["sessionId"], len(request["messages"]))
        handle = self._transport.server_stream(method, request)
        name = f"{method}[{request['sessionId']}]"
        async with StreamAdapter(handle, decode=decode, name=name) as adapter:
            yield adapter

    @asynccontextmanager
    async def _projected(
        self,
        chunks: AsyncContextManager[AsyncIterator[GenerateChunk]],
        model: str | None,
    ) -> AsyncIterator[AsyncIterator[ChatCompletionChunk]]:
        async with chunks as source:
            async with aclosing(self._projector.project_stream(source, model=model)) as projected:
                yield projected


def _build_request(
    session_id: str,
    messages: Iterable[InputMessage],
    schema: MessageSchema | str,
) -> dict[str, Any]:
    return {"sessionId": session_id, "messages": messages_to_wire(messages, schema=schema)}


__all__ = ["AgentClient"]
