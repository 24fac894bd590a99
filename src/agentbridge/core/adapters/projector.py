"""Project native generation results onto the OpenAI chat completion shape."""

from __future__ import annotations

import time
from collections.abc import AsyncIterable, AsyncIterator, Callable
from dataclasses import dataclass, field

from ..message import ChunkType, GenerateChunk, GenerateResponse
from .openai import (
    ChatCompletion,
    ChatCompletionChunk,
    Choice,
    Delta,
    ExternalFinishReason,
    OpenAIMessage,
    StreamChoice,
)
from .toolbridge import tool_call_to_delta, tool_calls_to_external
from .utils import finish_reason_to_external, message_to_external, usage_to_external

DEFAULT_MODEL_LABEL = "unknown"
DEFAULT_ID_PREFIX = "chatcmpl-"


@dataclass(frozen=True, slots=True)
class ProjectionDefaults:
    """Presentation defaults applied to projected envelopes.

    Attributes
    ----------
    model:
        Label used for ``model`` when the caller does not pass one.
    id_prefix:
        Prefix joined with the session id to form the envelope ``id``.
    clock:
        Returns the current time in seconds; ``created`` is its integer part.
    """

    model: str = DEFAULT_MODEL_LABEL
    id_prefix: str = DEFAULT_ID_PREFIX
    clock: Callable[[], float] = field(default=time.time)


class ResponseProjector:
    """Build OpenAI-shaped envelopes from native responses and chunks.

    Projection never mutates its input and has no side effects.
    """

    def __init__(self, defaults: ProjectionDefaults | None = None) -> None:
        self._defaults = defaults or ProjectionDefaults()

    @property
    def defaults(self) -> ProjectionDefaults:
        return self._defaults

    def project_response(
        self,
        response: GenerateResponse,
        *,
        model: str | None = None,
    ) -> ChatCompletion:
        if response.message is not None:
            message = message_to_external(response.message)
        else:
            message = OpenAIMessage(role="assistant", content="")

        if response.tool_calls:
            message = message.model_copy(
                update={"tool_calls": tool_calls_to_external(response.tool_calls)}
            )

        return ChatCompletion(
            id=self._envelope_id(response.session_id),
            created=self._created(),
            model=model or self._defaults.model,
            choices=[
                Choice(
                    index=0,
                    message=message,
                    finish_reason=finish_reason_to_external(response.finish_reason),
                )
            ],
            usage=usage_to_external(response.usage),
        )

    def project_chunk(
        self,
        chunk: GenerateChunk,
        *,
        model: str | None = None,
    ) -> ChatCompletionChunk:
        """Project one streamed chunk.

        Content chunks carry ``delta.content``, tool call chunks a one-element
        ``delta.tool_calls``. A chunk carrying an explicit finish reason, of any
        type, becomes an empty delta with the converted reason. A ``done`` chunk
        also carries an empty delta and finishes with ``"stop"`` when no reason
        was given. Tool result and metadata chunks project to an empty delta.
        """

        delta = Delta()
        if chunk.finish_reason is None:
            if chunk.type is ChunkType.CONTENT and chunk.content:
                delta = Delta(content=chunk.content)
            elif chunk.type is ChunkType.TOOL_CALL and chunk.tool_call is not None:
                delta = Delta(tool_calls=[tool_call_to_delta(chunk.tool_call)])

        return ChatCompletionChunk(
            id=self._envelope_id(chunk.session_id),
            created=self._created(),
            model=model or self._defaults.model,
            choices=[StreamChoice(index=0, delta=delta, finish_reason=_chunk_finish_reason(chunk))],
        )

    async def project_stream(
        self,
        chunks: AsyncIterable[GenerateChunk],
        *,
        model: str | None = None,
    ) -> AsyncIterator[ChatCompletionChunk]:
        """Project every chunk of ``chunks``, closing the source on every exit path."""

        try:
            async for chunk in chunks:
                yield self.project_chunk(chunk, model=model)
        finally:
            closer = getattr(chunks, "aclose", None)
            if closer is not None:
                await closer()

    def _envelope_id(self, session_id: str) -> str:
        return f"{self._defaults.id_prefix}{session_id}"

    def _created(self) -> int:
        return int(self._defaults.clock())


def _chunk_finish_reason(chunk: GenerateChunk) -> ExternalFinishReason | None:
    if chunk.finish_reason is not None:
        return finish_reason_to_external(chunk.finish_reason)
    if chunk.type is ChunkType.DONE:
        return "stop"
    return None


__all__ = [
    "DEFAULT_ID_PREFIX",
    "DEFAULT_MODEL_LABEL",
    "ProjectionDefaults",
    "ResponseProjector",
]
