"""OpenAI-compatible chat completion schema."""

from __future__ import annotations

from typing import Annotated, Any, Literal, Union

from pydantic import BaseModel, ConfigDict, Discriminator, Field, Tag, ValidationError

from ..errors import BridgeError

OpenAIRole = Literal["user", "assistant", "system", "tool", "function"]
ExternalFinishReason = Literal["stop", "length", "tool_calls", "content_filter"]

OPENAI_ROLES: frozenset[str] = frozenset({"user", "assistant", "system", "tool", "function"})


class ImageUrl(BaseModel):
    """Reference to an image attached to a message."""

    model_config = ConfigDict(frozen=True)

    url: str
    detail: Literal["auto", "low", "high"] | None = None


class TextPart(BaseModel):
    """Plain text content part."""

    model_config = ConfigDict(frozen=True)

    type: Literal["text"] = "text"
    text: str


class ImagePart(BaseModel):
    """Image reference content part."""

    model_config = ConfigDict(frozen=True)

    type: Literal["image_url"] = "image_url"
    image_url: ImageUrl


class OtherPart(BaseModel):
    """Any content part type this bridge does not model (audio, files, ...)."""

    model_config = ConfigDict(frozen=True, extra="allow")

    type: str


def _part_tag(value: Any) -> str:
    kind = value.get("type") if isinstance(value, dict) else getattr(value, "type", None)
    if kind in ("text", "image_url"):
        return kind
    return "other"


ContentPart = Annotated[
    Union[
        Annotated[TextPart, Tag("text")],
        Annotated[ImagePart, Tag("image_url")],
        Annotated[OtherPart, Tag("other")],
    ],
    Discriminator(_part_tag),
]


def is_text_part(part: ContentPart) -> bool:
    return isinstance(part, TextPart)


def is_image_part(part: ContentPart) -> bool:
    return isinstance(part, ImagePart)


class OpenAIFunctionCall(BaseModel):
    model_config = ConfigDict(frozen=True)

    name: str
    arguments: str = ""


class OpenAIToolCall(BaseModel):
    """Tool call with name and arguments nested under ``function``."""

    model_config = ConfigDict(frozen=True)

    id: str
    type: Literal["function"] = "function"
    function: OpenAIFunctionCall


class OpenAIMessage(BaseModel):
    """A chat message in the OpenAI chat completion shape.

    ``content`` is either a plain string or an ordered list of typed parts.
    """

    model_config = ConfigDict(frozen=True)

    role: OpenAIRole
    content: str | list[ContentPart] | None = None
    name: str | None = None
    tool_calls: list[OpenAIToolCall] | None = None
    tool_call_id: str | None = None


class OpenAIUsage(BaseModel):
    prompt_tokens: int = 0
    completion_tokens: int = 0
    total_tokens: int = 0


class Choice(BaseModel):
    index: int = 0
    message: OpenAIMessage
    finish_reason: ExternalFinishReason | None = None


class ChatCompletion(BaseModel):
    """Non-streaming ``chat.completion`` envelope."""

    id: str
    object: Literal["chat.completion"] = "chat.completion"
    created: int
    model: str
    choices: list[Choice]
    usage: OpenAIUsage | None = None

    def to_dict(self) -> dict[str, Any]:
        """Dump to the JSON shape returned by chat completion APIs."""

        return _dump_with_finish_reason(self)


class FunctionDelta(BaseModel):
    name: str | None = None
    arguments: str | None = None


class ToolCallDelta(BaseModel):
    index: int = 0
    id: str | None = None
    type: Literal["function"] | None = "function"
    function: FunctionDelta | None = None


class Delta(BaseModel):
    role: OpenAIRole | None = None
    content: str | None = None
    tool_calls: list[ToolCallDelta] | None = None


class StreamChoice(BaseModel):
    index: int = 0
    delta: Delta = Field(default_factory=Delta)
    finish_reason: ExternalFinishReason | None = None


class ChatCompletionChunk(BaseModel):
    """Streaming ``chat.completion.chunk`` envelope."""

    id: str
    object: Literal["chat.completion.chunk"] = "chat.completion.chunk"
    created: int
    model: str
    choices: list[StreamChoice]

    def to_dict(self) -> dict[str, Any]:
        return _dump_with_finish_reason(self)


def parse_openai_message(payload: OpenAIMessage | Any) -> OpenAIMessage:
    """Validate a mapping (or model) as an :class:`OpenAIMessage`."""

    if isinstance(payload, OpenAIMessage):
        return payload

    if isinstance(payload, BaseModel):
        payload = payload.model_dump()

    try:
        return OpenAIMessage.model_validate(payload)
    except ValidationError as exc:
        msg = f"invalid OpenAI message payload: {exc.error_count()} validation error(s)"
        raise BridgeError(msg) from exc


def _dump_with_finish_reason(model: ChatCompletion | ChatCompletionChunk) -> dict[str, Any]:
    # finish_reason is part of every choice even when it is null.
    dumped = model.model_dump(exclude_none=True)
    for payload, choice in zip(dumped["choices"], model.choices):
        payload["finish_reason"] = choice.finish_reason
    return dumped


__all__ = [
    "ChatCompletion",
    "ChatCompletionChunk",
    "Choice",
    "ContentPart",
    "Delta",
    "ExternalFinishReason",
    "FunctionDelta",
    "ImagePart",
    "ImageUrl",
    "OPENAI_ROLES",
    "OpenAIFunctionCall",
    "OpenAIMessage",
    "OpenAIRole",
    "OpenAIToolCall",
    "OpenAIUsage",
    "OtherPart",
    "StreamChoice",
    "TextPart",
    "ToolCallDelta",
    "is_image_part",
    "is_text_part",
    "parse_openai_message",
]
