"""Pure conversion helpers between the native and OpenAI schemas.

Every function here is total over its declared input: enum members without a
counterpart on the other side resolve to a fixed fallback instead of raising.

* a native role outside the four shared roles maps to ``"user"``;
* any native finish reason other than ``stop``, ``length``, ``tool_calls`` and
  ``content_filter`` (notably ``error``) maps to ``None``;
* non-text content parts are dropped when collapsing to a native string.
"""

from __future__ import annotations

from collections.abc import Mapping
from typing import Any

from ..message import FinishReason, NativeMessage, NativeRole, Usage
from .openai import (
    ExternalFinishReason,
    OpenAIMessage,
    OpenAIRole,
    OpenAIUsage,
    TextPart,
    parse_openai_message,
)

_ROLE_TO_NATIVE: Mapping[str, NativeRole] = {
    "user": NativeRole.USER,
    "assistant": NativeRole.ASSISTANT,
    "system": NativeRole.SYSTEM,
    "tool": NativeRole.TOOL,
    "function": NativeRole.TOOL,
}

_ROLE_TO_EXTERNAL: Mapping[NativeRole, OpenAIRole] = {
    NativeRole.USER: "user",
    NativeRole.ASSISTANT: "assistant",
    NativeRole.SYSTEM: "system",
    NativeRole.TOOL: "tool",
}

_FINISH_TO_EXTERNAL: Mapping[FinishReason, ExternalFinishReason] = {
    FinishReason.STOP: "stop",
    FinishReason.LENGTH: "length",
    FinishReason.TOOL_CALLS: "tool_calls",
    FinishReason.CONTENT_FILTER: "content_filter",
}

FALLBACK_EXTERNAL_ROLE: OpenAIRole = "user"


def role_to_native(role: OpenAIRole | str) -> NativeRole:
    """Map an OpenAI role to its native counterpart (``function`` becomes ``tool``)."""

    return _ROLE_TO_NATIVE.get(role, NativeRole.UNKNOWN)


def role_to_external(role: NativeRole | str) -> OpenAIRole:
    """Map a native role to an OpenAI role, defaulting to ``"user"``."""

    return _ROLE_TO_EXTERNAL.get(NativeRole.parse(role), FALLBACK_EXTERNAL_ROLE)


def collapse_content(content: OpenAIMessage | Any) -> str:
    """Flatten OpenAI message content into the native plain string.

    Text parts are joined with newlines in their original order; every other
    part type is dropped, so an image-only message yields ``""``.
    """

    if isinstance(content, OpenAIMessage):
        content = content.content

    if content is None:
        return ""
    if isinstance(content, str):
        return content
    return "\n".join(part.text for part in content if isinstance(part, TextPart))


def message_to_native(message: OpenAIMessage | Mapping[str, Any]) -> NativeMessage:
    """Convert an OpenAI-shaped message into a :class:`NativeMessage`."""

    parsed = parse_openai_message(message)
    metadata = {"name": parsed.name} if parsed.name else {}
    return NativeMessage(
        role=role_to_native(parsed.role),
        content=collapse_content(parsed.content),
        metadata=metadata,
    )


def message_to_external(message: NativeMessage) -> OpenAIMessage:
    """Convert a :class:`NativeMessage` into an OpenAI message with string content."""

    name = message.metadata.get("name") or None
    return OpenAIMessage(
        role=role_to_external(message.role),
        content=message.content,
        name=name,
    )


def finish_reason_to_external(reason: FinishReason | str | None) -> ExternalFinishReason | None:
    """Map a native finish reason; reasons without an OpenAI equivalent become ``None``."""

    parsed = FinishReason.parse(reason)
    if parsed is None:
        return None
    return _FINISH_TO_EXTERNAL.get(parsed)


def usage_to_external(usage: Usage | Mapping[str, Any] | None) -> OpenAIUsage | None:
    """Rename usage fields; missing counts default to zero, absent usage to ``None``."""

    if usage is None:
        return None
    if not isinstance(usage, Usage):
        usage = Usage.from_wire(usage)

    return OpenAIUsage(
        prompt_tokens=usage.prompt_tokens,
        completion_tokens=usage.completion_tokens,
        total_tokens=usage.total_tokens,
    )


__all__ = [
    "FALLBACK_EXTERNAL_ROLE",
    "collapse_content",
    "finish_reason_to_external",
    "message_to_external",
    "message_to_native",
    "role_to_external",
    "role_to_native",
    "usage_to_external",
]
