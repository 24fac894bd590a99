"""Mapping helpers between native tool calls and the OpenAI tool call shape.

Native tool calls are flat (``id``, ``name``, ``arguments``); OpenAI nests
``name`` and ``arguments`` under a ``function`` object. Arguments stay an
opaque serialized string in both directions: decoding them is up to whoever
executes the tool.
"""

from __future__ import annotations

from collections.abc import Iterable, Mapping
from typing import Any

from pydantic import ValidationError

from ..errors import BridgeError
from ..message import ToolCall
from .openai import FunctionDelta, OpenAIFunctionCall, OpenAIToolCall, ToolCallDelta


def tool_call_to_native(tool_call: OpenAIToolCall | Mapping[str, Any]) -> ToolCall:
    """Flatten an OpenAI tool call into a native :class:`ToolCall`."""

    if not isinstance(tool_call, OpenAIToolCall):
        try:
            tool_call = OpenAIToolCall.model_validate(tool_call)
        except ValidationError as exc:
            msg = "invalid OpenAI tool call payload"
            raise BridgeError(msg) from exc

    return ToolCall(
        id=tool_call.id,
        name=tool_call.function.name,
        arguments=tool_call.function.arguments,
    )


def tool_call_to_external(tool_call: ToolCall) -> OpenAIToolCall:
    """Nest a native :class:`ToolCall` under an OpenAI ``function`` object."""

    return OpenAIToolCall(
        id=tool_call.id,
        function=OpenAIFunctionCall(name=tool_call.name, arguments=tool_call.arguments),
    )


def tool_calls_to_external(tool_calls: Iterable[ToolCall]) -> list[OpenAIToolCall]:
    return [tool_call_to_external(call) for call in tool_calls]


def tool_call_to_delta(tool_call: ToolCall, *, index: int = 0) -> ToolCallDelta:
    """Render a streamed native tool call as a single OpenAI tool call delta."""

    return ToolCallDelta(
        index=index,
        id=tool_call.id,
        function=FunctionDelta(name=tool_call.name, arguments=tool_call.arguments),
    )


__all__ = [
    "tool_call_to_delta",
    "tool_call_to_external",
    "tool_call_to_native",
    "tool_calls_to_external",
]
