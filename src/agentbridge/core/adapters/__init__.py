"""Schema conversion, message normalization, stream adaptation and projection."""

from __future__ import annotations

from .base import SessionTransport, StreamHandle
from .normalize import MessageSchema, is_openai_format, messages_to_wire, normalize_messages
from .projector import ProjectionDefaults, ResponseProjector
from .stream import StreamAdapter, StreamState, replay_stream
from .toolbridge import tool_call_to_external, tool_call_to_native
from .utils import (
    finish_reason_to_external,
    message_to_external,
    message_to_native,
    role_to_external,
    role_to_native,
    usage_to_external,
)

__all__ = [
    "MessageSchema",
    "ProjectionDefaults",
    "ResponseProjector",
    "SessionTransport",
    "StreamAdapter",
    "StreamHandle",
    "StreamState",
    "finish_reason_to_external",
    "is_openai_format",
    "message_to_external",
    "message_to_native",
    "messages_to_wire",
    "normalize_messages",
    "replay_stream",
    "role_to_external",
    "role_to_native",
    "tool_call_to_external",
    "tool_call_to_native",
    "usage_to_external",
]
