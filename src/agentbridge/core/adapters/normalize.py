"""Normalize caller-supplied messages into the native schema before sending.

Callers may hand over OpenAI-shaped messages, native messages, or plain
mappings in either shape. Typed instances are routed by their type. Plain
mappings are routed by ``schema``:

``MessageSchema.AUTO``
    A mapping whose ``role`` is one of ``user``, ``assistant``, ``system``,
    ``tool`` or ``function`` is treated as OpenAI-shaped; anything else is
    taken as already native. The native protocol uses the same four lowercase
    role tokens, so a native mapping with one of those roles is read as OpenAI
    and loses its ``metadata``. Only mappings carrying legacy ``ROLE_*`` tokens
    (or unknown roles) take the native path. Pass an explicit schema to avoid
    this.
``MessageSchema.OPENAI`` / ``MessageSchema.NATIVE``
    Every mapping is converted through that schema.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable, Mapping
from dataclasses import replace
from enum import Enum
from typing import Any, Union

from ..errors import BridgeError
from ..message import NativeMessage
from .openai import OPENAI_ROLES, OpenAIMessage
from .utils import message_to_native

LOGGER = logging.getLogger(__name__)

InputMessage = Union[NativeMessage, OpenAIMessage, Mapping[str, Any]]


class MessageSchema(str, Enum):
    """Schema tag for caller-supplied message mappings."""

    AUTO = "auto"
    OPENAI = "openai"
    NATIVE = "native"


def is_openai_format(message: InputMessage) -> bool:
    """Return whether ``message`` would be converted as OpenAI-shaped in auto mode."""

    if isinstance(message, OpenAIMessage):
        return True
    if isinstance(message, NativeMessage):
        return False
    if isinstance(message, Mapping):
        role = message.get("role")
        return isinstance(role, str) and role in OPENAI_ROLES
    return False


def normalize_message(
    message: InputMessage,
    *,
    schema: MessageSchema | str = MessageSchema.AUTO,
) -> NativeMessage:
    """Return a new :class:`NativeMessage` for ``message``; the input is never mutated."""

    schema = MessageSchema(schema)

    if isinstance(message, NativeMessage):
        return replace(message)
    if isinstance(message, OpenAIMessage):
        return message_to_native(message)
    if not isinstance(message, Mapping):
        msg = f"messages must be mappings or message objects, got {type(message).__name__}"
        raise BridgeError(msg)

    if schema is MessageSchema.OPENAI or (
        schema is MessageSchema.AUTO and is_openai_format(message)
    ):
        return message_to_native(message)
    return NativeMessage.from_wire(message)


def normalize_messages(
    messages: Iterable[InputMessage],
    *,
    schema: MessageSchema | str = MessageSchema.AUTO,
) -> list[NativeMessage]:
    """Normalize a conversation, preserving order and message count."""

    normalized = [normalize_message(message, schema=schema) for message in messages]
    LOGGER.debug("normalized %s message(s) schema=%s", len(normalized), MessageSchema(schema).value)
    return normalized


def messages_to_wire(
    messages: Iterable[InputMessage],
    *,
    schema: MessageSchema | str = MessageSchema.AUTO,
) -> list[dict[str, Any]]:
    """Normalize messages and render them as transport payloads."""

    return [message.to_wire() for message in normalize_messages(messages, schema=schema)]


__all__ = [
    "InputMessage",
    "MessageSchema",
    "is_openai_format",
    "messages_to_wire",
    "normalize_message",
    "normalize_messages",
]
