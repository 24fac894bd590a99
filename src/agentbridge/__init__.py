"""Client-side bridge between OpenAI-style chat payloads and a remote agent service.

The package converts messages between the OpenAI chat completion schema and
the agent service's native schema, normalizes caller messages before they are
sent, turns push-style transport streams into async iterators, and projects
native results back onto ``chat.completion`` envelopes.
"""

from __future__ import annotations

from .client import AgentClient
from .config import ClientConfig
from .core import BridgeError, NativeMessage, NativeRole, StreamProtocolError, WireFormatError
from .core.adapters import (
    MessageSchema,
    ProjectionDefaults,
    ResponseProjector,
    StreamAdapter,
    normalize_messages,
)

__all__ = [
    "AgentClient",
    "BridgeError",
    "ClientConfig",
    "MessageSchema",
    "NativeMessage",
    "NativeRole",
    "ProjectionDefaults",
    "ResponseProjector",
    "StreamAdapter",
    "StreamProtocolError",
    "WireFormatError",
    "normalize_messages",
]

__version__ = "0.1.0"
