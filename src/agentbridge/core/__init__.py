"""Core data structures and schema bridge for agentbridge."""

from __future__ import annotations

from .errors import BridgeError, StreamProtocolError, WireFormatError
from .message import (
    ChunkType,
    FinishReason,
    GenerateChunk,
    GenerateResponse,
    NativeMessage,
    NativeRole,
    StructuredChunk,
    StructuredResponse,
    ToolCall,
    ToolResult,
    Usage,
)

__all__ = [
    "BridgeError",
    "ChunkType",
    "FinishReason",
    "GenerateChunk",
    "GenerateResponse",
    "NativeMessage",
    "NativeRole",
    "StreamProtocolError",
    "StructuredChunk",
    "StructuredResponse",
    "ToolCall",
    "ToolResult",
    "Usage",
    "WireFormatError",
]
