"""Native message schema spoken by the remote agent service.

Every type here mirrors a message of the service's RPC contract. Transport
payloads use camelCase keys and proto3 semantics, so a missing field always
means "zero value" rather than "error": :meth:`from_wire` never raises for an
absent key, only for a payload that is not a mapping at all.
"""

from __future__ import annotations

from collections.abc import Mapping, Sequence
from dataclasses import dataclass, field
from enum import Enum
from types import MappingProxyType
from typing import Any

from .errors import WireFormatError

_EMPTY: Mapping[str, str] = MappingProxyType({})


def _empty_metadata() -> Mapping[str, str]:
    # mappingproxy is unhashable before 3.12 and cannot be a plain default.
    return _EMPTY


class NativeRole(str, Enum):
    """Role names understood by the agent service."""

    USER = "user"
    ASSISTANT = "assistant"
    SYSTEM = "system"
    TOOL = "tool"
    UNKNOWN = "unknown"

    @classmethod
    def parse(cls, token: Any) -> NativeRole:
        """Resolve a role token, falling back to :attr:`UNKNOWN`.

        Both the current lowercase tokens and the legacy ``ROLE_*`` enum
        names are accepted.
        """

        if isinstance(token, NativeRole):
            return token
        if not isinstance(token, str):
            return cls.UNKNOWN
        return _ROLE_TOKENS.get(token, cls.UNKNOWN)


class FinishReason(str, Enum):
    """Reasons the service reports for ending a generation."""

    STOP = "stop"
    LENGTH = "length"
    TOOL_CALLS = "tool_calls"
    CONTENT_FILTER = "content_filter"
    ERROR = "error"

    @classmethod
    def parse(cls, token: Any) -> FinishReason | None:
        """Resolve a finish reason token; unknown or empty tokens map to ``None``."""

        if isinstance(token, FinishReason):
            return token
        if not isinstance(token, str):
            return None
        return _FINISH_TOKENS.get(token)


class ChunkType(str, Enum):
    """Kinds of chunks emitted by a streaming generation."""

    CONTENT = "content"
    TOOL_CALL = "tool_call"
    TOOL_RESULT = "tool_result"
    METADATA = "metadata"
    DONE = "done"

    @classmethod
    def parse(cls, token: Any) -> ChunkType:
        """Resolve a chunk type; anything unrecognised is treated as metadata."""

        if isinstance(token, ChunkType):
            return token
        if not isinstance(token, str):
            return cls.METADATA
        return _CHUNK_TOKENS.get(token, cls.METADATA)


_ROLE_TOKENS = {role.value: role for role in NativeRole}
_ROLE_TOKENS.update({f"ROLE_{role.name}": role for role in NativeRole})

_FINISH_TOKENS = {reason.value: reason for reason in FinishReason}
_FINISH_TOKENS.update({f"FINISH_REASON_{reason.name}": reason for reason in FinishReason})

_CHUNK_TOKENS = {kind.value: kind for kind in ChunkType}
_CHUNK_TOKENS.update({f"CHUNK_TYPE_{kind.name}": kind for kind in ChunkType})


@dataclass(frozen=True, slots=True)
class NativeMessage:
    """A single conversation message in the service's schema."""

    role: NativeRole
    content: str = ""
    metadata: Mapping[str, str] = field(default_factory=_empty_metadata)

    def __post_init__(self) -> None:
        if not isinstance(self.content, str):
            msg = "message content must be a string"
            raise TypeError(msg)
        object.__setattr__(self, "role", NativeRole.parse(self.role))
        object.__setattr__(self, "metadata", _freeze_str_map(self.metadata))

    @classmethod
    def from_wire(cls, payload: Any) -> NativeMessage:
        mapping = _coerce_mapping(payload, path="message")
        return cls(
            role=NativeRole.parse(mapping.get("role")),
            content=_as_str(mapping.get("content")),
            metadata=_as_str_map(mapping.get("metadata")),
        )

    def to_wire(self) -> dict[str, Any]:
        payload: dict[str, Any] = {"role": self.role.value, "content": self.content}
        if self.metadata:
            payload["metadata"] = dict(self.metadata)
        return payload


@dataclass(frozen=True, slots=True)
class ToolResult:
    """Outcome of a tool executed by the service."""

    success: bool = False
    output: str = ""
    error: str = ""
    metadata: Mapping[str, str] = field(default_factory=_empty_metadata)

    def __post_init__(self) -> None:
        object.__setattr__(self, "metadata", _freeze_str_map(self.metadata))

    @classmethod
    def from_wire(cls, payload: Any) -> ToolResult:
        mapping = _coerce_mapping(payload, path="toolResult")
        return cls(
            success=bool(mapping.get("success", False)),
            output=_as_str(mapping.get("output")),
            error=_as_str(mapping.get("error")),
            metadata=_as_str_map(mapping.get("metadata")),
        )


@dataclass(frozen=True, slots=True)
class ToolCall:
    """A tool invocation requested by the model.

    ``arguments`` is the serialized argument string exactly as produced by the
    model; it is never parsed here.
    """

    id: str
    name: str
    arguments: str = ""
    result: ToolResult | None = None

    @classmethod
    def from_wire(cls, payload: Any) -> ToolCall:
        mapping = _coerce_mapping(payload, path="toolCall")
        result_payload = mapping.get("result")
        return cls(
            id=_as_str(mapping.get("id")),
            name=_as_str(mapping.get("name")),
            arguments=_as_str(mapping.get("arguments")),
            result=ToolResult.from_wire(result_payload) if result_payload is not None else None,
        )


@dataclass(frozen=True, slots=True)
class Usage:
    """Token accounting for a generation."""

    prompt_tokens: int = 0
    completion_tokens: int = 0
    total_tokens: int = 0

    @classmethod
    def from_wire(cls, payload: Any) -> Usage:
        mapping = _coerce_mapping(payload, path="usage")
        return cls(
            prompt_tokens=_as_int(_pick(mapping, "promptTokens", "prompt_tokens")),
            completion_tokens=_as_int(_pick(mapping, "completionTokens", "completion_tokens")),
            total_tokens=_as_int(_pick(mapping, "totalTokens", "total_tokens")),
        )


@dataclass(frozen=True, slots=True)
class GenerateResponse:
    """Completed (non-streaming) generation result."""

    session_id: str = ""
    message: NativeMessage | None = None
    tool_calls: tuple[ToolCall, ...] = ()
    usage: Usage | None = None
    finish_reason: FinishReason | None = None
    metadata: Mapping[str, str] = field(default_factory=_empty_metadata)

    def __post_init__(self) -> None:
        object.__setattr__(self, "tool_calls", tuple(self.tool_calls))
        object.__setattr__(self, "finish_reason", FinishReason.parse(self.finish_reason))
        object.__setattr__(self, "metadata", _freeze_str_map(self.metadata))

    @classmethod
    def from_wire(cls, payload: Any) -> GenerateResponse:
        mapping = _coerce_mapping(payload, path="response")
        message_payload = mapping.get("message")
        usage_payload = mapping.get("usage")
        return cls(
            session_id=_as_str(_pick(mapping, "sessionId", "session_id")),
            message=NativeMessage.from_wire(message_payload) if message_payload is not None else None,
            tool_calls=tuple(
                ToolCall.from_wire(item)
                for item in _as_sequence(_pick(mapping, "toolCalls", "tool_calls"))
            ),
            usage=Usage.from_wire(usage_payload) if usage_payload is not None else None,
            finish_reason=FinishReason.parse(_pick(mapping, "finishReason", "finish_reason")),
            metadata=_as_str_map(mapping.get("metadata")),
        )


@dataclass(frozen=True, slots=True)
class GenerateChunk:
    """One unit of a streamed generation."""

    type: ChunkType
    session_id: str = ""
    content: str = ""
    tool_call: ToolCall | None = None
    tool_result: ToolResult | None = None
    metadata: Mapping[str, str] = field(default_factory=_empty_metadata)
    finish_reason: FinishReason | None = None

    def __post_init__(self) -> None:
        object.__setattr__(self, "type", ChunkType.parse(self.type))
        object.__setattr__(self, "finish_reason", FinishReason.parse(self.finish_reason))
        object.__setattr__(self, "metadata", _freeze_str_map(self.metadata))

    @classmethod
    def from_wire(cls, payload: Any) -> GenerateChunk:
        mapping = _coerce_mapping(payload, path="chunk")
        tool_call_payload = _pick(mapping, "toolCall", "tool_call")
        tool_result_payload = _pick(mapping, "toolResult", "tool_result")
        return cls(
            type=ChunkType.parse(mapping.get("type")),
            session_id=_as_str(_pick(mapping, "sessionId", "session_id")),
            content=_as_str(mapping.get("content")),
            tool_call=ToolCall.from_wire(tool_call_payload) if tool_call_payload is not None else None,
            tool_result=(
                ToolResult.from_wire(tool_result_payload) if tool_result_payload is not None else None
            ),
            metadata=_as_str_map(mapping.get("metadata")),
            finish_reason=FinishReason.parse(_pick(mapping, "finishReason", "finish_reason")),
        )


@dataclass(frozen=True, slots=True)
class StructuredResponse:
    """Completed structured-output generation; ``data`` is serialized JSON."""

    session_id: str = ""
    data: str = ""
    usage: Usage | None = None
    metadata: Mapping[str, str] = field(default_factory=_empty_metadata)

    def __post_init__(self) -> None:
        object.__setattr__(self, "metadata", _freeze_str_map(self.metadata))

    @classmethod
    def from_wire(cls, payload: Any) -> StructuredResponse:
        mapping = _coerce_mapping(payload, path="structuredResponse")
        usage_payload = mapping.get("usage")
        return cls(
            session_id=_as_str(_pick(mapping, "sessionId", "session_id")),
            data=_as_str(mapping.get("data")),
            usage=Usage.from_wire(usage_payload) if usage_payload is not None else None,
            metadata=_as_str_map(mapping.get("metadata")),
        )


@dataclass(frozen=True, slots=True)
class StructuredChunk:
    """Partial structured output emitted while streaming."""

    session_id: str = ""
    data: str = ""
    done: bool = False

    @classmethod
    def from_wire(cls, payload: Any) -> StructuredChunk:
        mapping = _coerce_mapping(payload, path="structuredChunk")
        return cls(
            session_id=_as_str(_pick(mapping, "sessionId", "session_id")),
            data=_as_str(mapping.get("data")),
            done=bool(mapping.get("done", False)),
        )


def _coerce_mapping(payload: Any, *, path: str) -> Mapping[str, Any]:
    if isinstance(payload, Mapping):
        return payload

    if hasattr(payload, "model_dump"):
        dumped = payload.model_dump()
        if isinstance(dumped, Mapping):
            return dumped

    msg = f"{path} payload must be a mapping, got {type(payload).__name__}"
    raise WireFormatError(msg)


def _pick(mapping: Mapping[str, Any], *keys: str) -> Any:
    for key in keys:
        value = mapping.get(key)
        if value is not None:
            return value
    return None


def _as_str(value: Any) -> str:
    if value is None:
        return ""
    if isinstance(value, str):
        return value
    return str(value)


def _as_int(value: Any) -> int:
    # int64 fields arrive as strings from JSON-mapped protobuf payloads.
    if value is None or isinstance(value, bool):
        return 0
    try:
        return int(value)
    except (TypeError, ValueError):
        return 0


def _as_sequence(value: Any) -> Sequence[Any]:
    if value is None or isinstance(value, (str, bytes, bytearray, Mapping)):
        return ()
    if isinstance(value, Sequence):
        return value
    return ()


def _as_str_map(value: Any) -> Mapping[str, str]:
    if not isinstance(value, Mapping):
        return _EMPTY
    return {str(key): _as_str(inner) for key, inner in value.items()}


def _freeze_str_map(value: Mapping[str, str] | None) -> Mapping[str, str]:
    if not value:
        return _EMPTY
    if not isinstance(value, Mapping):
        msg = "metadata must be a mapping of strings"
        raise TypeError(msg)
    return MappingProxyType({str(key): _as_str(inner) for key, inner in value.items()})
