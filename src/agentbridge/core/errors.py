"""Custom exception types used by the agentbridge core."""

from __future__ import annotations


class BridgeError(RuntimeError):
    """Raised when a payload cannot be bridged between schemas."""

    def __init__(self, message: str) -> None:
        super().__init__(message)


class WireFormatError(BridgeError):
    """Raised when a transport payload does not have the expected shape."""


class StreamProtocolError(BridgeError):
    """Raised when a stream consumer breaks the single-reader contract."""
