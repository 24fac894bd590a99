"""Transport interfaces consumed by the bridge layer."""

from __future__ import annotations

from collections.abc import Callable, Mapping
from typing import Any, Protocol, runtime_checkable

ITEM = "item"
END = "end"
ERROR = "error"

STREAM_EVENTS: tuple[str, ...] = (ITEM, END, ERROR)


@runtime_checkable
class StreamHandle(Protocol):
    """Push-style handle for one live server stream.

    The handle fires ``item`` (with the payload), ``end`` (no argument) or
    ``error`` (with the exception). Listeners registered through :meth:`once`
    fire at most one time and are dropped by the handle afterwards.

    Handles may also provide ``cancel()`` to abort the underlying call and
    ``pause()`` / ``resume()`` for flow control; the stream adapter uses them
    when present.
    """

    def once(self, event: str, listener: Callable[..., Any]) -> Any:
        """Register ``listener`` for the next firing of ``event``."""

    def remove_listener(self, event: str, listener: Callable[..., Any]) -> Any:
        """Unregister a listener that has not fired yet."""


class SessionTransport(Protocol):
    """Session-oriented RPC transport to the remote agent service."""

    async def unary(self, method: str, request: Mapping[str, Any]) -> Mapping[str, Any]:
        """Perform a request/response call and return the decoded response payload."""

    def server_stream(self, method: str, request: Mapping[str, Any]) -> StreamHandle:
        """Start a server-streaming call and return its handle."""


__all__ = [
    "END",
    "ERROR",
    "ITEM",
    "STREAM_EVENTS",
    "SessionTransport",
    "StreamHandle",
]
