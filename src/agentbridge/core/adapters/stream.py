"""Pull-based async iteration over push-style stream handles."""

from __future__ import annotations

import asyncio
import logging
import threading
from collections import deque
from collections.abc import Callable
from enum import Enum
from functools import partial
from typing import Any, AsyncContextManager, AsyncIterator, Deque, Dict, Generic, List, Optional, Tuple, TypeVar

from ..errors import StreamProtocolError
from .base import END, ERROR, ITEM, STREAM_EVENTS, StreamHandle

LOGGER = logging.getLogger(__name__)

T = TypeVar("T")

_Notification = Tuple[str, Any]


class StreamState(str, Enum):
    """Lifecycle of a :class:`StreamAdapter`."""

    IDLE = "idle"
    AWAITING_ITEM = "awaiting_item"
    ENDED = "ended"
    FAILED = "failed"


_TERMINAL = frozenset({StreamState.ENDED, StreamState.FAILED})


class StreamAdapter(AsyncIterator[T], Generic[T]):
    """Async iterator over a :class:`StreamHandle`.

    Each ``__anext__`` resolves with the next ``item``, raises
    :class:`StopAsyncIteration` once ``end`` fired, or re-raises the transport
    exception once ``error`` fired. Both terminal outcomes are sticky: later
    calls resolve immediately with the same outcome.

    The adapter serves a single consumer and must be iterated inside
    ``async with``; pulling outside that scope, or while another pull is still
    pending, raises :class:`StreamProtocolError`.

    Listener registration happens on the first pull and is released on every
    exit path: ``end``, ``error``, leaving the ``async with`` block (``break``,
    ``return`` or an exception in the consumer), :meth:`aclose` and
    cancellation of a pending pull. Closing a stream that has not terminated
    also cancels the handle when it supports ``cancel()``.

    Notifications that arrive while no pull is pending are parked in arrival
    order, and the handle is paused until they are drained when it supports
    ``pause()``/``resume()``. Notifications fired from a thread other than the
    consuming event loop's are handed over with ``call_soon_threadsafe``.
    """

    def __init__(
        self,
        handle: StreamHandle,
        *,
        decode: Callable[[Any], T] | None = None,
        name: str = "stream",
    ) -> None:
        self._handle = handle
        self._decode = decode
        self._name = name
        self._state = StreamState.IDLE
        self._error: Optional[BaseException] = None
        self._loop: Optional[asyncio.AbstractEventLoop] = None
        self._waiter: Optional[asyncio.Future[_Notification]] = None
        self._parked: Deque[_Notification] = deque()
        self._listeners: Dict[str, Callable[..., None]] = {}
        self._lock = threading.RLock()
        self._entered = False
        self._subscribed = False
        self._released = False
        self._paused = False
        self._delivered = 0

    @property
    def state(self) -> StreamState:
        return self._state

    @property
    def released(self) -> bool:
        """Whether all listener registrations have been given back to the handle."""

        return self._released

    def __aiter__(self) -> StreamAdapter[T]:
        return self

    async def __aenter__(self) -> StreamAdapter[T]:
        self._entered = True
        return self

    async def __aexit__(self, *exc_info: Any) -> None:
        await self.aclose()

    async def __anext__(self) -> T:
        if self._state is StreamState.ENDED:
            raise StopAsyncIteration
        if self._state is StreamState.FAILED:
            assert self._error is not None
            raise self._error
        if self._state is StreamState.AWAITING_ITEM:
            msg = f"{self._name}: next item requested while a previous request is pending"
            raise StreamProtocolError(msg)
        if not self._entered:
            msg = f"{self._name}: iterate inside 'async with' so the stream is always released"
            raise StreamProtocolError(msg)

        if self._loop is None:
            self._loop = asyncio.get_running_loop()
        if not self._subscribed:
            self._subscribe()

        if self._parked:
            notification = self._parked.popleft()
            if not self._parked:
                self._resume_handle()
            return self._settle(notification)

        self._state = StreamState.AWAITING_ITEM
        waiter: asyncio.Future[_Notification] = self._loop.create_future()
        self._waiter = waiter
        try:
            notification = await waiter
        except asyncio.CancelledError:
            LOGGER.info("%s: pending read cancelled, releasing stream", self._name)
            self._waiter = None
            self._state = StreamState.IDLE
            self.close()
            raise
        self._waiter = None
        return self._settle(notification)

    async def aclose(self) -> None:
        """Stop iterating and release the underlying stream."""

        self.close()

    def close(self) -> None:
        """Synchronous variant of :meth:`aclose`."""

        if self._released:
            return

        if self._state in _TERMINAL:
            self._release()
            return

        # A parked end or error means the call already finished on its own.
        live = all(event == ITEM for event, _ in self._parked)
        self._release()
        self._parked.clear()
        self._state = StreamState.ENDED
        if live:
            canceller = getattr(self._handle, "cancel", None)
            if callable(canceller):
                canceller()
            LOGGER.info("%s: closed by consumer after %s item(s)", self._name, self._delivered)

        waiter = self._waiter
        if waiter is not None and not waiter.done():
            waiter.set_result((END, None))

    def _settle(self, notification: _Notification) -> T:
        event, payload = notification
        if event == ITEM:
            self._state = StreamState.IDLE
            self._delivered += 1
            LOGGER.debug("%s: item #%s", self._name, self._delivered)
            if self._decode is None:
                return payload
            return self._decode(payload)

        self._release()
        self._parked.clear()
        if event == END:
            self._state = StreamState.ENDED
            LOGGER.info("%s: ended after %s item(s)", self._name, self._delivered)
            raise StopAsyncIteration

        self._state = StreamState.FAILED
        self._error = payload
        LOGGER.info("%s: failed after %s item(s): %r", self._name, self._delivered, payload)
        raise payload

    def _subscribe(self) -> None:
        self._subscribed = True
        with self._lock:
            for event in STREAM_EVENTS:
                self._arm(event)

    def _arm(self, event: str) -> None:
        listener = partial(self._on_event, event)
        self._listeners[event] = listener
        self._handle.once(event, listener)

    def _release(self) -> None:
        with self._lock:
            self._released = True
            self._detach_listeners()

    def _detach_listeners(self) -> None:
        listeners = list(self._listeners.items())
        self._listeners.clear()
        for event, listener in listeners:
            self._handle.remove_listener(event, listener)

    def _on_event(self, event: str, *args: Any) -> None:
        # Runs on the transport's thread or loop; listeners are one-shot, so
        # re-arm before handing the notification over.
        payload = args[0] if args else None
        with self._lock:
            if self._released:
                return
            self._listeners.pop(event, None)
            if event == ITEM:
                self._arm(ITEM)
            else:
                self._detach_listeners()

        loop = self._loop
        if loop is None or loop.is_closed():
            return
        if _running_loop() is loop:
            self._deliver(event, payload)
        else:
            loop.call_soon_threadsafe(self._deliver, event, payload)

    def _deliver(self, event: str, payload: Any) -> None:
        if self._state in _TERMINAL:
            return

        if event == ERROR and not isinstance(payload, BaseException):
            payload = RuntimeError(f"{self._name} failed: {payload!r}")

        waiter = self._waiter
        if waiter is not None and not waiter.done():
            waiter.set_result((event, payload))
            return

        self._parked.append((event, payload))
        if event == ITEM:
            self._pause_handle()

    def _pause_handle(self) -> None:
        if self._paused:
            return
        pause = getattr(self._handle, "pause", None)
        if callable(pause):
            pause()
            self._paused = True

    def _resume_handle(self) -> None:
        if not self._paused:
            return
        resume = getattr(self._handle, "resume", None)
        if callable(resume):
            resume()
        self._paused = False


def _running_loop() -> Optional[asyncio.AbstractEventLoop]:
    try:
        return asyncio.get_running_loop()
    except RuntimeError:
        return None


async def replay_stream(stream: AsyncContextManager[AsyncIterator[T]]) -> List[T]:
    """Enter ``stream``, collect every item it yields and release it again.

    Works with a :class:`StreamAdapter` or with the streaming calls of
    :class:`~agentbridge.client.AgentClient`.
    """

    async with stream as items:
        return [item async for item in items]


__all__ = ["StreamAdapter", "StreamState", "replay_stream"]
