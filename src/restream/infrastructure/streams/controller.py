"""Synchronous single-subscription stream controller"""

from __future__ import annotations

import asyncio
import logging
from collections import deque
from typing import Any, Awaitable, Callable, Deque, Generic, Optional, Tuple

from restream.infrastructure.streams.base import (
    DataHandler,
    DoneHandler,
    ErrorHandler,
    Stream,
    StreamStateError,
    StreamSubscription,
    T,
)

logger = logging.getLogger(__name__)

_DATA = "data"
_ERROR = "error"
_DONE = "done"

Hook = Callable[[], None]


class StreamController(Generic[T]):
    """Controller feeding a single-subscription stream

    Events are delivered synchronously while the listener is active. They are
    buffered before a listener exists and while it is paused, and dropped once
    it has cancelled.
    """

    def __init__(
        self,
        on_listen: Optional[Hook] = None,
        on_pause: Optional[Hook] = None,
        on_resume: Optional[Hook] = None,
        on_cancel: Optional[Hook] = None,
    ):
        """Initialize controller

        Args:
            on_listen: Called when the stream gets its listener
            on_pause: Called when the listener goes from running to paused
            on_resume: Called when the listener goes from paused to running
            on_cancel: Called when the listener cancels
        """
        self.on_listen = on_listen
        self.on_pause = on_pause
        self.on_resume = on_resume
        self.on_cancel = on_cancel
        self._pending: Deque[Tuple[str, Any]] = deque()
        self._subscription: Optional[_ControllerSubscription[T]] = None
        self._listened = False
        self._closed = False
        self._stream: Stream[T] = _ControllerStream(self)

    @property
    def stream(self) -> Stream[T]:
        """The stream this controller feeds"""
        return self._stream

    @property
    def is_closed(self) -> bool:
        return self._closed

    @property
    def has_listener(self) -> bool:
        sub = self._subscription
        return sub is not None and sub.is_active

    @property
    def is_paused(self) -> bool:
        sub = self._subscription
        return sub is not None and sub.is_paused

    def add(self, data: T) -> None:
        """Send a data event

        Raises:
            StreamStateError: If the controller is closed
        """
        self._check_open()
        self._dispatch(_DATA, data)

    def add_error(self, error: BaseException) -> None:
        """Send an error event

        Raises:
            StreamStateError: If the controller is closed
        """
        self._check_open()
        self._dispatch(_ERROR, error)

    def close(self) -> None:
        """Send the done event. Closing twice is a no-op."""
        if self._closed:
            return
        self._closed = True
        self._dispatch(_DONE, None)

    def _check_open(self) -> None:
        if self._closed:
            raise StreamStateError("Cannot add event after closing")

    def _dispatch(self, kind: str, value: Any) -> None:
        if self._subscription is None:
            self._pending.append((kind, value))
            return
        self._subscription._enqueue(kind, value)

    def _subscribe(
        self,
        on_data: Optional[DataHandler],
        on_error: Optional[ErrorHandler],
        on_done: Optional[DoneHandler],
        cancel_on_error: bool,
    ) -> _ControllerSubscription[T]:
        if self._listened:
            raise StreamStateError("Stream has already been listened to")
        self._listened = True

        subscription: _ControllerSubscription[T] = _ControllerSubscription(
            self, on_data, on_error, on_done, cancel_on_error
        )
        subscription._pending.extend(self._pending)
        self._pending.clear()
        self._subscription = subscription

        if self.on_listen is not None:
            self.on_listen()
        subscription._flush()
        return subscription


class _ControllerStream(Stream[T]):
    def __init__(self, controller: StreamController[T]):
        self._controller = controller

    def listen(
        self,
        on_data: Optional[DataHandler] = None,
        *,
        on_error: Optional[ErrorHandler] = None,
        on_done: Optional[DoneHandler] = None,
        cancel_on_error: bool = False,
    ) -> StreamSubscription[T]:
        return self._controller._subscribe(on_data, on_error, on_done, cancel_on_error)


class _ControllerSubscription(StreamSubscription[T]):
    def __init__(
        self,
        controller: StreamController[T],
        on_data: Optional[DataHandler],
        on_error: Optional[ErrorHandler],
        on_done: Optional[DoneHandler],
        cancel_on_error: bool,
    ):
        self._controller = controller
        self._on_data = on_data
        self._on_error = on_error
        self._on_done = on_done
        self._cancel_on_error = cancel_on_error
        self._pending: Deque[Tuple[str, Any]] = deque()
        self._pause_count = 0
        self._cancelled = False
        self._done = False
        self._flushing = False

    @property
    def is_paused(self) -> bool:
        return self._pause_count > 0

    @property
    def is_active(self) -> bool:
        return not (self._cancelled or self._done)

    def pause(self, resume_signal: Optional[Awaitable[Any]] = None) -> None:
        if not self.is_active:
            return
        self._pause_count += 1
        if resume_signal is not None:
            asyncio.ensure_future(resume_signal).add_done_callback(lambda _: self.resume())
        if self._pause_count == 1 and self._controller.on_pause is not None:
            self._controller.on_pause()

    def resume(self) -> None:
        if not self.is_active or self._pause_count == 0:
            return
        self._pause_count -= 1
        if self._pause_count == 0:
            if self._controller.on_resume is not None:
                self._controller.on_resume()
            self._flush()

    def cancel(self) -> None:
        if not self.is_active:
            return
        self._cancelled = True
        self._pending.clear()
        if self._controller.on_cancel is not None:
            self._controller.on_cancel()

    def _enqueue(self, kind: str, value: Any) -> None:
        if not self.is_active:
            return
        self._pending.append((kind, value))
        self._flush()

    def _flush(self) -> None:
        # Re-entrant adds from inside a callback are queued and delivered by the outer loop
        if self._flushing:
            return
        self._flushing = True
        try:
            while self._pending and self.is_active and not self.is_paused:
                kind, value = self._pending.popleft()
                self._deliver(kind, value)
        finally:
            self._flushing = False

    def _deliver(self, kind: str, value: Any) -> None:
        if kind == _DATA:
            if self._on_data is not None:
                self._on_data(value)
        elif kind == _ERROR:
            if self._on_error is not None:
                self._on_error(value)
            else:
                logger.error(f"Unhandled stream error: {value!r}", exc_info=value)
            if self._cancel_on_error:
                self.cancel()
        else:
            self._done = True
            self._pending.clear()
            if self._on_done is not None:
                self._on_done()
