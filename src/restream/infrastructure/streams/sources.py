"""Event-loop driven source streams

Each source is cold: every `listen` starts a fresh emission. Events are
scheduled on the running asyncio loop, one per loop iteration, so pausing or
cancelling between two events takes effect before the next one.
"""

from __future__ import annotations

import asyncio
import logging
from abc import abstractmethod
from typing import Any, Awaitable, Iterable, Iterator, List, Optional

from restream.infrastructure.streams.base import (
    DataHandler,
    DoneHandler,
    ErrorHandler,
    Stream,
    StreamSubscription,
    T,
)

logger = logging.getLogger(__name__)


class _LoopSubscription(StreamSubscription[T]):
    """Subscription that emits one event per event-loop step"""

    def __init__(
        self,
        on_data: Optional[DataHandler],
        on_error: Optional[ErrorHandler],
        on_done: Optional[DoneHandler],
        cancel_on_error: bool,
    ):
        self._loop = asyncio.get_running_loop()
        self._on_data = on_data
        self._on_error = on_error
        self._on_done = on_done
        self._cancel_on_error = cancel_on_error
        self._handle: Optional[asyncio.Handle] = None
        self._pause_count = 0
        self._finished = False

    @property
    def is_paused(self) -> bool:
        return self._pause_count > 0

    def pause(self, resume_signal: Optional[Awaitable[Any]] = None) -> None:
        if self._finished:
            return
        self._pause_count += 1
        self._unschedule()
        if resume_signal is not None:
            asyncio.ensure_future(resume_signal).add_done_callback(lambda _: self.resume())

    def resume(self) -> None:
        if self._finished or self._pause_count == 0:
            return
        self._pause_count -= 1
        self._schedule()

    def cancel(self) -> None:
        self._finished = True
        self._unschedule()

    def _schedule(self) -> None:
        if self._handle is None and not self._finished and self._pause_count == 0:
            self._handle = self._loop.call_soon(self._run_step)

    def _unschedule(self) -> None:
        if self._handle is not None:
            self._handle.cancel()
            self._handle = None

    def _run_step(self) -> None:
        self._handle = None
        if self._finished or self._pause_count:
            return
        try:
            self._step()
        finally:
            # A raising listener must not stall the remaining events
            self._schedule()

    @abstractmethod
    def _step(self) -> None:
        """Emit the next event"""
        pass

    def _emit_data(self, value: Any) -> None:
        if self._on_data is not None:
            self._on_data(value)

    def _emit_error(self, error: BaseException) -> None:
        if self._cancel_on_error:
            self.cancel()
        if self._on_error is not None:
            self._on_error(error)
        else:
            logger.error(f"Unhandled stream error: {error!r}", exc_info=error)

    def _emit_done(self) -> None:
        self._finished = True
        if self._on_done is not None:
            self._on_done()


class _IterableSubscription(_LoopSubscription[T]):
    def __init__(self, iterator: Iterator[T], *args: Any):
        super().__init__(*args)
        self._iterator = iterator
        self._failed = False

    def _step(self) -> None:
        if self._failed:
            self._emit_done()
            return
        try:
            item = next(self._iterator)
        except StopIteration:
            self._emit_done()
            return
        except Exception as e:
            self._failed = True
            self._emit_error(e)
            return
        self._emit_data(item)


class IterableStream(Stream[T]):
    """Stream emitting the items of an iterable, then done

    An exception raised while iterating is emitted as an error event and the
    stream closes.
    """

    def __init__(self, iterable: Iterable[T]):
        self.iterable = iterable

    def listen(
        self,
        on_data: Optional[DataHandler] = None,
        *,
        on_error: Optional[ErrorHandler] = None,
        on_done: Optional[DoneHandler] = None,
        cancel_on_error: bool = False,
    ) -> StreamSubscription[T]:
        subscription: _IterableSubscription[T] = _IterableSubscription(
            iter(self.iterable), on_data, on_error, on_done, cancel_on_error
        )
        subscription._schedule()
        return subscription


class _ErrorSubscription(_LoopSubscription[Any]):
    def __init__(self, error: BaseException, *args: Any):
        super().__init__(*args)
        self._error = error
        self._sent = False

    def _step(self) -> None:
        if self._sent:
            self._emit_done()
            return
        self._sent = True
        self._emit_error(self._error)


class ErrorStream(Stream[Any]):
    """Stream emitting a single error, then done"""

    def __init__(self, error: BaseException):
        self.error = error

    def listen(
        self,
        on_data: Optional[DataHandler] = None,
        *,
        on_error: Optional[ErrorHandler] = None,
        on_done: Optional[DoneHandler] = None,
        cancel_on_error: bool = False,
    ) -> StreamSubscription[Any]:
        subscription = _ErrorSubscription(self.error, on_data, on_error, on_done, cancel_on_error)
        subscription._schedule()
        return subscription


class _ConcatSubscription(StreamSubscription[T]):
    def __init__(
        self,
        streams: List[Stream[T]],
        on_data: Optional[DataHandler],
        on_error: Optional[ErrorHandler],
        on_done: Optional[DoneHandler],
        cancel_on_error: bool,
    ):
        self._streams = iter(streams)
        self._on_data = on_data
        self._on_error = on_error
        self._on_done = on_done
        self._cancel_on_error = cancel_on_error
        self._current: Optional[StreamSubscription[T]] = None
        self._index = 0
        self._pause_count = 0
        self._finished = False

    @property
    def is_paused(self) -> bool:
        return self._pause_count > 0

    def pause(self, resume_signal: Optional[Awaitable[Any]] = None) -> None:
        if self._finished:
            return
        self._pause_count += 1
        if self._current is not None:
            self._current.pause()
        if resume_signal is not None:
            asyncio.ensure_future(resume_signal).add_done_callback(lambda _: self.resume())

    def resume(self) -> None:
        if self._finished or self._pause_count == 0:
            return
        self._pause_count -= 1
        if self._current is not None:
            self._current.resume()

    def cancel(self) -> None:
        if self._finished:
            return
        self._finished = True
        current, self._current = self._current, None
        if current is not None:
            current.cancel()

    def _listen_next(self) -> None:
        self._current = None
        if self._finished:
            return
        stream = next(self._streams, None)
        if stream is None:
            self._finished = True
            if self._on_done is not None:
                self._on_done()
            return
        self._index += 1
        index = self._index
        subscription = stream.listen(
            self._on_data,
            on_error=self._forward_error,
            on_done=self._listen_next,
        )
        if self._finished:
            subscription.cancel()
            return
        if self._index != index:
            # child completed during listen; a later child is already active
            return
        self._current = subscription
        for _ in range(self._pause_count):
            subscription.pause()

    def _forward_error(self, error: BaseException) -> None:
        if self._cancel_on_error:
            self.cancel()
        if self._on_error is not None:
            self._on_error(error)
        else:
            logger.error(f"Unhandled stream error: {error!r}", exc_info=error)


class ConcatStream(Stream[T]):
    """Stream listening to each given stream in turn and forwarding its events"""

    def __init__(self, streams: Iterable[Stream[T]]):
        self.streams = list(streams)

    def listen(
        self,
        on_data: Optional[DataHandler] = None,
        *,
        on_error: Optional[ErrorHandler] = None,
        on_done: Optional[DoneHandler] = None,
        cancel_on_error: bool = False,
    ) -> StreamSubscription[T]:
        subscription: _ConcatSubscription[T] = _ConcatSubscription(
            self.streams, on_data, on_error, on_done, cancel_on_error
        )
        subscription._listen_next()
        return subscription
