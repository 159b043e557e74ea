"""Retry stream - re-subscribes to a re-creatable source after failure"""

from __future__ import annotations

import logging
from enum import Enum
from functools import partial
from typing import Callable, List, Optional, Tuple

from restream.domain.models.error_and_stack_trace import ErrorAndStackTrace
from restream.domain.models.retry_error import RetryError
from restream.infrastructure.streams.base import (
    DataHandler,
    DoneHandler,
    ErrorHandler,
    SourceFactory,
    Stream,
    StreamSubscription,
    T,
)
from restream.infrastructure.streams.controller import StreamController

logger = logging.getLogger(__name__)


class RetryState(str, Enum):
    """Lifecycle state of a retry stream"""

    IDLE = "idle"
    ATTEMPTING = "attempting"
    RETRYING = "retrying"
    SUCCEEDED = "succeeded"
    FAILED = "failed"
    CANCELLED = "cancelled"


class RetryStream(Stream[T]):
    """Stream that recreates and re-listens to its source until it succeeds

    Each attempt calls `stream_factory` for a fresh source. Data events are
    forwarded unchanged and a clean completion ends the stream. A failed
    attempt is recorded and the source is re-created immediately. When
    `count` retries have been used up, a single `RetryError` holding every
    recorded failure is emitted and the stream closes. With `count=None`
    retries never stop.

    Example:
        RetryStream(lambda: IterableStream([1])).listen(print)  # prints 1

        RetryStream(
            lambda: ConcatStream([IterableStream([1]), ErrorStream(ValueError())]),
            1,
        ).listen(print, on_error=print)  # prints 1, 1, RetryError
    """

    def __init__(self, stream_factory: SourceFactory[T], count: Optional[int] = None):
        """Initialize retry stream

        Args:
            stream_factory: Zero-argument callable creating the source for each attempt
            count: Retries allowed after the first attempt (None = unbounded)

        Raises:
            ValueError: If count is negative
        """
        if count is not None and count < 0:
            raise ValueError("count must be non-negative")
        self.stream_factory = stream_factory
        self.count = count
        self._retry_step = 0
        self._errors: List[ErrorAndStackTrace] = []
        self._state = RetryState.IDLE
        self._controller: Optional[StreamController[T]] = None
        self._subscription: Optional[StreamSubscription[T]] = None
        self._restart_pending = False
        self._looping = False
        self._listener_failed = False

    @property
    def retry_step(self) -> int:
        """Index of the current attempt (0 = first try)"""
        return self._retry_step

    @property
    def errors(self) -> Tuple[ErrorAndStackTrace, ...]:
        """Failures recorded so far, in attempt order"""
        return tuple(self._errors)

    @property
    def state(self) -> RetryState:
        return self._state

    def listen(
        self,
        on_data: Optional[DataHandler] = None,
        *,
        on_error: Optional[ErrorHandler] = None,
        on_done: Optional[DoneHandler] = None,
        cancel_on_error: bool = False,
    ) -> StreamSubscription[T]:
        """Listen to the retried stream

        `on_error` only ever receives the aggregated `RetryError`.

        Raises:
            StreamStateError: If the stream has already been listened to
        """
        if self._controller is None:
            self._controller = StreamController(
                on_listen=self._request_attempt,
                on_pause=self._pause_upstream,
                on_resume=self._resume_upstream,
                on_cancel=self._cancel,
            )
        return self._controller.stream.listen(
            on_data,
            on_error=on_error,
            on_done=on_done,
            cancel_on_error=cancel_on_error,
        )

    def _request_attempt(self) -> None:
        # Restarts requested from inside a running attempt only set the flag;
        # the outermost call keeps looping so synchronous failures don't recurse.
        self._restart_pending = True
        if self._looping:
            return
        self._looping = True
        try:
            while self._restart_pending and self._state in (RetryState.IDLE, RetryState.RETRYING):
                self._restart_pending = False
                self._start_attempt()
        finally:
            self._looping = False
            self._restart_pending = False

    def _start_attempt(self) -> None:
        attempt = self._retry_step
        self._state = RetryState.ATTEMPTING
        logger.debug(f"Starting attempt {attempt + 1}{self._budget_suffix()}")

        try:
            source = self.stream_factory()
        except Exception as e:
            self._on_attempt_error(attempt, e)
            return

        self._listener_failed = False
        try:
            subscription = source.listen(
                partial(self._on_attempt_data, attempt),
                on_error=partial(self._on_attempt_error, attempt),
                on_done=partial(self._on_attempt_done, attempt),
                cancel_on_error=False,
            )
        except Exception as e:
            if self._listener_failed:
                # Raised by our own listener, not by the source
                raise
            self._on_attempt_error(attempt, e)
            return

        if not self._is_current(attempt):
            # Attempt already ended while subscribing
            subscription.cancel()
            return

        self._subscription = subscription
        if self._controller is not None and self._controller.is_paused:
            subscription.pause()

    def _is_current(self, attempt: int) -> bool:
        return self._state is RetryState.ATTEMPTING and attempt == self._retry_step

    def _on_attempt_data(self, attempt: int, data: T) -> None:
        if not self._is_current(attempt):
            return
        self._forward(self._controller.add, data)

    def _on_attempt_done(self, attempt: int) -> None:
        if not self._is_current(attempt):
            return
        self._state = RetryState.SUCCEEDED
        self._subscription = None
        logger.info(f"Source completed on attempt {attempt + 1}")
        self._forward(self._controller.close)

    def _forward(self, deliver: Callable[..., None], *args) -> None:
        # Downstream handlers run synchronously; mark their exceptions so
        # _start_attempt does not count them as a source failure
        try:
            deliver(*args)
        except Exception:
            self._listener_failed = True
            raise

    def _on_attempt_error(self, attempt: int, error: BaseException) -> None:
        if not self._is_current(attempt):
            return

        subscription, self._subscription = self._subscription, None
        if subscription is not None:
            subscription.cancel()

        self._errors.append(ErrorAndStackTrace(error))

        if self.count is not None and self._retry_step == self.count:
            self._state = RetryState.FAILED
            logger.error(
                f"Source failed on attempt {attempt + 1}{self._budget_suffix()}, "
                f"giving up: {error}"
            )
            self._forward(self._controller.add_error, RetryError.with_count(self.count, self._errors))
            self._forward(self._controller.close)
            return

        self._retry_step += 1
        self._state = RetryState.RETRYING
        logger.warning(
            f"Source failed on attempt {attempt + 1}{self._budget_suffix()}: {error}. Retrying..."
        )
        self._request_attempt()

    def _pause_upstream(self) -> None:
        if self._subscription is not None:
            self._subscription.pause()

    def _resume_upstream(self) -> None:
        if self._subscription is not None:
            self._subscription.resume()

    def _cancel(self) -> None:
        if self._state in (RetryState.SUCCEEDED, RetryState.FAILED):
            return
        self._state = RetryState.CANCELLED
        self._restart_pending = False
        subscription, self._subscription = self._subscription, None
        if subscription is not None:
            subscription.cancel()
        logger.debug(f"Retry stream cancelled after {len(self._errors)} failed attempts")

    def _budget_suffix(self) -> str:
        if self.count is None:
            return ""
        return f"/{self.count + 1}"
