"""Flaky source factory for demos and testing"""

import logging
from typing import Any, Iterable, List, Optional

from restream.infrastructure.streams.base import Stream
from restream.infrastructure.streams.sources import ConcatStream, ErrorStream, IterableStream

logger = logging.getLogger(__name__)


class SourceError(RuntimeError):
    """Failure raised by a demo source"""

    def __init__(self, message: str, attempt: Optional[int] = None):
        super().__init__(message)
        self.attempt = attempt


class FlakySourceFactory:
    """Source factory that fails a fixed number of times, then succeeds"""

    def __init__(
        self,
        items: Iterable[Any] = (1,),
        fail_times: int = 0,
        error_message: str = "source failure",
        emit_before_error: bool = False,
    ):
        """Initialize flaky factory

        Args:
            items: Items emitted by a successful source
            fail_times: Number of calls that produce a failing source
            error_message: Message of the raised SourceError
            emit_before_error: Emit `items` before failing instead of failing immediately
        """
        if fail_times < 0:
            raise ValueError("fail_times must be non-negative")
        self.items: List[Any] = list(items)
        self.fail_times = fail_times
        self.error_message = error_message
        self.emit_before_error = emit_before_error
        self.calls = 0

    def __call__(self) -> Stream[Any]:
        """Create the source for the next attempt"""
        self.calls += 1
        if self.calls > self.fail_times:
            logger.debug(f"Flaky source call {self.calls}: succeeding")
            return IterableStream(list(self.items))

        logger.debug(f"Flaky source call {self.calls}: failing")
        error = SourceError(f"{self.error_message} (attempt {self.calls})", attempt=self.calls)
        if self.emit_before_error:
            return ConcatStream([IterableStream(list(self.items)), ErrorStream(error)])
        return ErrorStream(error)
