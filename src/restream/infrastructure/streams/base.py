"""Base push-stream interface"""

from abc import ABC, abstractmethod
from typing import Any, Awaitable, Callable, Generic, Optional, TypeVar

T = TypeVar("T")

DataHandler = Callable[[Any], None]
ErrorHandler = Callable[[BaseException], None]
DoneHandler = Callable[[], None]


class StreamStateError(RuntimeError):
    """Stream used in a state that does not allow the operation."""

    pass


class StreamSubscription(ABC, Generic[T]):
    """Handle to an active listener of a stream"""

    @abstractmethod
    def pause(self, resume_signal: Optional[Awaitable[Any]] = None) -> None:
        """Pause event delivery

        Pauses nest: each call must be matched by a `resume`.

        Args:
            resume_signal: Optional awaitable; the subscription resumes once it completes
        """
        pass

    @abstractmethod
    def resume(self) -> None:
        """Undo one previous `pause`"""
        pass

    @abstractmethod
    def cancel(self) -> None:
        """Stop receiving events. No callback fires after cancel."""
        pass

    @property
    @abstractmethod
    def is_paused(self) -> bool:
        """Check if the subscription is currently paused"""
        pass


class Stream(ABC, Generic[T]):
    """Abstract base class for push-based event streams"""

    @abstractmethod
    def listen(
        self,
        on_data: Optional[DataHandler] = None,
        *,
        on_error: Optional[ErrorHandler] = None,
        on_done: Optional[DoneHandler] = None,
        cancel_on_error: bool = False,
    ) -> StreamSubscription[T]:
        """Start listening to the stream

        Args:
            on_data: Called with each data event
            on_error: Called with each error event
            on_done: Called once when the stream closes
            cancel_on_error: Cancel the subscription after the first error

        Returns:
            Subscription controlling the listener

        Raises:
            StreamStateError: If the stream cannot be listened to again
        """
        pass


# Zero-argument callable that creates a fresh source for each attempt
SourceFactory = Callable[[], Stream[T]]
