"""RunResult model - represents the outcome of draining a stream"""

from dataclasses import dataclass, field
from typing import Any, List, Optional

from restream.domain.models.retry_error import RetryError


@dataclass
class RunResult:
    """Result of listening to a stream until it ends"""

    items: List[Any] = field(default_factory=list)
    error: Optional[BaseException] = None  # Terminal error delivered to on_error
    completed: bool = False  # Done event received
    cancelled: bool = False  # Run stopped before the stream ended

    @property
    def is_successful(self) -> bool:
        """Check if the stream completed without an error"""
        return self.completed and self.error is None and not self.cancelled

    @property
    def retry_error(self) -> Optional[RetryError]:
        """Get the aggregated retry failure, if the run ended with one"""
        if isinstance(self.error, RetryError):
            return self.error
        return None
