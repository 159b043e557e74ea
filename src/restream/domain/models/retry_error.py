"""RetryError - terminal failure of a retrying stream"""

from typing import Iterable, Optional, Tuple

from restream.domain.models.error_and_stack_trace import ErrorAndStackTrace


class RetryError(Exception):
    """Raised when a retrying stream runs out of attempts

    Carries every per-attempt failure in attempt order together with the
    retry budget that was configured.

    Attributes:
        message: Human readable description
        count: Configured number of retries (None = unbounded)
        errors: Recorded failures, one per attempt
    """

    def __init__(
        self,
        message: str,
        errors: Iterable[ErrorAndStackTrace],
        count: Optional[int] = None,
    ):
        super().__init__(message)
        self.message = message
        self.count = count
        self.errors: Tuple[ErrorAndStackTrace, ...] = tuple(errors)
        if self.errors:
            self.__cause__ = self.errors[-1].error

    @classmethod
    def with_count(cls, count: int, errors: Iterable[ErrorAndStackTrace]) -> "RetryError":
        """Build the error emitted after `count` retries were exhausted"""
        return cls(f"Received an error after attempting {count} retries", errors, count=count)

    @property
    def attempts(self) -> int:
        """Number of attempts that failed"""
        return len(self.errors)

    def __str__(self) -> str:
        return self.message

    def __repr__(self) -> str:
        return f"RetryError(count={self.count}, errors={[str(e) for e in self.errors]})"
