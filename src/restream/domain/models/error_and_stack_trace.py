"""ErrorAndStackTrace model - one failed attempt recorded by a retrying stream"""

import traceback
from dataclasses import dataclass
from types import TracebackType
from typing import Optional


@dataclass(frozen=True)
class ErrorAndStackTrace:
    """An error paired with the traceback it was raised with"""

    error: BaseException
    stack_trace: Optional[TracebackType] = None

    def __post_init__(self):
        """Fall back to the traceback attached to the error"""
        if self.stack_trace is None and self.error.__traceback__ is not None:
            object.__setattr__(self, "stack_trace", self.error.__traceback__)

    def format(self) -> str:
        """Format error and traceback the way the interpreter prints them"""
        lines = traceback.format_exception(type(self.error), self.error, self.stack_trace)
        return "".join(lines)

    def __str__(self) -> str:
        return f"{type(self.error).__name__}: {self.error}"
