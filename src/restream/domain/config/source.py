"""Source configuration model."""

from typing import Any, List, Literal

from pydantic import BaseModel, Field


class SourceConfig(BaseModel):
    """Configuration for the demo source.

    Attributes:
        kind: Source kind (iterable, error, or flaky)
        items: Items emitted by a successful attempt
        fail_times: Attempts that fail before the source succeeds (flaky only)
        error_message: Message of the error raised by failing attempts
        emit_before_error: Emit items before failing (flaky only)
    """

    kind: Literal["iterable", "error", "flaky"] = "flaky"
    items: List[Any] = Field(default_factory=lambda: [1])
    fail_times: int = Field(0, ge=0)
    error_message: str = "source failure"
    emit_before_error: bool = False
