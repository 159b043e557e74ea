"""Retry configuration model."""

from typing import Optional

from pydantic import BaseModel, Field


class RetryConfig(BaseModel):
    """Configuration for stream retries.

    Attributes:
        count: Retries allowed after the first attempt (None = unbounded)
    """

    count: Optional[int] = Field(None, ge=0)
