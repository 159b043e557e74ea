"""Run configuration model."""

from typing import Optional

from pydantic import BaseModel, Field


class RunConfig(BaseModel):
    """Configuration for driving a stream to completion.

    Attributes:
        timeout: Seconds before the run is cancelled (None = wait forever)
    """

    timeout: Optional[float] = Field(None, gt=0)
