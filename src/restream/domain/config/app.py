"""Main application configuration model."""

from pydantic import BaseModel, ConfigDict, Field

from restream.domain.config.retry import RetryConfig
from restream.domain.config.run import RunConfig
from restream.domain.config.source import SourceConfig


class AppConfig(BaseModel):
    """Main application configuration.

    This is the root configuration model that aggregates all configuration sections.
    Validation is performed at load time to fail fast on configuration errors.

    Attributes:
        retry: Retry budget configuration
        source: Demo source configuration
        run: Run limits configuration
    """

    retry: RetryConfig = Field(default_factory=RetryConfig)
    source: SourceConfig = Field(default_factory=SourceConfig)
    run: RunConfig = Field(default_factory=RunConfig)

    model_config = ConfigDict(
        validate_assignment=True,  # Validate on attribute assignment
        extra="forbid",  # Reject unknown fields
        json_schema_extra={
            "example": {
                "retry": {
                    "count": 3,
                },
                "source": {
                    "kind": "flaky",
                    "items": [1, 2, 3],
                    "fail_times": 2,
                    "error_message": "connection reset",
                    "emit_before_error": False,
                },
                "run": {
                    "timeout": 5.0,
                },
            }
        },
    )
