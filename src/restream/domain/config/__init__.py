"""Configuration models with Pydantic validation."""

from restream.domain.config.app import AppConfig
from restream.domain.config.retry import RetryConfig
from restream.domain.config.run import RunConfig
from restream.domain.config.source import SourceConfig

__all__ = [
    "AppConfig",
    "RetryConfig",
    "RunConfig",
    "SourceConfig",
]
