"""Registry for building source factories from configuration"""

import logging
from typing import Any, Callable, Dict

from restream.domain.config.source import SourceConfig
from restream.infrastructure.sources.flaky import FlakySourceFactory, SourceError
from restream.infrastructure.streams.base import SourceFactory
from restream.infrastructure.streams.sources import ErrorStream, IterableStream

logger = logging.getLogger(__name__)


def _iterable_source(config: SourceConfig) -> SourceFactory[Any]:
    items = list(config.items)
    return lambda: IterableStream(list(items))


def _error_source(config: SourceConfig) -> SourceFactory[Any]:
    return lambda: ErrorStream(SourceError(config.error_message))


def _flaky_source(config: SourceConfig) -> SourceFactory[Any]:
    return FlakySourceFactory(
        items=config.items,
        fail_times=config.fail_times,
        error_message=config.error_message,
        emit_before_error=config.emit_before_error,
    )


class SourceFactoryRegistry:
    """Factory for creating source factories by kind"""

    SOURCES: Dict[str, Callable[[SourceConfig], SourceFactory[Any]]] = {
        "iterable": _iterable_source,
        "error": _error_source,
        "flaky": _flaky_source,
    }

    @classmethod
    def create(cls, kind: str, config: SourceConfig = None) -> SourceFactory[Any]:
        """Create a source factory

        Args:
            kind: Kind of source (iterable, error, flaky)
            config: Source configuration

        Returns:
            Zero-argument callable producing a fresh stream per call

        Raises:
            ValueError: If source kind is not supported
        """
        if config is None:
            config = SourceConfig()

        kind_lower = kind.lower()

        if kind_lower not in cls.SOURCES:
            available = ", ".join(cls.SOURCES.keys())
            raise ValueError(
                f"Unknown source kind: {kind}. "
                f"Available kinds: {available}"
            )

        logger.info(f"Creating {kind_lower} source")
        return cls.SOURCES[kind_lower](config)
