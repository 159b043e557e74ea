import pytest

from restream.domain.config.source import SourceConfig
from restream.infrastructure.sources.factory import SourceFactoryRegistry
from restream.infrastructure.sources.flaky import FlakySourceFactory, SourceError
from restream.infrastructure.streams.sources import ErrorStream, IterableStream


def test_registry_supports_kinds():
    # every kind builds a callable factory without touching the event loop
    for kind in ("iterable", "error", "flaky", "FLAKY"):
        assert callable(SourceFactoryRegistry.create(kind, SourceConfig()))


def test_registry_iterable_source():
    factory = SourceFactoryRegistry.create("iterable", SourceConfig(items=[1, 2]))

    stream = factory()
    assert isinstance(stream, IterableStream)
    assert stream.iterable == [1, 2]
    assert factory() is not stream


def test_registry_error_source():
    factory = SourceFactoryRegistry.create("error", SourceConfig(error_message="down"))

    stream = factory()
    assert isinstance(stream, ErrorStream)
    assert isinstance(stream.error, SourceError)
    assert str(stream.error) == "down"


def test_registry_flaky_source():
    factory = SourceFactoryRegistry.create("flaky", SourceConfig(fail_times=3, items=[9]))

    assert isinstance(factory, FlakySourceFactory)
    assert factory.fail_times == 3
    assert factory.items == [9]


def test_registry_unknown_kind():
    with pytest.raises(ValueError, match="Unknown source kind"):
        SourceFactoryRegistry.create("kafka")


def test_registry_default_config():
    factory = SourceFactoryRegistry.create("iterable")

    assert factory().iterable == [1]
