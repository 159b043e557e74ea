"""Tests for RunService"""

from __future__ import annotations

import pytest

from restream.application.retry_stream import RetryState, RetryStream
from restream.application.run_service import RunService
from restream.domain.models.retry_error import RetryError
from restream.infrastructure.sources.flaky import FlakySourceFactory
from restream.infrastructure.streams.sources import ErrorStream, IterableStream


@pytest.mark.asyncio
async def test_run_collects_items():
    """Test a successful stream produces a successful result"""
    result = await RunService().run(IterableStream(["a", "b"]))

    assert result.items == ["a", "b"]
    assert result.completed is True
    assert result.is_successful is True
    assert result.retry_error is None


@pytest.mark.asyncio
async def test_run_records_error():
    """Test a plain error ends the run"""
    result = await RunService().run(ErrorStream(ValueError("boom")))

    assert isinstance(result.error, ValueError)
    assert result.completed is False
    assert result.is_successful is False
    assert result.retry_error is None


@pytest.mark.asyncio
async def test_run_exposes_retry_error():
    """Test an exhausted retry stream is reported as a RetryError"""
    factory = FlakySourceFactory(fail_times=5)

    result = await RunService().run(RetryStream(factory, 2))

    assert isinstance(result.retry_error, RetryError)
    assert result.retry_error.attempts == 3
    assert factory.calls == 3


@pytest.mark.asyncio
async def test_run_timeout_cancels_unbounded_retries():
    """Test a timeout cancels an endlessly failing unbounded retry stream"""
    factory = FlakySourceFactory(fail_times=10**9)
    stream = RetryStream(factory)

    result = await RunService(timeout=0.05).run(stream)

    assert result.cancelled is True
    assert result.error is None
    assert result.is_successful is False
    assert stream.state == RetryState.CANCELLED
    calls = factory.calls
    assert calls > 1


@pytest.mark.asyncio
async def test_run_reports_events():
    """Test on_event sees every event in order"""
    events = []
    service = RunService(on_event=lambda kind, value: events.append((kind, value)))

    await service.run(RetryStream(FlakySourceFactory(items=[1, 2], fail_times=1), 1))

    assert events == [("data", 1), ("data", 2), ("done", None)]
