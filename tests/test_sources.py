"""Tests for event-loop driven source streams"""

import asyncio

import pytest

from restream.infrastructure.streams.sources import (
    ConcatStream,
    ErrorStream,
    IterableStream,
    _LoopSubscription,
)


class Recorder:
    def __init__(self):
        self.events = []

    def listen(self, stream, **kwargs):
        return stream.listen(
            lambda item: self.events.append(("data", item)),
            on_error=lambda error: self.events.append(("error", str(error))),
            on_done=lambda: self.events.append(("done", None)),
            **kwargs,
        )


async def spin(iterations: int = 20) -> None:
    for _ in range(iterations):
        await asyncio.sleep(0)


@pytest.mark.asyncio
async def test_iterable_stream_emits_items_then_done():
    """Test IterableStream emits every item in order, then done"""
    recorder = Recorder()
    recorder.listen(IterableStream([1, 2, 3]))

    assert recorder.events == []  # nothing is emitted during listen
    await spin()

    assert recorder.events == [("data", 1), ("data", 2), ("data", 3), ("done", None)]


@pytest.mark.asyncio
async def test_iterable_stream_is_cold():
    """Test each listen replays the iterable"""
    stream = IterableStream([1, 2])
    first, second = Recorder(), Recorder()
    first.listen(stream)
    second.listen(stream)
    await spin()

    assert first.events == second.events == [("data", 1), ("data", 2), ("done", None)]


@pytest.mark.asyncio
async def test_iterable_stream_iterator_failure():
    """Test an exception while iterating becomes an error followed by done"""

    def items():
        yield 1
        raise ValueError("broken iterator")

    recorder = Recorder()
    recorder.listen(IterableStream(items()))
    await spin()

    assert recorder.events == [("data", 1), ("error", "broken iterator"), ("done", None)]


@pytest.mark.asyncio
async def test_error_stream():
    """Test ErrorStream emits its error then done"""
    recorder = Recorder()
    recorder.listen(ErrorStream(ValueError("boom")))
    await spin()

    assert recorder.events == [("error", "boom"), ("done", None)]


@pytest.mark.asyncio
async def test_error_stream_cancel_on_error():
    """Test cancel_on_error suppresses done"""
    recorder = Recorder()
    recorder.listen(ErrorStream(ValueError("boom")), cancel_on_error=True)
    await spin()

    assert recorder.events == [("error", "boom")]


@pytest.mark.asyncio
async def test_pause_and_resume_iterable():
    """Test a paused source stops emitting until resumed"""
    recorder = Recorder()
    subscription = recorder.listen(IterableStream([1, 2, 3]))

    subscription.pause()
    await spin()
    assert recorder.events == []
    assert subscription.is_paused is True

    subscription.resume()
    await spin()
    assert recorder.events[-1] == ("done", None)
    assert len(recorder.events) == 4


@pytest.mark.asyncio
async def test_cancel_iterable():
    """Test a cancelled source emits nothing further"""
    recorder = Recorder()
    subscription = recorder.listen(IterableStream([1, 2, 3]))

    subscription.cancel()
    await spin()

    assert recorder.events == []


@pytest.mark.asyncio
async def test_concat_stream():
    """Test ConcatStream forwards each child in order"""
    recorder = Recorder()
    recorder.listen(
        ConcatStream([IterableStream([1]), ErrorStream(ValueError("boom")), IterableStream([2])])
    )
    await spin()

    assert recorder.events == [("data", 1), ("error", "boom"), ("data", 2), ("done", None)]


@pytest.mark.asyncio
async def test_concat_stream_cancel_on_error():
    """Test ConcatStream stops at the first error when cancel_on_error is set"""
    recorder = Recorder()
    recorder.listen(
        ConcatStream([IterableStream([1]), ErrorStream(ValueError("boom")), IterableStream([2])]),
        cancel_on_error=True,
    )
    await spin()

    assert recorder.events == [("data", 1), ("error", "boom")]


@pytest.mark.asyncio
async def test_concat_stream_pause_and_resume():
    """Test pausing a concat pauses its active child"""
    recorder = Recorder()
    subscription = recorder.listen(ConcatStream([IterableStream([1]), IterableStream([2])]))
    subscription.pause()
    await spin()
    assert recorder.events == []

    subscription.resume()
    await spin()
    assert recorder.events == [("data", 1), ("data", 2), ("done", None)]


@pytest.mark.asyncio
async def test_concat_stream_empty():
    """Test an empty concat completes immediately"""
    recorder = Recorder()
    recorder.listen(ConcatStream([]))

    assert recorder.events == [("done", None)]


@pytest.mark.asyncio
async def test_raising_listener_does_not_stall_source():
    """Test the source keeps emitting after a listener raises"""
    seen, done = [], []

    def on_data(item):
        seen.append(item)
        if item == 1:
            raise RuntimeError("listener failed")

    IterableStream([1, 2, 3]).listen(on_data, on_done=lambda: done.append(True))
    await spin()

    assert seen == [1, 2, 3]
    assert done == [True]


def test_loop_subscription_requires_step():
    """Test the loop subscription base cannot be used without a step"""
    with pytest.raises(TypeError):
        _LoopSubscription(None, None, None, False)
