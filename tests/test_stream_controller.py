"""Tests for StreamController"""

import asyncio
import logging

import pytest

from restream.infrastructure.streams.base import StreamStateError
from restream.infrastructure.streams.controller import StreamController


class TestDelivery:
    """Tests for event delivery"""

    def test_events_delivered_synchronously(self):
        """Test events reach an active listener immediately"""
        controller = StreamController()
        received = []
        done = []
        controller.stream.listen(received.append, on_done=lambda: done.append(True))

        controller.add(1)
        assert received == [1]

        controller.add(2)
        controller.close()
        assert received == [1, 2]
        assert done == [True]

    def test_events_buffered_before_listen(self):
        """Test events added before a listener are delivered on listen"""
        controller = StreamController()
        controller.add("a")
        controller.add("b")
        received = []

        controller.stream.listen(received.append)

        assert received == ["a", "b"]

    def test_on_listen_called(self):
        """Test on_listen fires when the stream is listened to"""
        calls = []
        controller = StreamController(on_listen=lambda: calls.append("listen"))

        controller.stream.listen()

        assert calls == ["listen"]
        assert controller.has_listener is True

    def test_second_listen_rejected(self):
        """Test a controller stream is single-subscription"""
        controller = StreamController()
        controller.stream.listen()

        with pytest.raises(StreamStateError, match="already been listened to"):
            controller.stream.listen()

    def test_add_after_close_rejected(self):
        """Test adding to a closed controller fails"""
        controller = StreamController()
        controller.close()

        with pytest.raises(StreamStateError):
            controller.add(1)
        with pytest.raises(StreamStateError):
            controller.add_error(ValueError("x"))

    def test_close_twice_is_noop(self):
        """Test done is delivered once"""
        controller = StreamController()
        done = []
        controller.stream.listen(on_done=lambda: done.append(True))

        controller.close()
        controller.close()

        assert done == [True]
        assert controller.is_closed is True

    def test_reentrant_add_keeps_order(self):
        """Test events added from inside a callback are delivered after the current one"""
        controller = StreamController()
        received = []

        def on_data(item):
            received.append(item)
            if item == 1:
                controller.add(2)
                received.append("after add")

        controller.stream.listen(on_data)
        controller.add(1)

        assert received == [1, "after add", 2]


class TestErrors:
    """Tests for error events"""

    def test_error_delivered_and_stream_continues(self):
        """Test errors do not end the stream by default"""
        controller = StreamController()
        received = []
        errors = []
        controller.stream.listen(received.append, on_error=errors.append)

        controller.add_error(ValueError("boom"))
        controller.add(1)

        assert len(errors) == 1
        assert received == [1]

    def test_cancel_on_error(self):
        """Test cancel_on_error cancels after the first error and suppresses done"""
        cancels = []
        controller = StreamController(on_cancel=lambda: cancels.append(True))
        errors = []
        done = []
        controller.stream.listen(
            on_error=errors.append, on_done=lambda: done.append(True), cancel_on_error=True
        )

        controller.add_error(ValueError("boom"))
        controller.add(1)
        controller.close()

        assert len(errors) == 1
        assert done == []
        assert cancels == [True]

    def test_unhandled_error_logged(self, caplog):
        """Test an error without handler is logged instead of raised"""
        controller = StreamController()
        controller.stream.listen()

        with caplog.at_level(logging.ERROR):
            controller.add_error(ValueError("nobody listens"))

        assert "Unhandled stream error" in caplog.text


class TestPauseResume:
    """Tests for pause/resume"""

    def test_pause_buffers_events(self):
        """Test paused listeners receive buffered events on resume"""
        controller = StreamController()
        received = []
        subscription = controller.stream.listen(received.append)

        subscription.pause()
        controller.add(1)
        controller.add(2)
        assert received == []
        assert controller.is_paused is True

        subscription.resume()
        assert received == [1, 2]
        assert controller.is_paused is False

    def test_nested_pauses(self):
        """Test each pause needs its own resume"""
        calls = []
        controller = StreamController(
            on_pause=lambda: calls.append("pause"),
            on_resume=lambda: calls.append("resume"),
        )
        subscription = controller.stream.listen()

        subscription.pause()
        subscription.pause()
        subscription.resume()
        assert subscription.is_paused is True

        subscription.resume()
        assert subscription.is_paused is False
        assert calls == ["pause", "resume"]

    def test_resume_without_pause_is_noop(self):
        """Test resume on a running subscription does nothing"""
        calls = []
        controller = StreamController(on_resume=lambda: calls.append("resume"))
        subscription = controller.stream.listen()

        subscription.resume()

        assert calls == []

    def test_cancel_drops_buffered_events(self):
        """Test cancelling a paused subscription discards its buffer"""
        cancels = []
        controller = StreamController(on_cancel=lambda: cancels.append(True))
        received = []
        subscription = controller.stream.listen(received.append)

        subscription.pause()
        controller.add(1)
        subscription.cancel()
        subscription.resume()
        controller.add(2)

        assert received == []
        assert cancels == [True]
        assert controller.has_listener is False

    @pytest.mark.asyncio
    async def test_resume_signal(self):
        """Test a completed resume signal resumes the subscription"""
        controller = StreamController()
        received = []
        subscription = controller.stream.listen(received.append)
        signal = asyncio.get_running_loop().create_future()

        subscription.pause(signal)
        controller.add(1)
        assert received == []

        signal.set_result(None)
        await asyncio.sleep(0)
        await asyncio.sleep(0)

        assert received == [1]
        assert subscription.is_paused is False
