"""Push-based streams"""

from restream.infrastructure.streams.base import Stream, StreamStateError, StreamSubscription
from restream.infrastructure.streams.controller import StreamController
from restream.infrastructure.streams.sources import ConcatStream, ErrorStream, IterableStream

__all__ = [
    "Stream",
    "StreamSubscription",
    "StreamStateError",
    "StreamController",
    "IterableStream",
    "ErrorStream",
    "ConcatStream",
]
