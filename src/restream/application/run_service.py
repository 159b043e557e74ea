"""Run service - drives a stream to its end and collects the outcome"""

from __future__ import annotations

import asyncio
import logging
from typing import Any, Callable, Optional

from restream.domain.models.run_result import RunResult
from restream.infrastructure.streams.base import Stream

logger = logging.getLogger(__name__)

EventCallback = Callable[[str, Any], None]


class RunService:
    """Service for listening to a stream until it ends"""

    def __init__(self, timeout: Optional[float] = None, on_event: Optional[EventCallback] = None):
        """Initialize run service

        Args:
            timeout: Seconds before the subscription is cancelled (None = no limit)
            on_event: Optional callback receiving ("data" | "error" | "done", value) as events arrive
        """
        self.timeout = timeout
        self.on_event = on_event

    async def run(self, stream: Stream[Any]) -> RunResult:
        """Listen to a stream and wait for its terminal event

        Args:
            stream: Stream to drain

        Returns:
            Run result with collected items and terminal state
        """
        result = RunResult()
        finished: asyncio.Future = asyncio.get_running_loop().create_future()

        def _finish() -> None:
            if not finished.done():
                finished.set_result(None)

        def _on_data(item: Any) -> None:
            result.items.append(item)
            self._notify("data", item)

        def _on_error(error: BaseException) -> None:
            result.error = error
            self._notify("error", error)
            _finish()

        def _on_done() -> None:
            result.completed = True
            self._notify("done", None)
            _finish()

        subscription = stream.listen(
            _on_data, on_error=_on_error, on_done=_on_done, cancel_on_error=True
        )

        try:
            await asyncio.wait_for(asyncio.shield(finished), timeout=self.timeout)
        except asyncio.TimeoutError:
            logger.warning(f"Run timed out after {self.timeout}s, cancelling subscription")
            subscription.cancel()
            result.cancelled = True

        logger.info(
            f"Run finished: {len(result.items)} items, "
            f"completed={result.completed}, error={result.error!r}"
        )
        return result

    def _notify(self, kind: str, value: Any) -> None:
        if self.on_event is not None:
            self.on_event(kind, value)
