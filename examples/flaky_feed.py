"""Sample usage of RetryStream with a feed that drops twice before delivering"""

import asyncio
import logging

from restream.application.retry_stream import RetryStream
from restream.application.run_service import RunService
from restream.infrastructure.sources.flaky import FlakySourceFactory


async def main():
    feed = FlakySourceFactory(items=["tick 1", "tick 2"], fail_times=2, error_message="feed dropped")
    stream = RetryStream(feed, 3)

    result = await RunService(timeout=5).run(stream)

    print(f"items: {result.items}")
    print(f"failed attempts: {[str(e) for e in stream.errors]}")


if __name__ == "__main__":
    logging.basicConfig(level=logging.INFO)
    asyncio.run(main())
