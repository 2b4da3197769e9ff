"""
The result stream connecting the monitor to its consumer.
"""

import asyncio
import logging
from typing import AsyncIterator

from .domain import CheckResult

# Module logger
logger = logging.getLogger(__name__)


class ResultStream:
    """
    A bounded, closable queue of check results.

    Many producer tasks publish into it and a single consumer drains it with
    ``async for``. The iteration ends only after the stream has been closed
    and every buffered result has been delivered, so closure is never
    mistaken for "no result yet".

    Capacity is tracked with a semaphore of free slots rather than the
    queue's own bound, so it can be raised while producers are waiting.
    """

    def __init__(self, maxsize: int) -> None:
        """
        Args:
            maxsize: Buffer capacity. Producers wait while it is full.
        """
        self._maxsize: int = max(1, maxsize)
        self._slots: asyncio.Semaphore = asyncio.Semaphore(self._maxsize)
        self._queue: "asyncio.Queue[CheckResult]" = asyncio.Queue()
        self._closed = asyncio.Event()

    @property
    def closed(self) -> bool:
        return self._closed.is_set()

    @property
    def maxsize(self) -> int:
        return self._maxsize

    def qsize(self) -> int:
        return self._queue.qsize()

    def grow(self, maxsize: int) -> None:
        """
        Raises the capacity to ``maxsize``, waking producers waiting for room.

        A smaller value than the current capacity is ignored.
        """
        extra = maxsize - self._maxsize
        if extra <= 0:
            return
        self._maxsize = maxsize
        for _ in range(extra):
            self._slots.release()
        logger.debug(f"Result stream capacity raised to {maxsize}")

    async def publish(self, result: CheckResult) -> bool:
        """
        Adds a result to the stream, waiting while the buffer is full.

        A waiting producer is released by cancellation of its task.

        Returns:
            bool: False if the stream is already closed and the result was dropped.
        """
        if self.closed:
            logger.debug(f"Dropping result for {result.service_name}: stream closed")
            return False
        await self._slots.acquire()
        self._queue.put_nowait(result)
        return True

    def close(self) -> None:
        """Closes the stream. Calling it again has no effect."""
        self._closed.set()

    def __aiter__(self) -> AsyncIterator[CheckResult]:
        return self

    def _take(self) -> CheckResult:
        result = self._queue.get_nowait()
        self._slots.release()
        return result

    async def __anext__(self) -> CheckResult:
        """
        Waits for the next result.

        Raises:
            StopAsyncIteration: Once the stream is closed and drained.
        """
        while True:
            if not self._queue.empty():
                return self._take()
            if self.closed:
                raise StopAsyncIteration

            getter = asyncio.ensure_future(self._queue.get())
            closer = asyncio.ensure_future(self._closed.wait())
            try:
                await asyncio.wait({getter, closer}, return_when=asyncio.FIRST_COMPLETED)
            finally:
                closer.cancel()
                if not getter.done():
                    getter.cancel()

            if getter.done() and not getter.cancelled():
                self._slots.release()
                return getter.result()
