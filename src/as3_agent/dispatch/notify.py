"""Outbound channel for post-success notifications."""
import asyncio
import logging
from typing import AsyncIterator, Optional

from .errors import AgentError
from .schema import DeployResult

logger = logging.getLogger(__name__)


class ResponseSink:
    """Unbounded channel of DeployResult events, closable once.

    Consumers either ``await get()`` (None after close) or iterate with
    ``async for``. A long-running host must keep consuming, otherwise
    results pile up here.
    """

    def __init__(self):
        self._queue: asyncio.Queue[Optional[DeployResult]] = asyncio.Queue()
        self._closed = False

    @property
    def closed(self) -> bool:
        return self._closed

    @property
    def pending(self) -> int:
        """Results published but not yet consumed."""
        # After close the queue also holds the end marker
        return max(0, self._queue.qsize() - int(self._closed))

    def publish(self, result: DeployResult) -> None:
        if self._closed:
            logger.warning("Dropping deploy notification, response sink is closed")
            return
        self._queue.put_nowait(result)

    async def get(self) -> Optional[DeployResult]:
        """Next result, or None once the sink is closed and drained."""
        result = await self._queue.get()
        if result is None:
            # Leave the marker for any other consumer
            self._queue.put_nowait(None)
        return result

    def close(self) -> None:
        if self._closed:
            raise AgentError("Response sink already closed")
        self._closed = True
        self._queue.put_nowait(None)

    async def __aiter__(self) -> AsyncIterator[DeployResult]:
        while True:
            result = await self.get()
            if result is None:
                return
            yield result
