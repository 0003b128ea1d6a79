"""Single-slot, latest-wins handoff between producers and the dispatcher."""
import asyncio
import logging
from typing import Generic, Optional, TypeVar

from .errors import QueueClosedError

logger = logging.getLogger(__name__)

T = TypeVar("T")


class LatestWinsQueue(Generic[T]):
    """A mailbox holding at most one unconsumed item.

    ``submit`` never blocks: a pending item that the consumer has not picked
    up yet is replaced by the new one. Only the most recent submission is
    guaranteed to be observed.

    Must be used from a single event loop; other threads go through
    ``loop.call_soon_threadsafe``.
    """

    def __init__(self):
        self._item: Optional[T] = None
        self._pending = False
        self._closed = False
        self._wakeup = asyncio.Event()
        self.submitted = 0
        self.dropped = 0

    @property
    def closed(self) -> bool:
        return self._closed

    @property
    def pending(self) -> bool:
        return self._pending

    def submit(self, item: T) -> None:
        """Store ``item``, discarding any pending one.

        Raises:
            QueueClosedError: If the queue has been closed
        """
        if self._closed:
            raise QueueClosedError("Dispatch queue is closed")

        if self._pending:
            self.dropped += 1
            logger.debug("Superseded a pending declaration")

        self._item = item
        self._pending = True
        self.submitted += 1
        self._wakeup.set()

    def poll(self) -> Optional[T]:
        """Take the pending item without waiting, or None."""
        if not self._pending:
            return None
        return self._take()

    async def get(self) -> T:
        """Wait for the next item.

        Safe to cancel (e.g. when raced against a timeout): nothing is taken
        from the slot unless this coroutine returns.

        Raises:
            QueueClosedError: Once the queue is closed and drained
        """
        while not self._pending:
            if self._closed:
                raise QueueClosedError("Dispatch queue is closed")
            await self._wakeup.wait()
        return self._take()

    def close(self) -> None:
        """Stop accepting items and wake any waiting consumer.

        A pending item stays available until it is taken.

        Raises:
            QueueClosedError: If the queue was already closed
        """
        if self._closed:
            raise QueueClosedError("Dispatch queue already closed")
        self._closed = True
        self._wakeup.set()

    def _take(self) -> T:
        item = self._item
        self._item = None
        self._pending = False
        if not self._closed:
            self._wakeup.clear()
        return item  # type: ignore[return-value]
