"""Change broadcaster — in-process fan-out of document change batches."""

import asyncio
import logging
from collections.abc import AsyncGenerator

from survey_sync.domain.entities import DocumentChange

logger = logging.getLogger(__name__)


class ChangeBroadcaster:
    """Fans out document change batches to every listening client.

    Each listener gets its own asyncio.Queue. Publishing pushes the batch to
    all queues; listeners consume batches through an async generator.
    """

    def __init__(self, max_pending: int = 1000) -> None:
        self._max_pending = max_pending
        self._queues: list[asyncio.Queue[list[DocumentChange] | None]] = []

    def open(self) -> asyncio.Queue[list[DocumentChange] | None]:
        """Register a queue before reading the current state, so no write is missed."""
        queue: asyncio.Queue[list[DocumentChange] | None] = asyncio.Queue(self._max_pending)
        self._queues.append(queue)
        return queue

    def close(self, queue: asyncio.Queue[list[DocumentChange] | None]) -> None:
        if queue in self._queues:
            self._queues.remove(queue)

    async def consume(
        self, queue: asyncio.Queue[list[DocumentChange] | None]
    ) -> AsyncGenerator[list[DocumentChange], None]:
        """Yield batches from ``queue`` until it is shut down; always closes it."""
        try:
            while True:
                batch = await queue.get()
                if batch is None:
                    break
                yield batch
        finally:
            self.close(queue)

    def publish(self, changes: list[DocumentChange]) -> None:
        """Push a change batch to every registered listener."""
        dead_queues: list[asyncio.Queue[list[DocumentChange] | None]] = []

        for queue in self._queues:
            try:
                queue.put_nowait(changes)
            except asyncio.QueueFull:
                dead_queues.append(queue)
                logger.warning("Change listener queue full — disconnecting")

        for q in dead_queues:
            self._queues.remove(q)
            _drop_into(q)

    def shutdown(self) -> None:
        """Disconnect all listeners."""
        for queue in self._queues:
            _drop_into(queue)
        self._queues.clear()

    @property
    def listener_count(self) -> int:
        return len(self._queues)


def _drop_into(queue: asyncio.Queue[list[DocumentChange] | None]) -> None:
    """Make room for the end-of-stream marker and enqueue it."""
    while queue.full():
        queue.get_nowait()
    queue.put_nowait(None)
