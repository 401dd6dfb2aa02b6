"""
Workflow event stream.

Fan-out of typed workflow events to bounded per-subscriber queues.
"""

import asyncio
from contextlib import asynccontextmanager
from typing import AsyncIterator, List, Optional

from shared.config import settings
from shared.logging import get_logger
from shared.models.workflow import WorkflowEvent

logger = get_logger("workflow.events")

# Sentinel placed on queues when the stream closes
_CLOSED = object()


class Subscription:
    """Async iterator over the events of one subscriber."""

    def __init__(self, queue: asyncio.Queue):
        self.queue = queue

    def __aiter__(self) -> "Subscription":
        return self

    async def __anext__(self) -> WorkflowEvent:
        item = await self.queue.get()
        if item is _CLOSED:
            raise StopAsyncIteration
        return item

    async def get(self, timeout: Optional[float] = None) -> Optional[WorkflowEvent]:
        """Next event, or None if the stream closed."""
        item = await asyncio.wait_for(self.queue.get(), timeout=timeout)
        return None if item is _CLOSED else item


class WorkflowEventStream:
    """
    Publishes workflow events to every subscriber.

    publish() never blocks: when a subscriber's queue is full the oldest event
    is dropped to make room.
    """

    def __init__(
        self,
        workflow_id: str,
        max_queue_size: Optional[int] = None,
        max_subscribers: Optional[int] = None
    ):
        self.workflow_id = workflow_id
        self.max_queue_size = max_queue_size or settings.event_queue_size
        self.max_subscribers = max_subscribers or settings.max_subscribers
        self._queues: List[asyncio.Queue] = []
        self._closed = False

    @property
    def subscriber_count(self) -> int:
        return len(self._queues)

    def add_subscriber(self) -> Subscription:
        """
        Register a subscriber.

        Raises:
            ValueError: If max subscribers exceeded
        """
        if len(self._queues) >= self.max_subscribers:
            raise ValueError(f"Maximum {self.max_subscribers} subscribers per workflow exceeded")

        queue: asyncio.Queue = asyncio.Queue(maxsize=self.max_queue_size)
        if self._closed:
            queue.put_nowait(_CLOSED)
        self._queues.append(queue)
        logger.debug("Subscriber added", extra={"total": len(self._queues)})
        return Subscription(queue)

    def remove_subscriber(self, subscription: Subscription) -> None:
        try:
            self._queues.remove(subscription.queue)
        except ValueError:
            pass  # Already removed

    @asynccontextmanager
    async def subscribe(self) -> AsyncIterator[Subscription]:
        """Subscribe for the duration of a context block."""
        subscription = self.add_subscriber()
        try:
            yield subscription
        finally:
            self.remove_subscriber(subscription)

    def _put(self, queue: asyncio.Queue, item) -> None:
        if queue.full():
            queue.get_nowait()
            logger.warning("Subscriber queue full, dropped oldest event")
        queue.put_nowait(item)

    def publish(self, event: WorkflowEvent) -> None:
        """
        Deliver an event to all current subscribers.

        Args:
            event: Event to publish
        """
        if self._closed:
            return
        for queue in list(self._queues):
            self._put(queue, event)

    def close(self) -> None:
        """End every subscriber's iteration."""
        if self._closed:
            return
        self._closed = True
        for queue in list(self._queues):
            self._put(queue, _CLOSED)
