"""
SSE topic broker

In-process publish/subscribe for Server-Sent Events. Each open stream owns a
bounded queue subscribed to one or more topics (``city:<id>``,
``facility:<id>``). Publishing never waits on a slow consumer: when a
subscriber's queue is full the event is dropped for that subscriber only.
"""

import asyncio
from datetime import datetime, timezone
from typing import Any, Dict, Iterable, Set

from bloodnet.config import settings
from bloodnet.utils.logging_config import get_logger

logger = get_logger(__name__)


class TopicBroker:
    """Routes published payloads to the queues subscribed to a topic"""

    def __init__(self, queue_size: int = settings.SSE_QUEUE_SIZE):
        self.queue_size = queue_size
        # topic -> subscriber queues
        self._topics: Dict[str, Set[asyncio.Queue]] = {}
        self._lock = asyncio.Lock()
        self._published = 0
        self._dropped = 0

    async def subscribe(self, topics: Iterable[str]) -> asyncio.Queue:
        """
        Register a new subscriber.

        Args:
            topics: Topics the subscriber wants events for

        Returns:
            asyncio.Queue: Queue receiving ``{"topic", "data", "published_at"}`` messages
        """
        topics = list(topics)
        queue = asyncio.Queue(maxsize=self.queue_size)
        async with self._lock:
            for topic in topics:
                self._topics.setdefault(topic, set()).add(queue)

        logger.info(f"SSE subscriber added for topics {sorted(topics)}")
        return queue

    async def unsubscribe(self, queue: asyncio.Queue, topics: Iterable[str]) -> None:
        topics = list(topics)
        async with self._lock:
            for topic in topics:
                subscribers = self._topics.get(topic)
                if not subscribers:
                    continue
                subscribers.discard(queue)
                if not subscribers:
                    del self._topics[topic]

        logger.info(f"SSE subscriber removed from topics {sorted(topics)}")

    async def publish(self, topic: str, payload: Dict[str, Any]) -> int:
        """
        Deliver ``payload`` to every subscriber of ``topic``.

        Returns:
            int: Number of subscribers the message was queued for
        """
        message = {
            "topic": topic,
            "data": payload,
            "published_at": datetime.now(timezone.utc).isoformat(),
        }

        delivered = 0
        for queue in list(self._topics.get(topic, ())):
            try:
                queue.put_nowait(message)
                delivered += 1
            except asyncio.QueueFull:
                self._dropped += 1
                logger.warning(f"SSE subscriber queue full, dropping event for topic {topic}")

        self._published += 1
        logger.debug(f"Published event on {topic} to {delivered} subscribers")
        return delivered

    def subscriber_count(self, topic: str) -> int:
        return len(self._topics.get(topic, ()))

    def get_stats(self) -> dict:
        """Connection and delivery statistics"""
        subscribers = set()
        for queues in self._topics.values():
            subscribers.update(queues)

        return {
            "total_subscribers": len(subscribers),
            "topics": {topic: len(queues) for topic, queues in self._topics.items()},
            "published_events": self._published,
            "dropped_events": self._dropped,
        }
