# recognition/services/NotificationFanout.py
"""
Real-time delivery of newly created recognitions.

Delivery is at-most-once and in-memory: a subscriber sees events published
while it is connected and nothing else. The bus is created by the
application and handed to whoever needs it.
"""

import asyncio
import logging
from abc import ABC, abstractmethod
from typing import Any, Callable, Dict, Optional, Set

from recognition.constants.constants import (
    RECOGNITION_CREATED_CHANNEL,
    Visibility,
    recipient_channel,
)
from recognition.core.exceptions import NotificationError
from recognition.schemas.recognitionSchema import RecognitionResponse

logger = logging.getLogger(__name__)

Payload = Dict[str, Any]
Accept = Callable[[Payload], bool]

_CLOSED = object()


class Subscription:
    """
    A live stream of payloads from one channel.

    Registered as soon as it is created, so nothing published afterwards is
    missed. Iterate with ``async for``; ``close()`` stops delivery.
    """

    def __init__(self, bus: "InMemoryMessageBus", channel: str, queue: asyncio.Queue, accept: Optional[Accept] = None):
        self.bus = bus
        self.channel = channel
        self.accept = accept
        self._queue = queue
        self._closed = False

    @property
    def closed(self) -> bool:
        return self._closed

    def close(self) -> None:
        if self._closed:
            return
        self._closed = True
        self.bus._unregister(self.channel, self._queue)
        try:
            self._queue.put_nowait(_CLOSED)
        except asyncio.QueueFull:
            pass

    def __aiter__(self):
        return self

    async def __anext__(self) -> Payload:
        while True:
            if self._closed and self._queue.empty():
                raise StopAsyncIteration
            payload = await self._queue.get()
            if payload is _CLOSED:
                raise StopAsyncIteration
            if self.accept is None or self.accept(payload):
                return payload

    async def __aenter__(self) -> "Subscription":
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        self.close()


class MessageBus(ABC):
    """Publish/subscribe by channel name."""

    @abstractmethod
    async def publish(self, channel: str, payload: Payload) -> int:
        """Deliver a payload to current subscribers; returns how many received it."""

    @abstractmethod
    def subscribe(self, channel: str, accept: Optional[Accept] = None) -> Subscription:
        ...


class InMemoryMessageBus(MessageBus):
    """MessageBus holding one bounded queue per subscriber."""

    def __init__(self, queue_size: int = 100):
        self.queue_size = queue_size
        self._subscribers: Dict[str, Set[asyncio.Queue]] = {}

    def subscribe(self, channel: str, accept: Optional[Accept] = None) -> Subscription:
        queue = asyncio.Queue(maxsize=self.queue_size)
        self._subscribers.setdefault(channel, set()).add(queue)
        logger.info(f"Subscriber joined {channel} ({self.subscriber_count(channel)} live)")
        return Subscription(self, channel, queue, accept)

    async def publish(self, channel: str, payload: Payload) -> int:
        delivered = 0
        for queue in list(self._subscribers.get(channel, ())):
            try:
                queue.put_nowait(payload)
                delivered += 1
            except asyncio.QueueFull:
                logger.warning(f"Dropping event on {channel}: subscriber queue is full")
        return delivered

    def subscriber_count(self, channel: str) -> int:
        return len(self._subscribers.get(channel, ()))

    def _unregister(self, channel: str, queue: asyncio.Queue) -> None:
        queues = self._subscribers.get(channel)
        if not queues:
            return
        queues.discard(queue)
        if not queues:
            del self._subscribers[channel]
        logger.info(f"Subscriber left {channel}")


class NotificationFanout:
    """Publishes creation events and hands out filtered subscriptions."""

    def __init__(self, bus: MessageBus):
        self.bus = bus

    async def publish_created(self, recognition: RecognitionResponse) -> None:
        """
        Publish a newly created recognition.

        Always goes to the recipient's channel; PUBLIC recognitions also go
        to the public channel.

        Raises:
            NotificationError: If the bus fails to publish.
        """
        payload = recognition.model_dump(mode="json")
        if recognition.visibility == Visibility.anonymous:
            payload["sender"] = None

        try:
            await self.bus.publish(recipient_channel(recognition.recipient.id), payload)
            if recognition.visibility == Visibility.public:
                await self.bus.publish(RECOGNITION_CREATED_CHANNEL, payload)
        except Exception as e:
            raise NotificationError(f"Failed to publish recognition {recognition.id}: {e}") from e

        logger.info(f"Notifications sent for recognition {recognition.id}")

    def subscribe_received(self, user_id: str) -> Subscription:
        """Events for recognitions sent to `user_id`."""

        def addressed_to_user(payload: Payload) -> bool:
            recipient = payload.get("recipient") or {}
            if recipient.get("id") != user_id:
                logger.warning(f"Discarding event {payload.get('id')} not addressed to subscriber {user_id}")
                return False
            return True

        return self.bus.subscribe(recipient_channel(user_id), accept=addressed_to_user)

    def subscribe_public(self) -> Subscription:
        """Events for every PUBLIC recognition."""

        def is_public(payload: Payload) -> bool:
            if payload.get("visibility") != Visibility.public.value:
                logger.warning(f"Discarding non-public event {payload.get('id')} on public channel")
                return False
            return True

        return self.bus.subscribe(RECOGNITION_CREATED_CHANNEL, accept=is_public)
