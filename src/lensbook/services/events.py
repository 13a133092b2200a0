"""Lifecycle event fan-out."""

import logging
from collections import defaultdict
from collections.abc import Awaitable, Callable
from dataclasses import dataclass, field
from typing import Protocol
from uuid import UUID

_logger = logging.getLogger(__name__)

Subscriber = Callable[[str, str, dict[str, object]], Awaitable[None]]


class EventPublisher(Protocol):
    """Interface for publishing lifecycle events to interested parties."""

    async def publish(self, topic: str, event: str, payload: dict[str, object]) -> None:
        """Publish an event on a topic."""


def booking_topic(booking_id: UUID) -> str:
    """Return the channel for a booking."""
    return f"booking:{booking_id}"


def editing_request_topic(request_id: UUID) -> str:
    """Return the channel for an editing request."""
    return f"editing_request:{request_id}"


@dataclass
class InMemoryEventBus(EventPublisher):
    """In-process pub/sub used when no relay is configured."""

    subscribers: dict[str, list[Subscriber]] = field(
        default_factory=lambda: defaultdict(list)
    )
    published: list[tuple[str, str, dict[str, object]]] = field(default_factory=list)

    def subscribe(self, topic: str, subscriber: Subscriber) -> None:
        """Register a subscriber for a topic."""
        self.subscribers[topic].append(subscriber)

    def unsubscribe(self, topic: str, subscriber: Subscriber) -> None:
        """Remove a subscriber from a topic, if registered."""
        if subscriber in self.subscribers.get(topic, []):
            self.subscribers[topic].remove(subscriber)

    async def publish(self, topic: str, event: str, payload: dict[str, object]) -> None:
        """Deliver an event to every subscriber of the topic."""
        self.published.append((topic, event, payload))
        for subscriber in list(self.subscribers.get(topic, [])):
            await subscriber(topic, event, payload)


@dataclass
class EventFanout:
    """Side-channel publisher whose failures never reach the caller."""

    publisher: EventPublisher

    async def publish(self, topic: str, event: str, payload: dict[str, object]) -> None:
        """Publish an event, logging and dropping any failure."""
        try:
            await self.publisher.publish(topic, event, payload)
        except Exception as exc:  # noqa: BLE001
            _logger.warning(
                "Event publish failed: topic=%s event=%s: %s", topic, event, exc
            )
