"""In-process event bus used to publish guide progress."""

from __future__ import annotations

import asyncio
import time
import uuid
from dataclasses import dataclass, field
from typing import Any, Awaitable, Callable

from tourlens.common.logging import get_logger


@dataclass
class Event:
    """Event message."""

    topic: str
    data: dict[str, Any]
    source: str
    event_id: str = field(default_factory=lambda: str(uuid.uuid4()))
    timestamp: float = field(default_factory=time.time)


EventHandler = Callable[[Event], Awaitable[None]]


class EventBus:
    """Async publish/subscribe bus.

    Topics are dot separated. Subscriptions may use ``*`` for one segment
    and ``**`` for any number of trailing segments.
    """

    def __init__(self) -> None:
        self._subscribers: dict[str, list[EventHandler]] = {}
        self._wildcard_subscribers: list[tuple[str, EventHandler]] = []
        self.logger = get_logger("event_bus")

    async def publish(self, event: Event) -> None:
        """Publish an event to all matching subscribers.

        Handler failures are logged and never reach the publisher.
        """
        self.logger.debug("publishing_event", topic=event.topic, source=event.source)

        handlers = self._subscribers.get(event.topic, []).copy()
        for pattern, handler in self._wildcard_subscribers:
            if self._matches_pattern(event.topic, pattern):
                handlers.append(handler)

        if handlers:
            await asyncio.gather(
                *[self._safe_dispatch(handler, event) for handler in handlers]
            )

    async def _safe_dispatch(self, handler: EventHandler, event: Event) -> None:
        try:
            await handler(event)
        except Exception as e:
            self.logger.exception(
                "event_handler_error",
                topic=event.topic,
                event_id=event.event_id,
                error=str(e),
            )

    def _matches_pattern(self, topic: str, pattern: str) -> bool:
        topic_parts = topic.split(".")
        pattern_parts = pattern.split(".")

        for i, part in enumerate(pattern_parts):
            if part == "**":
                return True
            if i >= len(topic_parts):
                return False
            if part != "*" and part != topic_parts[i]:
                return False

        return len(topic_parts) == len(pattern_parts)

    def subscribe(self, topic: str, handler: EventHandler) -> Callable[[], None]:
        """Subscribe a handler to a topic.

        Returns:
            Function that removes the subscription.
        """
        if "*" in topic:
            entry = (topic, handler)
            self._wildcard_subscribers.append(entry)

            def unsubscribe() -> None:
                if entry in self._wildcard_subscribers:
                    self._wildcard_subscribers.remove(entry)

        else:
            self._subscribers.setdefault(topic, []).append(handler)

            def unsubscribe() -> None:
                handlers = self._subscribers.get(topic, [])
                if handler in handlers:
                    handlers.remove(handler)

        self.logger.debug("subscribed", topic=topic)
        return unsubscribe
