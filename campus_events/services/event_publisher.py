"""
Notification publishing for Campus Events Service.

The workflow depends on an EventPublisher handed to it at construction time.
Publishing is best-effort: a failed publish is logged and never undoes a
committed transition.
"""

import asyncio
import inspect
import json
import logging
from datetime import datetime, timezone
from typing import Any, Awaitable, Callable, Dict, List, Optional, Union

from campus_events.db.redis_client import RedisManager

logger = logging.getLogger(__name__)


class NotificationType:
    """Names of the domain notifications emitted by the workflow."""
    EVENT_CREATED = "event_created"
    EVENT_APPROVED = "event_approved"
    EVENT_REJECTED = "event_rejected"
    EVENT_MODIFICATION_REQUESTED = "event_modification_requested"
    ALLOCATION_CONFLICT = "allocation_conflict"
    ALLOCATION_FAILED = "allocation_failed"
    RESOURCES_ALLOCATED = "resources_allocated"
    EVENT_COMPLETED = "event_completed"
    VENUE_CREATED = "venue_created"
    RESOURCE_CREATED = "resource_created"

    ALL = (
        EVENT_CREATED, EVENT_APPROVED, EVENT_REJECTED, EVENT_MODIFICATION_REQUESTED,
        ALLOCATION_CONFLICT, ALLOCATION_FAILED, RESOURCES_ALLOCATED, EVENT_COMPLETED,
        VENUE_CREATED, RESOURCE_CREATED,
    )


class EventPublisher:
    """Transport for domain notifications."""

    async def publish(self, name: str, payload: Dict[str, Any]) -> None:
        raise NotImplementedError


class RedisEventPublisher(EventPublisher):
    """
    Publishes notifications to Redis channels, one channel per name.
    """

    def __init__(self, redis_manager: RedisManager, channel_prefix: str = "campus:events"):
        self.redis_manager = redis_manager
        self.channel_prefix = channel_prefix

    async def publish(self, name: str, payload: Dict[str, Any]) -> None:
        channel = f"{self.channel_prefix}:{name}"
        message = {
            "type": name,
            "data": payload,
            "timestamp": datetime.now(timezone.utc).isoformat()
        }
        await self.redis_manager.publish(channel, json.dumps(message, default=str))
        logger.info(f"Published {name} on {channel}")


Subscriber = Callable[[str, Dict[str, Any]], Union[None, Awaitable[None]]]


class CallbackEventPublisher(EventPublisher):
    """
    In-process publisher that fans notifications out to registered callbacks.
    Callbacks may be plain functions or coroutines.
    """

    def __init__(self):
        self._subscribers: List[Subscriber] = []

    def subscribe(self, callback: Subscriber) -> None:
        self._subscribers.append(callback)

    async def publish(self, name: str, payload: Dict[str, Any]) -> None:
        for callback in list(self._subscribers):
            result = callback(name, payload)
            if inspect.isawaitable(result):
                await result


class NotificationEmitter:
    """
    Best-effort fan-out of domain notifications to one or more publishers.
    """

    def __init__(self, publishers: Optional[List[EventPublisher]] = None):
        self.publishers: List[EventPublisher] = list(publishers or [])

    def add_publisher(self, publisher: EventPublisher) -> None:
        self.publishers.append(publisher)

    async def emit(self, name: str, payload: Dict[str, Any]) -> None:
        """
        Emit a notification to every publisher.

        Failures are logged per publisher and swallowed.
        """
        if name not in NotificationType.ALL:
            logger.warning(f"Emitting unregistered notification type: {name}")

        for publisher in self.publishers:
            try:
                await publisher.publish(name, payload)
            except asyncio.CancelledError:
                raise
            except Exception as e:
                logger.error(f"Failed to publish {name} via {type(publisher).__name__}: {e}")


# Global emitter; publishers are attached at startup
notification_emitter = NotificationEmitter()
