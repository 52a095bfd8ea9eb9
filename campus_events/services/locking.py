"""
Per-event serialization for decisions and completions.
"""

from typing import AsyncContextManager, Callable, Optional

from campus_events.core.config import config
from campus_events.db.redis_client import get_distributed_lock

LockFactory = Callable[[str], AsyncContextManager]


def event_lock_key(event_id: int) -> str:
    return f"campus:lock:event:{event_id}"


class EventLockProvider:
    """
    Hands out the lock guarding one event.

    Uses a Redis distributed lock unless a factory is injected.
    """

    def __init__(self, lock_factory: Optional[LockFactory] = None):
        self.lock_factory = lock_factory
        self.consistency_config = None

    async def for_event(self, event_id: int) -> AsyncContextManager:
        lock_key = event_lock_key(event_id)
        if self.lock_factory:
            return self.lock_factory(lock_key)

        if not self.consistency_config:
            self.consistency_config = await config.get_consistency_config()
        return get_distributed_lock(
            lock_key,
            timeout=self.consistency_config["lock_timeout_seconds"],
            blocking_timeout=self.consistency_config["lock_blocking_timeout_seconds"]
        )
