"""
Redis client for Campus Events Service.
Handles notification pub/sub and per-event distributed locking.
"""

from typing import Optional
import redis.asyncio as redis
from redis.asyncio import Redis
from redis.asyncio.lock import Lock
from redis.exceptions import LockError, RedisError
import logging

from campus_events.core.config import config
from campus_events.core.exceptions import PersistenceError

logger = logging.getLogger(__name__)


class RedisManager:
    """
    Redis manager for notifications and distributed locks.
    """

    def __init__(self):
        self.redis_client: Optional[Redis] = None
        self._initialized = False

    async def initialize(self):
        """Initialize Redis connection."""
        if self._initialized:
            return

        try:
            redis_url = await config.get_redis_url()
            self.redis_client = redis.from_url(
                redis_url,
                encoding="utf-8",
                decode_responses=True,
                socket_connect_timeout=5,
                socket_timeout=5,
                retry_on_timeout=True,
                health_check_interval=30
            )

            # Test connection
            await self.redis_client.ping()
            self._initialized = True
            logger.info("Redis client initialized successfully")

        except Exception as e:
            logger.error(f"Failed to initialize Redis client: {e}")
            raise

    async def close(self):
        """Close Redis connection."""
        if self.redis_client:
            await self.redis_client.aclose()
        self._initialized = False
        logger.info("Redis connection closed")

    async def publish(self, channel: str, message: str) -> int:
        """
        Publish a message on a channel.

        Returns:
            Number of subscribers that received the message
        """
        if not self._initialized:
            await self.initialize()

        return await self.redis_client.publish(channel, message)

    # Distributed Locking
    async def acquire_lock(self, lock_key: str, timeout: int = 30, blocking_timeout: int = 10) -> Optional[Lock]:
        """
        Acquire a distributed lock.

        Args:
            lock_key: Unique key for the lock
            timeout: Lock timeout in seconds
            blocking_timeout: Maximum time to wait for lock acquisition

        Returns:
            The held lock, or None if it could not be acquired in time
        """
        if not self._initialized:
            await self.initialize()

        lock = self.redis_client.lock(
            lock_key,
            timeout=timeout,
            sleep=0.1,
            blocking_timeout=blocking_timeout
        )

        try:
            if await lock.acquire():
                logger.debug(f"Distributed lock acquired: {lock_key}")
                return lock
        except RedisError as e:
            logger.error(f"Error acquiring lock {lock_key}: {e}")
            return None

        logger.warning(f"Failed to acquire lock {lock_key} within {blocking_timeout}s")
        return None

    async def release_lock(self, lock: Lock) -> bool:
        """
        Release a distributed lock if it is still held by this owner.
        The owner check and delete run as one script on the server.

        Returns:
            True if lock released, False otherwise
        """
        try:
            await lock.release()
            logger.debug(f"Distributed lock released: {lock.name}")
            return True
        except LockError as e:
            logger.warning(f"Lock {lock.name} expired or changed owner before release: {e}")
            return False
        except RedisError as e:
            logger.error(f"Error releasing lock {lock.name}: {e}")
            return False

    # Health Check
    async def health_check(self) -> bool:
        """Check Redis connection health."""
        try:
            if not self._initialized:
                await self.initialize()

            result = await self.redis_client.ping()
            return result is True
        except Exception as e:
            logger.error(f"Redis health check failed: {e}")
            return False


# Global Redis manager instance
redis_manager = RedisManager()


class DistributedLock:
    """
    Context manager for distributed locks with automatic cleanup.
    """

    def __init__(self, redis_manager: RedisManager, lock_key: str, timeout: int = 30, blocking_timeout: int = 10):
        self.redis_manager = redis_manager
        self.lock_key = lock_key
        self.timeout = timeout
        self.blocking_timeout = blocking_timeout
        self.lock: Optional[Lock] = None

    @property
    def acquired(self) -> bool:
        return self.lock is not None

    async def __aenter__(self):
        self.lock = await self.redis_manager.acquire_lock(
            self.lock_key,
            self.timeout,
            self.blocking_timeout
        )
        if self.lock is None:
            raise PersistenceError(f"Failed to acquire lock: {self.lock_key}", {"lock_key": self.lock_key})
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        if self.lock is not None:
            await self.redis_manager.release_lock(self.lock)
            self.lock = None


def get_distributed_lock(lock_key: str, timeout: int = 30, blocking_timeout: int = 10) -> DistributedLock:
    """Get a distributed lock context manager."""
    return DistributedLock(redis_manager, lock_key, timeout, blocking_timeout)
