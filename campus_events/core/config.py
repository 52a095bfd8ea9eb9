"""
Configuration management for Campus Events Service.
Uses Zero Python SDK for secure configuration, with environment fallback.
"""

import os
import asyncio
import concurrent.futures
from urllib.parse import quote_plus
from typing import Dict, Any, Optional
import logging
from zero_python_sdk import zero

logger = logging.getLogger(__name__)


class ZeroSecretsManager:
    """
    Zero secrets client using the official Zero Python SDK.
    Secrets are fetched once and cached for the lifetime of the process.
    """

    def __init__(self, zero_token: str, caller_name: str = "campus-events", pick: str = "campus"):
        self.zero_token = zero_token
        self.caller_name = caller_name
        self.pick = pick
        self._cache: Dict[str, Any] = {}
        self._secrets = None

    async def _fetch_secrets(self):
        """Fetch secrets from Zero if not already cached."""
        if self._secrets is None:
            try:
                loop = asyncio.get_running_loop()
                with concurrent.futures.ThreadPoolExecutor() as executor:
                    self._secrets = await loop.run_in_executor(
                        executor,
                        lambda: zero(
                            token=self.zero_token,
                            pick=[self.pick],
                            caller_name=self.caller_name
                        ).fetch()
                    )
                logger.info("Successfully fetched secrets from Zero")
            except Exception as e:
                logger.error(f"Failed to fetch secrets from Zero: {e}")
                self._secrets = {}

    def _normalize_key(self, key: str) -> str:
        """Normalize a key to lowercase and replace underscores with hyphens."""
        return key.lower().replace("_", "-")

    async def get_secret(self, key: str) -> Optional[str]:
        """
        Get a secret value by key.

        Args:
            key: The secret key to retrieve

        Returns:
            Secret value or None if not found
        """
        key = self._normalize_key(key)
        if key in self._cache:
            return self._cache[key]

        await self._fetch_secrets()
        secret_value = self._secrets.get(self.pick, {}).get(key)

        if secret_value:
            self._cache[key] = secret_value

        return secret_value

    async def close(self):
        """Close method for compatibility."""
        pass


class ServiceConfig:
    """
    Campus Events Service configuration manager.

    Values resolve from Zero when ZERO_TOKEN is set, then from the process
    environment, then from the documented default.
    """

    def __init__(self):
        self.zero_token = os.getenv("ZERO_TOKEN")
        self.secrets_manager = ZeroSecretsManager(self.zero_token) if self.zero_token else None

    async def get_value(self, key: str, default: Optional[str] = None) -> Optional[str]:
        """Resolve a single configuration value."""
        value = None
        if self.secrets_manager:
            value = await self.secrets_manager.get_secret(key)
        if not value:
            value = os.getenv(key)
        return value if value else default

    async def get_database_url(self) -> str:
        """Get the database connection URL."""
        url = await self.get_value("DATABASE_URL")
        if url:
            return url

        host = await self.get_value("DB_HOST", "localhost")
        port = await self.get_value("DB_PORT", "5432")
        name = await self.get_value("DB_NAME", "campus_events")
        user = await self.get_value("DB_USER", "campus")
        password = await self.get_value("DB_PASSWORD", "campus123")

        return f"postgresql://{user}:{quote_plus(password)}@{host}:{port}/{name}"

    async def get_redis_url(self) -> str:
        """Get the Redis connection URL."""
        host = await self.get_value("REDIS_HOST", "localhost")
        port = await self.get_value("REDIS_PORT", "6379")
        password = await self.get_value("REDIS_PASSWORD")
        use_tls = await self.get_value("REDIS_USE_TLS")

        protocol = "rediss://" if use_tls == "true" else "redis://"

        if password:
            return f"{protocol}:{quote_plus(password)}@{host}:{port}"
        return f"{protocol}{host}:{port}"

    async def get_jwt_secret(self) -> str:
        """Get JWT secret key."""
        return await self.get_value("JWT_SECRET", "your-secret-key-change-in-production")

    async def get_jwt_algorithm(self) -> str:
        """Get JWT algorithm."""
        return await self.get_value("JWT_ALGORITHM", "HS256")

    async def get_notification_channel_prefix(self) -> str:
        """Get the Redis channel prefix for domain notifications."""
        return await self.get_value("NOTIFICATION_CHANNEL_PREFIX", "campus:events")

    async def get_consistency_config(self) -> Dict[str, Any]:
        """Get locking configuration for decisions and completions."""
        return {
            "lock_timeout_seconds": int(await self.get_value("LOCK_TIMEOUT_SECONDS", "30")),
            "lock_blocking_timeout_seconds": int(await self.get_value("LOCK_BLOCKING_TIMEOUT_SECONDS", "10")),
        }

    async def get_database_config(self) -> Dict[str, Any]:
        """Get database pool configuration."""
        return {
            "pool_size": int(await self.get_value("DB_POOL_SIZE", "20")),
            "max_overflow": int(await self.get_value("DB_MAX_OVERFLOW", "30")),
            "pool_timeout": int(await self.get_value("DB_POOL_TIMEOUT", "30")),
            "pool_recycle": int(await self.get_value("DB_POOL_RECYCLE", "3600")),
        }

    async def close(self):
        """Close the secrets manager."""
        if self.secrets_manager:
            await self.secrets_manager.close()


# Global config instance
config = ServiceConfig()
