import logging

import redis.asyncio as redis

from blog_api.config import settings
from blog_api.errors import ConfigurationError

logger = logging.getLogger(__name__)

KEY_PREFIX = "verification:"


class VerificationCodeStore:
    """
    Redis-backed store for single-use email verification codes.

    Unlike a cache, a failure here is a real failure: a code that was never
    saved cannot be verified later, so every error propagates to the caller.
    """

    def __init__(self) -> None:
        self._redis: redis.Redis | None = None

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    async def connect(self) -> None:
        """Open the connection pool.  Called once at application startup."""
        self._redis = redis.from_url(
            settings.REDIS_URL,
            decode_responses=True,
            socket_connect_timeout=2,
            socket_timeout=2,
        )
        await self._redis.ping()
        logger.info("Redis connected: %s", settings.REDIS_URL)

    async def disconnect(self) -> None:
        """Close the connection pool.  Called once at application shutdown."""
        if self._redis:
            await self._redis.aclose()
            self._redis = None

    # ------------------------------------------------------------------
    # Code operations
    # ------------------------------------------------------------------

    @property
    def client(self) -> redis.Redis:
        if self._redis is None:
            raise ConfigurationError("Verification code store is not connected")
        return self._redis

    @staticmethod
    def key_for(email: str) -> str:
        return f"{KEY_PREFIX}{email}"

    async def save(self, email: str, code: str, ttl: int) -> None:
        """Store *code* for *email*, replacing any earlier one; expires after *ttl* seconds."""
        await self.client.set(self.key_for(email), code, ex=ttl)

    async def get(self, email: str) -> str | None:
        return await self.client.get(self.key_for(email))

    async def delete(self, email: str) -> None:
        await self.client.delete(self.key_for(email))


# Module-level singleton shared across all request handlers.
code_store = VerificationCodeStore()
