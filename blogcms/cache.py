import logging

import redis.asyncio as redis

from blogcms.config import settings

logger = logging.getLogger(__name__)


class RevocationUnavailable(Exception):
    """Raised when a token cannot be written to the revocation set."""


class RevocationSet:
    """
    Set of revoked identity tokens backed by Redis keys with a TTL.

    Reads are best-effort: when Redis is unreachable (or was never
    connected) ``is_revoked`` answers False so authentication keeps
    working without the cache.  Writes raise ``RevocationUnavailable``
    because a logout that silently fails would leave the token usable.
    """

    KEY_PREFIX = "revoked:"

    def __init__(self, url: str | None = None, client: redis.Redis | None = None) -> None:
        self._url = url or settings.REDIS_URL
        self._redis: redis.Redis | None = client

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    async def connect(self) -> None:
        """Open the connection pool.  Called once at application startup."""
        self._redis = redis.from_url(
            self._url,
            decode_responses=True,
            socket_connect_timeout=2,
            socket_timeout=2,
        )
        # Ping to surface mis-configuration early (non-fatal).
        try:
            await self._redis.ping()
            logger.info("Redis connected: %s", self._url)
        except Exception as exc:
            logger.warning("Redis ping failed, revocation checks degraded: %s", exc)

    async def disconnect(self) -> None:
        """Close the connection pool.  Called once at application shutdown."""
        if self._redis:
            await self._redis.aclose()
            self._redis = None

    # ------------------------------------------------------------------
    # Operations
    # ------------------------------------------------------------------

    def _key(self, token: str) -> str:
        return f"{self.KEY_PREFIX}{token}"

    async def revoke(self, token: str, ttl: int | None = None) -> None:
        """Mark *token* as revoked for *ttl* seconds."""
        ttl = ttl or settings.REVOCATION_TTL_SECONDS
        if not self._redis:
            raise RevocationUnavailable("Revocation store is not connected")
        try:
            await self._redis.set(self._key(token), "1", ex=ttl)
        except Exception as exc:
            logger.error("Failed to revoke token: %s", exc)
            raise RevocationUnavailable("Revocation store unavailable") from exc

    async def is_revoked(self, token: str) -> bool:
        if not self._redis:
            return False
        try:
            return await self._redis.get(self._key(token)) is not None
        except Exception as exc:
            logger.warning("Revocation check failed, treating token as valid: %s", exc)
            return False
