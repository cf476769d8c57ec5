"""Redis client configuration and the per-scope serving counter."""

from typing import cast
from uuid import UUID

import redis
import structlog

from app.config import settings
from app.core.exceptions import DownstreamUnavailableException

logger = structlog.get_logger(__name__)

# Global Redis client instance
_redis_client: redis.Redis | None = None


def get_redis_client() -> redis.Redis:
    """
    Get or create Redis client instance.

    Returns:
        Redis client instance
    """
    global _redis_client

    if _redis_client is None:
        _redis_client = redis.Redis(
            host=settings.redis_host,
            port=settings.redis_port,
            username=settings.redis_username,
            password=settings.redis_password,
            decode_responses=settings.redis_decode_responses,
            socket_connect_timeout=5,
            socket_keepalive=True,
            health_check_interval=30,
        )

    return _redis_client


async def check_redis_connection() -> bool:
    """
    Check if Redis connection is healthy.

    Returns:
        True if connection is healthy, False otherwise
    """
    try:
        client = get_redis_client()
        client.ping()
        return True
    except Exception:
        return False


def close_redis_connection() -> None:
    """Close Redis connection."""
    global _redis_client

    if _redis_client is not None:
        _redis_client.close()
        _redis_client = None


def doctor_scope_key(doctor_id: UUID | str) -> str:
    """Counter key for a doctor-scoped queue."""
    return f"doctor:{doctor_id}:current"


class CounterStore:
    """
    Redis-backed "currently serving" number per queue scope.

    The value is a cache of ledger state, not the source of truth; a missing
    key reads as ``None`` so callers can tell "never set" from "reset to 0"
    and reconcile from the ledger.
    """

    def __init__(self, redis_client: redis.Redis):
        """Initialize counter store with Redis client."""
        self.redis = redis_client

    def get(self, key: str) -> int | None:
        """Read the serving number for a scope key."""
        try:
            value = cast(str | bytes | None, self.redis.get(key))
        except redis.RedisError as e:
            logger.error("counter_read_failed", key=key, error=str(e))
            raise DownstreamUnavailableException("Counter store unavailable") from e

        if value is None:
            return None
        return int(value)

    def set(self, key: str, value: int) -> None:
        """Write the serving number for a scope key."""
        try:
            self.redis.set(key, int(value))
        except redis.RedisError as e:
            logger.error("counter_write_failed", key=key, value=value, error=str(e))
            raise DownstreamUnavailableException("Counter store unavailable") from e

    def reset(self, key: str) -> None:
        """Start a fresh session for a scope."""
        self.set(key, 0)

    def reset_pattern(self, pattern: str) -> int:
        """
        Reset every counter matching a key pattern to 0.

        Args:
            pattern: Redis key pattern (e.g., 'doctor:*:current')

        Returns:
            Number of counters reset
        """
        try:
            keys = cast(list[str], self.redis.keys(pattern))
            for key in keys:
                self.redis.set(key, 0)
            return len(keys)
        except redis.RedisError as e:
            logger.error("counter_bulk_reset_failed", pattern=pattern, error=str(e))
            raise DownstreamUnavailableException("Counter store unavailable") from e
