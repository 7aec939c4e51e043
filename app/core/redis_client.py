"""Redis client configuration and request rate limiting."""

from typing import cast

import redis

from app.config import settings

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


class RateLimiter:
    """
    Fixed-window request counter.

    Only throttles how often a user may hit write endpoints; it never takes
    part in deciding whether a slot is free.
    """

    def __init__(self, redis_client: redis.Redis):
        """Initialize rate limiter with Redis client."""
        self.redis = redis_client

    @staticmethod
    def key_for(user_id: object, action: str) -> str:
        """Build the counter key for a user and an action name."""
        return f"rate_limit:{action}:{user_id}"

    def check_rate_limit(
        self,
        key: str,
        limit: int,
        window: int = 60,
    ) -> bool:
        """
        Check if rate limit is exceeded.

        Args:
            key: Rate limit key (see ``key_for``)
            limit: Maximum number of requests
            window: Time window in seconds

        Returns:
            True if within limit, False if exceeded
        """
        try:
            current = cast(str | None, self.redis.get(key))

            if current is None:
                # First request in this window
                self.redis.setex(key, window, 1)
                return True

            if int(current) >= limit:
                return False

            self.redis.incr(key)
            return True
        except redis.RedisError:
            # Fail open: throttling is best-effort
            return True
