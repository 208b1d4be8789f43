"""Redis client for user-event pub/sub.

Redis is optional: with ``TRADEYA_REDIS_URL`` empty no client exists and
notifications become no-ops. An unreachable server at startup is logged but
does not block the service, the client reconnects on the next publish.
"""

from __future__ import annotations

import logging

import redis.asyncio as redis

from tradeya.config import Settings

logger = logging.getLogger(__name__)

USER_CHANNEL_PREFIX = "ws:user:"

_client: redis.Redis | None = None


def user_channel(user_id: str) -> str:
    """Pub/sub channel carrying one user's challenge and reputation events."""
    return f"{USER_CHANNEL_PREFIX}{user_id}"


async def init_redis(settings: Settings) -> redis.Redis | None:
    """Create the shared client from settings, or leave Redis disabled."""
    global _client  # noqa: PLW0603
    if not settings.redis_url:
        logger.info("Redis disabled, user notifications will not be published")
        _client = None
        return None

    client = redis.from_url(  # type: ignore[no-untyped-call]
        settings.redis_url,
        encoding="utf-8",
        decode_responses=True,
        max_connections=settings.redis_max_connections,
        socket_connect_timeout=settings.redis_connect_timeout,
        health_check_interval=30,
    )
    try:
        await client.ping()
    except redis.RedisError as exc:
        logger.warning("Redis unreachable at startup (%s), publishing will retry per event", exc)
    _client = client
    return client


async def close_redis() -> None:
    global _client  # noqa: PLW0603
    if _client is not None:
        await _client.aclose()
        _client = None


def get_redis() -> redis.Redis | None:
    """The shared client, or None when pub/sub is not configured."""
    return _client
