"""Fire-and-forget notification trigger over Redis pub/sub.

Messages go to ``ws:user:{user_id}``; delivery to connected clients is
handled by whatever subscribes to that channel. Publishing never raises.
"""

from __future__ import annotations

import json
import logging
from datetime import datetime, timezone
from typing import Any, Protocol

from tradeya.redis_client import user_channel

logger = logging.getLogger(__name__)

CHALLENGE_STARTED = "challenge_started"
CHALLENGE_PROGRESS = "challenge_progress"
CHALLENGE_COMPLETED = "challenge_completed"
BADGE_EARNED = "badge_earned"
LEVEL_UP = "level_up"
ENDORSEMENT_RECEIVED = "endorsement_received"


class Notifier(Protocol):
    async def notify(self, user_id: str, event: str, payload: dict[str, Any]) -> None: ...


class RedisNotifier:
    """Publishes user events to Redis. A missing client makes it a no-op."""

    def __init__(self, redis: object | None) -> None:
        self.redis = redis

    async def notify(self, user_id: str, event: str, payload: dict[str, Any]) -> None:
        if self.redis is None:
            return

        message = {
            "event": event,
            "data": payload,
            "timestamp": datetime.now(timezone.utc).isoformat(),
        }
        try:
            await self.redis.publish(  # type: ignore[union-attr]
                user_channel(user_id),
                json.dumps(message, default=str),
            )
        except Exception:
            logger.warning("Failed to publish %s for user %s", event, user_id, exc_info=True)
