"""Best-effort gamification event publishing over Redis pub/sub."""

from __future__ import annotations

import json
import logging
from typing import Any

from redis.exceptions import RedisError

logger = logging.getLogger(__name__)

LEVEL_UP = "pubsub:level_up"
BADGE_EARNED = "pubsub:badge_earned"
QUEST_COMPLETED = "pubsub:quest_completed"
STREAK_UPDATE = "pubsub:streak_update"
REWARD_PURCHASED = "pubsub:reward_purchased"


async def publish_event(redis: object, channel: str, payload: dict[str, Any]) -> None:
    """Publish a JSON event. Never raises; a missing or failing Redis is logged."""
    if redis is None:
        return
    try:
        await redis.publish(channel, json.dumps(payload, default=str))  # type: ignore[attr-defined]
    except RedisError:
        logger.warning("Failed to publish %s event", channel, exc_info=True)
