"""Best-effort pub/sub notifications.

Published only after the owning transaction committed. Delivery failures are
logged and never change the outcome of the operation that produced them.
"""

from __future__ import annotations

import json
import logging
from typing import Any

logger = logging.getLogger(__name__)

TASK_COMPLETED = "pubsub:task_completed"
TASK_VERIFIED = "pubsub:task_verified"
ACHIEVEMENT_UNLOCKED = "pubsub:achievement_unlocked"
LEVEL_UP = "pubsub:level_up"
DAY_ADVANCED = "pubsub:day_advanced"
MISSION_COMPLETED = "pubsub:mission_completed"


async def publish(redis: object | None, channel: str, payload: dict[str, Any]) -> bool:
    """Publish a JSON payload. Returns True if handed to Redis."""
    if redis is None:
        return False
    try:
        await redis.publish(channel, json.dumps(payload, default=str))  # type: ignore[union-attr]
    except Exception:
        logger.warning("Failed to publish %s event", channel, exc_info=True)
        return False
    return True
