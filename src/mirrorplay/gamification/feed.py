"""Best-effort milestone broadcasts (level-ups, badges) for the community feed.

Publishing happens over Redis pub/sub; the feed service that consumes these
channels lives outside this API. Failures are logged and never propagate
into the reward grant that triggered them.
"""

from __future__ import annotations

import json
import logging
from typing import Any

logger = logging.getLogger(__name__)

LEVEL_UP_CHANNEL = "pubsub:level_up"
BADGE_EARNED_CHANNEL = "pubsub:badge_earned"


async def _publish(redis: Any, channel: str, payload: dict[str, Any]) -> bool:  # noqa: ANN401
    if redis is None:
        return False
    try:
        await redis.publish(channel, json.dumps(payload))
    except Exception:
        logger.warning("Failed to publish %s broadcast", channel, exc_info=True)
        return False
    return True


async def emit_level_up(redis: Any, user_id: int, old_level: int, new_level: int) -> bool:  # noqa: ANN401
    """Broadcast a level-up milestone. Returns True if published."""
    return await _publish(
        redis,
        LEVEL_UP_CHANNEL,
        {"user_id": user_id, "old_level": old_level, "new_level": new_level},
    )


async def emit_badge_earned(redis: Any, user_id: int, slug: str, name: str, icon: str) -> bool:  # noqa: ANN401
    """Broadcast a badge award. Returns True if published."""
    return await _publish(
        redis,
        BADGE_EARNED_CHANNEL,
        {"user_id": user_id, "badge_slug": slug, "badge_name": name, "icon": icon},
    )
