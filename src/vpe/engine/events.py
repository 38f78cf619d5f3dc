"""Best-effort pub/sub notifications for level-ups and season rollovers."""

from __future__ import annotations

import json

import structlog

logger = structlog.get_logger()

LEVEL_UP_CHANNEL = "pubsub:level_up"
SEASON_ROLLOVER_CHANNEL = "pubsub:season_rollover"


async def publish_event(redis: object, channel: str, payload: dict) -> None:
    """Publish a JSON event. Failures are logged and never fail the caller."""
    if redis is None:
        return
    try:
        await redis.publish(channel, json.dumps(payload))  # type: ignore[attr-defined]
    except Exception:
        logger.warning("redis_publish_failed", channel=channel, exc_info=True)
