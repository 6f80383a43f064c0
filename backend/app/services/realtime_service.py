"""
Real-time notifications over Redis pub/sub.

Publishers (ingest, registration, alert checks) push small JSON messages to
one channel; the WebSocket relay forwards them to connected dashboards, which
only use them to refresh their cached queries.
"""

import json
from datetime import datetime, timezone
from typing import Any

import redis as redis_sync

from app.core.config import get_settings
from app.core.logging import get_logger
from app.core.redis import get_redis

logger = get_logger("realtime")
settings = get_settings()

# Message types understood by the dashboard client
NEW_USER = "new_user"
NEW_SALE = "new_sale"
TRAFFIC_SPIKE = "traffic_spike"
METRIC_ALERT = "metric_alert"


def build_message(event_type: str, data: dict[str, Any]) -> str:
    return json.dumps(
        {
            "type": event_type,
            "data": data,
            "timestamp": datetime.now(timezone.utc).isoformat(),
        },
        default=str,
    )


async def publish_event(event_type: str, data: dict[str, Any]) -> bool:
    """Publish a message to the real-time channel. Failures are logged, not raised."""
    try:
        redis = await get_redis()
        await redis.publish(settings.REALTIME_CHANNEL, build_message(event_type, data))
        return True
    except Exception as exc:
        logger.warning("Could not publish %s event: %s", event_type, exc)
        return False


def publish_event_sync(event_type: str, data: dict[str, Any]) -> bool:
    """Blocking variant for Celery workers and CLI scripts."""
    try:
        client = redis_sync.from_url(settings.REDIS_URL)
        try:
            client.publish(settings.REALTIME_CHANNEL, build_message(event_type, data))
        finally:
            client.close()
        return True
    except Exception as exc:
        logger.warning("Could not publish %s event: %s", event_type, exc)
        return False
