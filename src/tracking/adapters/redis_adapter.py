"""Redis adapter for publishing task status notifications."""

import json
import logging
import redis

from config import get_redis_host_and_port
from shared.domain.commands import Event

logger = logging.getLogger(__name__)

_client = None


def get_client() -> redis.Redis:
    """Redis client, created on first use."""
    global _client
    if _client is None:
        _client = redis.Redis(**get_redis_host_and_port())
    return _client


def set_client(client) -> None:
    """Swap the Redis client (tests, alternative deployments)."""
    global _client
    _client = client


def publish(channel: str, event: Event):
    """Publish event to Redis channel."""
    logger.info("publishing: channel=%s, event=%s", channel, event)
    message = json.dumps(event.to_dict())
    get_client().publish(channel, message)
