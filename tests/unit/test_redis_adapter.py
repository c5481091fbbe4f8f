"""Unit tests for the Redis notification adapter."""
import json
from datetime import datetime, timezone
from unittest.mock import patch

import fakeredis

from tracking.adapters import redis_adapter
from tracking.domain.events import TaskCompleted

from tests.fakes import next_message


def test_publish_serializes_event_as_json():
    client = fakeredis.FakeRedis()
    pubsub = client.pubsub(ignore_subscribe_messages=True)
    pubsub.subscribe("status")
    redis_adapter.set_client(client)
    try:
        redis_adapter.publish(
            "status",
            TaskCompleted(
                task_id="task-1",
                sealed_pack_code="SP-1",
                completed_by="agent-1",
                completed_at=datetime(2024, 3, 1, 11, 0, tzinfo=timezone.utc),
            ),
        )
    finally:
        redis_adapter.set_client(None)

    payload = json.loads(next_message(pubsub)["data"])
    assert payload == {
        "task_id": "task-1",
        "sealed_pack_code": "SP-1",
        "completed_by": "agent-1",
        "completed_at": "2024-03-01T11:00:00+00:00",
        "was_suspicious": False,
        "event_name": "TaskCompleted",
    }


@patch("tracking.adapters.redis_adapter.redis.Redis")
def test_client_is_created_once_from_config(mock_redis, monkeypatch):
    monkeypatch.setenv("REDIS_HOST", "redis")
    monkeypatch.setenv("REDIS_PORT", "6380")
    redis_adapter.set_client(None)
    try:
        first = redis_adapter.get_client()
        second = redis_adapter.get_client()
    finally:
        redis_adapter.set_client(None)

    assert first is second
    mock_redis.assert_called_once_with(host="redis", port=6380)
