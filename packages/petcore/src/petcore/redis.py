"""
Redis client utilities for petcore.

Provides a lazy-initialized Redis client and the stream helpers used by the
change-notification channel.
"""

import functools
from typing import Any

import redis

from petcore.settings import get_settings


@functools.lru_cache()
def get_redis_client() -> redis.Redis:
    """
    Get Redis client (cached).

    This function lazily initializes the Redis client to avoid import-time connections.
    """
    return redis.from_url(get_settings().REDIS_URL, decode_responses=True)


def ensure_stream_group(
    client: redis.Redis,
    stream_name: str,
    group_name: str,
    start_id: str = "$",
) -> bool:
    """
    Ensure a consumer group exists for a stream.

    Returns:
        True if group was created, False if it already existed
    """
    try:
        client.xgroup_create(stream_name, group_name, id=start_id, mkstream=True)
        return True
    except redis.ResponseError as e:
        if "BUSYGROUP" in str(e):
            return False
        raise


def publish_to_stream(
    client: redis.Redis,
    stream_name: str,
    data: dict[str, Any],
    max_len: int | None = 10000,
) -> str:
    """
    Publish a message to a Redis stream.

    None values are dropped, everything else is sent as a string.

    Returns:
        Message ID assigned by Redis
    """
    string_data = {
        k: v if isinstance(v, str) else str(v) for k, v in data.items() if v is not None
    }
    if max_len:
        return client.xadd(stream_name, string_data, maxlen=max_len, approximate=True)
    return client.xadd(stream_name, string_data)


def read_from_stream(
    client: redis.Redis,
    stream_name: str,
    group_name: str,
    consumer_name: str,
    count: int = 10,
    block_ms: int = 5000,
) -> list[tuple[str, dict[str, str]]]:
    """Read new messages for a consumer group. Returns (message_id, data) tuples."""
    result = client.xreadgroup(
        group_name,
        consumer_name,
        {stream_name: ">"},
        count=count,
        block=block_ms,
    )

    if not result:
        return []

    # Result format: [[stream_name, [(msg_id, data), ...]]]
    messages = []
    for _stream, entries in result:
        for msg_id, data in entries:
            messages.append((msg_id, data))
    return messages


def ack_message(client: redis.Redis, stream_name: str, group_name: str, message_id: str) -> int:
    """Acknowledge a message as processed."""
    return client.xack(stream_name, group_name, message_id)
