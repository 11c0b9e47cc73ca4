"""
Change Subscriber

Reads change events and triggers refetch callbacks per table. Any insert,
update or delete on a table invokes every callback registered for it; events
are not patched into local state.
"""

import logging
import threading
from collections import defaultdict
from typing import Callable
from uuid import UUID

import redis

from petcore.redis import ack_message, ensure_stream_group, read_from_stream

from petshop_engine.contracts.change_event import ChangeEvent

logger = logging.getLogger(__name__)

RefetchCallback = Callable[[ChangeEvent], None]


class ChangeSubscriber:
    """Consumer for the changes stream using a consumer group."""

    def __init__(
        self,
        redis_client: redis.Redis,
        stream_name: str,
        group_name: str,
        consumer_name: str,
        tenant_id: UUID | None = None,
    ):
        self.redis = redis_client
        self.stream_name = stream_name
        self.group_name = group_name
        self.consumer_name = consumer_name
        self.tenant_id = tenant_id
        self._callbacks: dict[str, list[RefetchCallback]] = defaultdict(list)

    def subscribe(self, table: str, callback: RefetchCallback) -> None:
        self._callbacks[table].append(callback)

    def unsubscribe(self, table: str, callback: RefetchCallback) -> None:
        if callback in self._callbacks.get(table, []):
            self._callbacks[table].remove(callback)

    def dispatch(self, event: ChangeEvent) -> int:
        """
        Run the callbacks registered for the event's table.

        Events for other tenants are skipped when the subscriber is tenant-bound.
        A failing callback is logged and does not stop the others.

        Returns:
            Number of callbacks invoked
        """
        if self.tenant_id is not None and event.tenant_id != self.tenant_id:
            return 0

        callbacks = list(self._callbacks.get(event.table, []))
        for callback in callbacks:
            try:
                callback(event)
            except Exception:
                logger.exception(
                    "Refetch callback failed",
                    extra={"table": event.table, "event_type": event.event_type.value},
                )
        return len(callbacks)

    def poll_once(self, count: int = 50, block_ms: int = 1000) -> int:
        """Read one batch, dispatch and ack. Returns the number of events handled."""
        ensure_stream_group(self.redis, self.stream_name, self.group_name)
        messages = read_from_stream(
            self.redis,
            self.stream_name,
            self.group_name,
            self.consumer_name,
            count=count,
            block_ms=block_ms,
        )

        handled = 0
        for msg_id, data in messages:
            try:
                event = ChangeEvent.from_dict(data)
            except (KeyError, ValueError) as e:
                logger.error(f"Invalid change event {msg_id}: {e}")
                ack_message(self.redis, self.stream_name, self.group_name, msg_id)
                continue

            self.dispatch(event)
            ack_message(self.redis, self.stream_name, self.group_name, msg_id)
            handled += 1

        return handled

    def run(self, stop_event: threading.Event, block_ms: int = 5000) -> None:
        """Poll until stop_event is set."""
        logger.info(
            "Change subscriber started",
            extra={"stream": self.stream_name, "consumer": self.consumer_name},
        )
        while not stop_event.is_set():
            try:
                self.poll_once(block_ms=block_ms)
            except redis.ConnectionError as e:
                logger.error(f"Redis connection lost: {e}")
                stop_event.wait(1.0)
        logger.info("Change subscriber stopped")
