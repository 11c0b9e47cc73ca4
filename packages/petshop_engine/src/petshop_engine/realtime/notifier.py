"""
Change Notifier

Publishes row-change events to the changes stream after a commit.
"""

import logging
from uuid import UUID

import redis

from petcore.redis import publish_to_stream

from petshop_engine.contracts.change_event import ChangeEvent
from petshop_engine.contracts.types import ChangeType

logger = logging.getLogger(__name__)

WATCHED_TABLES = frozenset(
    {
        "clients",
        "pets",
        "bath_grooming_appointments",
        "hotel_stays",
        "sales",
        "notas_fiscais",
        "tenant_settings",
    }
)


class ChangeNotifier:
    """Producer for change events on watched tables."""

    def __init__(self, redis_client: redis.Redis, stream_name: str, max_len: int = 10000):
        self.redis = redis_client
        self.stream_name = stream_name
        self.max_len = max_len

    def notify(
        self,
        table: str,
        event_type: ChangeType,
        tenant_id: UUID,
        record_id: UUID | None = None,
    ) -> str | None:
        """
        Publish a change event.

        Unwatched tables are ignored. The write has already been committed when
        this runs, so a Redis failure is logged and not raised.

        Returns:
            Stream message ID, or None when nothing was published
        """
        if table not in WATCHED_TABLES:
            return None

        event = ChangeEvent(table=table, event_type=event_type, tenant_id=tenant_id, record_id=record_id)
        try:
            return publish_to_stream(self.redis, self.stream_name, event.to_dict(), max_len=self.max_len)
        except redis.RedisError as e:
            logger.error(
                f"Failed to publish change event: {e}",
                extra={"table": table, "event_type": event_type.value, "tenant_id": str(tenant_id)},
            )
            return None
