"""
Tests for change notifications over Redis Streams.

An in-memory stand-in implements the handful of stream commands used here.
"""

import threading
from uuid import uuid4

import pytest
import redis

from petcore.redis import ensure_stream_group

from petshop_engine.contracts.change_event import ChangeEvent
from petshop_engine.contracts.types import ChangeType
from petshop_engine.persistence.repo import PetshopRepository
from petshop_engine.realtime import ChangeNotifier, ChangeSubscriber

STREAM = "petshop:changes"


class InMemoryStreams:
    def __init__(self):
        self.entries = []
        self.groups = {}
        self.acked = []

    def xadd(self, stream, fields, maxlen=None, approximate=True):
        msg_id = f"{len(self.entries) + 1}-0"
        self.entries.append((msg_id, dict(fields)))
        return msg_id

    def xgroup_create(self, stream, group, id="$", mkstream=False):
        if group in self.groups:
            raise redis.ResponseError("BUSYGROUP Consumer Group name already exists")
        self.groups[group] = len(self.entries) if id == "$" else 0
        return True

    def xreadgroup(self, group, consumer, streams, count=10, block=None):
        position = self.groups[group]
        batch = self.entries[position:position + count]
        self.groups[group] = position + len(batch)
        return [[STREAM, batch]] if batch else []

    def xack(self, stream, group, msg_id):
        self.acked.append(msg_id)
        return 1


class BrokenRedis:
    def xadd(self, *args, **kwargs):
        raise redis.ConnectionError("connection refused")


@pytest.fixture
def streams():
    return InMemoryStreams()


class TestChangeEvent:
    def test_from_stream_fields(self):
        tenant_id = uuid4()
        event = ChangeEvent.from_dict(
            {
                "table": "clients",
                "event_type": "UPDATE",
                "tenant_id": str(tenant_id),
                "occurred_at": "2026-03-15T12:00:00+00:00",
            }
        )

        assert event.event_type == ChangeType.UPDATE
        assert event.tenant_id == tenant_id
        assert event.record_id is None
        assert event.occurred_at.year == 2026


class TestChangeNotifier:
    def test_publishes_watched_table(self, streams):
        notifier = ChangeNotifier(streams, STREAM)
        record_id = uuid4()

        msg_id = notifier.notify("hotel_stays", ChangeType.INSERT, uuid4(), record_id)

        assert msg_id == "1-0"
        fields = streams.entries[0][1]
        assert fields["table"] == "hotel_stays"
        assert fields["record_id"] == str(record_id)

    def test_ignores_unwatched_table(self, streams):
        assert ChangeNotifier(streams, STREAM).notify("campaign_dispatches", ChangeType.INSERT, uuid4()) is None
        assert streams.entries == []

    def test_missing_record_id_is_not_sent(self, streams):
        ChangeNotifier(streams, STREAM).notify("clients", ChangeType.DELETE, uuid4())

        assert "record_id" not in streams.entries[0][1]

    def test_redis_failure_is_swallowed(self):
        """The row is already committed; a publish failure must not raise."""
        assert ChangeNotifier(BrokenRedis(), STREAM).notify("clients", ChangeType.UPDATE, uuid4()) is None

    def test_repository_publishes_after_commit(self, db, tenant, streams):
        repo = PetshopRepository(db, tenant.id, notifier=ChangeNotifier(streams, STREAM))

        repo.create_client(name="Maria", whatsapp="11999999999")
        assert streams.entries == []

        repo.commit()
        assert [fields["table"] for _, fields in streams.entries] == ["clients"]

    def test_rollback_discards_pending_events(self, db, tenant, streams):
        repo = PetshopRepository(db, tenant.id, notifier=ChangeNotifier(streams, STREAM))

        repo.create_client(name="Maria", whatsapp="11999999999")
        repo.rollback()
        repo.commit()

        assert streams.entries == []


class TestChangeSubscriber:
    def test_dispatch_calls_table_callbacks(self, streams, sample_tenant_id):
        subscriber = ChangeSubscriber(streams, STREAM, "ui", "c1")
        seen = []
        subscriber.subscribe("clients", seen.append)
        subscriber.subscribe("pets", lambda event: seen.append("pets"))

        count = subscriber.dispatch(ChangeEvent(table="clients", event_type=ChangeType.INSERT, tenant_id=sample_tenant_id))

        assert count == 1
        assert seen[0].table == "clients"

    def test_other_tenants_are_skipped(self, streams):
        subscriber = ChangeSubscriber(streams, STREAM, "ui", "c1", tenant_id=uuid4())
        seen = []
        subscriber.subscribe("clients", seen.append)

        assert subscriber.dispatch(ChangeEvent(table="clients", event_type=ChangeType.INSERT, tenant_id=uuid4())) == 0
        assert seen == []

    def test_unsubscribe(self, streams, sample_tenant_id):
        subscriber = ChangeSubscriber(streams, STREAM, "ui", "c1")
        seen = []
        subscriber.subscribe("clients", seen.append)
        subscriber.unsubscribe("clients", seen.append)

        subscriber.dispatch(ChangeEvent(table="clients", event_type=ChangeType.UPDATE, tenant_id=sample_tenant_id))

        assert seen == []

    def test_poll_once_round_trip(self, streams, sample_tenant_id):
        """Events published by the notifier reach callbacks and are acked."""
        subscriber = ChangeSubscriber(streams, STREAM, "ui", "c1")
        ensure_stream_group(streams, STREAM, "ui")
        seen = []
        subscriber.subscribe("sales", seen.append)
        notifier = ChangeNotifier(streams, STREAM)
        notifier.notify("sales", ChangeType.INSERT, sample_tenant_id, uuid4())
        notifier.notify("clients", ChangeType.UPDATE, sample_tenant_id)

        handled = subscriber.poll_once(block_ms=0)

        assert handled == 2
        assert len(seen) == 1
        assert seen[0].tenant_id == sample_tenant_id
        assert streams.acked == ["1-0", "2-0"]

    def test_malformed_event_is_acked(self, streams):
        ensure_stream_group(streams, STREAM, "ui")
        streams.xadd(STREAM, {"table": "clients"})

        handled = ChangeSubscriber(streams, STREAM, "ui", "c1").poll_once(block_ms=0)

        assert handled == 0
        assert streams.acked == ["1-0"]

    def test_existing_group_is_reused(self, streams):
        assert ensure_stream_group(streams, STREAM, "ui") is True
        assert ensure_stream_group(streams, STREAM, "ui") is False

    def test_failing_callback_does_not_block_others(self, streams, sample_tenant_id):
        subscriber = ChangeSubscriber(streams, STREAM, "ui", "c1")
        seen = []

        def broken(event):
            raise RuntimeError("refetch failed")

        subscriber.subscribe("clients", broken)
        subscriber.subscribe("clients", seen.append)

        count = subscriber.dispatch(ChangeEvent(table="clients", event_type=ChangeType.UPDATE, tenant_id=sample_tenant_id))

        assert count == 2
        assert len(seen) == 1

    def test_run_survives_callback_errors(self, streams, sample_tenant_id):
        """A raising callback neither stops the loop nor leaves events un-acked."""
        ensure_stream_group(streams, STREAM, "ui")
        notifier = ChangeNotifier(streams, STREAM)
        notifier.notify("clients", ChangeType.INSERT, sample_tenant_id, uuid4())
        notifier.notify("clients", ChangeType.UPDATE, sample_tenant_id, uuid4())

        stop = threading.Event()
        seen = []

        def broken(event):
            raise RuntimeError("refetch failed")

        def count_and_stop(event):
            seen.append(event)
            if len(seen) == 2:
                stop.set()

        subscriber = ChangeSubscriber(streams, STREAM, "ui", "c1")
        subscriber.subscribe("clients", broken)
        subscriber.subscribe("clients", count_and_stop)

        subscriber.run(stop, block_ms=0)

        assert len(seen) == 2
        assert streams.acked == ["1-0", "2-0"]
