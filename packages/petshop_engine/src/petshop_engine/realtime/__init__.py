"""Realtime change notifications over Redis Streams."""

from petshop_engine.realtime.notifier import WATCHED_TABLES, ChangeNotifier
from petshop_engine.realtime.subscriber import ChangeSubscriber

__all__ = ["WATCHED_TABLES", "ChangeNotifier", "ChangeSubscriber"]
