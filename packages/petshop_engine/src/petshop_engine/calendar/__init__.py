"""Google Calendar OAuth, calendar operations and inbound event sync."""

from petshop_engine.calendar.google_auth import GoogleAuthService, TokenCipher
from petshop_engine.calendar.google_client import GoogleCalendarClient
from petshop_engine.calendar.sync import CalendarSyncService, SyncOutcome, SyncPayload

__all__ = [
    "CalendarSyncService",
    "GoogleAuthService",
    "GoogleCalendarClient",
    "SyncOutcome",
    "SyncPayload",
    "TokenCipher",
]
