"""Google Calendar v3 operations on behalf of a tenant."""

import logging
from typing import Any
from urllib.parse import quote

import httpx

from petshop_engine.calendar.google_auth import GoogleAuthService
from petshop_engine.errors import TransportError, ValidationError

logger = logging.getLogger(__name__)

CALENDAR_API_BASE = "https://www.googleapis.com/calendar/v3"


class GoogleCalendarClient:
    def __init__(
        self,
        auth: GoogleAuthService,
        timeout: float = 30.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        self.auth = auth
        self.timeout = timeout
        self.transport = transport
        self._client: httpx.AsyncClient | None = None

    async def _get_client(self) -> httpx.AsyncClient:
        if self._client is None:
            kwargs: dict[str, Any] = {"base_url": CALENDAR_API_BASE, "timeout": self.timeout}
            if self.transport is not None:
                kwargs["transport"] = self.transport
            self._client = httpx.AsyncClient(**kwargs)
        return self._client

    async def close(self) -> None:
        if self._client:
            await self._client.aclose()
            self._client = None

    async def _make_request(
        self,
        method: str,
        endpoint: str,
        params: dict[str, Any] | None = None,
        json_data: dict[str, Any] | None = None,
    ) -> tuple[int, dict[str, Any]]:
        access_token = await self.auth.get_valid_access_token()
        client = await self._get_client()
        try:
            response = await client.request(
                method,
                endpoint,
                params=params,
                json=json_data,
                headers={"Authorization": f"Bearer {access_token}"},
            )
        except httpx.RequestError as e:
            logger.error(f"Google Calendar request failed: {e}", extra={"endpoint": endpoint})
            raise TransportError(f"Google Calendar request failed: {e}") from e

        if response.status_code == 204 or not response.content:
            data: dict[str, Any] = {}
        else:
            try:
                data = response.json()
            except ValueError:
                data = {}

        error = data.get("error")
        if error or response.status_code >= 400:
            message = error.get("message") if isinstance(error, dict) else None
            message = message or f"Google Calendar returned status {response.status_code}"
            logger.error(
                "Google Calendar API error",
                extra={"endpoint": endpoint, "status_code": response.status_code},
            )
            raise TransportError(message, status_code=response.status_code, details=data)
        return response.status_code, data

    @staticmethod
    def _events_path(calendar_id: str, event_id: str | None = None) -> str:
        path = f"/calendars/{quote(calendar_id, safe='')}/events"
        if event_id:
            path += f"/{quote(event_id, safe='')}"
        return path

    # =========================================================================
    # Operations
    # =========================================================================

    async def list_calendars(self) -> dict[str, Any]:
        _, data = await self._make_request("GET", "/users/me/calendarList")
        return {"calendars": data.get("items", [])}

    async def list_events(
        self,
        calendar_id: str = "primary",
        time_min: str | None = None,
        time_max: str | None = None,
        max_results: int = 100,
    ) -> dict[str, Any]:
        params: dict[str, Any] = {
            "maxResults": str(max_results),
            "singleEvents": "true",
            "orderBy": "startTime",
        }
        if time_min:
            params["timeMin"] = time_min
        if time_max:
            params["timeMax"] = time_max
        _, data = await self._make_request("GET", self._events_path(calendar_id), params=params)
        return {"events": data.get("items", [])}

    async def get_event(self, event_id: str, calendar_id: str = "primary") -> dict[str, Any]:
        if not event_id:
            raise ValidationError("eventId is required")
        _, data = await self._make_request("GET", self._events_path(calendar_id, event_id))
        return {"event": data}

    async def create_event(self, event: dict[str, Any], calendar_id: str = "primary") -> dict[str, Any]:
        if not event:
            raise ValidationError("event is required")
        _, data = await self._make_request("POST", self._events_path(calendar_id), json_data=event)
        logger.info("Google Calendar event created", extra={"event_id": data.get("id")})
        return {"event": data}

    async def update_event(self, event_id: str, event: dict[str, Any], calendar_id: str = "primary") -> dict[str, Any]:
        if not event_id or not event:
            raise ValidationError("eventId and event are required")
        _, data = await self._make_request("PUT", self._events_path(calendar_id, event_id), json_data=event)
        return {"event": data}

    async def delete_event(self, event_id: str, calendar_id: str = "primary") -> dict[str, Any]:
        if not event_id:
            raise ValidationError("eventId is required")
        await self._make_request("DELETE", self._events_path(calendar_id, event_id))
        logger.info("Google Calendar event deleted", extra={"event_id": event_id})
        return {"success": True}
