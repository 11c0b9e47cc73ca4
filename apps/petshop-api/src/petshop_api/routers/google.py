"""Google Calendar: OAuth connection and calendar operations."""

from typing import Any, AsyncIterator, Optional

from fastapi import APIRouter, Depends, Query
from pydantic import BaseModel
from sqlalchemy.orm import Session

from petcore.db import get_db
from petcore.settings import Settings, get_settings

from petshop_engine.calendar.google_auth import GoogleAuthService
from petshop_engine.calendar.google_client import GoogleCalendarClient
from petshop_engine.errors import BusinessRuleError
from petshop_engine.identity.session import SessionContext

from petshop_api.deps import require_profile, require_tenant_admin

router = APIRouter(prefix="/google", tags=["google"])


class ExchangeCodeRequest(BaseModel):
    code: str
    redirect_uri: str


class EventRequest(BaseModel):
    event: dict[str, Any]
    calendar_id: str = "primary"


async def get_google_auth(
    session: SessionContext = Depends(require_profile),
    db: Session = Depends(get_db),
    settings: Settings = Depends(get_settings),
) -> AsyncIterator[GoogleAuthService]:
    if not settings.GOOGLE_CLIENT_ID or not settings.GOOGLE_CLIENT_SECRET:
        raise BusinessRuleError("Integração com o Google Calendar não configurada")
    auth = GoogleAuthService(
        db,
        session.tenant_id,
        client_id=settings.GOOGLE_CLIENT_ID,
        client_secret=settings.GOOGLE_CLIENT_SECRET,
        encryption_key=settings.GOOGLE_TOKEN_ENCRYPTION_KEY,
        timeout=settings.HTTP_TIMEOUT,
    )
    try:
        yield auth
    finally:
        await auth.close()


async def get_calendar_client(
    auth: GoogleAuthService = Depends(get_google_auth),
    settings: Settings = Depends(get_settings),
) -> AsyncIterator[GoogleCalendarClient]:
    client = GoogleCalendarClient(auth, timeout=settings.HTTP_TIMEOUT)
    try:
        yield client
    finally:
        await client.close()


# =============================================================================
# OAuth
# =============================================================================


@router.get("/auth-url")
def auth_url(redirect_uri: str = Query(...), auth: GoogleAuthService = Depends(get_google_auth)):
    return {"authUrl": auth.get_auth_url(redirect_uri)}


@router.post("/exchange-code")
async def exchange_code(
    body: ExchangeCodeRequest,
    _admin: SessionContext = Depends(require_tenant_admin),
    auth: GoogleAuthService = Depends(get_google_auth),
):
    await auth.exchange_code(body.code, body.redirect_uri)
    return {"success": True}


@router.post("/refresh-token")
async def refresh_token(auth: GoogleAuthService = Depends(get_google_auth)):
    await auth.refresh_token()
    return {"success": True}


@router.get("/connection")
def check_connection(auth: GoogleAuthService = Depends(get_google_auth)):
    return auth.check_connection()


# =============================================================================
# Calendar
# =============================================================================


@router.get("/calendars")
async def list_calendars(client: GoogleCalendarClient = Depends(get_calendar_client)):
    return await client.list_calendars()


@router.get("/events")
async def list_events(
    calendar_id: str = Query("primary"),
    time_min: Optional[str] = Query(None),
    time_max: Optional[str] = Query(None),
    max_results: int = Query(100, ge=1, le=2500),
    client: GoogleCalendarClient = Depends(get_calendar_client),
):
    return await client.list_events(calendar_id, time_min=time_min, time_max=time_max, max_results=max_results)


@router.get("/events/{event_id}")
async def get_event(
    event_id: str,
    calendar_id: str = Query("primary"),
    client: GoogleCalendarClient = Depends(get_calendar_client),
):
    return await client.get_event(event_id, calendar_id)


@router.post("/events")
async def create_event(body: EventRequest, client: GoogleCalendarClient = Depends(get_calendar_client)):
    return await client.create_event(body.event, body.calendar_id)


@router.put("/events/{event_id}")
async def update_event(
    event_id: str,
    body: EventRequest,
    client: GoogleCalendarClient = Depends(get_calendar_client),
):
    return await client.update_event(event_id, body.event, body.calendar_id)


@router.delete("/events/{event_id}")
async def delete_event(
    event_id: str,
    calendar_id: str = Query("primary"),
    client: GoogleCalendarClient = Depends(get_calendar_client),
):
    return await client.delete_event(event_id, calendar_id)
