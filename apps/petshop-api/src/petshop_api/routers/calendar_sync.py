"""Inbound webhook for Google Calendar changes relayed by the workflow engine."""

import hmac
import logging
from typing import Optional
from uuid import UUID

from fastapi import APIRouter, Depends, Header, HTTPException, Request
from fastapi.responses import JSONResponse
from sqlalchemy.orm import Session

from petcore.db import get_db
from petcore.logging import bind_tenant
from petcore.settings import Settings, get_settings

from petshop_engine.calendar.sync import CalendarSyncService, SyncPayload
from petshop_engine.errors import ValidationError
from petshop_engine.persistence.repo import TenancyRepository
from petshop_engine.realtime.notifier import ChangeNotifier

from petshop_api.deps import get_notifier

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/calendar-sync", tags=["calendar-sync"])


@router.post("/{tenant_id}")
async def calendar_sync(
    tenant_id: UUID,
    request: Request,
    x_sync_secret: Optional[str] = Header(None),
    db: Session = Depends(get_db),
    settings: Settings = Depends(get_settings),
    notifier: Optional[ChangeNotifier] = Depends(get_notifier),
):
    """
    Apply a calendar event change.

    Flow:
    1. Check the shared secret (when configured)
    2. Parse the raw body; empty, invalid or event_id-less bodies are 400
    3. Update, cancel or create the matching appointment or stay
    """
    if settings.CALENDAR_SYNC_SECRET and not hmac.compare_digest(
        x_sync_secret or "", settings.CALENDAR_SYNC_SECRET
    ):
        logger.warning("Invalid calendar sync secret", extra={"tenant_id": str(tenant_id)})
        raise HTTPException(status_code=403, detail="Invalid sync secret")

    if TenancyRepository(db).get_tenant(tenant_id) is None:
        raise HTTPException(status_code=404, detail="Tenant not found")
    bind_tenant(tenant_id)

    body = await request.body()
    try:
        payload = SyncPayload.from_body(body)
    except ValidationError as e:
        logger.warning(f"Rejected calendar sync body: {e.message}", extra={"tenant_id": str(tenant_id)})
        return JSONResponse(status_code=400, content={"error": e.message, "details": e.details})

    outcome = CalendarSyncService(db, tenant_id, notifier=notifier).apply(payload)
    return JSONResponse(status_code=outcome.status_code, content=outcome.to_dict())
