"""Operational dashboard."""

from datetime import date, datetime
from typing import Optional
from zoneinfo import ZoneInfo

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from petcore.db import get_db
from petcore.settings import Settings, get_settings

from petshop_engine.contracts.types import ModuleKey
from petshop_engine.dashboard.aggregation import DashboardService
from petshop_engine.identity.session import SessionContext

from petshop_api.deps import get_timezone, require_module, require_profile

router = APIRouter(prefix="/dashboard", tags=["dashboard"])


@router.get("/daily")
def daily(
    day: Optional[date] = Query(None),
    session: SessionContext = Depends(require_profile),
    db: Session = Depends(get_db),
    tz: ZoneInfo = Depends(get_timezone),
):
    day = day or datetime.now(tz).date()
    return DashboardService(db, session.tenant_id, tz).daily(day).to_dict()


@router.get("/monthly")
def monthly(
    year: int = Query(..., ge=2000, le=2100),
    month: int = Query(..., ge=1, le=12),
    session: SessionContext = Depends(require_module(ModuleKey.DASHBOARD_COMPLETO)),
    db: Session = Depends(get_db),
    tz: ZoneInfo = Depends(get_timezone),
    settings: Settings = Depends(get_settings),
):
    service = DashboardService(db, session.tenant_id, tz)
    return service.monthly(year, month, capacity=settings.HOTEL_CAPACITY).to_dict()
