"""Client segmentation: bucket counts, bulk recalculation and the inactive list."""

from typing import Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from petcore.db import get_db

from petshop_engine.contracts.types import ModuleKey
from petshop_engine.identity.session import SessionContext
from petshop_engine.realtime.notifier import ChangeNotifier
from petshop_engine.segmentation.classifier import MAX_INACTIVITY_DAYS, MIN_INACTIVITY_DAYS
from petshop_engine.segmentation.service import SegmentationService

from petshop_api.deps import get_notifier, require_module, require_tenant_admin

router = APIRouter(prefix="/segmentation", tags=["segmentation"])


@router.get("/counts")
def bucket_counts(
    session: SessionContext = Depends(require_module(ModuleKey.PETSHOP)),
    db: Session = Depends(get_db),
):
    return SegmentationService(db, session.tenant_id).bucket_counts()


@router.post("/recalculate")
def recalculate(
    session: SessionContext = Depends(require_tenant_admin),
    db: Session = Depends(get_db),
    notifier: Optional[ChangeNotifier] = Depends(get_notifier),
):
    return SegmentationService(db, session.tenant_id, notifier=notifier).recalculate_all().to_dict()


@router.get("/inactive")
def inactive_clients(
    period_days: int = Query(30, ge=MIN_INACTIVITY_DAYS, le=MAX_INACTIVITY_DAYS),
    session: SessionContext = Depends(require_module(ModuleKey.PETSHOP)),
    db: Session = Depends(get_db),
):
    """Clients without a purchase for period_days, never-purchased first."""
    rows = SegmentationService(db, session.tenant_id).inactive_clients(period_days)
    return {"total": len(rows), "clients": [row.to_dict() for row in rows]}
