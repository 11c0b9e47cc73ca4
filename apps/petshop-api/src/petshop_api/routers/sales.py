"""Point-of-sale sales."""

from datetime import datetime
from decimal import Decimal
from typing import Optional
from uuid import UUID

from fastapi import APIRouter, Depends
from pydantic import BaseModel, Field
from sqlalchemy.orm import Session

from petcore.db import get_db

from petshop_engine.contracts.types import ModuleKey
from petshop_engine.identity.session import SessionContext
from petshop_engine.persistence.models import Sale
from petshop_engine.realtime.notifier import ChangeNotifier
from petshop_engine.sales.service import SalesService

from petshop_api.deps import get_notifier, require_module

router = APIRouter(prefix="/sales", tags=["sales"])

require_petshop = require_module(ModuleKey.PETSHOP)


class SaleRequest(BaseModel):
    subtotal: Decimal = Field(..., ge=0)
    discount: Decimal = Field(Decimal("0"), ge=0)
    payment_method: str
    client_id: Optional[UUID] = None
    paid: bool = True
    sold_at: Optional[datetime] = None


class SalePaymentRequest(BaseModel):
    paid_at: Optional[datetime] = None


def serialize_sale(sale: Sale) -> dict:
    return {
        "id": str(sale.id),
        "client_id": str(sale.client_id) if sale.client_id else None,
        "subtotal": float(sale.subtotal),
        "discount": float(sale.discount),
        "total_amount": float(sale.total_amount),
        "payment_method": sale.payment_method,
        "payment_status": sale.payment_status,
        "created_at": sale.created_at.isoformat() if sale.created_at else None,
    }


@router.post("", status_code=201)
def register_sale(
    body: SaleRequest,
    session: SessionContext = Depends(require_petshop),
    db: Session = Depends(get_db),
    notifier: Optional[ChangeNotifier] = Depends(get_notifier),
):
    sale = SalesService(db, session.tenant_id, notifier=notifier).register_sale(
        subtotal=body.subtotal,
        payment_method=body.payment_method,
        client_id=body.client_id,
        discount=body.discount,
        paid=body.paid,
        sold_at=body.sold_at,
    )
    return serialize_sale(sale)


@router.post("/{sale_id}/pay")
def pay_sale(
    sale_id: UUID,
    body: SalePaymentRequest,
    session: SessionContext = Depends(require_petshop),
    db: Session = Depends(get_db),
    notifier: Optional[ChangeNotifier] = Depends(get_notifier),
):
    return serialize_sale(SalesService(db, session.tenant_id, notifier=notifier).mark_sale_paid(sale_id, body.paid_at))
