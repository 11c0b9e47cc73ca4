"""Status changes and payments for appointments and hotel stays."""

from datetime import datetime
from typing import Optional
from uuid import UUID

from fastapi import APIRouter, Depends
from pydantic import BaseModel
from sqlalchemy.orm import Session

from petcore.db import get_db

from petshop_engine.contracts.types import AppointmentStatus, HotelStayStatus, KanbanStatus, ModuleKey
from petshop_engine.identity.session import SessionContext
from petshop_engine.persistence.models import BathGroomingAppointment, HotelStay
from petshop_engine.realtime.notifier import ChangeNotifier
from petshop_engine.scheduling.status import SchedulingService

from petshop_api.deps import get_notifier, require_module

router = APIRouter(tags=["scheduling"])

require_petshop = require_module(ModuleKey.PETSHOP)
require_hotel = require_module(ModuleKey.HOTEL)


class AppointmentStatusRequest(BaseModel):
    status: AppointmentStatus


class KanbanRequest(BaseModel):
    kanban_status: KanbanStatus


class StayStatusRequest(BaseModel):
    status: HotelStayStatus


class PaymentRequest(BaseModel):
    paid_at: Optional[datetime] = None


def serialize_appointment(a: BathGroomingAppointment) -> dict:
    return {
        "id": str(a.id),
        "status": a.status,
        "kanban_status": a.kanban_status,
        "payment_status": a.payment_status,
        "paid_at": a.paid_at.isoformat() if a.paid_at else None,
    }


def serialize_stay(s: HotelStay) -> dict:
    return {
        "id": str(s.id),
        "status": s.status,
        "payment_status": s.payment_status,
        "paid_at": s.paid_at.isoformat() if s.paid_at else None,
    }


def scheduling_service(
    session: SessionContext,
    db: Session,
    notifier: Optional[ChangeNotifier],
) -> SchedulingService:
    return SchedulingService(db, session.tenant_id, notifier=notifier)


@router.post("/appointments/{appointment_id}/status")
def appointment_status(
    appointment_id: UUID,
    body: AppointmentStatusRequest,
    session: SessionContext = Depends(require_petshop),
    db: Session = Depends(get_db),
    notifier: Optional[ChangeNotifier] = Depends(get_notifier),
):
    appointment = scheduling_service(session, db, notifier).transition_appointment(appointment_id, body.status)
    return serialize_appointment(appointment)


@router.post("/appointments/{appointment_id}/kanban")
def appointment_kanban(
    appointment_id: UUID,
    body: KanbanRequest,
    session: SessionContext = Depends(require_petshop),
    db: Session = Depends(get_db),
    notifier: Optional[ChangeNotifier] = Depends(get_notifier),
):
    appointment = scheduling_service(session, db, notifier).move_kanban(appointment_id, body.kanban_status)
    return serialize_appointment(appointment)


@router.post("/appointments/{appointment_id}/pay")
def appointment_pay(
    appointment_id: UUID,
    body: PaymentRequest,
    session: SessionContext = Depends(require_petshop),
    db: Session = Depends(get_db),
    notifier: Optional[ChangeNotifier] = Depends(get_notifier),
):
    appointment = scheduling_service(session, db, notifier).mark_appointment_paid(appointment_id, body.paid_at)
    return serialize_appointment(appointment)


@router.post("/hotel-stays/{stay_id}/status")
def stay_status(
    stay_id: UUID,
    body: StayStatusRequest,
    session: SessionContext = Depends(require_hotel),
    db: Session = Depends(get_db),
    notifier: Optional[ChangeNotifier] = Depends(get_notifier),
):
    return serialize_stay(scheduling_service(session, db, notifier).transition_stay(stay_id, body.status))


@router.post("/hotel-stays/{stay_id}/pay")
def stay_pay(
    stay_id: UUID,
    body: PaymentRequest,
    session: SessionContext = Depends(require_hotel),
    db: Session = Depends(get_db),
    notifier: Optional[ChangeNotifier] = Depends(get_notifier),
):
    return serialize_stay(scheduling_service(session, db, notifier).mark_stay_paid(stay_id, body.paid_at))
