"""
Inbound calendar sync.

An external workflow posts Google Calendar changes here. Events are matched
to appointments first, then hotel stays, by google_event_id. Unknown events
create a new appointment or stay when the summary names an existing pet.
"""

import json
import logging
import re
from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Any
from uuid import UUID

from sqlalchemy.orm import Session

from petcore.clock import ensure_utc, utcnow

from petshop_engine.contracts.types import (
    AppointmentStatus,
    HotelStayStatus,
    KanbanStatus,
    PaymentStatus,
    ServiceType,
)
from petshop_engine.errors import ValidationError
from petshop_engine.persistence.models import BathGroomingAppointment, HotelStay, Pet
from petshop_engine.persistence.repo import PetshopRepository
from petshop_engine.realtime.notifier import ChangeNotifier
from petshop_engine.scheduling.status import can_transition_appointment, can_transition_stay

logger = logging.getLogger(__name__)

SUMMARY_PREFIX = re.compile(r"^(Banho|Tosa|Hotel|Creche)\s*[-–]\s*", re.IGNORECASE)
CANCELLED_STATUSES = frozenset({"cancelled", "canceled"})
DEFAULT_DURATION = timedelta(hours=1)


def parse_event_datetime(value: str | None) -> datetime | None:
    if not value:
        return None
    try:
        parsed = datetime.fromisoformat(value.replace("Z", "+00:00"))
    except ValueError as e:
        raise ValidationError(f"Invalid date: {value}", code="invalid_date") from e
    return ensure_utc(parsed)


def _optional_str(data: dict[str, Any], key: str) -> str | None:
    value = data.get(key)
    if value is not None and not isinstance(value, str):
        raise ValidationError(f"{key} must be a string", code="invalid_field", details={"field": key})
    return value


@dataclass
class SyncPayload:
    event_id: str
    status: str | None = None
    start_date: datetime | None = None
    end_date: datetime | None = None
    summary: str | None = None
    description: str | None = None

    @classmethod
    def from_body(cls, body: bytes | str | None) -> "SyncPayload":
        """Parse a raw request body. Raises ValidationError for empty, invalid or incomplete bodies."""
        if isinstance(body, bytes):
            body = body.decode("utf-8", errors="replace")
        if not body or not body.strip():
            raise ValidationError("Empty request body", code="empty_body")
        try:
            data = json.loads(body)
        except json.JSONDecodeError as e:
            raise ValidationError("Invalid JSON body", code="invalid_json", details={"error": str(e)}) from e
        if not isinstance(data, dict):
            raise ValidationError("Invalid JSON body", code="invalid_json")
        return cls.from_dict(data)

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "SyncPayload":
        if not data.get("event_id"):
            raise ValidationError("event_id is required", code="missing_event_id")
        return cls(
            event_id=str(data["event_id"]),
            status=_optional_str(data, "status"),
            start_date=parse_event_datetime(_optional_str(data, "start_date")),
            end_date=parse_event_datetime(_optional_str(data, "end_date")),
            summary=_optional_str(data, "summary"),
            description=_optional_str(data, "description"),
        )

    @property
    def is_cancelled(self) -> bool:
        return (self.status or "").lower() in CANCELLED_STATUSES


@dataclass
class SyncOutcome:
    status_code: int
    success: bool
    message: str
    event_id: str
    action: str | None = None
    table: str | None = None

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {"success": self.success, "message": self.message, "event_id": self.event_id}
        if self.action:
            data["action"] = self.action
        if self.table:
            data["table"] = self.table
        return data


def pet_name_from_summary(summary: str | None) -> str:
    """'Banho - Rex' -> 'Rex'. A summary without a known prefix is the pet name."""
    if not summary:
        return ""
    return SUMMARY_PREFIX.sub("", summary).strip()


def service_type_from_summary(summary: str) -> ServiceType:
    lowered = summary.lower()
    has_tosa = "tosa" in lowered
    has_banho = "banho" in lowered
    if has_tosa and has_banho:
        return ServiceType.BANHO_E_TOSA
    if has_tosa:
        return ServiceType.TOSA
    return ServiceType.BANHO


def is_hotel_summary(summary: str) -> bool:
    lowered = summary.lower()
    return "hotel" in lowered or "creche" in lowered


class CalendarSyncService:
    def __init__(self, db: Session, tenant_id: UUID, notifier: ChangeNotifier | None = None):
        self.tenant_id = tenant_id
        self.repo = PetshopRepository(db, tenant_id, notifier=notifier)

    def apply(self, payload: SyncPayload) -> SyncOutcome:
        logger.info(
            "Calendar sync received",
            extra={"event_id": payload.event_id, "status": payload.status, "tenant_id": str(self.tenant_id)},
        )

        appointment = self.repo.get_appointment_by_event(payload.event_id)
        if appointment is not None:
            if payload.is_cancelled and not can_transition_appointment(
                AppointmentStatus(appointment.status), AppointmentStatus.CANCELADO
            ):
                return self._already_closed(payload, appointment.status, BathGroomingAppointment.__tablename__)
            action = self._update_appointment(appointment, payload)
            return self._done(payload, action, BathGroomingAppointment.__tablename__)

        stay = self.repo.get_stay_by_event(payload.event_id)
        if stay is not None:
            if payload.is_cancelled and not can_transition_stay(HotelStayStatus(stay.status), HotelStayStatus.CANCELADO):
                return self._already_closed(payload, stay.status, HotelStay.__tablename__)
            action = self._update_stay(stay, payload)
            return self._done(payload, action, HotelStay.__tablename__)

        if payload.is_cancelled:
            return SyncOutcome(
                status_code=200,
                success=True,
                message="Event not found but already cancelled - no action needed",
                event_id=payload.event_id,
            )

        return self._create_from_event(payload)

    def _done(self, payload: SyncPayload, action: str, table: str) -> SyncOutcome:
        self.repo.commit()
        logger.info(
            "Calendar sync applied",
            extra={"event_id": payload.event_id, "action": action, "table": table},
        )
        return SyncOutcome(
            status_code=200,
            success=True,
            message=f"Appointment {action}",
            event_id=payload.event_id,
            action=action,
            table=table,
        )

    def _already_closed(self, payload: SyncPayload, status: str, table: str) -> SyncOutcome:
        """Cancellation of a row that already reached a terminal state leaves it untouched."""
        logger.info(
            "Calendar cancellation ignored for closed row",
            extra={"event_id": payload.event_id, "status": status, "table": table},
        )
        return SyncOutcome(
            status_code=200,
            success=True,
            message=f"Event cancelled but record already {status} - no action needed",
            event_id=payload.event_id,
            action="ignored",
            table=table,
        )

    # =========================================================================
    # Updates
    # =========================================================================

    def _update_appointment(self, appointment: BathGroomingAppointment, payload: SyncPayload) -> str:
        if payload.is_cancelled:
            self.repo.update_appointment(
                appointment,
                status=AppointmentStatus.CANCELADO.value,
                kanban_status=KanbanStatus.CANCELADO.value,
            )
            return "cancelled"

        fields: dict[str, Any] = {}
        if payload.start_date:
            fields["start_datetime"] = payload.start_date
        if payload.end_date:
            fields["end_datetime"] = payload.end_date
        if payload.description:
            fields["notes"] = payload.description
        self.repo.update_appointment(appointment, **fields)
        return "updated"

    def _update_stay(self, stay: HotelStay, payload: SyncPayload) -> str:
        if payload.is_cancelled:
            self.repo.update_stay(stay, status=HotelStayStatus.CANCELADO.value)
            return "cancelled"

        fields: dict[str, Any] = {}
        if payload.start_date:
            fields["check_in"] = payload.start_date
        if payload.end_date:
            fields["check_out"] = payload.end_date
        if payload.description:
            fields["notes"] = payload.description
        self.repo.update_stay(stay, **fields)
        return "updated"

    # =========================================================================
    # Creation
    # =========================================================================

    def _create_from_event(self, payload: SyncPayload) -> SyncOutcome:
        pet_name = pet_name_from_summary(payload.summary)
        if not pet_name:
            return SyncOutcome(
                status_code=400,
                success=False,
                message="Cannot create appointment: no pet name in summary",
                event_id=payload.event_id,
            )

        pets = self.repo.find_pets_by_name(pet_name)
        if not pets:
            logger.info("No pet matches calendar event", extra={"event_id": payload.event_id, "pet_name": pet_name})
            return SyncOutcome(
                status_code=404,
                success=False,
                message=f"Pet not found: {pet_name}",
                event_id=payload.event_id,
            )

        pet = pets[0]
        summary = payload.summary or ""
        start = payload.start_date or utcnow()
        end = payload.end_date or start + DEFAULT_DURATION
        notes = payload.description or f"Criado via Google Calendar: {summary}"

        if is_hotel_summary(summary):
            self._create_stay(pet, payload.event_id, start, end, notes, is_creche="creche" in summary.lower())
            return self._done(payload, "created", HotelStay.__tablename__)

        self.repo.create_appointment(
            client_id=pet.client_id,
            pet_id=pet.id,
            google_event_id=payload.event_id,
            start_datetime=start,
            end_datetime=end,
            service_type=service_type_from_summary(summary).value,
            status=AppointmentStatus.AGENDADO.value,
            kanban_status=KanbanStatus.ESPERA.value,
            notes=notes,
            payment_status=PaymentStatus.PENDENTE.value,
        )
        return self._done(payload, "created", BathGroomingAppointment.__tablename__)

    def _create_stay(self, pet: Pet, event_id: str, start: datetime, end: datetime, notes: str, is_creche: bool) -> None:
        self.repo.create_stay(
            client_id=pet.client_id,
            pet_id=pet.id,
            google_event_id=event_id,
            check_in=start,
            check_out=end,
            daily_rate=0,
            total_price=0,
            status=HotelStayStatus.RESERVADO.value,
            is_creche=is_creche,
            notes=notes,
            payment_status=PaymentStatus.PENDENTE.value,
        )
