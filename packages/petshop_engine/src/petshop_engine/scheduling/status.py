"""
Appointment and hotel stay lifecycles.

Appointment: agendado -> em_atendimento -> finalizado
Hotel stay:  reservado -> hospedado -> check_out_realizado

Either may be cancelled from any non-terminal state. The kanban column of
an appointment is an independent sub-state and moves freely, except that
cancelling the appointment also moves it to the cancelado column.
"""

import logging
from datetime import datetime
from uuid import UUID

from sqlalchemy.orm import Session

from petcore.clock import utcnow

from petshop_engine.contracts.types import (
    AppointmentStatus,
    HotelStayStatus,
    KanbanStatus,
    PaymentStatus,
)
from petshop_engine.errors import BusinessRuleError, NotFoundError, ValidationError
from petshop_engine.persistence.models import BathGroomingAppointment, HotelStay
from petshop_engine.persistence.repo import PetshopRepository
from petshop_engine.realtime.notifier import ChangeNotifier
from petshop_engine.segmentation.service import SegmentationService

logger = logging.getLogger(__name__)

APPOINTMENT_TRANSITIONS: dict[AppointmentStatus, frozenset[AppointmentStatus]] = {
    AppointmentStatus.AGENDADO: frozenset({AppointmentStatus.EM_ATENDIMENTO, AppointmentStatus.CANCELADO}),
    AppointmentStatus.EM_ATENDIMENTO: frozenset({AppointmentStatus.FINALIZADO, AppointmentStatus.CANCELADO}),
    AppointmentStatus.FINALIZADO: frozenset(),
    AppointmentStatus.CANCELADO: frozenset(),
}

STAY_TRANSITIONS: dict[HotelStayStatus, frozenset[HotelStayStatus]] = {
    HotelStayStatus.RESERVADO: frozenset({HotelStayStatus.HOSPEDADO, HotelStayStatus.CANCELADO}),
    HotelStayStatus.HOSPEDADO: frozenset({HotelStayStatus.CHECK_OUT_REALIZADO, HotelStayStatus.CANCELADO}),
    HotelStayStatus.CHECK_OUT_REALIZADO: frozenset(),
    HotelStayStatus.CANCELADO: frozenset(),
}


def can_transition_appointment(current: AppointmentStatus, target: AppointmentStatus) -> bool:
    return target in APPOINTMENT_TRANSITIONS[current]


def can_transition_stay(current: HotelStayStatus, target: HotelStayStatus) -> bool:
    return target in STAY_TRANSITIONS[current]


def _invalid(kind: str, current: str, target: str) -> ValidationError:
    return ValidationError(
        f"Transição de status inválida: {current} → {target}",
        code="invalid_transition",
        details={"entity": kind, "from": current, "to": target},
    )


class SchedulingService:
    """Status changes and payments for appointments and hotel stays."""

    def __init__(self, db: Session, tenant_id: UUID, notifier: ChangeNotifier | None = None):
        self.tenant_id = tenant_id
        self.repo = PetshopRepository(db, tenant_id, notifier=notifier)
        self.segmentation = SegmentationService(db, tenant_id, repo=self.repo)

    def _appointment(self, appointment_id: UUID) -> BathGroomingAppointment:
        appointment = self.repo.get_appointment(appointment_id)
        if appointment is None:
            raise NotFoundError("Agendamento não encontrado", details={"appointment_id": str(appointment_id)})
        return appointment

    def _stay(self, stay_id: UUID) -> HotelStay:
        stay = self.repo.get_stay(stay_id)
        if stay is None:
            raise NotFoundError("Hospedagem não encontrada", details={"stay_id": str(stay_id)})
        return stay

    # =========================================================================
    # Appointments
    # =========================================================================

    def transition_appointment(self, appointment_id: UUID, target: AppointmentStatus) -> BathGroomingAppointment:
        appointment = self._appointment(appointment_id)
        current = AppointmentStatus(appointment.status)
        if not can_transition_appointment(current, target):
            raise _invalid("appointment", current.value, target.value)

        fields: dict[str, object] = {"status": target.value}
        if target == AppointmentStatus.CANCELADO:
            fields["kanban_status"] = KanbanStatus.CANCELADO.value
        self.repo.update_appointment(appointment, **fields)
        self.repo.commit()

        logger.info(
            "Appointment status changed",
            extra={"appointment_id": str(appointment.id), "from": current.value, "to": target.value},
        )
        return appointment

    def move_kanban(self, appointment_id: UUID, column: KanbanStatus) -> BathGroomingAppointment:
        appointment = self._appointment(appointment_id)
        if appointment.status == AppointmentStatus.CANCELADO.value and column != KanbanStatus.CANCELADO:
            raise _invalid("kanban", appointment.kanban_status, column.value)
        self.repo.update_appointment(appointment, kanban_status=column.value)
        self.repo.commit()
        return appointment

    def mark_appointment_paid(self, appointment_id: UUID, paid_at: datetime | None = None) -> BathGroomingAppointment:
        """Mark an appointment paid and record the client's purchase in the same transaction."""
        appointment = self._appointment(appointment_id)
        if appointment.status == AppointmentStatus.CANCELADO.value:
            raise BusinessRuleError(
                "Agendamento cancelado não pode ser pago",
                details={"appointment_id": str(appointment.id)},
            )

        paid_at = paid_at or utcnow()
        self.repo.update_appointment(appointment, payment_status=PaymentStatus.PAGO.value, paid_at=paid_at)
        self.segmentation.record_purchase(appointment.client_id, paid_at, commit=False)
        self.repo.commit()
        return appointment

    # =========================================================================
    # Hotel stays
    # =========================================================================

    def transition_stay(self, stay_id: UUID, target: HotelStayStatus) -> HotelStay:
        stay = self._stay(stay_id)
        current = HotelStayStatus(stay.status)
        if not can_transition_stay(current, target):
            raise _invalid("hotel_stay", current.value, target.value)

        self.repo.update_stay(stay, status=target.value)
        self.repo.commit()

        logger.info(
            "Hotel stay status changed",
            extra={"stay_id": str(stay.id), "from": current.value, "to": target.value},
        )
        return stay

    def mark_stay_paid(self, stay_id: UUID, paid_at: datetime | None = None) -> HotelStay:
        stay = self._stay(stay_id)
        if stay.status == HotelStayStatus.CANCELADO.value:
            raise BusinessRuleError("Hospedagem cancelada não pode ser paga", details={"stay_id": str(stay.id)})

        paid_at = paid_at or utcnow()
        self.repo.update_stay(stay, payment_status=PaymentStatus.PAGO.value, paid_at=paid_at)
        self.segmentation.record_purchase(stay.client_id, paid_at, commit=False)
        self.repo.commit()
        return stay
