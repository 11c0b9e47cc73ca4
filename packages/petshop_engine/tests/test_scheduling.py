"""
Tests for appointment and hotel stay lifecycles.
"""

from datetime import datetime, timedelta, timezone
from uuid import uuid4

import pytest

from petcore.clock import ensure_utc

from petshop_engine.contracts.types import (
    AppointmentStatus,
    CampaignType,
    HotelStayStatus,
    KanbanStatus,
    PaymentStatus,
    ServiceType,
)
from petshop_engine.errors import BusinessRuleError, NotFoundError, ValidationError
from petshop_engine.scheduling import SchedulingService, can_transition_appointment, can_transition_stay

START = datetime(2026, 3, 20, 13, 0, tzinfo=timezone.utc)


@pytest.fixture
def client(make_client):
    return make_client()


@pytest.fixture
def pet(repo, client, db):
    pet = repo.create_pet(client.id, "Rex")
    db.commit()
    return pet


@pytest.fixture
def appointment(repo, pet, db):
    appointment = repo.create_appointment(
        client_id=pet.client_id,
        pet_id=pet.id,
        start_datetime=START,
        end_datetime=START + timedelta(hours=1),
        service_type=ServiceType.BANHO.value,
        price=80,
    )
    db.commit()
    return appointment


@pytest.fixture
def stay(repo, pet, db):
    stay = repo.create_stay(
        client_id=pet.client_id,
        pet_id=pet.id,
        check_in=START,
        check_out=START + timedelta(days=3),
        daily_rate=100,
        total_price=300,
    )
    db.commit()
    return stay


@pytest.fixture
def service(db, tenant, notifier):
    return SchedulingService(db, tenant.id, notifier=notifier)


class TestTransitionTables:
    def test_appointment_forward_path(self):
        assert can_transition_appointment(AppointmentStatus.AGENDADO, AppointmentStatus.EM_ATENDIMENTO)
        assert can_transition_appointment(AppointmentStatus.EM_ATENDIMENTO, AppointmentStatus.FINALIZADO)

    def test_appointment_cannot_skip_or_reopen(self):
        assert not can_transition_appointment(AppointmentStatus.AGENDADO, AppointmentStatus.FINALIZADO)
        assert not can_transition_appointment(AppointmentStatus.FINALIZADO, AppointmentStatus.CANCELADO)
        assert not can_transition_appointment(AppointmentStatus.CANCELADO, AppointmentStatus.AGENDADO)

    def test_stay_path(self):
        assert can_transition_stay(HotelStayStatus.RESERVADO, HotelStayStatus.HOSPEDADO)
        assert can_transition_stay(HotelStayStatus.HOSPEDADO, HotelStayStatus.CHECK_OUT_REALIZADO)
        assert can_transition_stay(HotelStayStatus.HOSPEDADO, HotelStayStatus.CANCELADO)
        assert not can_transition_stay(HotelStayStatus.CHECK_OUT_REALIZADO, HotelStayStatus.HOSPEDADO)


class TestAppointments:
    def test_start_service(self, service, appointment, notifier):
        updated = service.transition_appointment(appointment.id, AppointmentStatus.EM_ATENDIMENTO)

        assert updated.status == AppointmentStatus.EM_ATENDIMENTO.value
        assert "bath_grooming_appointments" in notifier.tables()

    def test_invalid_transition(self, service, appointment):
        with pytest.raises(ValidationError) as exc_info:
            service.transition_appointment(appointment.id, AppointmentStatus.FINALIZADO)

        assert exc_info.value.code == "invalid_transition"
        assert appointment.status == AppointmentStatus.AGENDADO.value

    def test_cancel_moves_kanban(self, service, appointment):
        service.transition_appointment(appointment.id, AppointmentStatus.CANCELADO)

        assert appointment.kanban_status == KanbanStatus.CANCELADO.value

    def test_kanban_moves_freely(self, service, appointment):
        service.move_kanban(appointment.id, KanbanStatus.SECAGEM)
        service.move_kanban(appointment.id, KanbanStatus.BANHO)

        assert appointment.kanban_status == KanbanStatus.BANHO.value
        assert appointment.status == AppointmentStatus.AGENDADO.value

    def test_cancelled_appointment_kanban_is_frozen(self, service, appointment):
        service.transition_appointment(appointment.id, AppointmentStatus.CANCELADO)

        with pytest.raises(ValidationError):
            service.move_kanban(appointment.id, KanbanStatus.PRONTO)

    def test_unknown_appointment(self, service):
        with pytest.raises(NotFoundError):
            service.transition_appointment(uuid4(), AppointmentStatus.CANCELADO)

    def test_payment_records_first_purchase(self, service, appointment, client):
        """Paying updates the client's purchase date and labels a first purchase."""
        paid_at = START + timedelta(hours=2)

        service.mark_appointment_paid(appointment.id, paid_at=paid_at)

        assert appointment.payment_status == PaymentStatus.PAGO.value
        assert ensure_utc(client.last_purchase) == paid_at
        assert client.tipo_campanha == CampaignType.PRIMEIRA_COMPRA.value

    def test_payment_is_published_in_one_commit(self, service, appointment, notifier):
        service.mark_appointment_paid(appointment.id, paid_at=START)

        assert notifier.tables() == ["bath_grooming_appointments", "clients"]

    def test_cancelled_appointment_cannot_be_paid(self, service, appointment, client, notifier):
        service.transition_appointment(appointment.id, AppointmentStatus.CANCELADO)
        notifier.events.clear()

        with pytest.raises(BusinessRuleError):
            service.mark_appointment_paid(appointment.id, paid_at=START)

        assert appointment.payment_status != PaymentStatus.PAGO.value
        assert client.last_purchase is None
        assert notifier.events == []


class TestHotelStays:
    def test_check_in_and_out(self, service, stay):
        service.transition_stay(stay.id, HotelStayStatus.HOSPEDADO)
        service.transition_stay(stay.id, HotelStayStatus.CHECK_OUT_REALIZADO)

        assert stay.status == HotelStayStatus.CHECK_OUT_REALIZADO.value

    def test_cannot_check_out_before_check_in(self, service, stay):
        with pytest.raises(ValidationError):
            service.transition_stay(stay.id, HotelStayStatus.CHECK_OUT_REALIZADO)

    def test_payment_moves_last_purchase_forward(self, service, stay, client, db):
        """A later purchase keeps the existing label."""
        client.last_purchase = START - timedelta(days=10)
        client.tipo_campanha = CampaignType.ATIVO.value
        db.commit()

        service.mark_stay_paid(stay.id, paid_at=START)

        assert stay.payment_status == PaymentStatus.PAGO.value
        assert ensure_utc(client.last_purchase) == START
        assert client.tipo_campanha == CampaignType.ATIVO.value

    def test_unknown_stay(self, service):
        with pytest.raises(NotFoundError):
            service.mark_stay_paid(uuid4())

    def test_cancelled_stay_cannot_be_paid(self, service, stay, client):
        service.transition_stay(stay.id, HotelStayStatus.CANCELADO)

        with pytest.raises(BusinessRuleError):
            service.mark_stay_paid(stay.id, paid_at=START)

        assert client.last_purchase is None
