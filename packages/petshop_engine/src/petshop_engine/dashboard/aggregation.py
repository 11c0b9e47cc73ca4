"""
Operational dashboard.

Daily figures cover the business day in the tenant's timezone. Hotel
revenue is not limited to the day: forecast is every open stay, completed
is every checked-out stay.
"""

import calendar
from dataclasses import asdict, dataclass, field
from datetime import date, datetime, time, timedelta, tzinfo
from decimal import Decimal
from typing import Any
from uuid import UUID

from sqlalchemy.orm import Session

from petcore.clock import ensure_utc

from petshop_engine.contracts.types import AppointmentStatus, HotelStayStatus, PaymentStatus
from petshop_engine.persistence.models import BathGroomingAppointment, HotelStay
from petshop_engine.persistence.repo import PetshopRepository

ZERO = Decimal("0")

SERVICE_LABELS = {
    "banho": "Banho",
    "tosa": "Tosa",
    "banho_e_tosa": "Banho + Tosa",
}


def day_bounds(day: date, tz: tzinfo) -> tuple[datetime, datetime]:
    """[start, end) of a local day, as UTC datetimes."""
    start = datetime.combine(day, time.min, tzinfo=tz)
    return ensure_utc(start), ensure_utc(start + timedelta(days=1))


def _sum(values) -> Decimal:
    return sum((Decimal(v or 0) for v in values), ZERO)


@dataclass
class TodayAppointment:
    id: UUID
    client_name: str
    pet_name: str
    service: str
    status: str
    price: Decimal
    scheduled_at: datetime


@dataclass
class DailySummary:
    day: date
    grooming_scheduled: int = 0
    grooming_in_progress: int = 0
    grooming_completed: int = 0
    grooming_total: int = 0
    grooming_forecast_revenue: Decimal = ZERO
    grooming_completed_revenue: Decimal = ZERO
    hotel_current_guests: int = 0
    hotel_future_check_ins: int = 0
    hotel_today_check_outs: int = 0
    hotel_forecast_revenue: Decimal = ZERO
    hotel_completed_revenue: Decimal = ZERO
    today_appointments: list[TodayAppointment] = field(default_factory=list)

    @property
    def total_forecast_revenue(self) -> Decimal:
        return self.grooming_forecast_revenue + self.hotel_forecast_revenue

    @property
    def total_completed_revenue(self) -> Decimal:
        return self.grooming_completed_revenue + self.hotel_completed_revenue

    def to_dict(self) -> dict[str, Any]:
        data = asdict(self)
        data["day"] = self.day.isoformat()
        data["total_forecast_revenue"] = self.total_forecast_revenue
        data["total_completed_revenue"] = self.total_completed_revenue
        for key, value in data.items():
            if isinstance(value, Decimal):
                data[key] = float(value)
        data["today_appointments"] = [
            {
                "id": str(item.id),
                "client_name": item.client_name,
                "pet_name": item.pet_name,
                "service": item.service,
                "status": item.status,
                "price": float(item.price),
                "scheduled_at": item.scheduled_at.isoformat(),
            }
            for item in self.today_appointments
        ]
        return data


@dataclass
class MonthlySummary:
    year: int
    month: int
    sales_revenue: Decimal = ZERO
    grooming_revenue: Decimal = ZERO
    hotel_revenue: Decimal = ZERO
    appointment_count: int = 0
    pet_nights: int = 0
    occupancy_rate: float | None = None

    @property
    def total_revenue(self) -> Decimal:
        return self.sales_revenue + self.grooming_revenue + self.hotel_revenue

    def to_dict(self) -> dict[str, Any]:
        return {
            "year": self.year,
            "month": self.month,
            "sales_revenue": float(self.sales_revenue),
            "grooming_revenue": float(self.grooming_revenue),
            "hotel_revenue": float(self.hotel_revenue),
            "total_revenue": float(self.total_revenue),
            "appointment_count": self.appointment_count,
            "pet_nights": self.pet_nights,
            "occupancy_rate": self.occupancy_rate,
        }


class DashboardService:
    def __init__(self, db: Session, tenant_id: UUID, tz: tzinfo):
        self.repo = PetshopRepository(db, tenant_id)
        self.tz = tz

    def daily(self, day: date) -> DailySummary:
        start, end = day_bounds(day, self.tz)
        summary = DailySummary(day=day)

        appointments = self.repo.get_appointments_between(start, end)
        self._grooming(summary, appointments)
        self._hotel(summary, self.repo.list_stays(), start, end)
        return summary

    def _grooming(self, summary: DailySummary, appointments: list[BathGroomingAppointment]) -> None:
        by_status: dict[str, list[BathGroomingAppointment]] = {}
        for appointment in appointments:
            by_status.setdefault(appointment.status, []).append(appointment)

        scheduled = by_status.get(AppointmentStatus.AGENDADO.value, [])
        in_progress = by_status.get(AppointmentStatus.EM_ATENDIMENTO.value, [])
        completed = by_status.get(AppointmentStatus.FINALIZADO.value, [])

        summary.grooming_scheduled = len(scheduled)
        summary.grooming_in_progress = len(in_progress)
        summary.grooming_completed = len(completed)
        summary.grooming_total = len(appointments)
        summary.grooming_forecast_revenue = _sum(a.price for a in scheduled + in_progress)
        summary.grooming_completed_revenue = _sum(a.price for a in completed)

        summary.today_appointments = sorted(
            (
                TodayAppointment(
                    id=a.id,
                    client_name=a.client.name if a.client else "Cliente",
                    pet_name=a.pet.name if a.pet else "Pet",
                    service=SERVICE_LABELS.get(a.service_type, a.service_type),
                    status=a.status,
                    price=Decimal(a.price or 0),
                    scheduled_at=ensure_utc(a.start_datetime),
                )
                for a in appointments
            ),
            key=lambda item: item.scheduled_at,
        )

    def _hotel(self, summary: DailySummary, stays: list[HotelStay], start: datetime, end: datetime) -> None:
        for stay in stays:
            check_in = ensure_utc(stay.check_in)
            check_out = ensure_utc(stay.check_out)

            if stay.status == HotelStayStatus.HOSPEDADO.value:
                summary.hotel_current_guests += 1
            if stay.status == HotelStayStatus.RESERVADO.value and check_in > start:
                summary.hotel_future_check_ins += 1
            if start <= check_out < end:
                summary.hotel_today_check_outs += 1

            if stay.status in (HotelStayStatus.RESERVADO.value, HotelStayStatus.HOSPEDADO.value):
                summary.hotel_forecast_revenue += Decimal(stay.total_price or 0)
            elif stay.status == HotelStayStatus.CHECK_OUT_REALIZADO.value:
                summary.hotel_completed_revenue += Decimal(stay.total_price or 0)

    def monthly(self, year: int, month: int, capacity: int | None = None) -> MonthlySummary:
        """
        Month rollup. pet_nights counts the nights of non-cancelled stays that
        fall inside the month; occupancy_rate needs a capacity.
        """
        days_in_month = calendar.monthrange(year, month)[1]
        first = date(year, month, 1)
        start, _ = day_bounds(first, self.tz)
        end, _ = day_bounds(first + timedelta(days=days_in_month), self.tz)
        summary = MonthlySummary(year=year, month=month)

        sales = self.repo.get_sales_between(start, end)
        summary.sales_revenue = _sum(s.total_amount for s in sales if s.payment_status == PaymentStatus.PAGO.value)

        appointments = self.repo.get_appointments_between(start, end)
        summary.appointment_count = sum(1 for a in appointments if a.status != AppointmentStatus.CANCELADO.value)
        summary.grooming_revenue = _sum(
            a.price for a in appointments if a.status == AppointmentStatus.FINALIZADO.value
        )

        for stay in self.repo.get_stays_overlapping(start, end):
            if stay.status == HotelStayStatus.CANCELADO.value:
                continue
            check_in = ensure_utc(stay.check_in)
            check_out = ensure_utc(stay.check_out)
            if stay.status == HotelStayStatus.CHECK_OUT_REALIZADO.value and start <= check_out < end:
                summary.hotel_revenue += Decimal(stay.total_price or 0)
            if not stay.is_creche:
                summary.pet_nights += self._nights_within(check_in, check_out, start, end)

        if capacity:
            summary.occupancy_rate = round(summary.pet_nights / (capacity * days_in_month), 4)
        return summary

    def _nights_within(self, check_in: datetime, check_out: datetime, start: datetime, end: datetime) -> int:
        first = max(check_in, start).astimezone(self.tz).date()
        last = min(check_out, end).astimezone(self.tz).date()
        return max((last - first).days, 0)
