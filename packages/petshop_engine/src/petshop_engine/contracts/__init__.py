"""Shared contracts - enumerations and change events."""

from petshop_engine.contracts.change_event import ChangeEvent
from petshop_engine.contracts.types import (
    ADMIN_ROLES,
    AppointmentStatus,
    CampaignType,
    ChangeType,
    FiscalEnvironment,
    HotelStayStatus,
    InviteStatus,
    InvoiceKind,
    InvoiceStatus,
    KanbanStatus,
    MediaType,
    ModuleKey,
    PaymentStatus,
    PlanType,
    ProfileStatus,
    ServiceType,
    UserRole,
)

__all__ = [
    "ADMIN_ROLES",
    "AppointmentStatus",
    "CampaignType",
    "ChangeEvent",
    "ChangeType",
    "FiscalEnvironment",
    "HotelStayStatus",
    "InviteStatus",
    "InvoiceKind",
    "InvoiceStatus",
    "KanbanStatus",
    "MediaType",
    "ModuleKey",
    "PaymentStatus",
    "PlanType",
    "ProfileStatus",
    "ServiceType",
    "UserRole",
]
