"""
Pet Shop Repository

Repository pattern for the pet shop tables.

TenancyRepository works across tenants (profiles, invites, onboarding).
PetshopRepository is scoped to a single tenant; mutations on watched tables
are recorded and published to the change stream after commit().
"""

from datetime import datetime
from typing import Any
from uuid import UUID

from sqlalchemy import func
from sqlalchemy.orm import Session

from petshop_engine.contracts.types import ChangeType, InviteStatus
from petshop_engine.persistence.models import (
    BathGroomingAppointment,
    CampaignDispatch,
    Client,
    Company,
    FiscalConfig,
    GoogleCalendarToken,
    HotelStay,
    NotaFiscal,
    Pet,
    Sale,
    Tenant,
    TenantInvite,
    TenantSettings,
    UserProfile,
)
from petshop_engine.realtime.notifier import ChangeNotifier


class TenancyRepository:
    """Tenant, settings, profile and invite access. Not tenant-scoped."""

    def __init__(self, db: Session):
        self.db = db

    # =========================================================================
    # Tenants & Settings
    # =========================================================================

    def get_tenant(self, tenant_id: UUID) -> Tenant | None:
        return self.db.query(Tenant).filter(Tenant.id == tenant_id).first()

    def create_tenant(self, nome: str) -> Tenant:
        tenant = Tenant(nome=nome)
        self.db.add(tenant)
        self.db.flush()
        return tenant

    def get_settings(self, tenant_id: UUID) -> TenantSettings | None:
        return self.db.query(TenantSettings).filter(TenantSettings.tenant_id == tenant_id).first()

    def create_settings(self, tenant_id: UUID, business_name: str) -> TenantSettings:
        settings = TenantSettings(tenant_id=tenant_id, business_name=business_name)
        self.db.add(settings)
        self.db.flush()
        return settings

    # =========================================================================
    # Profiles
    # =========================================================================

    def get_profile(self, user_id: UUID) -> UserProfile | None:
        return self.db.query(UserProfile).filter(UserProfile.id == user_id).first()

    def upsert_profile(
        self,
        user_id: UUID,
        tenant_id: UUID,
        role: str,
        nome: str | None = None,
        email: str | None = None,
    ) -> UserProfile:
        """Attach a user to a tenant, creating the profile row if missing."""
        profile = self.get_profile(user_id)
        if profile is None:
            profile = UserProfile(id=user_id)
            self.db.add(profile)
        profile.tenant_id = tenant_id
        profile.role = role
        profile.nome = nome or profile.nome
        profile.email = email or profile.email
        self.db.flush()
        return profile

    # =========================================================================
    # Invites
    # =========================================================================

    def get_pending_invite(self, invite_code: str, now: datetime) -> TenantInvite | None:
        """Pending, unexpired invite by code. Wrong, expired and used codes all return None."""
        return (
            self.db.query(TenantInvite)
            .filter(
                TenantInvite.invite_code == invite_code,
                TenantInvite.status == InviteStatus.PENDING.value,
                TenantInvite.expires_at > now,
            )
            .first()
        )

    def get_invite(self, tenant_id: UUID, invite_id: UUID) -> TenantInvite | None:
        return (
            self.db.query(TenantInvite)
            .filter(TenantInvite.tenant_id == tenant_id, TenantInvite.id == invite_id)
            .first()
        )

    def list_invites(self, tenant_id: UUID) -> list[TenantInvite]:
        return (
            self.db.query(TenantInvite)
            .filter(TenantInvite.tenant_id == tenant_id)
            .order_by(TenantInvite.created_at.desc())
            .all()
        )

    def create_invite(
        self,
        tenant_id: UUID,
        invite_code: str,
        role: str,
        expires_at: datetime,
        created_by: UUID | None = None,
        email: str | None = None,
    ) -> TenantInvite:
        invite = TenantInvite(
            tenant_id=tenant_id,
            invite_code=invite_code,
            role=role,
            expires_at=expires_at,
            created_by=created_by,
            email=email,
        )
        self.db.add(invite)
        self.db.flush()
        return invite


class PetshopRepository:
    """Repository for tenant-owned pet shop rows."""

    def __init__(self, db: Session, tenant_id: UUID, notifier: ChangeNotifier | None = None):
        self.db = db
        self.tenant_id = tenant_id
        self.notifier = notifier
        self._changes: list[tuple[str, ChangeType, UUID | None]] = []

    def record_change(self, table: str, event_type: ChangeType, record_id: UUID | None = None) -> None:
        self._changes.append((table, event_type, record_id))

    def commit(self) -> None:
        """Commit the session, then publish recorded changes."""
        self.db.commit()
        changes, self._changes = self._changes, []
        if self.notifier is None:
            return
        for table, event_type, record_id in changes:
            self.notifier.notify(table, event_type, self.tenant_id, record_id)

    def rollback(self) -> None:
        self.db.rollback()
        self._changes = []

    # =========================================================================
    # Settings
    # =========================================================================

    def get_settings(self) -> TenantSettings | None:
        return self.db.query(TenantSettings).filter(TenantSettings.tenant_id == self.tenant_id).first()

    # =========================================================================
    # Clients & Pets
    # =========================================================================

    def get_client(self, client_id: UUID) -> Client | None:
        return (
            self.db.query(Client)
            .filter(Client.tenant_id == self.tenant_id, Client.id == client_id)
            .first()
        )

    def list_clients(self) -> list[Client]:
        return (
            self.db.query(Client)
            .filter(Client.tenant_id == self.tenant_id)
            .order_by(Client.name)
            .all()
        )

    def create_client(self, name: str, whatsapp: str, email: str | None = None, **fields: Any) -> Client:
        client = Client(tenant_id=self.tenant_id, name=name, whatsapp=whatsapp, email=email, **fields)
        self.db.add(client)
        self.db.flush()
        self.record_change(Client.__tablename__, ChangeType.INSERT, client.id)
        return client

    def create_pet(self, client_id: UUID, name: str, **fields: Any) -> Pet:
        pet = Pet(tenant_id=self.tenant_id, client_id=client_id, name=name, **fields)
        self.db.add(pet)
        self.db.flush()
        self.record_change(Pet.__tablename__, ChangeType.INSERT, pet.id)
        return pet

    def find_pets_by_name(self, name: str) -> list[Pet]:
        """Case-insensitive exact name match."""
        return (
            self.db.query(Pet)
            .filter(Pet.tenant_id == self.tenant_id, func.lower(Pet.name) == name.lower())
            .order_by(Pet.created_at)
            .all()
        )

    def get_pets_for_clients(self, client_ids: list[UUID]) -> list[Pet]:
        if not client_ids:
            return []
        return (
            self.db.query(Pet)
            .filter(Pet.tenant_id == self.tenant_id, Pet.client_id.in_(client_ids))
            .all()
        )

    # =========================================================================
    # Appointments & Stays
    # =========================================================================

    def get_appointment(self, appointment_id: UUID) -> BathGroomingAppointment | None:
        return (
            self.db.query(BathGroomingAppointment)
            .filter(
                BathGroomingAppointment.tenant_id == self.tenant_id,
                BathGroomingAppointment.id == appointment_id,
            )
            .first()
        )

    def get_appointment_by_event(self, google_event_id: str) -> BathGroomingAppointment | None:
        return (
            self.db.query(BathGroomingAppointment)
            .filter(
                BathGroomingAppointment.tenant_id == self.tenant_id,
                BathGroomingAppointment.google_event_id == google_event_id,
            )
            .first()
        )

    def get_appointments_between(self, start: datetime, end: datetime) -> list[BathGroomingAppointment]:
        return (
            self.db.query(BathGroomingAppointment)
            .filter(
                BathGroomingAppointment.tenant_id == self.tenant_id,
                BathGroomingAppointment.start_datetime >= start,
                BathGroomingAppointment.start_datetime < end,
            )
            .order_by(BathGroomingAppointment.start_datetime)
            .all()
        )

    def create_appointment(self, **fields: Any) -> BathGroomingAppointment:
        appointment = BathGroomingAppointment(tenant_id=self.tenant_id, **fields)
        self.db.add(appointment)
        self.db.flush()
        self.record_change(BathGroomingAppointment.__tablename__, ChangeType.INSERT, appointment.id)
        return appointment

    def update_appointment(self, appointment: BathGroomingAppointment, **fields: Any) -> BathGroomingAppointment:
        for key, value in fields.items():
            setattr(appointment, key, value)
        self.db.flush()
        self.record_change(BathGroomingAppointment.__tablename__, ChangeType.UPDATE, appointment.id)
        return appointment

    def get_stay(self, stay_id: UUID) -> HotelStay | None:
        return (
            self.db.query(HotelStay)
            .filter(HotelStay.tenant_id == self.tenant_id, HotelStay.id == stay_id)
            .first()
        )

    def get_stay_by_event(self, google_event_id: str) -> HotelStay | None:
        return (
            self.db.query(HotelStay)
            .filter(HotelStay.tenant_id == self.tenant_id, HotelStay.google_event_id == google_event_id)
            .first()
        )

    def get_stays_overlapping(self, start: datetime, end: datetime) -> list[HotelStay]:
        """Stays whose [check_in, check_out) range touches [start, end)."""
        return (
            self.db.query(HotelStay)
            .filter(
                HotelStay.tenant_id == self.tenant_id,
                HotelStay.check_in < end,
                HotelStay.check_out >= start,
            )
            .order_by(HotelStay.check_in)
            .all()
        )

    def create_stay(self, **fields: Any) -> HotelStay:
        stay = HotelStay(tenant_id=self.tenant_id, **fields)
        self.db.add(stay)
        self.db.flush()
        self.record_change(HotelStay.__tablename__, ChangeType.INSERT, stay.id)
        return stay

    def update_stay(self, stay: HotelStay, **fields: Any) -> HotelStay:
        for key, value in fields.items():
            setattr(stay, key, value)
        self.db.flush()
        self.record_change(HotelStay.__tablename__, ChangeType.UPDATE, stay.id)
        return stay

    def list_stays(self) -> list[HotelStay]:
        return (
            self.db.query(HotelStay)
            .filter(HotelStay.tenant_id == self.tenant_id)
            .order_by(HotelStay.check_in)
            .all()
        )

    # =========================================================================
    # Sales
    # =========================================================================

    def get_sale(self, sale_id: UUID) -> Sale | None:
        return self.db.query(Sale).filter(Sale.tenant_id == self.tenant_id, Sale.id == sale_id).first()

    def get_sales_between(self, start: datetime, end: datetime) -> list[Sale]:
        return (
            self.db.query(Sale)
            .filter(Sale.tenant_id == self.tenant_id, Sale.created_at >= start, Sale.created_at < end)
            .all()
        )

    def create_sale(self, **fields: Any) -> Sale:
        sale = Sale(tenant_id=self.tenant_id, **fields)
        self.db.add(sale)
        self.db.flush()
        self.record_change(Sale.__tablename__, ChangeType.INSERT, sale.id)
        return sale

    # =========================================================================
    # Fiscal
    # =========================================================================

    def get_company(self, company_id: UUID) -> Company | None:
        return (
            self.db.query(Company)
            .filter(Company.tenant_id == self.tenant_id, Company.id == company_id)
            .first()
        )

    def get_fiscal_config(self, company_id: UUID, for_update: bool = False) -> FiscalConfig | None:
        query = self.db.query(FiscalConfig).filter(
            FiscalConfig.tenant_id == self.tenant_id,
            FiscalConfig.company_id == company_id,
        )
        if for_update:
            query = query.with_for_update()
        return query.first()

    def get_nota(self, nota_id: UUID) -> NotaFiscal | None:
        return (
            self.db.query(NotaFiscal)
            .filter(NotaFiscal.tenant_id == self.tenant_id, NotaFiscal.id == nota_id)
            .first()
        )

    def list_notas(self, status: str | None = None, limit: int = 100) -> list[NotaFiscal]:
        query = self.db.query(NotaFiscal).filter(NotaFiscal.tenant_id == self.tenant_id)
        if status:
            query = query.filter(NotaFiscal.status == status)
        return query.order_by(NotaFiscal.created_at.desc()).limit(limit).all()

    def create_nota(self, **fields: Any) -> NotaFiscal:
        nota = NotaFiscal(tenant_id=self.tenant_id, **fields)
        self.db.add(nota)
        self.db.flush()
        self.record_change(NotaFiscal.__tablename__, ChangeType.INSERT, nota.id)
        return nota

    def update_nota(self, nota: NotaFiscal, **fields: Any) -> NotaFiscal:
        for key, value in fields.items():
            setattr(nota, key, value)
        self.db.flush()
        self.record_change(NotaFiscal.__tablename__, ChangeType.UPDATE, nota.id)
        return nota

    # =========================================================================
    # Google Calendar tokens
    # =========================================================================

    def get_google_token(self) -> GoogleCalendarToken | None:
        return (
            self.db.query(GoogleCalendarToken)
            .filter(GoogleCalendarToken.tenant_id == self.tenant_id)
            .first()
        )

    def save_google_token(
        self,
        access_token: str,
        expires_at: datetime,
        refresh_token: str | None = None,
    ) -> GoogleCalendarToken:
        """Insert or update the tenant's token row. A missing refresh token keeps the stored one."""
        token = self.get_google_token()
        if token is None:
            token = GoogleCalendarToken(
                tenant_id=self.tenant_id,
                access_token=access_token,
                refresh_token=refresh_token,
                expires_at=expires_at,
            )
            self.db.add(token)
        else:
            token.access_token = access_token
            token.expires_at = expires_at
            if refresh_token:
                token.refresh_token = refresh_token
        self.db.flush()
        return token

    # =========================================================================
    # Campaign dispatches
    # =========================================================================

    def create_dispatch(self, **fields: Any) -> CampaignDispatch:
        dispatch = CampaignDispatch(tenant_id=self.tenant_id, **fields)
        self.db.add(dispatch)
        self.db.flush()
        return dispatch

    def list_dispatches(self, limit: int = 50) -> list[CampaignDispatch]:
        return (
            self.db.query(CampaignDispatch)
            .filter(CampaignDispatch.tenant_id == self.tenant_id)
            .order_by(CampaignDispatch.created_at.desc())
            .limit(limit)
            .all()
        )
