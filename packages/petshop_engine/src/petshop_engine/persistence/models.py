"""
Pet Shop Database Models

Tables:
- tenants / tenant_settings: tenant account, plan and module flags
- users_profile / tenant_invites: tenant-scoped identities and invites
- clients / pets: tutors and their animals
- bath_grooming_appointments / hotel_stays: scheduled services
- sales: point-of-sale records
- companies / config_fiscal / notas_fiscais: NFC-e issuance
- google_calendar_tokens: OAuth tokens per tenant
- campaign_dispatches: campaign handoffs to the workflow engine
"""

from uuid import uuid4

from sqlalchemy import (
    JSON,
    Boolean,
    Column,
    DateTime,
    ForeignKey,
    Index,
    Integer,
    Numeric,
    String,
    Text,
    UniqueConstraint,
    Uuid,
)
from sqlalchemy.dialects.postgresql import JSONB
from sqlalchemy.orm import relationship

from petcore.clock import utcnow
from petcore.db import Base

from petshop_engine.contracts.types import (
    AppointmentStatus,
    CampaignType,
    FiscalEnvironment,
    HotelStayStatus,
    InviteStatus,
    InvoiceKind,
    InvoiceStatus,
    KanbanStatus,
    PaymentStatus,
    PlanType,
    ProfileStatus,
    UserRole,
)

JSONType = JSON().with_variant(JSONB(), "postgresql")


class TenantScopedMixin:
    """Common fields for tenant-owned rows."""

    id = Column(Uuid, primary_key=True, default=uuid4)
    tenant_id = Column(Uuid, nullable=False, index=True)
    created_at = Column(DateTime(timezone=True), nullable=False, default=utcnow)
    updated_at = Column(DateTime(timezone=True), nullable=False, default=utcnow, onupdate=utcnow)


# =========================================================================
# Tenancy
# =========================================================================


class Tenant(Base):
    __tablename__ = "tenants"

    id = Column(Uuid, primary_key=True, default=uuid4)
    nome = Column(String(255), nullable=False)
    ativo = Column(Boolean, nullable=False, default=True)
    created_at = Column(DateTime(timezone=True), nullable=False, default=utcnow)

    settings = relationship("TenantSettings", back_populates="tenant", uselist=False)


class TenantSettings(Base):
    """
    One row per tenant: business name, plan and the module flags.

    Flags are plain booleans keyed by ModuleKey values; see
    petshop_engine.entitlements.plans for the canned plan configurations.
    """

    __tablename__ = "tenant_settings"

    id = Column(Uuid, primary_key=True, default=uuid4)
    tenant_id = Column(Uuid, ForeignKey("tenants.id", ondelete="CASCADE"), nullable=False, unique=True)
    business_name = Column(String(255), nullable=False, default="PetSaaS")
    plan_type = Column(String(20), nullable=False, default=PlanType.HOTEL.value)

    mod_petshop = Column(Boolean, nullable=False, default=True)
    mod_hotel = Column(Boolean, nullable=False, default=True)
    mod_clinica = Column(Boolean, nullable=False, default=False)
    mod_produtos = Column(Boolean, nullable=False, default=False)
    mod_pdv = Column(Boolean, nullable=False, default=True)
    mod_caixa = Column(Boolean, nullable=False, default=False)
    mod_comissao = Column(Boolean, nullable=False, default=False)
    mod_financeiro_avancado = Column(Boolean, nullable=False, default=False)
    mod_dashboard_completo = Column(Boolean, nullable=False, default=False)
    mod_estoque = Column(Boolean, nullable=False, default=False)
    mod_marketing = Column(Boolean, nullable=False, default=False)

    dias_inatividade = Column(Integer, nullable=False, default=40)
    updated_at = Column(DateTime(timezone=True), nullable=False, default=utcnow, onupdate=utcnow)

    tenant = relationship("Tenant", back_populates="settings")


class UserProfile(Base):
    """
    Tenant-scoped profile. The primary key is the auth provider's identity id.

    tenant_id is NULL until the user creates a tenant or accepts an invite.
    """

    __tablename__ = "users_profile"

    id = Column(Uuid, primary_key=True)
    tenant_id = Column(Uuid, ForeignKey("tenants.id", ondelete="SET NULL"), nullable=True, index=True)
    nome = Column(String(255), nullable=True)
    email = Column(String(255), nullable=True)
    role = Column(String(20), nullable=False, default=UserRole.EMPLOYEE.value)
    status = Column(String(20), nullable=False, default=ProfileStatus.ACTIVE.value)
    created_at = Column(DateTime(timezone=True), nullable=False, default=utcnow)
    updated_at = Column(DateTime(timezone=True), nullable=False, default=utcnow, onupdate=utcnow)


class TenantInvite(Base, TenantScopedMixin):
    __tablename__ = "tenant_invites"

    invite_code = Column(String(64), nullable=False)
    email = Column(String(255), nullable=True)
    role = Column(String(20), nullable=False, default=UserRole.EMPLOYEE.value)
    status = Column(String(20), nullable=False, default=InviteStatus.PENDING.value)
    expires_at = Column(DateTime(timezone=True), nullable=False)
    created_by = Column(Uuid, nullable=True)
    accepted_by = Column(Uuid, nullable=True)
    accepted_at = Column(DateTime(timezone=True), nullable=True)

    __table_args__ = (
        UniqueConstraint("invite_code", name="uq_tenant_invites_code"),
        Index("idx_tenant_invites_tenant_status", "tenant_id", "status"),
    )


# =========================================================================
# Clients & Pets
# =========================================================================


class Client(Base, TenantScopedMixin):
    __tablename__ = "clients"

    name = Column(String(255), nullable=False)
    whatsapp = Column(String(20), nullable=False)
    email = Column(String(255), nullable=True)
    cpf = Column(String(14), nullable=True)
    address = Column(String(255), nullable=True)
    neighborhood = Column(String(120), nullable=True)
    city = Column(String(120), nullable=True)
    zip_code = Column(String(9), nullable=True)
    last_purchase = Column(DateTime(timezone=True), nullable=True)
    last_interaction = Column(DateTime(timezone=True), nullable=True)
    tipo_campanha = Column(String(20), nullable=True, default=CampaignType.SEM_COMPRA.value)

    pets = relationship("Pet", back_populates="client")

    __table_args__ = (
        Index("idx_clients_tenant_campanha", "tenant_id", "tipo_campanha"),
        Index("idx_clients_tenant_last_purchase", "tenant_id", "last_purchase"),
    )


class Pet(Base, TenantScopedMixin):
    __tablename__ = "pets"

    client_id = Column(Uuid, ForeignKey("clients.id", ondelete="CASCADE"), nullable=False, index=True)
    name = Column(String(120), nullable=False)
    species = Column(String(20), nullable=False, default="dog")
    breed = Column(String(120), nullable=True)
    size = Column(String(20), nullable=True)
    coat_type = Column(String(20), nullable=True)
    weight = Column(Numeric(6, 2), nullable=True)

    client = relationship("Client", back_populates="pets")


# =========================================================================
# Services
# =========================================================================


class BathGroomingAppointment(Base, TenantScopedMixin):
    __tablename__ = "bath_grooming_appointments"

    client_id = Column(Uuid, ForeignKey("clients.id", ondelete="CASCADE"), nullable=False)
    pet_id = Column(Uuid, ForeignKey("pets.id", ondelete="CASCADE"), nullable=False)
    start_datetime = Column(DateTime(timezone=True), nullable=False)
    end_datetime = Column(DateTime(timezone=True), nullable=False)
    service_type = Column(String(20), nullable=False)
    status = Column(String(20), nullable=False, default=AppointmentStatus.AGENDADO.value)
    kanban_status = Column(String(20), nullable=False, default=KanbanStatus.ESPERA.value)
    price = Column(Numeric(10, 2), nullable=False, default=0)
    payment_status = Column(String(20), nullable=False, default=PaymentStatus.PENDENTE.value)
    paid_at = Column(DateTime(timezone=True), nullable=True)
    google_event_id = Column(String(255), nullable=True)
    notes = Column(Text, nullable=True)

    client = relationship("Client")
    pet = relationship("Pet")

    __table_args__ = (
        Index("idx_appointments_tenant_start", "tenant_id", "start_datetime"),
        Index("idx_appointments_google_event", "google_event_id"),
    )


class HotelStay(Base, TenantScopedMixin):
    __tablename__ = "hotel_stays"

    client_id = Column(Uuid, ForeignKey("clients.id", ondelete="CASCADE"), nullable=False)
    pet_id = Column(Uuid, ForeignKey("pets.id", ondelete="CASCADE"), nullable=False)
    check_in = Column(DateTime(timezone=True), nullable=False)
    check_out = Column(DateTime(timezone=True), nullable=False)
    daily_rate = Column(Numeric(10, 2), nullable=False, default=0)
    total_price = Column(Numeric(10, 2), nullable=False, default=0)
    status = Column(String(20), nullable=False, default=HotelStayStatus.RESERVADO.value)
    is_creche = Column(Boolean, nullable=False, default=False)
    payment_status = Column(String(20), nullable=False, default=PaymentStatus.PENDENTE.value)
    paid_at = Column(DateTime(timezone=True), nullable=True)
    google_event_id = Column(String(255), nullable=True)
    notes = Column(Text, nullable=True)

    client = relationship("Client")
    pet = relationship("Pet")

    __table_args__ = (
        Index("idx_hotel_stays_tenant_check_in", "tenant_id", "check_in"),
        Index("idx_hotel_stays_google_event", "google_event_id"),
    )


class Sale(Base, TenantScopedMixin):
    __tablename__ = "sales"

    client_id = Column(Uuid, ForeignKey("clients.id", ondelete="SET NULL"), nullable=True)
    subtotal = Column(Numeric(10, 2), nullable=False, default=0)
    discount = Column(Numeric(10, 2), nullable=False, default=0)
    total_amount = Column(Numeric(10, 2), nullable=False, default=0)
    payment_method = Column(String(20), nullable=False)
    payment_status = Column(String(20), nullable=False, default=PaymentStatus.PAGO.value)

    __table_args__ = (Index("idx_sales_tenant_created", "tenant_id", "created_at"),)


# =========================================================================
# Fiscal
# =========================================================================


class Company(Base, TenantScopedMixin):
    __tablename__ = "companies"

    cnpj = Column(String(18), nullable=True)
    razao_social = Column(String(255), nullable=True)
    nome_fantasia = Column(String(255), nullable=True)
    inscricao_estadual = Column(String(30), nullable=True)
    logradouro = Column(String(255), nullable=True)
    numero = Column(String(20), nullable=True)
    bairro = Column(String(120), nullable=True)
    municipio = Column(String(120), nullable=True)
    uf = Column(String(2), nullable=True)
    cep = Column(String(9), nullable=True)


class FiscalConfig(Base, TenantScopedMixin):
    """
    NFC-e settings for a company.

    numero_atual is the last number handed out. It is advanced before the
    provider call, so rejected submissions still consume a number.
    """

    __tablename__ = "config_fiscal"

    company_id = Column(Uuid, ForeignKey("companies.id", ondelete="CASCADE"), nullable=False, unique=True)
    ambiente = Column(String(20), nullable=False, default=FiscalEnvironment.HOMOLOGACAO.value)
    tipo_nota = Column(String(20), nullable=False, default=InvoiceKind.NFCE.value)  # nfce, nfe, desativado
    serie = Column(String(5), nullable=True, default="1")
    numero_atual = Column(Integer, nullable=False, default=0)
    regime_tributario = Column(String(2), nullable=True, default="1")
    csosn_servicos = Column(String(5), nullable=True, default="102")
    emitir_automatico = Column(Boolean, nullable=False, default=False)


class NotaFiscal(Base, TenantScopedMixin):
    __tablename__ = "notas_fiscais"

    company_id = Column(Uuid, ForeignKey("companies.id", ondelete="CASCADE"), nullable=False)
    sale_id = Column(Uuid, ForeignKey("sales.id", ondelete="SET NULL"), nullable=True)
    tipo = Column(String(10), nullable=False, default=InvoiceKind.NFCE.value)
    numero = Column(Integer, nullable=False)
    serie = Column(String(5), nullable=False, default="1")
    chave = Column(String(60), nullable=True)
    status = Column(String(20), nullable=False, default=InvoiceStatus.PROCESSANDO.value)
    referencia_focus = Column(String(120), nullable=True)
    xml = Column(Text, nullable=True)
    pdf_url = Column(Text, nullable=True)
    erro_sefaz = Column(Text, nullable=True)
    ambiente = Column(String(20), nullable=False, default=FiscalEnvironment.HOMOLOGACAO.value)

    __table_args__ = (
        UniqueConstraint("company_id", "serie", "numero", name="uq_notas_fiscais_company_serie_numero"),
        Index("idx_notas_fiscais_tenant_status", "tenant_id", "status"),
    )


# =========================================================================
# Integrations
# =========================================================================


class GoogleCalendarToken(Base, TenantScopedMixin):
    """OAuth tokens for a tenant's Google Calendar. refresh_token may be Fernet-encrypted."""

    __tablename__ = "google_calendar_tokens"

    access_token = Column(Text, nullable=False)
    refresh_token = Column(Text, nullable=True)
    expires_at = Column(DateTime(timezone=True), nullable=False)
    calendar_id = Column(String(255), nullable=False, default="primary")

    __table_args__ = (UniqueConstraint("tenant_id", name="uq_google_calendar_tokens_tenant"),)


class CampaignDispatch(Base, TenantScopedMixin):
    """
    Record of a campaign handed to the workflow engine.

    status is "enviado_webhook" or "falhou". Delivery to each recipient is
    not tracked here.
    """

    __tablename__ = "campaign_dispatches"

    campanha = Column(String(255), nullable=False)
    media_type = Column(String(10), nullable=False, default="text")
    criterios = Column(JSONType, nullable=False, default=list)
    dias_inatividade = Column(Integer, nullable=False)
    total_clientes = Column(Integer, nullable=False, default=0)
    status = Column(String(20), nullable=False)
    error_message = Column(Text, nullable=True)
    sent_by = Column(Uuid, nullable=True)
