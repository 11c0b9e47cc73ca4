"""
Domain enumerations.

Values match the strings stored in the database, so members can be compared
against raw column values and serialized directly to JSON.
"""

from enum import Enum


class ModuleKey(str, Enum):
    """Feature modules a tenant can have enabled."""

    PETSHOP = "mod_petshop"
    HOTEL = "mod_hotel"
    CLINICA = "mod_clinica"
    PRODUTOS = "mod_produtos"
    PDV = "mod_pdv"
    CAIXA = "mod_caixa"
    COMISSAO = "mod_comissao"
    FINANCEIRO_AVANCADO = "mod_financeiro_avancado"
    DASHBOARD_COMPLETO = "mod_dashboard_completo"
    ESTOQUE = "mod_estoque"
    MARKETING = "mod_marketing"

    def __str__(self) -> str:
        return self.value


class PlanType(str, Enum):
    BASIC = "basic"
    HOTEL = "hotel"
    PREMIUM = "premium"

    def __str__(self) -> str:
        return self.value


class UserRole(str, Enum):
    OWNER = "owner"
    ADMIN = "admin"
    MANAGER = "manager"
    EMPLOYEE = "employee"

    def __str__(self) -> str:
        return self.value


ADMIN_ROLES = frozenset({UserRole.OWNER.value, UserRole.ADMIN.value})


class ProfileStatus(str, Enum):
    ACTIVE = "active"
    INACTIVE = "inactive"
    PENDING = "pending"

    def __str__(self) -> str:
        return self.value


class InviteStatus(str, Enum):
    PENDING = "pending"
    ACCEPTED = "accepted"
    REVOKED = "revoked"

    def __str__(self) -> str:
        return self.value


class CampaignType(str, Enum):
    """
    Marketing segment stored in clients.tipo_campanha.

    SEM_COMPRA, ATIVO and INATIVO are derived from last_purchase.
    PRIMEIRA_COMPRA is written once by the purchase hook.
    """

    SEM_COMPRA = "sem_compra"
    PRIMEIRA_COMPRA = "primeira_compra"
    ATIVO = "ativo"
    INATIVO = "inativo"

    def __str__(self) -> str:
        return self.value


class MediaType(str, Enum):
    TEXT = "text"
    IMAGE = "image"
    VIDEO = "video"

    def __str__(self) -> str:
        return self.value


class ServiceType(str, Enum):
    BANHO = "banho"
    TOSA = "tosa"
    BANHO_E_TOSA = "banho_e_tosa"

    def __str__(self) -> str:
        return self.value


class AppointmentStatus(str, Enum):
    AGENDADO = "agendado"
    EM_ATENDIMENTO = "em_atendimento"
    FINALIZADO = "finalizado"
    CANCELADO = "cancelado"

    def __str__(self) -> str:
        return self.value


class KanbanStatus(str, Enum):
    ESPERA = "espera"
    BANHO = "banho"
    TOSA = "tosa"
    SECAGEM = "secagem"
    PRONTO = "pronto"
    CANCELADO = "cancelado"

    def __str__(self) -> str:
        return self.value


class HotelStayStatus(str, Enum):
    RESERVADO = "reservado"
    HOSPEDADO = "hospedado"
    CHECK_OUT_REALIZADO = "check_out_realizado"
    CANCELADO = "cancelado"

    def __str__(self) -> str:
        return self.value


class PaymentStatus(str, Enum):
    PENDENTE = "pendente"
    PAGO = "pago"

    def __str__(self) -> str:
        return self.value


class InvoiceStatus(str, Enum):
    """NFC-e lifecycle. Only the fiscal provider moves a note to AUTORIZADA."""

    PROCESSANDO = "processando"
    AUTORIZADA = "autorizada"
    REJEITADA = "rejeitada"
    CANCELADA = "cancelada"

    def __str__(self) -> str:
        return self.value


class InvoiceKind(str, Enum):
    NFCE = "nfce"
    NFE = "nfe"

    def __str__(self) -> str:
        return self.value


class FiscalEnvironment(str, Enum):
    HOMOLOGACAO = "homologacao"
    PRODUCAO = "producao"

    def __str__(self) -> str:
        return self.value


class ChangeType(str, Enum):
    INSERT = "INSERT"
    UPDATE = "UPDATE"
    DELETE = "DELETE"

    def __str__(self) -> str:
        return self.value
