"""
Tenant onboarding and invites.

create_tenant_with_owner and accept_invite each run in one database
transaction and return {success, error}; business rejections carry the
message shown to the user.
"""

import logging
import secrets
from dataclasses import dataclass
from datetime import timedelta
from uuid import UUID

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from petcore.clock import utcnow

from petshop_engine.contracts.types import InviteStatus, UserRole
from petshop_engine.errors import NotFoundError, PermissionDenied, ValidationError
from petshop_engine.identity.session import SessionContext
from petshop_engine.persistence.models import TenantInvite
from petshop_engine.persistence.repo import TenancyRepository

logger = logging.getLogger(__name__)

INVITABLE_ROLES = frozenset({UserRole.ADMIN.value, UserRole.MANAGER.value, UserRole.EMPLOYEE.value})
DEFAULT_INVITE_DAYS = 7


@dataclass
class OperationResult:
    success: bool
    error: str | None = None
    tenant_id: UUID | None = None

    def to_dict(self) -> dict:
        data: dict = {"success": self.success}
        if self.error:
            data["error"] = self.error
        if self.tenant_id:
            data["tenant_id"] = str(self.tenant_id)
        return data


@dataclass
class InviteValidation:
    valid: bool
    tenant_name: str | None = None
    role: str | None = None

    def to_dict(self) -> dict:
        data: dict = {"valid": self.valid}
        if self.valid:
            data["tenant_name"] = self.tenant_name
            data["role"] = self.role
        return data


class TenantOnboardingService:
    """Creates tenants, issues invites and attaches users to tenants."""

    def __init__(self, db: Session, session: SessionContext):
        self.db = db
        self.session = session
        self.repo = TenancyRepository(db)

    def create_tenant_with_owner(self, tenant_name: str) -> OperationResult:
        identity = self.session.identity
        if identity is None:
            return OperationResult(success=False, error="User not authenticated")

        tenant_name = (tenant_name or "").strip()
        if not tenant_name:
            return OperationResult(success=False, error="Nome da empresa é obrigatório")

        existing = self.repo.get_profile(identity.user_id)
        if existing is not None and existing.tenant_id is not None:
            return OperationResult(success=False, error="Usuário já pertence a uma empresa")

        try:
            tenant = self.repo.create_tenant(tenant_name)
            self.repo.create_settings(tenant.id, business_name=tenant_name)
            self.repo.upsert_profile(
                identity.user_id,
                tenant.id,
                role=UserRole.OWNER.value,
                nome=identity.display_name,
                email=identity.email,
            )
            self.db.commit()
        except SQLAlchemyError as e:
            self.db.rollback()
            logger.error(f"Failed to create tenant: {e}", extra={"user_id": str(identity.user_id)})
            return OperationResult(success=False, error="Failed to create tenant")

        logger.info("Tenant created", extra={"tenant_id": str(tenant.id), "user_id": str(identity.user_id)})
        self.session.refresh(self.db, identity)
        return OperationResult(success=True, tenant_id=tenant.id)

    def validate_invite_code(self, code: str) -> InviteValidation:
        """
        Check an invite code without consuming it.

        Nonexistent, expired, accepted and revoked codes all come back as
        valid=False, as do lookup failures.
        """
        if not code:
            return InviteValidation(valid=False)
        try:
            invite = self.repo.get_pending_invite(code.strip(), utcnow())
            if invite is None:
                return InviteValidation(valid=False)
            tenant = self.repo.get_tenant(invite.tenant_id)
        except SQLAlchemyError as e:
            logger.error(f"Error validating invite: {e}")
            return InviteValidation(valid=False)

        return InviteValidation(valid=True, tenant_name=tenant.nome if tenant else None, role=invite.role)

    def accept_invite(self, code: str) -> OperationResult:
        identity = self.session.identity
        if identity is None:
            return OperationResult(success=False, error="User not authenticated")

        invite = self.repo.get_pending_invite((code or "").strip(), utcnow())
        if invite is None:
            return OperationResult(success=False, error="Convite inválido ou expirado")

        existing = self.repo.get_profile(identity.user_id)
        if existing is not None and existing.tenant_id is not None:
            return OperationResult(success=False, error="Usuário já pertence a uma empresa")

        try:
            self.repo.upsert_profile(
                identity.user_id,
                invite.tenant_id,
                role=invite.role,
                nome=identity.display_name,
                email=identity.email,
            )
            invite.status = InviteStatus.ACCEPTED.value
            invite.accepted_by = identity.user_id
            invite.accepted_at = utcnow()
            self.db.commit()
        except SQLAlchemyError as e:
            self.db.rollback()
            logger.error(f"Failed to accept invite: {e}", extra={"user_id": str(identity.user_id)})
            return OperationResult(success=False, error="Failed to accept invite")

        logger.info(
            "Invite accepted",
            extra={"tenant_id": str(invite.tenant_id), "user_id": str(identity.user_id)},
        )
        self.session.refresh(self.db, identity)
        return OperationResult(success=True, tenant_id=invite.tenant_id)

    # =========================================================================
    # Admin
    # =========================================================================

    def create_invite(
        self,
        role: str = UserRole.EMPLOYEE.value,
        email: str | None = None,
        days_valid: int = DEFAULT_INVITE_DAYS,
    ) -> TenantInvite:
        self._require_admin()
        if role not in INVITABLE_ROLES:
            raise ValidationError(f"Papel inválido para convite: {role}", code="invalid_role")
        if days_valid < 1:
            raise ValidationError("A validade do convite deve ser de pelo menos 1 dia", code="invalid_expiry")

        invite = self.repo.create_invite(
            tenant_id=self.session.tenant_id,
            invite_code=generate_invite_code(),
            role=role,
            expires_at=utcnow() + timedelta(days=days_valid),
            created_by=self.session.user_id,
            email=email or None,
        )
        self.db.commit()
        logger.info("Invite created", extra={"tenant_id": str(invite.tenant_id), "role": role})
        return invite

    def revoke_invite(self, invite_id: UUID) -> TenantInvite:
        self._require_admin()
        invite = self.repo.get_invite(self.session.tenant_id, invite_id)
        if invite is None:
            raise NotFoundError("Convite não encontrado")
        invite.status = InviteStatus.REVOKED.value
        self.db.commit()
        return invite

    def list_invites(self) -> list[TenantInvite]:
        self._require_admin()
        return self.repo.list_invites(self.session.tenant_id)

    def _require_admin(self) -> None:
        if not self.session.has_profile or not self.session.is_tenant_admin:
            raise PermissionDenied("Apenas administradores podem gerenciar convites")


def generate_invite_code() -> str:
    return secrets.token_hex(4).upper()
