"""Onboarding: tenant creation, invites and the current session."""

from typing import Optional
from uuid import UUID

from fastapi import APIRouter, Depends
from fastapi.responses import JSONResponse
from pydantic import BaseModel, Field
from sqlalchemy.orm import Session

from petcore.db import get_db

from petshop_engine.contracts.types import UserRole
from petshop_engine.identity.session import SessionContext
from petshop_engine.identity.tenancy import DEFAULT_INVITE_DAYS, OperationResult, TenantOnboardingService
from petshop_engine.persistence.models import TenantInvite

from petshop_api.deps import get_session, require_auth, require_tenant_admin

router = APIRouter(prefix="/tenancy", tags=["tenancy"])


class CreateTenantRequest(BaseModel):
    tenant_name: str


class AcceptInviteRequest(BaseModel):
    invite_code: str


class CreateInviteRequest(BaseModel):
    role: str = UserRole.EMPLOYEE.value
    email: Optional[str] = None
    days_valid: int = Field(DEFAULT_INVITE_DAYS, ge=1)


def serialize_invite(invite: TenantInvite) -> dict:
    return {
        "id": str(invite.id),
        "invite_code": invite.invite_code,
        "email": invite.email,
        "role": invite.role,
        "status": invite.status,
        "expires_at": invite.expires_at.isoformat(),
        "accepted_at": invite.accepted_at.isoformat() if invite.accepted_at else None,
    }


def operation_response(result: OperationResult) -> JSONResponse:
    return JSONResponse(status_code=200 if result.success else 400, content=result.to_dict())


@router.get("/me")
def me(session: SessionContext = Depends(require_auth)):
    """Identity, profile and tenant of the caller."""
    return {
        "user_id": str(session.user_id),
        "email": session.identity.email,
        "tenant_id": str(session.tenant_id) if session.tenant_id else None,
        "tenant_name": session.tenant.nome if session.tenant else None,
        "role": session.role,
        "has_profile": session.has_profile,
        "is_tenant_owner": session.is_tenant_owner,
        "is_tenant_admin": session.is_tenant_admin,
    }


@router.post("/tenants")
def create_tenant(
    body: CreateTenantRequest,
    session: SessionContext = Depends(require_auth),
    db: Session = Depends(get_db),
):
    return operation_response(TenantOnboardingService(db, session).create_tenant_with_owner(body.tenant_name))


@router.get("/invites/{invite_code}/validate")
def validate_invite(
    invite_code: str,
    session: SessionContext = Depends(get_session),
    db: Session = Depends(get_db),
):
    return TenantOnboardingService(db, session).validate_invite_code(invite_code).to_dict()


@router.post("/invites/accept")
def accept_invite(
    body: AcceptInviteRequest,
    session: SessionContext = Depends(require_auth),
    db: Session = Depends(get_db),
):
    return operation_response(TenantOnboardingService(db, session).accept_invite(body.invite_code))


@router.get("/invites")
def list_invites(
    session: SessionContext = Depends(require_tenant_admin),
    db: Session = Depends(get_db),
):
    invites = TenantOnboardingService(db, session).list_invites()
    return {"invites": [serialize_invite(i) for i in invites]}


@router.post("/invites", status_code=201)
def create_invite(
    body: CreateInviteRequest,
    session: SessionContext = Depends(require_tenant_admin),
    db: Session = Depends(get_db),
):
    invite = TenantOnboardingService(db, session).create_invite(
        role=body.role,
        email=body.email,
        days_valid=body.days_valid,
    )
    return serialize_invite(invite)


@router.delete("/invites/{invite_id}")
def revoke_invite(
    invite_id: UUID,
    session: SessionContext = Depends(require_tenant_admin),
    db: Session = Depends(get_db),
):
    return serialize_invite(TenantOnboardingService(db, session).revoke_invite(invite_id))
