"""
Tests for token decoding, session context and tenant onboarding.
"""

from datetime import timedelta
from uuid import uuid4

import pytest
from jose import jwt

from petcore.clock import utcnow
from petcore.settings import Settings

from petshop_engine.contracts.types import InviteStatus, UserRole
from petshop_engine.errors import NotFoundError, PermissionDenied, ValidationError
from petshop_engine.identity.session import SessionContext
from petshop_engine.identity.tenancy import TenantOnboardingService, generate_invite_code
from petshop_engine.identity.tokens import AuthIdentity, decode_auth_token
from petshop_engine.persistence.models import TenantSettings, UserProfile
from petshop_engine.persistence.repo import TenancyRepository


@pytest.fixture
def auth_settings():
    return Settings(AUTH_JWT_SECRET="test-secret", AUTH_JWT_AUDIENCE="authenticated")


def sign(claims, secret="test-secret"):
    return jwt.encode(claims, secret, algorithm="HS256")


class TestDecodeAuthToken:
    def test_valid_token(self, auth_settings):
        """Subject, e-mail and full name are read from the token."""
        user_id = uuid4()
        token = sign(
            {
                "sub": str(user_id),
                "aud": "authenticated",
                "email": "ana@example.com",
                "user_metadata": {"full_name": "Ana Souza"},
            }
        )

        identity = decode_auth_token(token, auth_settings)

        assert identity.user_id == user_id
        assert identity.email == "ana@example.com"
        assert identity.display_name == "Ana Souza"

    def test_wrong_secret(self, auth_settings):
        """Tokens signed with another key are rejected."""
        token = sign({"sub": str(uuid4()), "aud": "authenticated"}, secret="other")
        assert decode_auth_token(token, auth_settings) is None

    def test_wrong_audience(self, auth_settings):
        token = sign({"sub": str(uuid4()), "aud": "anon"})
        assert decode_auth_token(token, auth_settings) is None

    def test_subject_must_be_uuid(self, auth_settings):
        token = sign({"sub": "not-a-uuid", "aud": "authenticated"})
        assert decode_auth_token(token, auth_settings) is None

    def test_display_name_falls_back_to_email(self):
        identity = AuthIdentity(user_id=uuid4(), email="bia@example.com")
        assert identity.display_name == "bia@example.com"


class TestSessionContext:
    def test_signed_out(self, db):
        """An empty session has no tenant and no role."""
        session = SessionContext.load(db, None)

        assert not session.is_authenticated
        assert session.tenant_id is None
        assert not session.has_profile
        assert not session.is_tenant_admin

    def test_loads_profile_and_tenant(self, owner_session, tenant):
        assert owner_session.has_profile
        assert owner_session.tenant_id == tenant.id
        assert owner_session.tenant.nome == "Pet Feliz"
        assert owner_session.is_tenant_owner
        assert owner_session.is_tenant_admin

    def test_employee_is_not_admin(self, employee_session):
        assert employee_session.has_profile
        assert not employee_session.is_tenant_admin

    def test_sign_out_clears_everything(self, owner_session):
        owner_session.sign_out()

        assert owner_session.identity is None
        assert owner_session.profile is None
        assert owner_session.tenant is None


class TestCreateTenant:
    def test_creates_tenant_settings_and_owner(self, db):
        """New user becomes owner of a tenant with a settings row."""
        identity = AuthIdentity(user_id=uuid4(), email="novo@example.com", full_name="Novo")
        session = SessionContext.load(db, identity)

        result = TenantOnboardingService(db, session).create_tenant_with_owner("  Banho & Tosa  ")

        assert result.success
        profile = db.query(UserProfile).filter(UserProfile.id == identity.user_id).one()
        assert profile.tenant_id == result.tenant_id
        assert profile.role == UserRole.OWNER.value
        settings = db.query(TenantSettings).filter(TenantSettings.tenant_id == result.tenant_id).one()
        assert settings.business_name == "Banho & Tosa"
        assert session.has_profile
        assert session.tenant_id == result.tenant_id

    def test_requires_authentication(self, db):
        result = TenantOnboardingService(db, SessionContext()).create_tenant_with_owner("Loja")

        assert not result.success
        assert result.error == "User not authenticated"

    def test_requires_name(self, db):
        session = SessionContext.load(db, AuthIdentity(user_id=uuid4()))

        result = TenantOnboardingService(db, session).create_tenant_with_owner("   ")

        assert not result.success
        assert result.error == "Nome da empresa é obrigatório"

    def test_user_already_in_tenant(self, db, owner_session):
        result = TenantOnboardingService(db, owner_session).create_tenant_with_owner("Outra Loja")

        assert not result.success
        assert result.error == "Usuário já pertence a uma empresa"


class TestInvites:
    def test_create_invite(self, db, owner_session):
        """Admins create pending invites with an 8-character code."""
        service = TenantOnboardingService(db, owner_session)

        invite = service.create_invite(role=UserRole.MANAGER.value, email="x@example.com", days_valid=3)

        assert invite.status == InviteStatus.PENDING.value
        assert len(invite.invite_code) == 8
        assert invite.role == UserRole.MANAGER.value
        assert invite.tenant_id == owner_session.tenant_id

    def test_owner_role_cannot_be_invited(self, db, owner_session):
        with pytest.raises(ValidationError) as exc_info:
            TenantOnboardingService(db, owner_session).create_invite(role=UserRole.OWNER.value)
        assert exc_info.value.code == "invalid_role"

    def test_employee_cannot_create_invite(self, db, employee_session):
        with pytest.raises(PermissionDenied):
            TenantOnboardingService(db, employee_session).create_invite()

    def test_validate_pending_invite(self, db, owner_session):
        invite = TenantOnboardingService(db, owner_session).create_invite()
        visitor = SessionContext.load(db, AuthIdentity(user_id=uuid4()))

        validation = TenantOnboardingService(db, visitor).validate_invite_code(invite.invite_code)

        assert validation.valid
        assert validation.tenant_name == "Pet Feliz"
        assert validation.role == UserRole.EMPLOYEE.value

    def test_expired_invite_is_invalid(self, db, tenant):
        TenancyRepository(db).create_invite(
            tenant_id=tenant.id,
            invite_code="EXPIRED1",
            role=UserRole.EMPLOYEE.value,
            expires_at=utcnow() - timedelta(hours=1),
        )
        db.commit()
        service = TenantOnboardingService(db, SessionContext())

        assert not service.validate_invite_code("EXPIRED1").valid
        assert service.validate_invite_code("EXPIRED1").to_dict() == {"valid": False}

    def test_unknown_code_is_invalid(self, db):
        assert not TenantOnboardingService(db, SessionContext()).validate_invite_code("NOPE").valid

    def test_accept_invite(self, db, owner_session):
        """Accepting attaches the user with the invite's role and consumes the code."""
        invite = TenantOnboardingService(db, owner_session).create_invite(role=UserRole.ADMIN.value)
        identity = AuthIdentity(user_id=uuid4(), email="novo@example.com")
        session = SessionContext.load(db, identity)
        service = TenantOnboardingService(db, session)

        result = service.accept_invite(invite.invite_code)

        assert result.success
        assert result.tenant_id == owner_session.tenant_id
        assert session.role == UserRole.ADMIN.value
        db.refresh(invite)
        assert invite.status == InviteStatus.ACCEPTED.value
        assert invite.accepted_by == identity.user_id
        assert not service.validate_invite_code(invite.invite_code).valid

    def test_accepted_invite_cannot_be_reused(self, db, owner_session):
        invite = TenantOnboardingService(db, owner_session).create_invite()
        first = SessionContext.load(db, AuthIdentity(user_id=uuid4()))
        TenantOnboardingService(db, first).accept_invite(invite.invite_code)
        second = SessionContext.load(db, AuthIdentity(user_id=uuid4()))

        result = TenantOnboardingService(db, second).accept_invite(invite.invite_code)

        assert not result.success
        assert result.error == "Convite inválido ou expirado"

    def test_revoke_invite(self, db, owner_session):
        service = TenantOnboardingService(db, owner_session)
        invite = service.create_invite()

        service.revoke_invite(invite.id)

        assert invite.status == InviteStatus.REVOKED.value
        assert not service.validate_invite_code(invite.invite_code).valid

    def test_revoke_unknown_invite(self, db, owner_session):
        with pytest.raises(NotFoundError):
            TenantOnboardingService(db, owner_session).revoke_invite(uuid4())

    def test_list_invites(self, db, owner_session):
        service = TenantOnboardingService(db, owner_session)
        service.create_invite()
        service.create_invite()

        assert len(service.list_invites()) == 2

    def test_generated_codes_are_uppercase_hex(self):
        code = generate_invite_code()
        assert len(code) == 8
        assert code == code.upper()
        int(code, 16)
