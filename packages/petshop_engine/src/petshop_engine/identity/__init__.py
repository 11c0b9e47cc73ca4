"""Identity resolution, session context and tenant onboarding."""

from petshop_engine.identity.session import SessionContext
from petshop_engine.identity.tenancy import InviteValidation, OperationResult, TenantOnboardingService
from petshop_engine.identity.tokens import AuthIdentity, decode_auth_token

__all__ = [
    "AuthIdentity",
    "InviteValidation",
    "OperationResult",
    "SessionContext",
    "TenantOnboardingService",
    "decode_auth_token",
]
