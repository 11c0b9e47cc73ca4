"""
Session context.

Holds the authenticated identity together with its tenant-scoped profile.
A SessionContext starts empty, is refreshed on every auth-state change and
is cleared on sign-out. Services receive it explicitly.
"""

import logging
from uuid import UUID

from sqlalchemy.orm import Session

from petshop_engine.contracts.types import ADMIN_ROLES, UserRole
from petshop_engine.identity.tokens import AuthIdentity
from petshop_engine.persistence.models import Tenant, UserProfile

logger = logging.getLogger(__name__)


class SessionContext:
    def __init__(self) -> None:
        self.identity: AuthIdentity | None = None
        self.profile: UserProfile | None = None
        self.tenant: Tenant | None = None

    @classmethod
    def load(cls, db: Session, identity: AuthIdentity | None) -> "SessionContext":
        context = cls()
        context.refresh(db, identity)
        return context

    def refresh(self, db: Session, identity: AuthIdentity | None) -> None:
        """Reload profile and tenant for the given identity (None means signed out)."""
        self.identity = identity
        self.profile = None
        self.tenant = None
        if identity is None:
            return

        self.profile = db.query(UserProfile).filter(UserProfile.id == identity.user_id).first()
        if self.profile is not None and self.profile.tenant_id is not None:
            self.tenant = db.query(Tenant).filter(Tenant.id == self.profile.tenant_id).first()

        logger.debug(
            "Session refreshed",
            extra={"user_id": str(identity.user_id), "has_profile": self.has_profile},
        )

    def sign_out(self) -> None:
        self.identity = None
        self.profile = None
        self.tenant = None

    @property
    def is_authenticated(self) -> bool:
        return self.identity is not None

    @property
    def user_id(self) -> UUID | None:
        return self.identity.user_id if self.identity else None

    @property
    def tenant_id(self) -> UUID | None:
        return self.profile.tenant_id if self.profile else None

    @property
    def role(self) -> str | None:
        return self.profile.role if self.profile else None

    @property
    def has_profile(self) -> bool:
        """Profile exists and belongs to a tenant."""
        return self.profile is not None and self.profile.tenant_id is not None

    @property
    def is_tenant_owner(self) -> bool:
        return self.role == UserRole.OWNER.value

    @property
    def is_tenant_admin(self) -> bool:
        return self.role in ADMIN_ROLES
