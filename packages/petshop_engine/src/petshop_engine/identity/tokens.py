"""
Auth token verification.

Tokens are issued by the external auth provider. We only decode them to get
the identity id, e-mail and display name; nothing here creates tokens.
"""

from dataclasses import dataclass
from uuid import UUID

from jose import JWTError, jwt

from petcore.settings import Settings, get_settings


@dataclass(frozen=True)
class AuthIdentity:
    """Identity extracted from the auth provider's JWT."""

    user_id: UUID
    email: str | None = None
    full_name: str | None = None

    @property
    def display_name(self) -> str:
        return self.full_name or self.email or ""


def decode_auth_token(token: str, settings: Settings | None = None) -> AuthIdentity | None:
    """Return the identity carried by a bearer token, or None if it is invalid."""
    settings = settings or get_settings()
    options = {"verify_aud": settings.AUTH_JWT_AUDIENCE is not None}
    try:
        payload = jwt.decode(
            token,
            settings.AUTH_JWT_SECRET,
            algorithms=[settings.AUTH_JWT_ALGORITHM],
            audience=settings.AUTH_JWT_AUDIENCE,
            options=options,
        )
    except JWTError:
        return None

    sub = payload.get("sub")
    if not sub:
        return None
    try:
        user_id = UUID(str(sub))
    except ValueError:
        return None

    metadata = payload.get("user_metadata") or {}
    return AuthIdentity(
        user_id=user_id,
        email=payload.get("email"),
        full_name=metadata.get("full_name"),
    )
