"""
Google OAuth2 for the tenant's calendar.

Tokens live in google_calendar_tokens, one row per tenant. When a Fernet key
is configured the refresh token is stored encrypted.
"""

import logging
from datetime import datetime, timedelta
from typing import Any
from urllib.parse import urlencode
from uuid import UUID

import httpx
from cryptography.fernet import Fernet, InvalidToken
from sqlalchemy.orm import Session

from petcore.clock import ensure_utc, utcnow

from petshop_engine.errors import BusinessRuleError, TransportError, ValidationError
from petshop_engine.persistence.models import GoogleCalendarToken
from petshop_engine.persistence.repo import PetshopRepository

logger = logging.getLogger(__name__)

AUTH_URL = "https://accounts.google.com/o/oauth2/v2/auth"
TOKEN_URL = "https://oauth2.googleapis.com/token"
SCOPES = [
    "https://www.googleapis.com/auth/calendar",
    "https://www.googleapis.com/auth/calendar.events",
]
REFRESH_MARGIN = timedelta(minutes=5)


class TokenCipher:
    """Fernet wrapper; a None key stores tokens as-is."""

    def __init__(self, key: str | None = None):
        self._fernet = Fernet(key.encode()) if key else None

    def encrypt(self, value: str | None) -> str | None:
        if value is None or self._fernet is None:
            return value
        return self._fernet.encrypt(value.encode()).decode()

    def decrypt(self, value: str | None) -> str | None:
        if value is None or self._fernet is None:
            return value
        try:
            return self._fernet.decrypt(value.encode()).decode()
        except InvalidToken:
            logger.error("Stored Google refresh token could not be decrypted")
            raise BusinessRuleError("Token do Google Calendar inválido. Conecte novamente.")


class GoogleAuthService:
    def __init__(
        self,
        db: Session,
        tenant_id: UUID,
        client_id: str,
        client_secret: str,
        encryption_key: str | None = None,
        timeout: float = 30.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        self.repo = PetshopRepository(db, tenant_id)
        self.tenant_id = tenant_id
        self.client_id = client_id
        self.client_secret = client_secret
        self.cipher = TokenCipher(encryption_key)
        self.timeout = timeout
        self.transport = transport
        self._client: httpx.AsyncClient | None = None

    async def _get_client(self) -> httpx.AsyncClient:
        if self._client is None:
            kwargs: dict[str, Any] = {"timeout": self.timeout}
            if self.transport is not None:
                kwargs["transport"] = self.transport
            self._client = httpx.AsyncClient(**kwargs)
        return self._client

    async def close(self) -> None:
        if self._client:
            await self._client.aclose()
            self._client = None

    async def _token_request(self, form: dict[str, str]) -> dict[str, Any]:
        client = await self._get_client()
        try:
            response = await client.post(
                TOKEN_URL,
                data={"client_id": self.client_id, "client_secret": self.client_secret, **form},
            )
        except httpx.RequestError as e:
            logger.error(f"Google token request failed: {e}", extra={"tenant_id": str(self.tenant_id)})
            raise TransportError(f"Google token request failed: {e}") from e

        try:
            data = response.json()
        except ValueError:
            data = {}
        if data.get("error") or response.status_code >= 400:
            message = data.get("error_description") or data.get("error") or f"HTTP {response.status_code}"
            logger.error(
                "Google token endpoint returned an error",
                extra={"tenant_id": str(self.tenant_id), "status_code": response.status_code},
            )
            raise TransportError(message, code=data.get("error"), status_code=response.status_code)
        return data

    @staticmethod
    def _expires_at(data: dict[str, Any]) -> datetime:
        return utcnow() + timedelta(seconds=int(data.get("expires_in", 3600)))

    # =========================================================================
    # OAuth flow
    # =========================================================================

    def get_auth_url(self, redirect_uri: str) -> str:
        if not redirect_uri:
            raise ValidationError("redirect_uri is required")
        params = {
            "client_id": self.client_id,
            "redirect_uri": redirect_uri,
            "response_type": "code",
            "scope": " ".join(SCOPES),
            "access_type": "offline",
            "prompt": "consent",
        }
        return f"{AUTH_URL}?{urlencode(params)}"

    async def exchange_code(self, code: str, redirect_uri: str) -> GoogleCalendarToken:
        """Trade an authorization code for tokens and store them."""
        if not code or not redirect_uri:
            raise ValidationError("code and redirect_uri are required")

        data = await self._token_request(
            {"code": code, "grant_type": "authorization_code", "redirect_uri": redirect_uri}
        )
        token = self.repo.save_google_token(
            access_token=data["access_token"],
            expires_at=self._expires_at(data),
            refresh_token=self.cipher.encrypt(data.get("refresh_token")),
        )
        self.repo.commit()
        logger.info("Google Calendar connected", extra={"tenant_id": str(self.tenant_id)})
        return token

    async def refresh_token(self) -> str:
        """Refresh the access token using the stored refresh token."""
        token = self.repo.get_google_token()
        if token is None or not token.refresh_token:
            raise BusinessRuleError("No refresh token available")

        data = await self._token_request(
            {"refresh_token": self.cipher.decrypt(token.refresh_token), "grant_type": "refresh_token"}
        )
        self.repo.save_google_token(access_token=data["access_token"], expires_at=self._expires_at(data))
        self.repo.commit()
        logger.info("Google access token refreshed", extra={"tenant_id": str(self.tenant_id)})
        return data["access_token"]

    def check_connection(self) -> dict[str, bool]:
        token = self.repo.get_google_token()
        if token is None:
            return {"connected": False, "hasTokens": False}
        connected = bool(token.access_token) and ensure_utc(token.expires_at) > utcnow()
        return {"connected": connected, "hasTokens": True}

    async def get_valid_access_token(self) -> str:
        """Stored access token, refreshed first when it expires within five minutes."""
        token = self.repo.get_google_token()
        if token is None:
            raise BusinessRuleError("Google Calendar not connected. Please connect first.")
        if ensure_utc(token.expires_at) - REFRESH_MARGIN <= utcnow():
            return await self.refresh_token()
        return token.access_token
