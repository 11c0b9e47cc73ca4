"""
Error taxonomy for the pet shop engine.

- ValidationError: input rejected before any network call or write
- TransportError: non-2xx response or network failure from an external API
- BusinessRuleError: rejection from a transactional operation, message shown verbatim
- NotFoundError / PermissionDenied: lookups and role checks
"""

from typing import Any


class PetshopError(Exception):
    """Base error for the pet shop engine."""

    def __init__(
        self,
        message: str,
        code: str | None = None,
        details: dict[str, Any] | None = None,
    ):
        super().__init__(message)
        self.message = message
        self.code = code
        self.details = details or {}


class ValidationError(PetshopError):
    """Input rejected locally."""


class TransportError(PetshopError):
    """External HTTP call failed. Never retried automatically."""

    def __init__(
        self,
        message: str,
        code: str | None = None,
        details: dict[str, Any] | None = None,
        status_code: int | None = None,
    ):
        super().__init__(message, code, details)
        self.status_code = status_code


class CampaignDispatchError(TransportError):
    """The campaign webhook did not accept the payload."""


class BusinessRuleError(PetshopError):
    """Business rejection surfaced to the user as-is."""


class NotFoundError(PetshopError):
    """Requested record does not exist for this tenant."""


class PermissionDenied(PetshopError):
    """Caller lacks the role or module required for the action."""
