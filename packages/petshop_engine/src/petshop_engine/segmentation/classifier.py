"""
Client campaign classification.

Pure functions: given last_purchase, the tenant threshold and "now", decide
the campaign bucket. The boundary is inclusive: exactly `threshold` days
without a purchase is already inactive.
"""

from datetime import datetime

from petcore.clock import ensure_utc, utcnow

from petshop_engine.contracts.types import CampaignType
from petshop_engine.errors import ValidationError

DEFAULT_INACTIVITY_DAYS = 40
MIN_INACTIVITY_DAYS = 1
MAX_INACTIVITY_DAYS = 365


def validate_threshold(days: int) -> int:
    if isinstance(days, bool) or not isinstance(days, int):
        raise ValidationError("O prazo deve ser entre 1 e 365 dias", code="invalid_threshold")
    if days < MIN_INACTIVITY_DAYS or days > MAX_INACTIVITY_DAYS:
        raise ValidationError(
            "O prazo deve ser entre 1 e 365 dias",
            code="invalid_threshold",
            details={"dias_inatividade": days},
        )
    return days


def days_inactive(last_purchase: datetime | None, now: datetime | None = None) -> int | None:
    """Whole days since the last purchase, or None if the client never bought."""
    if last_purchase is None:
        return None
    now = ensure_utc(now) if now else utcnow()
    delta = now - ensure_utc(last_purchase)
    return max(delta.days, 0)


def classify(
    last_purchase: datetime | None,
    threshold: int = DEFAULT_INACTIVITY_DAYS,
    now: datetime | None = None,
) -> CampaignType:
    """Bucket for a client. Never returns PRIMEIRA_COMPRA."""
    days = days_inactive(last_purchase, now)
    if days is None:
        return CampaignType.SEM_COMPRA
    if days >= threshold:
        return CampaignType.INATIVO
    return CampaignType.ATIVO


def inactivity_level(days: int | None, threshold: int) -> str:
    """Badge level for a client list: nunca, alto, medio or baixo."""
    if days is None:
        return "nunca"
    if days >= threshold:
        return "alto"
    if days >= threshold * 0.5:
        return "medio"
    return "baixo"
