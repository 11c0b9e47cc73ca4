"""
Recipient filtering.

A client is included when it matches ANY selected criterion. The
primeira_compra bucket comes from the stored label; the other three are
computed at read time from last_purchase and the requested day count.
"""

import re
from datetime import datetime
from typing import Iterable

from petshop_engine.contracts.types import CampaignType
from petshop_engine.persistence.models import Client
from petshop_engine.segmentation.classifier import classify

_NON_DIGITS = re.compile(r"\D")


def effective_bucket(client: Client, dias_inatividade: int, now: datetime | None = None) -> CampaignType:
    if client.tipo_campanha == CampaignType.PRIMEIRA_COMPRA.value:
        return CampaignType.PRIMEIRA_COMPRA
    return classify(client.last_purchase, dias_inatividade, now)


def filter_clients(
    clients: Iterable[Client],
    criteria: Iterable[CampaignType],
    dias_inatividade: int,
    now: datetime | None = None,
) -> list[Client]:
    """Union of the clients matching each criterion, in input order."""
    selected = set(criteria)
    if not selected:
        return []
    return [c for c in clients if effective_bucket(c, dias_inatividade, now) in selected]


def format_phone_with_ddi(phone: str) -> str:
    """Digits only, prefixed with the Brazilian country code when missing."""
    digits = _NON_DIGITS.sub("", phone or "")
    if not digits.startswith("55"):
        return f"55{digits}"
    return digits
