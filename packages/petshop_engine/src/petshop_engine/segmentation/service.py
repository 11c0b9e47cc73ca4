"""
Segmentation Service

Stores the tenant's inactivity threshold and keeps clients.tipo_campanha up
to date. Classifications are eventually consistent: purchases only touch
last_purchase, and the bulk recalculation reclassifies everyone else.
"""

import logging
from dataclasses import dataclass, field
from datetime import datetime
from uuid import UUID

from sqlalchemy.orm import Session

from petcore.clock import ensure_utc, utcnow

from petshop_engine.contracts.types import CampaignType, ChangeType
from petshop_engine.errors import NotFoundError
from petshop_engine.persistence.models import Client
from petshop_engine.persistence.repo import PetshopRepository
from petshop_engine.realtime.notifier import ChangeNotifier
from petshop_engine.segmentation.classifier import (
    DEFAULT_INACTIVITY_DAYS,
    classify,
    days_inactive,
    validate_threshold,
)

logger = logging.getLogger(__name__)


@dataclass
class RecalculationSummary:
    total: int = 0
    changed: int = 0
    counts: dict[str, int] = field(default_factory=lambda: {t.value: 0 for t in CampaignType})

    def to_dict(self) -> dict:
        return {"total": self.total, "changed": self.changed, "counts": dict(self.counts)}


@dataclass
class InactiveClientRow:
    client_id: UUID
    nome_tutor: str
    telefone_tutor: str
    email: str | None
    nome_pet: str
    ultima_data_compra: str | None
    dias_sem_compra: int | None

    def to_dict(self) -> dict:
        return {
            "id": str(self.client_id),
            "nome_tutor": self.nome_tutor,
            "telefone_tutor": self.telefone_tutor,
            "email": self.email,
            "nome_pet": self.nome_pet,
            "ultima_data_compra": self.ultima_data_compra,
            "dias_sem_compra": "Nunca comprou" if self.dias_sem_compra is None else self.dias_sem_compra,
        }


class SegmentationService:
    def __init__(
        self,
        db: Session,
        tenant_id: UUID,
        notifier: ChangeNotifier | None = None,
        repo: PetshopRepository | None = None,
    ):
        self.db = db
        self.tenant_id = tenant_id
        self.repo = repo or PetshopRepository(db, tenant_id, notifier=notifier)

    # =========================================================================
    # Threshold
    # =========================================================================

    def get_threshold(self) -> int:
        settings = self.repo.get_settings()
        if settings is None or not settings.dias_inatividade:
            return DEFAULT_INACTIVITY_DAYS
        return settings.dias_inatividade

    def save_threshold(self, days: int, recalculate: bool = True) -> RecalculationSummary | None:
        """
        Persist a new inactivity threshold and reclassify clients.

        Raises ValidationError before touching the database when days is
        outside [1, 365].
        """
        validate_threshold(days)

        settings = self.repo.get_settings()
        if settings is None:
            raise NotFoundError("Configurações do tenant não encontradas")

        settings.dias_inatividade = days
        self.repo.record_change("tenant_settings", ChangeType.UPDATE, settings.id)
        self.repo.commit()
        logger.info(
            "Inactivity threshold updated",
            extra={"tenant_id": str(self.tenant_id), "dias_inatividade": days},
        )

        if not recalculate:
            return None
        return self.recalculate_all()

    # =========================================================================
    # Classification
    # =========================================================================

    def recalculate_all(self, now: datetime | None = None) -> RecalculationSummary:
        """
        Recompute tipo_campanha for every client of the tenant.

        Clients labelled primeira_compra keep their label.
        """
        threshold = self.get_threshold()
        now = now or utcnow()
        summary = RecalculationSummary()

        for client in self.repo.list_clients():
            summary.total += 1
            if client.tipo_campanha == CampaignType.PRIMEIRA_COMPRA.value:
                summary.counts[CampaignType.PRIMEIRA_COMPRA.value] += 1
                continue

            bucket = classify(client.last_purchase, threshold, now)
            summary.counts[bucket.value] += 1
            if client.tipo_campanha != bucket.value:
                client.tipo_campanha = bucket.value
                summary.changed += 1

        if summary.changed:
            self.repo.record_change(Client.__tablename__, ChangeType.UPDATE)
        self.repo.commit()

        logger.info(
            "Client campaigns recalculated",
            extra={"tenant_id": str(self.tenant_id), "threshold": threshold, **summary.to_dict()},
        )
        return summary

    def record_purchase(self, client_id: UUID, paid_at: datetime | None = None, commit: bool = True) -> Client:
        """
        Register a paid sale, appointment or stay for a client.

        The first purchase labels the client primeira_compra. Later purchases
        only move last_purchase forward; the label waits for the next
        recalculation.

        With commit=False the caller owns the transaction and must commit
        through the same repository.
        """
        client = self.repo.get_client(client_id)
        if client is None:
            raise NotFoundError("Cliente não encontrado", details={"client_id": str(client_id)})

        paid_at = ensure_utc(paid_at) if paid_at else utcnow()
        if client.last_purchase is None:
            client.tipo_campanha = CampaignType.PRIMEIRA_COMPRA.value
            client.last_purchase = paid_at
        elif paid_at > ensure_utc(client.last_purchase):
            client.last_purchase = paid_at

        self.repo.record_change(Client.__tablename__, ChangeType.UPDATE, client.id)
        if commit:
            self.repo.commit()
        return client

    def bucket_counts(self) -> dict[str, int]:
        """Client count per stored tipo_campanha."""
        counts = {t.value: 0 for t in CampaignType}
        for client in self.repo.list_clients():
            if client.tipo_campanha in counts:
                counts[client.tipo_campanha] += 1
        return counts

    # =========================================================================
    # Inactive list
    # =========================================================================

    def inactive_clients(self, period_days: int, now: datetime | None = None) -> list[InactiveClientRow]:
        """
        Clients without a purchase for at least period_days, plus those that
        never bought. Never-purchased first, then longest inactivity first.
        """
        now = now or utcnow()
        clients = self.repo.list_clients()
        pets_by_client: dict[UUID, list[str]] = {}
        for pet in self.repo.get_pets_for_clients([c.id for c in clients]):
            pets_by_client.setdefault(pet.client_id, []).append(pet.name)

        rows = []
        for client in clients:
            days = days_inactive(client.last_purchase, now)
            if days is not None and days < period_days:
                continue
            last = ensure_utc(client.last_purchase)
            rows.append(
                InactiveClientRow(
                    client_id=client.id,
                    nome_tutor=client.name,
                    telefone_tutor=client.whatsapp,
                    email=client.email,
                    nome_pet=", ".join(pets_by_client.get(client.id, [])) or "Nenhum pet cadastrado",
                    ultima_data_compra=last.strftime("%Y-%m-%d") if last else None,
                    dias_sem_compra=days,
                )
            )

        rows.sort(key=lambda r: (r.dias_sem_compra is not None, -(r.dias_sem_compra or 0)))
        return rows
