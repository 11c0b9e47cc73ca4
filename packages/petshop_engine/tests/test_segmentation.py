"""
Tests for client classification and the segmentation service.
"""

from datetime import timedelta
from decimal import Decimal
from uuid import uuid4

import pytest

from petcore.clock import utcnow

from petshop_engine.contracts.types import CampaignType, PaymentStatus
from petshop_engine.errors import NotFoundError, ValidationError
from petshop_engine.persistence.models import Client, Sale, TenantSettings
from petshop_engine.sales import SalesService
from petshop_engine.segmentation.classifier import classify, days_inactive, inactivity_level, validate_threshold
from petshop_engine.segmentation.service import SegmentationService


class TestClassifier:
    """Tests for the pure classification rules."""

    def test_never_purchased(self, now):
        """Test that a null last purchase is sem_compra."""
        assert classify(None, 40, now) == CampaignType.SEM_COMPRA

    def test_boundary_is_inactive(self, now):
        """Test that exactly threshold days is already inactive."""
        assert classify(now - timedelta(days=40), 40, now) == CampaignType.INATIVO

    def test_threshold_40(self, now):
        """Test 41 days inactive and 39 days active with a 40 day threshold."""
        assert classify(now - timedelta(days=41), 40, now) == CampaignType.INATIVO
        assert classify(now - timedelta(days=39), 40, now) == CampaignType.ATIVO

    def test_future_purchase_counts_as_zero_days(self, now):
        """Test that clock skew never produces negative days."""
        assert days_inactive(now + timedelta(hours=3), now) == 0

    def test_naive_datetimes_are_utc(self, now):
        """Test that naive values from the database are treated as UTC."""
        naive = (now - timedelta(days=10)).replace(tzinfo=None)
        assert days_inactive(naive, now) == 10

    @pytest.mark.parametrize("days", [0, 366, -5])
    def test_invalid_threshold(self, days):
        """Test thresholds outside [1, 365] are rejected."""
        with pytest.raises(ValidationError):
            validate_threshold(days)

    def test_inactivity_level(self):
        """Test badge levels."""
        assert inactivity_level(None, 40) == "nunca"
        assert inactivity_level(40, 40) == "alto"
        assert inactivity_level(20, 40) == "medio"
        assert inactivity_level(5, 40) == "baixo"


class TestSegmentationService:
    """Tests for threshold storage and recalculation."""

    def test_default_threshold(self, db, tenant):
        """Test the stored default is 40 days."""
        assert SegmentationService(db, tenant.id).get_threshold() == 40

    def test_invalid_threshold_not_written(self, db, tenant):
        """Test that an invalid threshold leaves the row untouched."""
        service = SegmentationService(db, tenant.id)

        with pytest.raises(ValidationError):
            service.save_threshold(400)

        assert db.query(TenantSettings).one().dias_inatividade == 40

    def test_save_threshold_recalculates(self, db, tenant, make_client, notifier):
        """Test that a shorter threshold flips active clients to inactive."""
        client = make_client(last_purchase=utcnow() - timedelta(days=20), tipo_campanha="ativo")
        service = SegmentationService(db, tenant.id, notifier=notifier)

        summary = service.save_threshold(15)

        assert summary.changed == 1
        db.refresh(client)
        assert client.tipo_campanha == "inativo"
        assert "tenant_settings" in notifier.tables()
        assert "clients" in notifier.tables()

    def test_recalculate_all(self, db, tenant, make_client, now):
        """Test each bucket after a bulk recalculation."""
        make_client(name="Nunca", last_purchase=None, tipo_campanha="ativo")
        make_client(name="Ativo", last_purchase=now - timedelta(days=5))
        make_client(name="Inativo", last_purchase=now - timedelta(days=60))
        make_client(name="Primeira", last_purchase=now - timedelta(days=90), tipo_campanha="primeira_compra")

        summary = SegmentationService(db, tenant.id).recalculate_all(now)

        labels = {c.name: c.tipo_campanha for c in db.query(Client).all()}
        assert labels == {
            "Nunca": "sem_compra",
            "Ativo": "ativo",
            "Inativo": "inativo",
            "Primeira": "primeira_compra",
        }
        assert summary.total == 4
        assert summary.counts["primeira_compra"] == 1

    def test_first_purchase_labels_client(self, db, tenant, make_client, now):
        """Test that the first purchase sets primeira_compra and last_purchase."""
        client = make_client()

        SegmentationService(db, tenant.id).record_purchase(client.id, now)

        db.refresh(client)
        assert client.tipo_campanha == "primeira_compra"
        assert client.last_purchase is not None

    def test_later_purchase_only_moves_date(self, db, tenant, make_client, now):
        """Test that repeat purchases leave the label for the next recalculation."""
        client = make_client(last_purchase=now - timedelta(days=60), tipo_campanha="inativo")

        SegmentationService(db, tenant.id).record_purchase(client.id, now)

        db.refresh(client)
        assert client.tipo_campanha == "inativo"
        assert days_inactive(client.last_purchase, now) == 0

    def test_inactive_clients_order(self, db, tenant, make_client, repo, now):
        """Test never-purchased first, then longest inactivity first."""
        old = make_client(name="Velho", last_purchase=now - timedelta(days=100))
        make_client(name="Recente", last_purchase=now - timedelta(days=3))
        make_client(name="Nunca")
        make_client(name="Medio", last_purchase=now - timedelta(days=45))
        repo.create_pet(old.id, "Rex")
        db.commit()

        rows = SegmentationService(db, tenant.id).inactive_clients(30, now)

        assert [r.nome_tutor for r in rows] == ["Nunca", "Velho", "Medio"]
        assert rows[0].to_dict()["dias_sem_compra"] == "Nunca comprou"
        assert rows[0].nome_pet == "Nenhum pet cadastrado"
        assert rows[1].nome_pet == "Rex"
        assert rows[1].dias_sem_compra == 100


class TestSalesPurchases:
    """Tests for sales feeding the purchase history."""

    def test_first_paid_sale_labels_client(self, db, tenant, make_client, notifier, now):
        """Test that a client's first paid sale sets primeira_compra with the sale."""
        client = make_client()

        sale = SalesService(db, tenant.id, notifier=notifier).register_sale(
            subtotal=Decimal("80.00"),
            discount=Decimal("5.00"),
            payment_method="pix",
            client_id=client.id,
            sold_at=now,
        )

        db.refresh(client)
        assert sale.total_amount == Decimal("75.00")
        assert sale.payment_status == PaymentStatus.PAGO.value
        assert client.tipo_campanha == "primeira_compra"
        assert days_inactive(client.last_purchase, now) == 0
        assert set(notifier.tables()) == {"sales", "clients"}

    def test_pending_sale_is_not_a_purchase(self, db, tenant, make_client, now):
        client = make_client()

        SalesService(db, tenant.id).register_sale(
            subtotal=Decimal("40"), payment_method="dinheiro", client_id=client.id, paid=False, sold_at=now
        )

        db.refresh(client)
        assert client.last_purchase is None
        assert client.tipo_campanha == CampaignType.SEM_COMPRA.value

    def test_paying_pending_sale_records_purchase(self, db, tenant, make_client, now):
        client = make_client(last_purchase=now - timedelta(days=90), tipo_campanha="inativo")
        service = SalesService(db, tenant.id)
        sale = service.register_sale(subtotal=Decimal("40"), payment_method="debito", client_id=client.id, paid=False)

        service.mark_sale_paid(sale.id, paid_at=now)

        db.refresh(client)
        assert sale.payment_status == PaymentStatus.PAGO.value
        assert client.tipo_campanha == "inativo"
        assert days_inactive(client.last_purchase, now) == 0

    def test_anonymous_sale(self, db, tenant):
        """Test that a walk-in sale without a client is stored as is."""
        sale = SalesService(db, tenant.id).register_sale(subtotal=Decimal("12.50"), payment_method="dinheiro")

        assert sale.client_id is None
        assert db.query(Client).count() == 0

    @pytest.mark.parametrize(
        "subtotal, discount, payment_method",
        [
            (Decimal("-1"), Decimal("0"), "pix"),
            (Decimal("10"), Decimal("11"), "pix"),
            (Decimal("10"), Decimal("0"), ""),
        ],
    )
    def test_invalid_sale(self, db, tenant, subtotal, discount, payment_method):
        with pytest.raises(ValidationError):
            SalesService(db, tenant.id).register_sale(subtotal=subtotal, discount=discount, payment_method=payment_method)

        assert db.query(Sale).count() == 0

    def test_unknown_client(self, db, tenant):
        with pytest.raises(NotFoundError):
            SalesService(db, tenant.id).register_sale(subtotal=Decimal("10"), payment_method="pix", client_id=uuid4())
