"""
Sales Service

Point-of-sale sales. A paid sale for a known client counts as a purchase:
the client's last_purchase moves forward and a first purchase labels the
client primeira_compra, in the same transaction as the sale itself.
"""

import logging
from datetime import datetime
from decimal import Decimal
from uuid import UUID

from sqlalchemy.orm import Session

from petcore.clock import ensure_utc, utcnow

from petshop_engine.contracts.types import ChangeType, PaymentStatus
from petshop_engine.errors import NotFoundError, ValidationError
from petshop_engine.persistence.models import Sale
from petshop_engine.persistence.repo import PetshopRepository
from petshop_engine.realtime.notifier import ChangeNotifier
from petshop_engine.segmentation.service import SegmentationService

logger = logging.getLogger(__name__)

MAX_PAYMENT_METHOD_LENGTH = 20


class SalesService:
    def __init__(self, db: Session, tenant_id: UUID, notifier: ChangeNotifier | None = None):
        self.tenant_id = tenant_id
        self.repo = PetshopRepository(db, tenant_id, notifier=notifier)
        self.segmentation = SegmentationService(db, tenant_id, repo=self.repo)

    def register_sale(
        self,
        subtotal: Decimal,
        payment_method: str,
        client_id: UUID | None = None,
        discount: Decimal = Decimal("0"),
        paid: bool = True,
        sold_at: datetime | None = None,
    ) -> Sale:
        """
        Create a sale.

        Raises:
            ValidationError: negative amounts, a discount above the subtotal
                or a missing payment method
            NotFoundError: client_id does not belong to the tenant
        """
        subtotal = Decimal(str(subtotal))
        discount = Decimal(str(discount))
        if subtotal < 0 or discount < 0:
            raise ValidationError("Valores da venda não podem ser negativos", code="invalid_amount")
        if discount > subtotal:
            raise ValidationError("Desconto maior que o subtotal", code="invalid_discount")
        if not payment_method or len(payment_method) > MAX_PAYMENT_METHOD_LENGTH:
            raise ValidationError("Forma de pagamento inválida", code="invalid_payment_method")
        if client_id is not None and self.repo.get_client(client_id) is None:
            raise NotFoundError("Cliente não encontrado", details={"client_id": str(client_id)})

        sold_at = ensure_utc(sold_at) if sold_at else utcnow()
        sale = self.repo.create_sale(
            client_id=client_id,
            subtotal=subtotal,
            discount=discount,
            total_amount=subtotal - discount,
            payment_method=payment_method,
            payment_status=(PaymentStatus.PAGO if paid else PaymentStatus.PENDENTE).value,
            created_at=sold_at,
        )
        if paid and client_id is not None:
            self.segmentation.record_purchase(client_id, sold_at, commit=False)
        self.repo.commit()

        logger.info(
            "Sale registered",
            extra={
                "sale_id": str(sale.id),
                "tenant_id": str(self.tenant_id),
                "total_amount": str(sale.total_amount),
                "paid": paid,
            },
        )
        return sale

    def mark_sale_paid(self, sale_id: UUID, paid_at: datetime | None = None) -> Sale:
        """Settle a pending sale. Paying an already paid sale changes nothing."""
        sale = self.repo.get_sale(sale_id)
        if sale is None:
            raise NotFoundError("Venda não encontrada", details={"sale_id": str(sale_id)})
        if sale.payment_status == PaymentStatus.PAGO.value:
            return sale

        sale.payment_status = PaymentStatus.PAGO.value
        self.repo.record_change(Sale.__tablename__, ChangeType.UPDATE, sale.id)
        if sale.client_id is not None:
            self.segmentation.record_purchase(sale.client_id, paid_at or utcnow(), commit=False)
        self.repo.commit()
        return sale
