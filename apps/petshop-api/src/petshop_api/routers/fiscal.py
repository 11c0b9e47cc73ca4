"""NFC-e issuance, polling, cancellation and config checks."""

from decimal import Decimal
from typing import Optional
from uuid import UUID

from fastapi import APIRouter, Depends, Query
from fastapi.responses import JSONResponse
from pydantic import BaseModel, Field
from sqlalchemy.orm import Session

from petcore.db import get_db

from petshop_engine.contracts.types import ModuleKey
from petshop_engine.fiscal.focus_client import FocusNFeClient
from petshop_engine.fiscal.service import InvoiceItem, InvoiceService
from petshop_engine.identity.session import SessionContext
from petshop_engine.persistence.models import NotaFiscal
from petshop_engine.persistence.repo import PetshopRepository
from petshop_engine.realtime.notifier import ChangeNotifier

from petshop_api.deps import get_focus_client, get_notifier, require_module

router = APIRouter(prefix="/fiscal", tags=["fiscal"])

require_pdv = require_module(ModuleKey.PDV)


class ItemRequest(BaseModel):
    description: str
    quantity: Decimal = Field(gt=0)
    unit_price: Decimal = Field(ge=0)
    total_price: Decimal = Field(ge=0)
    ncm: Optional[str] = None
    cfop: Optional[str] = None


class EmitirNfceRequest(BaseModel):
    company_id: UUID
    sale_id: UUID
    client_id: Optional[UUID] = None
    items: list[ItemRequest]
    payment_method: str
    total_amount: Decimal = Field(ge=0)


class CancelarRequest(BaseModel):
    justificativa: str


def serialize_nota(nota: NotaFiscal) -> dict:
    return {
        "id": str(nota.id),
        "company_id": str(nota.company_id),
        "sale_id": str(nota.sale_id) if nota.sale_id else None,
        "tipo": nota.tipo,
        "numero": nota.numero,
        "serie": nota.serie,
        "chave": nota.chave,
        "status": nota.status,
        "referencia_focus": nota.referencia_focus,
        "pdf_url": nota.pdf_url,
        "erro_sefaz": nota.erro_sefaz,
        "ambiente": nota.ambiente,
        "created_at": nota.created_at.isoformat(),
    }


def get_invoice_service(
    session: SessionContext = Depends(require_pdv),
    db: Session = Depends(get_db),
    focus: FocusNFeClient = Depends(get_focus_client),
    notifier: Optional[ChangeNotifier] = Depends(get_notifier),
) -> InvoiceService:
    return InvoiceService(db, session.tenant_id, focus, notifier=notifier)


@router.post("/nfce")
async def emitir_nfce(body: EmitirNfceRequest, service: InvoiceService = Depends(get_invoice_service)):
    result = await service.emitir_nfce(
        company_id=body.company_id,
        sale_id=body.sale_id,
        client_id=body.client_id,
        items=[InvoiceItem(**item.model_dump()) for item in body.items],
        payment_method=body.payment_method,
        total_amount=body.total_amount,
    )
    return JSONResponse(status_code=200 if result.success else 422, content=result.to_dict())


@router.get("/notas")
def list_notas(
    status: Optional[str] = Query(None),
    limit: int = Query(100, ge=1, le=500),
    session: SessionContext = Depends(require_pdv),
    db: Session = Depends(get_db),
):
    notas = PetshopRepository(db, session.tenant_id).list_notas(status=status, limit=limit)
    return {"notas": [serialize_nota(n) for n in notas]}


@router.post("/notas/{nota_id}/consultar")
async def consultar(nota_id: UUID, service: InvoiceService = Depends(get_invoice_service)):
    return serialize_nota(await service.consultar(nota_id))


@router.post("/notas/{nota_id}/cancelar")
async def cancelar(
    nota_id: UUID,
    body: CancelarRequest,
    service: InvoiceService = Depends(get_invoice_service),
):
    result = await service.cancelar(nota_id, body.justificativa)
    return JSONResponse(status_code=200 if result.success else 502, content=result.to_dict())


@router.get("/companies/{company_id}/validate")
async def validar_config(company_id: UUID, service: InvoiceService = Depends(get_invoice_service)):
    return (await service.validar_config(company_id)).to_dict()
