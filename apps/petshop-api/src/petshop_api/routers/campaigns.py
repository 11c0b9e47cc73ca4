"""Marketing campaigns: recipient preview and webhook dispatch."""

from typing import Optional

from fastapi import APIRouter, Depends
from pydantic import BaseModel, Field
from sqlalchemy.orm import Session

from petcore.db import get_db

from petshop_engine.campaigns.dispatcher import CampaignService, CampaignWebhookClient
from petshop_engine.campaigns.filters import format_phone_with_ddi
from petshop_engine.campaigns.form import CampaignForm
from petshop_engine.contracts.types import CampaignType, MediaType, ModuleKey
from petshop_engine.identity.session import SessionContext
from petshop_engine.persistence.repo import PetshopRepository

from petshop_api.deps import get_campaign_webhook, require_module

router = APIRouter(prefix="/campaigns", tags=["campaigns"])

require_marketing = require_module(ModuleKey.MARKETING)


class CampaignFilters(BaseModel):
    criterios: list[CampaignType] = Field(default_factory=list)
    diasInatividade: Optional[int] = None


class CampaignRequest(BaseModel):
    campanha: str = ""
    mensagem: str = ""
    mediaType: MediaType = MediaType.TEXT
    mediaUrl: str = ""
    filtros: CampaignFilters = Field(default_factory=CampaignFilters)

    def to_form(self) -> CampaignForm:
        return CampaignForm.from_dict(self.model_dump(mode="json"))


@router.post("/preview")
def preview(
    body: CampaignRequest,
    session: SessionContext = Depends(require_marketing),
    db: Session = Depends(get_db),
):
    """Form state plus the clients the campaign would reach."""
    service = CampaignService(db, session.tenant_id)
    state, recipients = service.preview(body.to_form())
    return {
        **state.to_dict(),
        "clientes": [
            {
                "id": str(c.id),
                "nome": c.name,
                "telefone": format_phone_with_ddi(c.whatsapp),
                "tipo_campanha": c.tipo_campanha,
            }
            for c in recipients
        ],
    }


@router.post("/send")
async def send(
    body: CampaignRequest,
    session: SessionContext = Depends(require_marketing),
    db: Session = Depends(get_db),
    webhook: CampaignWebhookClient = Depends(get_campaign_webhook),
):
    dispatch = await CampaignService(db, session.tenant_id, webhook).dispatch(body.to_form(), sent_by=session.user_id)
    return {
        "success": True,
        "message": f"Campanha enviada para {dispatch.total_clientes} cliente(s)",
        "dispatch_id": str(dispatch.id),
        "totalClientes": dispatch.total_clientes,
    }


@router.get("/dispatches")
def list_dispatches(
    session: SessionContext = Depends(require_marketing),
    db: Session = Depends(get_db),
):
    dispatches = PetshopRepository(db, session.tenant_id).list_dispatches()
    return {
        "dispatches": [
            {
                "id": str(d.id),
                "campanha": d.campanha,
                "media_type": d.media_type,
                "criterios": d.criterios,
                "dias_inatividade": d.dias_inatividade,
                "total_clientes": d.total_clientes,
                "status": d.status,
                "error_message": d.error_message,
                "created_at": d.created_at.isoformat(),
            }
            for d in dispatches
        ]
    }
