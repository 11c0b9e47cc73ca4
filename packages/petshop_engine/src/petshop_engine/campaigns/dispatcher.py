"""
Campaign Dispatch

Builds the recipient list and hands the campaign to the external workflow
engine with a single webhook POST. Delivery to individual recipients is the
workflow engine's job and is not tracked here.
"""

import logging
from datetime import datetime
from typing import Any
from uuid import UUID

import httpx
from sqlalchemy.orm import Session

from petshop_engine.campaigns.filters import filter_clients, format_phone_with_ddi
from petshop_engine.campaigns.form import CampaignForm, FormState, evaluate
from petshop_engine.contracts.types import MediaType
from petshop_engine.errors import BusinessRuleError, CampaignDispatchError, ValidationError
from petshop_engine.persistence.models import CampaignDispatch, Client
from petshop_engine.persistence.repo import PetshopRepository
from petshop_engine.segmentation.classifier import DEFAULT_INACTIVITY_DAYS

logger = logging.getLogger(__name__)

DISPATCH_SENT = "enviado_webhook"
DISPATCH_FAILED = "falhou"


class CampaignWebhookClient:
    """HTTP client for the workflow engine's campaign webhook."""

    def __init__(
        self,
        webhook_url: str,
        timeout: float = 30.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        self.webhook_url = webhook_url
        self.timeout = timeout
        self.transport = transport
        self._client: httpx.AsyncClient | None = None

    async def _get_client(self) -> httpx.AsyncClient:
        """Get or create HTTP client."""
        if self._client is None or self._client.is_closed:
            self._client = httpx.AsyncClient(
                timeout=self.timeout,
                headers={"Content-Type": "application/json"},
                transport=self.transport,
            )
        return self._client

    async def close(self) -> None:
        if self._client and not self._client.is_closed:
            await self._client.aclose()

    async def send(self, payload: dict[str, Any]) -> int:
        """
        POST the payload once. Any non-2xx status or network error raises
        CampaignDispatchError; nothing is retried.

        Returns:
            HTTP status code of the accepted request
        """
        client = await self._get_client()
        try:
            response = await client.post(self.webhook_url, json=payload)
        except httpx.RequestError as e:
            logger.error(f"Campaign webhook request failed: {e}")
            raise CampaignDispatchError(
                message="Não foi possível enviar a campanha. Verifique a URL do webhook e tente novamente.",
                code="HTTP_ERROR",
                details={"error": str(e)},
            )

        if not response.is_success:
            raise CampaignDispatchError(
                message=f"Webhook returned status {response.status_code}",
                code=str(response.status_code),
                details={"body": response.text[:500]},
                status_code=response.status_code,
            )
        return response.status_code


def build_payload(form: CampaignForm, recipients: list[Client], dias_inatividade: int) -> dict[str, Any]:
    return {
        "campanha": form.campanha,
        "mensagem": form.mensagem,
        "mediaType": form.media_type.value,
        "mediaUrl": form.media_url if form.media_type != MediaType.TEXT else "",
        "filtros": {
            "criterios": [c.value for c in form.criterios],
            "diasInatividade": dias_inatividade,
        },
        "clientes": [
            {
                "id": str(c.id),
                "nome": c.name,
                "telefone": format_phone_with_ddi(c.whatsapp),
                "email": c.email,
            }
            for c in recipients
        ],
        "totalClientes": len(recipients),
    }


class CampaignService:
    def __init__(self, db: Session, tenant_id: UUID, webhook: CampaignWebhookClient | None = None):
        self.db = db
        self.tenant_id = tenant_id
        self.webhook = webhook
        self.repo = PetshopRepository(db, tenant_id)

    def _days_for(self, form: CampaignForm) -> int:
        if form.dias_inatividade is not None:
            return form.dias_inatividade
        settings = self.repo.get_settings()
        return settings.dias_inatividade if settings else DEFAULT_INACTIVITY_DAYS

    def recipients(self, form: CampaignForm, now: datetime | None = None) -> list[Client]:
        return filter_clients(self.repo.list_clients(), form.criterios, self._days_for(form), now)

    def preview(self, form: CampaignForm, now: datetime | None = None) -> tuple[FormState, list[Client]]:
        recipients = self.recipients(form, now)
        return evaluate(form, len(recipients)), recipients

    async def dispatch(
        self,
        form: CampaignForm,
        sent_by: UUID | None = None,
        now: datetime | None = None,
    ) -> CampaignDispatch:
        """
        Send a campaign to the workflow engine.

        Raises:
            ValidationError: form cannot be sent (nothing is posted)
            CampaignDispatchError: webhook rejected the request or was unreachable
        """
        if self.webhook is None:
            raise BusinessRuleError("Webhook de campanhas não configurado")

        state, recipients = self.preview(form, now)
        if not state.can_send:
            raise ValidationError(
                state.hint or "Campanha inválida",
                code="campaign_invalid",
                details={"errors": state.errors},
            )

        dias = self._days_for(form)
        payload = build_payload(form, recipients, dias)
        record = dict(
            campanha=form.campanha,
            media_type=form.media_type.value,
            criterios=payload["filtros"]["criterios"],
            dias_inatividade=dias,
            total_clientes=len(recipients),
            sent_by=sent_by,
        )

        logger.info(
            "Sending campaign to webhook",
            extra={"tenant_id": str(self.tenant_id), "campanha": form.campanha, "total": len(recipients)},
        )
        try:
            await self.webhook.send(payload)
        except CampaignDispatchError as e:
            self.repo.create_dispatch(status=DISPATCH_FAILED, error_message=e.message, **record)
            self.repo.commit()
            raise

        dispatch = self.repo.create_dispatch(status=DISPATCH_SENT, **record)
        self.repo.commit()
        return dispatch
