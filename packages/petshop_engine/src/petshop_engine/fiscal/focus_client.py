"""
Focus NFe API client.

Thin async wrapper over the Focus NFe v2 REST API. Authentication is HTTP
Basic with the API key as username and an empty password. The base URL
depends on the company's fiscal environment.

Documentation: https://focusnfe.com.br/doc/
"""

import logging
from dataclasses import dataclass, field
from typing import Any

import httpx

from petshop_engine.contracts.types import FiscalEnvironment, InvoiceStatus
from petshop_engine.errors import TransportError

logger = logging.getLogger(__name__)

BASE_URLS = {
    FiscalEnvironment.HOMOLOGACAO: "https://homologacao.focusnfe.com.br/v2",
    FiscalEnvironment.PRODUCAO: "https://api.focusnfe.com.br/v2",
}

FOCUS_STATUS_MAP = {
    "autorizado": InvoiceStatus.AUTORIZADA,
    "cancelado": InvoiceStatus.CANCELADA,
    "erro_autorizacao": InvoiceStatus.REJEITADA,
    "processando_autorizacao": InvoiceStatus.PROCESSANDO,
}

PAYMENT_METHOD_CODES = {
    "dinheiro": "01",
    "credito": "03",
    "debito": "04",
    "pix": "17",
}

FOCUS_ERROR_MESSAGES = {
    "cnpj_emitente_invalido": "CNPJ da empresa inválido",
    "inscricao_estadual_invalida": "Inscrição estadual inválida",
    "certificado_invalido": "Certificado digital inválido ou expirado",
    "duplicidade": "Nota fiscal duplicada",
    "rejeicao_schema": "Dados da nota fiscal inválidos",
}


def map_payment_method(method: str) -> str:
    return PAYMENT_METHOD_CODES.get(method, "99")  # 99 = outros


def map_focus_status(focus_status: str | None) -> InvoiceStatus | None:
    if not focus_status:
        return None
    return FOCUS_STATUS_MAP.get(focus_status)


def translate_focus_error(data: dict[str, Any]) -> str:
    """User-facing message for a Focus NFe error body."""
    erros = data.get("erros")
    if isinstance(erros, list) and erros:
        messages = []
        for err in erros:
            code = err.get("codigo") or err.get("code")
            messages.append(
                FOCUS_ERROR_MESSAGES.get(code) or err.get("mensagem") or err.get("message") or "Erro desconhecido"
            )
        return "; ".join(messages)

    if data.get("mensagem"):
        return data["mensagem"]

    return "Erro ao processar nota fiscal. Tente novamente."


@dataclass
class FocusResponse:
    status_code: int
    data: dict[str, Any] = field(default_factory=dict)

    @property
    def ok(self) -> bool:
        return 200 <= self.status_code < 300


class FocusNFeClient:
    def __init__(
        self,
        api_key: str,
        timeout: float = 30.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        self.api_key = api_key
        self.timeout = timeout
        self.transport = transport
        self._client: httpx.AsyncClient | None = None

    async def _get_client(self) -> httpx.AsyncClient:
        """Get or create HTTP client."""
        if self._client is None or self._client.is_closed:
            self._client = httpx.AsyncClient(
                timeout=self.timeout,
                auth=httpx.BasicAuth(self.api_key, ""),
                transport=self.transport,
            )
        return self._client

    async def close(self) -> None:
        if self._client and not self._client.is_closed:
            await self._client.aclose()

    async def _make_request(
        self,
        method: str,
        ambiente: FiscalEnvironment,
        endpoint: str,
        params: dict[str, Any] | None = None,
        json_data: dict[str, Any] | None = None,
    ) -> FocusResponse:
        """Send a request. Error statuses are returned, only network failures raise."""
        client = await self._get_client()
        url = f"{BASE_URLS[ambiente]}{endpoint}"

        try:
            response = await client.request(method, url, params=params, json=json_data)
        except httpx.RequestError as e:
            logger.error(f"Focus NFe request failed: {e}")
            raise TransportError(
                message="Não foi possível conectar ao Focus NFe",
                code="HTTP_ERROR",
                details={"error": str(e)},
            )

        try:
            data = response.json()
        except ValueError:
            data = {}
        if not isinstance(data, dict):
            data = {"items": data}

        logger.info(
            "Focus NFe response",
            extra={"method": method, "endpoint": endpoint, "status_code": response.status_code},
        )
        return FocusResponse(status_code=response.status_code, data=data)

    async def emitir_nfce(self, ambiente: FiscalEnvironment, referencia: str, payload: dict[str, Any]) -> FocusResponse:
        return await self._make_request("POST", ambiente, "/nfce", params={"ref": referencia}, json_data=payload)

    async def consultar_nfce(self, ambiente: FiscalEnvironment, referencia: str) -> FocusResponse:
        return await self._make_request("GET", ambiente, f"/nfce/{referencia}")

    async def cancelar_nfce(self, ambiente: FiscalEnvironment, referencia: str, justificativa: str) -> FocusResponse:
        return await self._make_request(
            "DELETE", ambiente, f"/nfce/{referencia}", json_data={"justificativa": justificativa}
        )

    async def ping(self, ambiente: FiscalEnvironment) -> FocusResponse:
        """Authenticated GET used to check the API key."""
        return await self._make_request("GET", ambiente, "/nfce")
