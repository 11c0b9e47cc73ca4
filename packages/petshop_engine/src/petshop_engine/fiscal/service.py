"""
Invoice Service

NFC-e issuance, polling, cancellation and configuration checks.

Status transitions come only from provider responses:
- processando -> autorizada | rejeitada   (via consultar)
- autorizada -> cancelada                 (via cancelar)

The invoice number is reserved and committed before the provider call, so a
rejected submission still consumes its number.
"""

import logging
import time
from dataclasses import dataclass, field
from decimal import Decimal
from typing import Any
from uuid import UUID

from sqlalchemy.orm import Session

from petshop_engine.contracts.types import FiscalEnvironment, InvoiceKind, InvoiceStatus
from petshop_engine.errors import BusinessRuleError, NotFoundError, TransportError, ValidationError
from petshop_engine.fiscal.focus_client import (
    FocusNFeClient,
    map_focus_status,
    map_payment_method,
    translate_focus_error,
)
from petshop_engine.persistence.models import Company, FiscalConfig, NotaFiscal
from petshop_engine.persistence.repo import PetshopRepository
from petshop_engine.realtime.notifier import ChangeNotifier

logger = logging.getLogger(__name__)

TIPO_NOTA_DESATIVADO = "desativado"
MIN_JUSTIFICATIVA = 15
MAX_JUSTIFICATIVA = 255
MAX_DESCRICAO = 120
DEFAULT_NCM = "96031000"
DEFAULT_CFOP = "5933"


@dataclass
class InvoiceItem:
    description: str
    quantity: Decimal
    unit_price: Decimal
    total_price: Decimal
    ncm: str | None = None
    cfop: str | None = None

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "InvoiceItem":
        return cls(
            description=data["description"],
            quantity=Decimal(str(data["quantity"])),
            unit_price=Decimal(str(data["unit_price"])),
            total_price=Decimal(str(data["total_price"])),
            ncm=data.get("ncm"),
            cfop=data.get("cfop"),
        )


@dataclass
class InvoiceResult:
    success: bool
    message: str | None = None
    error: str | None = None
    nota_id: UUID | None = None
    referencia: str | None = None
    numero: int | None = None
    skipped: bool = False

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {"success": self.success}
        for key in ("message", "error", "referencia", "numero"):
            value = getattr(self, key)
            if value is not None:
                data[key] = value
        if self.nota_id:
            data["nota_id"] = str(self.nota_id)
        if self.skipped:
            data["skipped"] = True
        return data


@dataclass
class ConfigValidation:
    success: bool
    issues: list[str] = field(default_factory=list)
    config: dict[str, Any] | None = None

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {"success": self.success, "issues": list(self.issues)}
        if self.config is not None:
            data["config"] = self.config
        return data


def _money(value: Decimal) -> str:
    return f"{value:.2f}"


class InvoiceService:
    def __init__(
        self,
        db: Session,
        tenant_id: UUID,
        focus: FocusNFeClient,
        notifier: ChangeNotifier | None = None,
    ):
        self.db = db
        self.tenant_id = tenant_id
        self.focus = focus
        self.repo = PetshopRepository(db, tenant_id, notifier=notifier)

    def _load_company(self, company_id: UUID, for_update: bool = False) -> tuple[FiscalConfig, Company]:
        config = self.repo.get_fiscal_config(company_id, for_update=for_update)
        if config is None:
            raise NotFoundError("Configuração fiscal não encontrada para esta empresa")
        company = self.repo.get_company(company_id)
        if company is None:
            raise NotFoundError("Empresa não encontrada")
        return config, company

    def _load_nota(self, nota_id: UUID) -> NotaFiscal:
        nota = self.repo.get_nota(nota_id)
        if nota is None:
            raise NotFoundError("Nota fiscal não encontrada")
        return nota

    # =========================================================================
    # Emission
    # =========================================================================

    def _reserve_number(self, company_id: UUID) -> tuple[FiscalConfig, Company, int]:
        config, company = self._load_company(company_id, for_update=True)
        numero = (config.numero_atual or 0) + 1
        config.numero_atual = numero
        self.repo.commit()
        return config, company, numero

    def build_nfce_payload(
        self,
        config: FiscalConfig,
        company: Company,
        numero: int,
        items: list[InvoiceItem],
        payment_method: str,
        total_amount: Decimal,
        client_name: str | None = None,
        client_cpf: str | None = None,
    ) -> dict[str, Any]:
        nfce_items = [
            {
                "numero_item": idx,
                "codigo_produto": f"SERV{idx}",
                "descricao": item.description[:MAX_DESCRICAO],
                "quantidade_comercial": f"{item.quantity:.4f}",
                "valor_unitario_comercial": _money(item.unit_price),
                "valor_bruto": _money(item.total_price),
                "unidade_comercial": "UN",
                "ncm": item.ncm or DEFAULT_NCM,
                "cfop": item.cfop or DEFAULT_CFOP,
                "icms_situacao_tributaria": config.csosn_servicos or "102",
                "icms_origem": "0",
            }
            for idx, item in enumerate(items, start=1)
        ]

        return {
            "natureza_operacao": "VENDA DE SERVICOS",
            "forma_pagamento": "0",
            "tipo_documento": "1",
            "local_destino": "1",
            "finalidade_emissao": "1",
            "consumidor_final": "1",
            "presenca_comprador": "1",
            "cnpj_emitente": company.cnpj,
            "nome_emitente": company.razao_social,
            "nome_fantasia_emitente": company.nome_fantasia,
            "logradouro_emitente": company.logradouro,
            "numero_emitente": company.numero,
            "bairro_emitente": company.bairro,
            "municipio_emitente": company.municipio,
            "uf_emitente": company.uf,
            "cep_emitente": company.cep,
            "inscricao_estadual_emitente": company.inscricao_estadual,
            "regime_tributario_emitente": config.regime_tributario or "1",
            "cpf_destinatario": client_cpf,
            "nome_destinatario": client_name or "CONSUMIDOR FINAL",
            "serie": config.serie or "1",
            "numero": str(numero),
            "items": nfce_items,
            "formas_pagamento": [
                {
                    "forma_pagamento": map_payment_method(payment_method),
                    "valor_pagamento": _money(total_amount),
                }
            ],
            "valor_produtos": _money(total_amount),
            "valor_total": _money(total_amount),
        }

    async def emitir_nfce(
        self,
        company_id: UUID,
        sale_id: UUID,
        items: list[InvoiceItem],
        payment_method: str,
        total_amount: Decimal,
        client_id: UUID | None = None,
    ) -> InvoiceResult:
        """
        Submit an NFC-e for a sale.

        Returns a skipped result when emission is disabled for the company.
        A provider rejection is stored as a rejeitada note and returned with
        success=False; network failures also store the note and raise.
        """
        if not items:
            raise ValidationError("A nota precisa de pelo menos um item", code="no_items")

        config, _company = self._load_company(company_id)
        if config.tipo_nota == TIPO_NOTA_DESATIVADO:
            logger.info("Fiscal emission disabled", extra={"company_id": str(company_id)})
            return InvoiceResult(success=True, message="Emissão fiscal desativada", skipped=True)

        config, company, numero = self._reserve_number(company_id)
        client = self.repo.get_client(client_id) if client_id else None
        ambiente = FiscalEnvironment(config.ambiente)
        serie = config.serie or "1"
        referencia = f"REF_{sale_id}_{int(time.time() * 1000)}"

        payload = self.build_nfce_payload(
            config,
            company,
            numero,
            items,
            payment_method,
            total_amount,
            client_name=client.name if client else None,
            client_cpf=client.cpf if client else None,
        )

        nota_fields = dict(
            company_id=company_id,
            sale_id=sale_id,
            tipo=InvoiceKind.NFCE.value,
            numero=numero,
            serie=serie,
            referencia_focus=referencia,
            ambiente=ambiente.value,
        )

        try:
            response = await self.focus.emitir_nfce(ambiente, referencia, payload)
        except TransportError as e:
            nota = self.repo.create_nota(status=InvoiceStatus.REJEITADA.value, erro_sefaz=e.message, **nota_fields)
            self.repo.commit()
            e.details["nota_id"] = str(nota.id)
            raise

        if not response.ok:
            error = translate_focus_error(response.data)
            nota = self.repo.create_nota(status=InvoiceStatus.REJEITADA.value, erro_sefaz=error, **nota_fields)
            self.repo.commit()
            logger.warning(
                "NFC-e rejected",
                extra={"nota_id": str(nota.id), "numero": numero, "status_code": response.status_code},
            )
            return InvoiceResult(success=False, error=error, nota_id=nota.id, numero=numero)

        nota = self.repo.create_nota(
            status=InvoiceStatus.PROCESSANDO.value,
            chave=response.data.get("chave_nfe"),
            **nota_fields,
        )
        self.repo.commit()
        logger.info("NFC-e submitted", extra={"nota_id": str(nota.id), "referencia": referencia})
        return InvoiceResult(
            success=True,
            message="NFC-e enviada para processamento",
            nota_id=nota.id,
            referencia=referencia,
            numero=numero,
        )

    # =========================================================================
    # Polling & cancellation
    # =========================================================================

    async def consultar(self, nota_id: UUID) -> NotaFiscal:
        """Refresh a note from the provider, overwriting status, chave, xml and pdf_url."""
        nota = self._load_nota(nota_id)
        if not nota.referencia_focus:
            raise BusinessRuleError("Nota fiscal sem referência no provedor")

        response = await self.focus.consultar_nfce(FiscalEnvironment(nota.ambiente), nota.referencia_focus)
        if not response.ok:
            raise TransportError(
                message=translate_focus_error(response.data),
                code=str(response.status_code),
                details=response.data,
                status_code=response.status_code,
            )

        data = response.data
        new_status = map_focus_status(data.get("status"))
        if new_status is None:
            logger.warning("Unknown Focus NFe status", extra={"nota_id": str(nota.id), "status": data.get("status")})
            new_status = InvoiceStatus(nota.status)

        self.repo.update_nota(
            nota,
            status=new_status.value,
            chave=data.get("chave_nfe") or nota.chave,
            xml=data.get("caminho_xml_nota_fiscal") or nota.xml,
            pdf_url=data.get("caminho_danfe") or nota.pdf_url,
            erro_sefaz=data.get("mensagem_sefaz") if new_status == InvoiceStatus.REJEITADA else nota.erro_sefaz,
        )
        self.repo.commit()
        return nota

    async def cancelar(self, nota_id: UUID, justificativa: str) -> InvoiceResult:
        """
        Cancel an authorized note.

        The justification length and the current status are checked locally;
        neither failure reaches the provider.
        """
        justificativa = (justificativa or "").strip()
        if len(justificativa) < MIN_JUSTIFICATIVA:
            raise ValidationError(
                f"A justificativa deve ter pelo menos {MIN_JUSTIFICATIVA} caracteres",
                code="justificativa_curta",
            )
        if len(justificativa) > MAX_JUSTIFICATIVA:
            raise ValidationError(
                f"A justificativa deve ter no máximo {MAX_JUSTIFICATIVA} caracteres",
                code="justificativa_longa",
            )

        nota = self._load_nota(nota_id)
        if nota.status != InvoiceStatus.AUTORIZADA.value:
            raise BusinessRuleError(
                "Somente notas autorizadas podem ser canceladas",
                code="status_invalido",
                details={"status": nota.status},
            )

        response = await self.focus.cancelar_nfce(FiscalEnvironment(nota.ambiente), nota.referencia_focus, justificativa)
        if not response.ok:
            error = translate_focus_error(response.data)
            self.repo.update_nota(nota, erro_sefaz=error)
            self.repo.commit()
            return InvoiceResult(success=False, error=error, nota_id=nota.id)

        self.repo.update_nota(nota, status=InvoiceStatus.CANCELADA.value)
        self.repo.commit()
        logger.info("NFC-e cancelled", extra={"nota_id": str(nota.id)})
        return InvoiceResult(success=True, message="Nota cancelada com sucesso", nota_id=nota.id)

    # =========================================================================
    # Configuration
    # =========================================================================

    async def validar_config(self, company_id: UUID) -> ConfigValidation:
        try:
            config, company = self._load_company(company_id)
        except NotFoundError as e:
            return ConfigValidation(success=False, issues=[e.message])

        issues = []
        if not company.cnpj:
            issues.append("CNPJ da empresa não configurado")
        if not company.razao_social:
            issues.append("Razão social não configurada")
        if not company.inscricao_estadual:
            issues.append("Inscrição estadual não configurada")
        if not company.logradouro:
            issues.append("Endereço incompleto")
        if not company.uf:
            issues.append("UF não configurada")
        if not config.serie:
            issues.append("Série da nota não configurada")

        try:
            response = await self.focus.ping(FiscalEnvironment(config.ambiente))
            if response.status_code == 401:
                issues.append("Chave da API Focus NFe inválida")
        except TransportError:
            issues.append("Não foi possível conectar ao Focus NFe")

        return ConfigValidation(
            success=not issues,
            issues=issues,
            config={
                "tipo_nota": config.tipo_nota,
                "ambiente": config.ambiente,
                "emitir_automatico": config.emitir_automatico,
            },
        )
