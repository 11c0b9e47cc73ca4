"""
Tests for NFC-e issuance, polling, cancellation and config checks.

Focus NFe is replaced by an httpx.MockTransport; each test records the
requests it receives.
"""

import json
from decimal import Decimal
from uuid import uuid4

import httpx
import pytest

from petshop_engine.contracts.types import FiscalEnvironment, InvoiceStatus
from petshop_engine.errors import BusinessRuleError, NotFoundError, TransportError, ValidationError
from petshop_engine.fiscal import FocusNFeClient, InvoiceItem, InvoiceService
from petshop_engine.fiscal.focus_client import map_focus_status, map_payment_method, translate_focus_error
from petshop_engine.persistence.models import Company, FiscalConfig, NotaFiscal


@pytest.fixture
def company(db, tenant):
    company = Company(
        tenant_id=tenant.id,
        cnpj="12.345.678/0001-90",
        razao_social="Pet Feliz LTDA",
        nome_fantasia="Pet Feliz",
        inscricao_estadual="123456789",
        logradouro="Rua das Flores",
        numero="100",
        bairro="Centro",
        municipio="São Paulo",
        uf="SP",
        cep="01000-000",
    )
    db.add(company)
    db.flush()
    db.add(FiscalConfig(tenant_id=tenant.id, company_id=company.id, serie="1", numero_atual=41))
    db.commit()
    return company


@pytest.fixture
def items():
    return [
        InvoiceItem(
            description="Banho e tosa",
            quantity=Decimal("1"),
            unit_price=Decimal("80"),
            total_price=Decimal("80"),
        )
    ]


@pytest.fixture
def focus_factory():
    """Factory: (client, recorded requests) answering with the given handler."""

    def factory(handler):
        requests = []

        def recording(request):
            requests.append(request)
            return handler(request)

        client = FocusNFeClient(api_key="test-key", transport=httpx.MockTransport(recording))
        return client, requests

    return factory


def fiscal_config(db, company):
    return db.query(FiscalConfig).filter(FiscalConfig.company_id == company.id).one()


class TestFocusHelpers:
    def test_payment_codes(self):
        assert map_payment_method("pix") == "17"
        assert map_payment_method("dinheiro") == "01"
        assert map_payment_method("vale") == "99"

    def test_status_mapping(self):
        assert map_focus_status("autorizado") == InvoiceStatus.AUTORIZADA
        assert map_focus_status("erro_autorizacao") == InvoiceStatus.REJEITADA
        assert map_focus_status("desconhecido") is None
        assert map_focus_status(None) is None

    def test_translate_known_error_code(self):
        data = {"erros": [{"codigo": "certificado_invalido", "mensagem": "cert"}]}
        assert translate_focus_error(data) == "Certificado digital inválido ou expirado"

    def test_translate_falls_back_to_message(self):
        assert translate_focus_error({"mensagem": "Rejeição 999"}) == "Rejeição 999"
        assert translate_focus_error({}) == "Erro ao processar nota fiscal. Tente novamente."


class TestEmitirNfce:
    async def test_submits_and_reserves_number(self, db, tenant, company, items, notifier, focus_factory):
        """Accepted submission stores a processando note with the next number."""
        focus, requests = focus_factory(lambda request: httpx.Response(202, json={"status": "processando_autorizacao"}))
        service = InvoiceService(db, tenant.id, focus, notifier=notifier)
        sale_id = uuid4()

        result = await service.emitir_nfce(company.id, sale_id, items, "pix", Decimal("80"))

        assert result.success
        assert result.numero == 42
        assert result.referencia.startswith(f"REF_{sale_id}_")
        assert fiscal_config(db, company).numero_atual == 42

        nota = db.query(NotaFiscal).filter(NotaFiscal.id == result.nota_id).one()
        assert nota.status == InvoiceStatus.PROCESSANDO.value
        assert nota.numero == 42
        assert nota.ambiente == FiscalEnvironment.HOMOLOGACAO.value

        request = requests[0]
        assert request.method == "POST"
        assert request.url.host == "homologacao.focusnfe.com.br"
        assert request.url.params["ref"] == result.referencia
        body = json.loads(request.content)
        assert body["numero"] == "42"
        assert body["nome_destinatario"] == "CONSUMIDOR FINAL"
        assert body["formas_pagamento"][0] == {"forma_pagamento": "17", "valor_pagamento": "80.00"}
        assert body["items"][0]["ncm"] == "96031000"
        assert "notas_fiscais" in notifier.tables()

    async def test_rejection_consumes_number(self, db, tenant, company, items, focus_factory):
        """A rejected submission is stored and the next emission gets a new number."""
        focus, _ = focus_factory(
            lambda request: httpx.Response(422, json={"erros": [{"codigo": "duplicidade"}]})
        )
        service = InvoiceService(db, tenant.id, focus)

        first = await service.emitir_nfce(company.id, uuid4(), items, "dinheiro", Decimal("80"))
        second = await service.emitir_nfce(company.id, uuid4(), items, "dinheiro", Decimal("80"))

        assert not first.success
        assert first.error == "Nota fiscal duplicada"
        assert (first.numero, second.numero) == (42, 43)
        nota = db.query(NotaFiscal).filter(NotaFiscal.id == first.nota_id).one()
        assert nota.status == InvoiceStatus.REJEITADA.value
        assert nota.erro_sefaz == "Nota fiscal duplicada"

    async def test_network_failure_stores_note_and_raises(self, db, tenant, company, items, focus_factory):
        def handler(request):
            raise httpx.ConnectError("boom", request=request)

        focus, _ = focus_factory(handler)
        service = InvoiceService(db, tenant.id, focus)

        with pytest.raises(TransportError) as exc_info:
            await service.emitir_nfce(company.id, uuid4(), items, "pix", Decimal("80"))

        assert "nota_id" in exc_info.value.details
        assert fiscal_config(db, company).numero_atual == 42
        assert db.query(NotaFiscal).one().status == InvoiceStatus.REJEITADA.value

    async def test_disabled_emission_is_skipped(self, db, tenant, company, items, focus_factory):
        fiscal_config(db, company).tipo_nota = "desativado"
        db.commit()
        focus, requests = focus_factory(lambda request: httpx.Response(202, json={}))

        result = await InvoiceService(db, tenant.id, focus).emitir_nfce(
            company.id, uuid4(), items, "pix", Decimal("80")
        )

        assert result.success
        assert result.skipped
        assert requests == []
        assert fiscal_config(db, company).numero_atual == 41

    async def test_requires_items(self, db, tenant, company, focus_factory):
        focus, requests = focus_factory(lambda request: httpx.Response(202, json={}))

        with pytest.raises(ValidationError):
            await InvoiceService(db, tenant.id, focus).emitir_nfce(company.id, uuid4(), [], "pix", Decimal("0"))
        assert requests == []

    async def test_unknown_company(self, db, tenant, items, focus_factory):
        focus, _ = focus_factory(lambda request: httpx.Response(202, json={}))

        with pytest.raises(NotFoundError):
            await InvoiceService(db, tenant.id, focus).emitir_nfce(uuid4(), uuid4(), items, "pix", Decimal("80"))

    async def test_client_name_goes_to_payload(self, db, tenant, company, items, make_client, focus_factory):
        client = make_client(name="João", cpf="123.456.789-00")
        focus, requests = focus_factory(lambda request: httpx.Response(202, json={}))

        await InvoiceService(db, tenant.id, focus).emitir_nfce(
            company.id, uuid4(), items, "credito", Decimal("80"), client_id=client.id
        )

        body = json.loads(requests[0].content)
        assert body["nome_destinatario"] == "João"
        assert body["cpf_destinatario"] == "123.456.789-00"
        assert body["formas_pagamento"][0]["forma_pagamento"] == "03"


@pytest.fixture
def make_nota(db, tenant, company):
    def factory(status=InvoiceStatus.PROCESSANDO.value, **fields):
        nota = NotaFiscal(
            tenant_id=tenant.id,
            company_id=company.id,
            numero=7,
            serie="1",
            status=status,
            referencia_focus="REF_abc_1",
            **fields,
        )
        db.add(nota)
        db.commit()
        return nota

    return factory


class TestConsultar:
    async def test_overwrites_with_provider_values(self, db, tenant, make_nota, focus_factory):
        nota = make_nota()
        focus, requests = focus_factory(
            lambda request: httpx.Response(
                200,
                json={
                    "status": "autorizado",
                    "chave_nfe": "NFe3526",
                    "caminho_xml_nota_fiscal": "/xml/1.xml",
                    "caminho_danfe": "/danfe/1.pdf",
                },
            )
        )

        updated = await InvoiceService(db, tenant.id, focus).consultar(nota.id)

        assert updated.status == InvoiceStatus.AUTORIZADA.value
        assert updated.chave == "NFe3526"
        assert updated.xml == "/xml/1.xml"
        assert updated.pdf_url == "/danfe/1.pdf"
        assert requests[0].url.path == "/v2/nfce/REF_abc_1"

    async def test_missing_fields_keep_old_values(self, db, tenant, make_nota, focus_factory):
        nota = make_nota(chave="OLD", pdf_url="/old.pdf")
        focus, _ = focus_factory(lambda request: httpx.Response(200, json={"status": "processando_autorizacao"}))

        updated = await InvoiceService(db, tenant.id, focus).consultar(nota.id)

        assert updated.chave == "OLD"
        assert updated.pdf_url == "/old.pdf"

    async def test_rejection_records_sefaz_message(self, db, tenant, make_nota, focus_factory):
        nota = make_nota()
        focus, _ = focus_factory(
            lambda request: httpx.Response(200, json={"status": "erro_autorizacao", "mensagem_sefaz": "Rejeição 539"})
        )

        updated = await InvoiceService(db, tenant.id, focus).consultar(nota.id)

        assert updated.status == InvoiceStatus.REJEITADA.value
        assert updated.erro_sefaz == "Rejeição 539"

    async def test_unknown_status_keeps_current(self, db, tenant, make_nota, focus_factory):
        nota = make_nota()
        focus, _ = focus_factory(lambda request: httpx.Response(200, json={"status": "denegado_xyz"}))

        updated = await InvoiceService(db, tenant.id, focus).consultar(nota.id)

        assert updated.status == InvoiceStatus.PROCESSANDO.value

    async def test_provider_error_raises(self, db, tenant, make_nota, focus_factory):
        nota = make_nota()
        focus, _ = focus_factory(lambda request: httpx.Response(404, json={"mensagem": "Nota não encontrada"}))

        with pytest.raises(TransportError) as exc_info:
            await InvoiceService(db, tenant.id, focus).consultar(nota.id)
        assert exc_info.value.status_code == 404
        assert exc_info.value.message == "Nota não encontrada"


class TestCancelar:
    JUSTIFICATIVA = "Cliente desistiu da compra"

    @pytest.mark.parametrize("justificativa", ["curta demais", "x" * 256])
    async def test_justification_length_checked_locally(self, db, tenant, make_nota, focus_factory, justificativa):
        nota = make_nota(status=InvoiceStatus.AUTORIZADA.value)
        focus, requests = focus_factory(lambda request: httpx.Response(200, json={}))

        with pytest.raises(ValidationError):
            await InvoiceService(db, tenant.id, focus).cancelar(nota.id, justificativa)
        assert requests == []

    async def test_only_authorized_notes(self, db, tenant, make_nota, focus_factory):
        nota = make_nota(status=InvoiceStatus.PROCESSANDO.value)
        focus, requests = focus_factory(lambda request: httpx.Response(200, json={}))

        with pytest.raises(BusinessRuleError):
            await InvoiceService(db, tenant.id, focus).cancelar(nota.id, self.JUSTIFICATIVA)
        assert requests == []

    async def test_cancel_success(self, db, tenant, make_nota, focus_factory):
        nota = make_nota(status=InvoiceStatus.AUTORIZADA.value)
        focus, requests = focus_factory(lambda request: httpx.Response(200, json={"status": "cancelado"}))

        result = await InvoiceService(db, tenant.id, focus).cancelar(nota.id, self.JUSTIFICATIVA)

        assert result.success
        assert nota.status == InvoiceStatus.CANCELADA.value
        assert requests[0].method == "DELETE"
        assert json.loads(requests[0].content) == {"justificativa": self.JUSTIFICATIVA}

    async def test_cancel_rejected_by_provider(self, db, tenant, make_nota, focus_factory):
        nota = make_nota(status=InvoiceStatus.AUTORIZADA.value)
        focus, _ = focus_factory(lambda request: httpx.Response(400, json={"mensagem": "Prazo de cancelamento expirado"}))

        result = await InvoiceService(db, tenant.id, focus).cancelar(nota.id, self.JUSTIFICATIVA)

        assert not result.success
        assert result.error == "Prazo de cancelamento expirado"
        assert nota.status == InvoiceStatus.AUTORIZADA.value
        assert nota.erro_sefaz == "Prazo de cancelamento expirado"


class TestValidarConfig:
    async def test_complete_config(self, db, tenant, company, focus_factory):
        focus, _ = focus_factory(lambda request: httpx.Response(200, json=[]))

        validation = await InvoiceService(db, tenant.id, focus).validar_config(company.id)

        assert validation.success
        assert validation.issues == []
        assert validation.config["tipo_nota"] == "nfce"

    async def test_reports_missing_fields_and_bad_key(self, db, tenant, company, focus_factory):
        company.cnpj = None
        company.uf = None
        db.commit()
        focus, _ = focus_factory(lambda request: httpx.Response(401, json={"mensagem": "unauthorized"}))

        validation = await InvoiceService(db, tenant.id, focus).validar_config(company.id)

        assert not validation.success
        assert "CNPJ da empresa não configurado" in validation.issues
        assert "UF não configurada" in validation.issues
        assert "Chave da API Focus NFe inválida" in validation.issues

    async def test_unreachable_provider(self, db, tenant, company, focus_factory):
        def handler(request):
            raise httpx.ConnectTimeout("timeout", request=request)

        focus, _ = focus_factory(handler)

        validation = await InvoiceService(db, tenant.id, focus).validar_config(company.id)

        assert validation.issues == ["Não foi possível conectar ao Focus NFe"]

    async def test_missing_config(self, db, tenant, focus_factory):
        focus, _ = focus_factory(lambda request: httpx.Response(200, json={}))

        validation = await InvoiceService(db, tenant.id, focus).validar_config(uuid4())

        assert not validation.success
        assert validation.issues == ["Configuração fiscal não encontrada para esta empresa"]
