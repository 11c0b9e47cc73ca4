"""Campaign form model and send-button rules."""

from dataclasses import dataclass, field

from petshop_engine.contracts.types import CampaignType, MediaType

NO_MATCH_HINT = "Nenhum cliente corresponde aos critérios selecionados."


@dataclass
class CampaignForm:
    campanha: str = ""
    mensagem: str = ""
    media_type: MediaType = MediaType.TEXT
    media_url: str = ""
    criterios: list[CampaignType] = field(default_factory=list)
    dias_inatividade: int | None = None

    @classmethod
    def from_dict(cls, data: dict) -> "CampaignForm":
        filtros = data.get("filtros") or {}
        return cls(
            campanha=data.get("campanha", ""),
            mensagem=data.get("mensagem", ""),
            media_type=MediaType(data.get("mediaType") or MediaType.TEXT.value),
            media_url=data.get("mediaUrl") or "",
            criterios=[CampaignType(c) for c in filtros.get("criterios", [])],
            dias_inatividade=filtros.get("diasInatividade"),
        )


@dataclass
class FormState:
    can_send: bool
    errors: dict[str, str] = field(default_factory=dict)
    hint: str | None = None
    total_clientes: int = 0

    def to_dict(self) -> dict:
        return {
            "can_send": self.can_send,
            "errors": dict(self.errors),
            "hint": self.hint,
            "totalClientes": self.total_clientes,
        }


def evaluate(form: CampaignForm, recipient_count: int) -> FormState:
    """
    Decide whether "Enviar Campanha" is enabled.

    Zero criteria keeps it disabled without a hint; criteria with zero
    matching clients keep it disabled and expose NO_MATCH_HINT.
    """
    errors: dict[str, str] = {}
    if not form.campanha.strip():
        errors["campanha"] = "Informe o nome da campanha"
    if not form.mensagem.strip():
        errors["mensagem"] = "Informe a mensagem"
    if form.media_type != MediaType.TEXT and not form.media_url.strip():
        errors["mediaUrl"] = "Informe a URL da mídia"
    if form.dias_inatividade is not None and form.dias_inatividade < 1:
        errors["diasInatividade"] = "O prazo deve ser de pelo menos 1 dia"

    hint = None
    if not form.criterios:
        errors["criterios"] = "Selecione pelo menos um critério"
    elif recipient_count == 0:
        hint = NO_MATCH_HINT

    can_send = not errors and recipient_count > 0
    return FormState(can_send=can_send, errors=errors, hint=hint, total_clientes=recipient_count)
