"""
Navigation guard.

Builds the sidebar entries for a tenant. Entries whose module is disabled
are kept in the list but locked: they carry no href and clicking them
returns a blocked result naming the plan that unlocks the module.
"""

from dataclasses import dataclass

from petshop_engine.contracts.types import ModuleKey
from petshop_engine.entitlements.plans import required_plan_label
from petshop_engine.entitlements.resolver import EntitlementResolver


@dataclass(frozen=True)
class NavItem:
    title: str
    url: str
    module: ModuleKey | None = None


NAV_ITEMS: tuple[NavItem, ...] = (
    NavItem("Dashboard", "/"),
    NavItem("Banho & Tosa", "/banho-tosa", ModuleKey.PETSHOP),
    NavItem("Serviços do Dia", "/servicos-do-dia", ModuleKey.PETSHOP),
    NavItem("Hotel & Creche", "/hotel-creche", ModuleKey.HOTEL),
    NavItem("Rota do Dia", "/rota-do-dia", ModuleKey.PETSHOP),
    NavItem("Clínica Veterinária", "/clinica", ModuleKey.CLINICA),
    NavItem("Produtos", "/produtos", ModuleKey.PRODUTOS),
    NavItem("PDV", "/pdv", ModuleKey.PDV),
    NavItem("Caixa", "/caixa-operacoes", ModuleKey.CAIXA),
    NavItem("Comissões", "/comissoes", ModuleKey.COMISSAO),
    NavItem("Financeiro", "/financeiro", ModuleKey.FINANCEIRO_AVANCADO),
    NavItem("Planos de Banho", "/planos", ModuleKey.PETSHOP),
    NavItem("Clientes & Pets", "/clientes", ModuleKey.PETSHOP),
    NavItem("Lembretes", "/lembretes", ModuleKey.PETSHOP),
    NavItem("Inativos", "/inativos", ModuleKey.PETSHOP),
    NavItem("Frente de Caixa", "/caixa", ModuleKey.PDV),
    NavItem("Marketing", "/marketing", ModuleKey.MARKETING),
    NavItem("WhatsApp", "/whatsapp"),
    NavItem("Importar Dados", "/importar"),
    NavItem("Tabela de Valores", "/tabela-valores"),
)


@dataclass(frozen=True)
class NavEntry:
    title: str
    url: str
    module: ModuleKey | None
    locked: bool
    required_plan: str | None = None

    @property
    def href(self) -> str | None:
        return None if self.locked else self.url

    def to_dict(self) -> dict:
        return {
            "title": self.title,
            "url": self.url,
            "href": self.href,
            "module": self.module.value if self.module else None,
            "locked": self.locked,
            "required_plan": self.required_plan,
        }


@dataclass(frozen=True)
class NavClick:
    navigate: bool
    href: str | None = None
    blocked_module: ModuleKey | None = None
    message: str | None = None


def build_navigation(resolver: EntitlementResolver) -> list[NavEntry]:
    entries = []
    for item in NAV_ITEMS:
        locked = item.module is not None and not resolver.has_module(item.module)
        entries.append(
            NavEntry(
                title=item.title,
                url=item.url,
                module=item.module,
                locked=locked,
                required_plan=required_plan_label(item.module) if locked else None,
            )
        )
    return entries


def click(entry: NavEntry) -> NavClick:
    """Resolve a click on a sidebar entry. Locked entries never navigate."""
    if entry.locked:
        return NavClick(
            navigate=False,
            blocked_module=entry.module,
            message=f"O módulo {entry.title} está disponível no plano {entry.required_plan}.",
        )
    return NavClick(navigate=True, href=entry.url)


def find_entry(entries: list[NavEntry], url: str) -> NavEntry | None:
    for entry in entries:
        if entry.url == url:
            return entry
    return None
