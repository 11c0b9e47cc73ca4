"""
Plan tiers and their canned module configurations.

set_plan() applies one of these tables as-is; flags not named by a plan keep
whatever value the tenant already had.
"""

from petshop_engine.contracts.types import ModuleKey, PlanType

DEFAULT_BUSINESS_NAME = "PetSaaS"
DEFAULT_PLAN = PlanType.HOTEL

DEFAULT_MODULES: dict[ModuleKey, bool] = {
    ModuleKey.PETSHOP: True,
    ModuleKey.HOTEL: True,
    ModuleKey.CLINICA: False,
    ModuleKey.PRODUTOS: False,
    ModuleKey.PDV: True,
    ModuleKey.CAIXA: False,
    ModuleKey.COMISSAO: False,
    ModuleKey.FINANCEIRO_AVANCADO: False,
    ModuleKey.DASHBOARD_COMPLETO: False,
    ModuleKey.ESTOQUE: False,
    ModuleKey.MARKETING: False,
}

PLAN_CONFIGS: dict[PlanType, dict[ModuleKey, bool]] = {
    PlanType.BASIC: {
        ModuleKey.PETSHOP: True,
        ModuleKey.HOTEL: False,
        ModuleKey.CLINICA: False,
        ModuleKey.DASHBOARD_COMPLETO: False,
    },
    PlanType.HOTEL: {
        ModuleKey.PETSHOP: True,
        ModuleKey.HOTEL: True,
        ModuleKey.CLINICA: False,
        ModuleKey.DASHBOARD_COMPLETO: False,
    },
    PlanType.PREMIUM: {
        ModuleKey.PETSHOP: True,
        ModuleKey.HOTEL: True,
        ModuleKey.CLINICA: True,
        ModuleKey.PRODUTOS: True,
        ModuleKey.PDV: True,
        ModuleKey.CAIXA: True,
        ModuleKey.DASHBOARD_COMPLETO: True,
    },
}

PLAN_LABELS: dict[PlanType, str] = {
    PlanType.BASIC: "Pet Shop Simples",
    PlanType.HOTEL: "Pet Shop + Hotel",
    PlanType.PREMIUM: "Premium Completo",
}


def required_plan(module: ModuleKey) -> PlanType:
    """Smallest plan that unlocks a module, as shown on the upgrade prompt."""
    if module == ModuleKey.CLINICA:
        return PlanType.PREMIUM
    if module == ModuleKey.HOTEL:
        return PlanType.HOTEL
    return PlanType.BASIC


def required_plan_label(module: ModuleKey) -> str:
    return PLAN_LABELS[required_plan(module)]
