"""Plans, module entitlements and the navigation guard."""

from petshop_engine.entitlements.navigation import NAV_ITEMS, NavEntry, build_navigation, click
from petshop_engine.entitlements.plans import PLAN_CONFIGS, PLAN_LABELS, required_plan_label
from petshop_engine.entitlements.resolver import (
    CommandResult,
    EntitlementResolver,
    ModuleConfig,
    TenantModulesService,
)

__all__ = [
    "NAV_ITEMS",
    "PLAN_CONFIGS",
    "PLAN_LABELS",
    "CommandResult",
    "EntitlementResolver",
    "ModuleConfig",
    "NavEntry",
    "TenantModulesService",
    "build_navigation",
    "click",
    "required_plan_label",
]
