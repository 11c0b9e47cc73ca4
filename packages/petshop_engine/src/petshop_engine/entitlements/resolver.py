"""
Entitlement resolution.

ModuleConfig is an immutable snapshot of a tenant's settings row.
EntitlementResolver answers has_module() against the snapshot, and
TenantModulesService performs the admin-only plan/module writes as commands:
the write is awaited and only the confirmed state replaces the snapshot.
"""

import logging
from dataclasses import dataclass, field
from uuid import UUID

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from petshop_engine.contracts.types import ChangeType, ModuleKey, PlanType
from petshop_engine.entitlements.plans import (
    DEFAULT_BUSINESS_NAME,
    DEFAULT_MODULES,
    DEFAULT_PLAN,
    PLAN_CONFIGS,
    PLAN_LABELS,
)
from petshop_engine.identity.session import SessionContext
from petshop_engine.persistence.models import TenantSettings
from petshop_engine.realtime.notifier import ChangeNotifier

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ModuleConfig:
    business_name: str
    plan_type: PlanType
    modules: dict[ModuleKey, bool] = field(default_factory=dict)
    settings_id: UUID | None = None

    @classmethod
    def default(cls) -> "ModuleConfig":
        return cls(
            business_name=DEFAULT_BUSINESS_NAME,
            plan_type=DEFAULT_PLAN,
            modules=dict(DEFAULT_MODULES),
        )

    @classmethod
    def from_settings(cls, row: TenantSettings) -> "ModuleConfig":
        return cls(
            business_name=row.business_name or DEFAULT_BUSINESS_NAME,
            plan_type=PlanType(row.plan_type),
            modules={key: getattr(row, key.value) is True for key in ModuleKey},
            settings_id=row.id,
        )

    @property
    def plan_label(self) -> str:
        return PLAN_LABELS[self.plan_type]

    def to_dict(self) -> dict:
        data = {
            "business_name": self.business_name,
            "plan_type": self.plan_type.value,
            "plan_label": self.plan_label,
        }
        data.update({key.value: self.modules.get(key, False) for key in ModuleKey})
        return data


class EntitlementResolver:
    """Answers "is module X enabled" for a loaded config."""

    def __init__(self, config: ModuleConfig | None):
        self.config = config

    @property
    def is_loaded(self) -> bool:
        return self.config is not None

    @property
    def plan(self) -> PlanType | None:
        return self.config.plan_type if self.config else None

    def has_module(self, module: ModuleKey) -> bool:
        """True only when the config is loaded and the flag is exactly True."""
        if self.config is None:
            return False
        return self.config.modules.get(module) is True

    def enabled_modules(self) -> list[ModuleKey]:
        return [key for key in ModuleKey if self.has_module(key)]


@dataclass
class CommandResult:
    applied: bool
    reason: str | None = None
    config: ModuleConfig | None = None


class TenantModulesService:
    """Loads a tenant's module config and applies admin-only changes."""

    def __init__(self, db: Session, session: SessionContext, notifier: ChangeNotifier | None = None):
        self.db = db
        self.session = session
        self.notifier = notifier
        self.config: ModuleConfig | None = None

    @property
    def resolver(self) -> EntitlementResolver:
        return EntitlementResolver(self.config)

    def load(self) -> ModuleConfig:
        """
        Load the settings row for the session's tenant.

        Falls back to the default config when the user has no tenant or the
        tenant has no settings row yet.
        """
        tenant_id = self.session.tenant_id
        row = None
        if tenant_id is not None:
            row = self.db.query(TenantSettings).filter(TenantSettings.tenant_id == tenant_id).first()
        self.config = ModuleConfig.from_settings(row) if row else ModuleConfig.default()
        return self.config

    def set_plan(self, plan: PlanType) -> CommandResult:
        """Overwrite plan_type and the plan's module flags."""
        updates: dict[str, object] = {"plan_type": plan.value}
        updates.update({key.value: enabled for key, enabled in PLAN_CONFIGS[plan].items()})
        return self._apply(updates, action="set_plan")

    def update_module(self, module: ModuleKey, enabled: bool) -> CommandResult:
        return self._apply({module.value: enabled}, action="update_module")

    def _apply(self, updates: dict[str, object], action: str) -> CommandResult:
        if not self.session.is_tenant_admin:
            return self._noop(action, "not_admin")
        if self.config is None or self.config.settings_id is None:
            return self._noop(action, "config_not_loaded")

        row = self.db.query(TenantSettings).filter(TenantSettings.id == self.config.settings_id).first()
        if row is None:
            return self._noop(action, "config_not_loaded")

        for column, value in updates.items():
            setattr(row, column, value)
        try:
            self.db.commit()
        except SQLAlchemyError as e:
            self.db.rollback()
            logger.error(
                f"Failed to persist tenant settings: {e}",
                extra={"action": action, "tenant_id": str(self.session.tenant_id)},
            )
            return CommandResult(applied=False, reason="write_failed", config=self.config)

        self.db.refresh(row)
        self.config = ModuleConfig.from_settings(row)
        if self.notifier is not None:
            self.notifier.notify(TenantSettings.__tablename__, ChangeType.UPDATE, row.tenant_id, row.id)
        logger.info(
            "Tenant modules updated",
            extra={"action": action, "tenant_id": str(self.session.tenant_id), "updates": updates},
        )
        return CommandResult(applied=True, config=self.config)

    def _noop(self, action: str, reason: str) -> CommandResult:
        logger.warning(
            "Ignoring tenant modules change",
            extra={"action": action, "reason": reason, "user_id": str(self.session.user_id)},
        )
        return CommandResult(applied=False, reason=reason, config=self.config)
