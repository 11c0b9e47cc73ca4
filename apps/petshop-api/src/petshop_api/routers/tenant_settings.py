"""Plan, module flags, inactivity threshold and the navigation sidebar."""

from typing import Optional

from fastapi import APIRouter, Depends
from pydantic import BaseModel
from sqlalchemy.orm import Session

from petcore.db import get_db

from petshop_engine.contracts.types import ModuleKey, PlanType
from petshop_engine.entitlements.navigation import build_navigation, click, find_entry
from petshop_engine.entitlements.resolver import CommandResult, TenantModulesService
from petshop_engine.errors import NotFoundError
from petshop_engine.identity.session import SessionContext
from petshop_engine.realtime.notifier import ChangeNotifier
from petshop_engine.segmentation.service import SegmentationService

from petshop_api.deps import get_modules_service, get_notifier, require_profile, require_tenant_admin

router = APIRouter(prefix="/settings", tags=["settings"])


class PlanRequest(BaseModel):
    plan_type: PlanType


class ModuleToggleRequest(BaseModel):
    enabled: bool


class ThresholdRequest(BaseModel):
    dias_inatividade: int
    recalculate: bool = True


class NavClickRequest(BaseModel):
    url: str


def command_response(result: CommandResult) -> dict:
    return {
        "applied": result.applied,
        "reason": result.reason,
        "config": result.config.to_dict() if result.config else None,
    }


@router.get("/modules")
def get_modules(modules: TenantModulesService = Depends(get_modules_service)):
    return modules.config.to_dict()


@router.put("/plan")
def set_plan(body: PlanRequest, modules: TenantModulesService = Depends(get_modules_service)):
    """Apply a plan. Non-admin callers get applied=false and nothing changes."""
    return command_response(modules.set_plan(body.plan_type))


@router.patch("/modules/{module}")
def update_module(
    module: ModuleKey,
    body: ModuleToggleRequest,
    modules: TenantModulesService = Depends(get_modules_service),
):
    return command_response(modules.update_module(module, body.enabled))


@router.get("/navigation")
def navigation(modules: TenantModulesService = Depends(get_modules_service)):
    return {"items": [entry.to_dict() for entry in build_navigation(modules.resolver)]}


@router.post("/navigation/click")
def navigation_click(body: NavClickRequest, modules: TenantModulesService = Depends(get_modules_service)):
    entry = find_entry(build_navigation(modules.resolver), body.url)
    if entry is None:
        raise NotFoundError("Item de menu não encontrado")
    result = click(entry)
    return {
        "navigate": result.navigate,
        "href": result.href,
        "blocked_module": result.blocked_module.value if result.blocked_module else None,
        "message": result.message,
    }


@router.get("/inactivity-threshold")
def get_threshold(session: SessionContext = Depends(require_profile), db: Session = Depends(get_db)):
    return {"dias_inatividade": SegmentationService(db, session.tenant_id).get_threshold()}


@router.put("/inactivity-threshold")
def save_threshold(
    body: ThresholdRequest,
    session: SessionContext = Depends(require_tenant_admin),
    db: Session = Depends(get_db),
    notifier: Optional[ChangeNotifier] = Depends(get_notifier),
):
    summary = SegmentationService(db, session.tenant_id, notifier=notifier).save_threshold(
        body.dias_inatividade,
        recalculate=body.recalculate,
    )
    return {
        "dias_inatividade": body.dias_inatividade,
        "recalculation": summary.to_dict() if summary else None,
    }
