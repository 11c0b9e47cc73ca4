"""Request dependencies: database, auth session, entitlements and outbound clients."""

from typing import AsyncIterator, Callable, Optional
from zoneinfo import ZoneInfo

from fastapi import Depends, HTTPException
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlalchemy.orm import Session

from petcore.db import get_db
from petcore.logging import bind_tenant
from petcore.redis import get_redis_client
from petcore.settings import Settings, get_settings

from petshop_engine.campaigns.dispatcher import CampaignWebhookClient
from petshop_engine.contracts.types import ModuleKey
from petshop_engine.entitlements.plans import required_plan_label
from petshop_engine.entitlements.resolver import TenantModulesService
from petshop_engine.errors import BusinessRuleError, PermissionDenied
from petshop_engine.fiscal.focus_client import FocusNFeClient
from petshop_engine.identity.session import SessionContext
from petshop_engine.identity.tokens import decode_auth_token
from petshop_engine.realtime.notifier import ChangeNotifier

bearer_scheme = HTTPBearer(auto_error=False)


def get_notifier(settings: Settings = Depends(get_settings)) -> Optional[ChangeNotifier]:
    return ChangeNotifier(get_redis_client(), settings.CHANGES_STREAM)


def get_session(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(bearer_scheme),
    db: Session = Depends(get_db),
    settings: Settings = Depends(get_settings),
) -> SessionContext:
    """Session for the bearer token. Missing or invalid tokens give an anonymous session."""
    identity = decode_auth_token(credentials.credentials, settings) if credentials else None
    session = SessionContext.load(db, identity)
    if session.tenant_id:
        bind_tenant(session.tenant_id)
    return session


def require_auth(session: SessionContext = Depends(get_session)) -> SessionContext:
    if not session.is_authenticated:
        raise HTTPException(status_code=401, detail="Not authenticated")
    return session


def require_profile(session: SessionContext = Depends(require_auth)) -> SessionContext:
    """Authenticated user that already belongs to a tenant."""
    if not session.has_profile:
        raise HTTPException(status_code=403, detail="Tenant setup required")
    return session


def require_tenant_admin(session: SessionContext = Depends(require_profile)) -> SessionContext:
    if not session.is_tenant_admin:
        raise PermissionDenied("Apenas administradores podem realizar esta ação")
    return session


def get_modules_service(
    session: SessionContext = Depends(require_profile),
    db: Session = Depends(get_db),
    notifier: Optional[ChangeNotifier] = Depends(get_notifier),
) -> TenantModulesService:
    service = TenantModulesService(db, session, notifier=notifier)
    service.load()
    return service


def require_module(module: ModuleKey) -> Callable[..., SessionContext]:
    """Dependency factory: 403 unless the tenant's plan enables the module."""

    def dependency(
        session: SessionContext = Depends(require_profile),
        modules: TenantModulesService = Depends(get_modules_service),
    ) -> SessionContext:
        if not modules.resolver.has_module(module):
            raise PermissionDenied(
                f"Módulo indisponível no plano atual. Disponível no plano {required_plan_label(module)}.",
                code="module_locked",
                details={"module": module.value},
            )
        return session

    return dependency


def get_timezone(settings: Settings = Depends(get_settings)) -> ZoneInfo:
    return ZoneInfo(settings.TIMEZONE)


async def get_campaign_webhook(settings: Settings = Depends(get_settings)) -> AsyncIterator[CampaignWebhookClient]:
    client = CampaignWebhookClient(settings.CAMPAIGN_WEBHOOK_URL, timeout=settings.HTTP_TIMEOUT)
    try:
        yield client
    finally:
        await client.close()


async def get_focus_client(settings: Settings = Depends(get_settings)) -> AsyncIterator[FocusNFeClient]:
    if not settings.FOCUS_NFE_API_KEY:
        raise BusinessRuleError("Configuração fiscal incompleta. Chave da API não configurada.")
    client = FocusNFeClient(settings.FOCUS_NFE_API_KEY, timeout=settings.HTTP_TIMEOUT)
    try:
        yield client
    finally:
        await client.close()
