"""
Pet Shop CLI

Operator commands for the pet shop backend.

Commands:
- init-db: Create all tables (development only; use alembic elsewhere)
- recalculate-campaigns: Reclassify a tenant's clients
- set-threshold: Change a tenant's inactivity threshold
- set-plan: Apply a plan as a tenant admin
- create-invite: Issue an invite code as a tenant admin
- list-campaign-clients: Preview campaign recipients
- consultar-nota: Refresh an invoice status from Focus NFe
"""

import asyncio
from typing import List, Optional
from uuid import UUID

import typer
from rich import print as rprint
from rich.console import Console
from rich.table import Table

from petcore.logging import setup_logging
from petcore.settings import get_settings

from petshop_engine.contracts.types import CampaignType, PlanType, UserRole
from petshop_engine.errors import PetshopError

app = typer.Typer(
    name="petshop-cli",
    help="Pet Shop backend CLI",
)

console = Console()


@app.callback()
def main(verbose: bool = typer.Option(False, "--verbose", "-v", help="Debug logging")):
    setup_logging(level="DEBUG" if verbose else None, json_output=False)


def get_db():
    """Get database session."""
    from petcore.db import open_session
    return open_session()


def get_notifier():
    from petcore.redis import get_redis_client
    from petshop_engine.realtime.notifier import ChangeNotifier

    settings = get_settings()
    return ChangeNotifier(get_redis_client(), settings.CHANGES_STREAM)


def parse_uuid(value: str, label: str) -> UUID:
    try:
        return UUID(value)
    except ValueError:
        rprint(f"[red]Invalid {label}: {value}[/red]")
        raise typer.Exit(1)


def load_session(db, user_id: str):
    from petshop_engine.identity.session import SessionContext
    from petshop_engine.identity.tokens import AuthIdentity

    session = SessionContext.load(db, AuthIdentity(user_id=parse_uuid(user_id, "user ID")))
    if not session.has_profile:
        rprint(f"[red]User {user_id} has no tenant profile[/red]")
        raise typer.Exit(1)
    return session


@app.command()
def init_db():
    """Create all tables on DATABASE_URL."""
    from petcore.db import Base, get_engine
    import petshop_engine.persistence.models  # noqa: F401

    Base.metadata.create_all(get_engine())
    rprint("[green]Tables created[/green]")


@app.command()
def recalculate_campaigns(
    tenant_id: str = typer.Argument(..., help="Tenant UUID"),
):
    """Reclassify every client of a tenant against its inactivity threshold."""
    from petshop_engine.segmentation.service import SegmentationService

    tenant_uuid = parse_uuid(tenant_id, "tenant ID")
    db = get_db()
    try:
        summary = SegmentationService(db, tenant_uuid, notifier=get_notifier()).recalculate_all()

        table = Table(title=f"Clientes ({summary.total}, {summary.changed} alterados)")
        table.add_column("Campanha")
        table.add_column("Clientes", justify="right")
        for bucket, count in summary.counts.items():
            table.add_row(bucket, str(count))
        console.print(table)
    finally:
        db.close()


@app.command()
def set_threshold(
    tenant_id: str = typer.Argument(..., help="Tenant UUID"),
    days: int = typer.Argument(..., help="Days without purchase before a client is inactive (1-365)"),
    no_recalculate: bool = typer.Option(False, "--no-recalculate", help="Only store the threshold"),
):
    """Store a new inactivity threshold and reclassify clients."""
    from petshop_engine.segmentation.service import SegmentationService

    tenant_uuid = parse_uuid(tenant_id, "tenant ID")
    db = get_db()
    try:
        service = SegmentationService(db, tenant_uuid, notifier=get_notifier())
        summary = service.save_threshold(days, recalculate=not no_recalculate)
    except PetshopError as e:
        rprint(f"[red]{e.message}[/red]")
        raise typer.Exit(1)
    finally:
        db.close()

    rprint(f"[green]Prazo de inatividade: {days} dias[/green]")
    if summary:
        rprint(f"  Clientes reclassificados: {summary.changed}/{summary.total}")


@app.command()
def set_plan(
    user_id: str = typer.Argument(..., help="Admin user UUID"),
    plan: PlanType = typer.Argument(..., help="basic, hotel or premium"),
):
    """Apply a plan to the admin's tenant."""
    from petshop_engine.entitlements.resolver import TenantModulesService

    db = get_db()
    try:
        session = load_session(db, user_id)
        service = TenantModulesService(db, session, notifier=get_notifier())
        service.load()
        result = service.set_plan(plan)
    finally:
        db.close()

    if not result.applied:
        rprint(f"[red]Plan not applied: {result.reason}[/red]")
        raise typer.Exit(1)

    rprint(f"[green]Plano {result.config.plan_label} aplicado[/green]")
    for key, enabled in result.config.modules.items():
        rprint(f"  {key.value}: {'on' if enabled else 'off'}")


@app.command()
def create_invite(
    user_id: str = typer.Argument(..., help="Admin user UUID"),
    role: str = typer.Option(UserRole.EMPLOYEE.value, help="admin, manager or employee"),
    email: Optional[str] = typer.Option(None, help="Invitee e-mail"),
    days: int = typer.Option(7, help="Days until the code expires"),
):
    """Issue an invite code for the admin's tenant."""
    from petshop_engine.identity.tenancy import TenantOnboardingService

    db = get_db()
    try:
        session = load_session(db, user_id)
        invite = TenantOnboardingService(db, session).create_invite(role=role, email=email, days_valid=days)
        rprint("[green]Invite created:[/green]")
        rprint(f"  Code: [bold]{invite.invite_code}[/bold]")
        rprint(f"  Role: {invite.role}")
        rprint(f"  Expires: {invite.expires_at.isoformat()}")
    except PetshopError as e:
        rprint(f"[red]{e.message}[/red]")
        raise typer.Exit(1)
    finally:
        db.close()


@app.command()
def list_campaign_clients(
    tenant_id: str = typer.Argument(..., help="Tenant UUID"),
    criterio: List[CampaignType] = typer.Option(..., "--criterio", "-c", help="Campaign bucket (repeatable)"),
    dias: Optional[int] = typer.Option(None, help="Inactivity days (defaults to the tenant threshold)"),
):
    """List the clients a campaign with these criteria would reach."""
    from petshop_engine.campaigns.filters import filter_clients, format_phone_with_ddi
    from petshop_engine.persistence.repo import PetshopRepository
    from petshop_engine.segmentation.service import SegmentationService

    tenant_uuid = parse_uuid(tenant_id, "tenant ID")
    db = get_db()
    try:
        threshold = dias or SegmentationService(db, tenant_uuid).get_threshold()
        clients = filter_clients(PetshopRepository(db, tenant_uuid).list_clients(), criterio, threshold)

        table = Table(title=f"{len(clients)} cliente(s), prazo {threshold} dias")
        table.add_column("Nome")
        table.add_column("WhatsApp")
        table.add_column("Campanha")
        for client in clients:
            table.add_row(client.name, format_phone_with_ddi(client.whatsapp), client.tipo_campanha or "")
        console.print(table)
    finally:
        db.close()


@app.command()
def consultar_nota(
    tenant_id: str = typer.Argument(..., help="Tenant UUID"),
    nota_id: str = typer.Argument(..., help="Invoice UUID"),
):
    """Refresh an invoice from Focus NFe."""
    from petshop_engine.fiscal.focus_client import FocusNFeClient
    from petshop_engine.fiscal.service import InvoiceService

    settings = get_settings()
    if not settings.FOCUS_NFE_API_KEY:
        rprint("[red]FOCUS_NFE_API_KEY not set[/red]")
        raise typer.Exit(1)

    tenant_uuid = parse_uuid(tenant_id, "tenant ID")
    nota_uuid = parse_uuid(nota_id, "invoice ID")

    async def run():
        focus = FocusNFeClient(settings.FOCUS_NFE_API_KEY, timeout=settings.HTTP_TIMEOUT)
        db = get_db()
        try:
            return await InvoiceService(db, tenant_uuid, focus, notifier=get_notifier()).consultar(nota_uuid)
        finally:
            db.close()
            await focus.close()

    try:
        nota = asyncio.run(run())
    except PetshopError as e:
        rprint(f"[red]{e.message}[/red]")
        raise typer.Exit(1)

    rprint(f"Nota {nota.serie}/{nota.numero}: [bold]{nota.status}[/bold]")
    if nota.chave:
        rprint(f"  Chave: {nota.chave}")
    if nota.pdf_url:
        rprint(f"  DANFE: {nota.pdf_url}")
    if nota.erro_sefaz:
        rprint(f"  [yellow]{nota.erro_sefaz}[/yellow]")


if __name__ == "__main__":
    app()
