"""
Pet Shop API

FastAPI app serving the pet shop backend.

Responsibilities:
- Tenant onboarding, invites and module entitlements
- Client segmentation and campaign dispatch
- NFC-e issuance through Focus NFe
- Google Calendar OAuth, calendar operations and inbound sync
- Operational dashboard
"""

import logging

import uvicorn
from fastapi import FastAPI

from petcore.logging import setup_logging
from petcore.settings import get_settings

from petshop_api.errors import register_error_handlers
from petshop_api.routers import (
    calendar_sync,
    campaigns,
    dashboard,
    fiscal,
    google,
    sales,
    scheduling,
    segmentation,
    tenancy,
    tenant_settings,
)

setup_logging()
logger = logging.getLogger(__name__)

app = FastAPI(
    title="Pet Shop API",
    description="Multi-tenant pet shop and pet hotel backend",
    version="0.1.0",
)

register_error_handlers(app)

app.include_router(tenancy.router)
app.include_router(tenant_settings.router)
app.include_router(segmentation.router)
app.include_router(campaigns.router)
app.include_router(fiscal.router)
app.include_router(google.router)
app.include_router(calendar_sync.router)
app.include_router(scheduling.router)
app.include_router(sales.router)
app.include_router(dashboard.router)


@app.get("/health")
async def health():
    """Health check endpoint."""
    return {"status": "healthy", "service": "petshop-api"}


def main():
    settings = get_settings()
    logger.info("Starting Pet Shop API", extra={"environment": settings.ENVIRONMENT})
    uvicorn.run("petshop_api.main:app", host="0.0.0.0", port=8000)


if __name__ == "__main__":
    main()
