"""
Pytest fixtures for the HTTP API.

The app runs against an in-memory SQLite database; Redis publishing is
disabled and bearer tokens are signed with a test secret.
"""

from uuid import UUID, uuid4

import pytest
from fastapi.testclient import TestClient
from jose import jwt
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from petcore.db import Base, get_db
from petcore.settings import Settings, get_settings

import petshop_engine.persistence.models  # noqa: F401
from petshop_engine.contracts.types import UserRole
from petshop_engine.persistence.models import Tenant, TenantSettings, UserProfile

from petshop_api.deps import get_notifier
from petshop_api.main import app

JWT_SECRET = "api-test-secret"


@pytest.fixture
def settings():
    return Settings(
        AUTH_JWT_SECRET=JWT_SECRET,
        AUTH_JWT_AUDIENCE="authenticated",
        CALENDAR_SYNC_SECRET=None,
        CAMPAIGN_WEBHOOK_URL="https://workflows.test/webhook/campanhas",
    )


@pytest.fixture
def db():
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(engine)
    session = sessionmaker(autocommit=False, autoflush=False, bind=engine)()
    try:
        yield session
    finally:
        session.close()
        engine.dispose()


@pytest.fixture
def client(db, settings):
    """TestClient with database, settings and notifier overridden."""

    def override_db():
        yield db

    app.dependency_overrides[get_db] = override_db
    app.dependency_overrides[get_settings] = lambda: settings
    app.dependency_overrides[get_notifier] = lambda: None
    try:
        with TestClient(app) as test_client:
            yield test_client
    finally:
        app.dependency_overrides.clear()


@pytest.fixture
def tenant(db):
    tenant = Tenant(id=UUID("12345678-1234-1234-1234-123456789012"), nome="Pet Feliz")
    db.add(tenant)
    db.add(TenantSettings(tenant_id=tenant.id, business_name="Pet Feliz"))
    db.commit()
    return tenant


@pytest.fixture
def auth_headers():
    """Factory: Authorization header for a user id."""

    def factory(user_id, email="ana@example.com"):
        token = jwt.encode(
            {"sub": str(user_id), "aud": "authenticated", "email": email},
            JWT_SECRET,
            algorithm="HS256",
        )
        return {"Authorization": f"Bearer {token}"}

    return factory


@pytest.fixture
def member_headers(db, tenant, auth_headers):
    """Factory: headers for a new user attached to the tenant with a role."""

    def factory(role=UserRole.OWNER.value):
        user_id = uuid4()
        db.add(UserProfile(id=user_id, tenant_id=tenant.id, role=role, nome="Ana"))
        db.commit()
        return auth_headers(user_id)

    return factory


@pytest.fixture
def owner_headers(member_headers):
    return member_headers(UserRole.OWNER.value)


@pytest.fixture
def employee_headers(member_headers):
    return member_headers(UserRole.EMPLOYEE.value)
