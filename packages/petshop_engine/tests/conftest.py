"""
Pytest fixtures for pet shop engine tests.

Repository flows run against an in-memory SQLite database built from the
SQLAlchemy metadata.
"""

from datetime import datetime, timezone
from uuid import UUID, uuid4

import pytest
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from petcore.db import Base

import petshop_engine.persistence.models  # noqa: F401
from petshop_engine.contracts.types import UserRole
from petshop_engine.identity.session import SessionContext
from petshop_engine.identity.tokens import AuthIdentity
from petshop_engine.persistence.models import Tenant, TenantSettings, UserProfile
from petshop_engine.persistence.repo import PetshopRepository


class RecordingNotifier:
    """Collects notify() calls instead of writing to Redis."""

    def __init__(self):
        self.events = []

    def notify(self, table, event_type, tenant_id, record_id=None):
        self.events.append((table, event_type, tenant_id, record_id))
        return "0-1"

    def tables(self):
        return [event[0] for event in self.events]


@pytest.fixture
def sample_tenant_id():
    """Sample tenant UUID."""
    return UUID("12345678-1234-1234-1234-123456789012")


@pytest.fixture
def now():
    """Fixed reference time."""
    return datetime(2026, 3, 15, 12, 0, tzinfo=timezone.utc)


@pytest.fixture
def db():
    """Fresh in-memory database session."""
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
def notifier():
    return RecordingNotifier()


@pytest.fixture
def tenant(db, sample_tenant_id):
    """Tenant with a default settings row."""
    tenant = Tenant(id=sample_tenant_id, nome="Pet Feliz")
    db.add(tenant)
    db.add(TenantSettings(tenant_id=sample_tenant_id, business_name="Pet Feliz"))
    db.commit()
    return tenant


@pytest.fixture
def make_session(db):
    """Factory: profile attached to a tenant plus a loaded SessionContext."""

    def factory(tenant_id, role=UserRole.OWNER.value, user_id=None):
        user_id = user_id or uuid4()
        db.add(UserProfile(id=user_id, tenant_id=tenant_id, role=role, nome="Ana", email="ana@example.com"))
        db.commit()
        return SessionContext.load(db, AuthIdentity(user_id=user_id, email="ana@example.com", full_name="Ana"))

    return factory


@pytest.fixture
def owner_session(make_session, tenant):
    return make_session(tenant.id, role=UserRole.OWNER.value)


@pytest.fixture
def employee_session(make_session, tenant):
    return make_session(tenant.id, role=UserRole.EMPLOYEE.value)


@pytest.fixture
def repo(db, tenant):
    return PetshopRepository(db, tenant.id)


@pytest.fixture
def make_client(repo, db):
    """Factory: client with an optional purchase date and stored label."""

    def factory(name="Maria", whatsapp="(11) 98888-7777", last_purchase=None, tipo_campanha=None, **fields):
        client = repo.create_client(name=name, whatsapp=whatsapp, last_purchase=last_purchase, **fields)
        if tipo_campanha is not None:
            client.tipo_campanha = tipo_campanha
        db.commit()
        return client

    return factory