"""Persistence layer - SQLAlchemy models and repositories."""

from petshop_engine.persistence.repo import PetshopRepository, TenancyRepository

__all__ = ["PetshopRepository", "TenancyRepository"]
