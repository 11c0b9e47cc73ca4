"""Point-of-sale sales feeding client purchase history."""

from petshop_engine.sales.service import SalesService

__all__ = ["SalesService"]
