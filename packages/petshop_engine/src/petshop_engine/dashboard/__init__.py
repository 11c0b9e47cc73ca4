"""Daily and monthly operational dashboard."""

from petshop_engine.dashboard.aggregation import DailySummary, DashboardService, MonthlySummary, day_bounds

__all__ = ["DailySummary", "DashboardService", "MonthlySummary", "day_bounds"]
