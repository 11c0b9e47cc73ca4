"""Client segmentation into campaign buckets."""

from petshop_engine.segmentation.classifier import (
    DEFAULT_INACTIVITY_DAYS,
    MAX_INACTIVITY_DAYS,
    MIN_INACTIVITY_DAYS,
    classify,
    days_inactive,
    inactivity_level,
    validate_threshold,
)
from petshop_engine.segmentation.service import RecalculationSummary, SegmentationService

__all__ = [
    "DEFAULT_INACTIVITY_DAYS",
    "MAX_INACTIVITY_DAYS",
    "MIN_INACTIVITY_DAYS",
    "RecalculationSummary",
    "SegmentationService",
    "classify",
    "days_inactive",
    "inactivity_level",
    "validate_threshold",
]
