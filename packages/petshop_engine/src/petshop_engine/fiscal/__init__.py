"""NFC-e issuance through Focus NFe."""

from petshop_engine.fiscal.focus_client import (
    FocusNFeClient,
    map_focus_status,
    map_payment_method,
    translate_focus_error,
)
from petshop_engine.fiscal.service import ConfigValidation, InvoiceItem, InvoiceResult, InvoiceService

__all__ = [
    "ConfigValidation",
    "FocusNFeClient",
    "InvoiceItem",
    "InvoiceResult",
    "InvoiceService",
    "map_focus_status",
    "map_payment_method",
    "translate_focus_error",
]
