from quote_engine.models.audit_log import AuditLog
from quote_engine.models.price_quote import (
    PriceQuote,
    QuoteAdditionalCost,
    QuoteInvoiceScheduleEntry,
)

__all__ = [
    "AuditLog",
    "PriceQuote",
    "QuoteAdditionalCost",
    "QuoteInvoiceScheduleEntry",
]
