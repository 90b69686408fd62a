from quote_engine.services.audit import audit_event
from quote_engine.services.price_quote_service import (
    create_price_quote,
    delete_price_quote,
    get_price_quote,
    list_price_quotes_for_deal,
    preview_price_quote,
    update_price_quote,
)
from quote_engine.services.quote_aggregator import calculate_quote

__all__ = [
    "audit_event",
    "calculate_quote",
    "create_price_quote",
    "delete_price_quote",
    "get_price_quote",
    "list_price_quotes_for_deal",
    "preview_price_quote",
    "update_price_quote",
]
