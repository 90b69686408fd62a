from quote_engine.schemas.price_quotes import (
    AdditionalCostInput,
    AdditionalCostRead,
    InvoiceScheduleEntryRead,
    PriceQuoteCreate,
    PriceQuoteListRead,
    PriceQuotePreview,
    PriceQuoteRead,
    PriceQuoteUpdate,
)

__all__ = [
    "AdditionalCostInput",
    "AdditionalCostRead",
    "InvoiceScheduleEntryRead",
    "PriceQuoteCreate",
    "PriceQuoteListRead",
    "PriceQuotePreview",
    "PriceQuoteRead",
    "PriceQuoteUpdate",
]
