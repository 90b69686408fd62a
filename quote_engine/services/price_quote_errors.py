from __future__ import annotations

from typing import Optional


class PriceQuoteError(Exception):
    code = "price_quote_error"

    def __init__(self, message: str, *, operation: str, quote_id: Optional[str] = None) -> None:
        super().__init__(message)
        self.message = message
        self.operation = operation
        self.quote_id = quote_id

    def __str__(self) -> str:
        if self.quote_id:
            return f"{self.operation} price quote {self.quote_id}: {self.message}"
        return f"{self.operation} price quote: {self.message}"

    def to_detail(self) -> dict:
        return {
            "detail": self.message,
            "code": self.code,
            "operation": self.operation,
            "quote_id": self.quote_id,
        }


class QuoteValidationError(PriceQuoteError, ValueError):
    code = "price_quote_invalid_input"


class QuoteNotFoundError(PriceQuoteError):
    code = "price_quote_not_found"


class QuotePersistenceError(PriceQuoteError):
    code = "price_quote_persistence_failed"


class QuotePartialWriteError(QuotePersistenceError):
    """A child-collection replace failed between its delete and insert."""

    code = "price_quote_partial_write"


class QuoteConcurrencyError(PriceQuoteError):
    code = "price_quote_version_conflict"
