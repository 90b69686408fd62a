from __future__ import annotations

from datetime import date, datetime
from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field


class AdditionalCostInput(BaseModel):
    description: str = Field(..., min_length=1)
    amount: float = Field(..., ge=0)


class PriceQuoteFields(BaseModel):
    """Raw quote fields shared by create, update and preview payloads.

    Every field is optional; on update only the fields actually sent are
    applied, and an explicit null clears the stored value.
    """

    model_config = ConfigDict(extra="forbid")

    name: Optional[str] = Field(None, max_length=255)
    status: Optional[str] = Field(None, max_length=32)
    base_minimum_price_mp: Optional[float] = Field(None, ge=0)
    target_markup_percentage: Optional[float] = Field(None, ge=0)
    final_offer_price_fop: Optional[float] = Field(None, ge=0)
    overall_discount_percentage: Optional[float] = Field(None, ge=0, le=100)
    upfront_payment_percentage: Optional[float] = Field(None, ge=0, le=100)
    upfront_payment_due_days: Optional[int] = Field(None, ge=0)
    subsequent_installments_count: Optional[int] = Field(None, ge=0)
    subsequent_installments_interval_days: Optional[int] = Field(None, ge=0)
    additional_costs: Optional[list[AdditionalCostInput]] = None

    def quote_changes(self) -> dict[str, Any]:
        """Fields the caller actually sent, minus the cost list."""

        data = self.model_dump(exclude_unset=True)
        data.pop("additional_costs", None)
        return data


class PriceQuoteCreate(PriceQuoteFields):
    pass


class PriceQuoteUpdate(PriceQuoteFields):
    # Optional optimistic-lock guard; None skips the check.
    expected_version: Optional[int] = Field(None, ge=1)

    def quote_changes(self) -> dict[str, Any]:
        data = super().quote_changes()
        data.pop("expected_version", None)
        return data


class PriceQuotePreview(PriceQuoteFields):
    pass


class AdditionalCostRead(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    price_quote_id: str
    description: str
    amount: float
    created_at: datetime
    updated_at: datetime


class InvoiceScheduleEntryRead(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    price_quote_id: str
    entry_type: str
    due_date: date
    amount_due: float
    description: Optional[str] = None
    created_at: datetime
    updated_at: datetime


class PriceQuoteRead(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    deal_id: str
    user_id: str
    version_number: int
    name: Optional[str] = None
    status: str

    base_minimum_price_mp: Optional[float] = None
    target_markup_percentage: Optional[float] = None
    final_offer_price_fop: Optional[float] = None
    overall_discount_percentage: Optional[float] = None
    upfront_payment_percentage: Optional[float] = None
    upfront_payment_due_days: Optional[int] = None
    subsequent_installments_count: Optional[int] = None
    subsequent_installments_interval_days: Optional[int] = None

    calculated_total_direct_cost: float
    calculated_target_price_tp: float
    calculated_full_target_price_ftp: float
    calculated_discounted_offer_price: float
    calculated_effective_markup_fop_over_mp: float
    escalation_status: str
    escalation_details: Optional[dict[str, Any]] = None

    created_at: datetime
    updated_at: datetime

    additional_costs: list[AdditionalCostRead] = Field(default_factory=list)
    invoice_schedule_entries: list[InvoiceScheduleEntryRead] = Field(default_factory=list)


class PriceQuoteListRead(BaseModel):
    items: list[PriceQuoteRead]
