from __future__ import annotations

import uuid
from datetime import date, datetime
from typing import List

from sqlalchemy import JSON, Date, DateTime, Float, ForeignKey, Integer, String, Text
from sqlalchemy.orm import Mapped, mapped_column, relationship

from quote_engine.database import Base


def _uuid_str() -> str:
    return str(uuid.uuid4())


class PriceQuote(Base):
    """One commercial proposal for a deal.

    Raw inputs and the derived snapshot live on the same row and are always
    written together. `version_number` is bumped by the ORM on every UPDATE
    and guards against concurrent edits.
    """

    __tablename__ = "price_quotes"

    # Keep as string for cross-db compatibility (SQLite tests/dev), while still storing UUID values.
    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=_uuid_str)
    deal_id: Mapped[str] = mapped_column(String(64), nullable=False, index=True)
    user_id: Mapped[str] = mapped_column(String(64), nullable=False, index=True)
    version_number: Mapped[int] = mapped_column(Integer, nullable=False)

    name: Mapped[str | None] = mapped_column(String(255), nullable=True)
    status: Mapped[str] = mapped_column(String(32), nullable=False, default="draft")

    base_minimum_price_mp: Mapped[float | None] = mapped_column(Float, nullable=True)
    target_markup_percentage: Mapped[float | None] = mapped_column(Float, nullable=True)
    final_offer_price_fop: Mapped[float | None] = mapped_column(Float, nullable=True)
    overall_discount_percentage: Mapped[float | None] = mapped_column(Float, nullable=True)
    upfront_payment_percentage: Mapped[float | None] = mapped_column(Float, nullable=True)
    upfront_payment_due_days: Mapped[int | None] = mapped_column(Integer, nullable=True)
    subsequent_installments_count: Mapped[int | None] = mapped_column(Integer, nullable=True)
    subsequent_installments_interval_days: Mapped[int | None] = mapped_column(
        Integer, nullable=True
    )

    calculated_total_direct_cost: Mapped[float] = mapped_column(Float, nullable=False)
    calculated_target_price_tp: Mapped[float] = mapped_column(Float, nullable=False)
    calculated_full_target_price_ftp: Mapped[float] = mapped_column(Float, nullable=False)
    calculated_discounted_offer_price: Mapped[float] = mapped_column(Float, nullable=False)
    calculated_effective_markup_fop_over_mp: Mapped[float] = mapped_column(Float, nullable=False)
    escalation_status: Mapped[str] = mapped_column(String(64), nullable=False, index=True)
    escalation_details: Mapped[dict | None] = mapped_column(JSON, nullable=True)

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=datetime.utcnow, index=True
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=datetime.utcnow
    )

    additional_costs: Mapped[List["QuoteAdditionalCost"]] = relationship(
        "QuoteAdditionalCost",
        back_populates="price_quote",
        cascade="all, delete-orphan",
        order_by="QuoteAdditionalCost.position",
        lazy="selectin",
    )
    invoice_schedule_entries: Mapped[List["QuoteInvoiceScheduleEntry"]] = relationship(
        "QuoteInvoiceScheduleEntry",
        back_populates="price_quote",
        cascade="all, delete-orphan",
        order_by="QuoteInvoiceScheduleEntry.position",
        lazy="selectin",
    )

    __mapper_args__ = {"version_id_col": version_number}

    def __repr__(self) -> str:
        return (
            f"<PriceQuote(id={self.id!r}, deal_id={self.deal_id!r}, "
            f"version={self.version_number}, status={self.escalation_status!r})>"
        )


class QuoteAdditionalCost(Base):
    __tablename__ = "quote_additional_costs"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=_uuid_str)
    price_quote_id: Mapped[str] = mapped_column(
        ForeignKey("price_quotes.id", ondelete="CASCADE"), nullable=False, index=True
    )
    position: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    description: Mapped[str] = mapped_column(Text, nullable=False)
    amount: Mapped[float] = mapped_column(Float, nullable=False)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=datetime.utcnow
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=datetime.utcnow
    )

    price_quote = relationship("PriceQuote", back_populates="additional_costs")


class QuoteInvoiceScheduleEntry(Base):
    __tablename__ = "quote_invoice_schedule_entries"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=_uuid_str)
    price_quote_id: Mapped[str] = mapped_column(
        ForeignKey("price_quotes.id", ondelete="CASCADE"), nullable=False, index=True
    )
    position: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    # "upfront" | "installment_<n>"
    entry_type: Mapped[str] = mapped_column(String(32), nullable=False)
    due_date: Mapped[date] = mapped_column(Date, nullable=False)
    amount_due: Mapped[float] = mapped_column(Float, nullable=False)
    description: Mapped[str | None] = mapped_column(Text, nullable=True)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=datetime.utcnow
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=datetime.utcnow
    )

    price_quote = relationship("PriceQuote", back_populates="invoice_schedule_entries")
