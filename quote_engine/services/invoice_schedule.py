"""Invoice schedule generation for price quotes.

The schedule is an upfront entry (optional) followed by N equal installments.
Installment due dates are chained: each one is the previous installment's due
date plus the interval, starting from the upfront due date (or the reference
date when there is no upfront entry).

Installments are an even split of the remaining amount with no remainder
redistribution, so the entry amounts can drift from the price by floating
point error (bounded by a few ulps of the price, per entry).
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date, timedelta
from typing import List, Optional

UPFRONT_ENTRY_TYPE = "upfront"
INSTALLMENT_ENTRY_PREFIX = "installment_"


@dataclass(frozen=True)
class InvoiceScheduleEntryData:
    entry_type: str
    due_date: date
    amount_due: float
    description: Optional[str] = None


def installment_entry_type(n: int) -> str:
    return f"{INSTALLMENT_ENTRY_PREFIX}{n}"


def _format_percentage(value: float) -> str:
    return f"{value:g}"


def generate_invoice_schedule(
    final_price: float,
    *,
    reference_date: date,
    upfront_percentage: Optional[float] = None,
    upfront_due_days: Optional[int] = None,
    installments_count: Optional[int] = None,
    installment_interval_days: Optional[int] = None,
) -> List[InvoiceScheduleEntryData]:
    entries: List[InvoiceScheduleEntryData] = []
    remaining = final_price
    upfront_pct = upfront_percentage or 0
    count = int(installments_count or 0)
    interval = int(installment_interval_days or 0)

    anchor = reference_date
    if upfront_pct > 0 and final_price > 0:
        upfront_amount = final_price * (upfront_pct / 100)
        anchor = reference_date + timedelta(days=int(upfront_due_days or 0))
        entries.append(
            InvoiceScheduleEntryData(
                entry_type=UPFRONT_ENTRY_TYPE,
                due_date=anchor,
                amount_due=upfront_amount,
                description=f"Upfront payment ({_format_percentage(upfront_pct)}%)",
            )
        )
        remaining -= upfront_amount

    if count > 0 and remaining > 0 and interval > 0:
        installment_amount = remaining / count
        due = anchor
        for n in range(1, count + 1):
            due = due + timedelta(days=interval)
            entries.append(
                InvoiceScheduleEntryData(
                    entry_type=installment_entry_type(n),
                    due_date=due,
                    amount_due=installment_amount,
                    description=f"Installment {n} of {count}",
                )
            )

    return entries
