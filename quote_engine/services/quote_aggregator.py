"""Quote aggregator.

The single place that knows the derivation order:

    total direct cost -> TP -> FTP -> discounted offer price (on FOP) ->
    effective markup (FOP vs MP) -> escalation -> invoice schedule

Create, update and preview all go through `calculate_quote`.
"""

from __future__ import annotations

import math
from dataclasses import asdict, dataclass, field, fields, replace
from datetime import date
from typing import Any, List, Mapping, Optional, Sequence

from quote_engine.services import pricing_calculator
from quote_engine.services.invoice_schedule import (
    InvoiceScheduleEntryData,
    generate_invoice_schedule,
)
from quote_engine.services.price_quote_errors import QuoteValidationError

DEFAULT_STATUS = "draft"


@dataclass(frozen=True)
class AdditionalCostData:
    description: str
    amount: float


@dataclass(frozen=True)
class QuoteInputs:
    """Raw, caller-supplied fields of a quote. None means "not set"."""

    name: Optional[str] = None
    status: str = DEFAULT_STATUS
    base_minimum_price_mp: Optional[float] = None
    target_markup_percentage: Optional[float] = None
    final_offer_price_fop: Optional[float] = None
    overall_discount_percentage: Optional[float] = None
    upfront_payment_percentage: Optional[float] = None
    upfront_payment_due_days: Optional[int] = None
    subsequent_installments_count: Optional[int] = None
    subsequent_installments_interval_days: Optional[int] = None

    @classmethod
    def field_names(cls) -> tuple[str, ...]:
        return tuple(f.name for f in fields(cls))

    @classmethod
    def from_record(cls, record: Any) -> "QuoteInputs":
        return cls(**{name: getattr(record, name) for name in cls.field_names()})

    def as_dict(self) -> dict[str, Any]:
        return asdict(self)


@dataclass(frozen=True)
class QuoteCalculatedOutputs:
    calculated_total_direct_cost: float
    calculated_target_price_tp: float
    calculated_full_target_price_ftp: float
    calculated_discounted_offer_price: float
    calculated_effective_markup_fop_over_mp: float
    escalation_status: str
    escalation_details: Optional[dict[str, Any]] = None

    def as_dict(self) -> dict[str, Any]:
        return asdict(self)


@dataclass(frozen=True)
class QuoteCalculation:
    inputs: QuoteInputs
    additional_costs: List[AdditionalCostData]
    outputs: QuoteCalculatedOutputs
    invoice_schedule: List[InvoiceScheduleEntryData] = field(default_factory=list)


def merge_quote_inputs(
    existing: QuoteInputs,
    changes: Mapping[str, Any],
    *,
    operation: str = "merge",
    quote_id: Optional[str] = None,
) -> QuoteInputs:
    """Apply a patch field by field.

    Keys present in `changes` win, including falsy values such as 0 and
    explicit None; absent keys keep the existing value. A None status falls
    back to the default status since status is not nullable.
    """

    known = set(QuoteInputs.field_names())
    unknown = sorted(set(changes) - known)
    if unknown:
        raise QuoteValidationError(
            f"unknown quote fields: {', '.join(unknown)}",
            operation=operation,
            quote_id=quote_id,
        )

    patch = {k: v for k, v in changes.items() if k in known}
    if "status" in patch and patch["status"] is None:
        patch["status"] = DEFAULT_STATUS
    return replace(existing, **patch)


_NON_NEGATIVE_FIELDS = (
    "base_minimum_price_mp",
    "target_markup_percentage",
    "final_offer_price_fop",
    "overall_discount_percentage",
    "upfront_payment_percentage",
    "upfront_payment_due_days",
    "subsequent_installments_count",
    "subsequent_installments_interval_days",
)

_PERCENTAGE_FIELDS = (
    "overall_discount_percentage",
    "upfront_payment_percentage",
)


def validate_quote_inputs(
    inputs: QuoteInputs,
    additional_costs: Sequence[AdditionalCostData] = (),
    *,
    operation: str,
    quote_id: Optional[str] = None,
) -> None:
    problems: list[str] = []
    for name in _NON_NEGATIVE_FIELDS:
        value = getattr(inputs, name)
        if value is None:
            continue
        if isinstance(value, bool) or not isinstance(value, (int, float)):
            problems.append(f"{name} must be a number")
        elif not math.isfinite(value):
            problems.append(f"{name} must be finite")
        elif value < 0:
            problems.append(f"{name} must not be negative")
        elif name in _PERCENTAGE_FIELDS and value > 100:
            problems.append(f"{name} must not exceed 100")

    for i, cost in enumerate(additional_costs):
        amount = cost.amount
        if isinstance(amount, bool) or not isinstance(amount, (int, float)):
            problems.append(f"additional_costs[{i}].amount must be a number")
        elif not math.isfinite(amount) or amount < 0:
            problems.append(f"additional_costs[{i}].amount must be a non-negative number")

    if problems:
        raise QuoteValidationError("; ".join(problems), operation=operation, quote_id=quote_id)


def _num(value: Optional[float]) -> float:
    return float(value) if value is not None else 0.0


def calculate_quote(
    inputs: QuoteInputs,
    additional_costs: Sequence[AdditionalCostData] = (),
    *,
    reference_date: date,
    operation: str = "calculate",
    quote_id: Optional[str] = None,
) -> QuoteCalculation:
    costs = list(additional_costs)
    validate_quote_inputs(inputs, costs, operation=operation, quote_id=quote_id)

    mp = _num(inputs.base_minimum_price_mp)
    fop = _num(inputs.final_offer_price_fop)

    tdc = pricing_calculator.total_direct_cost(mp, costs)
    tp = pricing_calculator.target_price(mp, _num(inputs.target_markup_percentage))
    ftp = pricing_calculator.full_target_price(tp, costs)
    # Discount applies to the raw FOP, not to FTP.
    discounted = pricing_calculator.discounted_offer_price(
        fop, _num(inputs.overall_discount_percentage)
    )
    markup = pricing_calculator.effective_markup(fop, mp)
    escalation = pricing_calculator.escalation_status(fop, mp, tdc)

    outputs = QuoteCalculatedOutputs(
        calculated_total_direct_cost=tdc,
        calculated_target_price_tp=tp,
        calculated_full_target_price_ftp=ftp,
        calculated_discounted_offer_price=discounted,
        calculated_effective_markup_fop_over_mp=markup,
        escalation_status=escalation.status.value,
        escalation_details=escalation.details,
    )

    schedule = generate_invoice_schedule(
        discounted,
        reference_date=reference_date,
        upfront_percentage=inputs.upfront_payment_percentage,
        upfront_due_days=inputs.upfront_payment_due_days,
        installments_count=inputs.subsequent_installments_count,
        installment_interval_days=inputs.subsequent_installments_interval_days,
    )

    return QuoteCalculation(
        inputs=inputs,
        additional_costs=costs,
        outputs=outputs,
        invoice_schedule=schedule,
    )
