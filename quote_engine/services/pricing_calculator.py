"""Price quote calculator.

Pure functions over plain numbers: no I/O, no state, no rounding.

Percentages are whole numbers (15 means 15%) and are divided by 100 here,
which is the convention the existing callers send on the wire.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Any, Iterable, Optional

# Escalation policy.
COMMITTEE_MIN_MARKUP_FACTOR = 1.10

REASON_BELOW_DIRECT_COST = "Offer price below total direct cost"
REASON_MARKUP_BELOW_MINIMUM = "Markup less than 10% over MP"


class EscalationStatus(str, Enum):
    ok = "ok"
    requires_committee_approval = "requires_committee_approval"
    requires_ceo_approval = "requires_ceo_approval"


@dataclass(frozen=True)
class EscalationResult:
    status: EscalationStatus
    details: Optional[dict[str, Any]] = None


def _amount_of(cost: Any) -> float:
    if isinstance(cost, dict):
        return float(cost.get("amount") or 0.0)
    amount = getattr(cost, "amount", cost)
    return float(amount or 0.0)


def sum_additional_costs(additional_costs: Iterable[Any] | None) -> float:
    """Accepts numbers, dicts with `amount`, or objects with an `amount` attribute."""

    total = 0.0
    for cost in additional_costs or ():
        total += _amount_of(cost)
    return total


def total_direct_cost(mp: float, additional_costs: Iterable[Any] | None = None) -> float:
    return mp + sum_additional_costs(additional_costs)


def target_price(mp: float, target_markup_percentage: float) -> float:
    return mp * (1 + target_markup_percentage / 100)


def full_target_price(target_price_tp: float, additional_costs: Iterable[Any] | None = None) -> float:
    return target_price_tp + sum_additional_costs(additional_costs)


def discounted_offer_price(fop: float, discount_percentage: float) -> float:
    return fop * (1 - discount_percentage / 100)


def effective_markup(fop: float, mp: float) -> float:
    # mp == 0 is defined behaviour, not an error.
    if mp == 0:
        return 0.0
    return ((fop - mp) / mp) * 100


def escalation_status(fop: float, mp: float, total_direct_cost_value: float) -> EscalationResult:
    """Classify a quote for approval. Checks are ordered; the first match wins."""

    if fop < total_direct_cost_value:
        return EscalationResult(
            status=EscalationStatus.requires_ceo_approval,
            details={
                "reason": REASON_BELOW_DIRECT_COST,
                "final_offer_price_fop": fop,
                "total_direct_cost": total_direct_cost_value,
            },
        )

    threshold = mp * COMMITTEE_MIN_MARKUP_FACTOR
    if fop < threshold:
        return EscalationResult(
            status=EscalationStatus.requires_committee_approval,
            details={
                "reason": REASON_MARKUP_BELOW_MINIMUM,
                "final_offer_price_fop": fop,
                "threshold_price": threshold,
            },
        )

    return EscalationResult(status=EscalationStatus.ok, details=None)
