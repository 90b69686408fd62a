import math

import pytest

from quote_engine.services import pricing_calculator as pc
from quote_engine.services.pricing_calculator import EscalationStatus


@pytest.mark.parametrize("mp", [0.0, 1.0, 999.99, 1_000_000.0])
def test_total_direct_cost_without_costs_is_mp(mp):
    assert pc.total_direct_cost(mp, []) == mp
    assert pc.total_direct_cost(mp, None) == mp


def test_total_direct_cost_sums_amounts_in_any_shape():
    class Cost:
        def __init__(self, amount):
            self.amount = amount

    costs = [{"description": "freight", "amount": 50.0}, Cost(25.5), 4.5]
    assert pc.total_direct_cost(100.0, costs) == pytest.approx(180.0)


def test_target_and_full_target_price():
    tp = pc.target_price(1000.0, 20)
    assert tp == pytest.approx(1200.0)
    assert pc.full_target_price(tp, [{"amount": 150.0}]) == pytest.approx(1350.0)


def test_percentages_are_whole_numbers():
    assert pc.target_price(200.0, 15) == pytest.approx(230.0)
    assert pc.discounted_offer_price(200.0, 15) == pytest.approx(170.0)
    assert pc.discounted_offer_price(200.0, 0) == 200.0
    assert pc.discounted_offer_price(200.0, 100) == 0.0


@pytest.mark.parametrize("fop", [0.0, 10.0, -5.0, 1e9])
def test_effective_markup_with_zero_mp_is_zero(fop):
    assert pc.effective_markup(fop, 0) == 0.0


def test_effective_markup():
    assert pc.effective_markup(1250.0, 1000.0) == pytest.approx(25.0)
    assert pc.effective_markup(1000.0, 1000.0) == 0.0
    assert pc.effective_markup(800.0, 1000.0) == pytest.approx(-20.0)


def test_escalation_below_direct_cost_requires_ceo():
    result = pc.escalation_status(800.0, 1000.0, 1000.0)
    assert result.status is EscalationStatus.requires_ceo_approval
    assert result.details["reason"] == pc.REASON_BELOW_DIRECT_COST
    assert result.details["final_offer_price_fop"] == 800.0
    assert result.details["total_direct_cost"] == 1000.0


def test_escalation_thin_markup_requires_committee():
    result = pc.escalation_status(1000.0, 1000.0, 1000.0)
    assert result.status is EscalationStatus.requires_committee_approval
    assert result.details["reason"] == pc.REASON_MARKUP_BELOW_MINIMUM
    assert result.details["threshold_price"] == pytest.approx(1100.0)


def test_escalation_ok_has_no_details():
    result = pc.escalation_status(1100.0, 1000.0, 1000.0)
    assert result.status is EscalationStatus.ok
    assert result.details is None


def test_escalation_ceo_check_wins_over_committee():
    # Fails both checks; the first one in order decides.
    result = pc.escalation_status(900.0, 1000.0, 1200.0)
    assert result.status is EscalationStatus.requires_ceo_approval


@pytest.mark.parametrize(
    "fop,mp,tdc",
    [
        (0.0, 0.0, 0.0),
        (1.0, 0.0, 0.0),
        (0.0, 1.0, 0.0),
        (1099.99, 1000.0, 1000.0),
        (1100.0, 1000.0, 1100.0),
        (5.0, 1.0, 10.0),
        (math.inf, 1.0, 1.0),
    ],
)
def test_escalation_is_total(fop, mp, tdc):
    result = pc.escalation_status(fop, mp, tdc)
    assert result.status in set(EscalationStatus)
    assert (result.details is None) == (result.status is EscalationStatus.ok)
