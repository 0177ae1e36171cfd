"""
tests/unit/test_equal_split.py — Unit tests for equal splits in the ledger.

What this file proves:
  - $100 / 3 members → owed amounts sum to exactly 100.00
  - Leftover cents go one each to the lowest member ids
  - The payer's contribution is +amount minus their own share
  - A payer outside the participants gets the full +amount
  - Every contribution sums to exactly zero
  - Amounts are Decimal with two places, never float

Unit test constraints:
  - No database, no Flask.
  - Engine functions take plain value objects — no mocking required.
"""

from __future__ import annotations

from decimal import Decimal

import pytest

from splitsettle.app.engine import EqualSplit, Expense, compute_contribution
from splitsettle.app.engine.ledger import owed_minor


def _equal(amount: str, payer, participants) -> Expense:
    return Expense(Decimal(amount), payer=payer, split=EqualSplit(tuple(participants)))


# ── Sum preservation ───────────────────────────────────────────────────────

@pytest.mark.parametrize(
    "amount, n",
    [
        ("100.00", 3),
        ("10.00", 3),
        ("0.01", 3),
        ("0.02", 3),
        ("1.00", 7),
        ("999.99", 4),
        ("100.00", 1),
        ("33.33", 2),
    ],
)
def test_owed_amounts_sum_to_total(amount, n):
    expense = _equal(amount, payer=1, participants=range(1, n + 1))

    owed = owed_minor(expense)

    assert sum(owed.values()) == int(Decimal(amount) * 100)


@pytest.mark.parametrize("amount, n", [("100.00", 3), ("0.01", 2), ("7.77", 5)])
def test_contribution_sums_to_zero(amount, n):
    expense = _equal(amount, payer=1, participants=range(1, n + 1))

    contribution = compute_contribution(expense)

    assert sum(contribution.values(), Decimal("0.00")) == Decimal("0.00")


# ── Remainder distribution ─────────────────────────────────────────────────

def test_hundred_split_three_ways():
    """
    100.00 / 3 = 33.33 each with 1 cent left over.
    The cent goes to the lowest id, A, who is also the payer.
    """
    expense = _equal("100.00", payer="A", participants=["A", "B", "C"])

    contribution = compute_contribution(expense)

    assert contribution == {
        "A": Decimal("66.66"),
        "B": Decimal("-33.33"),
        "C": Decimal("-33.33"),
    }


def test_remainder_goes_to_lowest_ids_not_payer():
    """10.00 / 3: 334, 333, 333 cents. Payer 3 does not get the extra cent."""
    expense = _equal("10.00", payer=3, participants=[3, 1, 2])

    owed = owed_minor(expense)

    assert owed == {1: 334, 2: 333, 3: 333}


def test_two_cent_remainder_spreads_over_two_members():
    """0.05 / 3: 1 cent each plus 2 leftover → 2, 2, 1."""
    expense = _equal("0.05", payer=1, participants=[1, 2, 3])

    assert owed_minor(expense) == {1: 2, 2: 2, 3: 1}


def test_remainder_rule_ignores_participant_order():
    first = owed_minor(_equal("10.00", payer=1, participants=[1, 2, 3]))
    second = owed_minor(_equal("10.00", payer=1, participants=[3, 2, 1]))

    assert first == second


def test_fewer_cents_than_participants():
    """0.02 among 3: two members owe a cent, one owes nothing."""
    expense = _equal("0.02", payer=1, participants=[1, 2, 3])

    assert owed_minor(expense) == {1: 1, 2: 1, 3: 0}


# ── Payer handling ─────────────────────────────────────────────────────────

def test_payer_not_participating_gets_full_credit():
    """Payer fronts 90.00 for B and C only."""
    expense = _equal("90.00", payer="A", participants=["B", "C"])

    contribution = compute_contribution(expense)

    assert contribution == {
        "A": Decimal("90.00"),
        "B": Decimal("-45.00"),
        "C": Decimal("-45.00"),
    }


def test_single_participant_who_is_payer_nets_zero():
    expense = _equal("25.00", payer="A", participants=["A"])

    assert compute_contribution(expense) == {"A": Decimal("0.00")}


def test_contribution_values_are_decimal_with_two_places():
    contribution = compute_contribution(_equal("10", payer=1, participants=[1, 2]))

    for value in contribution.values():
        assert isinstance(value, Decimal)
        assert value.as_tuple().exponent == -2
