"""
tests/unit/test_debt_simplification.py — Unit tests for simplifier.simplify.

What this file proves:
  - Two-person debt → single transaction
  - Largest creditor is served first; ties break by ascending member id
  - All-zero balances → empty transaction list
  - For N non-zero members → at most N-1 transactions
  - All transactions are directionally correct (debtor → creditor)
  - Applying the transactions zeroes every balance (economic correctness)
  - Output is deterministic whatever the input dict's ordering
  - An unbalanced input raises UnbalancedLedgerError, never corrected
  - Sub-cent residue rounds to the nearest cent; within half a cent of zero
    a member is settled
  - Transaction amounts are Decimal, not float

Unit test constraints:
  - No database, no Flask.
  - simplify takes a plain dict[member, Decimal] — no mocking required.
"""

from __future__ import annotations

from decimal import Decimal

import pytest

from splitsettle.app.engine import SettlementTransaction, apply_transactions, simplify
from splitsettle.app.errors import ErrorCode, UnbalancedLedgerError


# ── Helpers ────────────────────────────────────────────────────────────────

def _verify_correctness(
    original_balances: dict,
    transactions: list[SettlementTransaction],
) -> None:
    """
    Applies the transactions to the balances and asserts every member ends
    at exactly zero.

    This is the economic correctness check: simplify must not invent money,
    lose money, or misroute payments.
    """
    settled = apply_transactions(original_balances, transactions)
    for member, amount in settled.items():
        assert amount == Decimal("0.00"), (
            f"Simplification incorrect for member {member}: {amount} left over"
        )


def _sum_balances(balances: dict) -> Decimal:
    """Utility to verify the zero-sum pre-condition before calling simplify."""
    return sum(balances.values(), Decimal("0.00"))


def _non_zero(balances: dict) -> int:
    return sum(1 for amount in balances.values() if amount != 0)


# ── Tests ──────────────────────────────────────────────────────────────────

def test_all_zero_returns_empty_list():
    """Already-settled balance → no transactions needed."""
    balances = {"A": Decimal("0.00"), "B": Decimal("0.00")}
    assert simplify(balances) == []


def test_empty_dict_returns_empty_list():
    """Edge case: no members."""
    assert simplify({}) == []


def test_two_person_debt_one_transaction():
    """
    Alice is owed $30 (balance +30), Bob owes $30 (balance -30).
    Result: exactly one transaction, Bob → Alice, $30.
    """
    balances = {"A": Decimal("30.00"), "B": Decimal("-30.00")}
    assert _sum_balances(balances) == Decimal("0.00"), "zero-sum pre-condition must hold"

    result = simplify(balances)

    assert result == [SettlementTransaction("B", "A", Decimal("30.00"))]


def test_largest_creditor_served_first():
    """
    A +50, B +30, C -80 → C pays A 50 first, then B 30.
    """
    balances = {
        "A": Decimal("50.00"),
        "B": Decimal("30.00"),
        "C": Decimal("-80.00"),
    }

    result = simplify(balances)

    assert [t.to_dict() for t in result] == [
        {"from": "C", "to": "A", "amount": "50.00"},
        {"from": "C", "to": "B", "amount": "30.00"},
    ]


def test_largest_debtor_pays_first():
    balances = {1: Decimal("100.00"), 2: Decimal("-40.00"), 3: Decimal("-60.00")}

    result = simplify(balances)

    assert result == [
        SettlementTransaction(3, 1, Decimal("60.00")),
        SettlementTransaction(2, 1, Decimal("40.00")),
    ]


def test_ties_break_by_lowest_member_id():
    balances = {
        4: Decimal("-25.00"),
        3: Decimal("-25.00"),
        2: Decimal("25.00"),
        1: Decimal("25.00"),
    }

    result = simplify(balances)

    assert result == [
        SettlementTransaction(3, 1, Decimal("25.00")),
        SettlementTransaction(4, 2, Decimal("25.00")),
    ]


def test_deterministic_across_input_orderings():
    items = [
        (1, Decimal("100.00")),
        (2, Decimal("50.00")),
        (3, Decimal("-40.00")),
        (4, Decimal("-60.00")),
        (5, Decimal("-50.00")),
    ]

    forward = simplify(dict(items))
    backward = simplify(dict(reversed(items)))

    assert forward == backward
    assert simplify(dict(items)) == forward


def test_two_creditors_two_debtors():
    """
    Alice +$80, Dave +$20, Bob -$50, Carol -$50.
    N=4, at most N-1=3 transactions.
    """
    balances = {
        1: Decimal("80.00"),   # Alice owed
        2: Decimal("-50.00"),  # Bob owes
        3: Decimal("-50.00"),  # Carol owes
        4: Decimal("20.00"),   # Dave owed
    }
    assert _sum_balances(balances) == Decimal("0.00")

    result = simplify(balances)

    assert len(result) <= 3
    _verify_correctness(balances, result)


@pytest.mark.parametrize(
    "balances",
    [
        {1: Decimal("100.00"), 2: Decimal("50.00"), 3: Decimal("-40.00"),
         4: Decimal("-60.00"), 5: Decimal("-50.00")},
        {1: Decimal("0.01"), 2: Decimal("0.01"), 3: Decimal("-0.02")},
        {1: Decimal("33.33"), 2: Decimal("33.33"), 3: Decimal("33.34"),
         4: Decimal("-50.00"), 5: Decimal("-50.00"), 6: Decimal("0.00")},
    ],
)
def test_at_most_n_minus_one_transactions(balances):
    assert _sum_balances(balances) == Decimal("0.00")

    result = simplify(balances)

    assert len(result) <= _non_zero(balances) - 1
    _verify_correctness(balances, result)


def test_zero_balances_are_skipped():
    balances = {1: Decimal("10.00"), 2: Decimal("0.00"), 3: Decimal("-10.00")}

    result = simplify(balances)

    assert result == [SettlementTransaction(3, 1, Decimal("10.00"))]


def test_single_cent_debt():
    """Minimum meaningful amount: $0.01."""
    result = simplify({1: Decimal("0.01"), 2: Decimal("-0.01")})

    assert len(result) == 1
    assert result[0].amount == Decimal("0.01")


def test_large_amounts():
    """Large monetary values work correctly."""
    result = simplify({1: Decimal("999999.99"), 2: Decimal("-999999.99")})

    assert result[0].amount == Decimal("999999.99")


def test_unbalanced_input_is_rejected():
    """Everyone owed, nobody owes: a bug upstream, never silently corrected."""
    with pytest.raises(UnbalancedLedgerError) as exc_info:
        simplify({1: Decimal("50.00"), 2: Decimal("50.00")})

    err = exc_info.value
    assert err.code == ErrorCode.UNBALANCED_LEDGER
    assert err.total == Decimal("100.00")
    assert err.http_status == 500


def test_off_by_one_cent_is_rejected():
    with pytest.raises(UnbalancedLedgerError):
        simplify({1: Decimal("50.00"), 2: Decimal("-49.99")})


def test_sub_cent_residue_counts_as_settled():
    """Half a cent either side of zero rounds to nothing: no payment is due."""
    assert simplify({"A": Decimal("0.005"), "B": Decimal("-0.005")}) == []


def test_sub_cent_balances_are_rounded_to_the_cent():
    result = simplify({1: Decimal("10.004"), 2: Decimal("-10.004")})

    assert result == [SettlementTransaction(2, 1, Decimal("10.00"))]


def test_rounding_that_breaks_zero_sum_is_rejected():
    """0.006 rounds up to 0.01 while -0.004 rounds to zero."""
    with pytest.raises(UnbalancedLedgerError) as exc_info:
        simplify({1: Decimal("0.006"), 2: Decimal("-0.004"), 3: Decimal("-0.002")})

    assert exc_info.value.total == Decimal("0.01")


def test_non_numeric_balance_raises_unbalanced_ledger():
    with pytest.raises(UnbalancedLedgerError):
        simplify({1: Decimal("NaN"), 2: Decimal("0.00")})


def test_transaction_amounts_are_positive_decimals():
    balances = {1: Decimal("100.00"), 2: Decimal("-60.00"), 3: Decimal("-40.00")}

    for txn in simplify(balances):
        assert isinstance(txn.amount, Decimal)
        assert txn.amount > Decimal("0.00")
        assert txn.from_member != txn.to_member


# ── apply_transactions ─────────────────────────────────────────────────────

def test_apply_partial_transactions_leaves_remainder():
    balances = {"A": Decimal("50.00"), "B": Decimal("-50.00")}

    result = apply_transactions(balances, [SettlementTransaction("B", "A", Decimal("20.00"))])

    assert result == {"A": Decimal("30.00"), "B": Decimal("-30.00")}


def test_apply_transactions_does_not_mutate_input():
    balances = {"A": Decimal("50.00"), "B": Decimal("-50.00")}

    apply_transactions(balances, simplify(balances))

    assert balances == {"A": Decimal("50.00"), "B": Decimal("-50.00")}


# ── SettlementTransaction ──────────────────────────────────────────────────

def test_self_payment_is_not_a_valid_transaction():
    with pytest.raises(ValueError):
        SettlementTransaction("A", "A", Decimal("1.00"))


def test_non_positive_transaction_amount_is_rejected():
    with pytest.raises(ValueError):
        SettlementTransaction("A", "B", Decimal("0.00"))
