"""
engine/aggregator.py — Balance Aggregator: many Expenses → one Balance.

Algorithm:
  1. Every known member starts at zero.
  2. Each expense's contribution (from the ledger) is added in.
  3. Recorded payments are applied last (debtor rises, creditor falls).

Pure summation over integers, so the result is identical for any ordering of
the input. All-or-nothing: the first InvalidSplitError aborts the whole
computation. A silently dropped expense would break the zero-sum guarantee.
"""

from __future__ import annotations

from collections import defaultdict
from collections.abc import Iterable

from splitsettle.app.engine.ledger import contribution_minor, member_ids
from splitsettle.app.engine.money import from_minor, to_minor
from splitsettle.app.engine.types import Balance, Expense, MemberId, SettlementTransaction


def _aggregate_minor(
        expenses: Iterable[Expense],
        members: Iterable | None = None,
        *,
        payments: Iterable[SettlementTransaction] = (),
        strict: bool = False,
) -> dict[MemberId, int]:
    """aggregate() in integer minor units."""
    known = member_ids(members) if members is not None else frozenset()
    totals: dict[MemberId, int] = defaultdict(int)

    for member in known:
        totals[member] += 0

    validation_set = known if strict else None
    for expense in expenses:
        for member, delta in contribution_minor(expense, validation_set).items():
            totals[member] += delta

    for payment in payments:
        amount = to_minor(payment.amount)
        totals[payment.from_member] += amount
        totals[payment.to_member] -= amount

    return dict(totals)


def aggregate(
        expenses: Iterable[Expense],
        members: Iterable | None = None,
        *,
        payments: Iterable[SettlementTransaction] = (),
        strict: bool = False,
) -> Balance:
    """
    Folds all of a group's expenses into one net Balance.

    Args:
        expenses: Every expense of one group. The caller filters by group and
                  time range before calling.
        members:  Optional known members (ids or Member objects). Each one
                  appears in the result even with a zero balance. Expenses
                  that reference other ids still contribute.
        payments: Settlement payments already made. Applied after expenses.
        strict:   When True, `members` is also the ledger's validation set,
                  so any expense referencing an outsider is rejected.

    Returns:
        {member_id: Decimal}, positive = is owed, negative = owes, in
        ascending member-id order. Sums to exactly Decimal("0.00").

    Raises:
        InvalidSplitError -- propagated unmodified from the first bad expense.
    """
    totals = _aggregate_minor(expenses, members, payments=payments, strict=strict)
    return {member: from_minor(totals[member]) for member in sorted(totals)}
