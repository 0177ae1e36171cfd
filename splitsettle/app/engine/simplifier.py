"""
engine/simplifier.py — Debt Simplifier: one Balance → settlement transactions.

Greedy minimum cash flow. Repeatedly matches the largest creditor with the
largest debtor until all balances reach zero. For N non-zero members it emits
at most N-1 transactions. This is not guaranteed to be the theoretical
minimum transaction count (that problem is NP-hard); it is the standard
practical approximation.

Determinism: heap entries are (amount key, member id), so equal amounts are
served in ascending member-id order and repeated runs on the same balance
produce an identical list, whatever the input dict's ordering.
"""

from __future__ import annotations

import heapq
from collections.abc import Iterable, Mapping
from decimal import Decimal

from splitsettle.app.engine.money import from_minor, round_to_minor, to_minor
from splitsettle.app.engine.types import Balance, MemberId, SettlementTransaction
from splitsettle.app.errors import UnbalancedLedgerError


def _balance_minor(balance: Mapping[MemberId, Decimal]) -> dict[MemberId, int]:
    """Balance in minor units. Sub-cent residue rounds away; NaN is unbalanced."""
    amounts: dict[MemberId, int] = {}
    for member, amount in balance.items():
        try:
            amounts[member] = round_to_minor(amount)
        except ValueError:
            raise UnbalancedLedgerError(amount) from None
    return amounts


def simplify(balance: Mapping[MemberId, Decimal]) -> list[SettlementTransaction]:
    """
    Turns a net Balance into a short list of debtor → creditor payments.

    Args:
        balance: {member_id: amount} from aggregate(). MUST sum to zero.
                 Amounts are rounded to the nearest cent first, so a member
                 within half a cent of zero is already settled.

    Returns:
        SettlementTransactions in the order they were matched. An empty list
        means every balance is already zero.

    Raises:
        UnbalancedLedgerError -- the rounded balance does not sum to zero, or
                                 holds a non-numeric amount. Signals a bug
                                 upstream; never corrected here.
    """
    amounts = _balance_minor(balance)

    total = sum(amounts.values())
    if total != 0:
        raise UnbalancedLedgerError(from_minor(total))

    # heapq is a min-heap: negate credits so the largest pops first.
    # Debts are already negative, so they sort largest-debt-first as-is.
    creditors = [(-amount, member) for member, amount in amounts.items() if amount > 0]
    debtors = [(amount, member) for member, amount in amounts.items() if amount < 0]
    heapq.heapify(creditors)
    heapq.heapify(debtors)

    transactions: list[SettlementTransaction] = []

    while creditors and debtors:
        negated_credit, creditor = heapq.heappop(creditors)
        negated_debt, debtor = heapq.heappop(debtors)
        credit, debt = -negated_credit, -negated_debt

        transfer = min(credit, debt)
        transactions.append(
            SettlementTransaction(
                from_member=debtor,
                to_member=creditor,
                amount=from_minor(transfer),
            )
        )

        if credit > transfer:
            heapq.heappush(creditors, (-(credit - transfer), creditor))
        if debt > transfer:
            heapq.heappush(debtors, (-(debt - transfer), debtor))

    return transactions


def apply_transactions(
        balance: Mapping[MemberId, Decimal],
        transactions: Iterable[SettlementTransaction],
) -> Balance:
    """
    Returns a new Balance with `transactions` paid.

    Paying raises the debtor (`from_member`) and lowers the creditor
    (`to_member`) by the amount. Applying simplify(balance) to balance yields
    all zeros.
    """
    amounts = _balance_minor(balance)
    for txn in transactions:
        paid = to_minor(txn.amount)
        amounts[txn.from_member] = amounts.get(txn.from_member, 0) + paid
        amounts[txn.to_member] = amounts.get(txn.to_member, 0) - paid
    return {member: from_minor(amounts[member]) for member in sorted(amounts)}
