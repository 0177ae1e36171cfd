"""
engine/pairwise.py — Unsimplified, per-pair view of who owes whom.

Each participant owes the payer of every expense their owed share. Obligations
between the same two members are netted against each other (and against
payments already made between them), leaving at most one debt per pair.

Unlike simplify(), this never routes money through a third member: if Bob
owes Alice, the result says so, even when a shorter plan exists.
"""

from __future__ import annotations

from collections import defaultdict
from collections.abc import Iterable
from decimal import Decimal

from splitsettle.app.engine.ledger import owed_minor
from splitsettle.app.engine.money import ZERO, from_minor, to_minor
from splitsettle.app.engine.types import Expense, MemberId, SettlementTransaction

# Net debts keyed by (low_id, high_id): positive means low owes high,
# negative means high owes low.
_PairLedger = dict[tuple[MemberId, MemberId], int]


def _record(ledger: _PairLedger, debtor: MemberId, creditor: MemberId, amount: int) -> None:
    if debtor == creditor or amount == 0:
        return
    if debtor < creditor:
        ledger[(debtor, creditor)] += amount
    else:
        ledger[(creditor, debtor)] -= amount


def _pair_ledger(
        expenses: Iterable[Expense],
        payments: Iterable[SettlementTransaction],
) -> _PairLedger:
    ledger: _PairLedger = defaultdict(int)
    for expense in expenses:
        for member, owed in owed_minor(expense).items():
            _record(ledger, member, expense.payer, owed)
    for payment in payments:
        # A payment reduces what the payer owes the recipient.
        _record(ledger, payment.to_member, payment.from_member, to_minor(payment.amount))
    return ledger


def pairwise_debts(
        expenses: Iterable[Expense],
        *,
        payments: Iterable[SettlementTransaction] = (),
) -> list[SettlementTransaction]:
    """
    Returns one debtor → creditor transaction per pair with a non-zero net.

    Sorted by (from_member, to_member). Raises InvalidSplitError from the
    ledger for a malformed expense, aborting the whole computation.
    """
    transactions = []
    for (low, high), net in _pair_ledger(expenses, payments).items():
        if net > 0:
            transactions.append(SettlementTransaction(low, high, from_minor(net)))
        elif net < 0:
            transactions.append(SettlementTransaction(high, low, from_minor(-net)))

    transactions.sort(key=lambda t: (t.from_member, t.to_member))
    return transactions


def outstanding_debt(
        expenses: Iterable[Expense],
        debtor: MemberId,
        creditor: MemberId,
        *,
        payments: Iterable[SettlementTransaction] = (),
) -> Decimal:
    """
    Net amount `debtor` still owes `creditor` directly, or Decimal("0.00").

    Used to warn about overpayment when a settlement is recorded.
    """
    for txn in pairwise_debts(expenses, payments=payments):
        if txn.from_member == debtor and txn.to_member == creditor:
            return txn.amount
    return ZERO
