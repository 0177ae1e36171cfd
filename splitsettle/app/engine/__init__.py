"""
engine — the Settlement Engine.

Pure, stateless functions over in-memory value objects:

    expenses ─► compute_contribution ─► aggregate ─► simplify ─► transactions

No Flask, no SQLAlchemy, no I/O. Every call is a pure function of its input,
so groups can be settled in parallel and a failed request can simply retry.

Usage:
    from splitsettle.app.engine import EqualSplit, Expense, settle_group

    plan = settle_group([
        Expense(Decimal("100.00"), payer="alice", split=EqualSplit(("alice", "bob"))),
    ])
    # [SettlementTransaction(from_member='bob', to_member='alice', amount=Decimal('50.00'))]
"""

from __future__ import annotations

import logging
from collections.abc import Iterable

from splitsettle.app.engine.aggregator import aggregate
from splitsettle.app.engine.ledger import compute_contribution
from splitsettle.app.engine.pairwise import outstanding_debt, pairwise_debts
from splitsettle.app.engine.simplifier import apply_transactions, simplify
from splitsettle.app.engine.types import (
    Balance,
    Contribution,
    EqualSplit,
    ExactSplit,
    Expense,
    Member,
    MemberId,
    PercentageSplit,
    SettlementTransaction,
    SharesSplit,
    SplitKind,
    SplitRule,
)

logger = logging.getLogger(__name__)

__all__ = [
    "Balance",
    "Contribution",
    "EqualSplit",
    "ExactSplit",
    "Expense",
    "Member",
    "MemberId",
    "PercentageSplit",
    "SettlementTransaction",
    "SharesSplit",
    "SplitKind",
    "SplitRule",
    "aggregate",
    "apply_transactions",
    "compute_contribution",
    "outstanding_debt",
    "pairwise_debts",
    "settle_group",
    "simplify",
]


def settle_group(
        expenses: Iterable[Expense],
        members: Iterable | None = None,
        *,
        payments: Iterable[SettlementTransaction] = (),
        strict: bool = False,
) -> list[SettlementTransaction]:
    """
    aggregate() then simplify(): the settlement plan for one group.

    Raises:
        InvalidSplitError     -- a malformed expense (nothing is returned).
        UnbalancedLedgerError -- cannot happen for ledger-produced balances;
                                 surfaces only if the ledger itself is broken.
    """
    balance = aggregate(expenses, members, payments=payments, strict=strict)
    transactions = simplify(balance)
    logger.debug(
        "Settled %d members into %d transactions",
        sum(1 for amount in balance.values() if amount),
        len(transactions),
    )
    return transactions
