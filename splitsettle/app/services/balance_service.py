"""
services/balance_service.py — Balances, debts and settlement plans for a group.

This file is the bridge between the database and the settlement engine.
It loads ORM rows, converts them to engine value objects, and hands them to
engine.aggregate / engine.simplify / engine.pairwise_debts. It does NOT
divide, sum or match amounts itself — every number in a balance response
comes out of the engine.

Layer rules:
  - No Flask imports. No current_app, request, g, or HTTP knowledge.
  - Receives group_id (int) and session (SQLAlchemy Session) as arguments.
  - Returns plain Python dicts and lists.

Soft-delete enforcement:
  - get_active_expenses() ALWAYS filters WHERE deleted_at IS NULL.
  - All functions that feed the engine use get_active_expenses().

Filtered view:
  - category / since / until narrow the expenses that reach the engine.
  - Settlements are not scoped to a category or date, so a filtered view
    leaves them out and returns no debts. It is informational only.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable
from datetime import date
from decimal import Decimal

from sqlalchemy import select
from sqlalchemy.orm import Session, selectinload

from splitsettle.app import engine
from splitsettle.app.engine.money import ZERO, from_minor
from splitsettle.app.engine.types import SplitKind
from splitsettle.app.models.expense import Category, Expense
from splitsettle.app.models.member import Member
from splitsettle.app.models.settlement import Settlement
from splitsettle.app.services.group_service import get_group_or_404

logger = logging.getLogger(__name__)


# ── Data access helpers ────────────────────────────────────────────────────
# These are the ONLY sanctioned ways to load expense/settlement data for
# balance purposes.

def get_active_expenses(
        group_id: int,
        session: Session,
        category: Category | None = None,
        since: date | None = None,
        until: date | None = None,
) -> list[Expense]:
    """
    Returns expenses for a group WHERE deleted_at IS NULL, shares eager-loaded.

    Optional filters: `category`, and an inclusive `since`/`until` range on
    incurred_on.
    """
    stmt = (
        select(Expense)
        .options(selectinload(Expense.shares))
        .where(
            Expense.group_id == group_id,
            Expense.deleted_at.is_(None),
        )
        .order_by(Expense.id.asc())
    )
    if category is not None:
        stmt = stmt.where(Expense.category == category)
    if since is not None:
        stmt = stmt.where(Expense.incurred_on >= since)
    if until is not None:
        stmt = stmt.where(Expense.incurred_on <= until)
    return list(session.execute(stmt).scalars().all())


def get_settlements(group_id: int, session: Session) -> list[Settlement]:
    """Returns all settlements for a group. Settlements have no soft-delete."""
    stmt = (
        select(Settlement)
        .where(Settlement.group_id == group_id)
        .order_by(Settlement.id.asc())
    )
    return list(session.execute(stmt).scalars().all())


def get_member_ids(group_id: int, session: Session) -> list[int]:
    """Returns the ids of all current members of a group."""
    stmt = select(Member.id).where(Member.group_id == group_id)
    return list(session.execute(stmt).scalars().all())


def get_members(group_id: int, session: Session) -> list[Member]:
    """Returns Member rows for all current group members."""
    stmt = select(Member).where(Member.group_id == group_id).order_by(Member.id.asc())
    return list(session.execute(stmt).scalars().all())


# ── ORM → engine conversion ────────────────────────────────────────────────

def to_engine_split(split_kind: SplitKind, shares) -> engine.SplitRule:
    """
    Rebuilds the engine split rule from stored ExpenseShare rows.

    Stored `value` is an integer whose unit depends on the rule: minor units
    (exact), basis points (percentage), weight units (shares), NULL (equal).
    """
    if split_kind == SplitKind.EQUAL:
        return engine.EqualSplit(tuple(s.member_id for s in shares))
    if split_kind == SplitKind.EXACT:
        return engine.ExactSplit({s.member_id: from_minor(s.value) for s in shares})
    if split_kind == SplitKind.PERCENTAGE:
        return engine.PercentageSplit(
            {s.member_id: Decimal(s.value).scaleb(-2) for s in shares}
        )
    return engine.SharesSplit({s.member_id: s.value for s in shares})


def to_engine_expense(expense: Expense) -> engine.Expense:
    return engine.Expense(
        amount=expense.amount,
        payer=expense.paid_by_member_id,
        split=to_engine_split(expense.split_kind, expense.shares),
        id=expense.id,
        group_id=expense.group_id,
        timestamp=expense.incurred_on,
    )


def to_engine_payment(settlement: Settlement) -> engine.SettlementTransaction:
    return engine.SettlementTransaction(
        from_member=settlement.paid_by_member_id,
        to_member=settlement.paid_to_member_id,
        amount=settlement.amount,
    )


def load_ledger(
        group_id: int,
        session: Session,
        category: Category | None = None,
        since: date | None = None,
        until: date | None = None,
) -> tuple[list[engine.Expense], list[engine.SettlementTransaction]]:
    """
    Active expenses and recorded payments of a group, as engine objects.

    With any filter set, only matching expenses are loaded and payments are
    left out entirely.
    """
    rows = get_active_expenses(group_id, session, category, since, until)
    expenses = [to_engine_expense(e) for e in rows]
    if _is_filtered(category, since, until):
        return expenses, []
    payments = [to_engine_payment(s) for s in get_settlements(group_id, session)]
    return expenses, payments


def _is_filtered(*filters) -> bool:
    return any(f is not None for f in filters)


# ── Core computations ──────────────────────────────────────────────────────

def compute_balances(
        group_id: int,
        session: Session,
        expenses: Iterable[engine.Expense],
        payments: Iterable[engine.SettlementTransaction] = (),
) -> dict[int, Decimal]:
    """
    Balance of every current member of a group over a loaded ledger.

    Returns {member_id: net_balance}: positive is owed money, negative owes
    money. Every current member appears, even at exactly zero. `payments`
    are netted in after the expenses.

    Raises:
        InvalidSplitError -- a stored expense no longer satisfies its rule.
    """
    return engine.aggregate(
        expenses,
        get_member_ids(group_id, session),
        payments=payments,
    )


def _serialize_transaction(
        txn: engine.SettlementTransaction,
        names: dict[int, str],
) -> dict:
    return {
        "from_member_id": txn.from_member,
        "from_name": names.get(txn.from_member, f"member_{txn.from_member}"),
        "to_member_id": txn.to_member,
        "to_name": names.get(txn.to_member, f"member_{txn.to_member}"),
        "amount": str(txn.amount),
    }


def get_balance_response(
        group_id: int,
        session: Session,
        simplify: bool = True,
        category: Category | None = None,
        since: date | None = None,
        until: date | None = None,
) -> dict:
    """
    Builds the full balance response payload for GET /groups/:id/balances.

    Args:
        simplify: True  → debts come from engine.simplify (fewest payments).
                  False → debts come from engine.pairwise_debts (who owes
                          whom directly, never routed through a third member).
        category, since, until:
                  Optional expense filters. A filtered view covers only the
                  matching expenses, leaves out settlements and returns no
                  debts; balance_sum is reported but not checked.

    Raises:
        AppError(GROUP_NOT_FOUND, 404)   -- group does not exist.
        InvalidSplitError (422)          -- corrupt stored expense.
        UnbalancedLedgerError (500)      -- unfiltered balances do not sum to zero.
    """
    group = get_group_or_404(group_id, session)

    filtered = _is_filtered(category, since, until)
    expenses, payments = load_ledger(group_id, session, category, since, until)
    balances = compute_balances(group_id, session, expenses, payments)
    names = {m.id: m.name for m in get_members(group_id, session)}

    if filtered:
        debts = []
    elif simplify:
        debts = engine.simplify(balances)
    else:
        debts = engine.pairwise_debts(expenses, payments=payments)

    balance_sum = sum(balances.values(), ZERO)
    logger.debug(
        "Group %s: %d balances, %d debts (simplified=%s, filtered=%s)",
        group_id,
        len(balances),
        len(debts),
        simplify,
        filtered,
    )

    return {
        "group_id": group_id,
        "currency": group.currency,
        "balances": [
            {
                "member_id": member_id,
                "name": names.get(member_id, f"member_{member_id}"),
                "balance": str(amount),
            }
            for member_id, amount in balances.items()
        ],
        "simplified": simplify,
        "filtered": filtered,
        "debts": [_serialize_transaction(t, names) for t in debts],
        "balance_sum": str(balance_sum),
    }


def get_settlement_plan(group_id: int, session: Session) -> dict:
    """
    Recommended payments that would zero every outstanding balance.

    Read-only: nothing is recorded. Each payment the group actually makes is
    recorded separately through settlement_service.create_settlement().
    """
    group = get_group_or_404(group_id, session)

    expenses, payments = load_ledger(group_id, session)
    plan = engine.settle_group(
        expenses,
        get_member_ids(group_id, session),
        payments=payments,
    )
    names = {m.id: m.name for m in get_members(group_id, session)}

    return {
        "group_id": group_id,
        "currency": group.currency,
        "transactions": [_serialize_transaction(t, names) for t in plan],
        "settled": not plan,
    }
