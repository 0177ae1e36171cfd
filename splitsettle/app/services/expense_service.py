"""
services/expense_service.py — Expense business logic.

Split validation is delegated to the settlement engine: the request payload
is converted into an engine.Expense and run through ledger.owed_minor() with
the group's member-id set BEFORE anything is written. Every split invariant
(sum, percentage total, negative share, membership, ...) therefore has
exactly one implementation, and a stored expense is always one the engine
accepts.

Equal split participants:
  - `participants` omitted → every current group member participates.
  - `participants` given   → only those members participate.

Expenses are immutable once recorded. Corrections are a soft delete plus a
new expense.

Layer rules:
  - No Flask imports. No current_app, request, g, or HTTP knowledge.
  - Receives plain ints and dicts; returns ORM objects or raises AppError.
  - Commits are the route's responsibility — only flush here.
"""

from __future__ import annotations

import logging
from datetime import date, datetime, timezone
from decimal import Decimal

from sqlalchemy import select
from sqlalchemy.orm import Session, selectinload

from splitsettle.app import engine
from splitsettle.app.engine.ledger import owed_minor
from splitsettle.app.engine.money import to_basis_points, to_minor
from splitsettle.app.engine.types import SplitKind
from splitsettle.app.errors import AppError, ErrorCode, InvalidSplitError
from splitsettle.app.models.expense import Category, Expense
from splitsettle.app.models.expense_share import ExpenseShare
from splitsettle.app.services.balance_service import get_member_ids
from splitsettle.app.services.group_service import get_group_or_404

logger = logging.getLogger(__name__)


# ── Private helpers ────────────────────────────────────────────────────────

def _get_expense_or_404(expense_id: int, session: Session) -> Expense:
    """Returns the Expense (active or deleted) or raises EXPENSE_NOT_FOUND (404)."""
    expense = session.get(Expense, expense_id)
    if expense is None:
        raise AppError(
            ErrorCode.EXPENSE_NOT_FOUND,
            f"Expense {expense_id} does not exist.",
            404,
        )
    return expense


def _units(value: Decimal) -> int | Decimal:
    """Whole-number Decimals become ints; anything else is left for the ledger to reject."""
    if value == value.to_integral_value():
        return int(value)
    return value


def _build_split(data: dict, member_ids: list[int]) -> engine.SplitRule:
    """Engine split rule for a validated CreateExpenseSchema payload."""
    split_rule: SplitKind = data.get("split_rule", SplitKind.EQUAL)

    if split_rule == SplitKind.EQUAL:
        participants = data.get("participants")
        if participants is None:
            participants = sorted(member_ids)
        return engine.EqualSplit(tuple(participants))

    shares = data.get("shares") or []
    if split_rule == SplitKind.EXACT:
        return engine.ExactSplit({s["member_id"]: s["value"] for s in shares})
    if split_rule == SplitKind.PERCENTAGE:
        return engine.PercentageSplit({s["member_id"]: s["value"] for s in shares})
    return engine.SharesSplit({s["member_id"]: _units(s["value"]) for s in shares})


def _share_rows(split: engine.SplitRule) -> list[tuple[int, int | None]]:
    """
    (member_id, stored value) pairs for an engine split rule.

    Only called after the ledger accepted the split, so the conversions
    below cannot fail.
    """
    if isinstance(split, engine.EqualSplit):
        return [(member_id, None) for member_id in split.participants]
    if isinstance(split, engine.ExactSplit):
        return [(member_id, to_minor(v)) for member_id, v in split.shares.items()]
    if isinstance(split, engine.PercentageSplit):
        return [(member_id, to_basis_points(v)) for member_id, v in split.shares.items()]
    return [(member_id, units) for member_id, units in split.units.items()]


# ── Public service functions ───────────────────────────────────────────────

def create_expense(group_id: int, data: dict, session: Session) -> Expense:
    """
    Records a new expense for a group.

    Args:
        group_id: The group this expense belongs to.
        data:     Validated dict from CreateExpenseSchema.

    Raises:
        AppError(GROUP_NOT_FOUND, 404)
        InvalidSplitError (422) -- the split violates one of the ledger's
                                   invariants, or references a non-member.

    Returns:
        The newly created Expense ORM object (with shares loaded).
    """
    get_group_or_404(group_id, session)
    member_ids = get_member_ids(group_id, session)

    amount: Decimal = data["amount"]
    paid_by_member_id: int = data["paid_by_member_id"]
    split = _build_split(data, member_ids)

    candidate = engine.Expense(
        amount=amount,
        payer=paid_by_member_id,
        split=split,
        group_id=group_id,
    )
    try:
        owed_minor(candidate, members=member_ids)
    except InvalidSplitError as exc:
        logger.warning(
            "Rejected expense for group %s: %s (%s)", group_id, exc.code, exc.message
        )
        raise

    expense = Expense(
        group_id=group_id,
        paid_by_member_id=paid_by_member_id,
        description=data["description"].strip(),
        amount_minor=to_minor(amount),
        split_kind=split.kind,
        category=data.get("category") or Category.OTHER,
        incurred_on=data.get("incurred_on") or date.today(),
    )
    session.add(expense)
    session.flush()  # populate expense.id before creating shares

    for member_id, value in _share_rows(split):
        session.add(ExpenseShare(expense_id=expense.id, member_id=member_id, value=value))
    session.flush()

    # Refresh to load relationships so the route can serialise the expense.
    session.refresh(expense)
    logger.info(
        "Recorded expense %s in group %s: %s split %s",
        expense.id,
        group_id,
        expense.amount,
        split.kind.value,
    )
    return expense


def list_expenses(
        group_id: int,
        session: Session,
        category: Category | None = None,
        since: date | None = None,
        until: date | None = None,
) -> list[Expense]:
    """
    Returns active (non-deleted) expenses for a group, newest first.

    Optional filters: `category`, and an inclusive `since`/`until` range on
    incurred_on.
    """
    get_group_or_404(group_id, session)

    stmt = (
        select(Expense)
        .options(selectinload(Expense.shares))
        .where(
            Expense.group_id == group_id,
            Expense.deleted_at.is_(None),
        )
    )
    if category is not None:
        stmt = stmt.where(Expense.category == category)
    if since is not None:
        stmt = stmt.where(Expense.incurred_on >= since)
    if until is not None:
        stmt = stmt.where(Expense.incurred_on <= until)

    stmt = stmt.order_by(Expense.incurred_on.desc(), Expense.id.desc())
    return list(session.execute(stmt).scalars().all())


def get_expense(expense_id: int, session: Session) -> Expense:
    """
    Returns a single expense including its shares.

    Returns the expense even if soft-deleted; `deleted_at` in the response
    lets the client display the deletion state.
    """
    return _get_expense_or_404(expense_id, session)


def delete_expense(expense_id: int, session: Session) -> None:
    """
    Soft-deletes an expense by setting deleted_at = NOW().

    The row and its shares stay in the database for audit. Balance
    computation excludes it from then on. Re-deleting is a no-op.

    Raises:
        AppError(EXPENSE_NOT_FOUND, 404) — expense does not exist.
    """
    expense = _get_expense_or_404(expense_id, session)

    if not expense.is_deleted:
        expense.deleted_at = datetime.now(timezone.utc)
        session.flush()
        logger.info("Deleted expense %s in group %s", expense.id, expense.group_id)
