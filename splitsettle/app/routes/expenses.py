"""
routes/expenses.py — Expense route handlers.

Registered at url_prefix=/api/v1 (not /api/v1/expenses) because this blueprint
owns BOTH the group-scoped paths (/groups/:id/expenses) and the
expense-ID paths (/expenses/:id). Registering at /api/v1/expenses would
make the group-scoped paths unreachable.

Layer rules:
  - Parse, validate, call ONE service, commit, return envelope.
  - No business logic. No DB queries. No bare SQL.
  - _serialize_expense() is a pure data-shape helper — not business logic.

Endpoints:
  POST   /groups/:id/expenses   → 201  create expense
  GET    /groups/:id/expenses   → 200  list active expenses (?category, ?since, ?until)
  GET    /expenses/:id          → 200  get expense + shares
  DELETE /expenses/:id          → 200  soft-delete
"""

from __future__ import annotations

from decimal import Decimal

from flask import Blueprint, jsonify, request

from splitsettle.app.engine.money import from_minor
from splitsettle.app.engine.types import SplitKind
from splitsettle.app.extensions import db
from splitsettle.app.models.expense import Expense
from splitsettle.app.schemas.expense_schema import CreateExpenseSchema, ExpenseFilterSchema
from splitsettle.app.services import expense_service

expenses_bp = Blueprint("expenses", __name__)


# ── Serialization helper ───────────────────────────────────────────────────
# Pure data-shaping: no DB access, no logic. Amounts as strings.

def _share_value(split_kind: SplitKind, value: int | None) -> str | None:
    """Stored integer → the string the client originally sent."""
    if value is None:
        return None
    if split_kind == SplitKind.EXACT:
        return str(from_minor(value))
    if split_kind == SplitKind.PERCENTAGE:
        return str(Decimal(value).scaleb(-2))
    return str(value)


def _serialize_expense(expense: Expense) -> dict:
    """Converts an Expense ORM object to a plain dict for JSON output."""
    return {
        "id": expense.id,
        "group_id": expense.group_id,
        "paid_by_member_id": expense.paid_by_member_id,
        "paid_by_name": expense.payer.name,
        "description": expense.description,
        "amount": str(expense.amount),                  # Decimal → string
        "split_rule": expense.split_kind.value,
        "category": expense.category.value,
        "incurred_on": expense.incurred_on.isoformat(),
        "created_at": expense.created_at.isoformat() if expense.created_at else None,
        "deleted_at": expense.deleted_at.isoformat() if expense.deleted_at else None,
        "shares": [
            {
                "member_id": s.member_id,
                "name": s.member.name,
                "value": _share_value(expense.split_kind, s.value),
            }
            for s in expense.shares
        ],
    }


# ── Group-scoped expense routes ────────────────────────────────────────────

@expenses_bp.route("/groups/<int:group_id>/expenses", methods=["POST"])
def create_expense(group_id: int):
    """
    POST /groups/:id/expenses — Record a new expense.
    The split is validated by the settlement engine before anything is stored.
    """
    data = CreateExpenseSchema().load(request.get_json(force=True) or {})
    expense = expense_service.create_expense(
        group_id=group_id,
        data=data,
        session=db.session,
    )
    db.session.commit()
    return jsonify({"data": _serialize_expense(expense), "warnings": []}), 201


@expenses_bp.route("/groups/<int:group_id>/expenses", methods=["GET"])
def list_expenses(group_id: int):
    """GET /groups/:id/expenses — List active (non-deleted) expenses for a group."""
    filters = ExpenseFilterSchema().load(request.args.to_dict())
    expenses = expense_service.list_expenses(
        group_id=group_id,
        session=db.session,
        category=filters["category"],
        since=filters["since"],
        until=filters["until"],
    )
    return jsonify({
        "data": [_serialize_expense(e) for e in expenses],
        "warnings": [],
    }), 200


# ── Expense-ID routes ──────────────────────────────────────────────────────

@expenses_bp.route("/expenses/<int:expense_id>", methods=["GET"])
def get_expense(expense_id: int):
    """GET /expenses/:id — Get expense detail including shares."""
    expense = expense_service.get_expense(
        expense_id=expense_id,
        session=db.session,
    )
    return jsonify({"data": _serialize_expense(expense), "warnings": []}), 200


@expenses_bp.route("/expenses/<int:expense_id>", methods=["DELETE"])
def delete_expense(expense_id: int):
    """
    DELETE /expenses/:id — Soft-delete (sets deleted_at = NOW()).
    Row stays in DB. Shares remain for audit. Balances exclude it.
    """
    expense_service.delete_expense(
        expense_id=expense_id,
        session=db.session,
    )
    db.session.commit()
    return jsonify({
        "data": {
            "deleted": True,
            "expense_id": expense_id,
        },
        "warnings": [],
    }), 200
