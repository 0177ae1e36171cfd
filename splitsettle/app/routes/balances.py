"""
routes/balances.py — Balance and settlement-plan route handlers.

Layer rules:
  - Parse query params, call ONE service, return envelope.
  - No business logic. No DB queries. No bare SQL.

Endpoints (base url_prefix=/api/v1/groups):
  GET  /groups/:id/balances                 → 200  balances + simplified debts
  GET  /groups/:id/balances?simplify=false  → 200  balances + pairwise debts
  GET  /groups/:id/balances?category=food   → 200  filtered balances, no debts
  POST /groups/:id/settle                   → 200  recommended settlement plan
"""

from __future__ import annotations

from flask import Blueprint, jsonify, request

from splitsettle.app.errors import AppError, ErrorCode
from splitsettle.app.extensions import db
from splitsettle.app.schemas.expense_schema import ExpenseFilterSchema
from splitsettle.app.services import balance_service

balances_bp = Blueprint("balances", __name__)

_TRUE_VALUES = {"true", "1", "yes"}
_FALSE_VALUES = {"false", "0", "no"}


@balances_bp.route("/<int:group_id>/balances", methods=["GET"])
def get_balances(group_id: int):
    """
    GET /groups/:id/balances

    Optional query params:
      ?simplify=true|false   (default true)
      false returns the unsimplified pairwise view: who owes whom directly.
      ?category=, ?since=, ?until=
      Same filters as the expense listing. A filtered view covers only the
      matching expenses, leaves out settlements and has no debts.

    Unfiltered, balance_sum is always "0.00"; a non-zero sum surfaces as
    UNBALANCED_LEDGER (500) from the engine.
    """
    simplify_param = request.args.get("simplify", "true").strip().lower()

    if simplify_param in _TRUE_VALUES:
        simplify = True
    elif simplify_param in _FALSE_VALUES:
        simplify = False
    else:
        raise AppError(
            ErrorCode.INVALID_FIELD,
            f"'{simplify_param}' is not a valid value for simplify. Use true or false.",
            400,
            field="simplify",
        )

    filters = ExpenseFilterSchema().load(request.args.to_dict())

    result = balance_service.get_balance_response(
        group_id=group_id,
        session=db.session,
        simplify=simplify,
        category=filters["category"],
        since=filters["since"],
        until=filters["until"],
    )
    return jsonify({"data": result, "warnings": []}), 200


@balances_bp.route("/<int:group_id>/settle", methods=["POST"])
def settle(group_id: int):
    """
    POST /groups/:id/settle — Compute the settlement plan.

    Nothing is recorded; record each payment via POST /groups/:id/settlements.
    """
    result = balance_service.get_settlement_plan(
        group_id=group_id,
        session=db.session,
    )
    return jsonify({"data": result, "warnings": []}), 200
