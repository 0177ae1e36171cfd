"""
services/settlement_service.py — Recorded settlement payments.

Rules enforced here:
  SELF_SETTLEMENT (422)       — paid_by_member_id must not equal paid_to_member_id
  PAYER_NOT_MEMBER (422)      — paid_by must be a member of the group
  RECIPIENT_NOT_MEMBER (422)  — paid_to must be a member of the group
  OVERPAYMENT warning         — overpayment is valid; recorded with a warning

Notes on overpayment:
  The outstanding debt is pair-specific: what the payer still owes the
  recipient directly, from engine.outstanding_debt() over active expenses
  and earlier payments. If the amount exceeds it, the payment is still
  recorded (pre-payment is valid) and the route returns the warning in the
  standard envelope: {"data": {...}, "warnings": [{"code": "OVERPAYMENT", ...}]}.

Layer rules:
  - No Flask imports. Pure Python with a SQLAlchemy session parameter.
  - Commits are the route's responsibility — only flush here.
"""

from __future__ import annotations

import logging
from decimal import Decimal

from sqlalchemy import select
from sqlalchemy.orm import Session

from splitsettle.app import engine
from splitsettle.app.engine.money import to_minor
from splitsettle.app.errors import AppError, ErrorCode, WarningCode
from splitsettle.app.models.settlement import Settlement
from splitsettle.app.services.balance_service import get_member_ids, load_ledger
from splitsettle.app.services.group_service import get_group_or_404

logger = logging.getLogger(__name__)


# ── Public service functions ───────────────────────────────────────────────

def create_settlement(
        group_id: int,
        data: dict,
        session: Session,
) -> tuple[Settlement, list[dict]]:
    """
    Records a settlement payment between two members of a group.

    Args:
        group_id: The group this settlement belongs to.
        data:     Validated dict from CreateSettlementSchema.
                  Keys: paid_by_member_id, paid_to_member_id (int), amount (Decimal).

    Returns:
        (Settlement, warnings) where warnings is a list of warning dicts.
        An empty warnings list means no warnings.
        Example warning: {"code": "OVERPAYMENT", "message": "..."}
    """
    get_group_or_404(group_id, session)

    paid_by: int = data["paid_by_member_id"]
    paid_to: int = data["paid_to_member_id"]
    amount: Decimal = data["amount"]

    if paid_by == paid_to:
        raise AppError(
            ErrorCode.SELF_SETTLEMENT,
            "A member cannot settle with themselves.",
            422,
            field="paid_to_member_id",
        )

    member_ids = set(get_member_ids(group_id, session))
    if paid_by not in member_ids:
        raise AppError(
            ErrorCode.PAYER_NOT_MEMBER,
            f"Member {paid_by} is not a member of group {group_id}.",
            422,
            field="paid_by_member_id",
        )
    if paid_to not in member_ids:
        raise AppError(
            ErrorCode.RECIPIENT_NOT_MEMBER,
            f"Member {paid_to} is not a member of group {group_id}.",
            422,
            field="paid_to_member_id",
        )

    # The payment is still recorded when this fires.
    warnings: list[dict] = []
    expenses, payments = load_ledger(group_id, session)
    current_debt = engine.outstanding_debt(expenses, paid_by, paid_to, payments=payments)

    if amount > current_debt:
        warnings.append({
            "code": WarningCode.OVERPAYMENT,
            "message": (
                f"Settlement of {amount} exceeds current outstanding debt of "
                f"{current_debt} from member {paid_by} to member {paid_to}. "
                f"Recording anyway — pre-payment is valid."
            ),
        })

    settlement = Settlement(
        group_id=group_id,
        paid_by_member_id=paid_by,
        paid_to_member_id=paid_to,
        amount_minor=to_minor(amount),
    )
    session.add(settlement)
    session.flush()
    session.refresh(settlement)

    logger.info(
        "Recorded settlement %s in group %s: %s -> %s %s",
        settlement.id,
        group_id,
        paid_by,
        paid_to,
        settlement.amount,
    )
    return settlement, warnings


def list_settlements(group_id: int, session: Session) -> list[Settlement]:
    """Returns all settlements for a group, newest first."""
    get_group_or_404(group_id, session)

    stmt = (
        select(Settlement)
        .where(Settlement.group_id == group_id)
        .order_by(Settlement.created_at.desc(), Settlement.id.desc())
    )
    return list(session.execute(stmt).scalars().all())
