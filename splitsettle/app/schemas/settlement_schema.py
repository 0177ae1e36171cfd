"""
schemas/settlement_schema.py — Marshmallow schema for settlement endpoints.

Validation responsibility:
  - This file: field types, decimal precision, positive amount.
  - services/settlement_service.py:
      - SELF_SETTLEMENT (422)           — paid_by == paid_to check.
      - OVERPAYMENT warning (201)       — requires current debt lookup.
      - PAYER_NOT_MEMBER (422)          — requires DB membership lookup.
      - RECIPIENT_NOT_MEMBER (422)      — requires DB membership lookup.
      - GROUP_NOT_FOUND (404)           — requires DB lookup.

IMPORTANT: Inherits from marshmallow.Schema directly — never ma.Schema.
           See extensions.py for the full explanation.
"""

from __future__ import annotations

from decimal import Decimal

from marshmallow import Schema, ValidationError, fields, validate

from splitsettle.app.errors import ErrorCode


# ── Shared monetary amount validator ──────────────────────────────────────
#
# Identical logic to the validator in expense_schema.py. Defined here
# rather than imported from expense_schema to keep each schema file
# self-contained.
# ──────────────────────────────────────────────────────────────────────────

def _validate_monetary_amount(value: Decimal) -> None:
    """
    Validates a monetary Decimal value:
      - Must be strictly greater than zero.
      - Must have at most 2 decimal places (INVALID_AMOUNT_PRECISION).
    """
    if value <= Decimal("0"):
        raise ValidationError("Amount must be greater than zero.")

    if value.as_tuple().exponent < -2:
        raise ValidationError(ErrorCode.INVALID_AMOUNT_PRECISION)


# ── Schema ─────────────────────────────────────────────────────────────────

class CreateSettlementSchema(Schema):
    """
    POST /groups/:id/settlements

    Records a payment from one member to another. The self-settlement check
    lives in settlement_service.py together with the membership checks so
    that every 422 for this endpoint comes from one place.

    Overpayment is allowed — the service issues a warning but does NOT
    block the request.
    """

    paid_by_member_id = fields.Int(
        required=True,
        strict=True,
        validate=validate.Range(
            min=1,
            error="paid_by_member_id must be a positive integer.",
        ),
    )

    paid_to_member_id = fields.Int(
        required=True,
        strict=True,   # reject floats like 1.0: integers only
        validate=validate.Range(
            min=1,
            error="paid_to_member_id must be a positive integer.",
        ),
    )

    amount = fields.Decimal(
        required=True,
        validate=_validate_monetary_amount,
    )
