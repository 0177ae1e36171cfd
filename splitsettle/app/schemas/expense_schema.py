"""
schemas/expense_schema.py — Marshmallow schemas for expense endpoints.

Validation responsibility:
  - This file:
      - Field types, lengths, enum values, decimal precision of `amount`
      - SHARES_SENT_FOR_EQUAL_SPLIT          (400) — request shape rule
      - PARTICIPANTS_SENT_FOR_WEIGHTED_SPLIT (400) — request shape rule
      - DUPLICATE_SHARE_MEMBER               (400) — request shape rule
      - Shares required when split_rule is exact / percentage / shares
      - Non-empty-after-trim enforcement for description
  - engine/ledger.py (called from services/expense_service.py):
      - SPLIT_SUM_MISMATCH, PERCENTAGE_SUM_MISMATCH, NEGATIVE_SHARE,
        INVALID_PERCENTAGE, INVALID_SHARE_UNITS, EMPTY_SPLIT (422)
      - PAYER_NOT_MEMBER, PARTICIPANT_NOT_MEMBER (422) — need the member set

IMPORTANT: Inherits from marshmallow.Schema directly — never ma.Schema.
           See extensions.py for the full explanation.
"""

from __future__ import annotations

from decimal import Decimal

from marshmallow import (
    EXCLUDE,
    Schema,
    ValidationError,
    fields,
    validate,
    validates_schema,
)

from splitsettle.app.engine.types import SplitKind
from splitsettle.app.errors import ErrorCode
from splitsettle.app.models.expense import Category


# ── Shared monetary amount validator ──────────────────────────────────────
#
# Max 2 decimal places, strictly positive. Input with more than 2 decimal
# places is REJECTED with INVALID_AMOUNT_PRECISION: never rounded.
# ──────────────────────────────────────────────────────────────────────────

def _validate_monetary_amount(value: Decimal) -> None:
    """
    Validates a monetary Decimal value:
      - Must be strictly greater than zero.
      - Must have at most 2 decimal places.

    The error handler detects INVALID_AMOUNT_PRECISION by matching the
    raised ValidationError message to the known ErrorCode constant.
    """
    if value <= Decimal("0"):
        raise ValidationError("Amount must be greater than zero.")

    # Decimal("10.123").as_tuple().exponent == -3  → 3 dp → REJECT
    if value.as_tuple().exponent < -2:
        raise ValidationError(ErrorCode.INVALID_AMOUNT_PRECISION)


def _validate_non_empty_after_trim(value: str) -> None:
    """
    Raises ValidationError if the string is blank or contains only whitespace.
    Mirrors the DB CHECK(LENGTH(TRIM(...)) > 0) constraint at the API layer.
    """
    if not value.strip():
        raise ValidationError("This field must not be blank or contain only whitespace.")


# ── Sub-schema: one entry in the `shares` array ───────────────────────────

class ShareInputSchema(Schema):
    """
    One entry of the `shares` array.

    `value` is interpreted by the expense's split_rule:
        exact       → amount owed, e.g. "12.50"
        percentage  → percent of the total, e.g. "33.34"
        shares      → whole units of weight, e.g. 2

    Range and sum rules belong to the ledger, which reports them as 422s
    with the specific violated code.
    """

    member_id = fields.Int(
        required=True,
        strict=True,   # reject floats like 1.0
        validate=validate.Range(min=1, error="member_id must be a positive integer."),
    )

    value = fields.Decimal(required=True)


# ── Create expense ─────────────────────────────────────────────────────────

class CreateExpenseSchema(Schema):
    """
    POST /groups/:id/expenses

    Split rule behaviour:
      - split_rule='equal'  → optional `participants` list of member ids.
                              Omitted means every current group member.
                              Returns SHARES_SENT_FOR_EQUAL_SPLIT (400) if
                              a shares array is present.
      - any other rule      → `shares` array is required.
                              Returns PARTICIPANTS_SENT_FOR_WEIGHTED_SPLIT
                              (400) if a participants list is present.
    """

    paid_by_member_id = fields.Int(
        required=True,
        strict=True,
        validate=validate.Range(min=1, error="paid_by_member_id must be a positive integer."),
    )

    description = fields.Str(
        required=True,
        validate=[
            validate.Length(
                min=1,
                max=255,
                error="Description must be between 1 and 255 characters.",
            ),
            _validate_non_empty_after_trim,
        ],
    )

    amount = fields.Decimal(
        required=True,
        validate=_validate_monetary_amount,
    )

    split_rule = fields.Enum(
        SplitKind,
        load_default=SplitKind.EQUAL,
        by_value=True,
        error_messages={"unknown": ErrorCode.INVALID_SPLIT_RULE},
    )

    category = fields.Enum(
        Category,
        load_default=Category.OTHER,
        by_value=True,
        error_messages={"unknown": ErrorCode.INVALID_CATEGORY},
    )

    # ISO date (YYYY-MM-DD). Defaults to today in the service.
    incurred_on = fields.Date(load_default=None)

    participants = fields.List(
        fields.Int(
            strict=True,
            validate=validate.Range(min=1, error="participant ids must be positive integers."),
        ),
        load_default=None,
    )

    shares = fields.List(
        fields.Nested(ShareInputSchema),
        load_default=None,
    )

    @validates_schema
    def validate_split_coherence(self, data: dict, **kwargs) -> None:
        """
        Cross-field checks between split_rule, participants and shares.

        1. SHARES_SENT_FOR_EQUAL_SPLIT (400):
           A shares array with split_rule='equal'.

        2. PARTICIPANTS_SENT_FOR_WEIGHTED_SPLIT (400):
           A participants list with any other split_rule.

        3. shares required for exact / percentage / shares.

        4. DUPLICATE_SHARE_MEMBER (400):
           Same member_id appears more than once in the shares array.

        Duplicate ids in `participants` are left to the ledger
        (DUPLICATE_PARTICIPANT, 422), which owns that invariant.
        """
        split_rule = data.get("split_rule", SplitKind.EQUAL)
        participants = data.get("participants")
        shares = data.get("shares")

        if split_rule == SplitKind.EQUAL:
            if shares is not None:
                raise ValidationError(
                    {
                        "shares": [ErrorCode.SHARES_SENT_FOR_EQUAL_SPLIT],
                    }
                )
            return

        if participants is not None:
            raise ValidationError(
                {
                    "participants": [ErrorCode.PARTICIPANTS_SENT_FOR_WEIGHTED_SPLIT],
                }
            )

        if shares is None:
            raise ValidationError(
                {
                    "shares": [
                        f"shares is required when split_rule is '{split_rule.value}'."
                    ],
                }
            )

        member_ids = [s["member_id"] for s in shares]
        if len(member_ids) != len(set(member_ids)):
            raise ValidationError(
                {
                    "shares": [ErrorCode.DUPLICATE_SHARE_MEMBER],
                }
            )


# ── List filters ───────────────────────────────────────────────────────────

class ExpenseFilterSchema(Schema):
    """
    Query string of GET /groups/:id/expenses and GET /groups/:id/balances.

    All filters are optional; `since` and `until` are inclusive and compare
    against the expense's incurred_on date.
    """

    class Meta:
        unknown = EXCLUDE

    category = fields.Enum(
        Category,
        load_default=None,
        by_value=True,
        error_messages={"unknown": ErrorCode.INVALID_CATEGORY},
    )

    since = fields.Date(load_default=None)
    until = fields.Date(load_default=None)

    @validates_schema
    def validate_range(self, data: dict, **kwargs) -> None:
        since, until = data.get("since"), data.get("until")
        if since is not None and until is not None and since > until:
            raise ValidationError({"since": ["since must not be after until."]})
