"""
errors.py — AppError base class, engine error types and the error code registry.

Every error returned by the SplitSettle API must use a code defined here.
Do not raise strings or generic exceptions from engine, service or route code.

Rules:
  - New error codes require: add constant here + add a test that raises it.
  - Error codes are a versioned contract. They do not change once published.
  - Error messages are human-readable prose. They may be improved at any time.
"""

from __future__ import annotations

from decimal import Decimal
from typing import Hashable


class AppError(Exception):

    def __init__(
            self,
            code: str,
            message: str,
            http_status: int,
            field: str | None = None,
    ) -> None:
        super().__init__(message)
        self.code        = code
        self.message     = message
        self.http_status = http_status
        self.field       = field  # which request field caused the error

    def to_dict(self) -> dict:
        payload = {
            "code":    self.code,
            "message": self.message,
        }
        if self.field is not None:
            payload["field"] = self.field
        return {"error": payload}

    def __repr__(self) -> str:
        return (
            f"AppError(code={self.code!r}, "
            f"http_status={self.http_status}, "
            f"message={self.message!r})"
        )


class InvalidSplitError(AppError):
    """
    One expense's split rule does not satisfy its invariant.

    Raised by the ledger and propagated unmodified through the aggregator.
    `code` names the violated invariant; `expense_id` (when the expense
    carried one) lets the caller point the user at the offending record.
    """

    def __init__(
            self,
            code: str,
            message: str,
            expense_id: Hashable | None = None,
            field: str | None = None,
    ) -> None:
        super().__init__(code, message, 422, field=field)
        self.expense_id = expense_id

    def to_dict(self) -> dict:
        payload = super().to_dict()
        if self.expense_id is not None:
            payload["error"]["expense_id"] = self.expense_id
        return payload

    def __repr__(self) -> str:
        return (
            f"InvalidSplitError(code={self.code!r}, "
            f"expense_id={self.expense_id!r}, "
            f"message={self.message!r})"
        )


class UnbalancedLedgerError(AppError):
    """
    A balance handed to the simplifier does not sum to zero.

    Only possible when the caller bypassed the ledger/aggregator or edited a
    balance by hand. Always a programming error upstream, never corrected.
    """

    def __init__(self, total: Decimal) -> None:
        super().__init__(
            ErrorCode.UNBALANCED_LEDGER,
            f"Balances sum to {total}, expected 0.00. "
            f"Refusing to settle an unbalanced ledger.",
            500,
        )
        self.total = total


# ── Error Code Registry ────────────────────────────────────────────────────
#
# Organised by category. HTTP status is indicated in the comment.
#
# IMPORTANT: these are the string values sent in the API response.
# Do not rename them without a major version bump.
# ──────────────────────────────────────────────────────────────────────────

class ErrorCode:

    # ── Schema / Input Errors (400) ────────────────────────────────────────
    MISSING_FIELD                        = "MISSING_FIELD"
    INVALID_FIELD                        = "INVALID_FIELD"
    INVALID_CATEGORY                     = "INVALID_CATEGORY"
    INVALID_SPLIT_RULE                   = "INVALID_SPLIT_RULE"
    SHARES_SENT_FOR_EQUAL_SPLIT          = "SHARES_SENT_FOR_EQUAL_SPLIT"
    PARTICIPANTS_SENT_FOR_WEIGHTED_SPLIT = "PARTICIPANTS_SENT_FOR_WEIGHTED_SPLIT"
    DUPLICATE_SHARE_MEMBER               = "DUPLICATE_SHARE_MEMBER"

    # ── Conflict Errors (409) ──────────────────────────────────────────────
    DUPLICATE_MEMBER_NAME      = "DUPLICATE_MEMBER_NAME"

    # ── Not Found Errors (404) ─────────────────────────────────────────────
    GROUP_NOT_FOUND            = "GROUP_NOT_FOUND"
    EXPENSE_NOT_FOUND          = "EXPENSE_NOT_FOUND"

    # ── Split Invariant Violations (422, InvalidSplitError) ───────────────
    NON_POSITIVE_AMOUNT        = "NON_POSITIVE_AMOUNT"
    INVALID_AMOUNT_PRECISION   = "INVALID_AMOUNT_PRECISION"
    EMPTY_SPLIT                = "EMPTY_SPLIT"
    DUPLICATE_PARTICIPANT      = "DUPLICATE_PARTICIPANT"
    NEGATIVE_SHARE             = "NEGATIVE_SHARE"
    INVALID_PERCENTAGE         = "INVALID_PERCENTAGE"
    INVALID_SHARE_UNITS        = "INVALID_SHARE_UNITS"
    SPLIT_SUM_MISMATCH         = "SPLIT_SUM_MISMATCH"
    PERCENTAGE_SUM_MISMATCH    = "PERCENTAGE_SUM_MISMATCH"
    PAYER_NOT_MEMBER           = "PAYER_NOT_MEMBER"
    PARTICIPANT_NOT_MEMBER     = "PARTICIPANT_NOT_MEMBER"
    UNKNOWN_SPLIT_RULE         = "UNKNOWN_SPLIT_RULE"

    # ── Settlement Rule Violations (422) ──────────────────────────────────
    RECIPIENT_NOT_MEMBER       = "RECIPIENT_NOT_MEMBER"
    SELF_SETTLEMENT            = "SELF_SETTLEMENT"

    # ── System Errors (500) ────────────────────────────────────────────────
    UNBALANCED_LEDGER          = "UNBALANCED_LEDGER"
    INTERNAL_ERROR             = "INTERNAL_ERROR"


# ── Warning Code Registry ──────────────────────────────────────────────────
#
# Warnings are returned alongside a 2xx response in the `warnings` array.
# They do not block the request.
# ──────────────────────────────────────────────────────────────────────────

class WarningCode:

    # Settlement amount exceeds the outstanding debt between the two members.
    # Still recorded: pre-payment is valid.
    OVERPAYMENT = "OVERPAYMENT"
