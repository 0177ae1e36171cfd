"""
engine/ledger.py — Expense Ledger: one Expense → one Contribution.

This file is the SINGLE SOURCE OF TRUTH for how an expense's amount is divided
among its participants. The aggregator, the pairwise view and the API's
create-expense validation all go through owed_minor() / contribution_minor().

Rules:
  - Validation is fail-fast: the first violated invariant raises
    InvalidSplitError carrying the expense id and a specific code.
  - All arithmetic is in integer minor units. sum(owed) == amount exactly,
    so every contribution sums to exactly zero.
  - Rounding leftovers are corrected one cent at a time in ascending
    member-id order.
    Never let naive division produce owed amounts that miss the total.
"""

from __future__ import annotations

from collections.abc import Collection, Iterable
from decimal import Decimal
from typing import NoReturn

from splitsettle.app.engine.money import (
    BASIS_POINTS_PER_WHOLE,
    from_minor,
    to_basis_points,
    to_minor,
)
from splitsettle.app.engine.types import (
    Contribution,
    EqualSplit,
    ExactSplit,
    Expense,
    MemberId,
    PercentageSplit,
    SharesSplit,
)
from splitsettle.app.errors import ErrorCode, InvalidSplitError


# ── Private helpers ────────────────────────────────────────────────────────

def _fail(expense: Expense, code: str, message: str, field: str | None = None) -> NoReturn:
    raise InvalidSplitError(code, message, expense_id=expense.id, field=field)


def _amount_minor(expense: Expense) -> int:
    """Validated expense amount in minor units. Must be strictly positive."""
    try:
        amount = to_minor(expense.amount)
    except ValueError:
        _fail(
            expense,
            ErrorCode.INVALID_AMOUNT_PRECISION,
            f"Expense amount {expense.amount} has more than 2 decimal places.",
            field="amount",
        )
    if amount <= 0:
        _fail(
            expense,
            ErrorCode.NON_POSITIVE_AMOUNT,
            f"Expense amount must be greater than zero, got {expense.amount}.",
            field="amount",
        )
    return amount


def _allocate(
        amount: int,
        weights: dict[MemberId, int],
        *,
        nearest: bool = False,
) -> dict[MemberId, int]:
    """
    Divides `amount` minor units in proportion to `weights`.

    Each member first gets amount * weight / total, floored, or rounded half
    up to the nearest cent when `nearest` is set. The remaining deviation
    (always fewer cents than there are positive-weight members) is then
    corrected one cent at a time in ascending id order: a shortfall is added
    to positive-weight members, an excess is taken back from members that
    owe at least one cent.

    Guarantees: sum(result.values()) == amount. Zero-weight members get 0.
    """
    total = sum(weights.values())
    if nearest:
        owed = {
            member: (2 * amount * weight + total) // (2 * total)
            for member, weight in weights.items()
        }
    else:
        owed = {member: amount * weight // total for member, weight in weights.items()}

    deviation = amount - sum(owed.values())
    if deviation > 0:
        recipients = sorted(member for member, weight in weights.items() if weight > 0)
        for member in recipients[:deviation]:
            owed[member] += 1
    elif deviation < 0:
        donors = sorted(member for member, share in owed.items() if share > 0)
        for member in donors[:-deviation]:
            owed[member] -= 1

    return owed


def _equal_owed(expense: Expense, split: EqualSplit, amount: int) -> dict[MemberId, int]:
    participants = list(split.participants)
    if not participants:
        _fail(
            expense,
            ErrorCode.EMPTY_SPLIT,
            "An equal split needs at least one participant.",
            field="participants",
        )
    if len(participants) != len(set(participants)):
        _fail(
            expense,
            ErrorCode.DUPLICATE_PARTICIPANT,
            "The same member appears more than once in the participants.",
            field="participants",
        )
    return _allocate(amount, {member: 1 for member in participants})


def _exact_owed(expense: Expense, split: ExactSplit, amount: int) -> dict[MemberId, int]:
    if not split.shares:
        _fail(expense, ErrorCode.EMPTY_SPLIT, "An exact split needs at least one share.",
              field="shares")

    owed: dict[MemberId, int] = {}
    for member, share in split.shares.items():
        try:
            owed[member] = to_minor(share)
        except ValueError:
            _fail(
                expense,
                ErrorCode.INVALID_AMOUNT_PRECISION,
                f"Share {share} for member {member!r} has more than 2 decimal places.",
                field="shares",
            )
        if owed[member] < 0:
            _fail(
                expense,
                ErrorCode.NEGATIVE_SHARE,
                f"Share for member {member!r} must not be negative, got {share}.",
                field="shares",
            )

    total = sum(owed.values())
    if total != amount:
        _fail(
            expense,
            ErrorCode.SPLIT_SUM_MISMATCH,
            f"Shares sum to {from_minor(total)} but the expense amount is "
            f"{from_minor(amount)}.",
            field="shares",
        )
    return owed


def _percentage_owed(
        expense: Expense,
        split: PercentageSplit,
        amount: int,
) -> dict[MemberId, int]:
    if not split.shares:
        _fail(expense, ErrorCode.EMPTY_SPLIT, "A percentage split needs at least one share.",
              field="shares")

    basis_points: dict[MemberId, int] = {}
    for member, percent in split.shares.items():
        try:
            basis_points[member] = to_basis_points(percent)
        except ValueError:
            _fail(
                expense,
                ErrorCode.INVALID_PERCENTAGE,
                f"Percentage {percent} for member {member!r} has more than 2 decimal places.",
                field="shares",
            )
        if basis_points[member] < 0:
            _fail(
                expense,
                ErrorCode.NEGATIVE_SHARE,
                f"Percentage for member {member!r} must not be negative, got {percent}.",
                field="shares",
            )
        if basis_points[member] > BASIS_POINTS_PER_WHOLE:
            _fail(
                expense,
                ErrorCode.INVALID_PERCENTAGE,
                f"Percentage for member {member!r} exceeds 100, got {percent}.",
                field="shares",
            )

    total = sum(basis_points.values())
    if total != BASIS_POINTS_PER_WHOLE:
        _fail(
            expense,
            ErrorCode.PERCENTAGE_SUM_MISMATCH,
            f"Percentages sum to {Decimal(total).scaleb(-2)} but must sum to 100.",
            field="shares",
        )
    return _allocate(amount, basis_points, nearest=True)


def _shares_owed(expense: Expense, split: SharesSplit, amount: int) -> dict[MemberId, int]:
    if not split.units:
        _fail(expense, ErrorCode.EMPTY_SPLIT, "A shares split needs at least one member.",
              field="shares")

    for member, units in split.units.items():
        if isinstance(units, bool) or not isinstance(units, int):
            _fail(
                expense,
                ErrorCode.INVALID_SHARE_UNITS,
                f"Units for member {member!r} must be a whole number, got {units!r}.",
                field="shares",
            )
        if units < 0:
            _fail(
                expense,
                ErrorCode.NEGATIVE_SHARE,
                f"Units for member {member!r} must not be negative, got {units}.",
                field="shares",
            )

    if sum(split.units.values()) == 0:
        _fail(
            expense,
            ErrorCode.INVALID_SHARE_UNITS,
            "At least one member must hold a positive number of units.",
            field="shares",
        )
    return _allocate(amount, dict(split.units), nearest=True)


def _check_membership(
        expense: Expense,
        owed: dict[MemberId, int],
        members: Collection[MemberId],
) -> None:
    members = member_ids(members)
    if expense.payer not in members:
        _fail(
            expense,
            ErrorCode.PAYER_NOT_MEMBER,
            f"Payer {expense.payer!r} is not a member of the group.",
            field="paid_by_member_id",
        )
    for member in owed:
        if member not in members:
            _fail(
                expense,
                ErrorCode.PARTICIPANT_NOT_MEMBER,
                f"Participant {member!r} is not a member of the group.",
                field="shares",
            )


# ── Public functions ───────────────────────────────────────────────────────

def owed_minor(
        expense: Expense,
        members: Collection[MemberId] | None = None,
) -> dict[MemberId, int]:
    """
    Validates `expense` and returns what each participant owes, in minor units.

    Args:
        expense: The expense to divide.
        members: Optional member-id set of the expense's group. When given,
                 the payer and every participant must belong to it.

    Raises:
        InvalidSplitError -- the first violated split invariant.
    """
    amount = _amount_minor(expense)
    split = expense.split

    if isinstance(split, EqualSplit):
        owed = _equal_owed(expense, split, amount)
    elif isinstance(split, ExactSplit):
        owed = _exact_owed(expense, split, amount)
    elif isinstance(split, PercentageSplit):
        owed = _percentage_owed(expense, split, amount)
    elif isinstance(split, SharesSplit):
        owed = _shares_owed(expense, split, amount)
    else:
        _fail(
            expense,
            ErrorCode.UNKNOWN_SPLIT_RULE,
            f"Unknown split rule {type(split).__name__}.",
            field="split_rule",
        )

    if members is not None:
        _check_membership(expense, owed, members)

    return owed


def contribution_minor(
        expense: Expense,
        members: Collection[MemberId] | None = None,
) -> dict[MemberId, int]:
    """Signed per-member effect of `expense` in minor units. Sums to exactly 0."""
    owed = owed_minor(expense, members)
    amount = to_minor(expense.amount)
    contribution = {member: -share for member, share in owed.items()}
    contribution[expense.payer] = contribution.get(expense.payer, 0) + amount
    return contribution


def compute_contribution(
        expense: Expense,
        members: Collection[MemberId] | None = None,
) -> Contribution:
    """
    Converts one expense into its Contribution map.

    The payer receives +amount minus their own share (if they participate);
    every other participant receives minus what they owe.

    Returns:
        {member_id: Decimal} with two decimal places, in ascending member-id
        order. sum(result.values()) == Decimal("0.00") exactly.

    Raises:
        InvalidSplitError -- see owed_minor().
    """
    contribution = contribution_minor(expense, members)
    return {member: from_minor(contribution[member]) for member in sorted(contribution)}


def member_ids(members: Iterable) -> frozenset:
    """Accepts Member objects or bare ids; returns the id set."""
    return frozenset(getattr(member, "id", member) for member in members)
