"""
engine/types.py — Immutable value objects consumed and produced by the engine.

Nothing here touches Flask, SQLAlchemy or I/O. The hosting API converts its
ORM rows into these objects before calling the engine.

Member ids are opaque: any hashable value works, but ids within one group must
be mutually orderable (all ints, or all strs). Ordering by id is what makes
remainder distribution and tie-breaking deterministic.
"""

from __future__ import annotations

import enum
from dataclasses import dataclass, field
from datetime import date, datetime
from decimal import Decimal
from typing import ClassVar, Hashable, Mapping, Union

MemberId = Hashable

# Per-member signed amounts. Contribution is one expense's effect;
# Balance is the fold over all of a group's expenses.
Contribution = dict[MemberId, Decimal]
Balance = dict[MemberId, Decimal]


class SplitKind(str, enum.Enum):
    """How one expense's amount is divided among its participants."""
    EQUAL      = "equal"
    EXACT      = "exact"
    PERCENTAGE = "percentage"
    SHARES     = "shares"


@dataclass(frozen=True)
class Member:
    id: MemberId
    name: str = ""


@dataclass(frozen=True)
class EqualSplit:
    """Amount divided evenly; remainder cents go to the lowest member ids."""
    kind: ClassVar[SplitKind] = SplitKind.EQUAL

    participants: tuple[MemberId, ...]


@dataclass(frozen=True)
class ExactSplit:
    """Each member owes exactly `shares[member]`; shares must sum to the amount."""
    kind: ClassVar[SplitKind] = SplitKind.EXACT

    shares: Mapping[MemberId, Decimal]


@dataclass(frozen=True)
class PercentageSplit:
    """Each member owes `shares[member]` percent; percentages must sum to 100."""
    kind: ClassVar[SplitKind] = SplitKind.PERCENTAGE

    shares: Mapping[MemberId, Decimal]


@dataclass(frozen=True)
class SharesSplit:
    """Amount divided in proportion to integer units (e.g. 2 adults : 1 child)."""
    kind: ClassVar[SplitKind] = SplitKind.SHARES

    units: Mapping[MemberId, int]


SplitRule = Union[EqualSplit, ExactSplit, PercentageSplit, SharesSplit]


@dataclass(frozen=True)
class Expense:
    amount: Decimal
    payer: MemberId
    split: SplitRule
    id: Hashable | None = None
    group_id: Hashable | None = None
    timestamp: date | datetime | None = field(default=None, compare=False)


@dataclass(frozen=True)
class SettlementTransaction:
    """A recommended (or recorded) payment from a debtor to a creditor."""

    from_member: MemberId
    to_member: MemberId
    amount: Decimal

    def __post_init__(self) -> None:
        if self.from_member == self.to_member:
            raise ValueError(f"A settlement cannot pay {self.from_member!r} to itself.")
        if self.amount <= 0:
            raise ValueError(f"Settlement amount must be positive, got {self.amount}.")

    def to_dict(self) -> dict:
        return {
            "from": self.from_member,
            "to": self.to_member,
            "amount": str(self.amount),
        }
