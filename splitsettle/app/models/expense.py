"""
models/expense.py — Expense table definition.

No business logic. No imports from services or routes.

Key design points:
  - `deleted_at` is NULL for active expenses, non-null for soft-deleted ones.
    Soft-deleted expenses never reach the settlement engine.
  - `amount_minor` stores integer minor units (cents). Never Float, and no
    Numeric rounding at the storage boundary either.
  - The split rule lives in `split_kind`; per-member inputs to the rule live
    in ExpenseShare rows. Owed amounts are NOT stored — the engine recomputes
    them, so there is exactly one place where splitting happens.
  - An expense is immutable once recorded. Corrections are a delete plus a
    new expense.
"""

from __future__ import annotations

import enum
from datetime import date, datetime
from decimal import Decimal

from sqlalchemy import (
    BigInteger,
    CheckConstraint,
    Date,
    DateTime,
    Enum,
    ForeignKey,
    String,
    func,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from splitsettle.app.engine.money import from_minor
from splitsettle.app.engine.types import SplitKind
from splitsettle.app.extensions import db


# ── Enum Definitions ───────────────────────────────────────────────────────
# SplitKind is owned by the engine; Category is an API-level label only and
# has no effect on balances.

class Category(str, enum.Enum):
    FOOD            = "food"
    TRANSPORT       = "transport"
    ACCOMMODATION   = "accommodation"
    ENTERTAINMENT   = "entertainment"
    SHOPPING        = "shopping"
    UTILITIES       = "utilities"
    OTHER           = "other"


def _enum_values(enum_cls: type[enum.Enum]) -> list[str]:
    """Ensure SQLAlchemy stores enum values (e.g., 'equal'), not names ('EQUAL')."""
    return [member.value for member in enum_cls]


# ── Model ──────────────────────────────────────────────────────────────────

class Expense(db.Model):
    __tablename__ = "expenses"

    __table_args__ = (
        CheckConstraint("amount_minor > 0", name="ck_expenses_amount_positive"),
        CheckConstraint(
            "LENGTH(TRIM(description)) > 0",
            name="ck_expenses_description_nonempty",
        ),
    )

    id: Mapped[int] = mapped_column(primary_key=True)

    group_id: Mapped[int] = mapped_column(
        ForeignKey("groups.id", ondelete="RESTRICT"),
        nullable=False,
        index=True,
    )

    paid_by_member_id: Mapped[int] = mapped_column(
        ForeignKey("members.id", ondelete="RESTRICT"),
        nullable=False,
    )

    description: Mapped[str] = mapped_column(
        String(255),
        nullable=False,
    )

    amount_minor: Mapped[int] = mapped_column(
        BigInteger,
        nullable=False,
    )

    split_kind: Mapped[SplitKind] = mapped_column(
        Enum(
            SplitKind,
            name="split_kind_enum",
            values_callable=_enum_values,
        ),
        nullable=False,
    )

    category: Mapped[Category] = mapped_column(
        Enum(
            Category,
            name="category_enum",
            values_callable=_enum_values,
        ),
        nullable=False,
        default=Category.OTHER,
    )

    # The day the money was spent; used for time-range filtering.
    incurred_on: Mapped[date] = mapped_column(
        Date,
        nullable=False,
        default=date.today,
    )

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        server_default=func.now(),
    )

    deleted_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True),
        nullable=True,
    )

    # ── Relationships ──────────────────────────────────────────────────────

    group: Mapped["Group"] = relationship(  # noqa: F821
        "Group",
        back_populates="expenses",
    )

    payer: Mapped["Member"] = relationship(  # noqa: F821
        "Member",
        foreign_keys=[paid_by_member_id],
    )

    # ON DELETE CASCADE: shares are owned by their expense.
    shares: Mapped[list["ExpenseShare"]] = relationship(  # noqa: F821
        "ExpenseShare",
        back_populates="expense",
        cascade="all, delete-orphan",
        passive_deletes=True,
        order_by="ExpenseShare.member_id",
    )

    # ── Convenience properties ─────────────────────────────────────────────

    @property
    def amount(self) -> Decimal:
        return from_minor(self.amount_minor)

    @property
    def is_deleted(self) -> bool:
        """True if this expense has been soft-deleted."""
        return self.deleted_at is not None

    def __repr__(self) -> str:  # pragma: no cover
        return (
            f"<Expense id={self.id} "
            f"group_id={self.group_id} "
            f"amount={self.amount} "
            f"deleted={self.is_deleted}>"
        )
