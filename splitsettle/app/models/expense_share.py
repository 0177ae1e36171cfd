"""
models/expense_share.py — ExpenseShare table definition.

One row per participant of an expense. The meaning of `value` depends on the
parent expense's split_kind:

    equal       NULL (the row just marks participation)
    exact       owed amount in minor units
    percentage  basis points (hundredths of a percent; 100% == 10000)
    shares      whole units of weight

UNIQUE(expense_id, member_id) prevents the same member appearing twice in one
expense (also rejected as DUPLICATE_SHARE_MEMBER at the schema layer).
"""

from __future__ import annotations

from sqlalchemy import BigInteger, CheckConstraint, ForeignKey, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column, relationship

from splitsettle.app.extensions import db


class ExpenseShare(db.Model):
    __tablename__ = "expense_shares"

    __table_args__ = (
        UniqueConstraint("expense_id", "member_id", name="uq_expense_shares_expense_member"),
        CheckConstraint(
            "value IS NULL OR value >= 0",
            name="ck_expense_shares_value_nonnegative",
        ),
    )

    id: Mapped[int] = mapped_column(primary_key=True)

    expense_id: Mapped[int] = mapped_column(
        ForeignKey("expenses.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )

    member_id: Mapped[int] = mapped_column(
        ForeignKey("members.id", ondelete="RESTRICT"),
        nullable=False,
    )

    value: Mapped[int | None] = mapped_column(
        BigInteger,
        nullable=True,
    )

    # ── Relationships ──────────────────────────────────────────────────────

    expense: Mapped["Expense"] = relationship(  # noqa: F821
        "Expense",
        back_populates="shares",
    )

    member: Mapped["Member"] = relationship(  # noqa: F821
        "Member",
    )

    def __repr__(self) -> str:  # pragma: no cover
        return (
            f"<ExpenseShare id={self.id} "
            f"expense_id={self.expense_id} "
            f"member_id={self.member_id} "
            f"value={self.value}>"
        )
