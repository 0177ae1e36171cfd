"""
models/settlement.py — Settlement table definition.

A settlement is a payment that has actually been made between two members.
The engine's settlement plan is a recommendation and is never stored; a row
here is written only when the caller records a payment.

Key design points:
  - `amount_minor` stores integer minor units.
  - CHECK(paid_by_member_id <> paid_to_member_id) is enforced here AND in
    settlement_service.py (SELF_SETTLEMENT, 422). The DB constraint is the
    last line of defense.
"""

from __future__ import annotations

from datetime import datetime
from decimal import Decimal

from sqlalchemy import BigInteger, CheckConstraint, DateTime, ForeignKey, func
from sqlalchemy.orm import Mapped, mapped_column, relationship

from splitsettle.app.engine.money import from_minor
from splitsettle.app.extensions import db


class Settlement(db.Model):
    __tablename__ = "settlements"

    __table_args__ = (
        CheckConstraint("amount_minor > 0", name="ck_settlements_amount_positive"),
        CheckConstraint(
            "paid_by_member_id <> paid_to_member_id",
            name="ck_settlements_no_self_settlement",
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

    paid_to_member_id: Mapped[int] = mapped_column(
        ForeignKey("members.id", ondelete="RESTRICT"),
        nullable=False,
    )

    amount_minor: Mapped[int] = mapped_column(
        BigInteger,
        nullable=False,
    )

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        server_default=func.now(),
    )

    # ── Relationships ──────────────────────────────────────────────────────

    group: Mapped["Group"] = relationship(  # noqa: F821
        "Group",
        back_populates="settlements",
    )

    payer: Mapped["Member"] = relationship(  # noqa: F821
        "Member",
        foreign_keys=[paid_by_member_id],
    )

    recipient: Mapped["Member"] = relationship(  # noqa: F821
        "Member",
        foreign_keys=[paid_to_member_id],
    )

    @property
    def amount(self) -> Decimal:
        return from_minor(self.amount_minor)

    def __repr__(self) -> str:  # pragma: no cover
        return (
            f"<Settlement id={self.id} "
            f"group_id={self.group_id} "
            f"from={self.paid_by_member_id} "
            f"to={self.paid_to_member_id} "
            f"amount={self.amount}>"
        )
