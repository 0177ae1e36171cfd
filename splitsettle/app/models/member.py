"""
models/member.py — Member table definition.

A member belongs to exactly one group and is immutable once added. Removal is
a group-management concern and is not exposed by the API.

FK policy: group_id ON DELETE RESTRICT — a group with members cannot be deleted.
"""

from __future__ import annotations

from datetime import datetime

from sqlalchemy import CheckConstraint, DateTime, ForeignKey, String, UniqueConstraint, func
from sqlalchemy.orm import Mapped, mapped_column, relationship

from splitsettle.app.extensions import db


class Member(db.Model):
    __tablename__ = "members"

    __table_args__ = (
        # Display names are unique within a group (DUPLICATE_MEMBER_NAME, 409).
        UniqueConstraint("group_id", "name", name="uq_members_group_name"),
        CheckConstraint(
            "LENGTH(TRIM(name)) > 0",
            name="ck_members_name_nonempty",
        ),
    )

    id: Mapped[int] = mapped_column(primary_key=True)

    group_id: Mapped[int] = mapped_column(
        ForeignKey("groups.id", ondelete="RESTRICT"),
        nullable=False,
        index=True,
    )

    name: Mapped[str] = mapped_column(
        String(50),
        nullable=False,
    )

    joined_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        server_default=func.now(),
    )

    # ── Relationships ──────────────────────────────────────────────────────

    group: Mapped["Group"] = relationship(  # noqa: F821
        "Group",
        back_populates="members",
    )

    def __repr__(self) -> str:  # pragma: no cover
        return (
            f"<Member id={self.id} "
            f"group_id={self.group_id} "
            f"name={self.name!r}>"
        )
