"""Initial schema — groups, members, expenses, expense shares, settlements.

Revision: 001_initial_schema
Created:  2026-10-16

Append-only: never edit this file once it has been applied to a database.
Schema changes go in a NEW migration file.

Creation order:
  1. PostgreSQL enum types (must exist before the expenses table)
  2. Tables in FK dependency order (groups → members → expenses
     → expense_shares, settlements)
  3. Indexes (including the partial index idx_expenses_active)

Money columns are BIGINT minor units (cents). expense_shares.value is an
integer whose unit depends on expenses.split_kind:
  exact      → minor units
  percentage → basis points (hundredths of a percent)
  shares     → weight units
  equal      → NULL

ON DELETE policies:
  members.group_id           → RESTRICT
  expenses.*                 → RESTRICT
  expense_shares.expense_id  → CASCADE   (shares owned by expense)
  expense_shares.member_id   → RESTRICT
  settlements.*              → RESTRICT
"""

from __future__ import annotations

import sqlalchemy as sa
from alembic import op
from sqlalchemy.dialects import postgresql

# ── Alembic revision identifiers ──────────────────────────────────────────
revision: str = "001_initial_schema"
down_revision: str | None = None      # first migration: no parent
branch_labels: tuple | None = None
depends_on: tuple | None = None


def upgrade() -> None:
    """Apply the full initial schema."""

    # ── Step 1: PostgreSQL enum types ─────────────────────────────────────

    op.execute("""
        CREATE TYPE split_kind_enum AS ENUM ('equal', 'exact', 'percentage', 'shares')
    """)

    op.execute("""
        CREATE TYPE category_enum AS ENUM (
            'food',
            'transport',
            'accommodation',
            'entertainment',
            'shopping',
            'utilities',
            'other'
        )
    """)

    # ── Step 2: groups ─────────────────────────────────────────────────────

    op.create_table(
        "groups",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("name", sa.String(100), nullable=False),
        sa.Column("currency", sa.String(3), nullable=False),
        sa.Column(
            "created_at",
            sa.DateTime(timezone=True),
            nullable=False,
            server_default=sa.text("NOW()"),
        ),
        sa.PrimaryKeyConstraint("id", name="pk_groups"),
        sa.CheckConstraint(
            "LENGTH(TRIM(name)) > 0",
            name="ck_groups_name_nonempty",
        ),
    )

    # ── Step 3: members ────────────────────────────────────────────────────
    # Names are unique per group, not globally.

    op.create_table(
        "members",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column(
            "group_id",
            sa.Integer(),
            sa.ForeignKey("groups.id", ondelete="RESTRICT", name="fk_members_group"),
            nullable=False,
        ),
        sa.Column("name", sa.String(50), nullable=False),
        sa.Column(
            "joined_at",
            sa.DateTime(timezone=True),
            nullable=False,
            server_default=sa.text("NOW()"),
        ),
        sa.PrimaryKeyConstraint("id", name="pk_members"),
        sa.UniqueConstraint("group_id", "name", name="uq_members_group_name"),
        sa.CheckConstraint(
            "LENGTH(TRIM(name)) > 0",
            name="ck_members_name_nonempty",
        ),
    )

    # ── Step 4: expenses ───────────────────────────────────────────────────

    op.create_table(
        "expenses",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column(
            "group_id",
            sa.Integer(),
            sa.ForeignKey("groups.id", ondelete="RESTRICT", name="fk_expenses_group"),
            nullable=False,
        ),
        sa.Column(
            "paid_by_member_id",
            sa.Integer(),
            sa.ForeignKey("members.id", ondelete="RESTRICT", name="fk_expenses_payer"),
            nullable=False,
        ),
        sa.Column("description", sa.String(255), nullable=False),
        sa.Column("amount_minor", sa.BigInteger(), nullable=False),
        sa.Column(
            "split_kind",
            postgresql.ENUM(name="split_kind_enum", create_type=False),
            nullable=False,
        ),
        sa.Column(
            "category",
            postgresql.ENUM(name="category_enum", create_type=False),
            nullable=False,
            server_default="other",
        ),
        sa.Column(
            "incurred_on",
            sa.Date(),
            nullable=False,
            server_default=sa.text("CURRENT_DATE"),
        ),
        sa.Column(
            "created_at",
            sa.DateTime(timezone=True),
            nullable=False,
            server_default=sa.text("NOW()"),
        ),
        sa.Column("deleted_at", sa.DateTime(timezone=True), nullable=True),
        sa.PrimaryKeyConstraint("id", name="pk_expenses"),
        sa.CheckConstraint("amount_minor > 0", name="ck_expenses_amount_positive"),
        sa.CheckConstraint(
            "LENGTH(TRIM(description)) > 0",
            name="ck_expenses_description_nonempty",
        ),
    )

    # ── Step 5: expense_shares ─────────────────────────────────────────────

    op.create_table(
        "expense_shares",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column(
            "expense_id",
            sa.Integer(),
            sa.ForeignKey("expenses.id", ondelete="CASCADE", name="fk_expense_shares_expense"),
            nullable=False,
        ),
        sa.Column(
            "member_id",
            sa.Integer(),
            sa.ForeignKey("members.id", ondelete="RESTRICT", name="fk_expense_shares_member"),
            nullable=False,
        ),
        sa.Column("value", sa.BigInteger(), nullable=True),
        sa.PrimaryKeyConstraint("id", name="pk_expense_shares"),
        sa.UniqueConstraint(
            "expense_id",
            "member_id",
            name="uq_expense_shares_expense_member",
        ),
        sa.CheckConstraint(
            "value IS NULL OR value >= 0",
            name="ck_expense_shares_value_nonnegative",
        ),
    )

    # ── Step 6: settlements ────────────────────────────────────────────────

    op.create_table(
        "settlements",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column(
            "group_id",
            sa.Integer(),
            sa.ForeignKey("groups.id", ondelete="RESTRICT", name="fk_settlements_group"),
            nullable=False,
        ),
        sa.Column(
            "paid_by_member_id",
            sa.Integer(),
            sa.ForeignKey("members.id", ondelete="RESTRICT", name="fk_settlements_payer"),
            nullable=False,
        ),
        sa.Column(
            "paid_to_member_id",
            sa.Integer(),
            sa.ForeignKey("members.id", ondelete="RESTRICT", name="fk_settlements_recipient"),
            nullable=False,
        ),
        sa.Column("amount_minor", sa.BigInteger(), nullable=False),
        sa.Column(
            "created_at",
            sa.DateTime(timezone=True),
            nullable=False,
            server_default=sa.text("NOW()"),
        ),
        sa.PrimaryKeyConstraint("id", name="pk_settlements"),
        sa.CheckConstraint("amount_minor > 0", name="ck_settlements_amount_positive"),
        sa.CheckConstraint(
            "paid_by_member_id <> paid_to_member_id",
            name="ck_settlements_no_self_settlement",
        ),
    )

    # ── Step 7: indexes ────────────────────────────────────────────────────
    # Names match the ORM's index=True defaults so autogenerate sees no drift.

    op.create_index("ix_members_group_id", "members", ["group_id"])
    op.create_index("ix_expenses_group_id", "expenses", ["group_id"])
    op.create_index("ix_expense_shares_expense_id", "expense_shares", ["expense_id"])
    op.create_index("ix_settlements_group_id", "settlements", ["group_id"])

    # Balance computation only ever reads active expenses.
    op.create_index(
        "idx_expenses_active",
        "expenses",
        ["group_id"],
        postgresql_where=sa.text("deleted_at IS NULL"),
    )


def downgrade() -> None:
    """Drop all objects created in upgrade(), in reverse dependency order."""

    op.drop_index("idx_expenses_active",          table_name="expenses")
    op.drop_index("ix_settlements_group_id",      table_name="settlements")
    op.drop_index("ix_expense_shares_expense_id", table_name="expense_shares")
    op.drop_index("ix_expenses_group_id",         table_name="expenses")
    op.drop_index("ix_members_group_id",          table_name="members")

    op.drop_table("settlements")
    op.drop_table("expense_shares")
    op.drop_table("expenses")
    op.drop_table("members")
    op.drop_table("groups")

    op.execute("DROP TYPE IF EXISTS category_enum")
    op.execute("DROP TYPE IF EXISTS split_kind_enum")
