"""Initial schema: reservations and dependents with indexes and constraints.

Revision ID: 001
Revises: None
Create Date: 2026-10-19
"""
from typing import Sequence, Union
from alembic import op
import sqlalchemy as sa

revision: str = "001"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    # Reservations table
    op.create_table(
        "reservations",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("holder_name", sa.String(255), nullable=False),
        sa.Column("holder_age", sa.Integer(), nullable=False),
        sa.Column("holder_gender", sa.String(10), nullable=False),
        sa.Column("status", sa.String(4), nullable=False),
        sa.Column("seat_category", sa.String(10), nullable=False),
        sa.Column("admitted_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
        sa.PrimaryKeyConstraint("id", name="pk_reservations"),
        # Duplicate-booking guard: one live reservation per holder name
        sa.UniqueConstraint("holder_name", name="uq_reservations_holder_name"),
        sa.CheckConstraint("status IN ('CNF', 'RAC', 'WAIT')", name="ck_reservations_status"),
        sa.CheckConstraint(
            "(status = 'CNF' AND seat_category IN ('lower', 'middle', 'upper', 'sideUpper'))"
            " OR (status = 'RAC' AND seat_category = 'sideLower')"
            " OR (status = 'WAIT' AND seat_category = 'none')",
            name="ck_reservations_status_seat_category",
        ),
        sa.CheckConstraint("holder_age >= 0 AND holder_age <= 100", name="ck_reservations_holder_age"),
    )
    # PROMOTION LOOKUP: "oldest reservation in tier X" runs on every cancellation.
    # (status, admitted_at, id) serves the WHERE and the ORDER BY ... LIMIT 1
    # straight from the index, including the id tie-break.
    op.create_index("ix_reservations_status_admitted", "reservations", ["status", "admitted_at", "id"])
    # Per-category CNF counts for seat assignment and availability
    op.create_index("ix_reservations_status_seat", "reservations", ["status", "seat_category"])

    # Dependents table
    op.create_table(
        "dependents",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("name", sa.String(255), nullable=False),
        sa.Column("age", sa.Integer(), nullable=False),
        sa.Column("reservation_id", sa.Integer(), nullable=False),
        sa.PrimaryKeyConstraint("id", name="pk_dependents"),
        sa.ForeignKeyConstraint(
            ["reservation_id"],
            ["reservations.id"],
            name="fk_dependents_reservation_id_reservations",
            ondelete="CASCADE",
        ),
        sa.CheckConstraint("age >= 0 AND age <= 5", name="ck_dependents_age"),
    )
    op.create_index("ix_dependents_reservation_id", "dependents", ["reservation_id"])


def downgrade() -> None:
    op.drop_table("dependents")
    op.drop_table("reservations")
