"""
Reservation model: one holder's claim on the pool.

Key design decisions:
- `status` and `seat_category` are part of the INSERT and NOT NULL, so
  every row is in exactly one tier from the moment it exists
- CHECK constraint couples status to seat category (CNF -> berth,
  RAC -> sideLower, WAIT -> none)
- Unique constraint on holder_name backs the duplicate-booking guard
- `admitted_at` is set by the database at insert and never updated;
  promotion order is (admitted_at, id)
"""

from sqlalchemy import Column, Integer, String, DateTime, CheckConstraint, Index, func
from sqlalchemy.orm import relationship

from railbook.db.base import Base


class Reservation(Base):
    __tablename__ = "reservations"

    id = Column(Integer, primary_key=True, autoincrement=True)
    holder_name = Column(String(255), nullable=False, unique=True)
    holder_age = Column(Integer, nullable=False)
    holder_gender = Column(String(10), nullable=False)
    status = Column(String(4), nullable=False)
    seat_category = Column(String(10), nullable=False)
    admitted_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now())

    dependents = relationship(
        "Dependent",
        back_populates="reservation",
        cascade="all, delete-orphan",
        lazy="selectin",
        order_by="Dependent.id",
    )

    __table_args__ = (
        CheckConstraint("status IN ('CNF', 'RAC', 'WAIT')", name="ck_reservations_status"),
        CheckConstraint(
            "(status = 'CNF' AND seat_category IN ('lower', 'middle', 'upper', 'sideUpper'))"
            " OR (status = 'RAC' AND seat_category = 'sideLower')"
            " OR (status = 'WAIT' AND seat_category = 'none')",
            name="ck_reservations_status_seat_category",
        ),
        CheckConstraint("holder_age >= 0 AND holder_age <= 100", name="ck_reservations_holder_age"),
        # Oldest-in-tier lookup used by promotion
        Index("ix_reservations_status_admitted", "status", "admitted_at", "id"),
        # Per-category CNF occupancy counts
        Index("ix_reservations_status_seat", "status", "seat_category"),
    )

    def __repr__(self) -> str:
        return (
            f"<Reservation(id={self.id}, holder={self.holder_name}, "
            f"status={self.status}, seat={self.seat_category})>"
        )
