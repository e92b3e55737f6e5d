"""
Dependent model: a child travelling on a holder's reservation.
No lifecycle of its own; removed together with the parent reservation.
"""

from sqlalchemy import Column, Integer, String, ForeignKey, CheckConstraint
from sqlalchemy.orm import relationship

from railbook.db.base import Base


class Dependent(Base):
    __tablename__ = "dependents"

    id = Column(Integer, primary_key=True, autoincrement=True)
    name = Column(String(255), nullable=False)
    age = Column(Integer, nullable=False)
    reservation_id = Column(
        Integer,
        ForeignKey("reservations.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )

    reservation = relationship("Reservation", back_populates="dependents")

    __table_args__ = (
        CheckConstraint("age >= 0 AND age <= 5", name="ck_dependents_age"),
    )

    def __repr__(self) -> str:
        return f"<Dependent(id={self.id}, name={self.name}, reservation={self.reservation_id})>"
