"""
Booking model: a unit allocation against a Resource.

Key design decisions:
- `code` carries a UNIQUE constraint; it is the authority for code uniqueness
  when two admissions race on the same candidate
- `amount` is frozen at creation and never recomputed from the resource price
- Status allows cancellation without deleting records; cancelled bookings still
  count as history and block resource deletion
"""

from sqlalchemy import Column, Integer, String, Numeric, Enum, ForeignKey, CheckConstraint, Index

from booking_engine.db.base import Base, TimestampMixin
from booking_engine.models.enums import BookingStatus, enum_values


class Booking(Base, TimestampMixin):
    __tablename__ = "bookings"

    id = Column(Integer, primary_key=True, index=True)
    resource_id = Column(Integer, ForeignKey("resources.id"), nullable=False, index=True)
    requester_id = Column(Integer, nullable=False, index=True)
    units = Column(Integer, nullable=False)
    amount = Column(Numeric(12, 2), nullable=False)
    code = Column(String(32), nullable=False, unique=True)
    status = Column(
        Enum(BookingStatus, native_enum=False, length=20, values_callable=enum_values),
        nullable=False,
    )
    note = Column(String(500), nullable=True)

    __table_args__ = (
        CheckConstraint("units > 0", name="check_booking_units_positive"),
        CheckConstraint("amount >= 0", name="check_booking_amount_non_negative"),
        # Covers sum_active_units(resource_id)
        Index("ix_bookings_resource_status", "resource_id", "status"),
    )

    def __repr__(self) -> str:
        return f"<Booking(id={self.id}, code={self.code}, resource={self.resource_id}, status={self.status})>"
