"""
Resource model: a capacity-limited, time-boxed bookable entity.

Key design decisions:
- Allocated units are not stored on the row; the Ledger owns that count and
  rebuilds it from the bookings table when needed
- `status` is never nullable; new rows are created explicitly in DRAFT
- CHECK constraints back up capacity and time-window validation
- Composite index on (status, end_time) serves the lifecycle sweep
"""

from sqlalchemy import Column, Integer, String, DateTime, Numeric, Enum, Index, CheckConstraint

from booking_engine.db.base import Base, TimestampMixin
from booking_engine.models.enums import ResourceStatus, Category, enum_values


class Resource(Base, TimestampMixin):
    __tablename__ = "resources"

    id = Column(Integer, primary_key=True, index=True)
    title = Column(String(100), nullable=False)
    description = Column(String(1000), nullable=True)
    category = Column(
        Enum(Category, native_enum=False, length=20, values_callable=enum_values),
        nullable=True,
    )
    venue = Column(String(255), nullable=True)
    city = Column(String(100), nullable=True)
    image_url = Column(String(500), nullable=True)
    start_time = Column(DateTime(timezone=True), nullable=False)
    end_time = Column(DateTime(timezone=True), nullable=False)
    capacity = Column(Integer, nullable=False)
    unit_price = Column(Numeric(10, 2), nullable=True)
    owner_id = Column(Integer, nullable=False, index=True)
    status = Column(
        Enum(ResourceStatus, native_enum=False, length=20, values_callable=enum_values),
        nullable=False,
    )

    __table_args__ = (
        CheckConstraint("capacity > 0", name="check_resource_capacity_positive"),
        CheckConstraint("end_time > start_time", name="check_resource_end_after_start"),
        CheckConstraint("unit_price IS NULL OR unit_price >= 0", name="check_resource_price_non_negative"),
        Index("ix_resources_start_time", "start_time"),
        Index("ix_resources_status_end_time", "status", "end_time"),
    )

    def __repr__(self) -> str:
        return f"<Resource(id={self.id}, title={self.title}, status={self.status}, capacity={self.capacity})>"
