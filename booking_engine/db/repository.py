"""
Persistence contract used by the engine.

Thin query helpers over an AsyncSession. They never commit, except
`insert_booking`, whose commit is the point where the code's uniqueness
constraint is enforced.
"""

from datetime import datetime
from typing import Iterable, Optional

from sqlalchemy import select, update, func
from sqlalchemy.ext.asyncio import AsyncSession

from booking_engine.core.clock import as_utc
from booking_engine.core.exceptions import NotFound, ValidationError
from booking_engine.models.booking import Booking
from booking_engine.models.enums import BookingStatus, ResourceStatus
from booking_engine.models.resource import Resource


async def load_resource(db: AsyncSession, resource_id: int) -> Resource:
    result = await db.execute(select(Resource).where(Resource.id == resource_id))
    resource = result.scalar_one_or_none()
    if not resource:
        raise NotFound(f"Resource {resource_id} not found")
    return resource


async def save_resource(db: AsyncSession, resource: Resource) -> Resource:
    """Upsert a resource after re-checking the invariants the table enforces."""
    if resource.capacity is None or resource.capacity < 1:
        raise ValidationError("Capacity must be at least 1")
    if as_utc(resource.end_time) <= as_utc(resource.start_time):
        raise ValidationError("End time must be after start time")
    db.add(resource)
    await db.flush()
    return resource


async def load_booking(db: AsyncSession, booking_id: int) -> Booking:
    result = await db.execute(select(Booking).where(Booking.id == booking_id))
    booking = result.scalar_one_or_none()
    if not booking:
        raise NotFound(f"Booking {booking_id} not found")
    return booking


async def find_booking_by_code(db: AsyncSession, code: str) -> Optional[Booking]:
    result = await db.execute(select(Booking).where(Booking.code == code))
    return result.scalar_one_or_none()


async def insert_booking(db: AsyncSession, booking: Booking) -> Booking:
    """Insert and commit. Raises IntegrityError when the code is already taken."""
    db.add(booking)
    await db.commit()
    return booking


async def sum_active_units(db: AsyncSession, resource_id: int) -> int:
    result = await db.execute(
        select(func.coalesce(func.sum(Booking.units), 0)).where(
            Booking.resource_id == resource_id,
            Booking.status != BookingStatus.CANCELLED,
        )
    )
    return int(result.scalar_one())


async def count_bookings(db: AsyncSession, resource_id: int) -> int:
    result = await db.execute(
        select(func.count()).select_from(Booking).where(Booking.resource_id == resource_id)
    )
    return int(result.scalar_one())


async def transition_booking(
    db: AsyncSession,
    booking_id: int,
    allowed_from: Iterable[BookingStatus],
    target: BookingStatus,
) -> bool:
    """
    Conditional status update. Returns False when the booking was no longer in
    one of `allowed_from`, so concurrent transitions apply exactly once.
    """
    result = await db.execute(
        update(Booking)
        .where(Booking.id == booking_id, Booking.status.in_(list(allowed_from)))
        .values(status=target)
        .execution_options(synchronize_session=False)
    )
    return result.rowcount == 1


async def finish_elapsed_resources(db: AsyncSession, now: datetime) -> list[int]:
    """
    Move every PUBLISHED resource whose end time has passed to FINISHED.
    Returns the ids actually moved, not those merely selected.
    """
    result = await db.execute(
        select(Resource.id).where(
            Resource.status == ResourceStatus.PUBLISHED,
            Resource.end_time < now,
        )
    )
    ids = list(result.scalars().all())
    if not ids:
        return []
    # Status re-checked in the UPDATE so a concurrent cancellation wins
    await db.execute(
        update(Resource)
        .where(Resource.id.in_(ids), Resource.status == ResourceStatus.PUBLISHED)
        .values(status=ResourceStatus.FINISHED)
        .execution_options(synchronize_session=False)
    )
    # Only the rows this UPDATE moved; none of `ids` was FINISHED before it
    result = await db.execute(
        select(Resource.id)
        .where(Resource.id.in_(ids), Resource.status == ResourceStatus.FINISHED)
        .order_by(Resource.id)
    )
    return list(result.scalars().all())
