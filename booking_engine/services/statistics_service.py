"""
Read-side aggregation over bookings and resources.

Pure functions over already-loaded rows, plus thin loaders that feed them.
Cancelled bookings never contribute to unit, revenue or occupancy figures.
"""

from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal
from typing import Iterable, Optional, Sequence

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from booking_engine.core.clock import as_utc, utc_now
from booking_engine.core.exceptions import surface_unavailable
from booking_engine.models.booking import Booking
from booking_engine.models.enums import BookingStatus, ResourceStatus
from booking_engine.models.resource import Resource


@dataclass(frozen=True)
class BookingTotals:
    bookings: int
    units: int
    revenue: Decimal


@dataclass(frozen=True)
class ResourceUsage:
    resource: Resource
    allocated_units: int

    @property
    def occupancy(self) -> float:
        return occupancy_ratio(self.allocated_units, self.resource.capacity)


@dataclass(frozen=True)
class OrganizerStatistics:
    total_resources: int
    published_resources: int
    total_revenue: Decimal
    average_attendance: float


@dataclass(frozen=True)
class RequesterStatistics:
    total_bookings: int
    total_spent: Decimal
    upcoming_bookings: int


def _active(bookings: Iterable[Booking]) -> list[Booking]:
    return [b for b in bookings if b.status != BookingStatus.CANCELLED]


def summarize_bookings(bookings: Iterable[Booking]) -> BookingTotals:
    active = _active(bookings)
    return BookingTotals(
        bookings=len(active),
        units=sum(b.units for b in active),
        revenue=sum((Decimal(b.amount) for b in active), Decimal("0")),
    )


def occupancy_ratio(allocated: int, capacity: int) -> float:
    if capacity <= 0:
        return 0.0
    return allocated / capacity


def allocated_by_resource(bookings: Iterable[Booking]) -> dict[int, int]:
    totals: dict[int, int] = {}
    for booking in _active(bookings):
        totals[booking.resource_id] = totals.get(booking.resource_id, 0) + booking.units
    return totals


def rank_popular_resources(
    resources: Iterable[Resource],
    bookings: Iterable[Booking],
    limit: Optional[int] = None,
) -> list[ResourceUsage]:
    """Descending allocated units; ties go to the earlier start time."""
    allocated = allocated_by_resource(bookings)
    usage = [ResourceUsage(resource=r, allocated_units=allocated.get(r.id, 0)) for r in resources]
    usage.sort(key=lambda u: (-u.allocated_units, as_utc(u.resource.start_time), u.resource.id))
    return usage[:limit] if limit is not None else usage


def organizer_statistics(resources: Sequence[Resource], bookings: Iterable[Booking]) -> OrganizerStatistics:
    owned = {r.id for r in resources}
    relevant = [b for b in bookings if b.resource_id in owned]
    allocated = allocated_by_resource(relevant)
    attendance = [allocated.get(r.id, 0) for r in resources]
    return OrganizerStatistics(
        total_resources=len(resources),
        published_resources=sum(1 for r in resources if r.status == ResourceStatus.PUBLISHED),
        total_revenue=summarize_bookings(relevant).revenue,
        average_attendance=(sum(attendance) / len(attendance)) if attendance else 0.0,
    )


def requester_statistics(
    bookings: Sequence[Booking],
    start_times: dict[int, datetime],
    now: Optional[datetime] = None,
) -> RequesterStatistics:
    """`start_times` maps resource id to start time for the bookings given."""
    now = as_utc(now) if now else utc_now()
    spent = sum((Decimal(b.amount) for b in bookings if b.status == BookingStatus.CONFIRMED), Decimal("0"))
    upcoming = sum(
        1 for b in _active(bookings)
        if b.resource_id in start_times and as_utc(start_times[b.resource_id]) > now
    )
    return RequesterStatistics(total_bookings=len(bookings), total_spent=spent, upcoming_bookings=upcoming)


@surface_unavailable
async def load_popular_resources(db: AsyncSession, limit: int = 10) -> list[ResourceUsage]:
    resources = (await db.execute(
        select(Resource).where(Resource.status == ResourceStatus.PUBLISHED)
    )).scalars().all()
    ids = [r.id for r in resources]
    bookings = (await db.execute(
        select(Booking).where(Booking.resource_id.in_(ids))
    )).scalars().all() if ids else []
    return rank_popular_resources(resources, bookings, limit=limit)


@surface_unavailable
async def load_organizer_statistics(db: AsyncSession, owner_id: int) -> OrganizerStatistics:
    resources = (await db.execute(select(Resource).where(Resource.owner_id == owner_id))).scalars().all()
    ids = [r.id for r in resources]
    bookings = (await db.execute(
        select(Booking).where(Booking.resource_id.in_(ids))
    )).scalars().all() if ids else []
    return organizer_statistics(resources, bookings)


@surface_unavailable
async def load_requester_statistics(db: AsyncSession, requester_id: int) -> RequesterStatistics:
    bookings = (await db.execute(select(Booking).where(Booking.requester_id == requester_id))).scalars().all()
    ids = {b.resource_id for b in bookings}
    rows = (await db.execute(
        select(Resource.id, Resource.start_time).where(Resource.id.in_(ids))
    )).all() if ids else []
    return requester_statistics(bookings, {rid: start for rid, start in rows})
