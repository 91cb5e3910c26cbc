"""
Booking admission engine.

CONCURRENCY STRATEGY: Ledger reservation + compensated insert
=============================================================

Problem:
  Two requests read "2 units left", both insert a booking for 2 units.
  Result: the resource is oversold.

Solution:
  The Ledger owns the per-resource allocated count and exposes an atomic
  "reserve if it fits" step. Admission is:

  1. Load the resource and check status and unit policy (no lock)
  2. ledger.try_reserve(resource, units)   <- the only critical section
  3. Draw a unique code, insert the booking, commit
  4. If step 3 fails for any reason, ledger.release(resource, units)

  A release that fails (ledger store down) drops the entry instead, so it is
  re-seeded from the bookings table on next use rather than leaking units.

  The ledger lock is never held across the code lookup or the insert, so a
  slow store never serializes admissions on the same resource. Resources do
  not share locks at all.

  Status transitions (confirm, cancel) are conditional UPDATEs, so two
  concurrent cancels of one booking release its units exactly once.

Ledger hydration:
  A resource is tracked lazily. The first caller seeds the ledger from
  sum_active_units(); `track` only creates missing entries, so a late seed
  never overwrites reservations made in between.
"""

import asyncio
import time
from dataclasses import dataclass
from datetime import datetime, timedelta
from decimal import Decimal
from typing import Optional

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from booking_engine.core.clock import as_utc, utc_now
from booking_engine.core.config import get_settings
from booking_engine.core.exceptions import BusinessRuleViolation, Forbidden, NotFound, Unavailable, surface_unavailable
from booking_engine.core.logging import get_logger
from booking_engine.core.metrics import (
    admission_latency,
    code_collisions,
    ledger_compensations,
    ledger_resyncs,
    record_booking_attempt,
    record_reservation,
    record_transition,
)
from booking_engine.core.security import Principal
from booking_engine.db import repository
from booking_engine.models.booking import Booking
from booking_engine.models.enums import BookingStatus, ResourceStatus
from booking_engine.models.resource import Resource
from booking_engine.services.code_generator import CodeGenerator
from booking_engine.services.interfaces.ledger import Ledger
from booking_engine.services.strategy_factory import get_ledger

logger = get_logger(__name__)


@dataclass(frozen=True)
class BookingSummary:
    code: str
    resource_title: str
    start_time: datetime
    venue: Optional[str]
    units: int
    amount: Decimal
    status: BookingStatus


async def ensure_tracked(db: AsyncSession, ledger: Ledger, resource: Resource) -> None:
    """Seed the ledger for `resource` from the store if it is not tracked yet."""
    if await ledger.is_tracked(resource.id):
        return
    allocated = await repository.sum_active_units(db, resource.id)
    if await ledger.track(resource.id, resource.capacity, allocated):
        logger.info("ledger_tracked", resource_id=resource.id, capacity=resource.capacity, allocated=allocated)


async def release_units(ledger: Ledger, resource_id: int, units: int) -> None:
    """
    Give `units` back to the ledger. If the release itself fails, the entry
    is dropped so the next caller re-seeds it from the store; a forget that
    also fails propagates.
    """
    try:
        await ledger.release(resource_id, units)
    except Exception as e:
        logger.warning("ledger_release_failed", resource_id=resource_id, units=units, error=str(e))
        await ledger.forget(resource_id)
        ledger_resyncs.inc()
        logger.info("ledger_entry_dropped", resource_id=resource_id)


async def _reserve(db: AsyncSession, ledger: Ledger, resource: Resource, units: int) -> bool:
    """
    try_reserve, tolerating an entry dropped since it was tracked (sweep,
    delete, failed release, key eviction): re-check the status and re-seed once.
    """
    try:
        return await ledger.try_reserve(resource.id, units)
    except KeyError:
        logger.info("ledger_entry_missing", resource_id=resource.id)

    await db.refresh(resource)
    if resource.status != ResourceStatus.PUBLISHED:
        record_booking_attempt("rejected")
        logger.warning("booking_rejected", resource_id=resource.id, reason="not_published",
                       status=resource.status.value)
        raise BusinessRuleViolation("Only published resources can be booked")

    await ensure_tracked(db, ledger, resource)
    try:
        return await ledger.try_reserve(resource.id, units)
    except KeyError:
        raise Unavailable(f"Ledger entry for resource {resource.id} could not be established")


@surface_unavailable
async def available_units(db: AsyncSession, resource_id: int, ledger: Optional[Ledger] = None) -> int:
    ledger = ledger or get_ledger()
    resource = await repository.load_resource(db, resource_id)
    await ensure_tracked(db, ledger, resource)
    return await ledger.available_units(resource.id)


@surface_unavailable
async def create_booking(
    db: AsyncSession,
    principal: Principal,
    resource_id: int,
    units: int,
    note: Optional[str] = None,
    ledger: Optional[Ledger] = None,
) -> Booking:
    """
    Admit a booking of `units` against a published resource.

    Raises:
        NotFound: the resource does not exist
        BusinessRuleViolation: not published, units outside policy, or not
            enough units left (carries `available_units`)
        ResourceExhausted: no unique code could be drawn
    """
    settings = get_settings()
    ledger = ledger or get_ledger()
    started = time.perf_counter()

    resource = await repository.load_resource(db, resource_id)

    if resource.status != ResourceStatus.PUBLISHED:
        record_booking_attempt("rejected")
        logger.warning("booking_rejected", resource_id=resource_id, reason="not_published",
                       status=resource.status.value)
        raise BusinessRuleViolation("Only published resources can be booked")

    if units < 1 or units > settings.MAX_UNITS_PER_BOOKING:
        record_booking_attempt("rejected")
        logger.warning("booking_rejected", resource_id=resource_id, reason="units_out_of_range", units=units)
        raise BusinessRuleViolation(
            f"A booking must be for 1 to {settings.MAX_UNITS_PER_BOOKING} units"
        )

    await ensure_tracked(db, ledger, resource)

    reserved = await _reserve(db, ledger, resource, units)
    record_reservation(reserved)

    # Captured now: a rollback in the insert loop expires the ORM instance
    amount = Decimal(units) * Decimal(resource.unit_price or 0)
    resource_id = resource.id

    if not reserved:
        available = await ledger.available_units(resource_id)
        record_booking_attempt("insufficient")
        logger.warning("booking_rejected", resource_id=resource_id, reason="insufficient_units",
                       requested=units, available=available)
        raise BusinessRuleViolation(
            f"Not enough units left. Requested: {units}, Available: {available}",
            available_units=available,
        )

    initial_status = BookingStatus.CONFIRMED if settings.BOOKINGS_AUTO_CONFIRM else BookingStatus.PENDING
    try:
        booking = await _insert_with_unique_code(
            db,
            resource_id=resource_id,
            requester_id=principal.user_id,
            units=units,
            amount=amount,
            status=initial_status,
            note=note,
        )
    except (Exception, asyncio.CancelledError):
        await release_units(ledger, resource_id, units)
        ledger_compensations.inc()
        record_booking_attempt("error")
        logger.warning("ledger_compensated", resource_id=resource_id, units=units)
        raise

    record_booking_attempt("admitted")
    admission_latency.observe(time.perf_counter() - started)
    logger.info(
        "booking_created",
        booking_id=booking.id,
        code=booking.code,
        resource_id=resource_id,
        requester_id=principal.user_id,
        units=units,
        status=initial_status.value,
    )
    return booking


async def _insert_with_unique_code(
    db: AsyncSession,
    resource_id: int,
    requester_id: int,
    units: int,
    amount: Decimal,
    status: BookingStatus,
    note: Optional[str],
) -> Booking:
    async def code_exists(code: str) -> bool:
        return await repository.find_booking_by_code(db, code) is not None

    generator = CodeGenerator(exists=code_exists)
    while True:
        code = await generator.next_code()
        booking = Booking(
            resource_id=resource_id,
            requester_id=requester_id,
            units=units,
            amount=amount,
            code=code,
            status=status,
            note=note,
            created_at=utc_now(),
        )
        try:
            return await repository.insert_booking(db, booking)
        except IntegrityError:
            await db.rollback()
            # Only a code clash is retried; any other constraint failure propagates
            if not await code_exists(code):
                raise
            code_collisions.labels(stage="insert").inc()
            logger.info("booking_code_collision", stage="insert", attempt=generator.attempts)


@surface_unavailable
async def confirm_booking(db: AsyncSession, principal: Principal, booking_id: int) -> Booking:
    """PENDING -> CONFIRMED, by the resource owner or an admin."""
    booking = await repository.load_booking(db, booking_id)
    resource = await repository.load_resource(db, booking.resource_id)

    if not principal.can_manage(resource.owner_id):
        raise Forbidden("Only the resource owner can confirm bookings")

    if booking.status != BookingStatus.PENDING:
        raise BusinessRuleViolation(f"Only pending bookings can be confirmed (status: {booking.status.value})")

    if not await repository.transition_booking(db, booking.id, [BookingStatus.PENDING], BookingStatus.CONFIRMED):
        await db.rollback()
        raise BusinessRuleViolation("Booking is no longer pending")

    await db.commit()
    await db.refresh(booking)
    record_transition("confirmed")
    logger.info("booking_confirmed", booking_id=booking.id, resource_id=booking.resource_id,
                confirmed_by=principal.user_id)
    return booking


@surface_unavailable
async def cancel_booking(
    db: AsyncSession,
    principal: Principal,
    booking_id: int,
    now: Optional[datetime] = None,
    ledger: Optional[Ledger] = None,
) -> Booking:
    """
    PENDING|CONFIRMED -> CANCELLED, by the requester or an admin, and release
    the units. Allowed only while `now + window < resource.start_time`.
    """
    settings = get_settings()
    ledger = ledger or get_ledger()
    now = as_utc(now) if now else utc_now()

    booking = await repository.load_booking(db, booking_id)
    resource = await repository.load_resource(db, booking.resource_id)

    if not (principal.is_admin or principal.user_id == booking.requester_id):
        raise Forbidden("Only the requester can cancel this booking")

    if not booking.status.can_cancel:
        raise BusinessRuleViolation("Booking is already cancelled")

    window = timedelta(hours=settings.CANCELLATION_WINDOW_HOURS)
    if not now + window < as_utc(resource.start_time):
        logger.warning("booking_cancel_rejected", booking_id=booking.id, reason="window_passed")
        raise BusinessRuleViolation(
            f"Cancellation window passed: bookings can only be cancelled "
            f"{settings.CANCELLATION_WINDOW_HOURS}h before the start"
        )

    # Tracked before the commit so the release below always lands on an entry
    # that still counts these units
    await ensure_tracked(db, ledger, resource)

    cancellable = [BookingStatus.PENDING, BookingStatus.CONFIRMED]
    if not await repository.transition_booking(db, booking.id, cancellable, BookingStatus.CANCELLED):
        await db.rollback()
        raise BusinessRuleViolation("Booking is already cancelled")

    await db.commit()
    await release_units(ledger, resource.id, booking.units)
    await db.refresh(booking)

    record_transition("cancelled")
    logger.info(
        "booking_cancelled",
        booking_id=booking.id,
        resource_id=resource.id,
        cancelled_by=principal.user_id,
        units_released=booking.units,
    )
    return booking


async def cancel_resource_bookings(db: AsyncSession, resource: Resource, ledger: Ledger) -> int:
    """
    Cancel every active booking of a cancelled resource, ignoring the
    cancellation window. Commits, then releases. Returns the number cancelled.
    """
    await ensure_tracked(db, ledger, resource)
    result = await db.execute(
        select(Booking.id, Booking.units).where(
            Booking.resource_id == resource.id,
            Booking.status != BookingStatus.CANCELLED,
        )
    )
    cancellable = [BookingStatus.PENDING, BookingStatus.CONFIRMED]
    released = 0
    count = 0
    for booking_id, units in result.all():
        if await repository.transition_booking(db, booking_id, cancellable, BookingStatus.CANCELLED):
            released += units
            count += 1

    await db.commit()
    if released:
        await release_units(ledger, resource.id, released)
    logger.info("resource_bookings_cancelled", resource_id=resource.id, bookings=count, units_released=released)
    return count


def _can_view(principal: Principal, booking: Booking, resource: Resource) -> bool:
    return principal.can_manage(resource.owner_id) or principal.user_id == booking.requester_id


@surface_unavailable
async def get_booking(db: AsyncSession, principal: Principal, booking_id: int) -> Booking:
    booking = await repository.load_booking(db, booking_id)
    resource = await repository.load_resource(db, booking.resource_id)
    if not _can_view(principal, booking, resource):
        raise Forbidden("Not allowed to view this booking")
    return booking


@surface_unavailable
async def find_booking_by_code(db: AsyncSession, principal: Principal, code: str) -> Booking:
    """Verify a booking by its code (e.g. at the entrance)."""
    booking = await repository.find_booking_by_code(db, code.strip().upper())
    if not booking:
        raise NotFound(f"No booking with code {code}")
    resource = await repository.load_resource(db, booking.resource_id)
    if not _can_view(principal, booking, resource):
        raise Forbidden("Not allowed to view this booking")
    return booking


@surface_unavailable
async def booking_summary(db: AsyncSession, principal: Principal, booking_id: int) -> BookingSummary:
    booking = await repository.load_booking(db, booking_id)
    resource = await repository.load_resource(db, booking.resource_id)
    if not _can_view(principal, booking, resource):
        raise Forbidden("Not allowed to view this booking")
    return BookingSummary(
        code=booking.code,
        resource_title=resource.title,
        start_time=as_utc(resource.start_time),
        venue=resource.venue,
        units=booking.units,
        amount=booking.amount,
        status=booking.status,
    )


@surface_unavailable
async def list_requester_bookings(
    db: AsyncSession,
    requester_id: int,
    status: Optional[BookingStatus] = None,
) -> list[Booking]:
    query = select(Booking).where(Booking.requester_id == requester_id)
    if status is not None:
        query = query.where(Booking.status == status)
    result = await db.execute(query.order_by(Booking.created_at.desc(), Booking.id.desc()))
    return list(result.scalars().all())


@surface_unavailable
async def list_resource_bookings(db: AsyncSession, principal: Principal, resource_id: int) -> list[Booking]:
    resource = await repository.load_resource(db, resource_id)
    if not principal.can_manage(resource.owner_id):
        raise Forbidden("Only the resource owner can list its bookings")
    result = await db.execute(
        select(Booking).where(Booking.resource_id == resource_id).order_by(Booking.created_at.asc(), Booking.id.asc())
    )
    return list(result.scalars().all())
