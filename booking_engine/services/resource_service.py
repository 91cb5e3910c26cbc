r"""
Resource lifecycle service.

    DRAFT --publish--> PUBLISHED --scheduler--> FINISHED
      \                    |
       +------cancel-------+----> CANCELLED

FINISHED and CANCELLED are terminal: no edits, no new bookings.
"""

from datetime import datetime
from typing import Optional

from sqlalchemy import select, func
from sqlalchemy.ext.asyncio import AsyncSession

from booking_engine.core.clock import as_utc, utc_now
from booking_engine.core.config import get_settings
from booking_engine.core.exceptions import BusinessRuleViolation, Forbidden, ValidationError, surface_unavailable
from booking_engine.core.logging import get_logger
from booking_engine.core.security import Principal, Role
from booking_engine.db import repository
from booking_engine.models.enums import ResourceStatus
from booking_engine.models.resource import Resource
from booking_engine.schemas.resource import ResourceCreate, ResourceUpdate
from booking_engine.services.booking_service import cancel_resource_bookings, ensure_tracked
from booking_engine.services.interfaces.ledger import Ledger
from booking_engine.services.strategy_factory import get_ledger

logger = get_logger(__name__)

# Fields that must be set before a draft can be published
PUBLISH_REQUIRED_FIELDS = ("title", "category", "start_time", "end_time", "venue", "city", "capacity", "unit_price")


def _validate_times(start_time: datetime, end_time: datetime, now: datetime) -> None:
    if end_time <= start_time:
        raise ValidationError("End time must be after start time")
    if start_time <= now:
        raise ValidationError("Start time must be in the future")


def _ensure_manager(principal: Principal, resource: Resource) -> None:
    if not principal.can_manage(resource.owner_id):
        raise Forbidden("Only the owner or an administrator can change this resource")


@surface_unavailable
async def create_resource(db: AsyncSession, principal: Principal, data: ResourceCreate) -> Resource:
    """Create a resource in DRAFT, owned by `principal`."""
    if principal.role not in (Role.ADMIN, Role.ORGANIZER):
        raise Forbidden("Only organizers and administrators can create resources")

    start_time, end_time = as_utc(data.start_time), as_utc(data.end_time)
    _validate_times(start_time, end_time, utc_now())

    resource = Resource(
        title=data.title,
        description=data.description,
        category=data.category,
        venue=data.venue,
        city=data.city,
        image_url=data.image_url,
        start_time=start_time,
        end_time=end_time,
        capacity=data.capacity,
        unit_price=data.unit_price,
        owner_id=principal.user_id,
        status=ResourceStatus.DRAFT,
    )
    await repository.save_resource(db, resource)
    await db.commit()

    logger.info("resource_created", resource_id=resource.id, owner_id=principal.user_id, capacity=resource.capacity)
    return resource


@surface_unavailable
async def update_resource(
    db: AsyncSession,
    principal: Principal,
    resource_id: int,
    data: ResourceUpdate,
    ledger: Optional[Ledger] = None,
) -> Resource:
    """
    Replace the editable fields of a DRAFT or PUBLISHED resource.

    Capacity may shrink only down to the units already allocated. Existing
    bookings keep the amount they were created with.
    """
    ledger = ledger or get_ledger()
    resource = await repository.load_resource(db, resource_id)
    _ensure_manager(principal, resource)

    if not resource.status.can_modify:
        raise BusinessRuleViolation(f"A {resource.status.value} resource cannot be modified")

    start_time, end_time = as_utc(data.start_time), as_utc(data.end_time)
    _validate_times(start_time, end_time, utc_now())

    previous_capacity = resource.capacity
    resized = data.capacity != previous_capacity
    if resized:
        await ensure_tracked(db, ledger, resource)
        if not await ledger.resize(resource.id, data.capacity):
            allocated = await ledger.allocated_units(resource.id)
            raise BusinessRuleViolation(
                f"Capacity cannot drop below the {allocated} units already booked",
                allocated_units=allocated,
            )

    try:
        await _apply_update(db, resource, data, start_time, end_time)
    except Exception:
        if resized:
            await ledger.resize(resource_id, previous_capacity)
        raise

    logger.info("resource_updated", resource_id=resource_id, updated_by=principal.user_id)
    return resource


async def _apply_update(
    db: AsyncSession,
    resource: Resource,
    data: ResourceUpdate,
    start_time: datetime,
    end_time: datetime,
) -> None:
    resource.title = data.title
    resource.description = data.description
    resource.category = data.category
    resource.venue = data.venue
    resource.city = data.city
    resource.image_url = data.image_url
    resource.start_time = start_time
    resource.end_time = end_time
    resource.capacity = data.capacity
    resource.unit_price = data.unit_price

    await repository.save_resource(db, resource)
    await db.commit()
    await db.refresh(resource)


@surface_unavailable
async def publish_resource(db: AsyncSession, principal: Principal, resource_id: int) -> Resource:
    """DRAFT -> PUBLISHED once every mandatory field is set."""
    resource = await repository.load_resource(db, resource_id)
    _ensure_manager(principal, resource)

    if resource.status != ResourceStatus.DRAFT:
        raise BusinessRuleViolation(f"Only draft resources can be published (status: {resource.status.value})")

    missing = [name for name in PUBLISH_REQUIRED_FIELDS if getattr(resource, name) in (None, "")]
    if missing:
        raise ValidationError(
            "All mandatory fields must be set before publishing",
            missing_fields=missing,
        )

    resource.status = ResourceStatus.PUBLISHED
    await db.commit()

    logger.info("resource_published", resource_id=resource.id, published_by=principal.user_id)
    return resource


@surface_unavailable
async def cancel_resource(
    db: AsyncSession,
    principal: Principal,
    resource_id: int,
    ledger: Optional[Ledger] = None,
) -> Resource:
    """
    Any non-terminal status -> CANCELLED. The resource becomes unbookable at
    once; existing bookings are only cancelled when CASCADE_RESOURCE_CANCELLATION is on.
    """
    settings = get_settings()
    ledger = ledger or get_ledger()
    resource = await repository.load_resource(db, resource_id)
    _ensure_manager(principal, resource)

    if resource.status.is_terminal:
        raise BusinessRuleViolation(f"Resource is already {resource.status.value}")

    resource.status = ResourceStatus.CANCELLED
    await db.commit()
    logger.info("resource_cancelled", resource_id=resource.id, cancelled_by=principal.user_id)

    if settings.CASCADE_RESOURCE_CANCELLATION:
        await cancel_resource_bookings(db, resource, ledger)

    return resource


@surface_unavailable
async def delete_resource(
    db: AsyncSession,
    principal: Principal,
    resource_id: int,
    ledger: Optional[Ledger] = None,
) -> None:
    """Delete a resource that has never been booked. Cancelled bookings count as history."""
    ledger = ledger or get_ledger()
    resource = await repository.load_resource(db, resource_id)
    _ensure_manager(principal, resource)

    bookings = await repository.count_bookings(db, resource.id)
    if bookings > 0:
        raise BusinessRuleViolation(f"Cannot delete a resource with {bookings} existing bookings")

    await db.delete(resource)
    await db.commit()
    await ledger.forget(resource_id)

    logger.info("resource_deleted", resource_id=resource_id, deleted_by=principal.user_id)


@surface_unavailable
async def get_resource(db: AsyncSession, resource_id: int) -> Resource:
    return await repository.load_resource(db, resource_id)


@surface_unavailable
async def list_published_resources(
    db: AsyncSession,
    page: int = 1,
    page_size: int = 20,
) -> tuple[list[Resource], int]:
    """Published resources ordered by start time. Uses ix_resources_start_time."""
    query = select(Resource).where(Resource.status == ResourceStatus.PUBLISHED)

    count_query = select(func.count()).select_from(query.subquery())
    total = (await db.execute(count_query)).scalar()

    result = await db.execute(
        query
        .order_by(Resource.start_time.asc(), Resource.id.asc())
        .offset((page - 1) * page_size)
        .limit(page_size)
    )
    return list(result.scalars().all()), total


@surface_unavailable
async def list_owner_resources(db: AsyncSession, owner_id: int) -> list[Resource]:
    result = await db.execute(
        select(Resource).where(Resource.owner_id == owner_id).order_by(Resource.start_time.asc())
    )
    return list(result.scalars().all())


@surface_unavailable
async def finish_elapsed_resources(
    db: AsyncSession,
    now: Optional[datetime] = None,
    ledger: Optional[Ledger] = None,
) -> list[int]:
    """
    One lifecycle sweep: PUBLISHED resources whose end time has passed become
    FINISHED. Idempotent; already finished resources are not selected again.
    """
    ledger = ledger or get_ledger()
    now = as_utc(now) if now else utc_now()

    finished = await repository.finish_elapsed_resources(db, now)
    await db.commit()

    for resource_id in finished:
        await ledger.forget(resource_id)

    if finished:
        logger.info("resources_finished", count=len(finished), resource_ids=finished)
    return finished
