"""
Resource endpoints: lifecycle transitions, availability and cached listings.
"""

from fastapi import APIRouter, Depends, Query, Response, status
from sqlalchemy.ext.asyncio import AsyncSession

from booking_engine.core.security import Principal, get_current_principal
from booking_engine.core.logging import get_logger
from booking_engine.db.session import get_db
from booking_engine.schemas.booking import BookingResponse
from booking_engine.schemas.resource import (
    ResourceAvailability,
    ResourceCreate,
    ResourceListResponse,
    ResourceResponse,
    ResourceUpdate,
)
from booking_engine.services import booking_service, resource_service
from booking_engine.services.cache_service import (
    get_cached_resources,
    invalidate_resource_cache,
    set_cached_resources,
)
from booking_engine.services.interfaces.ledger import Ledger
from booking_engine.services.strategy_factory import get_ledger

logger = get_logger(__name__)
router = APIRouter(prefix="/resources", tags=["Resources"])


@router.post("/", response_model=ResourceResponse, status_code=status.HTTP_201_CREATED)
async def create_resource_endpoint(
    data: ResourceCreate,
    principal: Principal = Depends(get_current_principal),
    db: AsyncSession = Depends(get_db),
):
    """Create a draft resource. Organizers and administrators only."""
    return await resource_service.create_resource(db, principal, data)


@router.get("/", response_model=ResourceListResponse)
async def list_resources_endpoint(
    page: int = Query(1, ge=1),
    page_size: int = Query(20, ge=1, le=100),
    db: AsyncSession = Depends(get_db),
):
    """
    Published resources by start time.
    Cached in Redis; invalidated on any lifecycle or booking change.
    """
    cached = await get_cached_resources(page, page_size)
    if cached:
        cached["cached"] = True
        return ResourceListResponse(**cached)

    resources, total = await resource_service.list_published_resources(db, page, page_size)
    response_data = {
        "resources": [ResourceResponse.model_validate(r).model_dump(mode="json") for r in resources],
        "total": total,
        "page": page,
        "page_size": page_size,
        "cached": False,
    }
    await set_cached_resources(page, page_size, response_data)
    return ResourceListResponse(**response_data)


@router.get("/mine", response_model=list[ResourceResponse])
async def list_my_resources_endpoint(
    principal: Principal = Depends(get_current_principal),
    db: AsyncSession = Depends(get_db),
):
    return await resource_service.list_owner_resources(db, principal.user_id)


@router.get("/{resource_id}", response_model=ResourceResponse)
async def get_resource_endpoint(resource_id: int, db: AsyncSession = Depends(get_db)):
    return await resource_service.get_resource(db, resource_id)


@router.get("/{resource_id}/availability", response_model=ResourceAvailability)
async def availability_endpoint(
    resource_id: int,
    db: AsyncSession = Depends(get_db),
    ledger: Ledger = Depends(get_ledger),
):
    """Ledger snapshot for display. Not a reservation."""
    resource = await resource_service.get_resource(db, resource_id)
    available = await booking_service.available_units(db, resource_id, ledger=ledger)
    return ResourceAvailability(resource_id=resource.id, capacity=resource.capacity, available_units=available)


@router.put("/{resource_id}", response_model=ResourceResponse)
async def update_resource_endpoint(
    resource_id: int,
    data: ResourceUpdate,
    principal: Principal = Depends(get_current_principal),
    db: AsyncSession = Depends(get_db),
    ledger: Ledger = Depends(get_ledger),
):
    resource = await resource_service.update_resource(db, principal, resource_id, data, ledger=ledger)
    await invalidate_resource_cache()
    return resource


@router.post("/{resource_id}/publish", response_model=ResourceResponse)
async def publish_resource_endpoint(
    resource_id: int,
    principal: Principal = Depends(get_current_principal),
    db: AsyncSession = Depends(get_db),
):
    resource = await resource_service.publish_resource(db, principal, resource_id)
    await invalidate_resource_cache()
    return resource


@router.post("/{resource_id}/cancel", response_model=ResourceResponse)
async def cancel_resource_endpoint(
    resource_id: int,
    principal: Principal = Depends(get_current_principal),
    db: AsyncSession = Depends(get_db),
    ledger: Ledger = Depends(get_ledger),
):
    resource = await resource_service.cancel_resource(db, principal, resource_id, ledger=ledger)
    await invalidate_resource_cache()
    return resource


@router.delete("/{resource_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_resource_endpoint(
    resource_id: int,
    principal: Principal = Depends(get_current_principal),
    db: AsyncSession = Depends(get_db),
    ledger: Ledger = Depends(get_ledger),
):
    await resource_service.delete_resource(db, principal, resource_id, ledger=ledger)
    await invalidate_resource_cache()
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.get("/{resource_id}/bookings", response_model=list[BookingResponse])
async def list_resource_bookings_endpoint(
    resource_id: int,
    principal: Principal = Depends(get_current_principal),
    db: AsyncSession = Depends(get_db),
):
    """All bookings of a resource. Owner or administrator only."""
    return await booking_service.list_resource_bookings(db, principal, resource_id)
