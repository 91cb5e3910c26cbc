"""
Booking endpoints: admission, confirmation, cancellation and lookups.
"""

from typing import Optional

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from booking_engine.core.security import Principal, get_current_principal
from booking_engine.db.session import get_db
from booking_engine.models.enums import BookingStatus
from booking_engine.schemas.booking import BookingCreate, BookingResponse, BookingSummaryResponse
from booking_engine.services import booking_service
from booking_engine.services.cache_service import invalidate_resource_cache
from booking_engine.services.interfaces.ledger import Ledger
from booking_engine.services.strategy_factory import get_ledger

router = APIRouter(prefix="/bookings", tags=["Bookings"])


@router.post("/", response_model=BookingResponse, status_code=status.HTTP_201_CREATED)
async def create_booking_endpoint(
    data: BookingCreate,
    principal: Principal = Depends(get_current_principal),
    db: AsyncSession = Depends(get_db),
    ledger: Ledger = Depends(get_ledger),
):
    """
    Book units of a published resource.

    Returns 409 with `available_units` when the request does not fit.
    """
    booking = await booking_service.create_booking(
        db, principal, data.resource_id, data.units, note=data.note, ledger=ledger,
    )
    await invalidate_resource_cache()
    return booking


@router.get("/", response_model=list[BookingResponse])
async def list_my_bookings_endpoint(
    status_filter: Optional[BookingStatus] = Query(None, alias="status"),
    principal: Principal = Depends(get_current_principal),
    db: AsyncSession = Depends(get_db),
):
    """Bookings of the authenticated principal, newest first."""
    return await booking_service.list_requester_bookings(db, principal.user_id, status_filter)


@router.get("/code/{code}", response_model=BookingResponse)
async def verify_booking_code_endpoint(
    code: str,
    principal: Principal = Depends(get_current_principal),
    db: AsyncSession = Depends(get_db),
):
    return await booking_service.find_booking_by_code(db, principal, code)


@router.get("/{booking_id}", response_model=BookingResponse)
async def get_booking_endpoint(
    booking_id: int,
    principal: Principal = Depends(get_current_principal),
    db: AsyncSession = Depends(get_db),
):
    return await booking_service.get_booking(db, principal, booking_id)


@router.get("/{booking_id}/summary", response_model=BookingSummaryResponse)
async def booking_summary_endpoint(
    booking_id: int,
    principal: Principal = Depends(get_current_principal),
    db: AsyncSession = Depends(get_db),
):
    return await booking_service.booking_summary(db, principal, booking_id)


@router.post("/{booking_id}/confirm", response_model=BookingResponse)
async def confirm_booking_endpoint(
    booking_id: int,
    principal: Principal = Depends(get_current_principal),
    db: AsyncSession = Depends(get_db),
):
    return await booking_service.confirm_booking(db, principal, booking_id)


@router.post("/{booking_id}/cancel", response_model=BookingResponse)
async def cancel_booking_endpoint(
    booking_id: int,
    principal: Principal = Depends(get_current_principal),
    db: AsyncSession = Depends(get_db),
    ledger: Ledger = Depends(get_ledger),
):
    """Cancel and release the units. Refused inside the cancellation window."""
    booking = await booking_service.cancel_booking(db, principal, booking_id, ledger=ledger)
    await invalidate_resource_cache()
    return booking
