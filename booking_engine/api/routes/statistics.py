"""
Read-only statistics endpoints.
"""

from dataclasses import asdict

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from booking_engine.core.security import Principal, get_current_principal
from booking_engine.db.session import get_db
from booking_engine.schemas.statistics import (
    OrganizerStatisticsResponse,
    PopularResource,
    RequesterStatisticsResponse,
)
from booking_engine.services import statistics_service

router = APIRouter(prefix="/statistics", tags=["Statistics"])


@router.get("/popular", response_model=list[PopularResource])
async def popular_resources_endpoint(
    limit: int = Query(10, ge=1, le=100),
    db: AsyncSession = Depends(get_db),
):
    usage = await statistics_service.load_popular_resources(db, limit=limit)
    return [
        PopularResource(
            resource_id=u.resource.id,
            title=u.resource.title,
            start_time=u.resource.start_time,
            allocated_units=u.allocated_units,
            capacity=u.resource.capacity,
            occupancy=u.occupancy,
        )
        for u in usage
    ]


@router.get("/organizer", response_model=OrganizerStatisticsResponse)
async def organizer_statistics_endpoint(
    principal: Principal = Depends(get_current_principal),
    db: AsyncSession = Depends(get_db),
):
    stats = await statistics_service.load_organizer_statistics(db, principal.user_id)
    return OrganizerStatisticsResponse(**asdict(stats))


@router.get("/me", response_model=RequesterStatisticsResponse)
async def requester_statistics_endpoint(
    principal: Principal = Depends(get_current_principal),
    db: AsyncSession = Depends(get_db),
):
    stats = await statistics_service.load_requester_statistics(db, principal.user_id)
    return RequesterStatisticsResponse(**asdict(stats))
