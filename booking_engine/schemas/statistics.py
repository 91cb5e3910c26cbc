"""
Pydantic schemas for read-side statistics.
"""

from datetime import datetime
from decimal import Decimal
from pydantic import BaseModel


class PopularResource(BaseModel):
    resource_id: int
    title: str
    start_time: datetime
    allocated_units: int
    capacity: int
    occupancy: float


class OrganizerStatisticsResponse(BaseModel):
    total_resources: int
    published_resources: int
    total_revenue: Decimal
    average_attendance: float


class RequesterStatisticsResponse(BaseModel):
    total_bookings: int
    total_spent: Decimal
    upcoming_bookings: int
