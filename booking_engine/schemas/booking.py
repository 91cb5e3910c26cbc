"""
Pydantic schemas for booking-related request/response validation.
"""

from datetime import datetime
from decimal import Decimal
from typing import Optional
from pydantic import BaseModel, Field

from booking_engine.models.enums import BookingStatus


class BookingCreate(BaseModel):
    resource_id: int
    # Upper bound is a configurable policy checked by the engine
    units: int = Field(default=1, ge=1)
    note: Optional[str] = Field(None, max_length=500)


class BookingResponse(BaseModel):
    id: int
    resource_id: int
    requester_id: int
    units: int
    amount: Decimal
    code: str
    status: BookingStatus
    note: Optional[str]
    created_at: datetime

    model_config = {"from_attributes": True}


class BookingSummaryResponse(BaseModel):
    code: str
    resource_title: str
    start_time: datetime
    venue: Optional[str]
    units: int
    amount: Decimal
    status: BookingStatus

    model_config = {"from_attributes": True}
