"""
Pydantic schemas for resource-related request/response validation.
"""

from datetime import datetime
from decimal import Decimal
from typing import Optional
from pydantic import BaseModel, Field

from booking_engine.models.enums import Category, ResourceStatus


class ResourceCreate(BaseModel):
    title: str = Field(..., min_length=5, max_length=100)
    description: Optional[str] = Field(None, max_length=1000)
    category: Optional[Category] = None
    venue: Optional[str] = Field(None, max_length=255)
    city: Optional[str] = Field(None, max_length=100)
    image_url: Optional[str] = Field(None, max_length=500)
    start_time: datetime
    end_time: datetime
    capacity: int = Field(..., gt=0, le=100000)
    unit_price: Optional[Decimal] = Field(None, ge=0, max_digits=10, decimal_places=2)


class ResourceUpdate(ResourceCreate):
    pass


class ResourceResponse(BaseModel):
    id: int
    title: str
    description: Optional[str]
    category: Optional[Category]
    venue: Optional[str]
    city: Optional[str]
    image_url: Optional[str]
    start_time: datetime
    end_time: datetime
    capacity: int
    unit_price: Optional[Decimal]
    owner_id: int
    status: ResourceStatus
    created_at: datetime

    model_config = {"from_attributes": True}


class ResourceAvailability(BaseModel):
    resource_id: int
    capacity: int
    available_units: int


class ResourceListResponse(BaseModel):
    resources: list[ResourceResponse]
    total: int
    page: int
    page_size: int
    cached: bool = False
