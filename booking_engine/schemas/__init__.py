from booking_engine.schemas.resource import (
    ResourceCreate, ResourceUpdate, ResourceResponse, ResourceAvailability, ResourceListResponse,
)
from booking_engine.schemas.booking import BookingCreate, BookingResponse, BookingSummaryResponse
from booking_engine.schemas.statistics import (
    PopularResource, OrganizerStatisticsResponse, RequesterStatisticsResponse,
)

__all__ = [
    "ResourceCreate", "ResourceUpdate", "ResourceResponse", "ResourceAvailability", "ResourceListResponse",
    "BookingCreate", "BookingResponse", "BookingSummaryResponse",
    "PopularResource", "OrganizerStatisticsResponse", "RequesterStatisticsResponse",
]
