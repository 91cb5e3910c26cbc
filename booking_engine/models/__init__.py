from booking_engine.models.resource import Resource
from booking_engine.models.booking import Booking
from booking_engine.models.enums import ResourceStatus, BookingStatus, Category

__all__ = ["Resource", "Booking", "ResourceStatus", "BookingStatus", "Category"]
