"""
Lifecycle states and categories. Display metadata (labels, colours) belongs
to the presentation layer and is not carried here.
"""

import enum


class ResourceStatus(str, enum.Enum):
    DRAFT = "draft"
    PUBLISHED = "published"
    CANCELLED = "cancelled"
    FINISHED = "finished"

    @property
    def is_terminal(self) -> bool:
        return self in (ResourceStatus.CANCELLED, ResourceStatus.FINISHED)

    @property
    def can_modify(self) -> bool:
        return not self.is_terminal


class BookingStatus(str, enum.Enum):
    PENDING = "pending"
    CONFIRMED = "confirmed"
    CANCELLED = "cancelled"

    @property
    def can_cancel(self) -> bool:
        return self is not BookingStatus.CANCELLED


class Category(str, enum.Enum):
    CONCERT = "concert"
    THEATRE = "theatre"
    CONFERENCE = "conference"
    SPORT = "sport"
    OTHER = "other"


def enum_values(enum_cls):
    return [member.value for member in enum_cls]
