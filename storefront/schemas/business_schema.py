"""Business, service, and resource (table) data models."""

from enum import Enum, IntEnum
from typing import Optional

from pydantic import BaseModel, Field


class BookingMode(str, Enum):
    APPOINTMENT = "appointment"
    SESSION = "session"


class Weekday(IntEnum):
    """ISO weekday numbering used by the open-interval endpoints."""
    MONDAY = 1
    TUESDAY = 2
    WEDNESDAY = 3
    THURSDAY = 4
    FRIDAY = 5
    SATURDAY = 6
    SUNDAY = 7


class Business(BaseModel):
    """Public business profile."""
    id: str
    name: str
    slug: str
    timezone: str = "UTC"
    currency: str = "ALL"
    logo_url: Optional[str] = None
    address_line1: Optional[str] = None
    address_line2: Optional[str] = None
    city: Optional[str] = None
    postal_code: Optional[str] = None
    country_code: Optional[str] = None


class ServiceOpenInterval(BaseModel):
    """Weekly opening window of an appointment-mode service."""
    weekday: Weekday
    start_time: str  # HH:MM
    end_time: str  # HH:MM


class Service(BaseModel):
    """A bookable offering of a business."""
    id: str
    name: str
    description: Optional[str] = None
    duration_min: int = 60
    price_minor: int = 0
    is_active: bool = True
    booking_mode: BookingMode = BookingMode.APPOINTMENT
    open_intervals: list[ServiceOpenInterval] = Field(default_factory=list)

    def is_open_on(self, weekday: int) -> bool:
        """Whether the weekly schedule has any window on an ISO weekday.

        Session-mode services and services without intervals are treated
        as open every day; their availability is decided server-side.
        """
        if self.booking_mode == BookingMode.SESSION or not self.open_intervals:
            return True
        return any(interval.weekday == weekday for interval in self.open_intervals)


class Resource(BaseModel):
    """A seatable unit (table) attached to a service."""
    id: str
    code: str
    seats: int
    merge_group: Optional[str] = None
    is_active: bool = True
    service_id: Optional[str] = None
