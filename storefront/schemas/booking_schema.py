"""Booking data models: wire requests/responses and client-only draft state."""

from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from typing import Optional

from pydantic import BaseModel

from storefront.utils import parse_utc_instant
from storefront.schemas.availability_schema import AvailabilitySlot
from storefront.schemas.business_schema import Business, Service


class BookingStatus(str, Enum):
    PENDING = "pending"
    CONFIRMED = "confirmed"
    CANCELLED = "cancelled"
    COMPLETED = "completed"
    NO_SHOW = "no_show"
    RESCHEDULED = "rescheduled"


class BookingCustomer(BaseModel):
    """Customer contact block of a booking creation request."""
    name: str
    phone: str
    email: Optional[str] = None


class BookingCreateRequest(BaseModel):
    """Body of the public booking creation endpoint."""
    service_id: str
    table_id: str
    starts_at: str
    ends_at: str
    party_size: int
    customer: BookingCustomer

    def to_payload(self) -> dict:
        """JSON body with the optional email left out when absent."""
        return self.model_dump(exclude_none=True)


class Booking(BaseModel):
    """Booking record as returned by the public booking endpoints."""
    id: str
    business_id: Optional[str] = None
    service_id: Optional[str] = None
    table_id: Optional[str] = None
    starts_at: str
    ends_at: str
    party_size: int
    status: BookingStatus = BookingStatus.PENDING
    customer_name: str = ""
    customer_phone: Optional[str] = None
    customer_email: Optional[str] = None
    service_name: Optional[str] = None
    table_code: Optional[str] = None

    @property
    def starts_at_utc(self) -> datetime:
        return parse_utc_instant(self.starts_at)


@dataclass(frozen=True)
class BookingDraft:
    """Selection handed from the availability screen to the booking form.

    ``date`` is the business-local calendar day (YYYY-MM-DD) and is never
    converted; ``slot`` keeps the API's UTC timestamps verbatim.
    """
    service_id: str
    date: str
    slot: AvailabilitySlot
    party_size: int
    resource_id: Optional[str] = None

    @property
    def starts_at(self) -> str:
        return self.slot.starts_at

    @property
    def ends_at(self) -> str:
        return self.slot.ends_at


@dataclass(frozen=True)
class BookingConfirmation:
    """Everything the confirmation view needs without re-fetching."""
    booking: Booking
    service: Service
    business: Business
