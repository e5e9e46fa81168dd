"""Availability data models returned by the availability endpoint."""

from datetime import datetime

from pydantic import BaseModel, Field

from storefront.utils import parse_utc_instant


class AvailabilitySlot(BaseModel):
    """One bookable window. Timestamps stay as the UTC ISO strings the API sent."""
    starts_at: str
    ends_at: str
    available_tables: int = 0

    @property
    def starts_at_utc(self) -> datetime:
        return parse_utc_instant(self.starts_at)

    @property
    def ends_at_utc(self) -> datetime:
        return parse_utc_instant(self.ends_at)


class AvailabilityMatrix(BaseModel):
    """Bookable slots for one (date, service, party size) query."""
    slots: list[AvailabilitySlot] = Field(default_factory=list)
    business_timezone: str = "UTC"

    @classmethod
    def empty(cls, business_timezone: str = "UTC") -> "AvailabilityMatrix":
        return cls(slots=[], business_timezone=business_timezone)
