"""Shared test fixtures and helpers."""

from datetime import datetime, timezone
from typing import Callable, Optional

import httpx
import pytest

from storefront.booking.slot_selector import SlotSelector
from storefront.schemas.availability_schema import AvailabilityMatrix, AvailabilitySlot
from storefront.schemas.booking_schema import Booking, BookingStatus
from storefront.schemas.business_schema import Business, Resource, Service
from storefront.tools.public_api import PublicApiClient

# Monday 2025-03-10, 10:00 in New York and 15:00 in Tirane.
FIXED_NOW = datetime(2025, 3, 10, 14, 0, tzinfo=timezone.utc)

SLUG = "la-terrazza"
SERVICE_ID = "svc-1"


def fixed_clock() -> datetime:
    return FIXED_NOW


def make_slot(starts_at: str, ends_at: str, available_tables: int = 1) -> AvailabilitySlot:
    return AvailabilitySlot(starts_at=starts_at, ends_at=ends_at, available_tables=available_tables)


def make_matrix(
    *windows: tuple[str, str],
    business_timezone: str = "America/New_York",
) -> AvailabilityMatrix:
    """Helper to create an AvailabilityMatrix from (starts_at, ends_at) pairs."""
    return AvailabilityMatrix(
        slots=[make_slot(start, end) for start, end in windows],
        business_timezone=business_timezone,
    )


def make_resource(resource_id: str, seats: int, is_active: bool = True) -> Resource:
    return Resource(id=resource_id, code=resource_id.upper(), seats=seats, is_active=is_active)


def make_booking(
    booking_id: str = "BK-1",
    starts_at: str = "2025-03-10T17:00:00Z",
    ends_at: str = "2025-03-10T18:00:00Z",
    status: BookingStatus = BookingStatus.CONFIRMED,
    customer_phone: Optional[str] = "+15551234567",
    party_size: int = 2,
) -> Booking:
    """Helper to create a Booking with sensible defaults."""
    return Booking(
        id=booking_id,
        service_id=SERVICE_ID,
        table_id="t-4",
        starts_at=starts_at,
        ends_at=ends_at,
        party_size=party_size,
        status=status,
        customer_name="Jane Doe",
        customer_phone=customer_phone,
    )


def make_client(handler: Callable[[httpx.Request], httpx.Response]) -> PublicApiClient:
    """PublicApiClient whose requests are answered by ``handler``."""
    http = httpx.AsyncClient(
        base_url="http://storefront.test",
        transport=httpx.MockTransport(handler),
    )
    return PublicApiClient(http_client=http)


@pytest.fixture
def selector():
    return SlotSelector(
        SLUG,
        SERVICE_ID,
        party_size=2,
        max_party_size=10,
        viewer_timezone="Europe/Tirane",
        clock=fixed_clock,
    )


@pytest.fixture
def business():
    return Business(id="biz-1", name="La Terrazza", slug=SLUG, timezone="America/New_York",
                    currency="USD")


@pytest.fixture
def service():
    return Service(id=SERVICE_ID, name="Dinner", duration_min=60, price_minor=0)


@pytest.fixture
def resources():
    return [make_resource("t-2", 2), make_resource("t-4", 4), make_resource("t-6", 6)]


@pytest.fixture
def matrix():
    return make_matrix(
        ("2025-03-10T17:00:00Z", "2025-03-10T18:00:00Z"),
        ("2025-03-10T18:00:00Z", "2025-03-10T19:00:00Z"),
    )
