"""
Fetches availability and tables for the slot selector.

Each query fetches the availability matrix and the service's tables
concurrently, then hands both to the selector, which drops the result if
the query has been superseded. Issuing a new query also cancels the task
still running for the previous one.
"""

import asyncio
from dataclasses import dataclass
from datetime import date
from typing import Optional, Union

import httpx
from pydantic import ValidationError

from storefront.booking.resource_assigner import eligible_resources
from storefront.booking.slot_selector import AvailabilityQuery, SlotSelector
from storefront.booking.timezone_formatter import parse_local_date
from storefront.logging_context import get_session_logger
from storefront.schemas.availability_schema import AvailabilityMatrix
from storefront.schemas.business_schema import Business, Resource, Service
from storefront.tools.public_api import ApiError, PublicApiClient

logger = get_session_logger(__name__)

# Errors that come from the network or the server and never escape the fetcher.
FETCH_ERRORS = (ApiError, httpx.HTTPError, ValidationError)

AVAILABILITY_FAILED_MESSAGE = "Failed to load availability"
SERVICE_FAILED_MESSAGE = "Failed to load service"
SERVICE_NOT_FOUND_MESSAGE = "Service not found"


def describe_fetch_error(exc: Exception, fallback: str) -> str:
    """Server detail when there is one, else a generic message."""
    if isinstance(exc, ApiError) and exc.detail:
        return exc.detail
    return fallback


def validate_query(query: AvailabilityQuery) -> None:
    """Reject malformed query parameters before touching the network.

    Raises:
        ValueError: On an empty slug/service id, an invalid date, or a
            non-positive party size.
    """
    if not query.slug.strip():
        raise ValueError("Business slug must not be empty")
    if not query.service_id.strip():
        raise ValueError("Service id must not be empty")
    parse_local_date(query.date)
    if query.party_size < 1:
        raise ValueError(f"Party size must be >= 1, got {query.party_size}")


async def fetch_availability(
    client: PublicApiClient, query: AvailabilityQuery
) -> tuple[AvailabilityMatrix, list[Resource]]:
    """Fetch the matrix and the tables able to seat the party."""
    validate_query(query)
    matrix, tables = await asyncio.gather(
        client.check_availability(query.slug, query.date, query.party_size, query.service_id),
        client.get_service_tables(query.slug, query.service_id),
    )
    return matrix, eligible_resources(tables, query.party_size)


class AvailabilityFetcher:
    """Runs selector queries against the API, newest query wins."""

    def __init__(self, client: PublicApiClient, selector: SlotSelector) -> None:
        self._client = client
        self._selector = selector
        self._task: Optional[asyncio.Task] = None

    @property
    def selector(self) -> SlotSelector:
        return self._selector

    @property
    def in_flight(self) -> bool:
        return self._task is not None and not self._task.done()

    async def run(self, query: AvailabilityQuery) -> bool:
        """Fetch one query and apply the outcome. Returns True if it was applied."""
        try:
            matrix, resources = await fetch_availability(self._client, query)
        except FETCH_ERRORS as exc:
            message = describe_fetch_error(exc, AVAILABILITY_FAILED_MESSAGE)
            logger.warning("Availability request for %s failed: %s", query.date, exc)
            return self._selector.fetch_failed(query, message)
        return self._selector.fetch_succeeded(query, matrix, resources)

    def request(self, query: AvailabilityQuery) -> asyncio.Task:
        """Start fetching ``query`` in the background, cancelling the previous one."""
        self.cancel()
        self._task = asyncio.create_task(self.run(query))
        return self._task

    def cancel(self) -> None:
        """Drop interest in the in-flight fetch, e.g. when leaving the screen."""
        if self._task is not None and not self._task.done():
            logger.debug("Cancelling superseded availability fetch")
            self._task.cancel()

    async def start(self) -> bool:
        return await self._complete(self._selector.start())

    async def refresh(self) -> bool:
        return await self._complete(self._selector.refresh())

    async def select_date(self, value: Union[str, date]) -> bool:
        query = self._selector.select_date(value)
        if query is None:
            return False
        return await self._complete(query)

    async def select_party_size(self, party_size: int) -> bool:
        query = self._selector.select_party_size(party_size)
        if query is None:
            return False
        return await self._complete(query)

    async def _complete(self, query: AvailabilityQuery) -> bool:
        task = self.request(query)
        # asyncio.wait does not raise when the inner task is cancelled by a newer query.
        await asyncio.wait({task})
        if task.cancelled():
            return False
        return task.result()


@dataclass
class StorefrontContext:
    """Business and service shown on the availability screen."""
    business: Optional[Business] = None
    service: Optional[Service] = None
    error: Optional[str] = None

    @property
    def ok(self) -> bool:
        return self.error is None and self.business is not None and self.service is not None


async def load_storefront(client: PublicApiClient, slug: str, service_id: str) -> StorefrontContext:
    """Load the business profile and the requested service."""
    try:
        business, services = await asyncio.gather(
            client.get_business_details(slug),
            client.get_business_services(slug),
        )
    except FETCH_ERRORS as exc:
        logger.warning("Loading storefront '%s' failed: %s", slug, exc)
        return StorefrontContext(error=describe_fetch_error(exc, SERVICE_FAILED_MESSAGE))

    service = next((s for s in services if s.id == service_id), None)
    if service is None:
        logger.info("Service %s not offered by '%s'", service_id, slug)
        return StorefrontContext(business=business, error=SERVICE_NOT_FOUND_MESSAGE)
    return StorefrontContext(business=business, service=service)
