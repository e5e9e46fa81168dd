"""
Client for the public (unauthenticated) storefront REST API.

Covers the endpoints the booking flow needs: business profile, services,
tables, availability, booking creation, and phone-verified lookup and
cancellation. All timestamps are exchanged as UTC ISO-8601 strings and all
calendar days as plain ``YYYY-MM-DD``.
"""

import logging
from typing import Any, Optional

import httpx

from storefront.config import settings
from storefront.schemas.availability_schema import AvailabilityMatrix
from storefront.schemas.booking_schema import Booking, BookingCreateRequest
from storefront.schemas.business_schema import Business, Resource, Service

logger = logging.getLogger(__name__)


class ApiError(Exception):
    """Non-2xx response from the API, with a human-readable detail."""

    def __init__(self, detail: str, status: Optional[int] = None) -> None:
        super().__init__(detail)
        self.detail = detail
        self.status = status


def _describe_validation_error(error: Any) -> str:
    if isinstance(error, str):
        return error
    loc = error.get("loc") or []
    field_name = loc[-1] if loc else "field"
    message = error.get("msg") or error.get("message") or "Invalid value"
    return f"{field_name}: {message}"


def extract_error_detail(response: httpx.Response) -> str:
    """Turn an error body into the message shown to the customer.

    String details pass through verbatim; validation error lists are
    flattened into ``"Validation errors: field: msg, ..."``.
    """
    try:
        body = response.json()
    except ValueError:
        return f"HTTP {response.status_code}: {response.reason_phrase}"

    detail = body.get("detail") if isinstance(body, dict) else None
    if isinstance(detail, str):
        return detail
    if isinstance(detail, list):
        joined = ", ".join(_describe_validation_error(e) for e in detail)
        return f"Validation errors: {joined}"
    if isinstance(detail, dict):
        if detail.get("msg") or detail.get("message"):
            return _describe_validation_error(detail)
        return str(detail)
    return "An error occurred"


def _raise_for_status(response: httpx.Response) -> None:
    if response.is_success:
        return
    detail = extract_error_detail(response)
    logger.warning(
        "%s %s failed with %d: %s",
        response.request.method, response.request.url.path, response.status_code, detail,
    )
    raise ApiError(detail, response.status_code)


class PublicApiClient:
    """Async wrapper around the public storefront endpoints.

    Pass an existing ``httpx.AsyncClient`` to share a connection pool (or a
    mock transport in tests); otherwise one is created from settings and
    closed by :meth:`aclose`.
    """

    def __init__(
        self,
        base_url: Optional[str] = None,
        timeout: Optional[float] = None,
        http_client: Optional[httpx.AsyncClient] = None,
    ) -> None:
        self._owns_client = http_client is None
        self._http = http_client or httpx.AsyncClient(
            base_url=base_url or settings.api.base_url,
            timeout=timeout or settings.api.timeout_sec,
            headers={"Content-Type": "application/json"},
        )

    async def __aenter__(self) -> "PublicApiClient":
        return self

    async def __aexit__(self, *exc_info: Any) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        if self._owns_client:
            await self._http.aclose()

    async def _request(
        self,
        method: str,
        path: str,
        params: Optional[dict[str, str]] = None,
        json: Optional[dict] = None,
    ) -> Any:
        response = await self._http.request(method, path, params=params, json=json)
        _raise_for_status(response)
        try:
            return response.json()
        except ValueError:
            logger.warning(
                "%s %s returned %d with a non-JSON body",
                method, path, response.status_code,
            )
            raise ApiError(
                f"HTTP {response.status_code}: invalid response body", response.status_code
            ) from None

    # ------------------------------------------------------------------ #
    # Business and catalogue
    # ------------------------------------------------------------------ #

    async def get_business_details(self, slug: str) -> Business:
        data = await self._request("GET", f"/public/businesses/{slug}")
        return Business.model_validate(data)

    async def get_business_services(self, slug: str, active_only: bool = True) -> list[Service]:
        params = {"active_only": "true"} if active_only else None
        data = await self._request("GET", f"/public/businesses/{slug}/services", params=params)
        return [Service.model_validate(item) for item in data]

    async def get_service_tables(
        self, slug: str, service_id: str, active_only: bool = True
    ) -> list[Resource]:
        params = {"active_only": "true"} if active_only else None
        data = await self._request(
            "GET", f"/public/businesses/{slug}/services/{service_id}/tables", params=params
        )
        return [Resource.model_validate(item) for item in data]

    # ------------------------------------------------------------------ #
    # Availability and booking
    # ------------------------------------------------------------------ #

    async def check_availability(
        self,
        slug: str,
        date: str,
        party_size: int,
        service_id: str,
        table_id: Optional[str] = None,
        slot_increment_minutes: Optional[int] = None,
    ) -> AvailabilityMatrix:
        """Fetch the bookable slots of one calendar day (``date`` is YYYY-MM-DD)."""
        increment = slot_increment_minutes or settings.booking.slot_increment_minutes
        params = {
            "date_": date,
            "party_size": str(party_size),
            "service_id": service_id,
            "slot_increment_minutes": str(increment),
        }
        if table_id:
            params["table_id"] = table_id
        data = await self._request("GET", f"/public/businesses/{slug}/availability", params=params)
        return AvailabilityMatrix.model_validate(data)

    async def create_booking(self, slug: str, request: BookingCreateRequest) -> Booking:
        data = await self._request(
            "POST", f"/public/businesses/{slug}/bookings", json=request.to_payload()
        )
        return Booking.model_validate(data)

    # ------------------------------------------------------------------ #
    # Lookup and cancellation
    # ------------------------------------------------------------------ #

    async def get_booking_details(self, booking_id: str, phone_number: str) -> Booking:
        """Look up a booking; the phone number acts as the lookup credential."""
        data = await self._request(
            "GET", f"/public/bookings/{booking_id}", params={"phone_number": phone_number}
        )
        return Booking.model_validate(data)

    async def get_booking_details_by_id(self, booking_id: str) -> Booking:
        data = await self._request("GET", f"/public/bookings/{booking_id}")
        return Booking.model_validate(data)

    async def cancel_booking(self, booking_id: str, phone_number: str) -> Booking:
        data = await self._request(
            "PATCH", f"/public/bookings/{booking_id}/cancel", params={"phone_number": phone_number}
        )
        return Booking.model_validate(data)

    async def cancel_booking_by_id(self, booking_id: str) -> Booking:
        data = await self._request("PATCH", f"/public/bookings/{booking_id}/cancel")
        return Booking.model_validate(data)
