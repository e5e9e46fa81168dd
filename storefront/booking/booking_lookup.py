"""
Booking lookup and customer cancellation.

Customers find a booking with its id plus the phone number it was made
with, and may cancel it until shortly before it starts. The confirmation
screen cancels by id alone and falls back to the phone-verified call when
the server refuses that.
"""

from datetime import datetime, timedelta, timezone
from typing import Callable, Optional

from storefront.booking.availability_fetcher import FETCH_ERRORS, describe_fetch_error
from storefront.config import settings
from storefront.logging_context import get_session_logger
from storefront.schemas.booking_schema import Booking, BookingStatus
from storefront.tools.public_api import PublicApiClient

logger = get_session_logger(__name__)

NOT_CANCELLABLE_STATUSES = frozenset({BookingStatus.CANCELLED, BookingStatus.COMPLETED})
# The confirmation screen only offers cancellation for these.
CONFIRMATION_CANCELLABLE_STATUSES = frozenset({BookingStatus.CONFIRMED, BookingStatus.PENDING})

LOOKUP_FAILED_MESSAGE = "Booking not found"
CANCEL_FAILED_MESSAGE = "Failed to cancel booking"
MISSING_FIELDS_MESSAGE = "Please enter both booking ID and phone number"
CANCEL_NOT_ALLOWED_MESSAGE = "This booking can no longer be cancelled"


def can_cancel(booking: Booking, now: datetime, cutoff_minutes: int = 60) -> bool:
    """Whether the customer may still cancel ``booking`` at ``now``.

    Cancelled and completed bookings never can; otherwise the start must be
    more than ``cutoff_minutes`` away. Both instants are compared in UTC.
    """
    if booking.status in NOT_CANCELLABLE_STATUSES:
        return False
    if now.tzinfo is None:
        now = now.replace(tzinfo=timezone.utc)
    return booking.starts_at_utc - now > timedelta(minutes=cutoff_minutes)


class BookingLookup:
    """State of the find-my-booking screen."""

    def __init__(
        self,
        client: PublicApiClient,
        now: Optional[Callable[[], datetime]] = None,
        cutoff_minutes: Optional[int] = None,
    ) -> None:
        self._client = client
        self._now = now or (lambda: datetime.now(timezone.utc))
        if cutoff_minutes is None:
            cutoff_minutes = settings.booking.cancellation_cutoff_minutes
        self._cutoff_minutes = cutoff_minutes

        self.booking: Optional[Booking] = None
        self.error: Optional[str] = None
        self._phone: Optional[str] = None
        self._loading = False
        self._cancelling = False

    @property
    def is_loading(self) -> bool:
        return self._loading

    @property
    def is_cancelling(self) -> bool:
        return self._cancelling

    @property
    def cancellable(self) -> bool:
        return self.booking is not None and can_cancel(
            self.booking, self._now(), self._cutoff_minutes
        )

    async def find(self, booking_id: str, phone: str) -> Optional[Booking]:
        booking_id = booking_id.strip()
        phone = phone.strip()
        if not booking_id or not phone:
            self.error = MISSING_FIELDS_MESSAGE
            return None

        self._loading = True
        self.error = None
        self.booking = None
        try:
            booking = await self._client.get_booking_details(booking_id, phone)
        except FETCH_ERRORS as exc:
            self.error = describe_fetch_error(exc, LOOKUP_FAILED_MESSAGE)
            logger.warning("Booking lookup for %s failed: %s", booking_id, exc)
            return None
        finally:
            self._loading = False

        self.booking = booking
        self._phone = phone
        logger.info("Found booking %s (%s)", booking.id, booking.status.value)
        return booking

    async def cancel(self) -> Optional[Booking]:
        """Cancel the booking found by :meth:`find`, verified by its phone number."""
        if self.booking is None or self._phone is None:
            self.error = MISSING_FIELDS_MESSAGE
            return None
        if not self.cancellable:
            self.error = CANCEL_NOT_ALLOWED_MESSAGE
            return None

        self._cancelling = True
        self.error = None
        try:
            booking = await self._client.cancel_booking(self.booking.id, self._phone)
        except FETCH_ERRORS as exc:
            self.error = describe_fetch_error(exc, CANCEL_FAILED_MESSAGE)
            logger.warning("Cancelling booking %s failed: %s", self.booking.id, exc)
            return None
        finally:
            self._cancelling = False

        self.booking = booking
        logger.info("Booking %s cancelled", booking.id)
        return booking

    async def cancel_from_confirmation(self, booking: Booking) -> Optional[Booking]:
        """Cancel straight from the confirmation screen.

        Only confirmed or pending bookings qualify, and the returned record
        is always marked cancelled.
        """
        if booking.status not in CONFIRMATION_CANCELLABLE_STATUSES or not can_cancel(
            booking, self._now(), self._cutoff_minutes
        ):
            self.error = CANCEL_NOT_ALLOWED_MESSAGE
            return None

        self._cancelling = True
        self.error = None
        try:
            try:
                cancelled = await self._client.cancel_booking_by_id(booking.id)
            except FETCH_ERRORS as exc:
                if not booking.customer_phone:
                    raise
                logger.info("Id-only cancel of %s refused (%s), retrying with phone",
                            booking.id, exc)
                cancelled = await self._client.cancel_booking(booking.id, booking.customer_phone)
        except FETCH_ERRORS as exc:
            self.error = describe_fetch_error(exc, CANCEL_FAILED_MESSAGE)
            logger.warning("Cancelling booking %s failed: %s", booking.id, exc)
            return None
        finally:
            self._cancelling = False

        cancelled = cancelled.model_copy(update={"status": BookingStatus.CANCELLED})
        self.booking = cancelled
        logger.info("Booking %s cancelled", cancelled.id)
        return cancelled
