"""
Customer details validation and booking creation for the public booking form.

All field checks run together so the customer sees every problem at once.
The submit control is locked while a request is in flight, and a failed
submission keeps the typed details so the customer can simply retry.

Usage:
    submitter = BookingSubmitter(client, "la-terrazza", draft, service, business)
    confirmation = await submitter.submit("Jane Doe", "+15551234567")
    if confirmation is None:
        show(submitter.validation_errors, submitter.error)
"""

import re
from dataclasses import dataclass
from enum import Enum
from typing import Optional

from storefront.booking.availability_fetcher import FETCH_ERRORS, describe_fetch_error
from storefront.booking.resource_assigner import ResourceAssignment, assign_resource
from storefront.logging_context import get_session_logger
from storefront.schemas.booking_schema import (
    BookingConfirmation,
    BookingCreateRequest,
    BookingCustomer,
    BookingDraft,
)
from storefront.schemas.business_schema import Business, Resource, Service
from storefront.tools.public_api import PublicApiClient

logger = get_session_logger(__name__)

PHONE_RE = re.compile(r"^\+?[\d\s\-\(\)]+$")
EMAIL_RE = re.compile(r"^[^\s@]+@[^\s@]+\.[^\s@]+$")

CREATE_FAILED_MESSAGE = "Failed to create booking"
TABLES_FAILED_MESSAGE = "Failed to load tables"


class ValidationCode(str, Enum):
    NAME_REQUIRED = "name_required"
    PHONE_REQUIRED = "phone_required"
    PHONE_INVALID = "phone_invalid"
    EMAIL_INVALID = "email_invalid"
    NO_TABLE_AVAILABLE = "no_table_available"


VALIDATION_MESSAGES: dict[ValidationCode, str] = {
    ValidationCode.NAME_REQUIRED: "Name is required",
    ValidationCode.PHONE_REQUIRED: "Phone number is required",
    ValidationCode.PHONE_INVALID: "Please enter a valid phone number",
    ValidationCode.EMAIL_INVALID: "Please enter a valid email address",
    ValidationCode.NO_TABLE_AVAILABLE: "No table available for this party size",
}


@dataclass(frozen=True)
class ValidationIssue:
    """One failed check, keyed by the form field it belongs to."""
    code: ValidationCode
    message: str


def _issue(code: ValidationCode) -> ValidationIssue:
    return ValidationIssue(code=code, message=VALIDATION_MESSAGES[code])


def validate_customer(
    name: str,
    phone: str,
    email: Optional[str],
    assignment: Optional[ResourceAssignment],
) -> dict[str, ValidationIssue]:
    """Run every check and return the failures by field (empty dict when valid)."""
    errors: dict[str, ValidationIssue] = {}

    if not name.strip():
        errors["name"] = _issue(ValidationCode.NAME_REQUIRED)

    phone = phone.strip()
    if not phone:
        errors["phone"] = _issue(ValidationCode.PHONE_REQUIRED)
    elif not PHONE_RE.match(phone):
        errors["phone"] = _issue(ValidationCode.PHONE_INVALID)

    email = (email or "").strip()
    if email and not EMAIL_RE.match(email):
        errors["email"] = _issue(ValidationCode.EMAIL_INVALID)

    if assignment is None:
        errors["table"] = _issue(ValidationCode.NO_TABLE_AVAILABLE)
    elif not assignment.available:
        errors["table"] = ValidationIssue(ValidationCode.NO_TABLE_AVAILABLE, assignment.message)

    return errors


def build_booking_request(
    draft: BookingDraft,
    resource_id: str,
    name: str,
    phone: str,
    email: Optional[str] = None,
) -> BookingCreateRequest:
    """Assemble the creation request. Slot timestamps are passed through untouched."""
    return BookingCreateRequest(
        service_id=draft.service_id,
        table_id=resource_id,
        starts_at=draft.starts_at,
        ends_at=draft.ends_at,
        party_size=draft.party_size,
        customer=BookingCustomer(
            name=name.strip(),
            phone=phone.strip(),
            email=(email or "").strip() or None,
        ),
    )


class BookingSubmitter:
    """Booking form state: customer details, validation, submission."""

    def __init__(
        self,
        client: PublicApiClient,
        slug: str,
        draft: BookingDraft,
        service: Service,
        business: Business,
        resources: Optional[list[Resource]] = None,
    ) -> None:
        self._client = client
        self._slug = slug
        self._draft = draft
        self._service = service
        self._business = business

        self.name = ""
        self.phone = ""
        self.email = ""
        self.validation_errors: dict[str, ValidationIssue] = {}
        self.error: Optional[str] = None
        self.confirmation: Optional[BookingConfirmation] = None
        self._submitting = False

        if resources is not None:
            self._assignment: Optional[ResourceAssignment] = assign_resource(
                resources, draft.party_size
            )
        elif draft.resource_id is not None:
            self._assignment = ResourceAssignment(
                party_size=draft.party_size,
                resource=Resource(id=draft.resource_id, code=draft.resource_id,
                                  seats=draft.party_size),
            )
        else:
            self._assignment = None

    @property
    def draft(self) -> BookingDraft:
        return self._draft

    @property
    def assignment(self) -> Optional[ResourceAssignment]:
        return self._assignment

    @property
    def is_submitting(self) -> bool:
        return self._submitting

    @property
    def can_submit(self) -> bool:
        return not self._submitting and self.confirmation is None

    async def load_resources(self) -> Optional[ResourceAssignment]:
        """Re-fetch the service's tables and re-run the assignment."""
        try:
            tables = await self._client.get_service_tables(self._slug, self._draft.service_id)
        except FETCH_ERRORS as exc:
            self.error = describe_fetch_error(exc, TABLES_FAILED_MESSAGE)
            logger.warning("Loading tables failed: %s", exc)
            return self._assignment
        self._assignment = assign_resource(tables, self._draft.party_size)
        return self._assignment

    def update_field(self, field_name: str, value: str) -> None:
        """Edit a customer field; its validation message is cleared while typing."""
        if field_name not in ("name", "phone", "email"):
            raise ValueError(f"Unknown field: {field_name}")
        setattr(self, field_name, value)
        self.validation_errors.pop(field_name, None)

    def validate(self) -> bool:
        self.validation_errors = validate_customer(
            self.name, self.phone, self.email, self._assignment
        )
        return not self.validation_errors

    async def submit(
        self,
        name: Optional[str] = None,
        phone: Optional[str] = None,
        email: Optional[str] = None,
    ) -> Optional[BookingConfirmation]:
        """Validate and create the booking.

        Returns the confirmation on success, else None with
        ``validation_errors`` or ``error`` describing why.
        """
        if not self.can_submit:
            logger.info("Ignoring submit: %s",
                        "request in flight" if self._submitting else "already booked")
            return None

        if name is not None:
            self.name = name
        if phone is not None:
            self.phone = phone
        if email is not None:
            self.email = email

        if not self.validate():
            logger.info("Booking form invalid: %s", sorted(self.validation_errors))
            return None

        resource = self._assignment.require()
        request = build_booking_request(
            self._draft, resource.id, self.name, self.phone, self.email
        )

        self._submitting = True
        self.error = None
        try:
            booking = await self._client.create_booking(self._slug, request)
        except FETCH_ERRORS as exc:
            self.error = describe_fetch_error(exc, CREATE_FAILED_MESSAGE)
            logger.warning("Booking creation rejected: %s", self.error)
            return None
        finally:
            self._submitting = False

        logger.info("Booking created: %s at %s", booking.id, booking.starts_at)
        self.confirmation = BookingConfirmation(
            booking=booking, service=self._service, business=self._business
        )
        return self.confirmation
