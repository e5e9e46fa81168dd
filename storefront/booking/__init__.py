from storefront.booking.availability_fetcher import AvailabilityFetcher, load_storefront
from storefront.booking.booking_lookup import BookingLookup, can_cancel
from storefront.booking.booking_submitter import BookingSubmitter, validate_customer
from storefront.booking.calendar_grid import CalendarDay, build_month, shift_month
from storefront.booking.resource_assigner import ResourceAssignment, assign_resource
from storefront.booking.slot_selector import (
    AvailabilityQuery,
    SelectorState,
    SlotSelector,
)

__all__ = [
    "SlotSelector",
    "SelectorState",
    "AvailabilityQuery",
    "AvailabilityFetcher",
    "load_storefront",
    "assign_resource",
    "ResourceAssignment",
    "BookingSubmitter",
    "validate_customer",
    "BookingLookup",
    "can_cancel",
    "CalendarDay",
    "build_month",
    "shift_month",
]
