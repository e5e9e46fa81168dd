"""
Finite state machine for the public availability screen.

Tracks the chosen calendar day, party size, fetched slots and the selected
slot. Every parameter change issues a new ``AvailabilityQuery`` stamped with
a generation number; results for any older generation are discarded, so a
slow response can never overwrite the slots of a newer query.

Usage:
    selector = SlotSelector("la-terrazza", "svc-1")
    query = selector.start()
    selector.fetch_succeeded(query, matrix, resources)
    selector.select_slot(selector.slots[0])
    draft = selector.proceed_to_booking()
"""

from collections import deque
from dataclasses import dataclass
from datetime import date, datetime, timezone
from enum import Enum
from typing import Callable, Optional, Sequence, Union

from storefront.booking.resource_assigner import (
    ResourceAssignment,
    assign_resource,
    eligible_resources,
)
from storefront.booking.timezone_formatter import (
    format_as_yyyymmdd,
    format_time_in_timezone,
    local_today,
    parse_local_date,
)
from storefront.config import settings
from storefront.logging_context import get_session_logger
from storefront.schemas.availability_schema import AvailabilityMatrix, AvailabilitySlot
from storefront.schemas.booking_schema import BookingDraft
from storefront.schemas.business_schema import Resource

logger = get_session_logger(__name__)


class SelectorState(str, Enum):
    """Lifecycle of the availability data shown to the customer."""
    IDLE = "idle"
    LOADING = "loading"
    LOADED = "loaded"
    FAILED = "failed"


class SelectorEvent(str, Enum):
    FETCH_STARTED = "fetch_started"
    FETCH_SUCCEEDED = "fetch_succeeded"
    FETCH_FAILED = "fetch_failed"
    SLOT_SELECTED = "slot_selected"


@dataclass
class Transition:
    """A single valid state transition."""
    from_state: SelectorState
    to_state: SelectorState
    event: SelectorEvent


@dataclass
class StateEntry:
    """Recorded history entry for a state visit."""
    state: SelectorState
    entered_at: datetime
    event: Optional[SelectorEvent] = None


@dataclass(frozen=True)
class AvailabilityQuery:
    """Parameters of one availability fetch, stamped with its generation."""
    slug: str
    service_id: str
    date: str
    party_size: int
    generation: int


class InvalidTransitionError(Exception):
    """Raised when an event is not valid from the current state."""


class SlotNotInMatrixError(Exception):
    """Raised when selecting a slot that the current matrix does not contain."""


class SlotSelector:
    """
    Calendar day, party size and slot selection for one service.

    Selection is cleared whenever the date or party size changes, and
    re-validated against every fresh matrix in the same call that applies it.
    """

    # Oldest state entries are dropped past this many.
    MAX_HISTORY = 200

    TRANSITIONS: list[Transition] = [
        Transition(SelectorState.IDLE, SelectorState.LOADING, SelectorEvent.FETCH_STARTED),
        Transition(SelectorState.LOADING, SelectorState.LOADING, SelectorEvent.FETCH_STARTED),
        Transition(SelectorState.LOADED, SelectorState.LOADING, SelectorEvent.FETCH_STARTED),
        Transition(SelectorState.FAILED, SelectorState.LOADING, SelectorEvent.FETCH_STARTED),

        Transition(SelectorState.LOADING, SelectorState.LOADED, SelectorEvent.FETCH_SUCCEEDED),
        Transition(SelectorState.LOADING, SelectorState.FAILED, SelectorEvent.FETCH_FAILED),

        Transition(SelectorState.LOADED, SelectorState.LOADED, SelectorEvent.SLOT_SELECTED),
    ]

    def __init__(
        self,
        slug: str,
        service_id: str,
        *,
        party_size: Optional[int] = None,
        max_party_size: Optional[int] = None,
        viewer_timezone: Optional[str] = None,
        clock: Optional[Callable[[], datetime]] = None,
    ) -> None:
        if not slug or not slug.strip():
            raise ValueError("Business slug must not be empty")
        if not service_id or not service_id.strip():
            raise ValueError("Service id must not be empty")

        self._slug = slug
        self._service_id = service_id
        self._clock = clock or (lambda: datetime.now(timezone.utc))
        if viewer_timezone is None:
            viewer_timezone = settings.booking.viewer_timezone
        self._viewer_timezone = viewer_timezone or None
        self._max_party_size = max_party_size or settings.booking.max_party_size

        self._date = format_as_yyyymmdd(self.today())
        self._party_size = party_size or settings.booking.default_party_size
        if self._party_size < 1:
            raise ValueError(f"Party size must be >= 1, got {self._party_size}")

        self._state = SelectorState.IDLE
        self._generation = 0
        self._matrix = AvailabilityMatrix.empty()
        self._resources: list[Resource] = []
        self._assignment: Optional[ResourceAssignment] = None
        self._selected_slot: Optional[AvailabilitySlot] = None
        self._error: Optional[str] = None
        self._history: deque[StateEntry] = deque(
            [StateEntry(state=SelectorState.IDLE, entered_at=self._clock())],
            maxlen=self.MAX_HISTORY,
        )

    # ------------------------------------------------------------------ #
    # Read-only view
    # ------------------------------------------------------------------ #

    @property
    def state(self) -> SelectorState:
        return self._state

    @property
    def date(self) -> str:
        return self._date

    @property
    def party_size(self) -> int:
        return self._party_size

    @property
    def matrix(self) -> AvailabilityMatrix:
        return self._matrix

    @property
    def slots(self) -> list[AvailabilitySlot]:
        return list(self._matrix.slots)

    @property
    def business_timezone(self) -> str:
        return self._matrix.business_timezone

    @property
    def resources(self) -> list[Resource]:
        return list(self._resources)

    @property
    def assignment(self) -> Optional[ResourceAssignment]:
        return self._assignment

    @property
    def selected_slot(self) -> Optional[AvailabilitySlot]:
        return self._selected_slot

    @property
    def error(self) -> Optional[str]:
        return self._error

    @property
    def generation(self) -> int:
        return self._generation

    @property
    def can_proceed(self) -> bool:
        return self._state == SelectorState.LOADED and self._selected_slot is not None

    def today(self) -> date:
        """Today in the viewer's calendar."""
        return local_today(self._viewer_timezone, self._clock())

    def current_query(self) -> AvailabilityQuery:
        return AvailabilityQuery(
            slug=self._slug,
            service_id=self._service_id,
            date=self._date,
            party_size=self._party_size,
            generation=self._generation,
        )

    # ------------------------------------------------------------------ #
    # Parameter changes
    # ------------------------------------------------------------------ #

    def start(self) -> AvailabilityQuery:
        """Issue the query for the initial date and party size."""
        return self._begin_fetch()

    def refresh(self) -> AvailabilityQuery:
        """Re-issue the current parameters, keeping the selection for re-validation."""
        return self._begin_fetch()

    def select_date(self, value: Union[str, date]) -> Optional[AvailabilityQuery]:
        """Choose a calendar day. Past or malformed days are ignored (returns None)."""
        try:
            if isinstance(value, str):
                day = parse_local_date(value).date()
            elif isinstance(value, datetime):
                day = value.date()
            else:
                day = value
        except ValueError:
            logger.warning("Ignoring malformed date %r", value)
            return None

        if day < self.today():
            logger.info("Rejected past date %s (today is %s)", day, self.today())
            return None

        self._date = format_as_yyyymmdd(day)
        self._clear_selection("date changed")
        return self._begin_fetch()

    def select_party_size(self, party_size: int) -> Optional[AvailabilityQuery]:
        """Choose a party size. Sizes outside 1..max are ignored (returns None)."""
        if not isinstance(party_size, int) or isinstance(party_size, bool):
            logger.warning("Ignoring non-integer party size %r", party_size)
            return None
        if party_size < 1 or party_size > self._max_party_size:
            logger.info("Rejected party size %d (allowed 1..%d)", party_size, self._max_party_size)
            return None

        self._party_size = party_size
        self._assignment = None
        self._clear_selection("party size changed")
        return self._begin_fetch()

    # ------------------------------------------------------------------ #
    # Fetch outcomes
    # ------------------------------------------------------------------ #

    def fetch_succeeded(
        self,
        query: AvailabilityQuery,
        matrix: AvailabilityMatrix,
        resources: Sequence[Resource],
    ) -> bool:
        """Apply a fetched matrix. Returns False when the query was superseded."""
        if not self._is_current(query):
            logger.debug(
                "Discarding stale availability for %s/party %d (generation %d, current %d)",
                query.date, query.party_size, query.generation, self._generation,
            )
            return False

        self._transition(SelectorEvent.FETCH_SUCCEEDED)
        self._matrix = matrix
        self._resources = eligible_resources(resources, self._party_size)
        self._assignment = assign_resource(self._resources, self._party_size)
        self._error = None
        self._revalidate_selection()
        logger.info(
            "Loaded %d slots for %s, party of %d", len(matrix.slots), self._date, self._party_size
        )
        return True

    def fetch_failed(self, query: AvailabilityQuery, message: str) -> bool:
        """Record a failed fetch. Returns False when the query was superseded."""
        if not self._is_current(query):
            logger.debug("Discarding stale failure for generation %d", query.generation)
            return False

        self._transition(SelectorEvent.FETCH_FAILED)
        self._matrix = AvailabilityMatrix.empty(self._matrix.business_timezone)
        self._resources = []
        self._assignment = None
        self._clear_selection("fetch failed")
        self._error = message
        logger.warning("Availability fetch failed for %s: %s", self._date, message)
        return True

    # ------------------------------------------------------------------ #
    # Slot selection and hand-off
    # ------------------------------------------------------------------ #

    def select_slot(self, slot: AvailabilitySlot) -> AvailabilitySlot:
        """Select a slot of the current matrix.

        Raises:
            InvalidTransitionError: If slots are not loaded.
            SlotNotInMatrixError: If the slot is not part of the current matrix.
        """
        if self._state != SelectorState.LOADED:
            raise InvalidTransitionError(
                f"Cannot select a slot while '{self._state.value}'"
            )
        match = next(
            (s for s in self._matrix.slots
             if s.starts_at == slot.starts_at and s.ends_at == slot.ends_at),
            None,
        )
        if match is None:
            raise SlotNotInMatrixError(
                f"Slot {slot.starts_at} - {slot.ends_at} is not in the current availability"
            )
        self._transition(SelectorEvent.SLOT_SELECTED)
        self._selected_slot = match
        return match

    def select_slot_at(self, starts_at: str) -> AvailabilitySlot:
        """Select the slot starting at ``starts_at`` (exact UTC string match)."""
        match = next((s for s in self._matrix.slots if s.starts_at == starts_at), None)
        if match is None:
            raise SlotNotInMatrixError(f"No slot starts at {starts_at}")
        return self.select_slot(match)

    def proceed_to_booking(self) -> BookingDraft:
        """Package the selection for the booking form.

        Raises:
            InvalidTransitionError: If no slot of a loaded matrix is selected.
        """
        if not self.can_proceed or self._selected_slot is None:
            raise InvalidTransitionError(
                f"Cannot proceed to booking from '{self._state.value}' without a selected slot"
            )
        resource_id = self._assignment.resource_id if self._assignment else None
        return BookingDraft(
            service_id=self._service_id,
            date=self._date,
            slot=self._selected_slot,
            party_size=self._party_size,
            resource_id=resource_id,
        )

    def slot_labels(self, locale: Optional[str] = None) -> list[tuple[AvailabilitySlot, str]]:
        """Start-end labels in the business timezone, e.g. ``12:00 PM - 1:00 PM``."""
        locale = locale or settings.booking.default_locale
        tz = self._matrix.business_timezone
        return [
            (
                slot,
                f"{format_time_in_timezone(slot.starts_at, tz, locale)} - "
                f"{format_time_in_timezone(slot.ends_at, tz, locale)}",
            )
            for slot in self._matrix.slots
        ]

    # ------------------------------------------------------------------ #
    # History
    # ------------------------------------------------------------------ #

    def get_history(self) -> list[StateEntry]:
        return list(self._history)

    def get_state_trace(self) -> list[str]:
        return [entry.state.value for entry in self._history]

    # ------------------------------------------------------------------ #
    # Internals
    # ------------------------------------------------------------------ #

    def _begin_fetch(self) -> AvailabilityQuery:
        self._generation += 1
        self._transition(SelectorEvent.FETCH_STARTED)
        return self.current_query()

    def _is_current(self, query: AvailabilityQuery) -> bool:
        return query.generation == self._generation and self._state == SelectorState.LOADING

    def _clear_selection(self, reason: str) -> None:
        if self._selected_slot is not None:
            logger.debug("Clearing selected slot %s: %s", self._selected_slot.starts_at, reason)
        self._selected_slot = None

    def _revalidate_selection(self) -> None:
        if self._selected_slot is None:
            return
        starts_at = self._selected_slot.starts_at
        fresh = next((s for s in self._matrix.slots if s.starts_at == starts_at), None)
        if fresh is None:
            logger.info("Selected slot %s is no longer available", starts_at)
        self._selected_slot = fresh

    def _transition(self, event: SelectorEvent) -> SelectorState:
        for t in self.TRANSITIONS:
            if t.from_state == self._state and t.event == event:
                old_state = self._state
                self._state = t.to_state
                self._history.append(StateEntry(
                    state=self._state,
                    entered_at=self._clock(),
                    event=event,
                ))
                logger.debug(
                    "Selector transition: %s -> %s (event: %s)",
                    old_state.value, self._state.value, event.value,
                )
                return self._state

        valid = [t.event.value for t in self.TRANSITIONS if t.from_state == self._state]
        raise InvalidTransitionError(
            f"No valid transition from '{self._state.value}' "
            f"with event '{event.value}'. Valid events: {valid}"
        )
