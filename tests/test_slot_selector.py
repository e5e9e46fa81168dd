"""Tests for the availability screen state machine."""

from datetime import date

import pytest

from storefront.booking.slot_selector import (
    InvalidTransitionError,
    SelectorState,
    SlotNotInMatrixError,
    SlotSelector,
)
from tests.conftest import SERVICE_ID, SLUG, fixed_clock, make_matrix, make_resource, make_slot

SLOT_A = ("2025-03-10T17:00:00Z", "2025-03-10T18:00:00Z")
SLOT_B = ("2025-03-10T18:00:00Z", "2025-03-10T19:00:00Z")


def loaded(selector, matrix, resources):
    query = selector.start()
    assert selector.fetch_succeeded(query, matrix, resources)
    return selector


class TestInitialState:
    def test_starts_idle(self, selector):
        assert selector.state == SelectorState.IDLE
        assert selector.get_state_trace() == ["idle"]

    def test_initial_date_is_viewer_today(self, selector):
        assert selector.date == "2025-03-10"

    def test_initial_date_follows_viewer_zone(self):
        kiritimati = SlotSelector(SLUG, SERVICE_ID, viewer_timezone="Pacific/Kiritimati",
                                  clock=fixed_clock)
        # 14:00 UTC is already the next day at UTC+14.
        assert kiritimati.date == "2025-03-11"

    def test_initial_party_size(self, selector):
        assert selector.party_size == 2

    def test_nothing_selected(self, selector):
        assert selector.selected_slot is None
        assert not selector.can_proceed

    def test_rejects_empty_slug(self):
        with pytest.raises(ValueError):
            SlotSelector("", SERVICE_ID, clock=fixed_clock)

    def test_rejects_empty_service(self):
        with pytest.raises(ValueError):
            SlotSelector(SLUG, "  ", clock=fixed_clock)


class TestFetchLifecycle:
    def test_start_enters_loading(self, selector):
        query = selector.start()
        assert selector.state == SelectorState.LOADING
        assert query.date == "2025-03-10"
        assert query.party_size == 2
        assert query.generation == 1

    def test_success_loads(self, selector, matrix, resources):
        loaded(selector, matrix, resources)
        assert selector.state == SelectorState.LOADED
        assert len(selector.slots) == 2
        assert selector.business_timezone == "America/New_York"
        assert selector.assignment.resource_id == "t-2"

    def test_failure_clears_slots(self, selector, matrix, resources):
        loaded(selector, matrix, resources)
        query = selector.refresh()
        assert selector.fetch_failed(query, "Failed to load availability")
        assert selector.state == SelectorState.FAILED
        assert selector.slots == []
        assert selector.error == "Failed to load availability"
        assert selector.assignment is None

    def test_retry_after_failure(self, selector, matrix, resources):
        selector.fetch_failed(selector.start(), "boom")
        query = selector.select_date("2025-03-10")
        assert query is not None
        assert selector.fetch_succeeded(query, matrix, resources)
        assert selector.error is None

    def test_duplicate_delivery_ignored(self, selector, matrix, resources):
        query = selector.start()
        selector.fetch_succeeded(query, matrix, resources)
        # Same query delivered twice: the second is not current any more.
        assert not selector.fetch_succeeded(query, matrix, resources)

    def test_history_records_events(self, selector, matrix, resources):
        loaded(selector, matrix, resources)
        selector.select_slot(selector.slots[0])
        assert selector.get_state_trace() == ["idle", "loading", "loaded", "loaded"]
        events = [entry.event for entry in selector.get_history()[1:]]
        assert [e.value for e in events] == ["fetch_started", "fetch_succeeded", "slot_selected"]

    def test_history_is_bounded(self, selector, matrix, resources):
        for _ in range(SlotSelector.MAX_HISTORY):
            query = selector.refresh()
            selector.fetch_succeeded(query, matrix, resources)
        history = selector.get_history()
        assert len(history) == SlotSelector.MAX_HISTORY
        assert history[0].state != SelectorState.IDLE
        assert history[-1].state == SelectorState.LOADED
        assert len(selector.get_state_trace()) == SlotSelector.MAX_HISTORY


class TestOutOfOrderResponses:
    def test_stale_success_discarded(self, selector, resources):
        first = selector.start()
        second = selector.select_date("2025-03-11")
        assert not selector.fetch_succeeded(first, make_matrix(SLOT_A), resources)
        assert selector.state == SelectorState.LOADING
        assert selector.slots == []

        newer = make_matrix(("2025-03-11T17:00:00Z", "2025-03-11T18:00:00Z"))
        assert selector.fetch_succeeded(second, newer, resources)
        assert [s.starts_at for s in selector.slots] == ["2025-03-11T17:00:00Z"]

    def test_late_response_after_newer_one_ignored(self, selector, resources):
        first = selector.start()
        second = selector.select_party_size(4)
        selector.fetch_succeeded(second, make_matrix(SLOT_B), resources)
        assert not selector.fetch_succeeded(first, make_matrix(SLOT_A), resources)
        assert [s.starts_at for s in selector.slots] == [SLOT_B[0]]
        assert selector.assignment.resource_id == "t-4"

    def test_stale_failure_discarded(self, selector, matrix, resources):
        first = selector.start()
        second = selector.refresh()
        assert not selector.fetch_failed(first, "timeout")
        selector.fetch_succeeded(second, matrix, resources)
        assert selector.error is None


class TestSelectDate:
    def test_past_date_is_noop(self, selector, matrix, resources):
        loaded(selector, matrix, resources)
        selector.select_slot(selector.slots[0])
        generation = selector.generation

        assert selector.select_date("2025-03-09") is None
        assert selector.date == "2025-03-10"
        assert selector.generation == generation
        assert selector.selected_slot is not None

    def test_today_allowed(self, selector):
        assert selector.select_date("2025-03-10") is not None

    def test_future_date_clears_selection(self, selector, matrix, resources):
        loaded(selector, matrix, resources)
        selector.select_slot(selector.slots[0])
        query = selector.select_date("2025-03-12")
        assert query.date == "2025-03-12"
        assert selector.selected_slot is None
        assert selector.state == SelectorState.LOADING

    def test_accepts_date_object(self, selector):
        assert selector.select_date(date(2025, 3, 15)).date == "2025-03-15"

    @pytest.mark.parametrize("value", ["tomorrow", "2025-13-01", "2025-02-29"])
    def test_malformed_date_is_noop(self, selector, value):
        assert selector.select_date(value) is None
        assert selector.state == SelectorState.IDLE


class TestSelectPartySize:
    @pytest.mark.parametrize("size", [0, -1, 11])
    def test_out_of_range_is_noop(self, selector, size):
        assert selector.select_party_size(size) is None
        assert selector.party_size == 2

    def test_non_integer_is_noop(self, selector):
        assert selector.select_party_size("3") is None
        assert selector.select_party_size(True) is None

    def test_change_drops_assignment_and_selection(self, selector, matrix, resources):
        loaded(selector, matrix, resources)
        selector.select_slot(selector.slots[0])
        query = selector.select_party_size(5)
        assert query.party_size == 5
        assert selector.assignment is None
        assert selector.selected_slot is None

    def test_assignment_recomputed_for_new_size(self, selector, matrix, resources):
        loaded(selector, matrix, resources)
        query = selector.select_party_size(5)
        selector.fetch_succeeded(query, matrix, resources)
        assert selector.assignment.resource_id == "t-6"

    def test_no_table_for_large_party(self, selector, matrix, resources):
        query = selector.select_party_size(8)
        selector.fetch_succeeded(query, matrix, resources)
        assert not selector.assignment.available
        assert selector.resources == []


class TestSlotSelection:
    def test_select_member(self, selector, matrix, resources):
        loaded(selector, matrix, resources)
        chosen = selector.select_slot(make_slot(*SLOT_B))
        assert chosen.starts_at == SLOT_B[0]
        assert selector.can_proceed

    def test_select_non_member_raises(self, selector, matrix, resources):
        loaded(selector, matrix, resources)
        with pytest.raises(SlotNotInMatrixError):
            selector.select_slot(make_slot("2025-03-10T20:00:00Z", "2025-03-10T21:00:00Z"))

    def test_select_while_loading_raises(self, selector):
        selector.start()
        with pytest.raises(InvalidTransitionError):
            selector.select_slot(make_slot(*SLOT_A))

    def test_select_by_start(self, selector, matrix, resources):
        loaded(selector, matrix, resources)
        assert selector.select_slot_at(SLOT_A[0]).ends_at == SLOT_A[1]

    def test_selection_survives_refresh_when_still_offered(self, selector, matrix, resources):
        loaded(selector, matrix, resources)
        selector.select_slot(selector.slots[1])
        query = selector.refresh()
        assert selector.fetch_succeeded(query, make_matrix(SLOT_B), resources)
        assert selector.selected_slot.starts_at == SLOT_B[0]

    def test_selection_invalidated_when_slot_disappears(self, selector, matrix, resources):
        loaded(selector, matrix, resources)
        selector.select_slot(selector.slots[0])
        query = selector.refresh()
        selector.fetch_succeeded(query, make_matrix(SLOT_B), resources)
        assert selector.selected_slot is None
        assert not selector.can_proceed


class TestProceedToBooking:
    def test_draft_carries_selection(self, selector, matrix, resources):
        loaded(selector, matrix, resources)
        selector.select_slot(selector.slots[0])
        draft = selector.proceed_to_booking()
        assert draft.service_id == SERVICE_ID
        assert draft.date == "2025-03-10"
        assert draft.starts_at == SLOT_A[0]
        assert draft.ends_at == SLOT_A[1]
        assert draft.party_size == 2
        assert draft.resource_id == "t-2"

    def test_draft_without_table(self, selector, matrix):
        loaded(selector, matrix, [make_resource("t-1", 1)])
        selector.select_slot(selector.slots[0])
        assert selector.proceed_to_booking().resource_id is None

    def test_requires_selection(self, selector, matrix, resources):
        loaded(selector, matrix, resources)
        with pytest.raises(InvalidTransitionError):
            selector.proceed_to_booking()

    def test_requires_loaded_state(self, selector, matrix, resources):
        loaded(selector, matrix, resources)
        selector.select_slot(selector.slots[0])
        selector.refresh()
        with pytest.raises(InvalidTransitionError):
            selector.proceed_to_booking()


class TestSlotLabels:
    def test_labels_in_business_zone(self, selector, resources):
        loaded(selector, make_matrix(("2025-03-10T16:00:00Z", "2025-03-10T17:00:00Z")), resources)
        assert [label for _, label in selector.slot_labels("en-US")] == ["12:00 PM - 1:00 PM"]

    def test_labels_ignore_viewer_zone(self, selector, resources):
        # Viewer is in Tirane; labels still read New York wall time.
        loaded(selector, make_matrix(SLOT_A), resources)
        assert selector.slot_labels("en-US")[0][1] == "1:00 PM - 2:00 PM"

    def test_albanian_labels(self, selector, resources):
        loaded(selector, make_matrix(SLOT_A, business_timezone="Europe/Tirane"), resources)
        assert selector.slot_labels("sq-AL")[0][1] == "18:00 - 19:00"
