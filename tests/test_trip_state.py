"""Unit tests for trip entity state transitions (State Pattern)."""

import pytest

from cabbooking.domain.entities import Trip, check_transition
from cabbooking.domain.enums import TERMINAL_STATUSES, TRIP_TRANSITIONS, TripStatus
from cabbooking.domain.errors import IllegalState, InvalidStateTransition


class TestTripStateMachine:
    def test_initial_status_is_confirmed(self):
        trip = Trip()
        assert trip.status == TripStatus.CONFIRMED

    # ── Valid transitions ─────────────────────────────────────────

    def test_confirmed_to_in_progress(self):
        trip = Trip(status=TripStatus.CONFIRMED)
        trip.transition_to(TripStatus.IN_PROGRESS)
        assert trip.status == TripStatus.IN_PROGRESS

    def test_confirmed_to_cancelled(self):
        trip = Trip(status=TripStatus.CONFIRMED)
        trip.transition_to(TripStatus.CANCELLED)
        assert trip.status == TripStatus.CANCELLED

    def test_in_progress_to_completed(self):
        trip = Trip(status=TripStatus.IN_PROGRESS)
        trip.transition_to(TripStatus.COMPLETED)
        assert trip.status == TripStatus.COMPLETED

    def test_in_progress_to_cancelled(self):
        trip = Trip(status=TripStatus.IN_PROGRESS)
        trip.transition_to(TripStatus.CANCELLED)
        assert trip.status == TripStatus.CANCELLED

    def test_scheduled_to_cancelled(self):
        trip = Trip(status=TripStatus.SCHEDULED)
        trip.transition_to(TripStatus.CANCELLED)
        assert trip.status == TripStatus.CANCELLED

    def test_accepts_raw_status_values(self):
        trip = Trip(status=TripStatus.CONFIRMED)
        trip.transition_to("IN_PROGRESS")
        assert trip.status is TripStatus.IN_PROGRESS

    # ── Invalid transitions ───────────────────────────────────────

    def test_confirmed_to_completed_fails(self):
        """A trip has to be started before it can be completed."""
        trip = Trip(status=TripStatus.CONFIRMED)
        with pytest.raises(InvalidStateTransition, match="CONFIRMED to COMPLETED"):
            trip.transition_to(TripStatus.COMPLETED)
        assert trip.status == TripStatus.CONFIRMED

    def test_drivers_cannot_confirm_scheduled_trip(self):
        trip = Trip(status=TripStatus.SCHEDULED)
        with pytest.raises(InvalidStateTransition):
            trip.transition_to(TripStatus.CONFIRMED)

    def test_confirmed_back_to_scheduled_fails(self):
        trip = Trip(status=TripStatus.CONFIRMED)
        with pytest.raises(InvalidStateTransition):
            trip.transition_to(TripStatus.SCHEDULED)

    @pytest.mark.parametrize("terminal", [TripStatus.COMPLETED, TripStatus.CANCELLED])
    @pytest.mark.parametrize("target", list(TripStatus))
    def test_terminal_states_are_final(self, terminal, target):
        trip = Trip(status=terminal)
        with pytest.raises(InvalidStateTransition):
            trip.transition_to(target)
        assert trip.status == terminal

    def test_self_transition_fails(self):
        with pytest.raises(InvalidStateTransition):
            check_transition(TripStatus.IN_PROGRESS, TripStatus.IN_PROGRESS)

    def test_invalid_transition_is_illegal_state(self):
        assert issubclass(InvalidStateTransition, IllegalState)


class TestTransitionTable:
    def test_every_status_has_an_entry(self):
        assert set(TRIP_TRANSITIONS) == set(TripStatus)

    def test_terminal_statuses_have_no_exits(self):
        assert TERMINAL_STATUSES == {TripStatus.COMPLETED, TripStatus.CANCELLED}
        for status in TERMINAL_STATUSES:
            assert TRIP_TRANSITIONS[status] == set()
