"""Tests for ConflictDetector occupation rules."""

from services.conflicts import ConflictDetector
from services.holds import HoldManager, Owner
from services.settings import EngineSettings
from tests.conftest import make_booking, span, utc

TEN_TO_ELEVEN = span(utc(2026, 1, 21, 10), utc(2026, 1, 21, 11))


class TestOccupied:
    def test_blocking_booking_occupies(self, wednesday_room, settings, clock):
        _, resource, _ = wednesday_room
        make_booking(resource, utc(2026, 1, 21, 10), utc(2026, 1, 21, 11))
        detector = ConflictDetector(settings, clock)
        assert not detector.is_free(resource.id, TEN_TO_ELEVEN)
        assert detector.is_free(resource.id, span(utc(2026, 1, 21, 11), utc(2026, 1, 21, 12)))

    def test_non_blocking_statuses_do_not_occupy(self, wednesday_room, settings, clock):
        _, resource, _ = wednesday_room
        for status in ("cancelled", "denied", "no_show", "completed"):
            make_booking(resource, utc(2026, 1, 21, 10), utc(2026, 1, 21, 11), status=status)
        assert ConflictDetector(settings, clock).is_free(resource.id, TEN_TO_ELEVEN)

    def test_pending_statuses_block(self, wednesday_room, settings, clock):
        _, resource, _ = wednesday_room
        make_booking(resource, utc(2026, 1, 21, 10), utc(2026, 1, 21, 11), status="pending_documents")
        assert not ConflictDetector(settings, clock).is_free(resource.id, TEN_TO_ELEVEN)

    def test_buffer_extends_occupation(self, wednesday_room, settings, clock):
        _, resource, _ = wednesday_room
        make_booking(resource, utc(2026, 1, 21, 9), utc(2026, 1, 21, 10),
                     blocked_until=utc(2026, 1, 21, 10, 15))
        detector = ConflictDetector(settings, clock)
        assert not detector.is_free(resource.id, span(utc(2026, 1, 21, 10), utc(2026, 1, 21, 11)))
        assert detector.is_free(resource.id, span(utc(2026, 1, 21, 10, 15), utc(2026, 1, 21, 11)))

    def test_live_hold_occupies_until_expiry(self, wednesday_room, settings, clock):
        _, resource, _ = wednesday_room
        HoldManager(settings, clock).create_hold(resource.id, TEN_TO_ELEVEN, Owner(session_id="s1"))
        detector = ConflictDetector(settings, clock)
        assert not detector.is_free(resource.id, TEN_TO_ELEVEN)

        # expiry is evaluated lazily: no sweep has run
        clock.advance(minutes=10)
        assert detector.is_free(resource.id, TEN_TO_ELEVEN)

    def test_occupied_unions_per_resource(self, wednesday_room, settings, clock):
        _, resource, _ = wednesday_room
        make_booking(resource, utc(2026, 1, 21, 10), utc(2026, 1, 21, 11))
        make_booking(resource, utc(2026, 1, 21, 11), utc(2026, 1, 21, 12))
        occupied = ConflictDetector(settings, clock).occupied(
            [resource.id], span(utc(2026, 1, 21, 0), utc(2026, 1, 22, 0))
        )
        assert occupied == {resource.id: [span(utc(2026, 1, 21, 10), utc(2026, 1, 21, 12))]}


class TestConfigurablePartition:
    def test_status_moved_to_non_blocking_frees_slot(self, app, wednesday_room, clock):
        _, resource, _ = wednesday_room
        make_booking(resource, utc(2026, 1, 21, 10), utc(2026, 1, 21, 11), status="pending")
        config = dict(app.config)
        config["BLOCKING_BOOKING_STATUSES"] = [
            "pending_payment", "pending_documents", "approved", "confirmed",
            "in_progress", "reschedule_requested", "rescheduled",
        ]
        config["NON_BLOCKING_BOOKING_STATUSES"] = ["pending", "cancelled", "denied", "no_show", "completed"]
        settings = EngineSettings.from_config(config)
        assert ConflictDetector(settings, clock).is_free(resource.id, TEN_TO_ELEVEN)
