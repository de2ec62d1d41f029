"""Tests for ResourceCalendar window resolution."""

from datetime import date

from services.calendar import ResourceCalendar
from tests.conftest import (
    make_blackout,
    make_business,
    make_override,
    make_resource,
    make_schedule,
    span,
    utc,
)

WED = date(2026, 1, 21)
THU = date(2026, 1, 22)


class TestRawWindows:
    def test_recurring_schedule_for_weekday(self, wednesday_room, settings):
        _, resource, _ = wednesday_room
        calendar = ResourceCalendar(settings)
        assert calendar.raw_windows(resource, WED) == [span(utc(2026, 1, 21, 9), utc(2026, 1, 21, 17))]
        assert calendar.raw_windows(resource, THU) == []

    def test_no_schedule_means_closed(self, app, settings):
        resource = make_resource(make_business("spa"))
        assert ResourceCalendar(settings).open_windows(resource, WED) == []

    def test_override_windows_replace_schedule(self, wednesday_room, settings):
        _, resource, _ = wednesday_room
        make_override(resource, WED, windows_json='[{"start": "18:00", "end": "20:00"}]')
        windows = ResourceCalendar(settings).raw_windows(resource, WED)
        assert windows == [span(utc(2026, 1, 21, 18), utc(2026, 1, 21, 20))]

    def test_unavailable_override_closes_day(self, wednesday_room, settings):
        _, resource, _ = wednesday_room
        make_override(resource, WED, windows_json='[{"start": "18:00", "end": "20:00"}]', is_unavailable=True)
        assert ResourceCalendar(settings).open_windows(resource, WED) == []

    def test_override_only_affects_its_date(self, wednesday_room, settings):
        _, resource, _ = wednesday_room
        make_schedule(resource, day_of_week=3)
        make_override(resource, WED, is_unavailable=True)
        calendar = ResourceCalendar(settings)
        assert calendar.open_windows(resource, WED) == []
        assert calendar.open_windows(resource, THU) == [span(utc(2026, 1, 22, 9), utc(2026, 1, 22, 17))]


class TestBlackouts:
    def test_resource_blackout_is_subtracted(self, wednesday_room, settings):
        _, resource, _ = wednesday_room
        make_blackout(utc(2026, 1, 21, 12), utc(2026, 1, 21, 13), resource=resource)
        assert ResourceCalendar(settings).open_windows(resource, WED) == [
            span(utc(2026, 1, 21, 9), utc(2026, 1, 21, 12)),
            span(utc(2026, 1, 21, 13), utc(2026, 1, 21, 17)),
        ]

    def test_business_blackout_applies_to_every_resource(self, wednesday_room, settings):
        business, resource, _ = wednesday_room
        other = make_resource(business, name="Room B")
        make_schedule(other)
        make_blackout(utc(2026, 1, 21, 0), utc(2026, 1, 21, 10), business=business)
        calendar = ResourceCalendar(settings)
        for r in (resource, other):
            assert calendar.open_windows(r, WED) == [span(utc(2026, 1, 21, 10), utc(2026, 1, 21, 17))]

    def test_blackout_on_other_resource_is_ignored(self, wednesday_room, settings):
        business, resource, _ = wednesday_room
        other = make_resource(business, name="Room B")
        make_blackout(utc(2026, 1, 21, 9), utc(2026, 1, 21, 17), resource=other)
        assert ResourceCalendar(settings).open_windows(resource, WED) == [
            span(utc(2026, 1, 21, 9), utc(2026, 1, 21, 17))
        ]
