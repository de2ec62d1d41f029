"""Per (resource, date) projection of raw open windows."""

from datetime import date
from typing import Optional

from models import db
from models.blackout import BlackoutInterval
from models.resource import Resource
from models.schedule import AvailabilityOverride, ScheduleWindow
from services.settings import EngineSettings
from services.time_windows import (
    Interval,
    LocalWindow,
    WindowList,
    day_bounds,
    from_storage,
    subtract_all,
    to_storage,
)


class ResourceCalendar:
    """Resolves a resource's open windows for a date.

    Precedence, highest first: an override marked unavailable (nothing is
    open), an override with explicit windows (recurring schedule ignored),
    then the recurring schedule for that weekday. Resource and business-wide
    blackouts are subtracted last.

    Results are memoised for the lifetime of the instance, which is meant to
    be a single availability request.
    """

    def __init__(self, settings: EngineSettings):
        self.settings = settings
        self._cache: dict[tuple[int, date], list[Interval]] = {}
        self._schedules: dict[int, list[ScheduleWindow]] = {}

    def open_windows(self, resource: Resource, day: date) -> list[Interval]:
        key = (resource.id, day)
        if key not in self._cache:
            self._cache[key] = self._resolve(resource, day)
        return list(self._cache[key])

    def raw_windows(self, resource: Resource, day: date) -> list[Interval]:
        """Schedule or override windows for the date, before blackouts."""
        tz = self.settings.timezone
        override = self._override_for(resource.id, day)
        if override is not None:
            if override.is_unavailable:
                return []
            return [w.on(day, tz) for w in WindowList.parse(override.windows_json)]

        weekday = day.weekday()
        return [
            LocalWindow(sw.start_time, sw.end_time).on(day, tz)
            for sw in self._schedule_for(resource.id)
            if sw.day_of_week == weekday
        ]

    def blackouts(self, resource: Resource, span: Interval) -> list[Interval]:
        rows = (
            BlackoutInterval.query
            .filter(
                db.or_(
                    BlackoutInterval.resource_id == resource.id,
                    BlackoutInterval.business_id == resource.business_id,
                ),
                BlackoutInterval.start_at < to_storage(span.end),
                BlackoutInterval.end_at > to_storage(span.start),
            )
            .all()
        )
        return [Interval(from_storage(b.start_at), from_storage(b.end_at)) for b in rows]

    def _resolve(self, resource: Resource, day: date) -> list[Interval]:
        raw = self.raw_windows(resource, day)
        if not raw:
            return []
        return subtract_all(raw, self.blackouts(resource, day_bounds(day, self.settings.timezone)))

    def _override_for(self, resource_id: int, day: date) -> Optional[AvailabilityOverride]:
        return AvailabilityOverride.query.filter_by(resource_id=resource_id, override_date=day).first()

    def _schedule_for(self, resource_id: int) -> list[ScheduleWindow]:
        if resource_id not in self._schedules:
            self._schedules[resource_id] = (
                ScheduleWindow.query
                .filter_by(resource_id=resource_id, is_active=True)
                .order_by(ScheduleWindow.day_of_week.asc(), ScheduleWindow.start_time.asc())
                .all()
            )
        return self._schedules[resource_id]
