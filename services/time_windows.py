"""Half-open time intervals and the set algebra the engine is built on.

All intervals are ``[start, end)`` over timezone-aware datetimes. The store
keeps naive UTC datetimes (``datetime.utcnow`` style columns); use
``to_storage`` / ``from_storage`` at that boundary.
"""

import json
from dataclasses import dataclass
from datetime import date, datetime, time, timedelta, timezone
from typing import Iterable, Optional
from zoneinfo import ZoneInfo

from services.errors import ValidationError


@dataclass(frozen=True, order=True)
class Interval:
    start: datetime
    end: datetime

    def __post_init__(self):
        if self.start.tzinfo is None or self.end.tzinfo is None:
            raise ValidationError("Interval bounds must be timezone-aware")
        if self.end <= self.start:
            raise ValidationError(
                "Interval end must be after start",
                start=self.start.isoformat(),
                end=self.end.isoformat(),
            )

    @property
    def duration(self) -> timedelta:
        return self.end - self.start

    def overlaps(self, other: "Interval") -> bool:
        return self.start < other.end and other.start < self.end

    def contains(self, other: "Interval") -> bool:
        return self.start <= other.start and other.end <= self.end


def intersect(a: Interval, b: Interval) -> Optional[Interval]:
    start = max(a.start, b.start)
    end = min(a.end, b.end)
    if end <= start:
        return None
    return Interval(start, end)


def union(intervals: Iterable[Interval]) -> list[Interval]:
    """Merge overlapping or adjacent intervals, sorted by start."""
    merged: list[Interval] = []
    for iv in sorted(intervals, key=lambda i: (i.start, i.end)):
        if merged and iv.start <= merged[-1].end:
            last = merged[-1]
            if iv.end > last.end:
                merged[-1] = Interval(last.start, iv.end)
        else:
            merged.append(iv)
    return merged


def subtract(window: Interval, blocking: Iterable[Interval]) -> list[Interval]:
    """Remove the union of ``blocking`` from ``window``."""
    remaining: list[Interval] = []
    cursor = window.start
    for block in union(blocking):
        if block.end <= cursor:
            continue
        if block.start >= window.end:
            break
        if block.start > cursor:
            remaining.append(Interval(cursor, block.start))
        cursor = max(cursor, block.end)
        if cursor >= window.end:
            break
    if cursor < window.end:
        remaining.append(Interval(cursor, window.end))
    return remaining


def subtract_all(windows: Iterable[Interval], blocking: Iterable[Interval]) -> list[Interval]:
    blocking = union(blocking)
    out: list[Interval] = []
    for w in union(windows):
        out.extend(subtract(w, blocking))
    return out


# ---------- local (wall-clock) windows ----------

@dataclass(frozen=True)
class LocalWindow:
    """An open window expressed as business-local times of day."""

    start: time
    end: time

    def __post_init__(self):
        if self.end <= self.start:
            raise ValidationError(
                "Window end must be after start",
                start=self.start.isoformat(),
                end=self.end.isoformat(),
            )

    def on(self, day: date, tz: ZoneInfo) -> Interval:
        return Interval(
            datetime.combine(day, self.start, tzinfo=tz),
            datetime.combine(day, self.end, tzinfo=tz),
        )

    def to_dict(self) -> dict:
        return {"start": self.start.strftime("%H:%M"), "end": self.end.strftime("%H:%M")}


def parse_time_of_day(value) -> time:
    if isinstance(value, time):
        return value
    if not isinstance(value, str) or not value.strip():
        raise ValidationError("Time of day must be a HH:MM string", value=repr(value))
    try:
        return time.fromisoformat(value.strip())
    except ValueError:
        raise ValidationError("Invalid time of day. Use HH:MM", value=value) from None


class WindowList(tuple):
    """Validated, sorted, non-overlapping list of ``LocalWindow``."""

    @classmethod
    def parse(cls, raw) -> "WindowList":
        """Parse override/request window data, failing fast on anything malformed.

        Accepts a JSON string or an already-decoded list of
        ``{"start": "HH:MM", "end": "HH:MM"}`` mappings.
        """
        if raw is None or raw == "":
            return cls(())
        if isinstance(raw, str):
            try:
                raw = json.loads(raw)
            except ValueError:
                raise ValidationError("Windows must be valid JSON") from None
        if not isinstance(raw, list):
            raise ValidationError("Windows must be a list of {start, end} objects")

        windows = []
        for item in raw:
            if not isinstance(item, dict) or "start" not in item or "end" not in item:
                raise ValidationError("Each window needs start and end", window=repr(item))
            windows.append(LocalWindow(parse_time_of_day(item["start"]), parse_time_of_day(item["end"])))

        windows.sort(key=lambda w: w.start)
        for prev, nxt in zip(windows, windows[1:]):
            if nxt.start < prev.end:
                raise ValidationError(
                    "Windows must not overlap",
                    first=prev.to_dict(),
                    second=nxt.to_dict(),
                )
        return cls(windows)

    def to_json(self) -> str:
        return json.dumps([w.to_dict() for w in self])


# ---------- storage boundary ----------

def ensure_aware(value: datetime, field: str = "datetime") -> datetime:
    if value.tzinfo is None:
        raise ValidationError(f"{field} must include a UTC offset", value=value.isoformat())
    return value


def parse_datetime(value, field: str = "datetime") -> datetime:
    if not isinstance(value, str) or not value.strip():
        raise ValidationError(f"{field} is required")
    raw = value.strip()
    if raw.endswith("Z"):
        raw = raw[:-1] + "+00:00"
    try:
        parsed = datetime.fromisoformat(raw)
    except ValueError:
        raise ValidationError(
            f"Invalid {field}. Use ISO 8601 with offset e.g. 2026-01-21T09:00:00-05:00"
        ) from None
    return ensure_aware(parsed, field)


def parse_date(value, field: str = "date") -> date:
    if not isinstance(value, str) or not value.strip():
        raise ValidationError(f"{field} is required")
    try:
        return date.fromisoformat(value.strip())
    except ValueError:
        raise ValidationError(f"Invalid {field}. Use YYYY-MM-DD", value=value) from None


def to_storage(value: datetime) -> datetime:
    """Aware datetime -> naive UTC for the store."""
    return ensure_aware(value).astimezone(timezone.utc).replace(tzinfo=None)


def from_storage(value: datetime) -> datetime:
    """Naive UTC from the store -> aware UTC."""
    if value.tzinfo is not None:
        return value.astimezone(timezone.utc)
    return value.replace(tzinfo=timezone.utc)


def day_bounds(day: date, tz: ZoneInfo) -> Interval:
    start = datetime.combine(day, time.min, tzinfo=tz)
    end = datetime.combine(day + timedelta(days=1), time.min, tzinfo=tz)
    return Interval(start, end)


def date_range(start: date, end: date) -> list[date]:
    days = []
    current = start
    while current <= end:
        days.append(current)
        current += timedelta(days=1)
    return days
