"""Availability Query Service.

Answers "which slots are free" for search and "what is next" for the
preview widgets. Both go through ``_run``: raw open windows from the
calendar, minus occupied intervals from the conflict detector, sliced into
slots and priced.
"""

from dataclasses import dataclass, field
from datetime import date, datetime, timedelta, timezone
from typing import Optional

from models import db
from models.bookable_type import BookableType, Package
from models.business import BUSINESS_TYPES, Business
from models.resource import Resource
from services.calendar import ResourceCalendar
from services.conflicts import ConflictDetector
from services.errors import NotFoundError, ValidationError
from services.pricing import PricingOverlay
from services.settings import EngineSettings
from services.store import with_read_retries
from services.time_windows import Interval, date_range, day_bounds, parse_date, subtract_all


@dataclass(frozen=True)
class AvailabilityFilters:
    start_date: date
    end_date: date
    business_id: Optional[int] = None
    business_type: Optional[str] = None
    bookable_type_id: Optional[int] = None
    package_id: Optional[int] = None
    resource_id: Optional[int] = None
    party_size: Optional[int] = None
    duration_mins: Optional[int] = None

    def __post_init__(self):
        if self.end_date < self.start_date:
            raise ValidationError("end_date must not be before start_date")
        if self.business_type is not None and self.business_type not in BUSINESS_TYPES:
            raise ValidationError("Unknown business_type", business_type=self.business_type)
        if self.party_size is not None and self.party_size < 1:
            raise ValidationError("party_size must be >= 1")
        if self.duration_mins is not None and self.duration_mins < 1:
            raise ValidationError("duration_mins must be >= 1")

    @classmethod
    def parse(cls, args, settings: EngineSettings) -> "AvailabilityFilters":
        """Build filters from request args (``date`` or ``start_date``/``end_date``)."""
        if args.get("date"):
            start = end = parse_date(args.get("date"))
        elif args.get("start_date"):
            start = parse_date(args.get("start_date"), "start_date")
            end = parse_date(args.get("end_date"), "end_date") if args.get("end_date") else start
        else:
            raise ValidationError("date or start_date is required")

        if (end - start).days + 1 > settings.max_query_range_days:
            raise ValidationError(
                f"Date range cannot exceed {settings.max_query_range_days} days"
            )

        return cls(
            start_date=start,
            end_date=end,
            business_id=_opt_int(args, "business_id"),
            business_type=(args.get("business_type") or None),
            bookable_type_id=_opt_int(args, "bookable_type_id"),
            package_id=_opt_int(args, "package_id"),
            resource_id=_opt_int(args, "resource_id"),
            party_size=_opt_int(args, "party_size"),
            duration_mins=_opt_int(args, "duration_mins"),
        )


def _opt_int(args, key: str) -> Optional[int]:
    raw = args.get(key)
    if raw is None or raw == "":
        return None
    try:
        return int(raw)
    except (TypeError, ValueError):
        raise ValidationError(f"{key} must be an integer", value=raw) from None


@dataclass(frozen=True)
class Slot:
    resource_id: int
    resource_name: str
    bookable_type_id: int
    bookable_type_name: str
    start: datetime
    end: datetime
    price: int
    available: bool = field(default=True)

    def to_dict(self) -> dict:
        return {
            "id": f"{self.resource_id}-{self.bookable_type_id}-{self.start.isoformat()}",
            "resource_id": self.resource_id,
            "resource_name": self.resource_name,
            "bookable_type_id": self.bookable_type_id,
            "bookable_type_name": self.bookable_type_name,
            "start": self.start.isoformat(),
            "end": self.end.isoformat(),
            "price": self.price,
            "available": self.available,
        }


class AvailabilityService:
    def __init__(self, settings: EngineSettings, clock):
        self.settings = settings
        self.clock = clock
        self.detector = ConflictDetector(settings, clock)

    def query(self, filters: AvailabilityFilters) -> list[Slot]:
        return with_read_retries(self._run, self.settings, filters)

    def next_available(self, business_type: Optional[str] = None,
                       limit: Optional[int] = None) -> list[Slot]:
        if limit is None:
            limit = self.settings.next_available_default_limit
        if limit < 1 or limit > 100:
            raise ValidationError("limit must be between 1 and 100")

        today = self.clock.now().astimezone(self.settings.timezone).date()
        filters = AvailabilityFilters(
            start_date=today,
            end_date=today + timedelta(days=self.settings.next_available_horizon_days - 1),
            business_type=business_type,
        )
        return self.query(filters)[:limit]

    # ---------- resolution ----------

    def _run(self, filters: AvailabilityFilters) -> list[Slot]:
        now = self.clock.now()
        tz = self.settings.timezone
        calendar = ResourceCalendar(self.settings)
        pricing = PricingOverlay(self.settings)

        if filters.resource_id is not None and db.session.get(Resource, filters.resource_id) is None:
            raise NotFoundError("Resource not found", resource_id=filters.resource_id)

        businesses = self._businesses(filters)
        types = self._bookable_types(filters, [b.id for b in businesses])
        package = self._package(filters, types)
        candidates = {bt.id: self._resources_for(bt, filters) for bt in types}

        days = date_range(filters.start_date, filters.end_date)
        max_buffer = max((timedelta(minutes=bt.buffer_after_mins or 0) for bt in types), default=timedelta(0))
        span = Interval(day_bounds(days[0], tz).start, day_bounds(days[-1], tz).end + max_buffer)
        resource_ids = {r.id for rs in candidates.values() for r in rs}
        occupied = self.detector.occupied(resource_ids, span)

        slots: list[Slot] = []
        for bt in types:
            duration = self._duration_for(bt, filters)
            if duration is None:
                continue
            step = self.settings.slot_step or duration
            buffer = timedelta(minutes=bt.buffer_after_mins or 0)
            for resource in candidates[bt.id]:
                busy = occupied.get(resource.id, [])
                for day in days:
                    free = subtract_all(calendar.open_windows(resource, day), busy)
                    for window in free:
                        # step in UTC so slots keep their real length across DST changes
                        start = window.start.astimezone(timezone.utc)
                        end = window.end.astimezone(timezone.utc)
                        while start + duration <= end:
                            if start >= now and self._buffer_clear(start, duration + buffer, busy, buffer):
                                slots.append(Slot(
                                    resource_id=resource.id,
                                    resource_name=resource.name,
                                    bookable_type_id=bt.id,
                                    bookable_type_name=bt.name,
                                    start=start.astimezone(tz),
                                    end=(start + duration).astimezone(tz),
                                    price=pricing.quote(bt, start, package),
                                ))
                            start += step

        slots.sort(key=lambda s: (s.start.astimezone(timezone.utc), s.resource_id, s.bookable_type_id))
        return slots

    @staticmethod
    def _duration_for(bt: BookableType, filters: AvailabilityFilters) -> Optional[timedelta]:
        """Slot length for a type; None when it cannot take the requested duration."""
        if filters.duration_mins is None:
            return timedelta(minutes=bt.duration_mins)
        low = bt.min_duration_mins or bt.duration_mins
        high = bt.max_duration_mins or bt.duration_mins
        if low <= filters.duration_mins <= high:
            return timedelta(minutes=filters.duration_mins)
        if filters.bookable_type_id is not None:
            raise ValidationError(
                f"duration_mins must be between {low} and {high} for this bookable type",
                duration_mins=filters.duration_mins,
            )
        return None

    @staticmethod
    def _buffer_clear(start: datetime, length: timedelta, busy: list[Interval], buffer: timedelta) -> bool:
        if not buffer:
            return True
        buffered = Interval(start, start + length)
        return not any(b.overlaps(buffered) for b in busy)

    def _businesses(self, filters: AvailabilityFilters) -> list[Business]:
        q = Business.query.filter(Business.is_active.is_(True))
        if filters.business_id is not None:
            q = q.filter(Business.id == filters.business_id)
        if filters.business_type is not None:
            q = q.filter(Business.type == filters.business_type)
        rows = q.order_by(Business.id.asc()).all()
        if not rows and (filters.business_id is not None or filters.business_type is not None):
            raise NotFoundError("Business not found")
        return rows

    def _bookable_types(self, filters: AvailabilityFilters, business_ids: list[int]) -> list[BookableType]:
        if not business_ids:
            return []
        q = BookableType.query.filter(
            BookableType.is_active.is_(True),
            BookableType.business_id.in_(business_ids),
        )
        if filters.bookable_type_id is not None:
            q = q.filter(BookableType.id == filters.bookable_type_id)
        rows = q.order_by(BookableType.id.asc()).all()
        if filters.bookable_type_id is not None and not rows:
            raise NotFoundError("Bookable type not found", bookable_type_id=filters.bookable_type_id)
        return rows

    def _package(self, filters: AvailabilityFilters, types: list[BookableType]) -> Optional[Package]:
        if filters.package_id is None:
            return None
        package = db.session.get(Package, filters.package_id)
        if not package or not package.is_active:
            raise NotFoundError("Package not found", package_id=filters.package_id)
        if filters.bookable_type_id is None or package.bookable_type_id != filters.bookable_type_id:
            raise ValidationError("package_id requires its bookable_type_id")
        return package

    def _resources_for(self, bt: BookableType, filters: AvailabilityFilters) -> list[Resource]:
        if bt.resources:
            pool = [r for r in bt.resources if r.is_active]
        else:
            pool = (
                Resource.query
                .filter_by(business_id=bt.business_id, is_active=True)
                .all()
            )
        if filters.resource_id is not None:
            pool = [r for r in pool if r.id == filters.resource_id]
        if filters.party_size is not None:
            pool = [r for r in pool if (r.capacity or 0) >= filters.party_size]
        return sorted(pool, key=lambda r: r.id)
