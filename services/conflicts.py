"""Occupied intervals: blocking bookings plus live holds."""

from collections import defaultdict
from datetime import datetime
from typing import Iterable

from models.booking import Booking
from models.hold import Hold
from services.settings import EngineSettings
from services.time_windows import Interval, from_storage, to_storage, union


class ConflictDetector:
    def __init__(self, settings: EngineSettings, clock):
        self.settings = settings
        self.clock = clock

    def occupied(self, resource_ids: Iterable[int], span: Interval) -> dict[int, list[Interval]]:
        """Union of occupied intervals per resource overlapping ``span``.

        A hold only occupies while ``now < expires_at``; its stored status is
        not trusted on its own, so an ``active`` row past expiry is ignored.
        Occupation runs to ``blocked_until`` so buffers are honoured.
        """
        resource_ids = list(resource_ids)
        if not resource_ids:
            return {}

        now = to_storage(self.clock.now())
        lo, hi = to_storage(span.start), to_storage(span.end)

        bookings = (
            Booking.query
            .filter(
                Booking.resource_id.in_(resource_ids),
                Booking.status.in_(sorted(self.settings.partition.blocking)),
                Booking.start_at < hi,
                Booking.blocked_until > lo,
            )
            .all()
        )
        holds = (
            Hold.query
            .filter(
                Hold.resource_id.in_(resource_ids),
                Hold.status == "active",
                Hold.expires_at > now,
                Hold.start_at < hi,
                Hold.blocked_until > lo,
            )
            .all()
        )

        by_resource: dict[int, list[Interval]] = defaultdict(list)
        for row in list(bookings) + list(holds):
            by_resource[row.resource_id].append(
                Interval(from_storage(row.start_at), from_storage(row.blocked_until))
            )
        return {rid: union(ivs) for rid, ivs in by_resource.items()}

    def conflicts(self, resource_id: int, interval: Interval) -> list[Interval]:
        occupied = self.occupied([resource_id], interval).get(resource_id, [])
        return [iv for iv in occupied if iv.overlaps(interval)]

    def is_free(self, resource_id: int, interval: Interval) -> bool:
        return not self.conflicts(resource_id, interval)


def hold_is_live(hold: Hold, now: datetime) -> bool:
    """Active and not yet past expiry, evaluated against ``now``."""
    return hold.status == "active" and from_storage(hold.expires_at) > now
