"""Bucketed (resource, time) claims: the store-level exclusion constraint.

Holds and blocking bookings insert one ``IntervalClaim`` row per bucket they
cover. ``uq_claim_resource_bucket`` turns a racing second acquisition into an
``IntegrityError`` no matter how the two requests interleave. Buckets are
rounded outward, so intervals that are not bucket-aligned are guarded
conservatively.
"""

from datetime import datetime, timedelta

from models import db
from models.booking import Booking
from models.hold import Hold
from models.interval_claim import IntervalClaim
from services.conflicts import hold_is_live
from services.time_windows import Interval, to_storage

_EPOCH = datetime(1970, 1, 1)


def claim_buckets(interval: Interval, bucket: timedelta) -> list[datetime]:
    """Naive-UTC bucket starts covering ``interval``."""
    start, end = to_storage(interval.start), to_storage(interval.end)
    current = _EPOCH + ((start - _EPOCH) // bucket) * bucket
    buckets = []
    while current < end:
        buckets.append(current)
        current += bucket
    return buckets


def clear_stale_claims(resource_id: int, buckets: list[datetime], now: datetime, partition) -> int:
    """Drop claims in ``buckets`` that no longer guard anything.

    Stale means owned by a hold that is not live (terminal, or active but
    past expiry) or by a booking whose status is not blocking under the
    current partition. Lapsed active holds are marked ``expired`` on the way.
    """
    if not buckets:
        return 0

    rows = (
        db.session.query(IntervalClaim, Hold, Booking)
        .outerjoin(Hold, IntervalClaim.hold_id == Hold.id)
        .outerjoin(Booking, IntervalClaim.booking_id == Booking.id)
        .filter(
            IntervalClaim.resource_id == resource_id,
            IntervalClaim.bucket_start >= buckets[0],
            IntervalClaim.bucket_start <= buckets[-1],
        )
        .all()
    )

    stale_ids = []
    lapsed_hold_ids = set()
    for claim, hold, booking in rows:
        if hold is not None and not hold_is_live(hold, now):
            stale_ids.append(claim.id)
            if hold.status == "active":
                lapsed_hold_ids.add(hold.id)
        elif booking is not None and not partition.is_blocking(booking.status):
            stale_ids.append(claim.id)

    if lapsed_hold_ids:
        (
            Hold.query
            .filter(Hold.id.in_(lapsed_hold_ids), Hold.status == "active")
            .update({"status": "expired", "closed_at": to_storage(now)}, synchronize_session=False)
        )
    if stale_ids:
        (
            IntervalClaim.query
            .filter(IntervalClaim.id.in_(stale_ids))
            .delete(synchronize_session=False)
        )
    return len(stale_ids)


def add_claims(resource_id: int, buckets: list[datetime], hold_id=None, booking_id=None) -> None:
    db.session.add_all([
        IntervalClaim(resource_id=resource_id, bucket_start=b, hold_id=hold_id, booking_id=booking_id)
        for b in buckets
    ])
    db.session.flush()


def drop_claims(hold_id=None, booking_id=None) -> int:
    q = IntervalClaim.query
    if hold_id is not None:
        q = q.filter(IntervalClaim.hold_id == hold_id)
    elif booking_id is not None:
        q = q.filter(IntervalClaim.booking_id == booking_id)
    else:
        return 0
    return q.delete(synchronize_session=False)
