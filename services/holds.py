"""Hold Manager: short-lived exclusive claims on a resource interval.

State machine::

    active -> promoted | released | expired      (all terminal)

Every transition is a conditional UPDATE on ``status = 'active'`` (plus
``expires_at > now`` where the hold must still be live), so concurrent
promote/release/sweep calls cannot both win.
"""

import logging
from dataclasses import dataclass
from datetime import timedelta
from typing import Optional

from sqlalchemy.exc import IntegrityError

from models import db
from models.bookable_type import BookableType, Package
from models.booking import Booking
from models.hold import Hold
from models.interval_claim import IntervalClaim
from models.resource import Resource
from services.calendar import ResourceCalendar
from services.claims import add_claims, claim_buckets, clear_stale_claims, drop_claims
from services.conflicts import ConflictDetector, hold_is_live
from services.errors import ConflictError, ExpiredError, NotFoundError, ValidationError
from services.settings import EngineSettings
from services.store import write_guard
from services.time_windows import Interval, date_range, from_storage, to_storage, union

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Owner:
    """Authenticated user id or anonymous session id, exactly one."""

    user_id: Optional[str] = None
    session_id: Optional[str] = None

    def __post_init__(self):
        if bool(self.user_id) == bool(self.session_id):
            raise ValidationError("Exactly one of user_id or session_id identifies the hold owner")

    @property
    def key(self) -> str:
        return self.user_id or self.session_id


class HoldManager:
    def __init__(self, settings: EngineSettings, clock, pricing=None):
        self.settings = settings
        self.clock = clock
        self.detector = ConflictDetector(settings, clock)
        self.pricing = pricing

    # ---------- acquisition ----------

    def create_hold(self, resource_id: int, interval: Interval, owner: Owner,
                    bookable_type_id: Optional[int] = None,
                    package_id: Optional[int] = None) -> Hold:
        now = self.clock.now()
        resource = db.session.get(Resource, resource_id)
        if not resource or not resource.is_active:
            raise NotFoundError("Resource not found", resource_id=resource_id)

        buffer = timedelta(0)
        if bookable_type_id is not None:
            bt = self._bookable_type_for(resource, bookable_type_id)
            buffer = timedelta(minutes=bt.buffer_after_mins or 0)
            if package_id is not None:
                self._package_for(bt, package_id)
        elif package_id is not None:
            raise ValidationError("package_id requires its bookable_type_id")

        if interval.start < now:
            raise ValidationError("Cannot hold past/started slots", start=interval.start.isoformat())

        if not self.is_open(resource, interval):
            raise ConflictError("Resource is not open for booking at this time",
                                resource_id=resource.id)

        blocked = Interval(interval.start, interval.end + buffer)
        if self.detector.conflicts(resource.id, blocked):
            raise ConflictError("Slot is no longer available, please pick another time")

        buckets = claim_buckets(blocked, self.settings.claim_bucket)
        hold = Hold(
            resource_id=resource.id,
            bookable_type_id=bookable_type_id,
            package_id=package_id,
            start_at=to_storage(interval.start),
            end_at=to_storage(interval.end),
            blocked_until=to_storage(blocked.end),
            owner_user_id=owner.user_id,
            owner_session_id=owner.session_id,
            status="active",
            created_at=to_storage(now),
            expires_at=to_storage(now + self.settings.hold_duration),
        )

        with write_guard():
            try:
                clear_stale_claims(resource.id, buckets, now, self.settings.partition)
                db.session.add(hold)
                db.session.flush()
                add_claims(resource.id, buckets, hold_id=hold.id)
                db.session.commit()
            except IntegrityError:
                db.session.rollback()
                logger.info("Hold race lost on resource %s for %s", resource.id, interval)
                raise ConflictError("Slot is no longer available, please pick another time") from None

        logger.info("Hold %s created on resource %s until %s", hold.id, resource.id, hold.expires_at)
        return hold

    # ---------- lifecycle ----------

    def renew_hold(self, hold_id: str) -> Hold:
        now = self.clock.now()
        with write_guard():
            updated = (
                Hold.query
                .filter(Hold.id == hold_id, Hold.status == "active", Hold.expires_at > to_storage(now))
                .update({"expires_at": to_storage(now + self.settings.hold_duration)},
                        synchronize_session=False)
            )
            if updated != 1:
                db.session.rollback()
                raise NotFoundError("Hold not found or no longer active", hold_id=hold_id)
            db.session.commit()
        return self.get_hold(hold_id)

    def release_hold(self, hold_id: str) -> Hold:
        """Release an active hold. Releasing a terminal hold is a no-op."""
        hold = self.get_hold(hold_id)
        if hold.status != "active":
            return hold

        now = self.clock.now()
        # a lapsed hold is recorded as what it already was: expired
        new_status = "released" if hold_is_live(hold, now) else "expired"
        with write_guard():
            (
                Hold.query
                .filter(Hold.id == hold_id, Hold.status == "active")
                .update({"status": new_status, "closed_at": to_storage(now)}, synchronize_session=False)
            )
            drop_claims(hold_id=hold_id)
            db.session.commit()
        return self.get_hold(hold_id)

    def promote_hold(self, hold_id: str, price: Optional[int] = None) -> Booking:
        """Turn a live hold into a confirmed booking in one transaction."""
        hold = self.get_hold(hold_id)
        now = self.clock.now()

        if price is None and self.pricing is not None and hold.bookable_type_id is not None:
            price = self.pricing.quote_hold(hold)

        with write_guard():
            updated = (
                Hold.query
                .filter(Hold.id == hold_id, Hold.status == "active", Hold.expires_at > to_storage(now))
                .update({"status": "promoted", "closed_at": to_storage(now)}, synchronize_session=False)
            )
            if updated != 1:
                db.session.rollback()
                self._raise_not_promotable(hold_id, now)

            booking = Booking(
                resource_id=hold.resource_id,
                bookable_type_id=hold.bookable_type_id,
                package_id=hold.package_id,
                hold_id=hold.id,
                start_at=hold.start_at,
                end_at=hold.end_at,
                blocked_until=hold.blocked_until,
                owner_user_id=hold.owner_user_id,
                owner_session_id=hold.owner_session_id,
                status="confirmed",
                price=price,
                created_at=to_storage(now),
            )
            try:
                db.session.add(booking)
                db.session.flush()
                expected = len(claim_buckets(
                    Interval(from_storage(hold.start_at), from_storage(hold.blocked_until)),
                    self.settings.claim_bucket,
                ))
                moved = (
                    IntervalClaim.query
                    .filter(IntervalClaim.hold_id == hold_id)
                    .update({"hold_id": None, "booking_id": booking.id}, synchronize_session=False)
                )
                if moved != expected:
                    db.session.rollback()
                    raise ConflictError("Hold no longer guards its slot, please search again",
                                        hold_id=hold_id)
                db.session.commit()
            except IntegrityError:
                db.session.rollback()
                raise ConflictError("Hold was already promoted", hold_id=hold_id) from None

        logger.info("Hold %s promoted to booking %s", hold_id, booking.id)
        return booking

    def expire_stale_holds(self) -> int:
        """Housekeeping sweep; reads never depend on it having run."""
        now = to_storage(self.clock.now())
        ids = [
            h.id for h in
            Hold.query.with_entities(Hold.id)
            .filter(Hold.status == "active", Hold.expires_at <= now)
            .all()
        ]
        if not ids:
            return 0
        with write_guard():
            IntervalClaim.query.filter(IntervalClaim.hold_id.in_(ids)).delete(synchronize_session=False)
            expired = (
                Hold.query
                .filter(Hold.id.in_(ids), Hold.status == "active", Hold.expires_at <= now)
                .update({"status": "expired", "closed_at": now}, synchronize_session=False)
            )
            db.session.commit()
        logger.info("Expired %d stale holds", expired)
        return expired

    # ---------- helpers ----------

    def get_hold(self, hold_id: str) -> Hold:
        db.session.expire_all()
        hold = db.session.get(Hold, hold_id)
        if not hold:
            raise NotFoundError("Hold not found", hold_id=hold_id)
        return hold

    def _raise_not_promotable(self, hold_id: str, now):
        hold = self.get_hold(hold_id)
        if hold.status == "expired" or (hold.status == "active" and not hold_is_live(hold, now)):
            raise ExpiredError("Your hold expired, please search again", hold_id=hold_id)
        raise ConflictError(f"Hold is {hold.status}", hold_id=hold_id)

    def is_open(self, resource: Resource, interval: Interval) -> bool:
        """True when one open window (schedule or override, minus blackouts) covers the interval."""
        tz = self.settings.timezone
        calendar = ResourceCalendar(self.settings)
        first = interval.start.astimezone(tz).date()
        last = (interval.end - timedelta(microseconds=1)).astimezone(tz).date()
        windows = []
        for day in date_range(first, last):
            windows.extend(calendar.open_windows(resource, day))
        return any(w.contains(interval) for w in union(windows))

    @staticmethod
    def _package_for(bt: BookableType, package_id: int) -> Package:
        package = db.session.get(Package, package_id)
        if not package or not package.is_active:
            raise NotFoundError("Package not found", package_id=package_id)
        if package.bookable_type_id != bt.id:
            raise ValidationError("Package belongs to another bookable type",
                                  package_id=package_id, bookable_type_id=bt.id)
        return package

    def _bookable_type_for(self, resource: Resource, bookable_type_id: int) -> BookableType:
        bt = db.session.get(BookableType, bookable_type_id)
        if not bt or not bt.is_active or bt.business_id != resource.business_id:
            raise NotFoundError("Bookable type not found", bookable_type_id=bookable_type_id)
        if bt.resources and resource not in bt.resources:
            raise ValidationError("Resource cannot satisfy this bookable type",
                                  resource_id=resource.id, bookable_type_id=bt.id)
        return bt
