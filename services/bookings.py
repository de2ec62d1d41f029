"""Staff-side booking writes that must keep the claim table consistent."""

import logging
from datetime import timedelta
from typing import Optional

from sqlalchemy.exc import IntegrityError

from models import db
from models.bookable_type import BookableType
from models.booking import Booking
from models.resource import Resource
from services.claims import add_claims, claim_buckets, clear_stale_claims, drop_claims
from services.conflicts import ConflictDetector
from services.errors import ConflictError, NotFoundError
from services.settings import EngineSettings
from services.store import write_guard
from services.time_windows import Interval, from_storage, to_storage

logger = logging.getLogger(__name__)


class BookingService:
    def __init__(self, settings: EngineSettings, clock):
        self.settings = settings
        self.clock = clock
        self.detector = ConflictDetector(settings, clock)

    def create_booking(self, resource_id: int, interval: Interval, owner,
                       status: str = "confirmed", bookable_type_id: Optional[int] = None,
                       price: Optional[int] = None) -> Booking:
        """Record a booking directly (walk-ins, phone bookings)."""
        self.settings.partition.validate(status)
        resource = db.session.get(Resource, resource_id)
        if not resource or not resource.is_active:
            raise NotFoundError("Resource not found", resource_id=resource_id)

        buffer = timedelta(0)
        if bookable_type_id is not None:
            bt = db.session.get(BookableType, bookable_type_id)
            if not bt or bt.business_id != resource.business_id:
                raise NotFoundError("Bookable type not found", bookable_type_id=bookable_type_id)
            buffer = timedelta(minutes=bt.buffer_after_mins or 0)

        blocked = Interval(interval.start, interval.end + buffer)
        blocking = self.settings.partition.is_blocking(status)
        if blocking and self.detector.conflicts(resource.id, blocked):
            raise ConflictError("Slot is no longer available, please pick another time")

        booking = Booking(
            resource_id=resource.id,
            bookable_type_id=bookable_type_id,
            start_at=to_storage(interval.start),
            end_at=to_storage(interval.end),
            blocked_until=to_storage(blocked.end),
            owner_user_id=owner.user_id,
            owner_session_id=owner.session_id,
            status=status,
            price=price,
            created_at=to_storage(self.clock.now()),
        )
        with write_guard():
            try:
                db.session.add(booking)
                db.session.flush()
                if blocking:
                    self._claim(booking)
                db.session.commit()
            except IntegrityError:
                db.session.rollback()
                raise ConflictError("Slot is no longer available, please pick another time") from None
        return booking

    def change_status(self, booking_id: int, status: str, reason: Optional[str] = None) -> Booking:
        """Move a booking to ``status``, releasing or re-acquiring its claims."""
        partition = self.settings.partition
        partition.validate(status)
        booking = db.session.get(Booking, booking_id)
        if not booking:
            raise NotFoundError("Booking not found", booking_id=booking_id)

        was_blocking = partition.is_blocking(booking.status)
        now_blocking = partition.is_blocking(status)
        if now_blocking and not was_blocking:
            blocked = Interval(from_storage(booking.start_at), from_storage(booking.blocked_until))
            if self.detector.conflicts(booking.resource_id, blocked):
                raise ConflictError("Booking interval is no longer free", booking_id=booking_id)

        previous = booking.status
        with write_guard():
            try:
                booking.status = status
                if status == "cancelled":
                    booking.cancelled_at = to_storage(self.clock.now())
                    booking.cancel_reason = reason
                if was_blocking and not now_blocking:
                    drop_claims(booking_id=booking.id)
                elif now_blocking and not was_blocking:
                    self._claim(booking)
                db.session.commit()
            except IntegrityError:
                db.session.rollback()
                raise ConflictError("Booking interval is no longer free", booking_id=booking_id) from None

        logger.info("Booking %s status %s -> %s", booking_id, previous, status)
        return booking

    def _claim(self, booking: Booking) -> None:
        blocked = Interval(from_storage(booking.start_at), from_storage(booking.blocked_until))
        buckets = claim_buckets(blocked, self.settings.claim_bucket)
        drop_claims(booking_id=booking.id)
        clear_stale_claims(booking.resource_id, buckets, self.clock.now(), self.settings.partition)
        add_claims(booking.resource_id, buckets, booking_id=booking.id)
