from datetime import datetime
from models.db import db


class Booking(db.Model):
    __tablename__ = "bookings"

    id = db.Column(db.Integer, primary_key=True)

    resource_id = db.Column(db.Integer, db.ForeignKey("resources.id"), nullable=False, index=True)
    bookable_type_id = db.Column(db.Integer, db.ForeignKey("bookable_types.id"), nullable=True)
    package_id = db.Column(db.Integer, db.ForeignKey("packages.id"), nullable=True)
    hold_id = db.Column(db.String(40), db.ForeignKey("holds.id"), nullable=True)

    start_at = db.Column(db.DateTime, nullable=False, index=True)  # UTC
    end_at = db.Column(db.DateTime, nullable=False)
    blocked_until = db.Column(db.DateTime, nullable=False)

    owner_user_id = db.Column(db.String(64), nullable=True, index=True)
    owner_session_id = db.Column(db.String(64), nullable=True)

    status = db.Column(db.String(30), nullable=False, default="confirmed", index=True)
    # status vocabulary lives in services.statuses; blocking/non-blocking is configuration

    price = db.Column(db.Integer, nullable=True)  # quoted price, smallest unit

    created_at = db.Column(db.DateTime, default=datetime.utcnow, nullable=False)
    cancelled_at = db.Column(db.DateTime, nullable=True)
    cancel_reason = db.Column(db.String(120), nullable=True)

    __table_args__ = (
        # a hold is promoted into at most one booking
        db.UniqueConstraint("hold_id", name="uq_booking_hold_once"),
        db.CheckConstraint("start_at < end_at", name="ck_booking_start_before_end"),
    )
