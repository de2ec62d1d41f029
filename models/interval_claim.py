from models.db import db


class IntervalClaim(db.Model):
    """One time bucket of a resource owned by an active hold or a blocking booking.

    The unique (resource_id, bucket_start) constraint is what makes hold
    acquisition atomic: two overlapping holds cannot both insert their claims.
    """

    __tablename__ = "interval_claims"

    id = db.Column(db.Integer, primary_key=True)
    resource_id = db.Column(db.Integer, db.ForeignKey("resources.id"), nullable=False)
    bucket_start = db.Column(db.DateTime, nullable=False)  # UTC

    hold_id = db.Column(db.String(40), db.ForeignKey("holds.id"), nullable=True, index=True)
    booking_id = db.Column(db.Integer, db.ForeignKey("bookings.id"), nullable=True, index=True)

    __table_args__ = (
        db.UniqueConstraint("resource_id", "bucket_start", name="uq_claim_resource_bucket"),
        db.CheckConstraint(
            "(hold_id IS NULL) <> (booking_id IS NULL)",
            name="ck_claim_single_owner",
        ),
    )
