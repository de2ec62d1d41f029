from datetime import datetime
from models.db import db


class BlackoutInterval(db.Model):
    __tablename__ = "blackout_intervals"

    id = db.Column(db.Integer, primary_key=True)

    # exactly one scope: a single resource or a whole business
    business_id = db.Column(db.Integer, db.ForeignKey("businesses.id"), nullable=True, index=True)
    resource_id = db.Column(db.Integer, db.ForeignKey("resources.id"), nullable=True, index=True)

    start_at = db.Column(db.DateTime, nullable=False, index=True)  # UTC
    end_at = db.Column(db.DateTime, nullable=False, index=True)
    reason = db.Column(db.String(255), nullable=True)

    created_by = db.Column(db.String(64), nullable=True)
    created_at = db.Column(db.DateTime, default=datetime.utcnow, nullable=False)

    __table_args__ = (
        db.CheckConstraint("start_at < end_at", name="ck_blackout_start_before_end"),
        db.CheckConstraint(
            "(business_id IS NULL) <> (resource_id IS NULL)",
            name="ck_blackout_single_scope",
        ),
    )
