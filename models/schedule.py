from datetime import datetime
from models.db import db


class ScheduleWindow(db.Model):
    """Recurring weekly open window for a resource (or provider)."""

    __tablename__ = "schedule_windows"

    id = db.Column(db.Integer, primary_key=True)
    resource_id = db.Column(db.Integer, db.ForeignKey("resources.id"), nullable=False, index=True)

    day_of_week = db.Column(db.Integer, nullable=False)  # 0 = Monday ... 6 = Sunday
    start_time = db.Column(db.Time, nullable=False)      # business-local
    end_time = db.Column(db.Time, nullable=False)

    is_active = db.Column(db.Boolean, default=True, nullable=False)
    created_at = db.Column(db.DateTime, default=datetime.utcnow, nullable=False)

    __table_args__ = (
        db.CheckConstraint("day_of_week BETWEEN 0 AND 6", name="ck_schedule_day_of_week"),
        db.CheckConstraint("start_time < end_time", name="ck_schedule_start_before_end"),
    )


class AvailabilityOverride(db.Model):
    """Date-specific replacement of a resource's recurring schedule."""

    __tablename__ = "availability_overrides"

    id = db.Column(db.Integer, primary_key=True)
    resource_id = db.Column(db.Integer, db.ForeignKey("resources.id"), nullable=False, index=True)
    override_date = db.Column(db.Date, nullable=False)

    is_unavailable = db.Column(db.Boolean, default=False, nullable=False)
    # JSON list of {"start": "HH:MM", "end": "HH:MM"}; parsed by services.time_windows.WindowList
    windows_json = db.Column(db.Text, nullable=True)
    notes = db.Column(db.String(255), nullable=True)

    created_at = db.Column(db.DateTime, default=datetime.utcnow, nullable=False)

    __table_args__ = (
        db.UniqueConstraint("resource_id", "override_date", name="uq_override_resource_date"),
    )
