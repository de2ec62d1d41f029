from datetime import datetime
from models.db import db

MODIFIER_TYPES = ("percentage", "fixed_amount")


class PricingRule(db.Model):
    __tablename__ = "pricing_rules"

    id = db.Column(db.Integer, primary_key=True)
    business_id = db.Column(db.Integer, db.ForeignKey("businesses.id"), nullable=False, index=True)
    bookable_type_id = db.Column(db.Integer, db.ForeignKey("bookable_types.id"), nullable=True)
    package_id = db.Column(db.Integer, db.ForeignKey("packages.id"), nullable=True)

    name = db.Column(db.String(120), nullable=False)
    modifier_type = db.Column(db.String(20), nullable=False)   # percentage | fixed_amount
    modifier_value = db.Column(db.Numeric(10, 2), nullable=False)  # percent, or smallest unit
    priority = db.Column(db.Integer, nullable=False, default=0)

    # activation predicate; every unset part matches
    valid_from = db.Column(db.Date, nullable=True)
    valid_until = db.Column(db.Date, nullable=True)
    days_of_week = db.Column(db.String(20), nullable=True)  # e.g. "5,6" (0 = Monday)
    start_time = db.Column(db.Time, nullable=True)          # business-local time of day
    end_time = db.Column(db.Time, nullable=True)

    is_active = db.Column(db.Boolean, default=True, nullable=False)
    created_at = db.Column(db.DateTime, default=datetime.utcnow, nullable=False)
