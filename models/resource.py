from datetime import datetime
from models.db import db

RESOURCE_TYPES = ("room", "office", "suite", "equipment", "provider", "amenity")


class Resource(db.Model):
    __tablename__ = "resources"

    id = db.Column(db.Integer, primary_key=True)
    business_id = db.Column(db.Integer, db.ForeignKey("businesses.id"), nullable=False, index=True)

    name = db.Column(db.String(120), nullable=False)
    slug = db.Column(db.String(120), nullable=False)
    type = db.Column(db.String(20), nullable=False, default="room")
    capacity = db.Column(db.Integer, nullable=False, default=1)

    # Resources are soft-deactivated, never deleted while bookings reference them
    is_active = db.Column(db.Boolean, default=True, nullable=False)
    created_at = db.Column(db.DateTime, default=datetime.utcnow, nullable=False)

    business = db.relationship("Business")

    __table_args__ = (
        db.UniqueConstraint("business_id", "slug", name="uq_resource_business_slug"),
    )
