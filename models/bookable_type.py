from datetime import datetime
from models.db import db

# association table: which resources may satisfy a bookable type
bookable_type_resources = db.Table(
    "bookable_type_resources",
    db.Column("bookable_type_id", db.Integer, db.ForeignKey("bookable_types.id"), primary_key=True),
    db.Column("resource_id", db.Integer, db.ForeignKey("resources.id"), primary_key=True),
)


class BookableType(db.Model):
    __tablename__ = "bookable_types"

    id = db.Column(db.Integer, primary_key=True)
    business_id = db.Column(db.Integer, db.ForeignKey("businesses.id"), nullable=False, index=True)

    name = db.Column(db.String(120), nullable=False)
    slug = db.Column(db.String(120), nullable=False)
    duration_mins = db.Column(db.Integer, nullable=False, default=60)
    # variable-length types accept a requested duration within these bounds
    min_duration_mins = db.Column(db.Integer, nullable=True)
    max_duration_mins = db.Column(db.Integer, nullable=True)
    buffer_after_mins = db.Column(db.Integer, nullable=False, default=0)
    base_price = db.Column(db.Integer, nullable=False, default=0)  # smallest unit (cents)

    is_active = db.Column(db.Boolean, default=True, nullable=False)
    created_at = db.Column(db.DateTime, default=datetime.utcnow, nullable=False)

    # empty means every active resource of the business qualifies
    resources = db.relationship("Resource", secondary=bookable_type_resources)

    __table_args__ = (
        db.UniqueConstraint("business_id", "slug", name="uq_bookable_type_business_slug"),
        db.CheckConstraint("duration_mins > 0", name="ck_bookable_type_duration_positive"),
        db.CheckConstraint(
            "min_duration_mins IS NULL OR max_duration_mins IS NULL OR min_duration_mins <= max_duration_mins",
            name="ck_bookable_type_duration_bounds",
        ),
    )


class Package(db.Model):
    __tablename__ = "packages"

    id = db.Column(db.Integer, primary_key=True)
    bookable_type_id = db.Column(db.Integer, db.ForeignKey("bookable_types.id"), nullable=False, index=True)

    name = db.Column(db.String(120), nullable=False)
    base_price = db.Column(db.Integer, nullable=False, default=0)  # smallest unit (cents)

    is_active = db.Column(db.Boolean, default=True, nullable=False)
    created_at = db.Column(db.DateTime, default=datetime.utcnow, nullable=False)
