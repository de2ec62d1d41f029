import secrets
from models.db import db

HOLD_STATUSES = ("active", "released", "expired", "promoted")


def _new_hold_id() -> str:
    return "hold_" + secrets.token_urlsafe(12)


class Hold(db.Model):
    __tablename__ = "holds"

    id = db.Column(db.String(40), primary_key=True, default=_new_hold_id)

    resource_id = db.Column(db.Integer, db.ForeignKey("resources.id"), nullable=False, index=True)
    bookable_type_id = db.Column(db.Integer, db.ForeignKey("bookable_types.id"), nullable=True)
    package_id = db.Column(db.Integer, db.ForeignKey("packages.id"), nullable=True)

    start_at = db.Column(db.DateTime, nullable=False, index=True)  # UTC
    end_at = db.Column(db.DateTime, nullable=False)
    blocked_until = db.Column(db.DateTime, nullable=False)         # end_at + buffer

    # owner: authenticated user id or anonymous session id (exactly one)
    owner_user_id = db.Column(db.String(64), nullable=True, index=True)
    owner_session_id = db.Column(db.String(64), nullable=True, index=True)

    status = db.Column(db.String(20), nullable=False, default="active", index=True)
    # status values: active, released, expired, promoted

    created_at = db.Column(db.DateTime, nullable=False)
    expires_at = db.Column(db.DateTime, nullable=False, index=True)
    closed_at = db.Column(db.DateTime, nullable=True)

    __table_args__ = (
        db.CheckConstraint("start_at < end_at", name="ck_hold_start_before_end"),
        db.CheckConstraint(
            "(owner_user_id IS NULL) <> (owner_session_id IS NULL)",
            name="ck_hold_single_owner",
        ),
    )
