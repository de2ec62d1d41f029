import os

BASE_DIR = os.path.abspath(os.path.dirname(__file__))


def _csv(env_var: str, default: str) -> list[str]:
    raw = os.getenv(env_var, default)
    return [part.strip() for part in raw.split(",") if part.strip()]


class Config:
    # Secrets
    SECRET_KEY = os.getenv("SECRET_KEY", "dev-only-change-me")

    # SQLite database file stored next to the app as slotbook.db
    SQLALCHEMY_DATABASE_URI = os.getenv(
        "DATABASE_URL",
        "sqlite:///" + os.path.join(BASE_DIR, "slotbook.db")
    )
    SQLALCHEMY_TRACK_MODIFICATIONS = False

    LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO")

    # Business-local timezone used to anchor weekly schedules and overrides
    BUSINESS_TIMEZONE = os.getenv("BUSINESS_TIMEZONE", "America/New_York")

    # Holds: 10 minutes from creation (or renewal)
    HOLD_DURATION_MINUTES = int(os.getenv("HOLD_DURATION_MINUTES", "10"))

    # Slot slicing step; unset means "step by the bookable type's duration"
    SLOT_STEP_MINUTES = int(os.getenv("SLOT_STEP_MINUTES")) if os.getenv("SLOT_STEP_MINUTES") else None

    # Granularity of the unique (resource, bucket) claims guarding hold acquisition
    CLAIM_BUCKET_MINUTES = int(os.getenv("CLAIM_BUCKET_MINUTES", "5"))

    # Booking status partition (data, not code)
    BLOCKING_BOOKING_STATUSES = _csv(
        "BLOCKING_BOOKING_STATUSES",
        "pending,pending_payment,pending_documents,approved,confirmed,"
        "in_progress,reschedule_requested,rescheduled",
    )
    NON_BLOCKING_BOOKING_STATUSES = _csv(
        "NON_BLOCKING_BOOKING_STATUSES",
        "cancelled,denied,no_show,completed",
    )

    # Read paths retry transient store failures; create/promote never do
    STORE_READ_RETRIES = int(os.getenv("STORE_READ_RETRIES", "3"))
    STORE_RETRY_BACKOFF_SECONDS = float(os.getenv("STORE_RETRY_BACKOFF_SECONDS", "0.05"))

    # Availability search limits
    NEXT_AVAILABLE_HORIZON_DAYS = int(os.getenv("NEXT_AVAILABLE_HORIZON_DAYS", "14"))
    NEXT_AVAILABLE_DEFAULT_LIMIT = int(os.getenv("NEXT_AVAILABLE_DEFAULT_LIMIT", "3"))
    MAX_QUERY_RANGE_DAYS = int(os.getenv("MAX_QUERY_RANGE_DAYS", "31"))

    # When true a hold can only become a booking through the payment webhook
    PAYMENTS_REQUIRED = os.getenv("PAYMENTS_REQUIRED", "true").lower() == "true"

    # Stripe (payment confirmation signal only)
    STRIPE_WEBHOOK_SECRET = os.getenv("STRIPE_WEBHOOK_SECRET")

    # Basic app settings
    DEBUG = False
