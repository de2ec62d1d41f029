"""Per-request engine configuration.

Routes build one ``EngineSettings`` from ``current_app.config`` and hand it
to every engine component, so nothing reads global config mid-flow.
"""

from dataclasses import dataclass, field
from datetime import timedelta
from typing import Optional
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from services.clock import SystemClock
from services.statuses import DEFAULT_PARTITION, StatusPartition


@dataclass(frozen=True)
class EngineSettings:
    timezone: ZoneInfo = field(default_factory=lambda: ZoneInfo("UTC"))
    hold_duration: timedelta = timedelta(minutes=10)
    slot_step: Optional[timedelta] = None
    claim_bucket: timedelta = timedelta(minutes=5)
    partition: StatusPartition = DEFAULT_PARTITION
    read_retries: int = 3
    retry_backoff_seconds: float = 0.05
    next_available_horizon_days: int = 14
    next_available_default_limit: int = 3
    max_query_range_days: int = 31
    payments_required: bool = True

    def __post_init__(self):
        if self.hold_duration <= timedelta(0):
            raise ValueError("HOLD_DURATION_MINUTES must be > 0")
        if self.slot_step is not None and self.slot_step <= timedelta(0):
            raise ValueError("SLOT_STEP_MINUTES must be > 0")
        if self.claim_bucket <= timedelta(0) or timedelta(days=1) % self.claim_bucket:
            raise ValueError("CLAIM_BUCKET_MINUTES must be > 0 and divide a day evenly")
        if self.read_retries < 0:
            raise ValueError("STORE_READ_RETRIES must be >= 0")
        if self.max_query_range_days < 1 or self.next_available_horizon_days < 1:
            raise ValueError("Query range limits must be >= 1 day")

    @classmethod
    def from_config(cls, config) -> "EngineSettings":
        tz_name = config.get("BUSINESS_TIMEZONE", "UTC")
        try:
            tz = ZoneInfo(tz_name)
        except ZoneInfoNotFoundError:
            raise ValueError(f"Unknown BUSINESS_TIMEZONE: {tz_name!r}") from None

        step = config.get("SLOT_STEP_MINUTES")
        return cls(
            timezone=tz,
            hold_duration=timedelta(minutes=int(config.get("HOLD_DURATION_MINUTES", 10))),
            slot_step=timedelta(minutes=int(step)) if step else None,
            claim_bucket=timedelta(minutes=int(config.get("CLAIM_BUCKET_MINUTES", 5))),
            partition=StatusPartition.from_lists(
                config.get("BLOCKING_BOOKING_STATUSES", sorted(DEFAULT_PARTITION.blocking)),
                config.get("NON_BLOCKING_BOOKING_STATUSES", sorted(DEFAULT_PARTITION.non_blocking)),
            ),
            read_retries=int(config.get("STORE_READ_RETRIES", 3)),
            retry_backoff_seconds=float(config.get("STORE_RETRY_BACKOFF_SECONDS", 0.05)),
            next_available_horizon_days=int(config.get("NEXT_AVAILABLE_HORIZON_DAYS", 14)),
            next_available_default_limit=int(config.get("NEXT_AVAILABLE_DEFAULT_LIMIT", 3)),
            max_query_range_days=int(config.get("MAX_QUERY_RANGE_DAYS", 31)),
            payments_required=bool(config.get("PAYMENTS_REQUIRED", True)),
        )


def current_settings() -> EngineSettings:
    from flask import current_app
    return EngineSettings.from_config(current_app.config)


def current_clock():
    from flask import current_app
    return current_app.extensions.get("engine_clock") or SystemClock()
