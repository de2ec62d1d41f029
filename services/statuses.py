"""Booking status vocabulary and its blocking / non-blocking partition.

The partition is configuration: conflict detection only ever asks a
``StatusPartition`` whether a status blocks, it never lists statuses itself.
"""

from dataclasses import dataclass

from services.errors import ValidationError

BOOKING_STATUSES = (
    "pending",
    "pending_payment",
    "pending_documents",
    "approved",
    "confirmed",
    "in_progress",
    "reschedule_requested",
    "rescheduled",
    "cancelled",
    "denied",
    "no_show",
    "completed",
)


@dataclass(frozen=True)
class StatusPartition:
    blocking: frozenset
    non_blocking: frozenset

    def __post_init__(self):
        overlap = self.blocking & self.non_blocking
        if overlap:
            raise ValueError(f"Statuses cannot be both blocking and non-blocking: {sorted(overlap)}")
        unknown = (self.blocking | self.non_blocking) - set(BOOKING_STATUSES)
        if unknown:
            raise ValueError(f"Unknown booking statuses in partition: {sorted(unknown)}")
        missing = set(BOOKING_STATUSES) - (self.blocking | self.non_blocking)
        if missing:
            raise ValueError(f"Booking statuses missing from partition: {sorted(missing)}")

    @classmethod
    def from_lists(cls, blocking, non_blocking) -> "StatusPartition":
        return cls(frozenset(blocking), frozenset(non_blocking))

    def is_blocking(self, status: str) -> bool:
        return self.validate(status) in self.blocking

    def validate(self, status: str) -> str:
        if status not in self.blocking and status not in self.non_blocking:
            raise ValidationError("Unknown booking status", status=status)
        return status


DEFAULT_PARTITION = StatusPartition.from_lists(
    blocking=(
        "pending",
        "pending_payment",
        "pending_documents",
        "approved",
        "confirmed",
        "in_progress",
        "reschedule_requested",
        "rescheduled",
    ),
    non_blocking=("cancelled", "denied", "no_show", "completed"),
)
