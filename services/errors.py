"""Closed set of failures raised by the availability & reservation engine.

Every public engine operation fails with exactly one of these. Routes turn
them into ``{"error": ..., "code": ...}`` responses with ``http_status``.
"""


class EngineError(Exception):
    """Base class; never raised directly."""

    code = "ENGINE_ERROR"
    http_status = 500

    def __init__(self, message: str, **details):
        self.message = message
        self.details = details
        super().__init__(message)

    def to_dict(self) -> dict:
        body = {"error": self.message, "code": self.code}
        if self.details:
            body["details"] = self.details
        return body


class ValidationError(EngineError):
    """Malformed interval or input; the caller can correct and retry."""

    code = "VALIDATION_ERROR"
    http_status = 400


class ConflictError(EngineError):
    """The slot is no longer free at acquisition time."""

    code = "SLOT_CONFLICT"
    http_status = 409


class ExpiredError(EngineError):
    """The hold lapsed before promotion; the flow restarts from search."""

    code = "HOLD_EXPIRED"
    http_status = 410


class NotFoundError(EngineError):
    """Unknown resource/hold id, or a hold that can no longer be acted on."""

    code = "NOT_FOUND"
    http_status = 404


class StoreError(EngineError):
    """Transient backing-store failure."""

    code = "STORE_UNAVAILABLE"
    http_status = 503


ENGINE_ERRORS = (ValidationError, ConflictError, ExpiredError, NotFoundError, StoreError)
