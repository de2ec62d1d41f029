"""Translate SQLAlchemy failures into the engine's error set."""

import logging
import time
from contextlib import contextmanager

from sqlalchemy.exc import DBAPIError, OperationalError

from models import db
from services.errors import StoreError

logger = logging.getLogger(__name__)


def with_read_retries(fn, settings, *args, **kwargs):
    """Run a read-only callable, retrying transient store failures.

    Retries ``settings.read_retries`` times with linear backoff, then raises
    ``StoreError``. Only for read paths: an ambiguous retry of a write could
    double-book.
    """
    attempt = 0
    while True:
        try:
            return fn(*args, **kwargs)
        except (OperationalError, DBAPIError) as exc:
            db.session.rollback()
            if attempt >= settings.read_retries:
                logger.error("Store read failed after %d attempts: %s", attempt + 1, exc)
                raise StoreError("Booking store temporarily unavailable") from exc
            attempt += 1
            logger.warning("Store read failed (attempt %d), retrying: %s", attempt, exc)
            time.sleep(settings.retry_backoff_seconds * attempt)


@contextmanager
def write_guard():
    """Surface store failures on atomic write paths immediately, without retry."""
    try:
        yield
    except OperationalError as exc:
        db.session.rollback()
        logger.error("Store write failed: %s", exc)
        raise StoreError("Booking store temporarily unavailable") from exc
