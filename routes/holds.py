from flask import Blueprint, jsonify

from services.errors import ConflictError
from services.holds import HoldManager
from services.pricing import PricingOverlay
from services.settings import current_clock, current_settings
from services.time_windows import from_storage
from utils.audit import log_event
from utils.parsing import interval_from, json_body, optional_int, owner_from, require_int

holds_bp = Blueprint("holds", __name__, url_prefix="/holds")


def _manager(settings=None):
    settings = settings or current_settings()
    return HoldManager(settings, current_clock(), pricing=PricingOverlay(settings))


def _hold_json(hold):
    return {
        "hold_id": hold.id,
        "resource_id": hold.resource_id,
        "bookable_type_id": hold.bookable_type_id,
        "package_id": hold.package_id,
        "start": from_storage(hold.start_at).isoformat(),
        "end": from_storage(hold.end_at).isoformat(),
        "status": hold.status,
        "expires_at": from_storage(hold.expires_at).isoformat(),
    }


# ---------- PUBLIC: acquire a hold (DOUBLE-BOOKING SAFE) ----------
@holds_bp.post("")
def create_hold():
    data = json_body()
    resource_id = require_int(data, "resource_id")
    bookable_type_id = optional_int(data, "bookable_type_id")
    package_id = optional_int(data, "package_id")
    interval = interval_from(data)
    owner = owner_from(data)

    try:
        hold = _manager().create_hold(resource_id, interval, owner,
                                      bookable_type_id=bookable_type_id, package_id=package_id)
    except ConflictError:
        log_event("HOLD_CONFLICT", actor_id=owner.key, entity="resource", entity_id=resource_id,
                  metadata={"start": interval.start.isoformat(), "end": interval.end.isoformat()})
        raise

    log_event("HOLD_CREATE", actor_id=owner.key, entity="hold", entity_id=hold.id,
              metadata={"resource_id": resource_id})
    return jsonify(_hold_json(hold)), 201


@holds_bp.get("/<hold_id>")
def get_hold(hold_id: str):
    return jsonify(_hold_json(_manager().get_hold(hold_id))), 200


@holds_bp.post("/<hold_id>/renew")
def renew_hold(hold_id: str):
    hold = _manager().renew_hold(hold_id)
    log_event("HOLD_RENEW", entity="hold", entity_id=hold.id)
    return jsonify(hold_id=hold.id, expires_at=from_storage(hold.expires_at).isoformat()), 200


@holds_bp.post("/<hold_id>/release")
def release_hold(hold_id: str):
    hold = _manager().release_hold(hold_id)
    log_event("HOLD_RELEASE", entity="hold", entity_id=hold.id, metadata={"status": hold.status})
    return jsonify(message="Released", status=hold.status), 200


# ---------- PUBLIC: confirm a free (no payment) hold ----------
@holds_bp.post("/<hold_id>/confirm")
def confirm_hold(hold_id: str):
    settings = current_settings()
    if settings.payments_required:
        return jsonify(error="Payment required to confirm this hold", code="PAYMENT_REQUIRED"), 402

    booking = _manager(settings).promote_hold(hold_id)
    log_event("HOLD_PROMOTE", entity="booking", entity_id=booking.id, metadata={"hold_id": hold_id})
    return jsonify(booking_id=booking.id, status=booking.status, price=booking.price), 201
