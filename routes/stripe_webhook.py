import json
import stripe
from flask import Blueprint, request, jsonify, current_app

from models import db
from models.hold import Hold
from models.booking import Booking
from services.errors import ConflictError, ExpiredError, NotFoundError
from services.holds import HoldManager
from services.pricing import PricingOverlay
from services.settings import current_clock, current_settings
from utils.audit import log_event

webhook_bp = Blueprint("webhook", __name__, url_prefix="/webhooks")


@webhook_bp.post("/stripe")
def stripe_webhook():
    endpoint_secret = current_app.config.get("STRIPE_WEBHOOK_SECRET")
    sig_header = request.headers.get("Stripe-Signature")
    payload = request.data

    if not endpoint_secret:
        return jsonify(error="Webhook secret not configured"), 500

    try:
        stripe.WebhookSignature.verify_header(payload.decode("utf-8"), sig_header, endpoint_secret)
        event = json.loads(payload)
    except (ValueError, stripe.SignatureVerificationError):
        return jsonify(error="Invalid webhook signature"), 400

    event_type = event.get("type")
    if event_type not in ("checkout.session.completed", "checkout.session.expired"):
        return jsonify(received=True), 200

    session = event["data"]["object"]
    session_id = session.get("id")
    meta = session.get("metadata", {}) or {}
    hold_id = meta.get("hold_id")
    if not hold_id:
        log_event("PAYMENT_WITHOUT_HOLD", entity="stripe_session", entity_id=session_id)
        return jsonify(received=True), 200

    settings = current_settings()
    manager = HoldManager(settings, current_clock(), pricing=PricingOverlay(settings))

    if event_type == "checkout.session.completed":
        hold = db.session.get(Hold, hold_id)
        if hold and hold.status == "promoted":
            # Stripe retries deliveries; the first one already promoted
            existing = Booking.query.filter_by(hold_id=hold_id).first()
            return jsonify(received=True, booking_id=existing.id if existing else None), 200
        try:
            booking = manager.promote_hold(hold_id)
        except (ExpiredError, ConflictError, NotFoundError) as exc:
            # paid but the slot could not be kept: refund handling is downstream
            log_event("PAYMENT_PAID_HOLD_LOST", entity="hold", entity_id=hold_id,
                      metadata={"stripe_session_id": session_id, "reason": exc.code})
            return jsonify(received=True, error=exc.message, code=exc.code), 200

        log_event("PAYMENT_PAID", entity="booking", entity_id=booking.id,
                  metadata={"stripe_session_id": session_id, "hold_id": hold_id})
        return jsonify(received=True, booking_id=booking.id), 200

    try:
        hold = manager.release_hold(hold_id)
    except NotFoundError:
        return jsonify(received=True), 200
    log_event("PAYMENT_EXPIRED", entity="hold", entity_id=hold_id,
              metadata={"stripe_session_id": session_id, "status": hold.status})
    return jsonify(received=True), 200
