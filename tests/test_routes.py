"""HTTP contract tests using the Flask test client."""

import hashlib
import hmac
import json
import time

import pytest

from models import db
from models.audit_log import AuditLog
from models.booking import Booking
from models.business import Business
from models.hold import Hold
from tests.conftest import make_bookable_type, make_business, make_package
from utils.seed import seed_businesses

SECRET = "whsec_test_secret"
SESSION = {"X-Session-Id": "sess-123"}


def _hold(client, start="2026-01-21T09:00:00Z", end="2026-01-21T10:00:00Z", headers=None, **extra):
    body = {"resource_id": extra.pop("resource_id"), "start": start, "end": end, **extra}
    return client.post("/holds", json=body, headers=headers or SESSION)


def _signed(payload: dict):
    raw = json.dumps(payload)
    ts = int(time.time())
    sig = hmac.new(SECRET.encode(), f"{ts}.{raw}".encode(), hashlib.sha256).hexdigest()
    return raw, {"Stripe-Signature": f"t={ts},v1={sig}", "Content-Type": "application/json"}


def _checkout_event(event_type: str, hold_id: str) -> dict:
    return {
        "id": "evt_1",
        "type": event_type,
        "data": {"object": {"id": "cs_test_1", "metadata": {"hold_id": hold_id}}},
    }


class TestHealth:
    def test_health(self, client):
        resp = client.get("/health")
        assert resp.status_code == 200
        assert resp.get_json() == {"status": "ok"}
        assert resp.headers["X-Frame-Options"] == "DENY"


class TestAvailabilityEndpoints:
    def test_search(self, client, wednesday_room):
        resp = client.get("/availability?date=2026-01-21&business_type=coworking")
        assert resp.status_code == 200
        slots = resp.get_json()["slots"]
        assert len(slots) == 8
        first = slots[0]
        assert first["start"].startswith("2026-01-21T09:00:00")
        assert first["available"] is True
        assert first["price"] == 10000
        assert {"resource_id", "resource_name", "bookable_type_id", "end"} <= set(first)

    def test_bad_range_is_400(self, client, wednesday_room):
        resp = client.get("/availability?start_date=2026-01-01&end_date=2026-06-01")
        assert resp.status_code == 400
        assert resp.get_json()["code"] == "VALIDATION_ERROR"

    def test_next(self, client, wednesday_room):
        resp = client.get("/availability/next?business_type=coworking&limit=2")
        assert resp.status_code == 200
        assert len(resp.get_json()["slots"]) == 2

    def test_next_bad_limit(self, client, wednesday_room):
        assert client.get("/availability/next?limit=abc").status_code == 400
        assert client.get("/availability/next?limit=0").status_code == 400

    def test_requested_duration(self, client, wednesday_room):
        business, _, _ = wednesday_room
        desk = client.post("/admin/bookable-types", json={
            "business_id": business.id, "name": "Desk", "duration_mins": 60,
            "min_duration_mins": 30, "max_duration_mins": 180,
        })
        assert desk.status_code == 201
        desk_id = desk.get_json()["id"]

        resp = client.get(f"/availability?date=2026-01-21&bookable_type_id={desk_id}&duration_mins=90")
        slots = resp.get_json()["slots"]
        assert [s["start"][11:16] for s in slots] == ["09:00", "10:30", "12:00", "13:30", "15:00"]
        assert resp.get_json()["query"]["duration_mins"] == 90

        too_long = client.get(f"/availability?date=2026-01-21&bookable_type_id={desk_id}&duration_mins=240")
        assert too_long.status_code == 400


class TestHoldEndpoints:
    def test_create_conflict_release_cycle(self, client, wednesday_room):
        _, resource, _ = wednesday_room
        resp = _hold(client, resource_id=resource.id)
        assert resp.status_code == 201
        hold_id = resp.get_json()["hold_id"]
        assert resp.get_json()["expires_at"].startswith("2026-01-20T12:10:00")

        clash = _hold(client, start="2026-01-21T09:30:00Z", end="2026-01-21T10:30:00Z",
                      resource_id=resource.id, headers={"X-User-Id": "42"})
        assert clash.status_code == 409
        assert clash.get_json()["code"] == "SLOT_CONFLICT"

        assert client.post(f"/holds/{hold_id}/release").status_code == 200
        assert client.post(f"/holds/{hold_id}/release").status_code == 200

        again = _hold(client, start="2026-01-21T09:30:00Z", end="2026-01-21T10:30:00Z",
                      resource_id=resource.id, headers={"X-User-Id": "42"})
        assert again.status_code == 201

        actions = [a.action for a in AuditLog.query.order_by(AuditLog.id).all()]
        assert actions == ["HOLD_CREATE", "HOLD_CONFLICT", "HOLD_RELEASE", "HOLD_RELEASE", "HOLD_CREATE"]

    def test_missing_owner_is_400(self, client, wednesday_room):
        _, resource, _ = wednesday_room
        resp = client.post("/holds", json={"resource_id": resource.id,
                                           "start": "2026-01-21T09:00:00Z", "end": "2026-01-21T10:00:00Z"})
        assert resp.status_code == 400

    def test_inverted_interval_is_400(self, client, wednesday_room):
        _, resource, _ = wednesday_room
        resp = _hold(client, start="2026-01-21T10:00:00Z", end="2026-01-21T09:00:00Z", resource_id=resource.id)
        assert resp.status_code == 400

    def test_unknown_resource_is_404(self, client, app):
        assert _hold(client, resource_id=999).status_code == 404

    def test_renew_and_expired_renew(self, client, wednesday_room, clock):
        _, resource, _ = wednesday_room
        hold_id = _hold(client, resource_id=resource.id).get_json()["hold_id"]
        clock.advance(minutes=5)
        resp = client.post(f"/holds/{hold_id}/renew")
        assert resp.status_code == 200
        assert resp.get_json()["expires_at"].startswith("2026-01-20T12:15:00")
        clock.advance(minutes=20)
        assert client.post(f"/holds/{hold_id}/renew").status_code == 404

    def test_confirm_without_payment(self, client, wednesday_room):
        _, resource, bt = wednesday_room
        hold_id = _hold(client, resource_id=resource.id, bookable_type_id=bt.id).get_json()["hold_id"]
        resp = client.post(f"/holds/{hold_id}/confirm")
        assert resp.status_code == 201
        body = resp.get_json()
        assert body["status"] == "confirmed"
        assert body["price"] == 10000
        assert client.get(f"/holds/{hold_id}").get_json()["status"] == "promoted"

    def test_confirm_keeps_quoted_package_price(self, client, wednesday_room):
        _, resource, bt = wednesday_room
        package = make_package(bt, base_price=25000)
        slots = client.get(
            f"/availability?date=2026-01-21&bookable_type_id={bt.id}&package_id={package.id}"
        ).get_json()["slots"]
        quoted = slots[0]

        resp = _hold(client, start=quoted["start"], end=quoted["end"], resource_id=resource.id,
                     bookable_type_id=bt.id, package_id=package.id)
        assert resp.status_code == 201
        assert resp.get_json()["package_id"] == package.id

        confirmed = client.post(f"/holds/{resp.get_json()['hold_id']}/confirm")
        assert confirmed.get_json()["price"] == quoted["price"] == 25000

    def test_hold_outside_opening_hours_is_409(self, client, wednesday_room):
        _, resource, _ = wednesday_room
        resp = _hold(client, start="2026-01-21T03:00:00Z", end="2026-01-21T04:00:00Z", resource_id=resource.id)
        assert resp.status_code == 409
        assert Hold.query.count() == 0

    def test_confirm_expired_is_410(self, client, wednesday_room, clock):
        _, resource, _ = wednesday_room
        hold_id = _hold(client, resource_id=resource.id).get_json()["hold_id"]
        clock.advance(minutes=11)
        resp = client.post(f"/holds/{hold_id}/confirm")
        assert resp.status_code == 410
        assert resp.get_json()["code"] == "HOLD_EXPIRED"
        assert Booking.query.count() == 0

    def test_confirm_requires_payment_when_configured(self, app, client, wednesday_room):
        _, resource, _ = wednesday_room
        app.config["PAYMENTS_REQUIRED"] = True
        hold_id = _hold(client, resource_id=resource.id).get_json()["hold_id"]
        resp = client.post(f"/holds/{hold_id}/confirm")
        assert resp.status_code == 402
        assert resp.get_json()["code"] == "PAYMENT_REQUIRED"


class TestStripeWebhook:
    @pytest.fixture
    def hold_id(self, client, wednesday_room):
        _, resource, bt = wednesday_room
        return _hold(client, resource_id=resource.id, bookable_type_id=bt.id).get_json()["hold_id"]

    def test_bad_signature(self, client, hold_id):
        raw = json.dumps(_checkout_event("checkout.session.completed", hold_id))
        resp = client.post("/webhooks/stripe", data=raw,
                           headers={"Stripe-Signature": "t=1,v1=deadbeef"})
        assert resp.status_code == 400
        assert db.session.get(Hold, hold_id).status == "active"

    def test_completed_promotes_once(self, client, hold_id):
        raw, headers = _signed(_checkout_event("checkout.session.completed", hold_id))
        first = client.post("/webhooks/stripe", data=raw, headers=headers)
        assert first.status_code == 200
        booking_id = first.get_json()["booking_id"]
        assert booking_id is not None

        # redelivery returns the same booking
        second = client.post("/webhooks/stripe", data=raw, headers=headers)
        assert second.get_json()["booking_id"] == booking_id
        assert Booking.query.filter_by(hold_id=hold_id).count() == 1

    def test_completed_after_expiry_records_lost_hold(self, client, hold_id, clock):
        clock.advance(minutes=15)
        raw, headers = _signed(_checkout_event("checkout.session.completed", hold_id))
        resp = client.post("/webhooks/stripe", data=raw, headers=headers)
        assert resp.status_code == 200
        assert resp.get_json()["code"] == "HOLD_EXPIRED"
        assert AuditLog.query.filter_by(action="PAYMENT_PAID_HOLD_LOST").count() == 1

    def test_expired_session_releases_hold(self, client, hold_id):
        raw, headers = _signed(_checkout_event("checkout.session.expired", hold_id))
        assert client.post("/webhooks/stripe", data=raw, headers=headers).status_code == 200
        db.session.expire_all()
        assert db.session.get(Hold, hold_id).status == "released"


class TestAdminEndpoints:
    def test_setup_and_search(self, client, app):
        seed_businesses()
        biz = client.get("/availability?date=2026-01-21&business_type=spa")
        assert biz.get_json()["slots"] == []

        spa_id = Business.query.filter_by(type="spa").first().id

        room = client.post("/admin/resources", json={"business_id": spa_id, "name": "Suite 1"})
        assert room.status_code == 201
        room_id = room.get_json()["id"]

        bt = client.post("/admin/bookable-types", json={
            "business_id": spa_id, "name": "Massage", "duration_mins": 90,
            "base_price": 12000, "resource_ids": [room_id],
        })
        assert bt.status_code == 201

        window = {"day_of_week": 2, "start": "09:00", "end": "12:00"}
        assert client.post(f"/admin/resources/{room_id}/schedule-windows", json=window).status_code == 201
        overlap = {"day_of_week": 2, "start": "11:00", "end": "13:00"}
        assert client.post(f"/admin/resources/{room_id}/schedule-windows", json=overlap).status_code == 400

        rule = client.post("/admin/pricing-rules", json={
            "business_id": spa_id, "name": "Midweek", "modifier_type": "percentage",
            "modifier_value": 10, "days_of_week": [2],
        })
        assert rule.status_code == 201

        slots = client.get("/availability?date=2026-01-21&business_type=spa").get_json()["slots"]
        assert [s["start"][11:16] for s in slots] == ["09:00", "10:30"]
        assert {s["price"] for s in slots} == {13200}

    def test_override_and_blackout(self, client, wednesday_room):
        _, resource, _ = wednesday_room
        resp = client.put(f"/admin/resources/{resource.id}/overrides/2026-01-21",
                          json={"windows": [{"start": "13:00", "end": "15:00"}]})
        assert resp.status_code == 200
        bad = client.put(f"/admin/resources/{resource.id}/overrides/2026-01-21",
                         json={"windows": [{"start": "13:00", "end": "15:00"}, {"start": "14:00", "end": "16:00"}]})
        assert bad.status_code == 400

        blackout = client.post("/admin/blackouts", json={
            "resource_id": resource.id, "start": "2026-01-21T14:00:00Z", "end": "2026-01-21T15:00:00Z",
        })
        assert blackout.status_code == 201
        slots = client.get(f"/availability?date=2026-01-21&resource_id={resource.id}").get_json()["slots"]
        assert [s["start"][11:16] for s in slots] == ["13:00"]

        assert client.delete(f"/admin/resources/{resource.id}/overrides/2026-01-21").status_code == 200
        assert client.delete(f"/admin/blackouts/{blackout.get_json()['id']}").status_code == 200

    def test_booking_status_change_is_audited(self, client, wednesday_room):
        _, resource, _ = wednesday_room
        created = client.post("/admin/bookings", json={
            "resource_id": resource.id, "user_id": "walk-in",
            "start": "2026-01-21T09:00:00Z", "end": "2026-01-21T10:00:00Z",
        }, headers={"X-User-Id": "staff-1"})
        assert created.status_code == 201
        booking_id = created.get_json()["id"]

        assert _hold(client, resource_id=resource.id).status_code == 409

        resp = client.post(f"/admin/bookings/{booking_id}/status",
                           json={"status": "cancelled", "reason": "no longer needed"},
                           headers={"X-User-Id": "staff-1"})
        assert resp.status_code == 200
        assert resp.get_json()["status"] == "cancelled"
        assert _hold(client, resource_id=resource.id).status_code == 201

        logs = client.get("/admin/audit-logs?action=BOOKING_STATUS_CHANGE").get_json()
        assert len(logs) == 1
        assert logs[0]["actor_id"] == "staff-1"
        assert logs[0]["metadata"] == {"from": "confirmed", "to": "cancelled", "reason": "no longer needed"}

    def test_unknown_status_is_400(self, client, wednesday_room):
        _, resource, _ = wednesday_room
        created = client.post("/admin/bookings", json={
            "resource_id": resource.id, "user_id": "walk-in",
            "start": "2026-01-21T11:00:00Z", "end": "2026-01-21T12:00:00Z",
        })
        resp = client.post(f"/admin/bookings/{created.get_json()['id']}/status", json={"status": "archived"})
        assert resp.status_code == 400

    def test_pricing_rule_targets_must_belong_to_business(self, client, wednesday_room):
        business, _, bt = wednesday_room
        package = make_package(bt)
        spa = make_business("spa")
        massage = make_bookable_type(spa, name="Massage")
        rule = {"name": "Peak", "modifier_type": "percentage", "modifier_value": 10}

        foreign_type = client.post("/admin/pricing-rules",
                                   json={**rule, "business_id": business.id, "bookable_type_id": massage.id})
        assert foreign_type.status_code == 400
        foreign_package = client.post("/admin/pricing-rules",
                                      json={**rule, "business_id": spa.id, "package_id": package.id})
        assert foreign_package.status_code == 400
        mismatched = client.post("/admin/pricing-rules", json={
            **rule, "business_id": business.id, "bookable_type_id": bt.id, "package_id": 9999,
        })
        assert mismatched.status_code == 404
        missing_type = client.post("/admin/pricing-rules",
                                   json={**rule, "business_id": business.id, "bookable_type_id": 9999})
        assert missing_type.status_code == 404

        ok = client.post("/admin/pricing-rules", json={
            **rule, "business_id": business.id, "bookable_type_id": bt.id, "package_id": package.id,
        })
        assert ok.status_code == 201

    def test_bookable_type_duration_bounds_validated(self, client, wednesday_room):
        business, _, _ = wednesday_room
        resp = client.post("/admin/bookable-types", json={
            "business_id": business.id, "name": "Odd", "duration_mins": 60,
            "min_duration_mins": 90, "max_duration_mins": 120,
        })
        assert resp.status_code == 400

    def test_expire_holds_endpoint(self, client, wednesday_room, clock):
        _, resource, _ = wednesday_room
        _hold(client, resource_id=resource.id)
        clock.advance(minutes=10)
        resp = client.post("/admin/holds/expire")
        assert resp.get_json() == {"expired": 1}


class TestCli:
    def test_seed_and_expire_commands(self, app):
        runner = app.test_cli_runner()
        result = runner.invoke(args=["seed-businesses"])
        assert "Created 6 business(es)" in result.output
        result = runner.invoke(args=["seed-businesses"])
        assert "Created 0 business(es)" in result.output
        result = runner.invoke(args=["expire-holds"])
        assert "Expired 0 hold(s)" in result.output
