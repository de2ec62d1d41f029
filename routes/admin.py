from decimal import Decimal, InvalidOperation

from flask import Blueprint, jsonify, request
from sqlalchemy.exc import IntegrityError

from models import db
from models.blackout import BlackoutInterval
from models.bookable_type import BookableType, Package
from models.booking import Booking
from models.business import Business
from models.pricing_rule import MODIFIER_TYPES, PricingRule
from models.resource import RESOURCE_TYPES, Resource
from models.schedule import AvailabilityOverride, ScheduleWindow
from services.bookings import BookingService
from services.errors import ConflictError, NotFoundError, ValidationError
from services.holds import HoldManager
from services.settings import current_clock, current_settings
from services.time_windows import (
    LocalWindow,
    WindowList,
    day_bounds,
    from_storage,
    parse_date,
    parse_time_of_day,
    to_storage,
)
from utils.audit import log_event
from utils.parsing import actor_id, interval_from, json_body, optional_int, owner_from, require_int

admin_bp = Blueprint("admin", __name__, url_prefix="/admin")


def _required_str(data: dict, key: str, max_len: int = 120) -> str:
    value = (data.get(key) or "").strip()
    if not value:
        raise ValidationError(f"{key} is required")
    if len(value) > max_len:
        raise ValidationError(f"{key} is too long")
    return value


def _business_or_404(business_id: int) -> Business:
    business = db.session.get(Business, business_id)
    if not business:
        raise NotFoundError("Business not found", business_id=business_id)
    return business


def _resource_or_404(resource_id: int) -> Resource:
    resource = db.session.get(Resource, resource_id)
    if not resource:
        raise NotFoundError("Resource not found", resource_id=resource_id)
    return resource


def _commit_or_conflict(message: str):
    try:
        db.session.commit()
    except IntegrityError:
        db.session.rollback()
        raise ConflictError(message) from None


def _booking_json(b: Booking) -> dict:
    return {
        "id": b.id,
        "resource_id": b.resource_id,
        "bookable_type_id": b.bookable_type_id,
        "package_id": b.package_id,
        "hold_id": b.hold_id,
        "start": from_storage(b.start_at).isoformat(),
        "end": from_storage(b.end_at).isoformat(),
        "status": b.status,
        "price": b.price,
        "owner_user_id": b.owner_user_id,
        "owner_session_id": b.owner_session_id,
        "cancel_reason": b.cancel_reason,
    }


# ---------- resources ----------
@admin_bp.post("/resources")
def create_resource():
    data = json_body()
    business = _business_or_404(require_int(data, "business_id"))
    name = _required_str(data, "name")
    slug = (data.get("slug") or name).strip().lower().replace(" ", "-")
    resource_type = (data.get("type") or "room").strip().lower()
    if resource_type not in RESOURCE_TYPES:
        raise ValidationError("Unknown resource type", type=resource_type)
    capacity = optional_int(data, "capacity") or 1
    if capacity < 1:
        raise ValidationError("capacity must be >= 1")

    resource = Resource(business_id=business.id, name=name, slug=slug, type=resource_type, capacity=capacity)
    db.session.add(resource)
    _commit_or_conflict("A resource with this slug already exists")

    log_event("ADMIN_RESOURCE_CREATE", actor_id=actor_id(), entity="resource", entity_id=resource.id,
              metadata={"business_id": business.id, "slug": slug})
    return jsonify(id=resource.id, slug=resource.slug), 201


@admin_bp.post("/resources/<int:resource_id>/deactivate")
def deactivate_resource(resource_id: int):
    resource = _resource_or_404(resource_id)
    resource.is_active = False
    db.session.commit()
    log_event("ADMIN_RESOURCE_DEACTIVATE", actor_id=actor_id(), entity="resource", entity_id=resource.id)
    return jsonify(message="Resource deactivated"), 200


# ---------- bookable types & packages ----------
@admin_bp.post("/bookable-types")
def create_bookable_type():
    data = json_body()
    business = _business_or_404(require_int(data, "business_id"))
    name = _required_str(data, "name")
    slug = (data.get("slug") or name).strip().lower().replace(" ", "-")
    duration = require_int(data, "duration_mins")
    buffer_after = optional_int(data, "buffer_after_mins") or 0
    base_price = optional_int(data, "base_price") or 0
    if duration <= 0:
        raise ValidationError("duration_mins must be > 0")
    if buffer_after < 0 or base_price < 0:
        raise ValidationError("buffer_after_mins and base_price must be >= 0")
    min_duration = optional_int(data, "min_duration_mins")
    max_duration = optional_int(data, "max_duration_mins")
    if (min_duration or duration) > duration or (max_duration or duration) < duration:
        raise ValidationError("duration_mins must lie within min_duration_mins and max_duration_mins")
    if (min_duration is not None and min_duration <= 0) or (max_duration is not None and max_duration <= 0):
        raise ValidationError("min_duration_mins and max_duration_mins must be > 0")

    resource_ids = data.get("resource_ids") or []
    if not isinstance(resource_ids, list):
        raise ValidationError("resource_ids must be a list")
    resources = []
    for rid in resource_ids:
        resource = _resource_or_404(require_int({"resource_id": rid}, "resource_id"))
        if resource.business_id != business.id:
            raise ValidationError("Resource belongs to another business", resource_id=resource.id)
        resources.append(resource)

    bt = BookableType(
        business_id=business.id,
        name=name,
        slug=slug,
        duration_mins=duration,
        min_duration_mins=min_duration,
        max_duration_mins=max_duration,
        buffer_after_mins=buffer_after,
        base_price=base_price,
        resources=resources,
    )
    db.session.add(bt)
    _commit_or_conflict("A bookable type with this slug already exists")

    log_event("ADMIN_BOOKABLE_TYPE_CREATE", actor_id=actor_id(), entity="bookable_type", entity_id=bt.id,
              metadata={"business_id": business.id, "resource_ids": [r.id for r in resources]})
    return jsonify(id=bt.id, slug=bt.slug), 201


@admin_bp.post("/packages")
def create_package():
    data = json_body()
    bookable_type_id = require_int(data, "bookable_type_id")
    bt = db.session.get(BookableType, bookable_type_id)
    if not bt:
        raise NotFoundError("Bookable type not found", bookable_type_id=bookable_type_id)
    base_price = require_int(data, "base_price")
    if base_price < 0:
        raise ValidationError("base_price must be >= 0")

    package = Package(bookable_type_id=bt.id, name=_required_str(data, "name"), base_price=base_price)
    db.session.add(package)
    db.session.commit()

    log_event("ADMIN_PACKAGE_CREATE", actor_id=actor_id(), entity="package", entity_id=package.id,
              metadata={"bookable_type_id": bt.id, "base_price": base_price})
    return jsonify(id=package.id), 201


# ---------- schedules ----------
@admin_bp.post("/resources/<int:resource_id>/schedule-windows")
def create_schedule_window(resource_id: int):
    resource = _resource_or_404(resource_id)
    data = json_body()
    day_of_week = require_int(data, "day_of_week")
    if day_of_week < 0 or day_of_week > 6:
        raise ValidationError("day_of_week must be 0 (Monday) to 6 (Sunday)")
    window = LocalWindow(parse_time_of_day(data.get("start")), parse_time_of_day(data.get("end")))

    clash = (
        ScheduleWindow.query
        .filter_by(resource_id=resource.id, day_of_week=day_of_week, is_active=True)
        .filter(ScheduleWindow.start_time < window.end, ScheduleWindow.end_time > window.start)
        .first()
    )
    if clash:
        raise ValidationError("Schedule windows must not overlap", existing_id=clash.id)

    row = ScheduleWindow(
        resource_id=resource.id,
        day_of_week=day_of_week,
        start_time=window.start,
        end_time=window.end,
    )
    db.session.add(row)
    db.session.commit()

    log_event("ADMIN_SCHEDULE_CREATE", actor_id=actor_id(), entity="resource", entity_id=resource.id,
              metadata={"day_of_week": day_of_week, **window.to_dict()})
    return jsonify(id=row.id), 201


@admin_bp.delete("/schedule-windows/<int:window_id>")
def delete_schedule_window(window_id: int):
    row = db.session.get(ScheduleWindow, window_id)
    if not row:
        raise NotFoundError("Schedule window not found", window_id=window_id)
    resource_id = row.resource_id
    db.session.delete(row)
    db.session.commit()
    log_event("ADMIN_SCHEDULE_DELETE", actor_id=actor_id(), entity="resource", entity_id=resource_id,
              metadata={"window_id": window_id})
    return jsonify(message="Deleted"), 200


@admin_bp.put("/resources/<int:resource_id>/overrides/<day>")
def put_override(resource_id: int, day: str):
    resource = _resource_or_404(resource_id)
    override_date = parse_date(day)
    data = json_body()
    is_unavailable = bool(data.get("is_unavailable"))
    windows = WindowList.parse(data.get("windows"))
    if not is_unavailable and not windows:
        raise ValidationError("Provide windows or set is_unavailable")

    row = AvailabilityOverride.query.filter_by(resource_id=resource.id, override_date=override_date).first()
    if not row:
        row = AvailabilityOverride(resource_id=resource.id, override_date=override_date)
        db.session.add(row)
    row.is_unavailable = is_unavailable
    row.windows_json = None if is_unavailable else windows.to_json()
    row.notes = (data.get("notes") or "").strip()[:255] or None
    db.session.commit()

    log_event("ADMIN_OVERRIDE_SET", actor_id=actor_id(), entity="resource", entity_id=resource.id,
              metadata={"date": override_date.isoformat(), "is_unavailable": is_unavailable,
                        "windows": [w.to_dict() for w in windows]})
    return jsonify(id=row.id), 200


@admin_bp.delete("/resources/<int:resource_id>/overrides/<day>")
def delete_override(resource_id: int, day: str):
    override_date = parse_date(day)
    row = AvailabilityOverride.query.filter_by(resource_id=resource_id, override_date=override_date).first()
    if not row:
        raise NotFoundError("Override not found", resource_id=resource_id, date=override_date.isoformat())
    db.session.delete(row)
    db.session.commit()
    log_event("ADMIN_OVERRIDE_DELETE", actor_id=actor_id(), entity="resource", entity_id=resource_id,
              metadata={"date": override_date.isoformat()})
    return jsonify(message="Deleted"), 200


# ---------- blackouts ----------
@admin_bp.post("/blackouts")
def create_blackout():
    data = json_body()
    business_id = optional_int(data, "business_id")
    resource_id = optional_int(data, "resource_id")
    if (business_id is None) == (resource_id is None):
        raise ValidationError("Provide exactly one of business_id or resource_id")
    if business_id is not None:
        _business_or_404(business_id)
    else:
        _resource_or_404(resource_id)
    interval = interval_from(data)

    row = BlackoutInterval(
        business_id=business_id,
        resource_id=resource_id,
        start_at=to_storage(interval.start),
        end_at=to_storage(interval.end),
        reason=(data.get("reason") or "").strip()[:255] or None,
        created_by=actor_id(),
    )
    db.session.add(row)
    db.session.commit()

    log_event("ADMIN_BLACKOUT_CREATE", actor_id=actor_id(), entity="blackout", entity_id=row.id,
              metadata={"business_id": business_id, "resource_id": resource_id,
                        "start": interval.start.isoformat(), "end": interval.end.isoformat()})
    return jsonify(id=row.id), 201


@admin_bp.delete("/blackouts/<int:blackout_id>")
def delete_blackout(blackout_id: int):
    row = db.session.get(BlackoutInterval, blackout_id)
    if not row:
        raise NotFoundError("Blackout not found", blackout_id=blackout_id)
    db.session.delete(row)
    db.session.commit()
    log_event("ADMIN_BLACKOUT_DELETE", actor_id=actor_id(), entity="blackout", entity_id=blackout_id)
    return jsonify(message="Deleted"), 200


# ---------- pricing ----------
@admin_bp.post("/pricing-rules")
def create_pricing_rule():
    data = json_body()
    business = _business_or_404(require_int(data, "business_id"))
    modifier_type = (data.get("modifier_type") or "").strip().lower()
    if modifier_type not in MODIFIER_TYPES:
        raise ValidationError("modifier_type must be percentage or fixed_amount")
    try:
        modifier_value = Decimal(str(data.get("modifier_value")))
    except InvalidOperation:
        raise ValidationError("modifier_value must be a number") from None
    if not modifier_value.is_finite():
        raise ValidationError("modifier_value must be a number")

    days = data.get("days_of_week")
    if isinstance(days, list):
        days = ",".join(str(d) for d in days)
    if days:
        try:
            parsed_days = sorted({int(d) for d in str(days).split(",") if d.strip()})
        except ValueError:
            raise ValidationError("days_of_week must be integers 0-6") from None
        if any(d < 0 or d > 6 for d in parsed_days):
            raise ValidationError("days_of_week must be integers 0-6")
        days = ",".join(str(d) for d in parsed_days)

    valid_from = parse_date(data.get("valid_from"), "valid_from") if data.get("valid_from") else None
    valid_until = parse_date(data.get("valid_until"), "valid_until") if data.get("valid_until") else None
    if valid_from and valid_until and valid_until < valid_from:
        raise ValidationError("valid_until must not be before valid_from")
    start_time = parse_time_of_day(data.get("start_time")) if data.get("start_time") else None
    end_time = parse_time_of_day(data.get("end_time")) if data.get("end_time") else None

    bookable_type_id = optional_int(data, "bookable_type_id")
    package_id = optional_int(data, "package_id")
    if bookable_type_id is not None:
        bt = db.session.get(BookableType, bookable_type_id)
        if not bt:
            raise NotFoundError("Bookable type not found", bookable_type_id=bookable_type_id)
        if bt.business_id != business.id:
            raise ValidationError("Bookable type belongs to another business", bookable_type_id=bt.id)
    if package_id is not None:
        package = db.session.get(Package, package_id)
        if not package:
            raise NotFoundError("Package not found", package_id=package_id)
        owner_bt = db.session.get(BookableType, package.bookable_type_id)
        if owner_bt.business_id != business.id:
            raise ValidationError("Package belongs to another business", package_id=package.id)
        if bookable_type_id is not None and package.bookable_type_id != bookable_type_id:
            raise ValidationError("Package belongs to another bookable type", package_id=package.id)

    rule = PricingRule(
        business_id=business.id,
        bookable_type_id=bookable_type_id,
        package_id=package_id,
        name=_required_str(data, "name"),
        modifier_type=modifier_type,
        modifier_value=modifier_value,
        priority=optional_int(data, "priority") or 0,
        valid_from=valid_from,
        valid_until=valid_until,
        days_of_week=days or None,
        start_time=start_time,
        end_time=end_time,
    )
    db.session.add(rule)
    db.session.commit()

    log_event("ADMIN_PRICING_RULE_CREATE", actor_id=actor_id(), entity="pricing_rule", entity_id=rule.id,
              metadata={"business_id": business.id, "modifier_type": modifier_type,
                        "modifier_value": str(modifier_value), "priority": rule.priority})
    return jsonify(id=rule.id), 201


@admin_bp.post("/pricing-rules/<int:rule_id>/deactivate")
def deactivate_pricing_rule(rule_id: int):
    rule = db.session.get(PricingRule, rule_id)
    if not rule:
        raise NotFoundError("Pricing rule not found", rule_id=rule_id)
    rule.is_active = False
    db.session.commit()
    log_event("ADMIN_PRICING_RULE_DEACTIVATE", actor_id=actor_id(), entity="pricing_rule", entity_id=rule.id)
    return jsonify(message="Pricing rule deactivated"), 200


# ---------- bookings ----------
@admin_bp.get("/bookings")
def list_bookings():
    settings = current_settings()
    q = Booking.query
    resource_id = request.args.get("resource_id", type=int)
    if resource_id is not None:
        q = q.filter(Booking.resource_id == resource_id)
    status = request.args.get("status")
    if status:
        q = q.filter(Booking.status == settings.partition.validate(status))
    if request.args.get("date"):
        bounds = day_bounds(parse_date(request.args.get("date")), settings.timezone)
        q = q.filter(Booking.start_at < to_storage(bounds.end), Booking.end_at > to_storage(bounds.start))

    rows = q.order_by(Booking.start_at.asc(), Booking.id.asc()).limit(500).all()
    return jsonify(bookings=[_booking_json(b) for b in rows]), 200


@admin_bp.post("/bookings")
def create_booking():
    data = json_body()
    service = BookingService(current_settings(), current_clock())
    booking = service.create_booking(
        require_int(data, "resource_id"),
        interval_from(data),
        owner_from(data),
        status=(data.get("status") or "confirmed").strip().lower(),
        bookable_type_id=optional_int(data, "bookable_type_id"),
        price=optional_int(data, "price"),
    )
    log_event("ADMIN_BOOKING_CREATE", actor_id=actor_id(), entity="booking", entity_id=booking.id,
              metadata={"resource_id": booking.resource_id, "status": booking.status})
    return jsonify(_booking_json(booking)), 201


@admin_bp.post("/bookings/<int:booking_id>/status")
def change_booking_status(booking_id: int):
    data = json_body()
    status = (data.get("status") or "").strip().lower()
    if not status:
        raise ValidationError("status is required")
    reason = (data.get("reason") or "").strip()[:120] or None

    service = BookingService(current_settings(), current_clock())
    previous = db.session.get(Booking, booking_id)
    previous_status = previous.status if previous else None
    booking = service.change_status(booking_id, status, reason=reason)

    log_event("BOOKING_STATUS_CHANGE", actor_id=actor_id(), entity="booking", entity_id=booking.id,
              metadata={"from": previous_status, "to": booking.status, "reason": reason})
    return jsonify(_booking_json(booking)), 200


# ---------- housekeeping ----------
@admin_bp.post("/holds/expire")
def expire_holds():
    manager = HoldManager(current_settings(), current_clock())
    count = manager.expire_stale_holds()
    log_event("ADMIN_HOLDS_EXPIRE", actor_id=actor_id(), metadata={"expired": count})
    return jsonify(expired=count), 200
