from flask import Blueprint, jsonify, request

from services.availability import AvailabilityFilters, AvailabilityService
from services.errors import ValidationError
from services.settings import current_clock, current_settings

availability_bp = Blueprint("availability", __name__, url_prefix="/availability")


# ---------- PUBLIC: search free slots ----------
@availability_bp.get("")
def search_availability():
    # filters: business_id|business_type, bookable_type_id, package_id, resource_id,
    # date (YYYY-MM-DD) or start_date/end_date, party_size, duration_mins
    settings = current_settings()
    filters = AvailabilityFilters.parse(request.args, settings)
    slots = AvailabilityService(settings, current_clock()).query(filters)
    return jsonify(
        slots=[s.to_dict() for s in slots],
        query={
            "start_date": filters.start_date.isoformat(),
            "end_date": filters.end_date.isoformat(),
            "business_type": filters.business_type,
            "bookable_type_id": filters.bookable_type_id,
            "resource_id": filters.resource_id,
            "duration_mins": filters.duration_mins,
        },
    ), 200


# ---------- PUBLIC: next available preview ----------
@availability_bp.get("/next")
def next_available():
    settings = current_settings()
    business_type = request.args.get("business_type") or None
    raw_limit = request.args.get("limit")
    try:
        limit = int(raw_limit) if raw_limit else None
    except ValueError:
        raise ValidationError("limit must be an integer", value=raw_limit) from None

    slots = AvailabilityService(settings, current_clock()).next_available(business_type, limit)
    return jsonify(slots=[s.to_dict() for s in slots]), 200
