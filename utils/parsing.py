from flask import request

from services.errors import ValidationError
from services.holds import Owner
from services.time_windows import Interval, parse_datetime


def json_body() -> dict:
    data = request.get_json(silent=True)
    if data is None:
        return {}
    if not isinstance(data, dict):
        raise ValidationError("JSON body must be an object")
    return data


def require_int(data: dict, key: str) -> int:
    raw = data.get(key)
    if raw is None or raw == "":
        raise ValidationError(f"{key} is required")
    try:
        return int(raw)
    except (TypeError, ValueError):
        raise ValidationError(f"{key} must be an integer", value=raw) from None


def optional_int(data: dict, key: str):
    if data.get(key) in (None, ""):
        return None
    return require_int(data, key)


def interval_from(data: dict, start_key: str = "start", end_key: str = "end") -> Interval:
    return Interval(parse_datetime(data.get(start_key), start_key), parse_datetime(data.get(end_key), end_key))


def owner_from(data: dict) -> Owner:
    """Owner from the body, falling back to the X-User-Id / X-Session-Id headers."""
    user_id = str(data.get("user_id") or request.headers.get("X-User-Id") or "").strip() or None
    session_id = str(data.get("session_id") or request.headers.get("X-Session-Id") or "").strip() or None
    if user_id:
        session_id = None
    return Owner(user_id=user_id, session_id=session_id)


def actor_id():
    return request.headers.get("X-User-Id") or request.headers.get("X-Session-Id")
