"""Shared test fixtures and helpers."""

from datetime import datetime, time, timezone
from typing import Optional

import pytest

from app import create_app
from models import db
from models.blackout import BlackoutInterval
from models.bookable_type import BookableType, Package
from models.booking import Booking
from models.business import Business
from models.pricing_rule import PricingRule
from models.resource import Resource
from models.schedule import AvailabilityOverride, ScheduleWindow
from services.clock import FixedClock
from services.settings import EngineSettings
from services.time_windows import Interval, to_storage

# Tuesday; the scenario day 2026-01-21 is the Wednesday after
NOW = datetime(2026, 1, 20, 12, 0, tzinfo=timezone.utc)
WEDNESDAY = 2


def utc(*args) -> datetime:
    return datetime(*args, tzinfo=timezone.utc)


def span(start: datetime, end: datetime) -> Interval:
    return Interval(start, end)


@pytest.fixture
def clock():
    return FixedClock(NOW)


@pytest.fixture
def app(tmp_path, clock):
    app = create_app(
        {
            "TESTING": True,
            "SQLALCHEMY_DATABASE_URI": "sqlite:///" + str(tmp_path / "test.db"),
            "BUSINESS_TIMEZONE": "UTC",
            "PAYMENTS_REQUIRED": False,
            "STRIPE_WEBHOOK_SECRET": "whsec_test_secret",
            "STORE_RETRY_BACKOFF_SECONDS": 0,
            "LOG_LEVEL": "WARNING",
        },
        clock=clock,
    )
    with app.app_context():
        db.create_all()
        yield app
        db.session.remove()
        db.drop_all()


@pytest.fixture
def client(app):
    return app.test_client()


@pytest.fixture
def settings(app):
    return EngineSettings.from_config(app.config)


# ---------- model factories ----------

def make_business(business_type: str = "coworking", name: Optional[str] = None) -> Business:
    business = Business(type=business_type, name=name or business_type.title())
    db.session.add(business)
    db.session.commit()
    return business


def make_resource(business: Business, name: str = "Room A", capacity: int = 1) -> Resource:
    resource = Resource(
        business_id=business.id,
        name=name,
        slug=name.lower().replace(" ", "-"),
        capacity=capacity,
    )
    db.session.add(resource)
    db.session.commit()
    return resource


def make_bookable_type(business: Business, name: str = "Hour", duration_mins: int = 60,
                       base_price: int = 10000, buffer_after_mins: int = 0,
                       resources: Optional[list] = None, min_duration_mins: Optional[int] = None,
                       max_duration_mins: Optional[int] = None) -> BookableType:
    bt = BookableType(
        business_id=business.id,
        name=name,
        slug=name.lower().replace(" ", "-"),
        duration_mins=duration_mins,
        min_duration_mins=min_duration_mins,
        max_duration_mins=max_duration_mins,
        base_price=base_price,
        buffer_after_mins=buffer_after_mins,
        resources=resources or [],
    )
    db.session.add(bt)
    db.session.commit()
    return bt


def make_package(bt: BookableType, name: str = "Bundle", base_price: int = 25000) -> Package:
    package = Package(bookable_type_id=bt.id, name=name, base_price=base_price)
    db.session.add(package)
    db.session.commit()
    return package


def make_schedule(resource: Resource, day_of_week: int = WEDNESDAY,
                  start: time = time(9, 0), end: time = time(17, 0)) -> ScheduleWindow:
    row = ScheduleWindow(resource_id=resource.id, day_of_week=day_of_week, start_time=start, end_time=end)
    db.session.add(row)
    db.session.commit()
    return row


def make_override(resource: Resource, day, windows_json: Optional[str] = None,
                  is_unavailable: bool = False) -> AvailabilityOverride:
    row = AvailabilityOverride(
        resource_id=resource.id,
        override_date=day,
        windows_json=windows_json,
        is_unavailable=is_unavailable,
    )
    db.session.add(row)
    db.session.commit()
    return row


def make_blackout(start: datetime, end: datetime, resource: Optional[Resource] = None,
                  business: Optional[Business] = None) -> BlackoutInterval:
    row = BlackoutInterval(
        resource_id=resource.id if resource else None,
        business_id=business.id if business else None,
        start_at=to_storage(start),
        end_at=to_storage(end),
    )
    db.session.add(row)
    db.session.commit()
    return row


def make_booking(resource: Resource, start: datetime, end: datetime, status: str = "confirmed",
                 blocked_until: Optional[datetime] = None) -> Booking:
    """Insert a booking row directly, bypassing claims (legacy/imported data)."""
    booking = Booking(
        resource_id=resource.id,
        start_at=to_storage(start),
        end_at=to_storage(end),
        blocked_until=to_storage(blocked_until or end),
        owner_user_id="seed",
        status=status,
        created_at=to_storage(NOW),
    )
    db.session.add(booking)
    db.session.commit()
    return booking


def make_rule(business: Business, modifier_type: str, modifier_value, priority: int = 0,
              **kwargs) -> PricingRule:
    rule = PricingRule(
        business_id=business.id,
        name=kwargs.pop("name", f"{modifier_type} {modifier_value}"),
        modifier_type=modifier_type,
        modifier_value=modifier_value,
        priority=priority,
        **kwargs,
    )
    db.session.add(rule)
    db.session.commit()
    return rule


@pytest.fixture
def wednesday_room(app):
    """Coworking room open 09:00-17:00 UTC on Wednesdays, with a 60 minute type."""
    business = make_business("coworking")
    resource = make_resource(business)
    bt = make_bookable_type(business)
    make_schedule(resource)
    return business, resource, bt
