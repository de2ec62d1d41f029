from .db import db
from .audit_log import AuditLog
from .business import Business
from .resource import Resource
from .bookable_type import BookableType, Package, bookable_type_resources
from .schedule import ScheduleWindow, AvailabilityOverride
from .blackout import BlackoutInterval
from .hold import Hold
from .booking import Booking
from .interval_claim import IntervalClaim
from .pricing_rule import PricingRule
