"""Pricing Overlay: priority-ordered, cumulative price modifiers."""

from datetime import datetime
from decimal import ROUND_HALF_UP, Decimal
from typing import Optional

from models import db
from models.bookable_type import BookableType, Package
from models.hold import Hold
from models.pricing_rule import PricingRule
from services.settings import EngineSettings
from services.time_windows import from_storage


class PricingOverlay:
    """Quotes a slot's price.

    Every matching rule applies, in ascending ``priority`` (ties by id), to
    the running price: ``percentage`` multiplies by ``1 + value/100`` and
    ``fixed_amount`` adds ``value``. The running price is floored at zero
    after each step. Amounts are in the smallest currency unit.
    """

    def __init__(self, settings: EngineSettings):
        self.settings = settings
        self._rules: dict[int, list[PricingRule]] = {}

    def base_price(self, bookable_type: BookableType, package: Optional[Package] = None) -> int:
        if package is not None:
            return int(package.base_price or 0)
        return int(bookable_type.base_price or 0)

    def quote(self, bookable_type: BookableType, start: datetime,
              package: Optional[Package] = None) -> int:
        price = Decimal(self.base_price(bookable_type, package))
        local = start.astimezone(self.settings.timezone)
        for rule in self.rules_for(bookable_type.business_id):
            if self.matches(rule, bookable_type, package, local):
                price = self.apply(rule, price)
        return int(price.quantize(Decimal("1"), rounding=ROUND_HALF_UP))

    def quote_hold(self, hold: Hold) -> Optional[int]:
        bookable_type = db.session.get(BookableType, hold.bookable_type_id)
        if bookable_type is None:
            return None
        package = db.session.get(Package, hold.package_id) if hold.package_id is not None else None
        return self.quote(bookable_type, from_storage(hold.start_at), package)

    def rules_for(self, business_id: int) -> list[PricingRule]:
        if business_id not in self._rules:
            self._rules[business_id] = (
                PricingRule.query
                .filter_by(business_id=business_id, is_active=True)
                .order_by(PricingRule.priority.asc(), PricingRule.id.asc())
                .all()
            )
        return self._rules[business_id]

    @staticmethod
    def matches(rule: PricingRule, bookable_type: BookableType,
                package: Optional[Package], local_start: datetime) -> bool:
        if rule.business_id != bookable_type.business_id:
            return False
        if rule.bookable_type_id is not None and rule.bookable_type_id != bookable_type.id:
            return False
        if rule.package_id is not None and (package is None or rule.package_id != package.id):
            return False

        day = local_start.date()
        if rule.valid_from is not None and day < rule.valid_from:
            return False
        if rule.valid_until is not None and day > rule.valid_until:
            return False
        if rule.days_of_week:
            days = {int(d) for d in rule.days_of_week.split(",") if d.strip()}
            if day.weekday() not in days:
                return False

        tod = local_start.time().replace(tzinfo=None)
        if rule.start_time is not None and tod < rule.start_time:
            return False
        if rule.end_time is not None and tod >= rule.end_time:
            return False
        return True

    @staticmethod
    def apply(rule: PricingRule, price: Decimal) -> Decimal:
        value = Decimal(str(rule.modifier_value))
        if rule.modifier_type == "percentage":
            price = price * (Decimal("1") + value / Decimal("100"))
        elif rule.modifier_type == "fixed_amount":
            price = price + value
        else:
            raise ValueError(f"Unknown pricing modifier type: {rule.modifier_type!r}")
        return max(price, Decimal("0"))
