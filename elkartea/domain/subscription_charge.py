"""
Subscription charge points.

A subscription fee is due in the months where its period starts. Periods are
anchored to January:
- monthly: every month
- quarterly: 1, 4, 7, 10
- yearly: 1
- custom (N months): months where (month - 1) % N == 0
"""
from decimal import Decimal

VALID_PERIODS = frozenset({"monthly", "quarterly", "yearly", "custom"})
QUARTER_START_MONTHS = frozenset({1, 4, 7, 10})

ZERO = Decimal("0.00")


def is_charge_month(period: str, period_months: int | None, month: int) -> bool:
    if period == "monthly":
        return True
    if period == "yearly":
        return month == 1
    if period == "quarterly":
        return month in QUARTER_START_MONTHS
    if period == "custom":
        if not period_months or period_months < 1:
            return False
        return (month - 1) % period_months == 0
    return False


def subscription_charge(subscription_type, month: int) -> Decimal:
    """Amount due for `month` under `subscription_type` (None means no subscription)."""
    if subscription_type is None or not subscription_type.is_active:
        return ZERO
    if not is_charge_month(subscription_type.period, subscription_type.period_months, month):
        return ZERO
    return Decimal(str(subscription_type.amount)).quantize(Decimal("0.01"))
