"""Rate selection: picks the applicable price tier for a rental duration.

Products carry up to three tiers (hourly, daily, weekly). The tier is chosen
from the rental duration; when the product does not define that tier, a rate
is derived from whichever tier it does define.
"""

import enum
import math
from dataclasses import dataclass
from decimal import ROUND_HALF_UP, Decimal

from renthub.pricing.exceptions import RateUnavailableError

HOURLY_THRESHOLD_HOURS = 6
WEEKLY_THRESHOLD_HOURS = 6 * 24

HOURS_PER_DAY = 24
HOURS_PER_WEEK = 24 * 7

CENTS = Decimal("0.01")


def round2(value: Decimal) -> Decimal:
    """Round a currency amount to 2 decimals, half-up."""
    return Decimal(value).quantize(CENTS, rounding=ROUND_HALF_UP)


class RateTier(str, enum.Enum):
    HOURLY = "hourly"
    DAILY = "daily"
    WEEKLY = "weekly"
    UNAVAILABLE = "unavailable"

    @property
    def unit_hours(self) -> int | None:
        return _UNIT_HOURS.get(self)

    @property
    def unit(self) -> str | None:
        return _UNIT_NAMES.get(self)


_UNIT_HOURS = {
    RateTier.HOURLY: 1,
    RateTier.DAILY: HOURS_PER_DAY,
    RateTier.WEEKLY: HOURS_PER_WEEK,
}

_UNIT_NAMES = {
    RateTier.HOURLY: "hour",
    RateTier.DAILY: "day",
    RateTier.WEEKLY: "week",
}


class BillingUnit(str, enum.Enum):
    """How billed units are counted once a rate has been picked."""

    TIER = "tier"  # natural unit of the selected tier
    DAY = "day"  # always whole days, using a per-day equivalent rate


def _as_rate(value) -> Decimal | None:
    if value is None:
        return None
    rate = Decimal(str(value))
    # Zero behaves like an unset tier.
    return rate if rate > 0 else None


@dataclass(frozen=True)
class RateCard:
    """The tiered prices of a product."""

    price_per_hour: Decimal | None = None
    price_per_day: Decimal | None = None
    price_per_week: Decimal | None = None

    def __post_init__(self) -> None:
        object.__setattr__(self, "price_per_hour", _as_rate(self.price_per_hour))
        object.__setattr__(self, "price_per_day", _as_rate(self.price_per_day))
        object.__setattr__(self, "price_per_week", _as_rate(self.price_per_week))

    @classmethod
    def from_product(cls, product) -> "RateCard":
        """Build a rate card from any object exposing the three price attributes."""
        return cls(
            price_per_hour=getattr(product, "price_per_hour", None),
            price_per_day=getattr(product, "price_per_day", None),
            price_per_week=getattr(product, "price_per_week", None),
        )

    @property
    def has_any_rate(self) -> bool:
        return any(r is not None for r in (self.price_per_hour, self.price_per_day, self.price_per_week))

    def hourly_rate(self) -> tuple[Decimal | None, bool]:
        if self.price_per_hour is not None:
            return self.price_per_hour, False
        if self.price_per_day is not None:
            return self.price_per_day / HOURS_PER_DAY, True
        if self.price_per_week is not None:
            return self.price_per_week / HOURS_PER_WEEK, True
        return None, False

    def daily_rate(self) -> tuple[Decimal | None, bool]:
        if self.price_per_day is not None:
            return self.price_per_day, False
        if self.price_per_hour is not None:
            return self.price_per_hour * HOURS_PER_DAY, True
        if self.price_per_week is not None:
            return self.price_per_week / 7, True
        return None, False

    def weekly_rate(self) -> tuple[Decimal | None, bool]:
        if self.price_per_week is not None:
            return self.price_per_week, False
        if self.price_per_day is not None:
            return self.price_per_day * 7, True
        if self.price_per_hour is not None:
            return self.price_per_hour * HOURS_PER_WEEK, True
        return None, False


@dataclass(frozen=True)
class RateSelection:
    """Outcome of rate selection. ``rate`` is None only for UNAVAILABLE."""

    tier: RateTier
    rate: Decimal | None = None
    derived: bool = False

    @property
    def available(self) -> bool:
        return self.tier is not RateTier.UNAVAILABLE

    def per_day_rate(self) -> Decimal:
        """The selected rate expressed per day."""
        if not self.available:
            raise RateUnavailableError()
        return self.rate * HOURS_PER_DAY / self.tier.unit_hours


def tier_for_duration(duration_hours: float) -> RateTier:
    if duration_hours < HOURLY_THRESHOLD_HOURS:
        return RateTier.HOURLY
    if duration_hours < WEEKLY_THRESHOLD_HOURS:
        return RateTier.DAILY
    return RateTier.WEEKLY


def select_rate(rates: RateCard, duration_hours: float) -> RateSelection:
    """Pick the rate tier for ``duration_hours``.

    Returns ``RateSelection(RateTier.UNAVAILABLE)`` when the product has no
    tier set at all; callers decide how to surface that.
    """
    if not rates.has_any_rate:
        return RateSelection(tier=RateTier.UNAVAILABLE)

    tier = tier_for_duration(duration_hours)
    if tier is RateTier.HOURLY:
        rate, derived = rates.hourly_rate()
    elif tier is RateTier.DAILY:
        rate, derived = rates.daily_rate()
    else:
        rate, derived = rates.weekly_rate()
    return RateSelection(tier=tier, rate=rate, derived=derived)


def billed_units(duration_hours: float, unit_hours: int) -> int:
    """Whole units covering ``duration_hours``; any fraction counts as a full unit."""
    # Duration is built from timedelta seconds; trim float noise before ceil.
    return max(1, math.ceil(round(duration_hours / unit_hours, 9)))


def compute_subtotal(
    selection: RateSelection,
    duration_hours: float,
    billing_unit: BillingUnit = BillingUnit.TIER,
) -> tuple[Decimal, int]:
    """Return ``(subtotal, units)`` for a rate selection.

    Raises:
        RateUnavailableError: If the selection is UNAVAILABLE.
    """
    if not selection.available:
        raise RateUnavailableError()

    if BillingUnit(billing_unit) is BillingUnit.DAY:
        units = billed_units(duration_hours, HOURS_PER_DAY)
        return round2(selection.per_day_rate() * units), units

    units = billed_units(duration_hours, selection.tier.unit_hours)
    return round2(selection.rate * units), units
