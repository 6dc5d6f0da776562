"""Quote building: turns a rental window and a rate card into a payable total."""

import math
from collections.abc import Iterable
from dataclasses import dataclass
from datetime import datetime, timedelta
from decimal import Decimal

from renthub.pricing.availability import Window, ensure_available, validate_window
from renthub.pricing.rates import (
    BillingUnit,
    RateCard,
    RateTier,
    compute_subtotal,
    round2,
    select_rate,
)

DEFAULT_TAX_RATE = Decimal("0.18")
DEFAULT_COMMISSION_RATE = Decimal("0.10")
DEFAULT_LATE_FEE_DAILY_RATE = Decimal("0.10")


@dataclass(frozen=True)
class PricingConfig:
    """Externalised pricing parameters."""

    tax_rate: Decimal = DEFAULT_TAX_RATE
    platform_fee_rate: Decimal | None = None
    currency: str = "inr"
    billing_unit: BillingUnit = BillingUnit.TIER
    preparing_horizon: timedelta = timedelta(hours=24)


@dataclass(frozen=True)
class Charges:
    subtotal: Decimal
    tax: Decimal
    platform_fee: Decimal
    total: Decimal


@dataclass(frozen=True)
class Quote:
    """A computed price for one candidate rental window."""

    rate_tier: RateTier
    base_price: Decimal
    derived: bool
    units: int
    unit: str
    total_hours: float
    total_days: int
    subtotal: Decimal
    tax: Decimal
    platform_fee: Decimal
    total: Decimal
    currency: str

    @property
    def total_minor_units(self) -> int:
        return to_minor_units(self.total)


@dataclass(frozen=True)
class Payout:
    commission: Decimal
    owner_amount: Decimal


def to_minor_units(amount: Decimal) -> int:
    """Amount in the currency's minor unit (paise, cents), as payment gateways expect."""
    return int(round2(Decimal(str(amount))) * 100)


def build_quote(
    subtotal: Decimal,
    tax_rate: Decimal = DEFAULT_TAX_RATE,
    platform_fee_rate: Decimal | None = None,
) -> Charges:
    """Apply tax and an optional platform fee to a subtotal."""
    subtotal = round2(Decimal(str(subtotal)))
    tax = round2(subtotal * Decimal(str(tax_rate)))
    platform_fee = Decimal("0.00")
    if platform_fee_rate:
        platform_fee = round2(subtotal * Decimal(str(platform_fee_rate)))
    return Charges(
        subtotal=subtotal,
        tax=tax,
        platform_fee=platform_fee,
        total=subtotal + tax + platform_fee,
    )


def quote_rental(rates: RateCard, window: Window, config: PricingConfig | None = None) -> Quote:
    """Price ``window`` against ``rates``.

    Raises:
        RateUnavailableError: If the rate card has no tier set.
    """
    config = config or PricingConfig()
    hours = window.duration_hours
    selection = select_rate(rates, hours)
    subtotal, units = compute_subtotal(selection, hours, config.billing_unit)
    charges = build_quote(subtotal, config.tax_rate, config.platform_fee_rate)

    if BillingUnit(config.billing_unit) is BillingUnit.DAY:
        base_price, unit = round2(selection.per_day_rate()), "day"
    else:
        base_price, unit = round2(selection.rate), selection.tier.unit

    return Quote(
        rate_tier=selection.tier,
        base_price=base_price,
        derived=selection.derived,
        units=units,
        unit=unit,
        total_hours=round(hours, 2),
        total_days=math.ceil(round(hours / 24, 9)),
        subtotal=charges.subtotal,
        tax=charges.tax,
        platform_fee=charges.platform_fee,
        total=charges.total,
        currency=config.currency,
    )


def price_booking(
    rates: RateCard,
    existing: Iterable[Window] | None,
    start: datetime,
    end: datetime,
    config: PricingConfig | None = None,
    now: datetime | None = None,
) -> Quote:
    """Validate, gate on availability, then quote a candidate booking.

    Raises:
        InvalidBookingWindowError: Malformed or past window.
        SlotUnavailableError: The window overlaps a committed reservation.
        RateUnavailableError: The product cannot be priced.
    """
    window = validate_window(start, end, now)
    ensure_available(existing, window)
    return quote_rental(rates, window, config)


def split_payout(total: Decimal, commission_rate: Decimal = DEFAULT_COMMISSION_RATE) -> Payout:
    """Split a paid total into marketplace commission and owner share."""
    commission = round2(Decimal(str(total)) * Decimal(str(commission_rate)))
    return Payout(commission=commission, owner_amount=round2(Decimal(str(total)) - commission))


def late_fee(
    total: Decimal,
    end: datetime,
    returned_at: datetime,
    daily_rate: Decimal = DEFAULT_LATE_FEE_DAILY_RATE,
) -> Decimal:
    """Fee for returning after ``end``: each started day late costs ``total * daily_rate``."""
    if returned_at <= end:
        return Decimal("0.00")
    days_late = math.ceil((returned_at - end) / timedelta(days=1))
    return round2(Decimal(str(total)) * Decimal(str(daily_rate)) * days_late)
