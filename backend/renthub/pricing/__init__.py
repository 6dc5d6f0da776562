"""Rental pricing & availability engine.

Pure functions only: no I/O, no shared state. The HTTP layer and the booking
service feed in a product's rate card and committed windows and get back a
quote or a ``PricingError``.
"""

from renthub.pricing.availability import (
    AvailabilityResult,
    BookingStatus,
    FreePeriod,
    StatusProbe,
    Window,
    check_availability,
    current_status,
    ensure_available,
    free_periods,
    next_available_date,
    validate_window,
)
from renthub.pricing.exceptions import (
    ConfigurationError,
    InvalidBookingWindowError,
    PricingError,
    RateUnavailableError,
    SlotUnavailableError,
)
from renthub.pricing.quote import (
    Charges,
    Payout,
    PricingConfig,
    Quote,
    build_quote,
    late_fee,
    price_booking,
    quote_rental,
    split_payout,
)
from renthub.pricing.rates import (
    BillingUnit,
    RateCard,
    RateSelection,
    RateTier,
    compute_subtotal,
    round2,
    select_rate,
)

__all__ = [
    "AvailabilityResult",
    "BillingUnit",
    "BookingStatus",
    "Charges",
    "ConfigurationError",
    "FreePeriod",
    "InvalidBookingWindowError",
    "Payout",
    "PricingConfig",
    "PricingError",
    "Quote",
    "RateCard",
    "RateSelection",
    "RateTier",
    "RateUnavailableError",
    "SlotUnavailableError",
    "StatusProbe",
    "Window",
    "build_quote",
    "check_availability",
    "compute_subtotal",
    "current_status",
    "ensure_available",
    "free_periods",
    "late_fee",
    "next_available_date",
    "price_booking",
    "quote_rental",
    "round2",
    "select_rate",
    "split_payout",
    "validate_window",
]
