"""Errors raised by the pricing and availability engine."""

from datetime import datetime


class PricingError(Exception):
    """Base class for all pricing/availability errors."""


class InvalidBookingWindowError(PricingError):
    """The requested rental window is malformed or in the past."""


class ConfigurationError(PricingError):
    """The product is not configured well enough to be quoted."""


class RateUnavailableError(ConfigurationError):
    """No rate tier is set on the product."""

    def __init__(self, message: str = "Product has no rate tier configured") -> None:
        super().__init__(message)


class SlotUnavailableError(PricingError):
    """The requested window overlaps a committed reservation."""

    def __init__(self, next_available_date: datetime | None, conflicts: int = 1) -> None:
        self.next_available_date = next_available_date
        self.conflicts = conflicts
        message = "Product is not available for the selected dates"
        if next_available_date is not None:
            message += f"; next available from {next_available_date.isoformat()}"
        super().__init__(message)
