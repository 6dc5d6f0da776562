"""Pydantic v2 schemas for quotes, availability checks, and booking status."""

import uuid
from datetime import datetime, timezone
from decimal import Decimal
from typing import Annotated

from pydantic import AfterValidator, BaseModel, ConfigDict, model_validator
from pydantic.alias_generators import to_camel

from renthub.pricing import BookingStatus, RateTier


def to_naive_utc(value: datetime) -> datetime:
    """Rental windows are stored as naive UTC; convert aware inputs."""
    if value.tzinfo is not None:
        return value.astimezone(timezone.utc).replace(tzinfo=None)
    return value


UTCDateTime = Annotated[datetime, AfterValidator(to_naive_utc)]


# ---------------------------------------------------------------------------
# Request schemas
# ---------------------------------------------------------------------------


class RentalWindow(BaseModel):
    """A candidate rental window."""

    start_date: UTCDateTime
    end_date: UTCDateTime

    @model_validator(mode="after")
    def check_dates(self) -> "RentalWindow":
        """Validate that end_date is strictly after start_date."""
        if self.end_date <= self.start_date:
            raise ValueError("end_date must be after start_date")
        return self


# ---------------------------------------------------------------------------
# Response schemas
# ---------------------------------------------------------------------------


class QuoteResponse(BaseModel):
    """Server-computed price for a rental window."""

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

    model_config = ConfigDict(from_attributes=True)


class AvailabilityResponse(BaseModel):
    """Whether a product is free for the requested window."""

    product_id: uuid.UUID
    available: bool
    conflicting_bookings: int
    next_available_date: datetime | None = None
    start_date: datetime
    end_date: datetime


class WindowResponse(BaseModel):
    start_date: datetime
    end_date: datetime
    status: str | None = None


class FreePeriodResponse(BaseModel):
    start_date: datetime
    end_date: datetime | None = None


class CalendarResponse(BaseModel):
    """Committed windows and free gaps for a product's calendar."""

    product_id: uuid.UUID
    reserved: list[WindowResponse]
    free_periods: list[FreePeriodResponse]


class BookingStatusResponse(BaseModel):
    """Live display status of a product (camelCase for the listing pages)."""

    success: bool = True
    product_id: uuid.UUID
    current_status: BookingStatus
    status_message: str
    next_available_date: datetime
    current_booking: WindowResponse | None = None
    next_booking: WindowResponse | None = None
    total_active_bookings: int
    future_bookings: list[WindowResponse]

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)
