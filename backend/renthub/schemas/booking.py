"""Pydantic v2 request/response schemas for booking endpoints."""

import uuid
from datetime import datetime
from decimal import Decimal

from pydantic import BaseModel, ConfigDict, Field

from renthub.schemas.pricing import RentalWindow
from renthub.schemas.product import ProductResponse

# ---------------------------------------------------------------------------
# Request schemas
# ---------------------------------------------------------------------------


class ClientPricing(BaseModel):
    """Pricing as displayed to the renter. Only compared, never stored."""

    subtotal: Decimal | None = None
    tax: Decimal | None = None
    total: Decimal


class BookingCreate(RentalWindow):
    """Schema for requesting a rental."""

    product_id: uuid.UUID
    notes: str | None = Field(None, max_length=2000)
    pricing: ClientPricing | None = None


class BookingReject(BaseModel):
    reason: str | None = Field(None, max_length=500)


class BookingCancel(BaseModel):
    reason: str | None = Field(None, max_length=500)


# ---------------------------------------------------------------------------
# Response schemas
# ---------------------------------------------------------------------------


class BookingResponse(BaseModel):
    """Standard booking response with its pricing snapshot."""

    id: uuid.UUID
    product_id: uuid.UUID
    renter_id: uuid.UUID
    owner_id: uuid.UUID
    start_date: datetime
    end_date: datetime
    rate_tier: str
    base_price: Decimal
    billing_units: int
    subtotal: Decimal
    tax: Decimal
    platform_fee: Decimal
    total_price: Decimal
    currency: str
    commission: Decimal
    owner_amount: Decimal
    late_fee: Decimal
    status: str
    payment_status: str
    notes: str | None = None
    cancel_reason: str | None = None
    returned_at: datetime | None = None
    created_at: datetime
    updated_at: datetime

    model_config = ConfigDict(from_attributes=True)


class BookingDetailResponse(BookingResponse):
    """Booking with the nested product, for detail views."""

    product: ProductResponse | None = None


class BookingListResponse(BaseModel):
    """Paginated list of bookings."""

    items: list[BookingResponse]
    total: int


class PaymentIntentResponse(BaseModel):
    """Stripe PaymentIntent details the client needs to collect payment."""

    booking_id: uuid.UUID
    payment_intent_id: str
    client_secret: str
    amount: int  # minor units
    currency: str
