"""Pydantic v2 request/response schemas for product endpoints."""

import uuid
from datetime import datetime
from decimal import Decimal

from pydantic import BaseModel, ConfigDict, Field, model_validator

# ---------------------------------------------------------------------------
# Request schemas
# ---------------------------------------------------------------------------


class ProductCreate(BaseModel):
    """Schema for listing a new product."""

    title: str = Field(..., min_length=1, max_length=255)
    description: str | None = None
    category: str = Field(..., min_length=1, max_length=100)
    brand: str | None = Field(None, max_length=100)
    tags: list[str] | None = None
    location: str | None = Field(None, max_length=255)
    price_per_hour: Decimal | None = Field(None, ge=0)
    price_per_day: Decimal | None = Field(None, ge=0)
    price_per_week: Decimal | None = Field(None, ge=0)

    @model_validator(mode="after")
    def check_rate_tier(self) -> "ProductCreate":
        """At least one rate tier must be a positive price."""
        if not any(p for p in (self.price_per_hour, self.price_per_day, self.price_per_week)):
            raise ValueError("At least one of price_per_hour, price_per_day, price_per_week is required")
        return self


class ProductUpdate(BaseModel):
    """Schema for partially updating a product. All fields optional."""

    title: str | None = Field(None, min_length=1, max_length=255)
    description: str | None = None
    category: str | None = Field(None, min_length=1, max_length=100)
    brand: str | None = Field(None, max_length=100)
    tags: list[str] | None = None
    location: str | None = Field(None, max_length=255)
    price_per_hour: Decimal | None = Field(None, ge=0)
    price_per_day: Decimal | None = Field(None, ge=0)
    price_per_week: Decimal | None = Field(None, ge=0)


# ---------------------------------------------------------------------------
# Response schemas
# ---------------------------------------------------------------------------


class ProductResponse(BaseModel):
    """Public product information returned from the API."""

    id: uuid.UUID
    owner_id: uuid.UUID
    title: str
    description: str | None = None
    category: str
    brand: str | None = None
    tags: list | None = None
    location: str | None = None
    price_per_hour: Decimal | None = None
    price_per_day: Decimal | None = None
    price_per_week: Decimal | None = None
    status: str
    created_at: datetime
    updated_at: datetime

    model_config = ConfigDict(from_attributes=True)


class ProductListResponse(BaseModel):
    """Paginated list of products."""

    items: list[ProductResponse]
    total: int
