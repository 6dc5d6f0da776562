"""Products API routes: listings, moderation, availability, quotes, and status."""

import logging
import uuid
from datetime import datetime

from fastapi import APIRouter, Depends, HTTPException, Query, status
from sqlalchemy import func, or_, select
from sqlalchemy.ext.asyncio import AsyncSession

from renthub.api.deps import get_current_active_user, get_current_admin, get_db, get_optional_user
from renthub.api.errors import pricing_http_error
from renthub.config import settings
from renthub.database import utcnow
from renthub.models.product import Product
from renthub.models.user import User
from renthub.pricing import PricingError, Window, check_availability, free_periods
from renthub.schemas.auth import MessageResponse
from renthub.schemas.pricing import (
    AvailabilityResponse,
    BookingStatusResponse,
    CalendarResponse,
    FreePeriodResponse,
    QuoteResponse,
    RentalWindow,
    WindowResponse,
    to_naive_utc,
)
from renthub.schemas.product import (
    ProductCreate,
    ProductListResponse,
    ProductResponse,
    ProductUpdate,
)
from renthub.services.booking_service import quote_for_product
from renthub.services.product_service import (
    get_blocking_bookings,
    get_booked_product_ids,
    get_booking_status,
)

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/v1/products", tags=["products"])


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


async def _get_product(product_id: uuid.UUID, db: AsyncSession) -> Product:
    """Fetch a product or raise 404."""
    result = await db.execute(select(Product).where(Product.id == product_id))
    product = result.scalar_one_or_none()
    if product is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Product not found",
        )
    return product


async def _get_owned_product(product_id: uuid.UUID, current_user: User, db: AsyncSession) -> Product:
    """Fetch a product owned by the current user. Not-owned reads as 404."""
    product = await _get_product(product_id, db)
    if product.owner_id != current_user.id:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Product not found",
        )
    return product


def _window_from_query(start_date: datetime, end_date: datetime) -> Window:
    try:
        return Window(to_naive_utc(start_date), to_naive_utc(end_date))
    except PricingError as e:
        raise pricing_http_error(e) from e


async def _set_moderation_status(product_id: uuid.UUID, new_status: str, db: AsyncSession) -> ProductResponse:
    product = await _get_product(product_id, db)
    product.status = new_status
    db.add(product)
    await db.flush()
    await db.refresh(product)
    logger.info("Product %s marked %s", product.id, new_status)
    return ProductResponse.model_validate(product)


# ---------------------------------------------------------------------------
# Owner endpoints
# ---------------------------------------------------------------------------


@router.post(
    "",
    response_model=ProductResponse,
    status_code=status.HTTP_201_CREATED,
    summary="List a new product for rent",
)
async def create_product(
    body: ProductCreate,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(get_current_active_user),
) -> ProductResponse:
    """Create a product owned by the caller. New products await admin approval."""
    product = Product(owner_id=current_user.id, status="pending", **body.model_dump())
    db.add(product)
    await db.flush()
    await db.refresh(product)
    logger.info("Product %s listed by %s", product.id, current_user.id)
    return ProductResponse.model_validate(product)


@router.get(
    "/mine",
    response_model=ProductListResponse,
    summary="List the current user's products",
)
async def list_my_products(
    skip: int = Query(0, ge=0),
    limit: int = Query(20, ge=1, le=100),
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(get_current_active_user),
) -> ProductListResponse:
    """Return the caller's products in every moderation status."""
    base_filter = Product.owner_id == current_user.id

    total_result = await db.execute(select(func.count()).select_from(Product).where(base_filter))
    total = total_result.scalar_one()

    result = await db.execute(
        select(Product).where(base_filter).order_by(Product.created_at.desc()).offset(skip).limit(limit)
    )
    items = list(result.scalars().all())
    return ProductListResponse(
        items=[ProductResponse.model_validate(p) for p in items],
        total=total,
    )


@router.put(
    "/{product_id}",
    response_model=ProductResponse,
    summary="Update a product",
)
async def update_product(
    product_id: uuid.UUID,
    body: ProductUpdate,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(get_current_active_user),
) -> ProductResponse:
    """Partially update a product. The product must keep at least one rate tier."""
    product = await _get_owned_product(product_id, current_user, db)

    update_data = body.model_dump(exclude_unset=True)
    for field, value in update_data.items():
        setattr(product, field, value)

    if not product.rate_card.has_any_rate:
        raise HTTPException(
            status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
            detail="At least one of price_per_hour, price_per_day, price_per_week is required",
        )

    db.add(product)
    await db.flush()
    await db.refresh(product)
    return ProductResponse.model_validate(product)


@router.delete(
    "/{product_id}",
    response_model=MessageResponse,
    summary="Delete a product",
)
async def delete_product(
    product_id: uuid.UUID,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(get_current_active_user),
) -> MessageResponse:
    """Delete a product and cascade-delete its bookings."""
    product = await _get_owned_product(product_id, current_user, db)
    await db.delete(product)
    await db.flush()
    return MessageResponse(message="Product deleted")


# ---------------------------------------------------------------------------
# Admin moderation
# ---------------------------------------------------------------------------


@router.put("/{product_id}/approve", response_model=ProductResponse, summary="Approve a product")
async def approve_product(
    product_id: uuid.UUID,
    db: AsyncSession = Depends(get_db),
    _admin: User = Depends(get_current_admin),
) -> ProductResponse:
    return await _set_moderation_status(product_id, "approved", db)


@router.put("/{product_id}/reject", response_model=ProductResponse, summary="Reject a product")
async def reject_product(
    product_id: uuid.UUID,
    db: AsyncSession = Depends(get_db),
    _admin: User = Depends(get_current_admin),
) -> ProductResponse:
    return await _set_moderation_status(product_id, "rejected", db)


# ---------------------------------------------------------------------------
# Public endpoints
# ---------------------------------------------------------------------------


@router.get(
    "",
    response_model=ProductListResponse,
    summary="Browse approved products",
)
async def browse_products(
    q: str | None = Query(None, description="Search title, description, category, brand"),
    category: str | None = Query(None),
    brand: str | None = Query(None),
    start_date: datetime | None = Query(None, description="Only products free from this instant"),
    end_date: datetime | None = Query(None, description="Only products free until this instant"),
    skip: int = Query(0, ge=0),
    limit: int = Query(20, ge=1, le=100),
    db: AsyncSession = Depends(get_db),
    current_user: User | None = Depends(get_optional_user),
) -> ProductListResponse:
    """Return approved products, hiding the caller's own listings.

    When both ``start_date`` and ``end_date`` are given, products already
    booked for any part of that window are left out.
    """
    filters = [Product.status == "approved"]
    if current_user is not None:
        filters.append(Product.owner_id != current_user.id)
    if category is not None:
        filters.append(Product.category == category)
    if brand is not None:
        filters.append(Product.brand == brand)
    if q:
        pattern = f"%{q}%"
        filters.append(
            or_(
                Product.title.ilike(pattern),
                Product.description.ilike(pattern),
                Product.category.ilike(pattern),
                Product.brand.ilike(pattern),
            )
        )
    if start_date is not None and end_date is not None:
        booked = await get_booked_product_ids(db, _window_from_query(start_date, end_date))
        if booked:
            filters.append(Product.id.not_in(booked))

    total_result = await db.execute(select(func.count()).select_from(Product).where(*filters))
    total = total_result.scalar_one()

    result = await db.execute(
        select(Product).where(*filters).order_by(Product.created_at.desc()).offset(skip).limit(limit)
    )
    items = list(result.scalars().all())
    return ProductListResponse(
        items=[ProductResponse.model_validate(p) for p in items],
        total=total,
    )


@router.get(
    "/booking-status/{product_id}",
    response_model=BookingStatusResponse,
    summary="Live booking status of a product",
)
async def product_booking_status(
    product_id: uuid.UUID,
    db: AsyncSession = Depends(get_db),
) -> BookingStatusResponse:
    """Report whether the product is rented now, being prepared, or available."""
    await _get_product(product_id, db)
    now = utcnow()
    probe, active = await get_booking_status(
        db, product_id, now, settings.pricing_config().preparing_horizon
    )

    def _as_response(window) -> WindowResponse | None:
        if window is None:
            return None
        booking = next((b for b in active if b.window == window), None)
        return WindowResponse(
            start_date=window.start,
            end_date=window.end,
            status=booking.status if booking else None,
        )

    return BookingStatusResponse(
        product_id=product_id,
        current_status=probe.status,
        status_message=probe.message,
        next_available_date=probe.next_available_date,
        current_booking=_as_response(probe.current_window),
        next_booking=_as_response(probe.next_window),
        total_active_bookings=len(active),
        future_bookings=[
            WindowResponse(start_date=b.start_date, end_date=b.end_date, status=b.status) for b in active
        ],
    )


@router.get(
    "/{product_id}",
    response_model=ProductResponse,
    summary="Get a product by ID",
)
async def get_product(
    product_id: uuid.UUID,
    db: AsyncSession = Depends(get_db),
) -> ProductResponse:
    product = await _get_product(product_id, db)
    return ProductResponse.model_validate(product)


@router.get(
    "/{product_id}/availability",
    response_model=AvailabilityResponse,
    summary="Check whether a product is free for a window",
)
async def product_availability(
    product_id: uuid.UUID,
    start_date: datetime = Query(...),
    end_date: datetime = Query(...),
    db: AsyncSession = Depends(get_db),
) -> AvailabilityResponse:
    """Overlap check against every booking that still holds the calendar."""
    await _get_product(product_id, db)
    candidate = _window_from_query(start_date, end_date)
    bookings = await get_blocking_bookings(db, product_id)
    result = check_availability([b.window for b in bookings], candidate)
    return AvailabilityResponse(
        product_id=product_id,
        available=result.available,
        conflicting_bookings=len(result.conflicts),
        next_available_date=result.next_available_date,
        start_date=candidate.start,
        end_date=candidate.end,
    )


@router.get(
    "/{product_id}/calendar",
    response_model=CalendarResponse,
    summary="Reserved windows and free periods from now on",
)
async def product_calendar(
    product_id: uuid.UUID,
    db: AsyncSession = Depends(get_db),
) -> CalendarResponse:
    await _get_product(product_id, db)
    now = utcnow()
    bookings = [b for b in await get_blocking_bookings(db, product_id) if b.end_date > now]
    return CalendarResponse(
        product_id=product_id,
        reserved=[WindowResponse(start_date=b.start_date, end_date=b.end_date, status=b.status) for b in bookings],
        free_periods=[
            FreePeriodResponse(start_date=p.start, end_date=p.end)
            for p in free_periods([b.window for b in bookings], now)
        ],
    )


@router.post(
    "/{product_id}/quote",
    response_model=QuoteResponse,
    summary="Price a rental window",
)
async def quote_product(
    product_id: uuid.UUID,
    body: RentalWindow,
    db: AsyncSession = Depends(get_db),
) -> QuoteResponse:
    """Compute subtotal, tax, and total for a window. Nothing is stored.

    Returns 409 with ``next_available_date`` when the window is taken and 422
    when the window is invalid or the product has no rate configured.
    """
    product = await _get_product(product_id, db)
    try:
        quote = await quote_for_product(db, product, body.start_date, body.end_date)
    except PricingError as e:
        raise pricing_http_error(e) from e
    return QuoteResponse.model_validate(quote)
