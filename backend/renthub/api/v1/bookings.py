"""Bookings API router: rental requests and their lifecycle.

Access rule: a booking is visible to its renter and to the owner of the
booked product. Owner-only actions (accept, reject, pickup, complete) and
renter-only actions (pay) are checked per endpoint.
"""

import uuid

from fastapi import APIRouter, Depends, HTTPException, Query, status
from sqlalchemy import func, or_, select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from renthub.api.deps import get_current_active_user, get_db
from renthub.api.errors import pricing_http_error, transition_http_error
from renthub.models.booking import BOOKING_STATUSES, Booking
from renthub.models.product import Product
from renthub.models.user import User
from renthub.pricing import PricingError
from renthub.schemas.booking import (
    BookingCancel,
    BookingCreate,
    BookingDetailResponse,
    BookingListResponse,
    BookingReject,
    BookingResponse,
    PaymentIntentResponse,
)
from renthub.services import booking_service
from renthub.services.booking_service import InvalidTransitionError

router = APIRouter(prefix="/api/v1/bookings", tags=["bookings"])

STATUS_PATTERN = "^(" + "|".join(BOOKING_STATUSES) + ")$"


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


async def _get_visible_booking(
    booking_id: uuid.UUID,
    current_user: User,
    db: AsyncSession,
) -> Booking:
    """Fetch a booking the current user is a party to, else 404."""
    result = await db.execute(
        select(Booking).where(
            Booking.id == booking_id,
            or_(Booking.renter_id == current_user.id, Booking.owner_id == current_user.id),
        )
    )
    booking = result.scalar_one_or_none()
    if booking is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Booking not found",
        )
    return booking


def _require_owner(booking: Booking, current_user: User) -> None:
    if booking.owner_id != current_user.id:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Only the product owner can do this",
        )


def _require_renter(booking: Booking, current_user: User) -> None:
    if booking.renter_id != current_user.id:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Only the renter can do this",
        )


# ---------------------------------------------------------------------------
# Endpoints
# ---------------------------------------------------------------------------


@router.post(
    "",
    response_model=BookingResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Request a rental",
)
async def create_booking(
    body: BookingCreate,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(get_current_active_user),
) -> Booking:
    """Create a rental request for an approved product.

    The price is re-derived on the server; any ``pricing`` the client sends
    is only compared against it. Overlapping requests get 409 with the next
    available date.
    """
    result = await db.execute(select(Product).where(Product.id == body.product_id))
    product = result.scalar_one_or_none()
    if product is None or product.status != "approved":
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Product not found",
        )
    if product.owner_id == current_user.id:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="You cannot rent your own product",
        )

    try:
        return await booking_service.create_booking(
            db,
            product,
            current_user,
            body.start_date,
            body.end_date,
            notes=body.notes,
            client_total=body.pricing.total if body.pricing else None,
        )
    except PricingError as e:
        raise pricing_http_error(e) from e


@router.get(
    "",
    response_model=BookingListResponse,
    summary="List the current user's bookings",
)
async def list_bookings(
    role: str | None = Query(None, pattern="^(renter|owner)$", description="Only bookings where I am this party"),
    product_id: uuid.UUID | None = Query(None, description="Filter by product"),
    status_filter: str | None = Query(
        None,
        alias="status",
        pattern=STATUS_PATTERN,
        description="Filter by booking status",
    ),
    skip: int = Query(0, ge=0, description="Pagination offset"),
    limit: int = Query(20, ge=1, le=100, description="Pagination limit"),
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(get_current_active_user),
) -> dict:
    """Return a paginated list of bookings the user rents or owns."""
    if role == "renter":
        filters = [Booking.renter_id == current_user.id]
    elif role == "owner":
        filters = [Booking.owner_id == current_user.id]
    else:
        filters = [or_(Booking.renter_id == current_user.id, Booking.owner_id == current_user.id)]

    if product_id is not None:
        filters.append(Booking.product_id == product_id)
    if status_filter is not None:
        filters.append(Booking.status == status_filter)

    total_result = await db.execute(select(func.count()).select_from(Booking).where(*filters))
    total = total_result.scalar_one()

    result = await db.execute(
        select(Booking).where(*filters).order_by(Booking.created_at.desc()).offset(skip).limit(limit)
    )
    items = list(result.scalars().all())

    return {"items": items, "total": total}


@router.get(
    "/{booking_id}",
    response_model=BookingDetailResponse,
    summary="Get booking detail with nested product",
)
async def get_booking(
    booking_id: uuid.UUID,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(get_current_active_user),
) -> Booking:
    result = await db.execute(
        select(Booking)
        .options(selectinload(Booking.product))
        .where(
            Booking.id == booking_id,
            or_(Booking.renter_id == current_user.id, Booking.owner_id == current_user.id),
        )
    )
    booking = result.scalar_one_or_none()
    if booking is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Booking not found",
        )
    return booking


@router.post("/{booking_id}/accept", response_model=BookingResponse, summary="Accept a rental request")
async def accept_booking(
    booking_id: uuid.UUID,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(get_current_active_user),
) -> Booking:
    """Owner accepts; the renter can then pay."""
    booking = await _get_visible_booking(booking_id, current_user, db)
    _require_owner(booking, current_user)
    try:
        return await booking_service.accept_booking(db, booking)
    except InvalidTransitionError as e:
        raise transition_http_error(e) from e


@router.post("/{booking_id}/reject", response_model=BookingResponse, summary="Reject a rental request")
async def reject_booking(
    booking_id: uuid.UUID,
    body: BookingReject | None = None,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(get_current_active_user),
) -> Booking:
    """Owner rejects; the window is released."""
    booking = await _get_visible_booking(booking_id, current_user, db)
    _require_owner(booking, current_user)
    try:
        return await booking_service.reject_booking(db, booking, body.reason if body else None)
    except InvalidTransitionError as e:
        raise transition_http_error(e) from e


@router.post("/{booking_id}/pay", response_model=PaymentIntentResponse, summary="Start payment")
async def pay_booking(
    booking_id: uuid.UUID,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(get_current_active_user),
) -> PaymentIntentResponse:
    """Create a Stripe PaymentIntent for the booking's server-side total."""
    booking = await _get_visible_booking(booking_id, current_user, db)
    _require_renter(booking, current_user)
    try:
        intent = await booking_service.start_payment(db, booking, current_user)
    except InvalidTransitionError as e:
        raise transition_http_error(e) from e

    return PaymentIntentResponse(
        booking_id=booking.id,
        payment_intent_id=intent.id,
        client_secret=intent.client_secret,
        amount=intent.amount,
        currency=intent.currency,
    )


@router.post("/{booking_id}/pickup", response_model=BookingResponse, summary="Hand the product over")
async def pickup_booking(
    booking_id: uuid.UUID,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(get_current_active_user),
) -> Booking:
    booking = await _get_visible_booking(booking_id, current_user, db)
    _require_owner(booking, current_user)
    try:
        return await booking_service.start_rental(db, booking)
    except InvalidTransitionError as e:
        raise transition_http_error(e) from e


@router.post("/{booking_id}/complete", response_model=BookingResponse, summary="Mark the product returned")
async def complete_booking(
    booking_id: uuid.UUID,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(get_current_active_user),
) -> Booking:
    """Owner confirms the return. Late returns accrue a late fee."""
    booking = await _get_visible_booking(booking_id, current_user, db)
    _require_owner(booking, current_user)
    try:
        return await booking_service.complete_booking(db, booking)
    except InvalidTransitionError as e:
        raise transition_http_error(e) from e


@router.post("/{booking_id}/cancel", response_model=BookingResponse, summary="Cancel a booking")
async def cancel_booking(
    booking_id: uuid.UUID,
    body: BookingCancel | None = None,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(get_current_active_user),
) -> Booking:
    """Either party may cancel before pickup. Paid bookings are refunded."""
    booking = await _get_visible_booking(booking_id, current_user, db)
    try:
        return await booking_service.cancel_booking(db, booking, body.reason if body else None)
    except InvalidTransitionError as e:
        raise transition_http_error(e) from e
