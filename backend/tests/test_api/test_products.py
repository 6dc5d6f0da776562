"""Tests for product endpoints: listing, moderation, availability, quotes, status."""

import uuid
from datetime import timedelta
from decimal import Decimal

from httpx import AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession

from conftest import future_window, make_booking, make_product
from renthub.database import utcnow
from renthub.models.product import Product
from renthub.models.user import User

# ---------------------------------------------------------------------------
# Owner endpoints
# ---------------------------------------------------------------------------


class TestCreateProduct:
    async def test_create_is_pending(self, client: AsyncClient, auth_headers: dict, test_user: User):
        response = await client.post(
            "/api/v1/products",
            json={
                "title": "DJI Mini 4 Pro",
                "category": "drones",
                "brand": "DJI",
                "tags": ["drone", "4k"],
                "price_per_hour": 150,
                "price_per_day": 1200,
            },
            headers=auth_headers,
        )
        assert response.status_code == 201
        data = response.json()
        assert data["status"] == "pending"
        assert data["owner_id"] == str(test_user.id)
        assert Decimal(data["price_per_day"]) == Decimal("1200")
        assert data["price_per_week"] is None

    async def test_create_without_rate_rejected(self, client: AsyncClient, auth_headers: dict):
        response = await client.post(
            "/api/v1/products",
            json={"title": "Tent", "category": "camping"},
            headers=auth_headers,
        )
        assert response.status_code == 422

    async def test_create_with_only_zero_rates_rejected(self, client: AsyncClient, auth_headers: dict):
        response = await client.post(
            "/api/v1/products",
            json={"title": "Tent", "category": "camping", "price_per_day": 0},
            headers=auth_headers,
        )
        assert response.status_code == 422

    async def test_create_requires_auth(self, client: AsyncClient):
        response = await client.post(
            "/api/v1/products",
            json={"title": "Tent", "category": "camping", "price_per_day": 100},
        )
        assert response.status_code in (401, 403)


class TestUpdateDeleteProduct:
    async def test_update_own_product(self, client: AsyncClient, auth_headers: dict, test_product: Product):
        response = await client.put(
            f"/api/v1/products/{test_product.id}",
            json={"price_per_week": 1800, "location": "Mysuru"},
            headers=auth_headers,
        )
        assert response.status_code == 200
        data = response.json()
        assert Decimal(data["price_per_week"]) == Decimal("1800")
        assert data["location"] == "Mysuru"

    async def test_update_cannot_clear_last_rate(
        self, client: AsyncClient, auth_headers: dict, test_product: Product
    ):
        response = await client.put(
            f"/api/v1/products/{test_product.id}",
            json={"price_per_day": None},
            headers=auth_headers,
        )
        assert response.status_code == 422

    async def test_update_other_users_product_is_404(
        self, client: AsyncClient, renter_headers: dict, test_product: Product
    ):
        response = await client.put(
            f"/api/v1/products/{test_product.id}",
            json={"title": "Mine now"},
            headers=renter_headers,
        )
        assert response.status_code == 404

    async def test_delete_own_product(self, client: AsyncClient, auth_headers: dict, test_product: Product):
        response = await client.delete(f"/api/v1/products/{test_product.id}", headers=auth_headers)
        assert response.status_code == 200

        response = await client.get(f"/api/v1/products/{test_product.id}")
        assert response.status_code == 404

    async def test_list_mine_includes_pending(
        self, client: AsyncClient, db_session: AsyncSession, auth_headers: dict, test_user: User
    ):
        await make_product(db_session, test_user, status="pending", price_per_hour=Decimal("20"))
        await make_product(db_session, test_user)
        response = await client.get("/api/v1/products/mine", headers=auth_headers)
        assert response.status_code == 200
        assert response.json()["total"] == 2


# ---------------------------------------------------------------------------
# Moderation
# ---------------------------------------------------------------------------


class TestModeration:
    async def test_admin_approves(
        self, client: AsyncClient, db_session: AsyncSession, admin_headers: dict, test_user: User
    ):
        product = await make_product(db_session, test_user, status="pending")
        response = await client.put(f"/api/v1/products/{product.id}/approve", headers=admin_headers)
        assert response.status_code == 200
        assert response.json()["status"] == "approved"

    async def test_admin_rejects(
        self, client: AsyncClient, db_session: AsyncSession, admin_headers: dict, test_user: User
    ):
        product = await make_product(db_session, test_user, status="pending")
        response = await client.put(f"/api/v1/products/{product.id}/reject", headers=admin_headers)
        assert response.status_code == 200
        assert response.json()["status"] == "rejected"

    async def test_non_admin_forbidden(self, client: AsyncClient, auth_headers: dict, test_product: Product):
        response = await client.put(f"/api/v1/products/{test_product.id}/approve", headers=auth_headers)
        assert response.status_code == 403


# ---------------------------------------------------------------------------
# Browse
# ---------------------------------------------------------------------------


class TestBrowse:
    async def test_only_approved_listed(
        self, client: AsyncClient, db_session: AsyncSession, test_user: User, test_product: Product
    ):
        await make_product(db_session, test_user, status="pending")
        response = await client.get("/api/v1/products")
        assert response.status_code == 200
        ids = [p["id"] for p in response.json()["items"]]
        assert ids == [str(test_product.id)]

    async def test_own_products_hidden(self, client: AsyncClient, auth_headers: dict, test_product: Product):
        response = await client.get("/api/v1/products", headers=auth_headers)
        assert response.json()["total"] == 0

    async def test_search_and_category(self, client: AsyncClient, test_product: Product):
        response = await client.get("/api/v1/products", params={"q": "canon", "category": "cameras"})
        assert response.json()["total"] == 1
        response = await client.get("/api/v1/products", params={"category": "drones"})
        assert response.json()["total"] == 0

    async def test_booked_products_filtered_by_window(
        self,
        client: AsyncClient,
        db_session: AsyncSession,
        test_product: Product,
        renter_user: User,
    ):
        start = (utcnow() + timedelta(days=10)).replace(microsecond=0)
        await make_booking(db_session, test_product, renter_user, start, start + timedelta(days=3))

        params = {"start_date": (start + timedelta(days=1)).isoformat(), "end_date": (start + timedelta(days=2)).isoformat()}
        response = await client.get("/api/v1/products", params=params)
        assert response.json()["total"] == 0

        params = {"start_date": (start + timedelta(days=3)).isoformat(), "end_date": (start + timedelta(days=4)).isoformat()}
        response = await client.get("/api/v1/products", params=params)
        assert response.json()["total"] == 1


# ---------------------------------------------------------------------------
# Availability, calendar, quote
# ---------------------------------------------------------------------------


class TestAvailability:
    async def test_free_product_available(self, client: AsyncClient, test_product: Product):
        start, end = future_window()
        response = await client.get(
            f"/api/v1/products/{test_product.id}/availability",
            params={"start_date": start, "end_date": end},
        )
        assert response.status_code == 200
        data = response.json()
        assert data["available"] is True
        assert data["next_available_date"] is None

    async def test_overlap_unavailable(
        self, client: AsyncClient, db_session: AsyncSession, test_product: Product, renter_user: User
    ):
        start = (utcnow() + timedelta(days=20)).replace(microsecond=0)
        booking = await make_booking(db_session, test_product, renter_user, start, start + timedelta(days=5))

        response = await client.get(
            f"/api/v1/products/{test_product.id}/availability",
            params={
                "start_date": (start + timedelta(days=2)).isoformat(),
                "end_date": (start + timedelta(days=3)).isoformat(),
            },
        )
        data = response.json()
        assert data["available"] is False
        assert data["conflicting_bookings"] == 1
        assert data["next_available_date"] == booking.end_date.isoformat()

    async def test_cancelled_booking_does_not_block(
        self, client: AsyncClient, db_session: AsyncSession, test_product: Product, renter_user: User
    ):
        start = (utcnow() + timedelta(days=20)).replace(microsecond=0)
        await make_booking(
            db_session, test_product, renter_user, start, start + timedelta(days=5), status="cancelled"
        )
        response = await client.get(
            f"/api/v1/products/{test_product.id}/availability",
            params={"start_date": start.isoformat(), "end_date": (start + timedelta(days=1)).isoformat()},
        )
        assert response.json()["available"] is True

    async def test_inverted_window_is_422(self, client: AsyncClient, test_product: Product):
        start, end = future_window()
        response = await client.get(
            f"/api/v1/products/{test_product.id}/availability",
            params={"start_date": end, "end_date": start},
        )
        assert response.status_code == 422

    async def test_unknown_product_404(self, client: AsyncClient):
        start, end = future_window()
        response = await client.get(
            f"/api/v1/products/{uuid.uuid4()}/availability",
            params={"start_date": start, "end_date": end},
        )
        assert response.status_code == 404


class TestCalendar:
    async def test_reserved_and_free_periods(
        self, client: AsyncClient, db_session: AsyncSession, test_product: Product, renter_user: User
    ):
        start = (utcnow() + timedelta(days=5)).replace(microsecond=0)
        await make_booking(db_session, test_product, renter_user, start, start + timedelta(days=2))

        response = await client.get(f"/api/v1/products/{test_product.id}/calendar")
        assert response.status_code == 200
        data = response.json()
        assert len(data["reserved"]) == 1
        assert len(data["free_periods"]) == 2
        assert data["free_periods"][-1]["end_date"] is None


class TestQuote:
    async def test_daily_quote(self, client: AsyncClient, test_product: Product):
        start, end = future_window(days=3)
        response = await client.post(
            f"/api/v1/products/{test_product.id}/quote",
            json={"start_date": start, "end_date": end},
        )
        assert response.status_code == 200
        data = response.json()
        assert data["rate_tier"] == "daily"
        assert data["units"] == 3
        assert Decimal(data["subtotal"]) == Decimal("900")
        assert Decimal(data["tax"]) == Decimal("162")
        assert Decimal(data["total"]) == Decimal("1062")
        assert data["currency"] == "inr"

    async def test_hourly_quote(self, client: AsyncClient, db_session: AsyncSession, test_user: User):
        product = await make_product(db_session, test_user, price_per_hour=Decimal("50"))
        start = (utcnow() + timedelta(days=2)).replace(hour=9, minute=0, second=0, microsecond=0)
        response = await client.post(
            f"/api/v1/products/{product.id}/quote",
            json={"start_date": start.isoformat(), "end_date": (start + timedelta(hours=3)).isoformat()},
        )
        data = response.json()
        assert data["rate_tier"] == "hourly"
        assert Decimal(data["subtotal"]) == Decimal("150")
        assert Decimal(data["total"]) == Decimal("177")

    async def test_timezone_aware_input_normalised(self, client: AsyncClient, test_product: Product):
        start = (utcnow() + timedelta(days=3)).replace(hour=0, minute=0, second=0, microsecond=0)
        end = start + timedelta(days=1)
        response = await client.post(
            f"/api/v1/products/{test_product.id}/quote",
            json={"start_date": start.isoformat() + "+05:30", "end_date": end.isoformat() + "+05:30"},
        )
        assert response.status_code == 200
        assert response.json()["units"] == 1

    async def test_conflict_is_409(
        self, client: AsyncClient, db_session: AsyncSession, test_product: Product, renter_user: User
    ):
        start = (utcnow() + timedelta(days=10)).replace(microsecond=0)
        booking = await make_booking(db_session, test_product, renter_user, start, start + timedelta(days=5))
        response = await client.post(
            f"/api/v1/products/{test_product.id}/quote",
            json={
                "start_date": (start + timedelta(days=1)).isoformat(),
                "end_date": (start + timedelta(days=2)).isoformat(),
            },
        )
        assert response.status_code == 409
        detail = response.json()["detail"]
        assert detail["next_available_date"] == booking.end_date.isoformat()

    async def test_past_start_is_422(self, client: AsyncClient, test_product: Product):
        start = utcnow() - timedelta(days=3)
        response = await client.post(
            f"/api/v1/products/{test_product.id}/quote",
            json={"start_date": start.isoformat(), "end_date": (start + timedelta(days=1)).isoformat()},
        )
        assert response.status_code == 422
        assert response.json()["detail"] == "Start date cannot be in the past"

    async def test_end_before_start_is_422(self, client: AsyncClient, test_product: Product):
        start, end = future_window()
        response = await client.post(
            f"/api/v1/products/{test_product.id}/quote",
            json={"start_date": end, "end_date": start},
        )
        assert response.status_code == 422


class TestBookingStatus:
    async def test_available(self, client: AsyncClient, test_product: Product):
        response = await client.get(f"/api/v1/products/booking-status/{test_product.id}")
        assert response.status_code == 200
        data = response.json()
        assert data["success"] is True
        assert data["currentStatus"] == "available"
        assert data["statusMessage"] == "This product is currently available for rent"
        assert data["totalActiveBookings"] == 0

    async def test_rented(
        self, client: AsyncClient, db_session: AsyncSession, test_product: Product, renter_user: User
    ):
        now = utcnow().replace(microsecond=0)
        end = now + timedelta(days=2)
        await make_booking(db_session, test_product, renter_user, now - timedelta(days=1), end, status="in_rental")

        response = await client.get(f"/api/v1/products/booking-status/{test_product.id}")
        data = response.json()
        assert data["currentStatus"] == "rented"
        assert data["statusMessage"] == f"Currently rented until {end.date().isoformat()}"
        assert data["currentBooking"]["status"] == "in_rental"
        assert data["nextAvailableDate"] == end.isoformat()

    async def test_preparing(
        self, client: AsyncClient, db_session: AsyncSession, test_product: Product, renter_user: User
    ):
        start = (utcnow() + timedelta(hours=5)).replace(microsecond=0)
        await make_booking(db_session, test_product, renter_user, start, start + timedelta(days=1))

        response = await client.get(f"/api/v1/products/booking-status/{test_product.id}")
        data = response.json()
        assert data["currentStatus"] == "preparing"
        assert data["nextBooking"]["status"] == "confirmed"
        assert len(data["futureBookings"]) == 1
