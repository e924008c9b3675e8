"""
EventHub Backend — API Integration Tests
==========================================

What:  End-to-end HTTP tests through the FastAPI app (httpx ASGITransport).
How:   The `test_client` fixture swaps in the per-test SQLite session,
       the recording notifier and a temporary file store.

Test Strategy:
    ✅ registration → confirmation link → login
    ✅ bearer token required for booking (401 vs 403)
    ✅ one active booking per service per day (409), cancel frees the day
    ✅ error envelope: 400 validation_error, request_id, camelCase bodies
    ✅ services CRUD and the image gallery
    ✅ reviews, admin stats, health, uploaded file serving
"""

from unittest.mock import patch

import pytest

from eventhub.services.file_service import FileService


async def book(client, headers, service_id, date="2024-07-01", **extra):
    return await client.post(
        "/api/bookings", json={"serviceId": service_id, "date": date, **extra}, headers=headers
    )


# ══════════════════════════════════════════════════════════════════════════
# Accounts
# ══════════════════════════════════════════════════════════════════════════

class TestAccountFlow:
    @pytest.mark.asyncio
    async def test_register_confirm_login(self, test_client, notifier):
        response = await test_client.post(
            "/api/users",
            json={"name": "Ann", "email": "Ann@Example.com", "password": "pw-123"},
        )
        assert response.status_code == 201
        body = response.json()
        assert body["user"]["email"] == "ann@example.com"
        assert body["user"]["emailConfirmed"] is False
        assert "passwordHash" not in body["user"]
        assert "password_hash" not in body["user"]

        early = await test_client.post("/api/login", json={"email": "ann@example.com", "password": "pw-123"})
        assert early.status_code == 403
        assert early.json()["error"] == "forbidden"

        confirm_url = notifier.email_confirmations[0]["confirm_url"]
        token = confirm_url.split("token=", 1)[1]
        confirmed = await test_client.get("/api/confirm-email", params={"token": token})
        assert confirmed.status_code == 200

        login = await test_client.post("/api/login", json={"email": "ann@example.com", "password": "pw-123"})
        assert login.status_code == 200
        assert login.json()["email"] == "ann@example.com"
        assert login.json()["token"]

    @pytest.mark.asyncio
    async def test_duplicate_registration_conflict(self, test_client, user_factory):
        await user_factory(email="taken@example.com")

        response = await test_client.post(
            "/api/users",
            json={"name": "Again", "email": "TAKEN@example.com", "password": "pw"},
        )

        assert response.status_code == 409
        assert response.json()["error"] == "conflict"

    @pytest.mark.asyncio
    async def test_register_missing_email_is_400(self, test_client):
        response = await test_client.post("/api/users", json={"name": "Ann", "password": "pw"})

        assert response.status_code == 400
        body = response.json()
        assert body["error"] == "validation_error"
        assert "email" in body["message"]

    @pytest.mark.asyncio
    async def test_confirm_unknown_token(self, test_client):
        response = await test_client.get("/api/confirm-email", params={"token": "nope"})

        assert response.status_code == 400

    @pytest.mark.asyncio
    async def test_wrong_password(self, test_client, user_factory):
        await user_factory(email="ben@example.com")

        response = await test_client.post("/api/login", json={"email": "ben@example.com", "password": "wrong"})

        assert response.status_code == 401
        assert response.json()["error"] == "unauthorized"

    @pytest.mark.asyncio
    async def test_list_users_hides_secrets(self, test_client, user_factory):
        await user_factory(name="Cleo")

        users = (await test_client.get("/api/users")).json()

        assert [u["name"] for u in users] == ["Cleo"]
        assert set(users[0]) == {"id", "name", "email", "role", "emailConfirmed", "createdAt"}


# ══════════════════════════════════════════════════════════════════════════
# Bookings
# ══════════════════════════════════════════════════════════════════════════

class TestBookingAuth:
    @pytest.mark.asyncio
    async def test_missing_token_unauthorized(self, test_client, service_factory):
        service = await service_factory()

        response = await book(test_client, {}, service.id)

        assert response.status_code == 401
        assert response.headers["www-authenticate"] == "Bearer"

    @pytest.mark.asyncio
    async def test_garbage_token_forbidden(self, test_client, service_factory):
        service = await service_factory()

        response = await book(test_client, {"Authorization": "Bearer garbage"}, service.id)

        assert response.status_code == 403


class TestBookingFlow:
    @pytest.mark.asyncio
    async def test_one_booking_per_day(self, test_client, auth_headers, service_factory, notifier):
        service = await service_factory(price=25000)

        first = await book(test_client, auth_headers, service.id, date="2024-07-01T15:30:00Z")
        assert first.status_code == 201
        booking = first.json()
        assert booking["price"] == 25000
        assert booking["status"] == "confirmed"
        assert booking["serviceId"] == service.id
        assert booking["date"].startswith("2024-07-01T00:00:00")

        taken = await test_client.get(f"/api/availability/{service.id}/2024-07-01")
        free = await test_client.get(f"/api/availability/{service.id}/2024-07-02")
        assert taken.json()["available"] is False
        assert free.json()["available"] is True

        second = await book(test_client, auth_headers, service.id, date="2024-07-01")
        assert second.status_code == 409
        assert second.json()["error"] == "conflict"

        assert len(notifier.booking_confirmations) == 1
        assert notifier.booking_confirmations[0]["date_label"] == "2024-07-01"

    @pytest.mark.asyncio
    async def test_cancel_frees_the_day(self, test_client, auth_headers, service_factory):
        service = await service_factory()
        booking_id = (await book(test_client, auth_headers, service.id)).json()["id"]

        cancelled = await test_client.patch(f"/api/bookings/{booking_id}", json={"status": "cancelled"})
        assert cancelled.status_code == 200
        assert cancelled.json()["status"] == "cancelled"

        again = await book(test_client, auth_headers, service.id)
        assert again.status_code == 201

        # The old booking cannot come back while the new one holds the day
        revived = await test_client.patch(f"/api/bookings/{booking_id}", json={"status": "confirmed"})
        assert revived.status_code == 409

    @pytest.mark.asyncio
    async def test_missing_service_id(self, test_client, auth_headers):
        response = await test_client.post("/api/bookings", json={"date": "2024-07-01"}, headers=auth_headers)

        assert response.status_code == 400
        assert response.json()["message"] == "serviceId is required"

    @pytest.mark.asyncio
    async def test_unknown_service(self, test_client, auth_headers):
        response = await book(test_client, auth_headers, 9999)

        assert response.status_code == 404

    @pytest.mark.asyncio
    async def test_bad_availability_date(self, test_client, service_factory):
        service = await service_factory()

        response = await test_client.get(f"/api/availability/{service.id}/not-a-date")

        assert response.status_code == 400

    @pytest.mark.asyncio
    @pytest.mark.parametrize("date", ["9999-12-31", "0001-01-01T00:00:00+05:00"])
    async def test_calendar_edge_dates_are_400(self, test_client, auth_headers, service_factory, date):
        service = await service_factory()

        checked = await test_client.get(f"/api/availability/{service.id}/{date}")
        booked = await book(test_client, auth_headers, service.id, date=date)

        assert checked.status_code == 400
        assert checked.json()["error"] == "validation_error"
        assert booked.status_code == 400
        assert booked.json()["error"] == "validation_error"

    @pytest.mark.asyncio
    async def test_list_and_get_include_user_and_service(self, test_client, auth_headers, service_factory):
        hall = await service_factory(name="Hall")
        band = await service_factory(name="Band", category="music")
        await book(test_client, auth_headers, hall.id, date="2024-07-01")
        created = (await book(test_client, auth_headers, band.id, date="2024-07-05")).json()

        everything = (await test_client.get("/api/bookings")).json()
        for_band = (await test_client.get("/api/bookings", params={"serviceId": band.id})).json()
        mine = (await test_client.get("/api/bookings", params={"userId": created["userId"]})).json()
        detail = (await test_client.get(f"/api/bookings/{created['id']}")).json()

        assert [b["service"]["name"] for b in everything] == ["Band", "Hall"]
        assert [b["id"] for b in for_band] == [created["id"]]
        assert len(mine) == 2
        assert detail["user"]["email"] == "booker@example.com"
        assert detail["service"]["name"] == "Band"

    @pytest.mark.asyncio
    async def test_unknown_status_rejected(self, test_client, auth_headers, service_factory):
        service = await service_factory()
        booking_id = (await book(test_client, auth_headers, service.id)).json()["id"]

        response = await test_client.patch(f"/api/bookings/{booking_id}", json={"status": "pending"})

        assert response.status_code == 400


# ══════════════════════════════════════════════════════════════════════════
# Services & gallery
# ══════════════════════════════════════════════════════════════════════════

SERVICE_BODY = {
    "name": "Riverside Barn",
    "category": "venue",
    "description": "Rustic barn by the river",
    "price": 18000,
    "location": "Riverside",
}


class TestServicesApi:
    @pytest.mark.asyncio
    async def test_crud(self, test_client):
        created = await test_client.post("/api/services", json=SERVICE_BODY)
        assert created.status_code == 201
        service = created.json()
        assert service["reviewCount"] == 0
        assert service["images"] == []

        patched = await test_client.patch(f"/api/services/{service['id']}", json={"featured": True})
        assert patched.json()["featured"] is True
        assert patched.json()["price"] == 18000

        featured = (await test_client.get("/api/services", params={"featured": "true"})).json()
        assert [s["id"] for s in featured] == [service["id"]]

        deleted = await test_client.delete(f"/api/services/{service['id']}")
        assert deleted.status_code == 204
        assert (await test_client.get(f"/api/services/{service['id']}")).status_code == 404

    @pytest.mark.asyncio
    async def test_create_missing_name(self, test_client):
        body = {k: v for k, v in SERVICE_BODY.items() if k != "name"}

        response = await test_client.post("/api/services", json=body)

        assert response.status_code == 400
        assert response.json()["error"] == "validation_error"

    @pytest.mark.asyncio
    async def test_delete_with_booking_refused(self, test_client, auth_headers, service_factory):
        service = await service_factory()
        await book(test_client, auth_headers, service.id)

        response = await test_client.delete(f"/api/services/{service.id}")

        assert response.status_code == 400
        assert (await test_client.get(f"/api/services/{service.id}")).status_code == 200

    @pytest.mark.asyncio
    async def test_upload_serve_reorder_remove(self, test_client, service_factory, sample_image_bytes):
        service = await service_factory()
        files = [
            ("files", ("first.jpg", sample_image_bytes, "image/jpeg")),
            ("files", ("second.jpg", sample_image_bytes, "image/jpeg")),
        ]

        with patch.object(FileService, "validate_mime_type", return_value="image/jpeg"):
            uploaded = await test_client.post(f"/api/services/{service.id}/images", files=files)
        assert uploaded.status_code == 200
        first, second = uploaded.json()["images"]
        assert uploaded.json()["image"] == first

        served = await test_client.get(first)
        assert served.status_code == 200
        assert served.content == sample_image_bytes

        reordered = await test_client.put(
            f"/api/services/{service.id}/images/order", json={"images": [second, first]}
        )
        assert reordered.json()["images"] == [second, first]

        name = first.rsplit("/", 1)[1]
        removed = await test_client.delete(f"/api/services/{service.id}/images/{name}")
        assert removed.status_code == 200
        assert removed.json()["images"] == [second]
        assert (await test_client.get(first)).status_code == 404

    @pytest.mark.asyncio
    async def test_gallery_cap(self, test_client, service_factory, sample_image_bytes):
        service = await service_factory(images=[f"https://cdn.example/{i}.jpg" for i in range(4)])

        response = await test_client.post(
            f"/api/services/{service.id}/images",
            files=[("files", ("extra.jpg", sample_image_bytes, "image/jpeg"))],
        )

        assert response.status_code == 400
        assert "at most 4" in response.json()["message"]

    @pytest.mark.asyncio
    async def test_file_path_traversal(self, test_client):
        response = await test_client.get("/api/files/..%2F..%2Fetc%2Fpasswd")

        assert response.status_code in (400, 404)


# ══════════════════════════════════════════════════════════════════════════
# Reviews, admin, health
# ══════════════════════════════════════════════════════════════════════════

class TestReviewsApi:
    @pytest.mark.asyncio
    async def test_post_and_list(self, test_client, auth_headers, service_factory):
        service = await service_factory(name="Hall")

        created = await test_client.post(
            "/api/reviews",
            json={"serviceId": service.id, "rating": 5, "comment": "Perfect evening"},
            headers=auth_headers,
        )
        assert created.status_code == 201
        assert created.json()["user"]["email"] == "booker@example.com"
        assert created.json()["service"]["name"] == "Hall"

        listed = (await test_client.get(f"/api/services/{service.id}/reviews")).json()
        filtered = (await test_client.get("/api/reviews", params={"serviceId": service.id})).json()
        assert [r["comment"] for r in listed] == ["Perfect evening"]
        assert filtered == listed

        refreshed = (await test_client.get(f"/api/services/{service.id}")).json()
        assert refreshed["reviewCount"] == 1
        assert refreshed["rating"] == 5.0

    @pytest.mark.asyncio
    async def test_review_requires_token(self, test_client, service_factory):
        service = await service_factory()

        response = await test_client.post("/api/reviews", json={"serviceId": service.id, "rating": 4})

        assert response.status_code == 401

    @pytest.mark.asyncio
    async def test_rating_out_of_range(self, test_client, auth_headers, service_factory):
        service = await service_factory()

        response = await test_client.post(
            "/api/reviews", json={"serviceId": service.id, "rating": 9}, headers=auth_headers
        )

        assert response.status_code == 400


class TestAdminAndHealth:
    @pytest.mark.asyncio
    async def test_stats(self, test_client, auth_headers, service_factory):
        hall = await service_factory(name="Hall", price=25000)
        await service_factory(name="Band", price=5000)
        await book(test_client, auth_headers, hall.id, date="2024-07-01")
        cancelled = (await book(test_client, auth_headers, hall.id, date="2024-07-02")).json()
        await test_client.patch(f"/api/bookings/{cancelled['id']}", json={"status": "cancelled"})

        stats = (await test_client.get("/api/admin/stats")).json()

        assert stats["totalBookings"] == 2
        assert stats["totalRevenue"] == 25000
        assert stats["cancelledValue"] == 25000
        assert stats["bookingsByStatus"] == {"confirmed": 1, "cancelled": 1}
        assert stats["topServices"] == [{"serviceId": hall.id, "name": "Hall", "bookingCount": 2}]
        assert stats["totalServices"] == 2

    @pytest.mark.asyncio
    async def test_health(self, test_client):
        response = await test_client.get("/health")

        assert response.status_code == 200
        assert response.json()["status"] == "healthy"
        assert response.json()["database"] == "connected"

    @pytest.mark.asyncio
    async def test_request_id_round_trip(self, test_client):
        response = await test_client.get("/api/services/424242", headers={"X-Request-ID": "trace-abc"})

        assert response.status_code == 404
        assert response.headers["x-request-id"] == "trace-abc"
        assert response.json()["request_id"] == "trace-abc"

    @pytest.mark.asyncio
    async def test_generated_request_id(self, test_client):
        response = await test_client.get("/health")

        assert len(response.headers["x-request-id"]) == 8