"""Tests for the rooms API: search, detail, availability and admin management."""

import uuid
from datetime import date, timedelta
from decimal import Decimal

import pytest
from httpx import AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession

from booka.models.room import Room
from conftest import make_room

pytestmark = pytest.mark.asyncio


def _future(days: int) -> str:
    return (date.today() + timedelta(days=days)).isoformat()


class TestSearchRooms:
    """GET /api/v1/rooms."""

    async def test_filters_and_ordering(self, client: AsyncClient, db_session: AsyncSession):
        town = f"Town-{uuid.uuid4().hex[:6]}"
        cheap = await make_room(db_session, location=town, price_per_night=Decimal("80.00"), capacity=2)
        dear = await make_room(db_session, location=town, price_per_night=Decimal("150.00"), capacity=4)
        await make_room(db_session, location=town, status="unavailable")
        cheap_id, dear_id = str(cheap.id), str(dear.id)

        response = await client.get("/api/v1/rooms", params={"location": town.lower()})
        assert response.status_code == 200
        data = response.json()
        assert data["total"] == 2
        assert [item["id"] for item in data["items"]] == [cheap_id, dear_id]
        assert data["items"][0]["nights"] is None

        response = await client.get("/api/v1/rooms", params={"location": town, "capacity": 3})
        assert [item["id"] for item in response.json()["items"]] == [dear_id]

        response = await client.get("/api/v1/rooms", params={"location": town, "max_price": "100"})
        assert [item["id"] for item in response.json()["items"]] == [cheap_id]

    async def test_amenities_must_all_match(self, client: AsyncClient, db_session: AsyncSession):
        town = f"Town-{uuid.uuid4().hex[:6]}"
        both = await make_room(db_session, location=town, amenities={"wifi": True, "pool": True})
        await make_room(db_session, location=town, amenities={"wifi": True, "pool": False})
        await make_room(db_session, location=town, amenities={"wifi": True})
        both_id = str(both.id)

        response = await client.get("/api/v1/rooms", params={"location": town, "amenities": "wifi, Pool"})
        assert [item["id"] for item in response.json()["items"]] == [both_id]

    async def test_date_search_excludes_booked_rooms(
        self, client: AsyncClient, auth_headers: dict, db_session: AsyncSession
    ):
        town = f"Town-{uuid.uuid4().hex[:6]}"
        booked = await make_room(db_session, location=town)
        free = await make_room(db_session, location=town)
        booked_id, free_id = str(booked.id), str(free.id)

        created = await client.post(
            "/api/v1/bookings",
            json={"room_id": booked_id, "check_in": _future(30), "check_out": _future(35)},
            headers=auth_headers,
        )
        assert created.status_code == 201

        response = await client.get(
            "/api/v1/rooms",
            params={"location": town, "date_from": _future(32), "date_to": _future(34)},
        )
        data = response.json()
        assert [item["id"] for item in data["items"]] == [free_id]
        assert data["items"][0]["nights"] == 2
        assert data["items"][0]["estimated_total_price"] == "200.00"

        # A stay starting on the check-out day does not overlap
        response = await client.get(
            "/api/v1/rooms",
            params={"location": town, "date_from": _future(35), "date_to": _future(36)},
        )
        assert response.json()["total"] == 2

    async def test_past_dates_return_nothing(self, client: AsyncClient, test_room: Room):
        response = await client.get("/api/v1/rooms", params={"date_from": _future(-3), "date_to": _future(2)})
        assert response.status_code == 200
        assert response.json()["items"] == []

    async def test_single_date_rejected(self, client: AsyncClient):
        response = await client.get("/api/v1/rooms", params={"date_from": _future(3)})
        assert response.status_code == 422
        assert response.json()["code"] == "VALIDATION_ERROR"


class TestGetRoom:
    """GET /api/v1/rooms/{id}."""

    async def test_get_room(self, client: AsyncClient, test_room: Room):
        room_id = str(test_room.id)
        response = await client.get(f"/api/v1/rooms/{room_id}")
        assert response.status_code == 200
        assert response.json()["id"] == room_id
        assert response.json()["amenities"] == {"wifi": True, "ac": True}

    async def test_unknown_room(self, client: AsyncClient):
        response = await client.get(f"/api/v1/rooms/{uuid.uuid4()}")
        assert response.status_code == 404
        assert response.json() == {"detail": "Room not found", "code": "ROOM_NOT_FOUND"}


class TestAvailability:
    """GET /api/v1/rooms/{id}/availability."""

    async def test_free_room(self, client: AsyncClient, test_room: Room):
        room_id = str(test_room.id)
        response = await client.get(
            f"/api/v1/rooms/{room_id}/availability",
            params={"date_from": _future(10), "date_to": _future(13)},
        )
        assert response.status_code == 200
        data = response.json()
        assert data["available"] is True
        assert data["conflicting_bookings"] == 0
        assert data["nights"] == 3
        assert data["total_price"] == "300.00"

    async def test_booked_room(self, client: AsyncClient, auth_headers: dict, test_room: Room):
        room_id = str(test_room.id)
        await client.post(
            "/api/v1/bookings",
            json={"room_id": room_id, "check_in": _future(10), "check_out": _future(15)},
            headers=auth_headers,
        )

        response = await client.get(
            f"/api/v1/rooms/{room_id}/availability",
            params={"date_from": _future(12), "date_to": _future(20)},
        )
        data = response.json()
        assert data["available"] is False
        assert data["conflicting_bookings"] == 1
        assert data["total_price"] is None

    async def test_unavailable_room(self, client: AsyncClient, db_session: AsyncSession):
        room = await make_room(db_session, status="unavailable")
        response = await client.get(
            f"/api/v1/rooms/{room.id}/availability",
            params={"date_from": _future(10), "date_to": _future(12)},
        )
        assert response.json()["available"] is False

    async def test_past_stay_unavailable(self, client: AsyncClient, test_room: Room):
        response = await client.get(
            f"/api/v1/rooms/{test_room.id}/availability",
            params={"date_from": _future(-2), "date_to": _future(1)},
        )
        assert response.status_code == 200
        assert response.json()["available"] is False

    async def test_inverted_range(self, client: AsyncClient, test_room: Room):
        response = await client.get(
            f"/api/v1/rooms/{test_room.id}/availability",
            params={"date_from": _future(5), "date_to": _future(5)},
        )
        assert response.status_code == 422
        assert response.json()["code"] == "VALIDATION_ERROR"

    async def test_malformed_query_date(self, client: AsyncClient, test_room: Room):
        response = await client.get(
            f"/api/v1/rooms/{test_room.id}/availability",
            params={"date_from": "not-a-date", "date_to": _future(5)},
        )
        assert response.status_code == 422
        body = response.json()
        assert body["code"] == "VALIDATION_ERROR"
        assert body["detail"].startswith("date_from: ")


class TestAdminRooms:
    """POST and PUT /api/v1/rooms."""

    async def test_admin_creates_room(self, client: AsyncClient, admin_headers: dict):
        response = await client.post(
            "/api/v1/rooms",
            json={
                "name": "Sea Suite",
                "location": "Faro, Portugal",
                "capacity": 3,
                "price_per_night": "210.50",
                "amenities": {"wifi": True, "sea_view": True},
            },
            headers=admin_headers,
        )
        assert response.status_code == 201
        data = response.json()
        assert data["status"] == "available"
        assert data["price_per_night"] == "210.50"
        assert data["images"] == []

    async def test_guest_cannot_create_room(self, client: AsyncClient, auth_headers: dict):
        response = await client.post(
            "/api/v1/rooms",
            json={"name": "Nope", "location": "Nowhere", "capacity": 1, "price_per_night": "10.00"},
            headers=auth_headers,
        )
        assert response.status_code == 403

    async def test_admin_updates_room(self, client: AsyncClient, admin_headers: dict, test_room: Room):
        room_id = str(test_room.id)
        response = await client.put(
            f"/api/v1/rooms/{room_id}",
            json={"status": "unavailable", "price_per_night": "120.00"},
            headers=admin_headers,
        )
        assert response.status_code == 200
        data = response.json()
        assert data["status"] == "unavailable"
        assert data["price_per_night"] == "120.00"
        assert data["name"] == test_room.name

    async def test_update_unknown_room(self, client: AsyncClient, admin_headers: dict):
        response = await client.put(
            f"/api/v1/rooms/{uuid.uuid4()}",
            json={"capacity": 2},
            headers=admin_headers,
        )
        assert response.status_code == 404

    async def test_invalid_status_rejected(self, client: AsyncClient, admin_headers: dict, test_room: Room):
        response = await client.put(
            f"/api/v1/rooms/{test_room.id}",
            json={"status": "demolished"},
            headers=admin_headers,
        )
        assert response.status_code == 422
