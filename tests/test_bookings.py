from datetime import datetime, timedelta, timezone

import pytest

from conftest import createBooking, createBus, createRoute, createTrip


@pytest.fixture
def trip(vendor):
    route = createRoute(vendor, price=100)
    bus = createBus(vendor, capacity=10)
    departure = datetime.now(timezone.utc) + timedelta(days=1)
    return createTrip(vendor, route, bus, departure, departure + timedelta(hours=5))


def seats(client, trip) -> int:
    return client.get(f"/api/trips/{trip['id']}").json()["available_seats"]


def test_create_booking(vendor, trip):
    booking = createBooking(vendor, trip, seat_count=3)
    assert booking["status"] == "pending"
    assert booking["total_price"] == 300
    assert booking["vendor_id"] == trip["vendor_id"]
    assert seats(vendor, trip) == 7

    response = vendor.get(f"/api/bookings/{booking['id']}")
    assert response.status_code == 200
    assert response.json()["customer_id"] == booking["customer_id"]


def test_inline_customer_is_reused_by_email(vendor, trip):
    first = createBooking(vendor, trip)
    second = createBooking(vendor, trip)
    assert first["customer_id"] == second["customer_id"]

    third = createBooking(vendor, trip, customer_id=first["customer_id"], customer=None)
    assert third["customer_id"] == first["customer_id"]


def test_booking_needs_a_customer(vendor, trip):
    response = vendor.post("/api/bookings", json={"trip_id": trip["id"]})
    assert response.status_code == 400

    response = vendor.post(
        "/api/bookings", json={"trip_id": trip["id"], "customer_id": 999}
    )
    assert response.status_code == 404


def test_booking_cannot_overbook(vendor, trip):
    createBooking(vendor, trip, seat_count=8)
    response = vendor.post(
        "/api/bookings",
        json={
            "trip_id": trip["id"],
            "seat_count": 3,
            "customer": {"name": "Mary Phiri", "email": "mary@example.com"},
        },
    )
    assert response.status_code == 400
    assert response.headers["X-Error"] == "InsufficientSeats"
    assert seats(vendor, trip) == 2


def test_overbooking_leaves_no_new_customer(vendor, trip, storage):
    response = vendor.post(
        "/api/bookings",
        json={
            "trip_id": trip["id"],
            "seat_count": 11,
            "customer": {"name": "Chanda Banda", "email": "chanda@example.com"},
        },
    )
    assert response.status_code == 400
    assert response.headers["X-Error"] == "InsufficientSeats"
    assert storage.getCustomerByEmail("chanda@example.com") is None
    assert seats(vendor, trip) == 10


def test_booking_on_foreign_trip(vendor, otherVendor, trip):
    response = otherVendor.post(
        "/api/bookings",
        json={
            "trip_id": trip["id"],
            "customer": {"name": "Mary Phiri", "email": "mary@example.com"},
        },
    )
    assert response.status_code == 404
    assert seats(vendor, trip) == 10


def test_booking_status_flow(vendor, trip):
    booking = createBooking(vendor, trip, seat_count=2)
    path = f"/api/bookings/{booking['id']}/status"

    assert vendor.patch(path, json={"status": "completed"}).status_code == 400
    assert vendor.patch(path, json={"status": "confirmed"}).json()["status"] == "confirmed"
    assert seats(vendor, trip) == 8

    response = vendor.patch(path, json={"status": "cancelled"})
    assert response.json()["status"] == "cancelled"
    assert seats(vendor, trip) == 10

    assert vendor.patch(path, json={"status": "confirmed"}).status_code == 400


def test_bookings_are_scoped(vendor, otherVendor, trip):
    booking = createBooking(vendor, trip)
    assert otherVendor.get(f"/api/bookings/{booking['id']}").status_code == 404
    response = otherVendor.patch(
        f"/api/bookings/{booking['id']}/status", json={"status": "cancelled"}
    )
    assert response.status_code == 404
    assert otherVendor.get("/api/bookings").json() == []
    assert vendor.get(f"/api/bookings/{booking['id']}").json()["status"] == "pending"


def test_list_and_recent_bookings(vendor, trip):
    ids = [createBooking(vendor, trip)["id"] for _ in range(3)]
    vendor.patch(f"/api/bookings/{ids[0]}/status", json={"status": "confirmed"})

    assert [b["id"] for b in vendor.get("/api/bookings").json()] == ids
    confirmed = vendor.get("/api/bookings", params={"status": "confirmed"}).json()
    assert [b["id"] for b in confirmed] == [ids[0]]

    recent = vendor.get("/api/bookings/recent", params={"limit": 2}).json()
    assert len(recent) == 2
    assert len(vendor.get("/api/bookings/recent").json()) == 3
