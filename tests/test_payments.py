from datetime import datetime, timedelta, timezone

import pytest

from conftest import createBooking, createBus, createRoute, createTrip


@pytest.fixture
def booking(vendor):
    route = createRoute(vendor, price=120)
    bus = createBus(vendor)
    departure = datetime.now(timezone.utc) + timedelta(days=1)
    trip = createTrip(vendor, route, bus, departure, departure + timedelta(hours=5))
    return createBooking(vendor, trip, seat_count=2)


def test_create_payment_defaults_to_booking_total(vendor, booking):
    response = vendor.post(
        "/api/payments",
        json={"booking_id": booking["id"], "payment_method": "mobile-money"},
    )
    assert response.status_code == 201
    payment = response.json()
    assert payment["amount"] == 240
    assert payment["status"] == "pending"
    assert payment["payment_method"] == "mobile-money"
    assert payment["vendor_id"] == booking["vendor_id"]

    assert vendor.get(f"/api/payments/{payment['id']}").json()["amount"] == 240


def test_payment_method_is_validated(vendor, booking):
    response = vendor.post(
        "/api/payments", json={"booking_id": booking["id"], "payment_method": "cheque"}
    )
    assert response.status_code == 400


def test_payment_needs_own_booking(vendor, otherVendor, booking):
    response = otherVendor.post(
        "/api/payments",
        json={"booking_id": booking["id"], "payment_method": "cash", "amount": 10},
    )
    assert response.status_code == 404

    response = vendor.post(
        "/api/payments", json={"booking_id": 999, "payment_method": "cash"}
    )
    assert response.status_code == 404


def test_payment_is_invisible_to_other_vendors(vendor, otherVendor, booking):
    payment = vendor.post(
        "/api/payments", json={"booking_id": booking["id"], "payment_method": "cash"}
    ).json()

    response = otherVendor.get(f"/api/payments/{payment['id']}")
    assert response.status_code == 404
    assert response.json() == otherVendor.get("/api/payments/999").json()
    assert vendor.get(f"/api/payments/{payment['id']}").status_code == 200


def test_payment_status_flow(vendor, otherVendor, booking):
    payment = vendor.post(
        "/api/payments",
        json={"booking_id": booking["id"], "payment_method": "card", "transaction_id": "TX-1"},
    ).json()
    path = f"/api/payments/{payment['id']}/status"

    assert otherVendor.patch(path, json={"status": "completed"}).status_code == 404
    assert vendor.patch(path, json={"status": "refunded"}).status_code == 400
    assert vendor.patch(path, json={"status": "failed"}).json()["status"] == "failed"
    assert vendor.patch(path, json={"status": "pending"}).json()["status"] == "pending"
    assert vendor.patch(path, json={"status": "completed"}).json()["status"] == "completed"
    assert vendor.patch(path, json={"status": "refunded"}).json()["status"] == "refunded"
    assert vendor.patch(path, json={"status": "completed"}).status_code == 400

    refunded = vendor.get("/api/payments", params={"status": "refunded"}).json()
    assert [p["id"] for p in refunded] == [payment["id"]]
    assert otherVendor.get("/api/payments").json() == []
