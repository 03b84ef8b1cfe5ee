from datetime import datetime, timedelta, timezone

import pytest

from conftest import createBooking, createBus, createRoute, createTrip


@pytest.fixture
def fleet(vendor):
    route = createRoute(vendor)
    bus = createBus(vendor)
    return route, bus


def later(**delta) -> datetime:
    return datetime.now(timezone.utc) + timedelta(**delta)


def test_create_trip_defaults(vendor, fleet):
    route, bus = fleet
    trip = createTrip(vendor, route, bus, later(hours=1), later(hours=6))
    assert trip["status"] == "scheduled"
    assert trip["available_seats"] == bus["capacity"]
    assert trip["price"] == route["price"]
    assert trip["vendor_id"] == route["vendor_id"]


def test_trip_must_arrive_after_departure(vendor, fleet):
    route, bus = fleet
    response = vendor.post(
        "/api/trips",
        json={
            "route_id": route["id"],
            "bus_id": bus["id"],
            "departure_time": later(hours=1).isoformat(),
            "arrival_time": later(hours=-1).isoformat(),
        },
    )
    assert response.status_code == 400
    assert response.headers["X-Error"] == "InvalidValue"
    assert vendor.get("/api/trips").json() == []


def test_trip_seats_cannot_exceed_capacity(vendor, fleet):
    route, bus = fleet
    response = vendor.post(
        "/api/trips",
        json={
            "route_id": route["id"],
            "bus_id": bus["id"],
            "departure_time": later(hours=1).isoformat(),
            "arrival_time": later(hours=6).isoformat(),
            "available_seats": bus["capacity"] + 1,
        },
    )
    assert response.status_code == 400


def test_trip_needs_own_route_and_bus(vendor, otherVendor, fleet):
    route, bus = fleet
    response = otherVendor.post(
        "/api/trips",
        json={
            "route_id": route["id"],
            "bus_id": bus["id"],
            "departure_time": later(hours=1).isoformat(),
            "arrival_time": later(hours=6).isoformat(),
        },
    )
    assert response.status_code == 404


def test_trip_is_invisible_to_other_vendors(vendor, otherVendor, fleet):
    route, bus = fleet
    trip = createTrip(vendor, route, bus, later(hours=1), later(hours=6))
    path = f"/api/trips/{trip['id']}"

    for response in (
        otherVendor.get(path),
        otherVendor.patch(path, json={"price": 1}),
        otherVendor.patch(path, json={"status": "cancelled"}),
        otherVendor.delete(path),
    ):
        assert response.status_code == 404
        assert response.json() == {"detail": "Trip not found"}

    assert otherVendor.get("/api/trips").json() == []
    assert otherVendor.get("/api/trips/upcoming").json() == []
    unchanged = vendor.get(path).json()
    assert (unchanged["price"], unchanged["status"]) == (trip["price"], "scheduled")


def test_update_trip_rechecks_schedule(vendor, fleet):
    route, bus = fleet
    trip = createTrip(vendor, route, bus, later(hours=1), later(hours=6))

    response = vendor.patch(
        f"/api/trips/{trip['id']}", json={"arrival_time": later(minutes=30).isoformat()}
    )
    assert response.status_code == 400

    response = vendor.patch(f"/api/trips/{trip['id']}", json={"price": 99.5})
    assert response.status_code == 200
    assert response.json()["price"] == 99.5


def test_trip_status_transitions(vendor, fleet):
    route, bus = fleet
    trip = createTrip(vendor, route, bus, later(hours=1), later(hours=6))
    path = f"/api/trips/{trip['id']}"

    response = vendor.patch(path, json={"status": "completed"})
    assert response.status_code == 400
    assert response.headers["X-Error"] == "InvalidStateTransition"

    assert vendor.patch(path, json={"status": "scheduled"}).status_code == 200
    assert vendor.patch(path, json={"status": "in-progress"}).json()["status"] == "in-progress"
    assert vendor.patch(path, json={"status": "completed"}).json()["status"] == "completed"
    assert vendor.patch(path, json={"status": "cancelled"}).status_code == 400

    response = vendor.patch(path, json={"status": "delayed"})
    assert response.status_code == 400


def test_list_trips_by_status(vendor, fleet):
    route, bus = fleet
    first = createTrip(vendor, route, bus, later(hours=1), later(hours=6))
    createTrip(vendor, route, bus, later(hours=2), later(hours=7))
    vendor.patch(f"/api/trips/{first['id']}", json={"status": "cancelled"})

    cancelled = vendor.get("/api/trips", params={"status": "cancelled"}).json()
    assert [trip["id"] for trip in cancelled] == [first["id"]]
    assert len(vendor.get("/api/trips").json()) == 2


def test_upcoming_trips(vendor, fleet):
    route, bus = fleet
    for hours in (5, -3, 1, 3):
        createTrip(vendor, route, bus, later(hours=hours), later(hours=hours + 2))

    response = vendor.get("/api/trips/upcoming", params={"limit": 2})
    assert response.status_code == 200
    departures = [trip["departure_time"] for trip in response.json()]
    assert len(departures) == 2
    assert departures == sorted(departures)

    assert len(vendor.get("/api/trips/upcoming").json()) == 3
    assert vendor.get("/api/trips/upcoming", params={"limit": 0}).status_code == 400


def test_delete_trip(vendor, fleet):
    route, bus = fleet
    trip = createTrip(vendor, route, bus, later(hours=1), later(hours=6))
    booked = createTrip(vendor, route, bus, later(hours=2), later(hours=7))
    createBooking(vendor, booked)

    assert vendor.delete(f"/api/trips/{trip['id']}").status_code == 204
    response = vendor.delete(f"/api/trips/{booked['id']}")
    assert response.status_code == 400
    assert response.headers["X-Error"] == "DataInUse"

    response = vendor.delete(f"/api/buses/{bus['id']}")
    assert response.status_code == 400
