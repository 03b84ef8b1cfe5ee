import os

os.environ.setdefault("DB_URL", "sqlite://")

import pytest
from fastapi.testclient import TestClient

from tiyende.main import createApp
from tiyende.src.constants import SESSION_COOKIE_NAME
from tiyende.src.db import makeEngine
from tiyende.src.storage import Storage


@pytest.fixture
def storage():
    storage = Storage(makeEngine("sqlite://"))
    storage.createTables()
    yield storage
    storage.close()


@pytest.fixture
def app(storage):
    return createApp(storage, sweepInterval=0)


@pytest.fixture
def client(app):
    with TestClient(app) as client:
        yield client


@pytest.fixture
def makeClient(app):
    """Factory for extra clients, each with its own cookie jar."""
    clients = []

    def factory(**kwargs):
        client = TestClient(app, **kwargs)
        clients.append(client)
        return client

    yield factory
    for client in clients:
        client.close()


def register(client: TestClient, username: str, **fields) -> dict:
    body = {
        "username": username,
        "password": f"{username}pw123",
        "name": username.capitalize(),
        "email": f"{username}@example.com",
    }
    body.update(fields)
    response = client.post("/api/register", json=body)
    assert response.status_code == 201, response.text
    assert client.cookies.get(SESSION_COOKIE_NAME)
    return response.json()


@pytest.fixture
def vendor(client):
    """Client logged in as a freshly registered vendor."""
    register(client, "alice")
    return client


@pytest.fixture
def otherVendor(makeClient):
    other = makeClient()
    register(other, "bobby")
    return other


def createRoute(client: TestClient, **fields) -> dict:
    body = {"origin": "Lusaka", "destination": "Ndola", "price": 150}
    body.update(fields)
    response = client.post("/api/routes", json=body)
    assert response.status_code == 201, response.text
    return response.json()


def createBus(client: TestClient, **fields) -> dict:
    body = {"name": "Coach 1", "registration_number": "ALB 1234", "capacity": 40}
    body.update(fields)
    response = client.post("/api/buses", json=body)
    assert response.status_code == 201, response.text
    return response.json()


def createTrip(client: TestClient, route: dict, bus: dict, departure, arrival, **fields):
    body = {
        "route_id": route["id"],
        "bus_id": bus["id"],
        "departure_time": departure.isoformat(),
        "arrival_time": arrival.isoformat(),
    }
    body.update(fields)
    response = client.post("/api/trips", json=body)
    assert response.status_code == 201, response.text
    return response.json()


def createBooking(client: TestClient, trip: dict, **fields) -> dict:
    body = {
        "trip_id": trip["id"],
        "customer": {"name": "Mary Phiri", "email": "mary@example.com"},
    }
    body.update(fields)
    response = client.post("/api/bookings", json=body)
    assert response.status_code == 201, response.text
    return response.json()
