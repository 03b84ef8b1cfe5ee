from conftest import createBus


def test_bus_crud(vendor):
    bus = createBus(vendor, type="Executive")
    assert bus["capacity"] == 40
    assert bus["type"] == "Executive"
    assert bus["is_active"] is True

    response = vendor.patch(f"/api/buses/{bus['id']}", json={"is_active": False})
    assert response.status_code == 200
    assert response.json()["is_active"] is False
    assert response.json()["name"] == "Coach 1"

    active = vendor.get("/api/buses", params={"is_active": "true"}).json()
    assert active == []

    assert vendor.delete(f"/api/buses/{bus['id']}").status_code == 204
    assert vendor.get(f"/api/buses/{bus['id']}").status_code == 404


def test_bus_capacity_must_be_positive(vendor):
    response = vendor.post(
        "/api/buses",
        json={"name": "Coach", "registration_number": "ALB 1", "capacity": 0},
    )
    assert response.status_code == 400
    assert response.json()["detail"][0]["loc"] == ["body", "capacity"]


def test_buses_are_scoped_to_vendor(vendor, otherVendor):
    bus = createBus(vendor)
    createBus(otherVendor, name="Other coach")

    assert [b["name"] for b in vendor.get("/api/buses").json()] == ["Coach 1"]
    assert otherVendor.get(f"/api/buses/{bus['id']}").status_code == 404
    assert otherVendor.delete(f"/api/buses/{bus['id']}").status_code == 404
    assert vendor.get(f"/api/buses/{bus['id']}").status_code == 200
