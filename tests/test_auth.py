from conftest import register

from tiyende.src.constants import SESSION_COOKIE_NAME


def test_register_hides_password_and_opens_session(client):
    vendor = register(client, "alice", phone="+260977123456", city="Lusaka")
    assert "password" not in vendor
    assert vendor["id"] == 1
    assert vendor["username"] == "alice"
    assert vendor["city"] == "Lusaka"
    assert vendor["phone"].startswith("tel:+260")

    response = client.get("/api/vendor")
    assert response.status_code == 200
    assert response.json()["username"] == "alice"


def test_register_stores_a_password_hash(client, storage):
    register(client, "alice")
    stored = storage.getVendorByUsername("alice")
    assert stored.password != "alicepw123"
    assert stored.password.startswith("$argon2")


def test_register_duplicate_username_or_email(client, makeClient):
    register(client, "alice")
    other = makeClient()

    response = other.post(
        "/api/register",
        json={
            "username": "alice",
            "password": "secret123",
            "name": "Another",
            "email": "another@example.com",
        },
    )
    assert response.status_code == 400
    assert response.headers["X-Error"] == "DuplicateIdentity"
    assert "username" in response.json()["detail"]

    response = other.post(
        "/api/register",
        json={
            "username": "another",
            "password": "secret123",
            "name": "Another",
            "email": "alice@example.com",
        },
    )
    assert response.status_code == 400
    assert "email" in response.json()["detail"]


def test_register_race_reports_duplicate_identity(
    client, makeClient, storage, monkeypatch
):
    register(client, "alice")
    # A concurrent registration passes the lookups before the first one commits
    monkeypatch.setattr(storage, "getVendorByUsername", lambda username: None)
    monkeypatch.setattr(storage, "getVendorByEmail", lambda email: None)
    other = makeClient()

    response = other.post(
        "/api/register",
        json={
            "username": "alice",
            "password": "secret123",
            "name": "Another",
            "email": "another@example.com",
        },
    )
    assert response.status_code == 400
    assert response.headers["X-Error"] == "DuplicateIdentity"
    assert "username" in response.json()["detail"]

    response = other.post(
        "/api/register",
        json={
            "username": "another",
            "password": "secret123",
            "name": "Another",
            "email": "alice@example.com",
        },
    )
    assert response.status_code == 400
    assert response.headers["X-Error"] == "DuplicateIdentity"
    assert "email" in response.json()["detail"]
    assert storage.getVendor(2) is None


def test_register_rejects_invalid_body(client):
    response = client.post(
        "/api/register",
        json={"username": "alice", "password": "alicepw123", "email": "not-an-email"},
    )
    assert response.status_code == 400
    fields = {error["loc"][-1] for error in response.json()["detail"]}
    assert {"name", "email"} <= fields


def test_login(client, makeClient):
    register(client, "alice")
    other = makeClient()

    response = other.post("/api/login", json={"username": "alice", "password": "wrong-pw"})
    assert response.status_code == 401
    assert response.headers["X-Error"] == "InvalidCredentials"

    response = other.post("/api/login", json={"username": "nobody", "password": "wrong-pw"})
    assert response.status_code == 401

    response = other.post(
        "/api/login", json={"username": "alice", "password": "alicepw123"}
    )
    assert response.status_code == 200
    assert "password" not in response.json()
    assert other.cookies.get(SESSION_COOKIE_NAME)
    assert other.get("/api/vendor").status_code == 200


def test_requests_without_session_are_unauthorized(client):
    for path in ("/api/vendor", "/api/profile", "/api/routes", "/api/dashboard/stats"):
        response = client.get(path)
        assert response.status_code == 401
        assert response.headers["X-Error"] == "Unauthorized"


def test_unknown_session_cookie_is_unauthorized(client):
    client.cookies.set(SESSION_COOKIE_NAME, "0" * 64)
    assert client.get("/api/vendor").status_code == 401


def test_logout_ends_session(vendor):
    token = vendor.cookies.get(SESSION_COOKIE_NAME)
    response = vendor.post("/api/logout")
    assert response.status_code == 200
    assert vendor.get("/api/vendor").status_code == 401

    # A stolen cookie is useless after logout
    vendor.cookies.set(SESSION_COOKIE_NAME, token)
    assert vendor.get("/api/vendor").status_code == 401

    # Logging out twice is harmless
    assert vendor.post("/api/logout").status_code == 200


def test_profile_update(vendor, otherVendor):
    response = vendor.patch(
        "/api/profile",
        json={
            "name": "Alice Mwale",
            "company_name": "Mwale Coaches",
            "password": "hijack123",
            "username": "mallory",
        },
    )
    assert response.status_code == 200
    profile = response.json()
    assert profile["name"] == "Alice Mwale"
    assert profile["company_name"] == "Mwale Coaches"
    assert profile["username"] == "alice"
    assert profile["updated_on"] is not None

    # Old password still works
    response = vendor.post("/api/login", json={"username": "alice", "password": "alicepw123"})
    assert response.status_code == 200

    response = vendor.patch("/api/profile", json={"email": "bobby@example.com"})
    assert response.status_code == 400
    assert response.headers["X-Error"] == "DuplicateIdentity"

    assert vendor.get("/api/profile").json()["name"] == "Alice Mwale"


def test_change_password(vendor, makeClient, storage):
    second = makeClient()
    second.post("/api/login", json={"username": "alice", "password": "alicepw123"})
    assert second.get("/api/vendor").status_code == 200

    response = vendor.post(
        "/api/profile/change-password",
        json={"current_password": "wrong-pw", "new_password": "newsecret1"},
    )
    assert response.status_code == 401

    response = vendor.post(
        "/api/profile/change-password",
        json={"current_password": "alicepw123", "new_password": "newsecret1"},
    )
    assert response.status_code == 200

    # Other sessions are closed, the current one survives
    assert second.get("/api/vendor").status_code == 401
    assert vendor.get("/api/vendor").status_code == 200

    response = second.post("/api/login", json={"username": "alice", "password": "alicepw123"})
    assert response.status_code == 401
    response = second.post("/api/login", json={"username": "alice", "password": "newsecret1"})
    assert response.status_code == 200
