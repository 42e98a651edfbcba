from tests.conftest import ADMIN_EMAIL, ADMIN_PASSWORD


def test_login_sets_session_cookie(client, admin):
    response = client.post("/auth/login", json={"email": ADMIN_EMAIL, "password": ADMIN_PASSWORD})
    assert response.status_code == 200
    assert response.json()["user"]["email"] == ADMIN_EMAIL
    assert "sessionToken" in response.cookies

    me = client.get("/auth/me")
    assert me.status_code == 200
    assert me.json()["user"]["name"] == "Studio Admin"


def test_login_with_wrong_password(client, admin):
    response = client.post("/auth/login", json={"email": ADMIN_EMAIL, "password": "nope"})
    assert response.status_code == 401
    assert response.json() == {"success": False, "message": "Invalid email or password"}


def test_admin_routes_require_session(client):
    response = client.get("/admin/clients")
    assert response.status_code == 401
    assert response.json()["success"] is False


def test_inactive_admin_cannot_log_in(client, admin, db):
    admin.is_active = False
    db.commit()
    response = client.post("/auth/login", json={"email": ADMIN_EMAIL, "password": ADMIN_PASSWORD})
    assert response.status_code == 403


def test_logout_clears_cookie(admin_client):
    assert admin_client.post("/auth/logout").status_code == 200
    assert admin_client.get("/auth/me").status_code == 401


def test_health(client):
    assert client.get("/health").json() == {"status": "healthy"}
