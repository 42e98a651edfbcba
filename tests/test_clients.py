def test_create_and_get_client(admin_client, make_client):
    created = make_client(email="Ada@Example.com", country="gb", tags=[" vip ", "wedding", "vip"])
    assert created["email"] == "ada@example.com"
    assert created["country"] == "GB"
    assert created["status"] == "ACTIVE"

    fetched = admin_client.get(f"/admin/clients/{created['id']}").json()["data"]
    assert fetched["name"] == "Ada Lovelace"


def test_duplicate_email_conflicts(admin_client, make_client):
    make_client()
    response = admin_client.post("/admin/clients", json={"name": "Other", "email": "ADA@example.com"})
    assert response.status_code == 409
    assert response.json()["message"] == "A client with this email already exists"


def test_invalid_email_fails_validation(admin_client):
    response = admin_client.post("/admin/clients", json={"name": "Bad", "email": "not-an-email"})
    assert response.status_code == 422
    body = response.json()
    assert body["success"] is False
    assert body["message"] == "Validation failed"


def test_archive_hides_client_from_default_list(admin_client, make_client):
    kept = make_client()
    archived = make_client(name="Grace Hopper", email="grace@example.com")

    assert admin_client.delete(f"/admin/clients/{archived['id']}").status_code == 200

    listing = admin_client.get("/admin/clients").json()
    assert [c["id"] for c in listing["data"]] == [kept["id"]]
    assert listing["pagination"]["total"] == 1

    with_archived = admin_client.get("/admin/clients", params={"includeArchived": True}).json()
    assert {c["id"] for c in with_archived["data"]} == {kept["id"], archived["id"]}

    fetched = admin_client.get(f"/admin/clients/{archived['id']}").json()["data"]
    assert fetched["status"] == "ARCHIVED"


def test_search_and_update(admin_client, make_client):
    ada = make_client(company="Analytical Engines")
    make_client(name="Grace Hopper", email="grace@example.com")

    found = admin_client.get("/admin/clients", params={"search": "analytical"}).json()["data"]
    assert [c["id"] for c in found] == [ada["id"]]

    response = admin_client.put(f"/admin/clients/{ada['id']}", json={"phone": "+44 20 7946 0958"})
    assert response.status_code == 200
    assert response.json()["data"]["phone"] == "+442079460958"

    actions = [entry["action"] for entry in admin_client.get(f"/admin/clients/{ada['id']}/audit-log").json()["data"]]
    assert "CREATE" in actions and "UPDATE" in actions


def test_missing_client_is_404(admin_client):
    response = admin_client.get("/admin/clients/999")
    assert response.status_code == 404
    assert response.json()["message"] == "Client not found"


def test_stats_count_by_status(admin_client, make_client):
    make_client()
    other = make_client(name="Grace Hopper", email="grace@example.com")
    admin_client.patch(f"/admin/clients/{other['id']}/status", json={"status": "INACTIVE"})

    stats = admin_client.get("/admin/clients/stats").json()["data"]
    assert stats["total"] == 2
    assert stats["active"] == 1
    assert stats["byStatus"]["INACTIVE"] == 1


def test_export_csv(admin_client, make_client):
    make_client()
    response = admin_client.get("/admin/clients/export")
    assert response.status_code == 200
    assert response.headers["content-type"].startswith("text/csv")
    assert "ada@example.com" in response.text
