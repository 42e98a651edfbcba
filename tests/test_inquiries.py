INQUIRY = {
    "fullName": "<b>Jane</b> Doe",
    "email": "Jane@Example.com",
    "inquiryType": "WEDDING",
    "shootDescription": "Summer wedding in the Cotswolds, around 120 guests",
    "budgetMin": 1500,
    "budgetMax": 3000,
}


def submit(client, **overrides):
    response = client.post("/inquiries", json={**INQUIRY, **overrides})
    assert response.status_code == 201, response.text
    return response.json()["inquiryId"]


def test_public_submission_is_sanitised(admin_client):
    inquiry_id = submit(admin_client)
    inquiry = admin_client.get(f"/admin/inquiries/{inquiry_id}").json()["data"]
    assert inquiry["fullName"] == "Jane Doe"
    assert inquiry["email"] == "jane@example.com"
    assert inquiry["status"] == "NEW"
    assert inquiry["source"] == "website"


def test_submission_validation(client):
    short = client.post("/inquiries", json={**INQUIRY, "shootDescription": "Too short"})
    assert short.status_code == 422

    inverted = client.post("/inquiries", json={**INQUIRY, "budgetMin": 5000, "budgetMax": 100})
    assert inverted.status_code == 422


def test_status_timestamps_are_stamped_once(admin_client):
    inquiry_id = submit(admin_client)
    first = admin_client.put(f"/admin/inquiries/{inquiry_id}/status", json={"status": "CONTACTED"}).json()["data"]
    assert first["contactedAt"] is not None

    admin_client.put(f"/admin/inquiries/{inquiry_id}/status", json={"status": "QUALIFIED"})
    again = admin_client.put(f"/admin/inquiries/{inquiry_id}/status", json={"status": "CONTACTED"}).json()["data"]
    assert again["contactedAt"] == first["contactedAt"]
    assert again["qualifiedAt"] is not None


def test_convert_creates_client_once(admin_client):
    inquiry_id = submit(admin_client, company="Doe Events")
    response = admin_client.post(f"/admin/inquiries/{inquiry_id}/convert")
    assert response.status_code == 200
    data = response.json()["data"]
    assert data["clientCreated"] is True
    assert data["client"]["email"] == "jane@example.com"
    assert data["client"]["clientType"] == "business"
    assert data["inquiry"]["status"] == "CONVERTED"

    again = admin_client.post(f"/admin/inquiries/{inquiry_id}/convert")
    assert again.status_code == 400
    assert again.json()["message"] == "Inquiry is already converted to a client"


def test_convert_reuses_existing_client(admin_client, make_client):
    existing = make_client(name="Jane Doe", email="jane@example.com")
    inquiry_id = submit(admin_client)

    data = admin_client.post(f"/admin/inquiries/{inquiry_id}/convert").json()["data"]
    assert data["clientCreated"] is False
    assert data["client"]["id"] == existing["id"]


def test_list_filter_and_stats(admin_client):
    submit(admin_client)
    portrait = submit(admin_client, inquiryType="PORTRAIT", email="sam@example.com")
    admin_client.delete(f"/admin/inquiries/{portrait}")

    listing = admin_client.get("/admin/inquiries", params={"type": "WEDDING"}).json()
    assert listing["pagination"]["total"] == 1

    stats = admin_client.get("/admin/inquiries/stats").json()["data"]
    assert stats["total"] == 2
    assert stats["byStatus"]["ARCHIVED"] == 1
    assert stats["byType"]["PORTRAIT"] == 1


def test_unknown_inquiry(admin_client):
    assert admin_client.get("/admin/inquiries/42").status_code == 404
