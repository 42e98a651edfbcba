from datetime import datetime, timedelta
from urllib.parse import parse_qs, urlparse

import pytest

from studiodesk.security_utils import generate_timed_token
from studiodesk.services.calendar_providers import PROVIDERS, TokenSet

google = PROVIDERS["google"]


@pytest.fixture
def fake_google(monkeypatch):
    calls = {"created": [], "deleted": []}

    async def exchange_code(code):
        assert code == "auth-code"
        return TokenSet("access-token", "refresh-token", 3600, "calendar.events")

    async def fetch_account(access_token):
        return {"id": "google-user", "email": "studio@gmail.com", "calendar_id": "primary"}

    async def create_event(access_token, calendar_id, event):
        calls["created"].append((access_token, calendar_id, event["summary"]))
        return "event-1"

    async def delete_event(access_token, calendar_id, event_id):
        calls["deleted"].append(event_id)

    monkeypatch.setattr(google, "exchange_code", exchange_code)
    monkeypatch.setattr(google, "fetch_account", fetch_account)
    monkeypatch.setattr(google, "create_event", create_event)
    monkeypatch.setattr(google, "delete_event", delete_event)
    return calls


def authorize_state(client):
    response = client.get("/auth/oauth/google/authorize", follow_redirects=False)
    assert response.status_code == 302
    location = urlparse(response.headers["location"])
    assert location.netloc == "accounts.google.com"
    return parse_qs(location.query)["state"][0]


def connect(client):
    state = authorize_state(client)
    return client.get(
        "/auth/oauth/google/callback",
        params={"code": "auth-code", "state": state},
        follow_redirects=False,
    )


def test_callback_stores_credential(admin_client, fake_google):
    response = connect(admin_client)
    assert response.status_code == 302
    assert "success=google_connected" in response.headers["location"]

    status = admin_client.get("/admin/oauth/status").json()["data"]
    assert status["google"]["connected"] is True
    assert status["google"]["email"] == "studio@gmail.com"
    assert status["google"]["calendarId"] == "primary"
    assert status["outlook"] == {"connected": False}


def test_callback_rejects_forged_state(client):
    response = client.get(
        "/auth/oauth/google/callback", params={"code": "x", "state": "forged"}, follow_redirects=False
    )
    assert response.status_code == 403


def test_callback_rejects_state_for_other_provider(client, admin):
    state = generate_timed_token(
        {"admin_id": admin.id, "provider": "outlook", "redirect": "http://localhost:3000"}, salt="calendar-oauth"
    )
    response = client.get(
        "/auth/oauth/google/callback", params={"code": "x", "state": state}, follow_redirects=False
    )
    assert response.status_code == 403


def test_provider_error_redirects_back(client):
    response = client.get("/auth/oauth/google/callback", params={"error": "access_denied"}, follow_redirects=False)
    assert response.status_code == 302
    assert "error=access_denied" in response.headers["location"]


def test_unknown_provider(admin_client):
    assert admin_client.get("/auth/oauth/yahoo/authorize", follow_redirects=False).status_code == 404


def test_settings_and_disconnect(admin_client, fake_google):
    connect(admin_client)
    updated = admin_client.patch("/admin/oauth/google/settings", json={"autoSync": False}).json()["data"]
    assert updated["autoSync"] is False

    assert admin_client.delete("/admin/oauth/google").status_code == 200
    assert admin_client.delete("/admin/oauth/google").status_code == 404


def test_booking_and_cancel_sync_calendar(admin_client, make_client, fake_google):
    connect(admin_client)
    client_row = make_client()
    invitation = admin_client.post(
        "/admin/appointments/invite", json={"clientId": client_row["id"], "type": "CreativeDirection"}
    ).json()["data"]
    token = invitation["bookingUrl"].rsplit("/", 1)[-1]

    day = datetime.utcnow().date() + timedelta(days=2)
    if day.weekday() == 6:
        day += timedelta(days=1)
    start = datetime(day.year, day.month, day.day, 12)
    assert admin_client.post(f"/book/{token}", json={"startTime": start.isoformat()}).status_code == 201

    assert fake_google["created"] == [("access-token", "primary", "CreativeDirection - Ada Lovelace")]
    detail = admin_client.get(f"/admin/appointments/{invitation['id']}").json()["data"]
    assert detail["calendarEventIds"] == {"google": "event-1"}

    admin_client.post(f"/admin/appointments/{invitation['id']}/cancel", json={"reason": "Illness"})
    assert fake_google["deleted"] == ["event-1"]
