from datetime import datetime, timedelta

import pytest

from studiodesk.models_appointments import Appointment


def next_workday(days_ahead: int = 2) -> datetime:
    day = datetime.utcnow().date() + timedelta(days=days_ahead)
    if day.weekday() == 6:
        day += timedelta(days=1)
    return datetime(day.year, day.month, day.day)


@pytest.fixture
def invitation(admin_client, make_client):
    client = make_client()
    response = admin_client.post(
        "/admin/appointments/invite",
        json={"clientId": client["id"], "type": "Introduction", "duration": 60},
    )
    assert response.status_code == 201, response.text
    data = response.json()["data"]
    data["token"] = data["bookingUrl"].rsplit("/", 1)[-1]
    return data


def book(client, token, start):
    return client.post(f"/book/{token}", json={"startTime": start.isoformat(), "name": "Ada"})


def test_invitation_is_sent(invitation):
    assert invitation["status"] == "InviteSent"
    assert invitation["inviteExpiresAt"] is not None


def test_public_invite_lists_available_dates(client, invitation):
    response = client.get(f"/book/{invitation['token']}")
    assert response.status_code == 200
    info = response.json()["data"]
    assert info["appointmentId"] == invitation["id"]
    assert info["availableDates"]
    for item in info["availableTimes"]:
        hour = int(item["startTime"].split(":")[0])
        assert 11 <= hour < 16


def test_booking_flow_and_token_reuse(admin_client, invitation):
    start = next_workday().replace(hour=12)
    response = book(admin_client, invitation["token"], start)
    assert response.status_code == 201, response.text
    assert response.json()["data"]["status"] == "Booked"

    again = book(admin_client, invitation["token"], start)
    assert again.status_code == 410
    assert again.json()["message"] == "This invitation has already been used"

    detail = admin_client.get(f"/admin/appointments/{invitation['id']}").json()["data"]
    assert [entry["action"] for entry in detail["auditLog"]] == ["INVITE", "BOOK"]


def test_booking_rejects_slot_inside_buffer(admin_client, make_client, invitation):
    start = next_workday().replace(hour=13)
    assert book(admin_client, invitation["token"], start).status_code == 201

    other = admin_client.post(
        "/admin/appointments/invite",
        json={"clientId": invitation["clientId"], "type": "Introduction"},
    ).json()["data"]
    token = other["bookingUrl"].rsplit("/", 1)[-1]

    rejected = book(admin_client, token, start.replace(hour=12, minute=45))
    assert rejected.status_code == 400
    assert rejected.json()["message"] == "This time slot is no longer available"

    accepted = book(admin_client, token, start.replace(hour=14, minute=15))
    assert accepted.status_code == 201


def test_booking_outside_working_hours(admin_client, invitation):
    response = book(admin_client, invitation["token"], next_workday().replace(hour=9))
    assert response.status_code == 400
    assert "between 11:00 and 16:00" in response.json()["message"]


def test_expired_invitation_transitions_to_expired(admin_client, invitation, db):
    appointment = db.get(Appointment, invitation["id"])
    appointment.invite_token_expires_at = datetime.utcnow() - timedelta(minutes=1)
    db.commit()

    response = admin_client.get(f"/book/{invitation['token']}")
    assert response.status_code == 410
    assert "expired" in response.json()["message"]

    detail = admin_client.get(f"/admin/appointments/{invitation['id']}").json()["data"]
    assert detail["status"] == "Expired"


def test_unknown_booking_token(client):
    response = client.get("/book/not-a-token")
    assert response.status_code == 404
    assert response.json()["message"] == "Invalid appointment link"


def test_complete_and_terminal_state(admin_client, invitation):
    book(admin_client, invitation["token"], next_workday().replace(hour=11))
    appointment_id = invitation["id"]

    response = admin_client.post(
        f"/admin/appointments/{appointment_id}/complete",
        json={"outcome": "Positive", "callSummary": "Discussed the spring shoot"},
    )
    assert response.status_code == 200
    assert response.json()["data"]["outcome"] == "Positive"

    cancel = admin_client.post(f"/admin/appointments/{appointment_id}/cancel", json={"reason": "Too late"})
    assert cancel.status_code == 400
    assert "cannot be changed" in cancel.json()["message"]


def test_reschedule_requires_booked(admin_client, invitation):
    response = admin_client.post(
        f"/admin/appointments/{invitation['id']}/reschedule",
        json={"scheduledAt": next_workday().replace(hour=12).isoformat()},
    )
    assert response.status_code == 400
    assert response.json()["message"] == "Cannot reschedule appointment with status InviteSent"


def test_reschedule_moves_booking(admin_client, invitation):
    day = next_workday()
    book(admin_client, invitation["token"], day.replace(hour=11))

    response = admin_client.post(
        f"/admin/appointments/{invitation['id']}/reschedule",
        json={"scheduledAt": day.replace(hour=14).isoformat(), "reason": "Client asked"},
    )
    assert response.status_code == 200, response.text
    assert response.json()["data"]["scheduledAt"].startswith(day.replace(hour=14).isoformat()[:16])


def test_cancel_records_reason(admin_client, invitation):
    response = admin_client.post(
        f"/admin/appointments/{invitation['id']}/cancel", json={"reason": "Client travelling"}
    )
    assert response.status_code == 200
    assert "Cancellation reason: Client travelling" in response.json()["data"]["adminNotes"]


def test_no_show_requires_booking(admin_client, invitation):
    response = admin_client.post(f"/admin/appointments/{invitation['id']}/no-show", json={"reason": "Absent"})
    assert response.status_code == 400


def test_blocked_time_removes_availability(admin_client):
    day = next_workday(3)
    response = admin_client.post(
        "/admin/appointments/blocked-times",
        json={"startAt": day.replace(hour=11).isoformat(), "endAt": day.replace(hour=16).isoformat()},
    )
    assert response.status_code == 201

    slots = admin_client.get(
        "/admin/appointments/availability",
        params={"startDate": day.date().isoformat(), "endDate": day.date().isoformat()},
    ).json()["data"]
    assert slots == {}


def test_blocked_time_requires_end_after_start(admin_client):
    day = next_workday(3)
    response = admin_client.post(
        "/admin/appointments/blocked-times",
        json={"startAt": day.replace(hour=14).isoformat(), "endAt": day.replace(hour=12).isoformat()},
    )
    assert response.status_code == 422


def test_settings_reject_inverted_workday(admin_client):
    response = admin_client.patch("/admin/appointments/settings", json={"workdayStart": 17})
    assert response.status_code == 400
    assert response.json()["message"] == "workdayStart must be before workdayEnd"


def test_stats_and_list(admin_client, invitation):
    stats = admin_client.get("/admin/appointments/stats").json()["data"]
    assert stats["total"] == 1
    assert stats["byStatus"]["InviteSent"] == 1

    listing = admin_client.get("/admin/appointments", params={"status": "InviteSent"}).json()
    assert listing["pagination"]["total"] == 1
