from datetime import date, timedelta

import pytest

from studiodesk.domain.billing import proposal_service
from studiodesk.models_billing import Invoice

OTP = "654321"
ITEMS = [
    {"description": "Wedding coverage", "quantity": 1, "unitPrice": 2400},
    {"description": "Extra prints", "quantity": 3, "unitPrice": 45.5},
]


@pytest.fixture(autouse=True)
def fixed_otp(monkeypatch):
    async def fake_send(*args):
        return {"id": "test"}

    monkeypatch.setattr(proposal_service, "generate_otp", lambda: OTP)
    monkeypatch.setattr(proposal_service, "send_proposal_otp", fake_send)


@pytest.fixture
def studio_client(make_client):
    return make_client()


def create_proposal(client, client_id, **fields):
    response = client.post(
        "/admin/proposals",
        json={"clientId": client_id, "title": "Wedding package", "items": ITEMS, "taxRate": 20, **fields},
    )
    assert response.status_code == 201, response.text
    return response.json()["data"]


def test_proposal_totals_and_numbering(admin_client, studio_client):
    first = create_proposal(admin_client, studio_client["id"])
    second = create_proposal(admin_client, studio_client["id"])
    year = date.today().year

    assert first["proposalNumber"] == f"PROP-{year}-001"
    assert second["proposalNumber"] == f"PROP-{year}-002"
    assert first["subtotal"] == 2536.5
    assert first["taxAmount"] == 507.3
    assert first["total"] == 3043.8
    assert [item["amount"] for item in first["items"]] == [2400.0, 136.5]
    assert first["validUntil"] == (date.today() + timedelta(days=30)).isoformat()


def test_proposal_requires_items(admin_client, studio_client):
    response = admin_client.post(
        "/admin/proposals", json={"clientId": studio_client["id"], "title": "Empty", "items": []}
    )
    assert response.status_code == 422


def test_only_drafts_can_be_edited(admin_client, studio_client):
    proposal = create_proposal(admin_client, studio_client["id"])
    updated = admin_client.put(f"/admin/proposals/{proposal['id']}", json={"taxRate": 0})
    assert updated.json()["data"]["total"] == 2536.5

    admin_client.post(f"/admin/proposals/{proposal['id']}/send")
    response = admin_client.put(f"/admin/proposals/{proposal['id']}", json={"title": "Changed"})
    assert response.status_code == 400
    assert response.json()["message"] == "Only draft proposals can be edited"


def test_public_acceptance_flow(admin_client, studio_client):
    proposal = create_proposal(admin_client, studio_client["id"])
    number = proposal["proposalNumber"]

    assert admin_client.get(f"/proposals/{number}").status_code == 404

    admin_client.post(f"/admin/proposals/{proposal['id']}/send")
    viewed = admin_client.get(f"/proposals/{number}").json()["data"]
    assert viewed["status"] == "VIEWED"
    assert "declinedReason" not in viewed

    assert admin_client.post(f"/proposals/{number}/request-otp").status_code == 200

    wrong = admin_client.post(f"/proposals/{number}/accept", json={"otp": "111111"})
    assert wrong.status_code == 401
    assert wrong.json()["attemptsRemaining"] == 4

    accepted = admin_client.post(f"/proposals/{number}/accept", json={"otp": OTP})
    assert accepted.status_code == 200
    assert accepted.json()["data"]["status"] == "ACCEPTED"

    again = admin_client.post(f"/proposals/{number}/decline", json={"reason": "Changed mind"})
    assert again.status_code == 400


def test_decline(admin_client, studio_client):
    proposal = create_proposal(admin_client, studio_client["id"])
    admin_client.post(f"/admin/proposals/{proposal['id']}/send")

    response = admin_client.post(f"/proposals/{proposal['proposalNumber']}/decline", json={"reason": "Budget"})
    assert response.status_code == 200
    detail = admin_client.get(f"/admin/proposals/{proposal['id']}").json()["data"]
    assert detail["status"] == "DECLINED"
    assert detail["declinedReason"] == "Budget"


def test_expired_proposal(admin_client, studio_client):
    proposal = create_proposal(admin_client, studio_client["id"], validUntil=(date.today() - timedelta(days=1)).isoformat())
    admin_client.post(f"/admin/proposals/{proposal['id']}/send")

    viewed = admin_client.get(f"/proposals/{proposal['proposalNumber']}").json()["data"]
    assert viewed["status"] == "EXPIRED"
    assert admin_client.post(f"/proposals/{proposal['proposalNumber']}/request-otp").status_code == 400


def test_invoice_due_date_from_terms(admin_client, studio_client):
    response = admin_client.post(
        "/admin/invoices",
        json={
            "clientId": studio_client["id"],
            "items": ITEMS,
            "paymentTerms": "Net 14",
            "issueDate": "2026-01-10",
        },
    )
    assert response.status_code == 201, response.text
    invoice = response.json()["data"]
    assert invoice["invoiceNumber"] == f"INV-{date.today().year}-001"
    assert invoice["dueDate"] == "2026-01-24"
    assert invoice["amountDue"] == invoice["total"] == 2536.5


def test_invoice_from_accepted_proposal(admin_client, studio_client):
    proposal = create_proposal(admin_client, studio_client["id"])
    blocked = admin_client.post(f"/admin/invoices/from-proposal/{proposal['id']}", json={})
    assert blocked.status_code == 400
    assert blocked.json()["message"] == "Only accepted proposals can be invoiced"

    admin_client.post(f"/admin/proposals/{proposal['id']}/send")
    admin_client.post(f"/proposals/{proposal['proposalNumber']}/request-otp")
    admin_client.post(f"/proposals/{proposal['proposalNumber']}/accept", json={"otp": OTP})

    response = admin_client.post(f"/admin/invoices/from-proposal/{proposal['id']}", json={})
    assert response.status_code == 201
    invoice = response.json()["data"]
    assert invoice["proposalId"] == proposal["id"]
    assert invoice["total"] == proposal["total"]
    assert len(invoice["items"]) == 2


def test_invoice_lifecycle_and_overdue(admin_client, studio_client, db):
    invoice = admin_client.post(
        "/admin/invoices", json={"clientId": studio_client["id"], "items": ITEMS}
    ).json()["data"]

    sent = admin_client.post(f"/admin/invoices/{invoice['id']}/send").json()["data"]
    assert sent["status"] == "SENT"

    row = db.get(Invoice, invoice["id"])
    row.due_date = date.today() - timedelta(days=1)
    db.commit()

    assert admin_client.get(f"/admin/invoices/{invoice['id']}").json()["data"]["status"] == "OVERDUE"
    stats = admin_client.get("/admin/invoices/stats").json()["data"]
    assert stats["overdueAmount"] == 2536.5

    paid = admin_client.post(f"/admin/invoices/{invoice['id']}/mark-paid").json()["data"]
    assert paid["status"] == "PAID"
    assert paid["amountDue"] == 0
    assert admin_client.post(f"/admin/invoices/{invoice['id']}/cancel").status_code == 400


def accept_proposal(client, proposal):
    client.post(f"/admin/proposals/{proposal['id']}/send")
    client.post(f"/proposals/{proposal['proposalNumber']}/request-otp")
    response = client.post(f"/proposals/{proposal['proposalNumber']}/accept", json={"otp": OTP})
    assert response.status_code == 200, response.text


def sent_invoice(client, client_id):
    invoice = client.post("/admin/invoices", json={"clientId": client_id, "items": ITEMS}).json()["data"]
    return client.post(f"/admin/invoices/{invoice['id']}/send").json()["data"]


def test_proposal_needs_title_without_template(admin_client, studio_client):
    response = admin_client.post("/admin/proposals", json={"clientId": studio_client["id"], "items": ITEMS})
    assert response.status_code == 422


def test_deposit_cannot_exceed_total(admin_client, studio_client):
    response = admin_client.post(
        "/admin/proposals",
        json={"clientId": studio_client["id"], "title": "Wedding", "items": ITEMS, "depositAmount": 5000},
    )
    assert response.status_code == 400
    assert response.json()["message"] == "Deposit cannot exceed the proposal total"

    proposal = create_proposal(admin_client, studio_client["id"], depositAmount=500)
    assert proposal["depositAmount"] == 500
    shrunk = admin_client.put(f"/admin/proposals/{proposal['id']}", json={"items": [ITEMS[1]]})
    assert shrunk.status_code == 400


def test_deposit_and_remainder_invoices(admin_client, studio_client):
    proposal = create_proposal(admin_client, studio_client["id"], depositAmount=500)
    accept_proposal(admin_client, proposal)

    deposit = admin_client.post(
        f"/admin/invoices/from-proposal/{proposal['id']}", json={"paymentType": "DEPOSIT"}
    ).json()["data"]
    assert deposit["paymentType"] == "DEPOSIT"
    assert deposit["items"][0]["description"] == "Deposit - Wedding package"
    assert deposit["taxAmount"] == 0
    assert deposit["total"] == deposit["amountDue"] == 500
    assert deposit["paymentTerms"] == "Due on receipt"
    assert deposit["dueDate"] == date.today().isoformat()
    assert "£2,543.80" in deposit["notes"]

    again = admin_client.post(f"/admin/invoices/from-proposal/{proposal['id']}", json={"paymentType": "DEPOSIT"})
    assert again.status_code == 400
    assert again.json()["message"] == "A deposit invoice already exists for this proposal"

    remainder = admin_client.post(
        f"/admin/invoices/from-proposal/{proposal['id']}", json={"paymentType": "REMAINDER"}
    ).json()["data"]
    assert remainder["paymentType"] == "REMAINDER"
    assert remainder["subtotal"] == 2036.5
    assert remainder["taxRate"] == 20
    assert remainder["taxAmount"] == 507.3
    assert remainder["total"] == remainder["amountDue"] == 2543.8
    assert deposit["total"] + remainder["total"] == proposal["total"]


def test_deposit_invoice_needs_a_deposit(admin_client, studio_client):
    proposal = create_proposal(admin_client, studio_client["id"])
    accept_proposal(admin_client, proposal)

    deposit = admin_client.post(f"/admin/invoices/from-proposal/{proposal['id']}", json={"paymentType": "DEPOSIT"})
    assert deposit.status_code == 400
    assert deposit.json()["message"] == "This proposal does not have a deposit amount"

    remainder = admin_client.post(
        f"/admin/invoices/from-proposal/{proposal['id']}", json={"paymentType": "REMAINDER"}
    )
    assert remainder.status_code == 400
    assert remainder.json()["message"] == "Cannot create remainder invoice for this proposal"


def test_payments_move_invoice_to_partial_then_paid(admin_client, studio_client):
    draft = admin_client.post(
        "/admin/invoices", json={"clientId": studio_client["id"], "items": ITEMS}
    ).json()["data"]
    blocked = admin_client.post(
        "/admin/payments", json={"invoiceId": draft["id"], "amount": 100, "method": "CASH"}
    )
    assert blocked.status_code == 400

    invoice = sent_invoice(admin_client, studio_client["id"])
    first = admin_client.post(
        "/admin/payments",
        json={"invoiceId": invoice["id"], "amount": 1000, "method": "BANK_TRANSFER", "reference": "BACS-1"},
    )
    assert first.status_code == 201, first.text
    assert first.json()["data"]["paymentNumber"] == f"PAY-{date.today().year}-001"

    partial = admin_client.get(f"/admin/invoices/{invoice['id']}").json()["data"]
    assert partial["status"] == "PARTIAL"
    assert partial["amountPaid"] == 1000
    assert partial["amountDue"] == 1536.5

    over = admin_client.post(
        "/admin/payments", json={"invoiceId": invoice["id"], "amount": 2000, "method": "CASH"}
    )
    assert over.status_code == 400
    assert over.json()["message"] == "Payment exceeds the amount due"

    admin_client.post("/admin/payments", json={"invoiceId": invoice["id"], "amount": 1536.5, "method": "CASH"})
    paid = admin_client.get(f"/admin/invoices/{invoice['id']}").json()["data"]
    assert paid["status"] == "PAID"
    assert paid["amountDue"] == 0
    assert paid["paidAt"] is not None

    closed = admin_client.post("/admin/payments", json={"invoiceId": invoice["id"], "amount": 1, "method": "CASH"})
    assert closed.status_code == 400


def test_payment_listing_and_stats(admin_client, studio_client):
    invoice = sent_invoice(admin_client, studio_client["id"])
    admin_client.post("/admin/payments", json={"invoiceId": invoice["id"], "amount": 500, "method": "STRIPE"})
    admin_client.post("/admin/payments", json={"invoiceId": invoice["id"], "amount": 250.25, "method": "CASH"})

    listing = admin_client.get("/admin/payments", params={"invoiceId": invoice["id"]}).json()
    assert listing["pagination"]["total"] == 2
    assert {p["invoiceNumber"] for p in listing["data"]} == {invoice["invoiceNumber"]}

    stats = admin_client.get("/admin/payments/stats").json()["data"]
    assert stats["count"] == 2
    assert stats["totalAmount"] == 750.25
    assert stats["byMethod"]["STRIPE"] == 1
    assert stats["byMethod"]["CASH"] == 1

    invoice_stats = admin_client.get("/admin/invoices/stats").json()["data"]
    assert invoice_stats["paidAmount"] == 750.25
    assert invoice_stats["outstandingAmount"] == 1786.25


def test_partial_payment_on_overdue_invoice_stays_overdue(admin_client, studio_client, db):
    invoice = sent_invoice(admin_client, studio_client["id"])
    row = db.get(Invoice, invoice["id"])
    row.due_date = date.today() - timedelta(days=3)
    db.commit()

    admin_client.post("/admin/payments", json={"invoiceId": invoice["id"], "amount": 36.5, "method": "CHECK"})
    detail = admin_client.get(f"/admin/invoices/{invoice['id']}").json()["data"]
    assert detail["status"] == "OVERDUE"
    assert detail["amountDue"] == 2500
