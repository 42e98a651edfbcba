import pytest

from studiodesk.domain.envelopes import signing_service
from studiodesk.models_envelopes import Signer

OTP = "123456"
SIGNATURE = "data:image/png;base64,iVBORw0KGgo="


@pytest.fixture(autouse=True)
def fixed_otp(monkeypatch):
    sent = []

    async def fake_send(to, signer_name, otp):
        sent.append((to, otp))
        return {"id": "test"}

    monkeypatch.setattr(signing_service, "generate_otp", lambda: OTP)
    monkeypatch.setattr(signing_service, "send_signing_otp", fake_send)
    return sent


def create_envelope(client, workflow="SEQUENTIAL", signers=("first@example.com", "second@example.com")):
    envelope = client.post("/admin/envelopes", json={"name": "Wedding contract", "signingWorkflow": workflow})
    assert envelope.status_code == 201, envelope.text
    envelope_id = envelope.json()["data"]["id"]

    document = client.post(
        f"/admin/envelopes/{envelope_id}/documents",
        json={"name": "Contract", "fileName": "contract.pdf", "filePath": "contracts/contract.pdf"},
    )
    assert document.status_code == 201
    for index, email in enumerate(signers, start=1):
        response = client.post(
            f"/admin/envelopes/{envelope_id}/signers", json={"name": f"Signer {index}", "email": email}
        )
        assert response.status_code == 201
    return envelope_id


def magic_links(db, envelope_id):
    db.expire_all()
    signers = db.query(Signer).filter(Signer.envelope_id == envelope_id).order_by(Signer.sequence_number).all()
    return [(s.email, s.magic_link_token) for s in signers]


def open_session(client, token, email):
    assert client.post("/contract/request-otp", json={"token": token, "email": email}).status_code == 200
    response = client.post("/contract/verify-otp", json={"token": token, "otp": OTP})
    assert response.status_code == 200, response.text
    return response.json()["data"]["sessionId"]


def sign(client, envelope_id, session_id, email):
    return client.post(
        f"/contract/sign/{envelope_id}",
        json={
            "sessionId": session_id,
            "signatureDataUrl": SIGNATURE,
            "signerName": "Signer",
            "signerEmail": email,
            "agreedToTerms": True,
        },
    )


@pytest.fixture
def sent_envelope(admin_client, db):
    envelope_id = create_envelope(admin_client)
    response = admin_client.post(f"/admin/envelopes/{envelope_id}/send")
    assert response.status_code == 200, response.text
    assert response.json()["data"]["status"] == "PENDING"
    return envelope_id, magic_links(db, envelope_id)


def test_send_requires_documents_and_signers(admin_client):
    envelope_id = admin_client.post("/admin/envelopes", json={"name": "Empty"}).json()["data"]["id"]
    response = admin_client.post(f"/admin/envelopes/{envelope_id}/send")
    assert response.status_code == 400
    assert response.json()["message"] == "Envelope must have at least one signer"


def test_duplicate_signer_email(admin_client):
    envelope_id = create_envelope(admin_client, signers=("one@example.com",))
    response = admin_client.post(
        f"/admin/envelopes/{envelope_id}/signers", json={"name": "Again", "email": "ONE@example.com"}
    )
    assert response.status_code == 409


def test_signers_locked_after_send(admin_client, sent_envelope):
    envelope_id, _ = sent_envelope
    envelope = admin_client.get(f"/admin/envelopes/{envelope_id}").json()["data"]
    signer_id = envelope["signers"][0]["id"]
    response = admin_client.delete(f"/admin/envelopes/{envelope_id}/signers/{signer_id}")
    assert response.status_code == 400
    assert response.json()["message"] == "Signers cannot be removed once the envelope is sent"


def test_validate_unknown_token(client):
    response = client.get("/contract/validate/deadbeef")
    assert response.status_code == 400
    body = response.json()
    assert body["notFound"] is True
    assert body["expired"] is False


def test_otp_requires_matching_email(client, sent_envelope):
    _, links = sent_envelope
    token = links[0][1]
    response = client.post("/contract/request-otp", json={"token": token, "email": "someone@else.com"})
    assert response.status_code == 400


def test_wrong_otp_reports_attempts_remaining(client, sent_envelope):
    _, links = sent_envelope
    email, token = links[0]
    client.post("/contract/request-otp", json={"token": token, "email": email})
    response = client.post("/contract/verify-otp", json={"token": token, "otp": "000000"})
    assert response.status_code == 400
    assert response.json()["attemptsRemaining"] == 4


def test_otp_email_failure_is_bad_gateway(client, sent_envelope, monkeypatch):
    from studiodesk.email_service import EmailDeliveryError

    async def broken(*args):
        raise EmailDeliveryError("down")

    monkeypatch.setattr(signing_service, "send_signing_otp", broken)
    email, token = sent_envelope[1][0]
    response = client.post("/contract/request-otp", json={"token": token, "email": email})
    assert response.status_code == 502


def test_sequential_signing_completes_envelope(admin_client, sent_envelope):
    envelope_id, links = sent_envelope
    (first_email, first_token), (second_email, second_token) = links

    second_session = open_session(admin_client, second_token, second_email)
    view = admin_client.get(f"/contract/view/{envelope_id}", params={"sessionId": second_session}).json()["data"]
    assert view["signer"]["canSign"] is False

    early = sign(admin_client, envelope_id, second_session, second_email)
    assert early.status_code == 400
    assert early.json()["message"] == "Waiting for previous signers to complete"

    first_session = open_session(admin_client, first_token, first_email)
    first = sign(admin_client, envelope_id, first_session, first_email)
    assert first.status_code == 200, first.text
    assert first.json()["data"]["envelopeCompleted"] is False
    assert len(first.json()["data"]["signatureHash"]) == 64

    second = sign(admin_client, envelope_id, second_session, second_email)
    assert second.status_code == 200
    assert second.json()["data"]["envelopeCompleted"] is True

    envelope = admin_client.get(f"/admin/envelopes/{envelope_id}").json()["data"]
    assert envelope["status"] == "COMPLETED"
    assert {s["status"] for s in envelope["signers"]} == {"SIGNED"}

    verified = admin_client.get(f"/admin/envelopes/{envelope_id}/verify").json()
    assert verified["allValid"] is True
    assert len(verified["data"]) == 2


def test_signed_link_cannot_be_reused(admin_client, sent_envelope):
    envelope_id, links = sent_envelope
    email, token = links[0]
    session_id = open_session(admin_client, token, email)
    assert sign(admin_client, envelope_id, session_id, email).status_code == 200

    response = admin_client.get(f"/contract/validate/{token}")
    assert response.status_code == 400
    assert response.json()["message"] == "You have already signed this document"


def test_view_moves_envelope_in_progress(admin_client, sent_envelope):
    envelope_id, links = sent_envelope
    email, token = links[0]
    session_id = open_session(admin_client, token, email)

    view = admin_client.get(f"/contract/view/{envelope_id}", params={"sessionId": session_id}).json()["data"]
    assert view["envelope"]["status"] == "IN_PROGRESS"
    assert view["signer"]["status"] == "VIEWED"
    assert view["signer"]["canSign"] is True


def test_decline_cancels_envelope(admin_client, sent_envelope):
    envelope_id, links = sent_envelope
    email, token = links[0]
    session_id = open_session(admin_client, token, email)

    response = admin_client.post(
        f"/contract/decline/{envelope_id}", json={"sessionId": session_id, "reason": "Dates changed"}
    )
    assert response.status_code == 200
    envelope = admin_client.get(f"/admin/envelopes/{envelope_id}").json()["data"]
    assert envelope["status"] == "CANCELLED"
    assert envelope["signers"][0]["declinedReason"] == "Dates changed"


def test_session_required_and_extendable(admin_client, sent_envelope):
    envelope_id, links = sent_envelope
    assert admin_client.get(f"/contract/view/{envelope_id}").status_code == 401
    assert admin_client.get(f"/contract/view/{envelope_id}", params={"sessionId": "bogus"}).status_code == 401

    email, token = links[0]
    session_id = open_session(admin_client, token, email)
    response = admin_client.post(f"/contract/extend-session/{envelope_id}", json={"sessionId": session_id})
    assert response.status_code == 200
    assert response.json()["data"]["sessionId"] == session_id


def test_parallel_envelope_allows_any_order(admin_client, db):
    envelope_id = create_envelope(admin_client, workflow="PARALLEL")
    admin_client.post(f"/admin/envelopes/{envelope_id}/send")
    _, (second_email, second_token) = magic_links(db, envelope_id)

    session_id = open_session(admin_client, second_token, second_email)
    assert sign(admin_client, envelope_id, session_id, second_email).status_code == 200


def test_stats(admin_client, sent_envelope):
    stats = admin_client.get("/admin/envelopes/stats").json()["data"]
    assert stats["total"] == 1
    assert stats["awaitingSignature"] == 1


def test_extend_session_pushes_expiry_forward(admin_client, sent_envelope, db):
    envelope_id, links = sent_envelope
    email, token = links[0]
    session_id = open_session(admin_client, token, email)

    db.expire_all()
    before = db.query(Signer).filter(Signer.email == email).one().session_expires_at
    response = admin_client.post(f"/contract/extend-session/{envelope_id}", json={"sessionId": session_id})
    assert response.status_code == 200

    db.expire_all()
    after = db.query(Signer).filter(Signer.email == email).one().session_expires_at
    assert after == before + signing_service.SESSION_EXTENSION


def test_new_code_clears_failed_attempts(client, sent_envelope):
    _, links = sent_envelope
    email, token = links[0]
    client.post("/contract/request-otp", json={"token": token, "email": email})
    for _ in range(signing_service.MAX_FAILED_ATTEMPTS):
        assert client.post("/contract/verify-otp", json={"token": token, "otp": "000000"}).status_code == 400

    locked = client.get(f"/contract/validate/{token}")
    assert locked.status_code == 400
    assert "Too many failed" in locked.json()["message"]

    response = client.post("/contract/request-otp", json={"token": token, "email": email})
    assert response.status_code == 200
    assert client.get(f"/contract/validate/{token}").status_code == 200
    response = client.post("/contract/verify-otp", json={"token": token, "otp": OTP})
    assert response.status_code == 200
    assert response.json()["data"]["sessionId"]
