"""Public contract signing endpoints reached from the emailed magic link"""

from typing import Optional

from fastapi import APIRouter, Depends, Request
from sqlalchemy.orm import Session

from ...database import get_db
from ...rate_limiter import client_ip, create_rate_limiter
from ...shared.responses import success
from .schemas import DeclineRequest, OtpRequest, OtpVerify, SessionRequest, SignRequest
from .signing_service import SigningContext, SigningService

router = APIRouter(prefix="/contract", tags=["Contract Signing"])

otp_rate_limit = create_rate_limiter(limit=5, window_seconds=900, key_prefix="contract_otp")
verify_rate_limit = create_rate_limiter(limit=10, window_seconds=900, key_prefix="contract_verify")


def get_signing_service(db: Session = Depends(get_db)) -> SigningService:
    return SigningService(db)


def get_signing_context(request: Request) -> SigningContext:
    return SigningContext(client_ip(request), request.headers.get("user-agent"))


@router.get("/validate/{token}")
async def validate_link(token: str, service: SigningService = Depends(get_signing_service)):
    signer = service.validate_token(token)
    return success({"envelopeId": signer.envelope_id, "signerId": signer.id, "signerName": signer.name})


@router.post("/request-otp", dependencies=[Depends(otp_rate_limit)])
async def request_otp(
    data: OtpRequest,
    ctx: SigningContext = Depends(get_signing_context),
    service: SigningService = Depends(get_signing_service),
):
    await service.request_otp(data, ctx)
    return success(message="Verification code sent to your email", expiresInMinutes=10)


@router.post("/verify-otp", dependencies=[Depends(verify_rate_limit)])
async def verify_otp(
    data: OtpVerify,
    ctx: SigningContext = Depends(get_signing_context),
    service: SigningService = Depends(get_signing_service),
):
    signer = service.verify_otp(data, ctx)
    return success(
        {
            "sessionId": signer.session_id,
            "expiresAt": signer.session_expires_at,
            "envelopeId": signer.envelope_id,
        }
    )


@router.get("/view/{envelope_id}")
async def view_envelope(
    envelope_id: int,
    sessionId: Optional[str] = None,
    ctx: SigningContext = Depends(get_signing_context),
    service: SigningService = Depends(get_signing_service),
):
    return success(service.view(envelope_id, sessionId, ctx))


@router.post("/sign/{envelope_id}")
async def sign_envelope(
    envelope_id: int,
    data: SignRequest,
    ctx: SigningContext = Depends(get_signing_context),
    service: SigningService = Depends(get_signing_service),
):
    result = await service.sign(envelope_id, data, ctx)
    return success(result, message="Document signed successfully")


@router.post("/decline/{envelope_id}")
async def decline_envelope(
    envelope_id: int,
    data: DeclineRequest,
    ctx: SigningContext = Depends(get_signing_context),
    service: SigningService = Depends(get_signing_service),
):
    service.decline(envelope_id, data, ctx)
    return success(message="You have declined to sign this document")


@router.post("/extend-session/{envelope_id}")
async def extend_session(
    envelope_id: int,
    data: SessionRequest,
    service: SigningService = Depends(get_signing_service),
):
    signer = service.extend_session(envelope_id, data.sessionId)
    return success({"sessionId": signer.session_id, "expiresAt": signer.session_expires_at})
