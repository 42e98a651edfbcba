"""
Email Service using Resend
Provides email functionality using MJML templates for responsive design
"""

import logging
from typing import Optional, Union

import resend
from mjml import mjml_to_html

from .config import ADMIN_NOTIFICATION_EMAIL, EMAIL_FROM_ADDRESS, FRONTEND_URL, RESEND_API_KEY
from .email_templates import (
    appointment_cancelled_template,
    appointment_confirmed_template,
    appointment_invitation_template,
    contract_signed_admin_template,
    contract_signed_signer_template,
    inquiry_received_admin_template,
    invoice_sent_template,
    proposal_otp_template,
    proposal_sent_template,
    signing_invitation_template,
    signing_otp_template,
)

logger = logging.getLogger(__name__)

resend.api_key = RESEND_API_KEY


class EmailDeliveryError(Exception):
    """Raised when an email cannot be rendered or handed to the provider"""


def compile_mjml_to_html(mjml_content: str) -> str:
    """Compile MJML template to production-ready HTML"""
    try:
        result = mjml_to_html(mjml_content)
    except Exception as e:
        logger.error(f"MJML compilation error: {e}")
        raise EmailDeliveryError(f"Failed to compile MJML template: {str(e)}") from e

    if result.errors:
        logger.warning(f"MJML compilation warnings: {result.errors}")
    return result.html


async def send_email(
    to: Union[str, list[str]],
    subject: str,
    mjml_content: str,
    from_address: Optional[str] = None,
) -> dict:
    """
    Send an email through Resend

    Args:
        to: Recipient email(s)
        subject: Email subject line
        mjml_content: MJML template content (will be compiled to HTML)
        from_address: Optional custom from address

    Returns:
        Send response dict
    """
    recipients = [to] if isinstance(to, str) else to

    if not RESEND_API_KEY:
        logger.error("❌ No email service configured - RESEND_API_KEY missing")
        raise EmailDeliveryError("Email service not configured")

    html_content = compile_mjml_to_html(mjml_content)

    try:
        logger.info(f"📧 Sending email via Resend to: {recipients}")
        response = resend.Emails.send(
            {
                "from": from_address or EMAIL_FROM_ADDRESS,
                "to": recipients,
                "subject": subject,
                "html": html_content,
            }
        )
        logger.info(f"✅ Email sent successfully via Resend: {response}")
        return response
    except Exception as e:
        logger.error(f"❌ Email send error to {recipients}: {e}")
        raise EmailDeliveryError(f"Failed to send email: {str(e)}") from e


async def send_admin_notification(subject: str, mjml_content: str) -> Optional[dict]:
    if not ADMIN_NOTIFICATION_EMAIL:
        logger.info("ℹ️ ADMIN_NOTIFICATION_EMAIL not set, skipping admin notification")
        return None
    return await send_email(ADMIN_NOTIFICATION_EMAIL, subject, mjml_content)


# ============================================
# Pre-built emails for workflow events
# ============================================


async def send_signing_invitation(to: str, signer_name: str, envelope_name: str, token: str) -> dict:
    signing_url = f"{FRONTEND_URL}/contract/{token}"
    return await send_email(
        to=to,
        subject=f"Please sign: {envelope_name}",
        mjml_content=signing_invitation_template(signer_name, envelope_name, signing_url),
    )


async def send_signing_otp(to: str, signer_name: str, otp: str) -> dict:
    return await send_email(
        to=to,
        subject="Your signing verification code",
        mjml_content=signing_otp_template(signer_name, otp),
    )


async def send_contract_signed_emails(
    signer_email: str, signer_name: str, envelope_name: str, signed_at: str, completed: bool
) -> None:
    """Confirmation to the signer plus a heads-up to the studio"""
    await send_email(
        to=signer_email,
        subject=f"You signed {envelope_name}",
        mjml_content=contract_signed_signer_template(signer_name, envelope_name, signed_at),
    )
    await send_admin_notification(
        subject=f"{signer_name} signed {envelope_name}",
        mjml_content=contract_signed_admin_template(signer_name, signer_email, envelope_name, completed),
    )


async def send_appointment_invitation(
    to: str, client_name: str, appointment_type: str, booking_url: str, expires_at: str
) -> dict:
    return await send_email(
        to=to,
        subject="Book your call",
        mjml_content=appointment_invitation_template(client_name, appointment_type, booking_url, expires_at),
    )


async def send_appointment_confirmed(
    to: str, client_name: str, appointment_type: str, when: str, duration: int
) -> dict:
    return await send_email(
        to=to,
        subject="Your call is confirmed",
        mjml_content=appointment_confirmed_template(client_name, appointment_type, when, duration),
    )


async def send_appointment_cancelled(
    to: str, client_name: str, appointment_type: str, reason: Optional[str]
) -> dict:
    return await send_email(
        to=to,
        subject="Your call has been cancelled",
        mjml_content=appointment_cancelled_template(client_name, appointment_type, reason),
    )


async def send_proposal(to: str, client_name: str, proposal_number: str, title: str, total: str) -> dict:
    url = f"{FRONTEND_URL}/proposals/{proposal_number}"
    return await send_email(
        to=to,
        subject=f"Your proposal {proposal_number}",
        mjml_content=proposal_sent_template(client_name, proposal_number, title, total, url),
    )


async def send_proposal_otp(to: str, client_name: str, proposal_number: str, otp: str) -> dict:
    return await send_email(
        to=to,
        subject=f"Accept proposal {proposal_number}",
        mjml_content=proposal_otp_template(client_name, proposal_number, otp),
    )


async def send_invoice(to: str, client_name: str, invoice_number: str, amount_due: str, due_date: str) -> dict:
    return await send_email(
        to=to,
        subject=f"Invoice {invoice_number}",
        mjml_content=invoice_sent_template(client_name, invoice_number, amount_due, due_date),
    )


async def send_inquiry_notification(full_name: str, email: str, inquiry_type: str, description: str) -> Optional[dict]:
    return await send_admin_notification(
        subject=f"New inquiry from {full_name}",
        mjml_content=inquiry_received_admin_template(full_name, email, inquiry_type, description),
    )
