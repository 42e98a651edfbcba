"""
MJML Email Templates
All email templates using MJML for responsive, cross-client compatibility
"""

from typing import Optional

from .config import FRONTEND_URL

# Studio theme colors - Charcoal/Amber color scheme
THEME = {
    "primary": "#b45309",
    "primary_dark": "#92400e",
    "primary_light": "#fef3c7",
    "background": "#fafaf9",
    "card_bg": "#ffffff",
    "text_primary": "#1c1917",
    "text_secondary": "#44403c",
    "text_muted": "#78716c",
    "border": "#e7e5e4",
    "success": "#15803d",
    "danger": "#b91c1c",
}

STUDIO_NAME = "StudioDesk"


def get_base_template(
    title: str,
    preview_text: str,
    content_sections: str,
    cta_url: Optional[str] = None,
    cta_label: Optional[str] = None,
) -> str:
    """Base MJML template wrapper for all emails"""

    cta_section = ""
    if cta_url and cta_label:
        cta_section = f"""
        <mj-section padding="20px 0">
          <mj-column>
            <mj-button
              href="{cta_url}"
              background-color="{THEME['primary']}"
              color="#ffffff"
              font-weight="600"
              border-radius="8px"
              padding="18px 40px"
              font-size="16px">
              {cta_label}
            </mj-button>
          </mj-column>
        </mj-section>
        """

    return f"""
    <mjml>
      <mj-head>
        <mj-title>{title}</mj-title>
        <mj-preview>{preview_text}</mj-preview>
        <mj-attributes>
          <mj-all font-family="-apple-system, BlinkMacSystemFont, 'Segoe UI', 'Helvetica Neue', Arial, sans-serif" />
          <mj-text font-size="16px" line-height="1.6" color="{THEME['text_secondary']}" />
        </mj-attributes>
      </mj-head>
      <mj-body background-color="{THEME['background']}">
        <mj-section background-color="#ffffff" padding="32px 40px 0 40px">
          <mj-column>
            <mj-text font-size="20px" font-weight="700" color="{THEME['text_primary']}" padding="0 0 24px 0">
              {STUDIO_NAME}
            </mj-text>
            <mj-divider border-color="{THEME['border']}" border-width="1px" padding="0 0 32px 0" />
          </mj-column>
        </mj-section>

        <!-- Main Content -->
        <mj-section background-color="#ffffff" padding="0 40px 48px 40px">
          <mj-column>
            <mj-text font-size="24px" font-weight="600" color="{THEME['text_primary']}" line-height="1.3" padding="0 0 16px 0">
              {title}
            </mj-text>

            {content_sections}
          </mj-column>
        </mj-section>

        {cta_section}

        <!-- Footer -->
        <mj-section padding="32px 20px">
          <mj-column>
            <mj-text align="center" font-size="13px" color="#a8a29e" padding="0">
              Sent by {STUDIO_NAME} on behalf of your photographer.
            </mj-text>
          </mj-column>
        </mj-section>
      </mj-body>
    </mjml>
    """


def _code_block(label: str, code: str) -> str:
    return f"""
    <mj-text align="center" font-size="14px" color="{THEME['text_muted']}" text-transform="uppercase" letter-spacing="1px" font-weight="600" padding="16px 0 8px 0">
      {label}
    </mj-text>
    <mj-text align="center" font-size="36px" font-weight="700" color="{THEME['text_primary']}" letter-spacing="8px" font-family="'Courier New', monospace" padding="0 0 16px 0">
      {code}
    </mj-text>
    """


def signing_invitation_template(signer_name: str, envelope_name: str, signing_url: str) -> str:
    content = f"""
    <mj-text>Hi {signer_name},</mj-text>
    <mj-text>
      You have been asked to review and sign <strong>{envelope_name}</strong>.
      The link below is personal to you and expires in 7 days.
    </mj-text>
    <mj-text color="{THEME['text_muted']}" font-size="14px">
      You will be asked for a one-time code sent to this address before you can sign.
    </mj-text>
    """
    return get_base_template(
        title="Document ready for your signature",
        preview_text=f"Please sign {envelope_name}",
        content_sections=content,
        cta_url=signing_url,
        cta_label="Review & Sign",
    )


def signing_otp_template(signer_name: str, otp: str) -> str:
    """One-time code for a contract signing session"""
    content = f"""
    <mj-text>Hi {signer_name},</mj-text>
    <mj-text>Use this code to open your document. It expires in 10 minutes.</mj-text>
    {_code_block("Verification Code", otp)}
    <mj-text color="{THEME['text_muted']}" font-size="14px">
      If you didn't request this code, you can safely ignore this email.
    </mj-text>
    """
    return get_base_template(
        title="Your signing code",
        preview_text=f"Your verification code is {otp}",
        content_sections=content,
    )


def contract_signed_signer_template(signer_name: str, envelope_name: str, signed_at: str) -> str:
    content = f"""
    <mj-text>Hi {signer_name},</mj-text>
    <mj-text>
      Thank you. Your signature on <strong>{envelope_name}</strong> was recorded on {signed_at} UTC.
    </mj-text>
    """
    return get_base_template(
        title="Signature received",
        preview_text=f"You signed {envelope_name}",
        content_sections=content,
    )


def contract_signed_admin_template(
    signer_name: str, signer_email: str, envelope_name: str, completed: bool
) -> str:
    state = "All signers have now signed." if completed else "Waiting on the remaining signers."
    content = f"""
    <mj-text>
      <strong>{signer_name}</strong> ({signer_email}) signed <strong>{envelope_name}</strong>.
    </mj-text>
    <mj-text color="{THEME['text_muted']}">{state}</mj-text>
    """
    return get_base_template(
        title="Contract signed",
        preview_text=f"{signer_name} signed {envelope_name}",
        content_sections=content,
        cta_url=f"{FRONTEND_URL}/admin/contracts",
        cta_label="Open Contracts",
    )


def appointment_invitation_template(client_name: str, appointment_type: str, booking_url: str, expires_at: str) -> str:
    content = f"""
    <mj-text>Hi {client_name},</mj-text>
    <mj-text>
      Please choose a time for your <strong>{appointment_type}</strong> call.
      This booking link is valid until {expires_at} UTC.
    </mj-text>
    """
    return get_base_template(
        title="Book your call",
        preview_text="Pick a time that suits you",
        content_sections=content,
        cta_url=booking_url,
        cta_label="Choose a Time",
    )


def appointment_confirmed_template(client_name: str, appointment_type: str, when: str, duration: int) -> str:
    content = f"""
    <mj-text>Hi {client_name},</mj-text>
    <mj-text>
      Your <strong>{appointment_type}</strong> call is confirmed for <strong>{when} UTC</strong>
      ({duration} minutes).
    </mj-text>
    """
    return get_base_template(
        title="Your call is booked",
        preview_text=f"Confirmed for {when}",
        content_sections=content,
    )


def appointment_cancelled_template(client_name: str, appointment_type: str, reason: Optional[str]) -> str:
    reason_line = f"<mj-text color=\"{THEME['text_muted']}\">Reason: {reason}</mj-text>" if reason else ""
    content = f"""
    <mj-text>Hi {client_name},</mj-text>
    <mj-text>Your <strong>{appointment_type}</strong> call has been cancelled.</mj-text>
    {reason_line}
    """
    return get_base_template(
        title="Call cancelled",
        preview_text="Your call has been cancelled",
        content_sections=content,
    )


def proposal_sent_template(client_name: str, proposal_number: str, title: str, total: str, url: str) -> str:
    content = f"""
    <mj-text>Hi {client_name},</mj-text>
    <mj-text>
      Your proposal <strong>{proposal_number}</strong> for <strong>{title}</strong> is ready.
      Total: <strong>{total}</strong>.
    </mj-text>
    """
    return get_base_template(
        title="Your proposal",
        preview_text=f"Proposal {proposal_number}",
        content_sections=content,
        cta_url=url,
        cta_label="View Proposal",
    )


def proposal_otp_template(client_name: str, proposal_number: str, otp: str) -> str:
    content = f"""
    <mj-text>Hi {client_name},</mj-text>
    <mj-text>Use this code to accept proposal {proposal_number}. It expires in 15 minutes.</mj-text>
    {_code_block("Acceptance Code", otp)}
    """
    return get_base_template(
        title="Confirm your acceptance",
        preview_text=f"Your code is {otp}",
        content_sections=content,
    )


def invoice_sent_template(client_name: str, invoice_number: str, amount_due: str, due_date: str) -> str:
    content = f"""
    <mj-text>Hi {client_name},</mj-text>
    <mj-text>
      Invoice <strong>{invoice_number}</strong> for <strong>{amount_due}</strong> is due on {due_date}.
    </mj-text>
    """
    return get_base_template(
        title=f"Invoice {invoice_number}",
        preview_text=f"{amount_due} due {due_date}",
        content_sections=content,
    )


def inquiry_received_admin_template(full_name: str, email: str, inquiry_type: str, description: str) -> str:
    content = f"""
    <mj-text>New <strong>{inquiry_type}</strong> inquiry from <strong>{full_name}</strong> ({email}).</mj-text>
    <mj-text color="{THEME['text_secondary']}">{description}</mj-text>
    """
    return get_base_template(
        title="New inquiry",
        preview_text=f"{full_name} sent a {inquiry_type.lower()} inquiry",
        content_sections=content,
        cta_url=f"{FRONTEND_URL}/admin/inquiries",
        cta_label="View Inquiries",
    )
