"""Invitation email composition and SMTP delivery.

Composition is pure.  Delivery is blocking smtplib and runs in the
worker process (see portal/worker.py), never on the request path.
"""

from __future__ import annotations

import html
import logging
import smtplib
from email.message import EmailMessage

from portal.core.config import Settings, SmtpSettings
from portal.core.metrics import EMAILS_SENT

logger = logging.getLogger(__name__)

INVITATION_SUBJECT = "Your Shortscut Account Invitation"
SMTP_TIMEOUT_S = 10

_TEXT_TEMPLATE = """\
Welcome to Shortscut

Hello {name},

You've been invited to join Shortscut. Please visit the following link to complete your registration:

{link}

This invitation link will expire in 7 days.

If you didn't request this invitation, you can safely ignore this email.

Thanks,
The Shortscut Team
"""

_HTML_TEMPLATE = """\
<div style="font-family: Arial, sans-serif; max-width: 600px; margin: 0 auto;">
  <h2>Welcome to Shortscut</h2>
  <p>Hello {name},</p>
  <p>You've been invited to join Shortscut. Please click the button below to complete your registration:</p>
  <div style="margin: 30px 0;">
    <a href="{link}" style="background-color: #4F46E5; color: white; padding: 12px 24px; text-decoration: none; border-radius: 4px; font-weight: bold;">Complete Registration</a>
  </div>
  <p>This invitation link will expire in 7 days.</p>
  <p>If you didn't request this invitation, you can safely ignore this email.</p>
  <p>Thanks,<br>The Shortscut Team</p>
</div>
"""


def invitation_link(base_url: str, token: str) -> str:
    return f"{base_url.rstrip('/')}/register/complete?token={token}"


def build_invitation_email(
    *, to_email: str, name: str, token: str, base_url: str, sender: str
) -> EmailMessage:
    link = invitation_link(base_url, token)
    msg = EmailMessage()
    msg["Subject"] = INVITATION_SUBJECT
    msg["From"] = sender
    msg["To"] = to_email
    msg.set_content(_TEXT_TEMPLATE.format(name=name, link=link))
    msg.add_alternative(
        _HTML_TEMPLATE.format(name=html.escape(name), link=html.escape(link)),
        subtype="html",
    )
    return msg


def send_message(smtp: SmtpSettings, msg: EmailMessage) -> None:
    with smtplib.SMTP(smtp.host, smtp.port, timeout=SMTP_TIMEOUT_S) as conn:
        if smtp.use_tls:
            conn.starttls()
        if smtp.user:
            conn.login(smtp.user, smtp.password)
        conn.send_message(msg)


def deliver_invitation_email(
    settings: Settings, *, to_email: str, name: str, token: str
) -> str:
    """Send (or, in dev, log) one invitation email.

    Returns the outcome label also recorded on ``emails_total``:
    ``logged``, ``skipped`` or ``sent``.  SMTP errors propagate.
    """
    smtp = settings.smtp
    sender = smtp.sender if smtp else "noreply@shortscut.com"
    msg = build_invitation_email(
        to_email=to_email,
        name=name,
        token=token,
        base_url=settings.base_url,
        sender=sender,
    )

    if settings.is_dev and not settings.send_emails:
        logger.info(
            "Email not sent (dev mode) to=%s subject=%s link=%s",
            to_email,
            msg["Subject"],
            invitation_link(settings.base_url, token),
        )
        EMAILS_SENT.labels(result="logged").inc()
        return "logged"

    if smtp is None or not smtp.is_configured:
        logger.warning("SMTP not configured, invitation email to %s dropped", to_email)
        EMAILS_SENT.labels(result="skipped").inc()
        return "skipped"

    try:
        send_message(smtp, msg)
    except (smtplib.SMTPException, OSError):
        EMAILS_SENT.labels(result="failed").inc()
        raise
    EMAILS_SENT.labels(result="sent").inc()
    logger.info("Invitation email sent to=%s", to_email)
    return "sent"
