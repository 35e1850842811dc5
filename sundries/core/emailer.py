# FILE: sundries/core/emailer.py
from __future__ import annotations

import smtplib
import ssl
from email.message import EmailMessage
from typing import List, Optional, Tuple

from sundries.core.config import settings
from sundries.core.errors import UpstreamError

# (filename, bytes_content, mime_type)
Attachment = Tuple[str, bytes, str]


def _get_from_email() -> str:
    """
    Decide FROM email:
    - Prefer settings.SMTP_FROM
    - Fallback to settings.SMTP_USER
    """
    from_email = settings.SMTP_FROM or settings.SMTP_USER
    if not from_email:
        raise UpstreamError(
            "No FROM email configured. Set SMTP_FROM or SMTP_USER.")
    return from_email


def _build_message(
    to_email: str,
    subject: str,
    html: str,
    attachments: Optional[List[Attachment]] = None,
) -> EmailMessage:
    msg = EmailMessage()
    msg["From"] = _get_from_email()
    msg["To"] = to_email
    msg["Subject"] = subject
    msg.set_content("This message requires an HTML capable mail client.")
    msg.add_alternative(html, subtype="html")

    for filename, content, mime_type in attachments or []:
        maintype, _, subtype = (mime_type or
                                "application/octet-stream").partition("/")
        if not maintype or not subtype:
            maintype, subtype = "application", "octet-stream"
        msg.add_attachment(
            content,
            maintype=maintype,
            subtype=subtype,
            filename=filename,
        )

    return msg


def send_email(
    to_email: str,
    subject: str,
    html: str,
    attachments: Optional[List[Attachment]] = None,
) -> None:
    if not to_email:
        raise ValueError("send_email: recipient is required")
    if not settings.SMTP_HOST:
        raise UpstreamError("SMTP_HOST is not configured")

    msg = _build_message(to_email, subject, html, attachments=attachments)

    try:
        with smtplib.SMTP(settings.SMTP_HOST, settings.SMTP_PORT,
                          timeout=30) as server:
            if settings.SMTP_TLS:
                server.starttls(context=ssl.create_default_context())
            if settings.SMTP_USER and settings.SMTP_PASSWORD:
                server.login(settings.SMTP_USER, settings.SMTP_PASSWORD)
            server.send_message(msg)
    except (smtplib.SMTPException, OSError) as e:
        raise UpstreamError(f"SMTP send failed: {e}") from e
