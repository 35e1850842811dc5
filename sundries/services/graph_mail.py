# sundries/services/graph_mail.py
"""Send mail through Microsoft Graph with app-only (client credentials) auth."""
from __future__ import annotations

import base64
import logging
from typing import Any, Dict, Optional
from urllib.parse import quote

import requests

from sundries.core.config import settings
from sundries.core.errors import UpstreamError

logger = logging.getLogger(__name__)

GRAPH_BASE = "https://graph.microsoft.com/v1.0"


def _graph_error_message(resp: requests.Response) -> str:
    try:
        data = resp.json()
    except ValueError:
        return resp.reason or "unknown error"
    err = data.get("error") if isinstance(data, dict) else None
    if isinstance(err, dict):
        return err.get("message") or resp.reason
    # token endpoint uses error_description
    if isinstance(data, dict) and data.get("error_description"):
        return data["error_description"]
    return resp.reason or "unknown error"


def _request(method: str, url: str, **kwargs: Any) -> requests.Response:
    try:
        resp = requests.request(method, url, timeout=settings.GRAPH_TIMEOUT, **kwargs)
    except requests.RequestException as e:
        raise UpstreamError(f"Graph request failed: {e}") from e
    if not resp.ok:
        raise UpstreamError(
            f"Graph request failed ({resp.status_code}): {_graph_error_message(resp)}")
    return resp


def get_graph_access_token() -> str:
    if not (settings.GRAPH_TENANT_ID and settings.GRAPH_CLIENT_ID
            and settings.GRAPH_CLIENT_SECRET):
        raise UpstreamError(
            "GRAPH_TENANT_ID, GRAPH_CLIENT_ID, and GRAPH_CLIENT_SECRET must be set")

    resp = _request(
        "POST",
        f"https://login.microsoftonline.com/{settings.GRAPH_TENANT_ID}/oauth2/v2.0/token",
        data={
            "client_id": settings.GRAPH_CLIENT_ID,
            "client_secret": settings.GRAPH_CLIENT_SECRET,
            "scope": "https://graph.microsoft.com/.default",
            "grant_type": "client_credentials",
        },
    )
    return resp.json()["access_token"]


def build_send_mail_payload(
    *,
    to: str,
    subject: str,
    html: str,
    attachment_name: str,
    attachment_content: bytes,
    content_type: str = "application/pdf",
) -> Dict[str, Any]:
    return {
        "message": {
            "subject": subject,
            "body": {
                "contentType": "HTML",
                "content": html
            },
            "toRecipients": [{
                "emailAddress": {
                    "address": to
                }
            }],
            "attachments": [{
                "@odata.type": "#microsoft.graph.fileAttachment",
                "name": attachment_name,
                "contentType": content_type,
                "contentBytes": base64.b64encode(attachment_content).decode("ascii"),
            }],
        },
        "saveToSentItems": "true",
    }


def send_graph_mail_with_attachment(
    *,
    to: str,
    subject: str,
    html: str,
    attachment_name: str,
    attachment_content: bytes,
    sender_upn: Optional[str] = None,
) -> None:
    sender = sender_upn or settings.GRAPH_SENDER_UPN
    if not sender:
        raise UpstreamError("GRAPH_SENDER_UPN must be set")

    token = get_graph_access_token()
    payload = build_send_mail_payload(
        to=to,
        subject=subject,
        html=html,
        attachment_name=attachment_name,
        attachment_content=attachment_content,
    )
    _request(
        "POST",
        f"{GRAPH_BASE}/users/{quote(sender, safe='')}/sendMail",
        headers={"Authorization": f"Bearer {token}"},
        json=payload,
    )
    logger.info("Graph mail sent to %s (%s)", to, subject)
