from sundries.core import emailer
from sundries.core.config import settings
from sundries.services.graph_mail import send_graph_mail_with_attachment


def send_invoice_email(
    *,
    to: str,
    subject: str,
    html: str,
    attachment_name: str,
    attachment_content: bytes,
) -> None:
    """Deliver one email with a single PDF attachment. No retries."""
    if (settings.MAIL_BACKEND or "graph").lower() == "smtp":
        emailer.send_email(
            to,
            subject,
            html,
            attachments=[(attachment_name, attachment_content, "application/pdf")],
        )
        return

    send_graph_mail_with_attachment(
        to=to,
        subject=subject,
        html=html,
        attachment_name=attachment_name,
        attachment_content=attachment_content,
    )
