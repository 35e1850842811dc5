import base64
import re
from datetime import datetime
from decimal import Decimal
from types import SimpleNamespace

from sundries.core.config import settings
from sundries.services import graph_mail, mailer
from sundries.services.graph_mail import build_send_mail_payload
from sundries.services.pdfs.engine import chunks
from sundries.services.pdfs.invoice_pdf import (
    SalesInvoiceLine,
    SalesInvoicePayload,
    render_sales_invoice_pdf,
    render_supplier_invoice_pdf,
)


def _page_count(pdf: bytes) -> int:
    return len(re.findall(rb"/Type /Page\b", pdf))


def _payload(n):
    return SalesInvoicePayload(
        vendor_name="Curl Up & Dye",
        vendor_account_ref="HAIR01",
        care_home_name="Oak House",
        invoice_no="HAIR01-20240305",
        issued_at=datetime(2024, 3, 5),
        items=[
            SalesInvoiceLine(resident_name=f"Resident {i}", description="Cut", price=Decimal("12.50"))
            for i in range(n)
        ],
    )


def test_chunks_always_yield_one_page():
    assert list(chunks([], 5)) == [[]]
    assert [len(c) for c in chunks(list(range(7)), 3)] == [3, 3, 1]


def test_sales_invoice_pdf_is_a_pdf():
    pdf = render_sales_invoice_pdf(_payload(3))
    assert pdf.startswith(b"%PDF")
    assert _page_count(pdf) == 1


def test_sales_invoice_pdf_paginates_by_row_count():
    pdf = render_sales_invoice_pdf(_payload(5), rows_per_page=2)
    assert _page_count(pdf) == 3


def test_payload_total():
    assert _payload(4).total == Decimal("50.00")


def test_supplier_invoice_pdf():
    invoice = SimpleNamespace(
        invoice_no="HAPPYF-202403-0001",
        supplier=SimpleNamespace(name="Happy Feet Ltd"),
        care_home=SimpleNamespace(name="Oak House"),
        period_start=datetime(2024, 3, 1),
        period_end=datetime(2024, 3, 31),
        issued_at=datetime(2024, 4, 1),
        subtotal=Decimal("25.00"),
        vat_total=Decimal("4.00"),
        total=Decimal("29.00"),
    )
    items = [
        SimpleNamespace(description="Nail cut", qty=Decimal("2"), unit_price=Decimal("10"),
                        vat_rate=Decimal("20"), line_total=Decimal("24.00")),
        SimpleNamespace(description="Callus care", qty=Decimal("1"), unit_price=Decimal("5"),
                        vat_rate=Decimal("0"), line_total=Decimal("5.00")),
    ]
    pdf = render_supplier_invoice_pdf(invoice, items, rows_per_page=1)
    assert pdf.startswith(b"%PDF")
    assert _page_count(pdf) == 2


# ---------------------------------------------------------------------------
# mail
# ---------------------------------------------------------------------------

def test_graph_payload_shape():
    payload = build_send_mail_payload(to="accounts@example.com",
                                      subject="Invoice X",
                                      html="<p>hi</p>",
                                      attachment_name="X.pdf",
                                      attachment_content=b"%PDF-1.4")
    msg = payload["message"]
    assert msg["toRecipients"] == [{"emailAddress": {"address": "accounts@example.com"}}]
    assert msg["body"] == {"contentType": "HTML", "content": "<p>hi</p>"}
    att = msg["attachments"][0]
    assert att["@odata.type"] == "#microsoft.graph.fileAttachment"
    assert att["contentType"] == "application/pdf"
    assert base64.b64decode(att["contentBytes"]) == b"%PDF-1.4"


def test_send_invoice_email_uses_graph_by_default(monkeypatch):
    sent = []
    monkeypatch.setattr(settings, "MAIL_BACKEND", "graph")
    monkeypatch.setattr(mailer, "send_graph_mail_with_attachment", lambda **kw: sent.append(kw))

    mailer.send_invoice_email(to="a@example.com",
                              subject="s",
                              html="<p/>",
                              attachment_name="a.pdf",
                              attachment_content=b"%PDF")
    assert sent[0]["attachment_name"] == "a.pdf"


def test_send_invoice_email_smtp_backend(monkeypatch):
    sent = []
    monkeypatch.setattr(settings, "MAIL_BACKEND", "smtp")
    monkeypatch.setattr(mailer.emailer, "send_email",
                        lambda to, subject, html, attachments=None: sent.append((to, attachments)))

    mailer.send_invoice_email(to="a@example.com",
                              subject="s",
                              html="<p/>",
                              attachment_name="a.pdf",
                              attachment_content=b"%PDF")
    assert sent == [("a@example.com", [("a.pdf", b"%PDF", "application/pdf")])]


def test_graph_send_posts_to_sender_mailbox(monkeypatch):
    calls = []

    class Resp:
        ok = True
        status_code = 202

        def json(self):
            return {"access_token": "tok"}

    def fake_request(method, url, **kwargs):
        calls.append((method, url, kwargs))
        return Resp()

    monkeypatch.setattr(settings, "GRAPH_TENANT_ID", "t")
    monkeypatch.setattr(settings, "GRAPH_CLIENT_ID", "c")
    monkeypatch.setattr(settings, "GRAPH_CLIENT_SECRET", "s")
    monkeypatch.setattr(graph_mail, "_request", fake_request)

    graph_mail.send_graph_mail_with_attachment(to="a@example.com",
                                               subject="s",
                                               html="<p/>",
                                               attachment_name="a.pdf",
                                               attachment_content=b"%PDF",
                                               sender_upn="billing@example.com")

    assert calls[0][1].endswith("/t/oauth2/v2.0/token")
    method, url, kwargs = calls[1]
    assert url == "https://graph.microsoft.com/v1.0/users/billing%40example.com/sendMail"
    assert kwargs["headers"] == {"Authorization": "Bearer tok"}
