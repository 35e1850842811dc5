# sundries/services/pdfs/engine.py
from __future__ import annotations

import io
from decimal import Decimal
from typing import Any, Iterator, List, Sequence

from reportlab.lib import colors
from reportlab.lib.pagesizes import A4
from reportlab.lib.styles import ParagraphStyle, getSampleStyleSheet
from reportlab.platypus import SimpleDocTemplate, Table, TableStyle


def _safe_str(v: Any) -> str:
    if v is None:
        return "—"
    s = str(v).strip()
    return s if s else "—"


def money(v: Any, symbol: str = "") -> str:
    d = v if isinstance(v, Decimal) else Decimal(str(v or 0))
    return f"{symbol}{d:.2f}"


def chunks(rows: Sequence[Any], size: int) -> Iterator[Sequence[Any]]:
    """Split rows into page-sized chunks; always yields at least one chunk."""
    size = max(1, int(size or 1))
    if not rows:
        yield []
        return
    for i in range(0, len(rows), size):
        yield rows[i:i + size]


# -----------------------------
# Document Builder
# -----------------------------
def build_pdf(*, title: str, story: List[Any]) -> bytes:
    # new buffer per call; reusing one appends documents
    buf = io.BytesIO()

    doc = SimpleDocTemplate(
        buf,
        pagesize=A4,
        leftMargin=40,
        rightMargin=40,
        topMargin=40,
        bottomMargin=40,
        title=title or "",
        author="",
    )
    doc.build(story)

    pdf_bytes = buf.getvalue()
    buf.close()
    return pdf_bytes


# -----------------------------
# Styles + Components
# -----------------------------
def get_styles():
    base = getSampleStyleSheet()
    base.add(ParagraphStyle(
        name="Letterhead",
        parent=base["Heading1"],
        fontName="Helvetica-Bold",
        fontSize=18,
        spaceAfter=8,
        textColor=colors.black,
    ))
    base.add(ParagraphStyle(
        name="H2",
        parent=base["Heading2"],
        fontName="Helvetica-Bold",
        fontSize=12,
        spaceBefore=8,
        spaceAfter=6,
        textColor=colors.black,
    ))
    base.add(ParagraphStyle(
        name="Small",
        parent=base["BodyText"],
        fontName="Helvetica",
        fontSize=10,
        leading=13,
        textColor=colors.black,
    ))
    return base


def kv_table(rows: List[List[str]]):
    data = [[_safe_str(a), _safe_str(b)] for a, b in rows]
    t = Table(data, colWidths=[110, None])
    t.setStyle(TableStyle([
        ("FONTNAME", (0, 0), (0, -1), "Helvetica-Bold"),
        ("FONTNAME", (1, 0), (1, -1), "Helvetica"),
        ("FONTSIZE", (0, 0), (-1, -1), 10),
        ("VALIGN", (0, 0), (-1, -1), "TOP"),
        ("LEFTPADDING", (0, 0), (-1, -1), 0),
        ("TOPPADDING", (0, 0), (-1, -1), 2),
        ("BOTTOMPADDING", (0, 0), (-1, -1), 2),
    ]))
    return t


def simple_table(data: List[List[str]], col_widths=None, numeric_cols=()):
    clean = [[_safe_str(x) for x in row] for row in data]
    t = Table(clean, colWidths=col_widths, repeatRows=1)
    style = [
        ("FONTNAME", (0, 0), (-1, 0), "Helvetica-Bold"),
        ("FONTSIZE", (0, 0), (-1, -1), 9),
        ("BACKGROUND", (0, 0), (-1, 0), colors.whitesmoke),
        ("TEXTCOLOR", (0, 0), (-1, -1), colors.black),
        ("VALIGN", (0, 0), (-1, -1), "TOP"),
        ("INNERGRID", (0, 0), (-1, -1), 0.25, colors.lightgrey),
        ("BOX", (0, 0), (-1, -1), 0.25, colors.lightgrey),
        ("LEFTPADDING", (0, 0), (-1, -1), 5),
        ("RIGHTPADDING", (0, 0), (-1, -1), 5),
        ("TOPPADDING", (0, 0), (-1, -1), 3),
        ("BOTTOMPADDING", (0, 0), (-1, -1), 3),
    ]
    for col in numeric_cols:
        style.append(("ALIGN", (col, 0), (col, -1), "RIGHT"))
    t.setStyle(TableStyle(style))
    return t
