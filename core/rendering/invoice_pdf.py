"""
Invoice PDF rendering with reportlab.

Produces an A4 document: title and number, issue/due dates, from/to
blocks, the item table, subtotal/tax/total, then notes and terms.
"""

import io
from decimal import Decimal
from xml.sax.saxutils import escape

from reportlab.lib import colors
from reportlab.lib.pagesizes import A4
from reportlab.lib.styles import ParagraphStyle, getSampleStyleSheet
from reportlab.lib.units import mm
from reportlab.platypus import Paragraph, SimpleDocTemplate, Spacer, Table, TableStyle

from core.models import Client, Invoice

_ACCENT = colors.HexColor("#1f2937")
_MUTED = colors.HexColor("#6b7280")
_SHADE = colors.HexColor("#f3f4f6")
_CURRENCY_SYMBOLS = {"usd": "$", "eur": "€", "gbp": "£"}


def format_money(amount: Decimal, currency: str = "usd") -> str:
    """
    Amount rounded to cents with thousands separators.

    Known currencies get their symbol; others are prefixed with the ISO code.
    """
    value = f"{amount.quantize(Decimal('0.01')):,}"
    symbol = _CURRENCY_SYMBOLS.get(currency.lower())
    if symbol:
        return f"{symbol}{value}"
    return f"{currency.upper()} {value}"


def _format_quantity(quantity: Decimal) -> str:
    normalized = quantity.normalize()
    return f"{normalized:f}"


def _paragraph(text: str | None, style) -> Paragraph:
    """Paragraph with markup-escaped text; newlines become line breaks."""
    return Paragraph(escape(text or "").replace("\n", "<br/>"), style)


def render_invoice_pdf(
    invoice: Invoice,
    client: Client,
    issuer_email: str | None,
    issuer_name: str = "",
    currency: str = "usd",
) -> bytes:
    """
    Render an invoice to PDF bytes.

    Args:
        invoice: Invoice to render
        client: Billed client
        issuer_email: Contact email of the issuing user, printed in the From block
        issuer_name: Business name printed in the From block
        currency: ISO code the amounts are printed in

    Returns:
        PDF document bytes
    """
    buffer = io.BytesIO()
    doc = SimpleDocTemplate(
        buffer,
        pagesize=A4,
        leftMargin=18 * mm,
        rightMargin=18 * mm,
        topMargin=18 * mm,
        bottomMargin=18 * mm,
        title=f"Invoice {invoice.invoice_number}",
    )
    styles = getSampleStyleSheet()
    title_style = ParagraphStyle(
        "InvoiceTitle",
        parent=styles["Heading1"],
        fontSize=24,
        textColor=_ACCENT,
        spaceAfter=6,
    )
    label_style = ParagraphStyle("Label", parent=styles["Normal"], fontSize=8, textColor=_MUTED)
    body_style = ParagraphStyle("Body", parent=styles["Normal"], fontSize=10, leading=13)

    story = [
        Paragraph("INVOICE", title_style),
        _paragraph(invoice.invoice_number, body_style),
        Spacer(1, 6 * mm),
    ]

    dates = Table(
        [
            ["Issue date", invoice.issue_date.isoformat(), "Due date", invoice.due_date.isoformat()],
            ["Status", invoice.status.value.upper(), "", ""],
        ],
        colWidths=[25 * mm, 50 * mm, 25 * mm, 50 * mm],
    )
    dates.setStyle(TableStyle([
        ("FONTNAME", (0, 0), (-1, -1), "Helvetica"),
        ("FONTSIZE", (0, 0), (-1, -1), 9),
        ("TEXTCOLOR", (0, 0), (0, -1), _MUTED),
        ("TEXTCOLOR", (2, 0), (2, -1), _MUTED),
    ]))
    story += [dates, Spacer(1, 8 * mm)]

    from_lines = "\n".join(line for line in (issuer_name, issuer_email) if line)
    to_lines = "\n".join(
        line for line in (client.name, client.company, client.email, client.phone, client.address) if line
    )
    parties = Table(
        [
            [_paragraph("FROM", label_style), _paragraph("BILL TO", label_style)],
            [_paragraph(from_lines, body_style), _paragraph(to_lines, body_style)],
        ],
        colWidths=[87 * mm, 87 * mm],
    )
    parties.setStyle(TableStyle([
        ("VALIGN", (0, 0), (-1, -1), "TOP"),
        ("LEFTPADDING", (0, 0), (-1, -1), 0),
    ]))
    story += [parties, Spacer(1, 8 * mm)]

    rows = [["Description", "Qty", "Rate", "Amount"]]
    for item in invoice.items:
        rows.append([
            _paragraph(item.description, body_style),
            _format_quantity(item.quantity),
            format_money(item.rate, currency),
            format_money(item.amount, currency),
        ])
    rows.append(["", "", "Subtotal", format_money(invoice.subtotal, currency)])
    rows.append(["", "", f"Tax ({_format_quantity(invoice.tax_rate)}%)", format_money(invoice.tax_amount, currency)])
    rows.append(["", "", "Total", format_money(invoice.total, currency)])

    items_table = Table(rows, colWidths=[94 * mm, 20 * mm, 30 * mm, 30 * mm], repeatRows=1)
    items_table.setStyle(TableStyle([
        ("BACKGROUND", (0, 0), (-1, 0), _ACCENT),
        ("TEXTCOLOR", (0, 0), (-1, 0), colors.whitesmoke),
        ("FONTNAME", (0, 0), (-1, 0), "Helvetica-Bold"),
        ("FONTSIZE", (0, 0), (-1, -1), 9),
        ("ALIGN", (1, 0), (-1, -1), "RIGHT"),
        ("VALIGN", (0, 0), (-1, -1), "MIDDLE"),
        ("BOTTOMPADDING", (0, 0), (-1, 0), 8),
        ("LINEBELOW", (0, 1), (-1, -4), 0.25, _SHADE),
        ("BACKGROUND", (2, -3), (-1, -1), _SHADE),
        ("FONTNAME", (2, -1), (-1, -1), "Helvetica-Bold"),
    ]))
    story += [items_table, Spacer(1, 10 * mm)]

    if invoice.notes:
        story += [_paragraph("NOTES", label_style), _paragraph(invoice.notes, body_style), Spacer(1, 5 * mm)]
    if invoice.terms:
        story += [_paragraph("TERMS", label_style), _paragraph(invoice.terms, body_style)]

    doc.build(story)
    return buffer.getvalue()
