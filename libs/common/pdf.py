"""
PDF generation utilities using ReportLab.
"""

import io
from datetime import datetime
from typing import Optional

from reportlab.lib import colors
from reportlab.lib.pagesizes import A4
from reportlab.lib.styles import ParagraphStyle, getSampleStyleSheet
from reportlab.lib.units import inch
from reportlab.platypus import Paragraph, SimpleDocTemplate, Spacer, Table, TableStyle

BRAND_COLOR = colors.HexColor("#3ab26f")


def generate_order_receipt_pdf(
    order_number: str,
    issued_to: str,
    book_title: str,
    lines: list[tuple[str, str]],
    total_label: str,
    total_value: str,
    details: list[tuple[str, str]],
    issued_at: Optional[datetime] = None,
) -> bytes:
    """
    Render an order receipt.

    ``lines`` are (description, amount) pairs shown above the total;
    ``details`` are label/value rows (status, dates, courier) shown first.
    Returns the PDF as bytes.
    """
    buffer = io.BytesIO()
    doc = SimpleDocTemplate(
        buffer,
        pagesize=A4,
        rightMargin=0.75 * inch,
        leftMargin=0.75 * inch,
        topMargin=0.75 * inch,
        bottomMargin=0.75 * inch,
        title=f"Receipt {order_number}",
    )

    styles = getSampleStyleSheet()
    title_style = ParagraphStyle(
        "ReceiptTitle",
        parent=styles["Heading1"],
        fontSize=22,
        textColor=BRAND_COLOR,
        spaceAfter=12,
    )
    heading_style = ParagraphStyle(
        "ReceiptHeading",
        parent=styles["Heading2"],
        fontSize=13,
        textColor=colors.HexColor("#1e293b"),
        spaceBefore=16,
        spaceAfter=8,
    )

    issued_str = (issued_at or datetime.now()).strftime("%d %B %Y")
    elements = [
        Paragraph("ReBooked Solutions", title_style),
        Paragraph(f"Receipt for order {order_number}", styles["Heading2"]),
        Spacer(1, 12),
    ]

    info_rows = [["Issued to:", issued_to], ["Book:", book_title]]
    info_rows.extend([f"{label}:", value] for label, value in details)
    info_rows.append(["Date:", issued_str])
    info_table = Table(info_rows, colWidths=[1.6 * inch, 4.4 * inch])
    info_table.setStyle(
        TableStyle(
            [
                ("FONTNAME", (0, 0), (0, -1), "Helvetica-Bold"),
                ("FONTSIZE", (0, 0), (-1, -1), 10),
                ("TEXTCOLOR", (0, 0), (0, -1), colors.HexColor("#64748b")),
                ("BOTTOMPADDING", (0, 0), (-1, -1), 6),
            ]
        )
    )
    elements.append(info_table)

    elements.append(Paragraph("Amounts", heading_style))
    amount_rows = [["Description", "Amount"], *[list(line) for line in lines]]
    amount_rows.append([total_label, total_value])
    amount_table = Table(amount_rows, colWidths=[4.5 * inch, 1.5 * inch])
    amount_table.setStyle(
        TableStyle(
            [
                ("BACKGROUND", (0, 0), (-1, 0), BRAND_COLOR),
                ("TEXTCOLOR", (0, 0), (-1, 0), colors.whitesmoke),
                ("FONTNAME", (0, 0), (-1, 0), "Helvetica-Bold"),
                ("FONTNAME", (0, -1), (-1, -1), "Helvetica-Bold"),
                ("LINEABOVE", (0, -1), (-1, -1), 1, colors.HexColor("#1e293b")),
                ("ALIGN", (1, 0), (1, -1), "RIGHT"),
                ("GRID", (0, 0), (-1, -2), 0.5, colors.HexColor("#e2e8f0")),
                ("PADDING", (0, 0), (-1, -1), 8),
            ]
        )
    )
    elements.append(amount_table)
    elements.append(Spacer(1, 24))

    footer_style = ParagraphStyle(
        "Footer",
        parent=styles["Normal"],
        fontSize=9,
        textColor=colors.HexColor("#94a3b8"),
        alignment=1,
    )
    elements.append(
        Paragraph(
            "Payments are processed by Paystack. Amounts are in South African Rand (ZAR).",
            footer_style,
        )
    )

    doc.build(elements)
    buffer.seek(0)
    return buffer.getvalue()
