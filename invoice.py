"""
invoice.py
PDF invoice for a single bill (reportlab canvas, A4).

render_invoice() is pure: it reads the bill snapshot and returns bytes.
Missing or malformed amounts print as Rs. 0.00.
"""

from __future__ import annotations

import logging
from io import BytesIO

from reportlab.lib import colors
from reportlab.lib.pagesizes import A4
from reportlab.lib.utils import ImageReader
from reportlab.pdfgen import canvas

import config
from utils import format_date, format_money

logger = logging.getLogger(__name__)

MARGIN = 36
LOGO_SIZE = 84
SECTION_BAR_HEIGHT = 14
PENDING_BAR_HEIGHT = 24
YELLOW = colors.HexColor("#f5c518")
DARK_YELLOW = colors.HexColor("#d4a017")

TERMS = [
    "1. Membership is personal, no adjustment of days, no refund.",
    "2. Absentee days cannot be claimed later.",
    "3. Member is responsible for their health.",
    "4. We are not liable for valuable items.",
    "5. Management may suspend membership anytime.",
]


def billing_rows(bill: dict) -> list[tuple[str, str]]:
    via = bill.get("paymentMethodDetail") or "Cash"
    return [
        ("Package fees:", format_money(bill.get("price"))),
        ("Other Charges:", format_money(bill.get("admissionCharges"))),
        ("Discount:", format_money(bill.get("discountAmount"))),
        ("TAX :", format_money(bill.get("tax"))),
        (f"First amount paid : Via {via}", format_money(bill.get("amountPaid"))),
    ]


class _Layout:
    """Top-down cursor over a reportlab canvas (reportlab's origin is bottom-left)."""

    def __init__(self, pdf: canvas.Canvas):
        self.pdf = pdf
        self.page_w, self.page_h = A4
        self.left = MARGIN
        self.width = self.page_w - 2 * MARGIN
        self.y = MARGIN

    def text(self, value, x, y, font="Helvetica", size=10, color=colors.black, align="left", width=None):
        self.pdf.setFont(font, size)
        self.pdf.setFillColor(color)
        baseline = self.page_h - y - size
        value = str(value)
        if align == "right":
            self.pdf.drawRightString(x + width, baseline, value)
        elif align == "center":
            self.pdf.drawCentredString(x + width / 2, baseline, value)
        else:
            self.pdf.drawString(x, baseline, value)

    def bar(self, y, height, color):
        self.pdf.setFillColor(color)
        self.pdf.rect(self.left, self.page_h - y - height, self.width, height, stroke=0, fill=1)

    def section(self, title):
        self.bar(self.y, SECTION_BAR_HEIGHT, YELLOW)
        self.text(f" {title}", self.left + 6, self.y + 3, font="Helvetica-Bold", size=10)
        self.y += SECTION_BAR_HEIGHT + 8

    def label_value(self, label, value, x):
        self.text(label, x, self.y, size=9, color=colors.HexColor("#333333"))
        self.text(value or "-", x, self.y + 11, font="Helvetica-Bold", size=10)


def _draw_header(page: _Layout) -> None:
    pdf = page.pdf
    pdf.setStrokeColor(colors.black)
    pdf.rect(page.left, page.page_h - page.y - LOGO_SIZE, LOGO_SIZE, LOGO_SIZE, stroke=1, fill=0)

    lines = [
        f"Address: {config.COMPANY_ADDRESS}",
        f"Phone: {config.COMPANY_PHONE}",
        f"Website: {config.COMPANY_WEBSITE}",
        f"E-Mail: {config.COMPANY_EMAIL}",
    ]
    right_x = page.left + page.width - 300
    for i, line in enumerate(lines):
        page.text(line, right_x, page.y + 12 * i, size=9, align="right", width=300)

    page.y += LOGO_SIZE + 16


def _draw_picture(page: _Layout, picture: bytes) -> None:
    try:
        image = ImageReader(BytesIO(picture))
        page.pdf.drawImage(image, page.left + page.width - 84, page.page_h - 110 - 64, width=64, height=64)
    except Exception:
        # unreadable image: the invoice is still rendered without it
        logger.warning("Skipping unreadable profile picture on invoice")


def render_invoice(bill: dict, picture: bytes | None = None) -> bytes:
    buffer = BytesIO()
    pdf = canvas.Canvas(buffer, pagesize=A4, pageCompression=0)
    pdf.setTitle(f"Invoice {bill.get('memberId') or ''}".strip())
    page = _Layout(pdf)

    _draw_header(page)

    col_gap = 12
    col_w = (page.width - col_gap) / 2
    left_col = page.left
    right_col = page.left + col_w + col_gap

    # Client detail
    page.section("Client Detail")
    page.label_value("Member ID:", bill.get("memberId") or "", left_col)
    page.label_value("Billing date:", format_date(bill.get("joiningDate")), right_col)
    page.y += 34
    page.label_value("Name:", bill.get("client") or "", left_col)
    page.label_value("Phone:", bill.get("contactNumber") or "", right_col)
    page.y += 36

    # Description
    page.section("Description")
    page.label_value("Package name:", bill.get("package") or "", left_col)
    page.label_value("Start date:", format_date(bill.get("joiningDate")), right_col)
    page.y += 34
    page.label_value("End date:", format_date(bill.get("endDate")), left_col)
    page.label_value("Billed by:", bill.get("billedBy") or "Admin", right_col)
    page.y += 36

    # Billing detail
    page.section("Billing Detail")
    value_x = page.left + page.width - 140
    for label, value in billing_rows(bill):
        page.text(label, left_col, page.y)
        page.text(value, value_x, page.y, align="right", width=140)
        page.y += 18
    page.y += 6

    # Pending amount
    page.bar(page.y, PENDING_BAR_HEIGHT, DARK_YELLOW)
    page.text("Pending Amount:", page.left + 10, page.y + 6, font="Helvetica-Bold", size=11)
    page.text(
        format_money(bill.get("balance")),
        page.left + page.width - 120,
        page.y + 6,
        font="Helvetica-Bold",
        size=11,
        align="right",
        width=110,
    )
    page.y += PENDING_BAR_HEIGHT + 20

    # Terms
    page.text("Terms & Condition", page.left, page.y, font="Helvetica-Bold", size=11)
    page.y += 16
    for term in TERMS:
        page.text(term, page.left + 6, page.y, size=8, color=colors.red)
        page.y += 12
    page.y += 18

    page.text("To accept this invoice, sign here and return ____________________", page.left, page.y, size=11)
    page.y += 28
    page.text(
        "Thank you for your business and we look forward to coaching you.",
        page.left,
        page.y,
        font="Helvetica-Bold",
        size=11,
        align="center",
        width=page.width,
    )
    page.text(config.COMPANY_NAME, page.left, page.page_h - 72, size=10, align="center", width=page.width)

    if picture:
        _draw_picture(page, picture)

    pdf.showPage()
    pdf.save()
    return buffer.getvalue()
