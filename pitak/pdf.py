# pdf.py
# Order confirmation / receipt as a one page A4 PDF.
# Built-in Helvetica has no Thai glyphs, so text is reduced to ASCII.

from __future__ import annotations

import io
import re

from reportlab.lib.colors import Color
from reportlab.lib.pagesizes import A4
from reportlab.pdfgen import canvas

from .models import Order, to_number

GOLD = Color(0.83, 0.68, 0.21)
DARK = Color(0.29, 0, 0.07)
GREEN = Color(0.15, 0.68, 0.38)
ORANGE = Color(0.95, 0.61, 0.07)
BLACK = Color(0, 0, 0)

AMULET_TERMS = {
    "ทองแดงรมดำ": "Bronze Black",
    "ทองเหลืองผิวรุ้ง": "Brass Rainbow",
    "หน้ากากทองขาว": "White Gold Mask",
    "พิมพ์ใหญ่": "Large",
    "พิมพ์กลาง": "Medium",
    "เนื้อ": "",
    "หลวงพ่อเงิน": "Luang Por Ngern",
    "พิทักษ์แผ่นดิน": "Pitak Phandin",
}

_NON_ASCII = re.compile(r"[^\x00-\x7F]")


def to_ascii(text) -> str:
    if text is None or text == "":
        return "-"
    return _NON_ASCII.sub("", str(text)).strip() or "Thai Text"


def translate_amulet(name: str) -> str:
    if not name:
        return "Amulet"
    result = name
    for th, en in AMULET_TERMS.items():
        result = result.replace(th, en)
    result = " ".join(_NON_ASCII.sub(" ", result).split())
    return result or "Amulet"


def _baht(n) -> str:
    return f"{to_number(n) or 0:,} THB"


def render_order_pdf(order: Order, kind: str = "order") -> bytes:
    receipt = kind == "receipt"
    buf = io.BytesIO()
    c = canvas.Canvas(buf, pagesize=A4)
    c.setTitle(f"{order.order_id}-{kind}")

    y = 780

    c.setFillColor(GOLD)
    c.setFont("Helvetica-Bold", 24)
    c.drawString(200, y, "PITAK-PHANDIN")
    y -= 30

    c.setFillColor(DARK)
    c.setFont("Helvetica", 14)
    c.drawString(210, y, "RECEIPT" if receipt else "ORDER CONFIRMATION")
    y -= 40

    c.setStrokeColor(GOLD)
    c.setLineWidth(2)
    c.line(50, y, 545, y)
    y -= 30

    rows = [
        ("Order ID:", to_ascii(order.order_id)),
        ("Customer:", to_ascii(order.customer_name)),
        ("Phone:", to_ascii(order.phone)),
        ("Item:", translate_amulet(order.amulet_name)),
        ("Quantity:", str(order.quantity or 0)),
        ("Unit Price:", _baht(order.price)),
    ]
    c.setFillColor(BLACK)
    for label, value in rows:
        c.setFont("Helvetica-Bold", 12)
        c.drawString(50, y, label)
        c.setFont("Helvetica", 12)
        c.drawString(180, y, value)
        y -= 24

    y -= 10
    c.setLineWidth(1)
    c.line(50, y, 350, y)
    y -= 25

    c.setFont("Helvetica-Bold", 16)
    c.drawString(50, y, "TOTAL:")
    c.setFillColor(GOLD)
    c.drawString(180, y, _baht(order.total))
    y -= 35

    c.setFillColor(BLACK)
    c.setFont("Helvetica-Bold", 12)
    c.drawString(50, y, "Status:")
    c.setFillColor(GREEN if receipt else ORANGE)
    c.drawString(180, y, "PAID" if receipt else "PENDING PAYMENT")
    y -= 50

    c.line(50, y, 545, y)
    y -= 25
    c.setFillColor(BLACK)
    c.setFont("Helvetica", 11)
    c.drawString(210, y, "Thank you for your order")
    y -= 18
    c.setFont("Helvetica", 10)
    c.drawString(190, y, "Pitak-Phandin Amulet Collection")

    c.showPage()
    c.save()
    return buf.getvalue()
