from __future__ import annotations

# =========================================
# pdf_utils.py
# Livvitt Order - PDF order summary
# =========================================
# Printable summary of a priced order (ReportLab), attached to the
# confirmation email.
# =========================================

from io import BytesIO
from datetime import datetime, timezone

from reportlab.lib.pagesizes import letter
from reportlab.lib.units import inch
from reportlab.pdfgen import canvas

from .units import format_usd


def _safe(s) -> str:
    if s is None:
        return ""
    return str(s)


def _wrap(text: str, max_chars: int) -> list[str]:
    if len(text) <= max_chars:
        return [text]
    words = text.split()
    lines, cur = [], ""
    for w in words:
        if len(cur) + len(w) + 1 <= max_chars:
            cur = (cur + " " + w).strip()
        else:
            if cur:
                lines.append(cur)
            cur = w
    if cur:
        lines.append(cur)
    return lines


def build_order_pdf_bytes(order: dict, rows: list[dict], subtotal_cents: int, bank: dict) -> bytes:
    """
    Returns PDF bytes.
    order: dict with order_no, contact {name, email, phone}, created_at
    rows: email rows from email_utils.build_email_rows (n/product/size/qty/price/grommets/files)
    """
    buf = BytesIO()
    c = canvas.Canvas(buf, pagesize=letter)
    width, height = letter
    contact = order.get("contact") or {}

    # ---- Header
    margin = 0.6 * inch
    y = height - margin

    c.setFont("Helvetica-Bold", 16)
    c.drawString(margin, y, "Livvitt - Custom Print Order")
    y -= 0.28 * inch

    c.setFont("Helvetica", 10)
    c.drawString(margin, y, f"Order No: {_safe(order.get('order_no'))}")
    created_at = _safe(order.get("created_at")) or datetime.now(timezone.utc).isoformat()
    c.drawRightString(width - margin, y, f"Created: {created_at}")
    y -= 0.30 * inch

    # ---- Customer block
    c.setFont("Helvetica-Bold", 12)
    c.drawString(margin, y, "Customer")
    y -= 0.18 * inch

    c.setFont("Helvetica", 10)
    c.drawString(margin, y, f"Name: {_safe(contact.get('name'))}")
    y -= 0.16 * inch
    c.drawString(margin, y, f"Email: {_safe(contact.get('email'))}")
    y -= 0.16 * inch
    c.drawString(margin, y, f"Phone: {_safe(contact.get('phone'))}")
    y -= 0.28 * inch

    # ---- Items table
    col_n = margin
    col_prod = margin + 0.4 * inch
    col_size = margin + 3.6 * inch
    col_qty = margin + 4.9 * inch
    col_total = width - margin

    def table_header(title: str):
        nonlocal y
        c.setFont("Helvetica-Bold", 12)
        c.drawString(margin, y, title)
        y -= 0.22 * inch
        c.setFont("Helvetica-Bold", 9)
        c.drawString(col_n, y, "#")
        c.drawString(col_prod, y, "Product")
        c.drawString(col_size, y, "Size")
        c.drawString(col_qty, y, "Qty")
        c.drawRightString(col_total, y, "Line Total")
        y -= 0.12 * inch
        c.setLineWidth(0.5)
        c.line(margin, y, width - margin, y)
        y -= 0.14 * inch
        c.setFont("Helvetica", 9)

    table_header("Items")

    if not rows:
        c.drawString(margin, y, "(No items provided)")
        y -= 0.18 * inch
    else:
        for row in rows:
            prod_lines = _wrap(_safe(row.get("product")), 48)
            if row.get("grommets"):
                prod_lines.append(f"Grommets (est.): {row['grommets']}")
            for f in row.get("files") or []:
                prod_lines.extend(_wrap(f"File: {_safe(f.get('name'))}", 48))

            for i, text in enumerate(prod_lines):
                if y < margin + 1.0 * inch:
                    c.showPage()
                    y = height - margin
                    table_header("Items (cont.)")

                if i == 0:
                    c.drawString(col_n, y, _safe(row.get("n")))
                    c.drawString(col_size, y, _safe(row.get("size")))
                    c.drawString(col_qty, y, _safe(row.get("qty")))
                    c.drawRightString(col_total, y, _safe(row.get("price")))
                c.drawString(col_prod, y, text)
                y -= 0.14 * inch

            y -= 0.06 * inch

    c.line(margin, y, width - margin, y)
    y -= 0.20 * inch
    c.setFont("Helvetica-Bold", 11)
    c.drawString(col_qty, y, "Order Total")
    c.drawRightString(col_total, y, format_usd(subtotal_cents))
    y -= 0.36 * inch

    # ---- Bank transfer block
    if y < margin + 1.6 * inch:
        c.showPage()
        y = height - margin
    c.setFont("Helvetica-Bold", 12)
    c.drawString(margin, y, "Bank Transfer Instructions")
    y -= 0.20 * inch
    c.setFont("Helvetica", 10)
    for label, key in [
        ("Beneficiary", "beneficiary"),
        ("Bank", "bank"),
        ("Account", "account"),
        ("IBAN", "iban"),
        ("SWIFT", "swift"),
        ("Currency", "currency"),
    ]:
        c.drawString(margin, y, f"{label}: {_safe(bank.get(key))}")
        y -= 0.16 * inch

    # ---- Footer note
    c.setFont("Helvetica-Oblique", 8)
    c.drawString(margin, margin * 0.8, "Grommet counts are estimates. Signed file links expire in 7 days.")

    c.showPage()
    c.save()

    buf.seek(0)
    return buf.read()
