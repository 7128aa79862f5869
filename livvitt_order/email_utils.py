from __future__ import annotations

# =========================================
# email_utils.py
# Livvitt Order - confirmation email
# =========================================
# Sends one message to ORDERS_EMAIL_TO and the customer with:
#  - priced item table + order total
#  - signed artwork links per item
#  - bank transfer instructions
#  - PDF order summary attachment
#
# Configuration (Flask app.config or environment variables):
#   SMTP_HOST, SMTP_PORT, SMTP_USER, SMTP_PASS
#   SMTP_USE_TLS (true/false), SMTP_USE_SSL (true/false)
#   ORDERS_EMAIL_FROM (default: SMTP_USER)
#   ORDERS_EMAIL_TO
#   BCC_EMAIL (optional)
#   BANK_BENEFICIARY, BANK_NAME, BANK_ACCOUNT, BANK_IBAN, BANK_SWIFT, BANK_CURRENCY
# =========================================

import os
import smtplib
from email.message import EmailMessage
from typing import Optional

from flask import current_app, render_template

from .units import format_usd

BANK_DEFAULTS = {
    "beneficiary": ("BANK_BENEFICIARY", "Livvitt Plus N.V."),
    "bank": ("BANK_NAME", "Your Bank Name"),
    "account": ("BANK_ACCOUNT", "000123456789"),
    "iban": ("BANK_IBAN", "XX00 0000 0000 0000 0000 00"),
    "swift": ("BANK_SWIFT", "ABCDEF12"),
    "currency": ("BANK_CURRENCY", "USD"),
}

LINK_DAYS_NOTE = "Signed links expire in 7 days."


def _cfg(app, key: str, default=None):
    # Prefer Flask app.config, fall back to environment
    if app and key in app.config:
        return app.config.get(key, default)
    return os.getenv(key, default)


def _as_bool(val) -> bool:
    if isinstance(val, bool):
        return val
    if val is None:
        return False
    return str(val).strip().lower() in {"1", "true", "yes", "y", "on"}


def _current_app():
    # Works outside a request too; then only the environment is used
    try:
        return current_app._get_current_object()
    except RuntimeError:
        return None


def bank_details(app=None) -> dict:
    app = app or _current_app()
    return {field: _cfg(app, key, default) for field, (key, default) in BANK_DEFAULTS.items()}


def size_label(item: dict) -> str:
    size = item.get("size")
    if not isinstance(size, dict):
        size = {}
    w, h, unit = ("" if size.get(k) is None else size.get(k) for k in ("w", "h", "unit"))
    return f"{w}×{h} {unit}".rstrip()


def build_email_rows(items: list[dict], quote, files_by_item: dict) -> list[dict]:
    """Zip the submitted items with their priced lines and file links."""
    rows = []
    for i, item in enumerate(items):
        line = quote.lines[i] if i < len(quote.lines) else None
        priced = line is not None and line.ok
        rows.append({
            "n": i + 1,
            "product": (line.product_name if priced else item.get("productName")) or "",
            "size": size_label(item),
            "qty": line.qty if priced else item.get("qty", ""),
            "price": format_usd(line.cents["total"]) if priced else "",
            "grommets": line.grommet_count if priced and line.grommet_count else None,
            "files": files_by_item.get(str(item.get("id") or ""), []),
        })
    return rows


def build_subject(order: dict) -> str:
    return f"Order {order.get('order_no', '')} — Files & Details"


def build_text_body(order: dict, rows: list[dict], subtotal_cents: int, bank: dict) -> str:
    contact = order.get("contact") or {}
    lines = []
    lines.append(f"Order {order.get('order_no', '')}")
    lines.append("")
    lines.append("Customer")
    lines.append(f"  {contact.get('name', '')}")
    email_line = f"  {contact.get('email', '')}"
    if contact.get("phone"):
        email_line += f" · {contact.get('phone')}"
    lines.append(email_line)
    lines.append("")
    lines.append("Items")
    if not rows:
        lines.append("  (none)")
    for row in rows:
        lines.append(f"  {row['n']}. {row['product']}  {row['size']}  Qty={row['qty']}  {row['price']}")
        if row["grommets"]:
            lines.append(f"     Grommets (est.): {row['grommets']}")
        if not row["files"]:
            lines.append("     Files: (no file)")
        for f in row["files"]:
            lines.append(f"     {f['name']} ({round(f['expires'] / 86400)} days): {f['url']}")
    lines.append("")
    lines.append(f"Order Total: {format_usd(subtotal_cents)}")
    lines.append("")
    lines.append("Bank Transfer Instructions")
    lines.append(f"  Beneficiary: {bank.get('beneficiary', '')}")
    lines.append(f"  Bank: {bank.get('bank', '')}")
    lines.append(f"  Account: {bank.get('account', '')}")
    lines.append(f"  IBAN: {bank.get('iban', '')}")
    lines.append(f"  SWIFT: {bank.get('swift', '')}")
    lines.append(f"  Currency: {bank.get('currency', '')}")
    lines.append("")
    lines.append(LINK_DAYS_NOTE)
    return "\n".join(lines)


def build_html_body(order: dict, rows: list[dict], subtotal_cents: int, bank: dict) -> str:
    return render_template(
        "email/order_confirmation.html",
        order=order,
        contact=order.get("contact") or {},
        rows=rows,
        subtotal_cents=subtotal_cents,
        bank=bank,
        note=LINK_DAYS_NOTE,
    )


def _send_email(
    host: str,
    port: int,
    user: Optional[str],
    password: Optional[str],
    use_tls: bool,
    use_ssl: bool,
    msg: EmailMessage,
):
    if use_ssl:
        with smtplib.SMTP_SSL(host, port) as s:
            if user and password:
                s.login(user, password)
            s.send_message(msg)
        return

    with smtplib.SMTP(host, port) as s:
        s.ehlo()
        if use_tls:
            s.starttls()
            s.ehlo()
        if user and password:
            s.login(user, password)
        s.send_message(msg)


def build_order_message(
    order: dict,
    rows: list[dict],
    subtotal_cents: int,
    bank: dict,
    pdf_bytes: Optional[bytes],
    from_email: str,
    to_list: list[str],
    bcc_email: Optional[str] = None,
) -> EmailMessage:
    msg = EmailMessage()
    msg["Subject"] = build_subject(order)
    msg["From"] = from_email
    msg["To"] = ", ".join(to_list)
    if bcc_email:
        msg["Bcc"] = bcc_email
    msg.set_content(build_text_body(order, rows, subtotal_cents, bank))
    msg.add_alternative(build_html_body(order, rows, subtotal_cents, bank), subtype="html")

    if pdf_bytes:
        msg.add_attachment(
            pdf_bytes,
            maintype="application",
            subtype="pdf",
            filename=f"order_{order.get('order_no', '')}.pdf",
        )
    return msg


def send_order_email(order: dict, quote, files_by_item: dict, pdf_bytes: Optional[bytes] = None) -> bool:
    """
    Sends the order confirmation to the shop inbox and the customer.
    Raises RuntimeError if SMTP is misconfigured; SMTP errors propagate (caller can catch).
    """
    app = _current_app()

    smtp_host = _cfg(app, "SMTP_HOST")
    smtp_port = int(_cfg(app, "SMTP_PORT", 587))
    smtp_user = _cfg(app, "SMTP_USER")
    smtp_pass = _cfg(app, "SMTP_PASS")
    use_tls = _as_bool(_cfg(app, "SMTP_USE_TLS", True))
    use_ssl = _as_bool(_cfg(app, "SMTP_USE_SSL", False))

    from_email = _cfg(app, "ORDERS_EMAIL_FROM") or smtp_user
    shop_to = _cfg(app, "ORDERS_EMAIL_TO")
    bcc_email = _cfg(app, "BCC_EMAIL", None)
    customer_to = ((order.get("contact") or {}).get("email") or "").strip()

    if not smtp_host:
        raise RuntimeError("SMTP_HOST is not configured")
    if not from_email:
        raise RuntimeError("ORDERS_EMAIL_FROM (or SMTP_USER) is not configured")

    to_list = [addr for addr in (shop_to, customer_to) if addr]
    if not to_list:
        raise RuntimeError("No recipients (ORDERS_EMAIL_TO or customer email)")

    bank = bank_details(app)
    rows = build_email_rows(order.get("items") or [], quote, files_by_item)
    msg = build_order_message(
        order, rows, quote.subtotal_cents, bank, pdf_bytes, from_email, to_list, bcc_email
    )

    _send_email(
        host=smtp_host,
        port=smtp_port,
        user=smtp_user,
        password=smtp_pass,
        use_tls=use_tls,
        use_ssl=use_ssl,
        msg=msg,
    )
    return True
