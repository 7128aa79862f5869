from __future__ import annotations

# =========================================
# orders_api.py
# Livvitt Order - Quote / Upload / Order API
# =========================================
# - GET  /api/products          catalog for the order form
# - POST /api/quote             live price preview (JSON)
# - POST /api/uploads/sign      signed upload target for artwork
# - PUT  /api/uploads/<token>   artwork upload
# - GET  /files/<token>         signed read link
# - POST /api/orders            reprice, build PDF, send confirmation email
# Orders are not stored; the email is the record.
# =========================================

import os
import random
import re
from datetime import datetime, timezone

from flask import Blueprint, abort, current_app, jsonify, request, send_file

from .catalog import list_products
from .email_utils import bank_details, build_email_rows, send_order_email
from .pdf_utils import build_order_pdf_bytes
from .pricing import price_order
from .storage import (
    StorageError,
    files_by_item,
    load_read_token,
    resolve,
    save_upload,
    sign_upload,
)
from .units import format_usd

orders_api = Blueprint("orders_api", __name__, template_folder="templates")

_EMAIL_RE = re.compile(r"\S+@\S+\.\S+")


def make_order_no(now: datetime | None = None) -> str:
    """LIV-YYYYMMDD-NNNN"""
    d = now or datetime.now()
    return f"LIV-{d.strftime('%Y%m%d')}-{random.randint(0, 9999):04d}"


@orders_api.app_template_filter("cents")
def cents_filter(v):
    try:
        return format_usd(int(v))
    except (TypeError, ValueError):
        return v


def _error(message: str, status: int):
    return jsonify({"ok": False, "error": message}), status


def _json_body():
    """Returns (body, error_response). Only application/json is accepted."""
    ct = request.headers.get("Content-Type", "")
    if "application/json" not in ct:
        return None, _error(f"Unsupported content type: {ct}", 415)
    body = request.get_json(silent=True)
    if not isinstance(body, dict):
        return None, _error("Invalid JSON body", 400)
    return body, None


def _items(body: dict) -> list[dict]:
    items = body.get("items")
    if not isinstance(items, list):
        return []
    return [row for row in items if isinstance(row, dict)]


@orders_api.get("/api/products")
def products():
    return jsonify({"products": [p.to_dict() for p in list_products()]})


@orders_api.post("/api/quote")
def quote():
    body, err = _json_body()
    if err:
        return err
    result = price_order(_items(body))
    return jsonify({"ok": True, **result.to_dict()})


@orders_api.post("/api/uploads/sign")
def sign():
    body, err = _json_body()
    if err:
        return err
    order_no = body.get("orderNo")
    item_id = body.get("itemId")
    filename = body.get("filename")
    if not order_no or not item_id or not filename:
        return _error("Missing orderNo, itemId or filename", 400)
    try:
        target = sign_upload(order_no, item_id, filename, body.get("contentType"))
    except StorageError as e:
        return _error(str(e), 400)
    return jsonify(target)


@orders_api.put("/api/uploads/<token>")
def upload_file(token):
    try:
        path = save_upload(token, request.get_data())
    except StorageError as e:
        return _error(str(e), 403)
    except OSError:
        current_app.logger.exception("Upload write failed")
        return _error("Upload failed", 500)
    return jsonify({"ok": True, "path": path})


@orders_api.get("/files/<token>")
def download_file(token):
    try:
        full = resolve(load_read_token(token))
    except StorageError:
        abort(403)
    if not os.path.isfile(full):
        abort(404)
    return send_file(full, as_attachment=False)


@orders_api.post("/api/orders")
def create_order():
    """
    POST /api/orders
    JSON body:
      - orderNo (optional; generated when missing)
      - contact: {name, email, phone}
      - items: [{id, productKey, size: {w, h, unit}, qty, opts}]
      - uploadedByItem: [{itemId, paths: [...]}]
    Prices are recomputed here; client-side totals are ignored.
    """
    body, err = _json_body()
    if err:
        return err

    contact = body.get("contact") if isinstance(body.get("contact"), dict) else {}
    customer_email = str(contact.get("email") or "").strip()
    if not customer_email or not isinstance(body.get("items"), list):
        return _error("Missing contact.email or items", 400)
    if not _EMAIL_RE.search(customer_email):
        return _error("Invalid contact.email", 400)

    items = _items(body)
    order_no = str(body.get("orderNo") or "").strip() or make_order_no()

    # -----------------------------
    # Authoritative pricing
    # -----------------------------
    result = price_order(items)
    if result.errors:
        bad = [
            str(it.get("id") or i + 1)
            for i, (it, line) in enumerate(zip(items, result.lines))
            if not line.ok
        ]
        return jsonify({
            "ok": False,
            "error": "; ".join(sorted({e.reason for e in result.errors})),
            "items": bad,
        }), 400

    # -----------------------------
    # Signed read links for uploaded artwork
    # -----------------------------
    uploaded = body.get("uploadedByItem")
    links = files_by_item(order_no, uploaded if isinstance(uploaded, list) else [])

    order = {
        "order_no": order_no,
        "contact": {
            "name": str(contact.get("name") or "").strip(),
            "email": customer_email,
            "phone": str(contact.get("phone") or "").strip(),
        },
        "items": items,
        "created_at": datetime.now(timezone.utc).isoformat(timespec="seconds"),
    }

    # -----------------------------
    # PDF summary + email (email failure fails the request; nothing else records the order)
    # -----------------------------
    try:
        rows = build_email_rows(items, result, links)
        pdf_bytes = build_order_pdf_bytes(order, rows, result.subtotal_cents, bank_details())
        send_order_email(order, result, links, pdf_bytes=pdf_bytes)
    except Exception as e:
        current_app.logger.exception("Order email failed for %s", order_no)
        return _error(str(e) or "Email failed", 500)

    current_app.logger.info(
        "Order %s sent (%d items, %d cents)", order_no, len(items), result.subtotal_cents
    )
    return jsonify({
        "ok": True,
        "orderNo": order_no,
        "filesByItem": links,
        "pricing": result.to_dict(),
    }), 200
