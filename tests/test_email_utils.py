import pytest
from flask import Flask

from livvitt_order.email_utils import (
    LINK_DAYS_NOTE,
    bank_details,
    build_email_rows,
    build_html_body,
    build_subject,
    build_text_body,
    send_order_email,
    size_label,
)
from livvitt_order.orders_api import orders_api
from livvitt_order.pricing import price_order

ITEMS = [
    {
        "id": "a1",
        "productKey": "banner13oz",
        "size": {"w": 36, "h": 24, "unit": "in"},
        "qty": 10,
        "opts": {"hems": True, "grommets": True},
    },
    {
        "id": "b2",
        "productKey": "coroplast4mm",
        "size": {"w": 18, "h": 24, "unit": "in"},
        "qty": 1,
        "opts": {},
    },
]

FILES = {
    "a1": [{"url": "http://orders.test/files/tok", "name": "banner.pdf", "expires": 604800}],
}


def _order():
    return {
        "order_no": "LIV-20261019-0042",
        "contact": {"name": "Ana Ruiz", "email": "ana@example.com", "phone": "555-0100"},
        "items": ITEMS,
    }


def test_build_email_rows():
    rows = build_email_rows(ITEMS, price_order(ITEMS), FILES)
    assert rows[0]["product"] == "13oz Vinyl Banner"
    assert rows[0]["size"] == "36×24 in"
    assert rows[0]["qty"] == 10
    assert rows[0]["price"] == "$377.63"
    assert rows[0]["grommets"] == 5
    assert rows[0]["files"] == FILES["a1"]
    assert rows[1]["grommets"] is None
    assert rows[1]["files"] == []


@pytest.mark.parametrize("size, label", [
    ({"w": None, "h": None, "unit": "in"}, "× in"),
    ({"w": 0, "h": 24, "unit": "ft"}, "0×24 ft"),
    ({"w": 36, "h": 24}, "36×24"),
    (None, "×"),
])
def test_size_label_never_prints_none(size, label):
    assert size_label({"size": size}) == label


def test_subject():
    assert build_subject(_order()) == "Order LIV-20261019-0042 — Files & Details"


def test_text_body_has_totals_links_and_bank(app):
    quote = price_order(ITEMS)
    rows = build_email_rows(ITEMS, quote, FILES)
    with app.app_context():
        bank = bank_details()
    body = build_text_body(_order(), rows, quote.subtotal_cents, bank)
    assert "Ana Ruiz" in body
    assert "ana@example.com · 555-0100" in body
    assert "Grommets (est.): 5" in body
    assert "banner.pdf (7 days): http://orders.test/files/tok" in body
    assert "Files: (no file)" in body
    assert "Order Total: $404.63" in body
    assert "Beneficiary: Livvitt Plus N.V." in body
    assert LINK_DAYS_NOTE in body


def test_bank_details_from_config(app, monkeypatch):
    monkeypatch.setitem(app.config, "BANK_IBAN", "NL00 TEST 0000 0000 00")
    with app.app_context():
        assert bank_details()["iban"] == "NL00 TEST 0000 0000 00"
        assert bank_details()["currency"] == "USD"


def test_send_order_email(app, smtp):
    quote = price_order(ITEMS)
    with app.app_context():
        assert send_order_email(_order(), quote, FILES, pdf_bytes=b"%PDF-1.4") is True

    assert len(smtp.sent) == 1
    msg = smtp.sent[0]
    assert msg["To"] == "shop@livvitt.test, ana@example.com"
    assert msg["From"] == "orders@livvitt.test"
    assert msg["Subject"] == "Order LIV-20261019-0042 — Files & Details"

    html = msg.get_body(preferencelist=("html",)).get_content()
    assert "<h2>Order LIV-20261019-0042</h2>" in html
    assert '<a href="http://orders.test/files/tok">banner.pdf</a> (7 days)' in html
    assert "$377.63" in html
    assert "<b>Order Total:</b> $404.63" in html
    assert "Signed links expire in 7 days." in html

    attachments = list(msg.iter_attachments())
    assert [a.get_filename() for a in attachments] == ["order_LIV-20261019-0042.pdf"]


def test_send_order_email_bcc(app, smtp, monkeypatch):
    monkeypatch.setitem(app.config, "BCC_EMAIL", "archive@livvitt.test")
    with app.app_context():
        send_order_email(_order(), price_order(ITEMS), {})
    assert smtp.sent[0]["Bcc"] == "archive@livvitt.test"


def test_send_order_email_requires_smtp_host(app, smtp, monkeypatch):
    monkeypatch.setitem(app.config, "SMTP_HOST", None)
    with app.app_context(), pytest.raises(RuntimeError, match="SMTP_HOST"):
        send_order_email(_order(), price_order(ITEMS), {})
    assert smtp.sent == []


def test_send_order_email_requires_sender(app, smtp, monkeypatch):
    monkeypatch.setitem(app.config, "ORDERS_EMAIL_FROM", None)
    monkeypatch.setitem(app.config, "SMTP_USER", None)
    with app.app_context(), pytest.raises(RuntimeError, match="ORDERS_EMAIL_FROM"):
        send_order_email(_order(), price_order(ITEMS), {})


def test_html_body_renders_on_any_app_with_the_blueprint():
    other = Flask("elsewhere")
    other.register_blueprint(orders_api)
    quote = price_order(ITEMS)
    rows = build_email_rows(ITEMS, quote, FILES)
    with other.app_context():
        html = build_html_body(_order(), rows, quote.subtotal_cents, bank_details(other))
    assert "<b>Order Total:</b> $404.63" in html
    assert "banner.pdf" in html
