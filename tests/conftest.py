import pytest

from livvitt_order import email_utils
from livvitt_order.app import app as flask_app


class FakeSMTP:
    """Stands in for smtplib.SMTP / SMTP_SSL and records sent messages."""

    sent = []

    def __init__(self, host, port):
        self.host = host
        self.port = port

    def __enter__(self):
        return self

    def __exit__(self, *exc):
        return False

    def ehlo(self):
        pass

    def starttls(self):
        pass

    def login(self, user, password):
        pass

    def send_message(self, msg):
        FakeSMTP.sent.append(msg)


@pytest.fixture
def app(tmp_path):
    flask_app.config.update(
        TESTING=True,
        ORDER_UPLOAD_DIR=str(tmp_path / "uploads"),
        SERVER_NAME="orders.test",
        SMTP_HOST="smtp.test",
        SMTP_PORT=25,
        SMTP_USER=None,
        SMTP_PASS=None,
        SMTP_USE_TLS=False,
        SMTP_USE_SSL=False,
        ORDERS_EMAIL_FROM="orders@livvitt.test",
        ORDERS_EMAIL_TO="shop@livvitt.test",
        BCC_EMAIL=None,
    )
    yield flask_app


@pytest.fixture
def client(app):
    return app.test_client()


@pytest.fixture
def smtp(monkeypatch):
    FakeSMTP.sent = []
    monkeypatch.setattr(email_utils.smtplib, "SMTP", FakeSMTP)
    monkeypatch.setattr(email_utils.smtplib, "SMTP_SSL", FakeSMTP)
    return FakeSMTP
