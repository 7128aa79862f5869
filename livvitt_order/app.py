import logging
import os

from dotenv import load_dotenv
from flask import Flask, jsonify, request

from .orders_api import orders_api

load_dotenv()

logging.basicConfig(
    level=os.getenv("LOG_LEVEL", "INFO").upper(),
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
)

app = Flask(__name__)
app.secret_key = os.getenv("SECRET_KEY", "dev-secret-change-me")

# Where uploaded artwork is stored (orders/<order_no>/<item_id>/<file>)
app.config["ORDER_UPLOAD_DIR"] = os.getenv("ORDER_UPLOAD_DIR", "uploads")
# Artwork uploads are capped at 100 MB each
app.config["MAX_CONTENT_LENGTH"] = int(os.getenv("MAX_UPLOAD_BYTES", 100 * 1024 * 1024))

app.register_blueprint(orders_api)

CORS_HEADERS = {
    "Access-Control-Allow-Origin": "*",
    "Access-Control-Allow-Headers": "content-type",
    "Access-Control-Allow-Methods": "OPTIONS,POST,PUT,GET",
}

# Shown masked by /api/debug-env
DEBUG_ENV_KEYS = ["ORDER_UPLOAD_DIR", "SMTP_HOST", "SMTP_PORT", "ORDERS_EMAIL_FROM", "ORDERS_EMAIL_TO"]
DEBUG_ENV_SECRETS = ["SECRET_KEY", "SMTP_USER", "SMTP_PASS"]


# -------------------- CORS --------------------
@app.before_request
def cors_preflight():
    if request.method == "OPTIONS" and request.path.startswith("/api/"):
        return app.response_class(status=204, headers=CORS_HEADERS)


@app.after_request
def add_cors_headers(response):
    if request.path.startswith("/api/"):
        for k, v in CORS_HEADERS.items():
            response.headers.setdefault(k, v)
    return response


# -------------------- Debug --------------------
def _mask(v) -> str:
    return v[:6] + "…" if v else ""


@app.get("/api/debug-env")
def debug_env():
    if not app.debug:
        return jsonify({"ok": False, "error": "Not found"}), 404
    out = {k: app.config.get(k, os.getenv(k)) for k in DEBUG_ENV_KEYS}
    out.update({k: _mask(str(app.config.get(k) or os.getenv(k) or "")) for k in DEBUG_ENV_SECRETS})
    return jsonify(out)


if __name__ == "__main__":
    # python -m livvitt_order.app
    app.run(debug=True)
