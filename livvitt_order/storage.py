from __future__ import annotations

# =========================================
# storage.py
# Livvitt Order - artwork storage with signed links
# =========================================
# Files live under ORDER_UPLOAD_DIR at orders/<order_no>/<item_id>/<name>.
# Access goes through time-limited tokens signed with the app secret:
#   - upload targets (PUT), valid UPLOAD_TOKEN_MAX_AGE seconds
#   - read links (GET), valid READ_LINK_MAX_AGE seconds (7 days)
# =========================================

import os

from flask import current_app, url_for
from itsdangerous import BadSignature, SignatureExpired, URLSafeTimedSerializer
from werkzeug.security import safe_join
from werkzeug.utils import secure_filename

UPLOAD_TOKEN_MAX_AGE = 60 * 60 * 2
READ_LINK_MAX_AGE = 60 * 60 * 24 * 7
MAX_FILES_PER_ITEM = 5

# Artwork formats accepted from the order form
ALLOWED_EXTS = {".pdf", ".ai", ".eps", ".svg", ".png", ".jpg", ".jpeg"}

_UPLOAD_SALT = "livvitt-upload"
_READ_SALT = "livvitt-read"


class StorageError(Exception):
    """Raised when an upload target or signed link cannot be issued."""


def _serializer(salt: str) -> URLSafeTimedSerializer:
    return URLSafeTimedSerializer(current_app.secret_key, salt=salt)


def upload_root() -> str:
    return os.path.abspath(current_app.config.get("ORDER_UPLOAD_DIR", "uploads"))


def allowed(filename: str) -> bool:
    _, ext = os.path.splitext(filename.lower())
    return ext in ALLOWED_EXTS


def resolve(path: str) -> str:
    full = safe_join(upload_root(), path)
    if full is None:
        raise StorageError(f"Invalid storage path: {path}")
    return full


def item_dir(order_no: str, item_id: str) -> str:
    return "/".join(["orders", order_no, item_id])


def sign_upload(order_no, item_id, filename, content_type=None) -> dict:
    """
    Issue a signed upload target for one artwork file.
    Returns {"path", "token", "url"}; the client PUTs the raw file to url.
    """
    order_no = secure_filename(str(order_no or ""))
    item_id = secure_filename(str(item_id or ""))
    safe_name = secure_filename(str(filename or ""))
    if not order_no or not item_id or not safe_name:
        raise StorageError("Missing orderNo, itemId or filename")
    if not allowed(safe_name):
        raise StorageError(f"File type not accepted: {safe_name}")

    folder = item_dir(order_no, item_id)
    path = f"{folder}/{safe_name}"

    existing = resolve(folder)
    if os.path.isdir(existing):
        names = set(os.listdir(existing))
        if safe_name not in names and len(names) >= MAX_FILES_PER_ITEM:
            raise StorageError(f"At most {MAX_FILES_PER_ITEM} files per item")

    token = _serializer(_UPLOAD_SALT).dumps(
        {"path": path, "contentType": content_type or "application/octet-stream"}
    )
    return {
        "path": path,
        "token": token,
        "url": url_for("orders_api.upload_file", token=token, _external=True),
    }


def load_upload_token(token: str) -> dict:
    try:
        return _serializer(_UPLOAD_SALT).loads(token, max_age=UPLOAD_TOKEN_MAX_AGE)
    except SignatureExpired as e:
        raise StorageError("Upload link expired") from e
    except BadSignature as e:
        raise StorageError("Invalid upload link") from e


def save_upload(token: str, data: bytes) -> str:
    """Store (or overwrite) the file an upload token points at. Returns its path."""
    payload = load_upload_token(token)
    path = payload["path"]
    full = resolve(path)
    os.makedirs(os.path.dirname(full), exist_ok=True)
    with open(full, "wb") as f:
        f.write(data)
    return path


def signed_read_url(path: str) -> str:
    token = _serializer(_READ_SALT).dumps({"path": path})
    return url_for("orders_api.download_file", token=token, _external=True)


def load_read_token(token: str) -> str:
    try:
        payload = _serializer(_READ_SALT).loads(token, max_age=READ_LINK_MAX_AGE)
    except SignatureExpired as e:
        raise StorageError("Link expired") from e
    except BadSignature as e:
        raise StorageError("Invalid link") from e
    return payload["path"]


def files_by_item(order_no, uploaded_by_item: list[dict]) -> dict[str, list[dict]]:
    """
    Build {item_id: [{url, name, expires}]} for the order email.
    Only files directly under orders/<order_no>/<item_id>/ are listed;
    other paths and files missing on disk are skipped.
    """
    order_no = secure_filename(str(order_no or ""))
    result: dict[str, list[dict]] = {}
    for row in uploaded_by_item or []:
        if not isinstance(row, dict):
            continue
        item_id = str(row.get("itemId") or "")
        prefix = item_dir(order_no, secure_filename(item_id)) + "/"
        listing = []
        for path in row.get("paths") or []:
            path = str(path)
            name = path[len(prefix):] if path.startswith(prefix) else ""
            if not order_no or not name or "/" in name:
                current_app.logger.warning("Skipping upload path outside %s: %r", prefix, path)
                continue
            try:
                full = resolve(path)
            except StorageError:
                current_app.logger.warning("Skipping invalid upload path %r", path)
                continue
            if not os.path.isfile(full):
                current_app.logger.warning("Uploaded file not found: %s", path)
                continue
            listing.append({
                "url": signed_read_url(path),
                "name": name,
                "expires": READ_LINK_MAX_AGE,
            })
        result[item_id] = listing
    return result
