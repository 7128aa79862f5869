import pytest
from itsdangerous import URLSafeTimedSerializer

from livvitt_order import storage
from livvitt_order.storage import (
    MAX_FILES_PER_ITEM,
    READ_LINK_MAX_AGE,
    StorageError,
    files_by_item,
    load_read_token,
    save_upload,
    sign_upload,
    signed_read_url,
)


def test_sign_upload_builds_sanitised_path(app):
    with app.app_context():
        target = sign_upload("LIV-20261019-0042", "a1B2c3", "my logo (final).PNG", "image/png")
    assert target["path"] == "orders/LIV-20261019-0042/a1B2c3/my_logo_final.PNG"
    assert target["url"].startswith("http://orders.test/api/uploads/")
    assert target["token"]


def test_sign_upload_blocks_traversal(app):
    with app.app_context():
        target = sign_upload("../../etc", "../item", "passwd.pdf")
    assert target["path"] == "orders/etc/item/passwd.pdf"


@pytest.mark.parametrize("name", ["run.exe", "notes.txt", ""])
def test_sign_upload_rejects_other_file_types(app, name):
    with app.app_context(), pytest.raises(StorageError):
        sign_upload("LIV-1", "item", name)


def test_save_upload_writes_under_upload_dir(app):
    with app.app_context():
        target = sign_upload("LIV-1", "item1", "art.pdf")
        path = save_upload(target["token"], b"%PDF-1.4 art")
        full = storage.resolve(path)
    assert full.startswith(app.config["ORDER_UPLOAD_DIR"])
    with open(full, "rb") as f:
        assert f.read() == b"%PDF-1.4 art"


def test_save_upload_overwrites_same_name(app):
    with app.app_context():
        target = sign_upload("LIV-1", "item1", "art.pdf")
        save_upload(target["token"], b"one")
        path = save_upload(target["token"], b"two")
        with open(storage.resolve(path), "rb") as f:
            assert f.read() == b"two"


def test_max_files_per_item(app):
    with app.app_context():
        for i in range(MAX_FILES_PER_ITEM):
            t = sign_upload("LIV-1", "item1", f"art{i}.png")
            save_upload(t["token"], b"x")
        with pytest.raises(StorageError):
            sign_upload("LIV-1", "item1", "one-too-many.png")
        # re-uploading an existing name is still allowed
        assert sign_upload("LIV-1", "item1", "art0.png")["path"].endswith("art0.png")


def test_tampered_upload_token_rejected(app):
    with app.app_context():
        target = sign_upload("LIV-1", "item1", "art.pdf")
        with pytest.raises(StorageError):
            save_upload(target["token"] + "x", b"data")


def test_upload_token_from_other_secret_rejected(app):
    forged = URLSafeTimedSerializer("not-the-secret", salt="livvitt-upload").dumps(
        {"path": "orders/LIV-1/item1/evil.pdf"}
    )
    with app.app_context(), pytest.raises(StorageError):
        save_upload(forged, b"data")


def test_read_token_round_trip(app):
    with app.app_context():
        url = signed_read_url("orders/LIV-1/item1/art.pdf")
        token = url.rsplit("/", 1)[-1]
        assert load_read_token(token) == "orders/LIV-1/item1/art.pdf"


def test_expired_read_token_rejected(app, monkeypatch):
    with app.app_context():
        url = signed_read_url("orders/LIV-1/item1/art.pdf")
        token = url.rsplit("/", 1)[-1]
        monkeypatch.setattr(storage, "READ_LINK_MAX_AGE", -1)
        with pytest.raises(StorageError, match="expired"):
            load_read_token(token)


def test_files_by_item_lists_existing_files_only(app):
    with app.app_context():
        t = sign_upload("LIV-1", "item1", "art.pdf")
        save_upload(t["token"], b"x")
        listing = files_by_item("LIV-1", [
            {"itemId": "item1", "paths": [t["path"], "orders/LIV-1/item1/missing.pdf"]},
            {"itemId": "item2", "paths": []},
            "garbage",
        ])
    assert list(listing) == ["item1", "item2"]
    assert len(listing["item1"]) == 1
    entry = listing["item1"][0]
    assert entry["name"] == "art.pdf"
    assert entry["expires"] == READ_LINK_MAX_AGE
    assert entry["url"].startswith("http://orders.test/files/")
    assert listing["item2"] == []


def test_files_by_item_skips_paths_outside_upload_dir(app):
    with app.app_context():
        listing = files_by_item("LIV-1", [{"itemId": "i", "paths": [
            "../../etc/passwd",
            "orders/LIV-1/i/../../LIV-2/i/art.pdf",
        ]}])
    assert listing == {"i": []}


def test_files_by_item_only_lists_files_of_the_same_order_and_item(app):
    with app.app_context():
        other = sign_upload("LIV-2", "item1", "secret.pdf")
        save_upload(other["token"], b"x")
        mine = sign_upload("LIV-1", "item1", "art.pdf")
        save_upload(mine["token"], b"x")
        listing = files_by_item("LIV-1", [
            {"itemId": "item1", "paths": [other["path"], mine["path"]]},
            {"itemId": "item2", "paths": [mine["path"]]},
        ])
    assert [f["name"] for f in listing["item1"]] == ["art.pdf"]
    assert listing["item2"] == []
