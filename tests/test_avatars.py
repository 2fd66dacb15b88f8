"""Tests for avatar uploads."""

from __future__ import annotations

import struct
import zlib
from io import BytesIO
from pathlib import Path

import pytest
from flask_jwt_extended import create_access_token
from PIL import Image

from models import db
from models.user import User


def _image_bytes(size=(300, 200), image_format="PNG") -> bytes:
    buffer = BytesIO()
    Image.new("RGB", size, color=(200, 30, 30)).save(buffer, format=image_format)
    return buffer.getvalue()


def _png_chunk(kind: bytes, data: bytes) -> bytes:
    return struct.pack(">I", len(data)) + kind + data + struct.pack(">I", zlib.crc32(kind + data))


def _oversized_png_header(width: int = 20000, height: int = 20000) -> bytes:
    """A tiny PNG whose header declares more pixels than Pillow will decode."""

    return (
        b"\x89PNG\r\n\x1a\n"
        + _png_chunk(b"IHDR", struct.pack(">IIBBBBB", width, height, 8, 2, 0, 0, 0))
        + _png_chunk(b"IDAT", zlib.compress(b""))
        + _png_chunk(b"IEND", b"")
    )


def _logged_in_user(app, client) -> tuple[int, dict[str, str]]:
    with app.app_context():
        user = User(email="pic@x.com", is_verified=True, verification_token=None)
        user.set_password("password123")
        db.session.add(user)
        db.session.commit()
        user_id = user.id

    response = client.post("/users/login", json={"email": "pic@x.com", "password": "password123"})
    assert response.status_code == 200
    return user_id, {"Authorization": f"Bearer {response.get_json()['token']}"}


def _upload(client, headers, data: bytes, filename: str):
    return client.patch(
        "/users/avatars",
        data={"avatar": (BytesIO(data), filename)},
        headers=headers,
        content_type="multipart/form-data",
    )


def _dirs(app) -> tuple[Path, Path]:
    return Path(app.config["AVATAR_DIR"]), Path(app.config["UPLOAD_TMP_DIR"])


def test_avatar_is_moved_and_normalized(app, client):
    user_id, headers = _logged_in_user(app, client)
    avatar_dir, tmp_dir = _dirs(app)

    response = _upload(client, headers, _image_bytes(), "me.PNG")

    assert response.status_code == 200
    assert response.get_json() == {"avatarURL": f"avatars/{user_id}.png"}
    stored = avatar_dir / f"{user_id}.png"
    with Image.open(stored) as image:
        assert image.size == (256, 256)
    assert list(tmp_dir.iterdir()) == []

    with app.app_context():
        assert db.session.get(User, user_id).avatar_url == f"avatars/{user_id}.png"

    served = client.get(f"/avatars/{user_id}.png")
    assert served.status_code == 200


def test_unreadable_image_keeps_durable_file(app, client):
    user_id, headers = _logged_in_user(app, client)
    avatar_dir, tmp_dir = _dirs(app)

    response = _upload(client, headers, b"definitely not an image", "broken.jpg")

    assert response.status_code == 200
    assert sorted(p.name for p in avatar_dir.iterdir()) == [f"{user_id}.jpg"]
    assert (avatar_dir / f"{user_id}.jpg").read_bytes() == b"definitely not an image"
    assert list(tmp_dir.iterdir()) == []


def test_unreadable_image_can_be_rejected(app, client):
    app.extensions["accounts"].avatars.keep_unnormalized = False
    user_id, headers = _logged_in_user(app, client)
    avatar_dir, tmp_dir = _dirs(app)

    response = _upload(client, headers, b"definitely not an image", "broken.jpg")

    assert response.status_code == 400
    assert list(avatar_dir.iterdir()) == []
    assert list(tmp_dir.iterdir()) == []
    with app.app_context():
        assert db.session.get(User, user_id).avatar_url is None


def test_new_extension_replaces_previous_avatar(app, client):
    user_id, headers = _logged_in_user(app, client)
    avatar_dir, _ = _dirs(app)

    assert _upload(client, headers, _image_bytes(), "a.png").status_code == 200
    response = _upload(client, headers, _image_bytes(image_format="JPEG"), "b.jpg")

    assert response.status_code == 200
    assert sorted(p.name for p in avatar_dir.iterdir()) == [f"{user_id}.jpg"]


@pytest.mark.parametrize(
    "data",
    [
        {},
        {"avatar": (BytesIO(b"text"), "notes.txt")},
        {"avatar": (BytesIO(b"data"), "noextension")},
    ],
)
def test_invalid_uploads_are_rejected_without_side_effects(app, client, data):
    _, headers = _logged_in_user(app, client)
    avatar_dir, tmp_dir = _dirs(app)

    response = client.patch(
        "/users/avatars",
        data=data,
        headers=headers,
        content_type="multipart/form-data",
    )

    assert response.status_code == 400
    assert list(avatar_dir.iterdir()) == []
    assert list(tmp_dir.iterdir()) == []


def test_oversized_upload_is_rejected(app, client):
    app.extensions["accounts"].avatars.max_upload_size = 10
    _, headers = _logged_in_user(app, client)

    response = _upload(client, headers, _image_bytes(), "big.png")

    assert response.status_code == 400


def test_avatar_requires_authentication(app, client):
    response = _upload(client, {}, _image_bytes(), "me.png")

    assert response.status_code == 401


def test_avatar_rejects_token_that_was_not_issued_by_login(app, client):
    _logged_in_user(app, client)
    with app.app_context():
        forged = create_access_token(identity="1")

    response = _upload(client, {"Authorization": f"Bearer {forged}"}, _image_bytes(), "me.png")

    assert response.status_code == 401


def test_oversized_dimensions_keep_single_durable_file(app, client):
    user_id, headers = _logged_in_user(app, client)
    avatar_dir, tmp_dir = _dirs(app)
    assert _upload(client, headers, _image_bytes(), "a.png").status_code == 200

    response = _upload(client, headers, _oversized_png_header(), "huge.jpg")

    assert response.status_code == 200
    assert response.get_json() == {"avatarURL": f"avatars/{user_id}.jpg"}
    assert sorted(p.name for p in avatar_dir.iterdir()) == [f"{user_id}.jpg"]
    assert list(tmp_dir.iterdir()) == []
    with app.app_context():
        assert db.session.get(User, user_id).avatar_url == f"avatars/{user_id}.jpg"


def test_rejected_image_over_same_name_clears_reference(app, client):
    app.extensions["accounts"].avatars.keep_unnormalized = False
    user_id, headers = _logged_in_user(app, client)
    avatar_dir, tmp_dir = _dirs(app)
    assert _upload(client, headers, _image_bytes(image_format="JPEG"), "a.jpg").status_code == 200

    response = _upload(client, headers, b"definitely not an image", "b.jpg")

    assert response.status_code == 400
    assert list(avatar_dir.iterdir()) == []
    assert list(tmp_dir.iterdir()) == []
    with app.app_context():
        assert db.session.get(User, user_id).avatar_url is None


def test_rejected_image_keeps_previous_avatar_with_other_extension(app, client):
    app.extensions["accounts"].avatars.keep_unnormalized = False
    user_id, headers = _logged_in_user(app, client)
    avatar_dir, _ = _dirs(app)
    assert _upload(client, headers, _image_bytes(), "a.png").status_code == 200

    response = _upload(client, headers, _oversized_png_header(), "b.jpg")

    assert response.status_code == 400
    assert sorted(p.name for p in avatar_dir.iterdir()) == [f"{user_id}.png"]
    with app.app_context():
        assert db.session.get(User, user_id).avatar_url == f"avatars/{user_id}.png"
