"""Avatar upload pipeline: spool, relocate, normalize, record."""

from __future__ import annotations

import logging
import os
import uuid
from typing import Iterable, Mapping

from PIL import Image
from sqlalchemy.exc import SQLAlchemyError
from werkzeug.datastructures import FileStorage
from werkzeug.exceptions import BadRequest

from models import db
from models.user import User
from storage.local_storage import LocalStorage

logger = logging.getLogger(__name__)

ALLOWED_EXTENSIONS_DEFAULT = {"jpg", "jpeg", "png", "gif", "bmp", "webp"}
MAX_UPLOAD_SIZE_DEFAULT = 5 * 1024 * 1024  # 5 MB


def parse_extensions(configured: str | Iterable[str] | None) -> set[str]:
    """Normalize a configured list of extensions or mimetypes."""

    if not configured:
        return set(ALLOWED_EXTENSIONS_DEFAULT)
    if isinstance(configured, str):
        values: Iterable[str] = configured.split(",")
    else:
        values = configured

    normalized: set[str] = set()
    for raw in values:
        if not isinstance(raw, str):
            continue

        item = raw.strip().lower()
        if "/" in item and not item.startswith("."):
            item = item.rsplit("/", 1)[-1]

        item = item.lstrip(".")
        if item:
            normalized.add(item)

    if not normalized:
        return set(ALLOWED_EXTENSIONS_DEFAULT)
    if "jpeg" in normalized:
        normalized.add("jpg")
    if "jpg" in normalized:
        normalized.add("jpeg")
    return normalized


class AvatarPipeline:
    """Turns an uploaded image into the user's single current avatar file.

    The upload is first spooled into ``uploads`` (the temp area), then renamed
    into ``avatars`` as ``<user id>.<ext>`` and resized in place. The temp file
    is gone on every exit path; once the rename succeeded the durable file
    exists, so the two are never both missing nor both present.
    """

    def __init__(
        self,
        avatars: LocalStorage,
        uploads: LocalStorage,
        *,
        size: int = 256,
        url_prefix: str = "avatars",
        allowed_extensions: set[str] | None = None,
        max_upload_size: int = MAX_UPLOAD_SIZE_DEFAULT,
        keep_unnormalized: bool = True,
    ):
        self.avatars = avatars
        self.uploads = uploads
        self.size = size
        self.url_prefix = url_prefix.strip("/")
        self.allowed_extensions = allowed_extensions or set(ALLOWED_EXTENSIONS_DEFAULT)
        self.max_upload_size = max_upload_size
        self.keep_unnormalized = keep_unnormalized

    @classmethod
    def from_config(cls, config: Mapping) -> "AvatarPipeline":
        return cls(
            LocalStorage(config["AVATAR_DIR"]),
            LocalStorage(config["UPLOAD_TMP_DIR"]),
            size=int(config.get("AVATAR_SIZE", 256)),
            url_prefix=config.get("AVATAR_URL_PREFIX", "avatars"),
            allowed_extensions=parse_extensions(config.get("ALLOWED_AVATAR_TYPES")),
            max_upload_size=int(config.get("MAX_UPLOAD_SIZE", MAX_UPLOAD_SIZE_DEFAULT)),
            keep_unnormalized=bool(config.get("AVATAR_KEEP_UNNORMALIZED", True)),
        )

    def validate(self, upload: FileStorage | None) -> str:
        """Check the upload and return its lower-cased extension."""

        if not isinstance(upload, FileStorage) or not (upload.filename or "").strip():
            raise BadRequest("An avatar file is required.")

        filename = upload.filename.strip()
        if "." not in filename:
            raise BadRequest("Avatar file must have an extension.")
        extension = filename.rsplit(".", 1)[-1].lower()
        if extension not in self.allowed_extensions:
            allowed = ", ".join(sorted(self.allowed_extensions))
            raise BadRequest(f"File type not allowed. Allowed types: {allowed}.")

        upload.stream.seek(0, os.SEEK_END)
        size = upload.stream.tell()
        upload.stream.seek(0)
        if size > self.max_upload_size:
            raise BadRequest("File exceeds the maximum upload size.")
        return extension

    def update_avatar(self, user: User, upload: FileStorage | None) -> str:
        """Store ``upload`` as the avatar of ``user`` and return its public URL."""

        extension = self.validate(upload)
        temp_path = self.uploads.path_for(
            self.uploads.save(upload, f"{uuid.uuid4().hex}.{extension}")
        )
        try:
            stored = self.avatars.place(temp_path, f"{user.id}.{extension}")
            avatar_url = f"{self.url_prefix}/{stored}"
            if not self._normalize(stored):
                self._discard(user, stored, avatar_url)
                raise BadRequest("Avatar image could not be processed.")
            self._remove_stale(user, stored)

            user.avatar_url = avatar_url
            db.session.commit()
        except SQLAlchemyError:
            db.session.rollback()
            raise
        finally:
            if temp_path.exists():
                temp_path.unlink()
                logger.info("Removed temporary upload %s", temp_path.name)

        logger.info("Updated avatar for user %s", user.id)
        return avatar_url

    def _normalize(self, stored: str) -> bool:
        """Resize in place; False when the image is unusable and must be dropped."""

        path = self.avatars.path_for(stored)
        try:
            with Image.open(path) as image:
                image_format = image.format
                resized = image.resize((self.size, self.size), Image.Resampling.LANCZOS)
            resized.save(path, format=image_format)
        except (OSError, ValueError, Image.DecompressionBombError) as exc:
            if self.keep_unnormalized:
                logger.warning("Keeping unnormalized avatar %s: %s", stored, exc)
                return True
            logger.warning("Discarding unprocessable avatar %s: %s", stored, exc)
            return False
        return True

    def _discard(self, user: User, stored: str, avatar_url: str) -> None:
        # The rename may have overwritten the file the user's record points at.
        self.avatars.delete(stored)
        if user.avatar_url == avatar_url:
            user.avatar_url = None
            db.session.commit()

    def _remove_stale(self, user: User, stored: str) -> None:
        for name in self.avatars.list_stem(str(user.id)):
            if name != stored:
                self.avatars.delete(name)
