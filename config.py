"""Application configuration module."""

import os
from datetime import timedelta
from pathlib import Path


def _bool(value: str | None, default: bool = False) -> bool:
    if value is None:
        return default
    return value.strip().lower() in {"1", "true", "yes", "on"}


class Config:
    """Base configuration for the Flask application."""

    # Core
    SECRET_KEY = os.getenv("SECRET_KEY", "change-me")
    JWT_SECRET_KEY = os.getenv("JWT_SECRET_KEY", SECRET_KEY)
    JWT_ACCESS_TOKEN_EXPIRES = timedelta(
        seconds=int(os.getenv("JWT_ACCESS_TOKEN_EXPIRES", "3600"))
    )
    DATABASE_URL = os.getenv("DATABASE_URL", "sqlite:///app.db")
    SQLALCHEMY_DATABASE_URI = DATABASE_URL
    SQLALCHEMY_TRACK_MODIFICATIONS = False
    LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO")

    # Avatars
    AVATAR_DIR = os.getenv("AVATAR_DIR", str(Path("public") / "avatars"))
    AVATAR_URL_PREFIX = os.getenv("AVATAR_URL_PREFIX", "avatars")
    AVATAR_SIZE = int(os.getenv("AVATAR_SIZE", "256"))
    AVATAR_KEEP_UNNORMALIZED = _bool(os.getenv("AVATAR_KEEP_UNNORMALIZED"), True)
    UPLOAD_TMP_DIR = os.getenv("UPLOAD_TMP_DIR", "tmp")
    MAX_UPLOAD_SIZE = int(os.getenv("MAX_UPLOAD_SIZE", str(5 * 1024 * 1024)))
    ALLOWED_AVATAR_TYPES = os.getenv("ALLOWED_AVATAR_TYPES", "jpg,jpeg,png,gif,bmp,webp")
    GRAVATAR_BASE_URL = os.getenv("GRAVATAR_BASE_URL", "https://www.gravatar.com/avatar")

    # Mail
    PUBLIC_BASE_URL = os.getenv("PUBLIC_BASE_URL", "http://localhost:5000").rstrip("/")
    SMTP_HOST = os.getenv("SMTP_HOST", "")
    SMTP_PORT = int(os.getenv("SMTP_PORT", "465"))
    SMTP_USER = os.getenv("SMTP_USER", "")
    SMTP_PASSWORD = os.getenv("SMTP_PASSWORD", "")
    SMTP_FROM = os.getenv("SMTP_FROM", SMTP_USER)
    MAIL_TIMEOUT = float(os.getenv("MAIL_TIMEOUT", "10"))

    # CORS
    _raw_origins = os.getenv("ORIGINS", "*")
    if _raw_origins.strip() == "*":
        CORS_ORIGINS = "*"
    else:
        CORS_ORIGINS = [o.strip() for o in _raw_origins.split(",") if o.strip()]
