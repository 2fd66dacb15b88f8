"""Shared pytest fixtures for the application tests."""

from __future__ import annotations

import sys
from pathlib import Path

import pytest
from flask import Flask
from flask.testing import FlaskClient

ROOT_DIR = Path(__file__).resolve().parent.parent
if str(ROOT_DIR) not in sys.path:
    sys.path.insert(0, str(ROOT_DIR))

from app import create_app  # noqa: E402
from config import Config  # noqa: E402
from models import db  # noqa: E402


class _BaseTestConfig(Config):
    TESTING = True
    SQLALCHEMY_DATABASE_URI = "sqlite:///:memory:"
    SQLALCHEMY_TRACK_MODIFICATIONS = False
    JWT_SECRET_KEY = "test-jwt-secret-key-that-is-long-enough"
    PUBLIC_BASE_URL = "https://api.example.com"
    SMTP_HOST = ""
    AVATAR_KEEP_UNNORMALIZED = True


class RecordingMailer:
    """Stands in for the SMTP mailer and remembers every verification sent."""

    def __init__(self):
        self.sent: list[tuple[str, str]] = []
        self.fail = False
        self.crash = False

    def send_verification(self, to_email: str, token: str) -> bool:
        if self.crash:
            raise RuntimeError("transport exploded")
        self.sent.append((to_email, token))
        return not self.fail


@pytest.fixture()
def app(tmp_path) -> Flask:
    """Create a Flask application instance for tests."""

    class TestConfig(_BaseTestConfig):
        AVATAR_DIR = str(tmp_path / "avatars")
        UPLOAD_TMP_DIR = str(tmp_path / "tmp")

    application = create_app(TestConfig)
    application.extensions["accounts"].mailer = RecordingMailer()

    with application.app_context():
        db.create_all()

    yield application

    with application.app_context():
        db.session.remove()
        db.drop_all()


@pytest.fixture()
def client(app: Flask) -> FlaskClient:
    """Return a test client for the Flask app."""

    return app.test_client()


@pytest.fixture()
def mailer(app: Flask) -> RecordingMailer:
    """Return the recording mailer installed on the app."""

    return app.extensions["accounts"].mailer
