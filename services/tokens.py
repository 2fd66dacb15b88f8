"""Session and verification token issuing."""

from __future__ import annotations

import secrets
from datetime import timedelta

from flask_jwt_extended import create_access_token, decode_token
from flask_jwt_extended.exceptions import JWTExtendedException
from jwt.exceptions import InvalidTokenError

from models.user import User


class TokenIssuer:
    """Issues signed session tokens and opaque verification tokens.

    The signing secret is ``JWT_SECRET_KEY`` on the application config; the
    issuer only decides identity and lifetime.
    """

    def __init__(self, expires_delta: timedelta):
        self.expires_delta = expires_delta

    def issue_session(self, user: User) -> str:
        return create_access_token(
            identity=str(user.id),
            expires_delta=self.expires_delta,
        )

    @staticmethod
    def new_verification_token() -> str:
        return secrets.token_urlsafe(32)

    @staticmethod
    def jti_of(token: str | None) -> str | None:
        """Return the ``jti`` claim of a stored session token, expired or not."""

        if not token:
            return None
        try:
            return decode_token(token, allow_expired=True).get("jti")
        except (InvalidTokenError, JWTExtendedException):
            return None
