"""
Account lifecycle use cases: registration, verification, login, logout.

Every state change is a single commit; lookups that fail raise Werkzeug HTTP
exceptions which the application turns into JSON error responses.
"""

from __future__ import annotations

import hashlib
from typing import Mapping

from flask import current_app
from sqlalchemy.exc import IntegrityError
from werkzeug.exceptions import BadRequest, Conflict, NotFound, Unauthorized
from werkzeug.security import check_password_hash, generate_password_hash

from models import db
from models.user import SUBSCRIPTION_TIERS, User
from services.avatars import AvatarPipeline
from services.mailer import Mailer
from services.tokens import TokenIssuer

INVALID_CREDENTIALS = "Email or password is wrong."
EMAIL_IN_USE = "Email in use."
USER_NOT_FOUND = "User not found."
RESEND_REJECTED = "Verification email cannot be sent for this address."

# Compared against when the email is unknown so both login failures hash once.
_DUMMY_HASH = generate_password_hash("not-a-real-password")


class VerificationRequired(Unauthorized):
    """Credentials are valid but the email address was never confirmed."""

    description = "Email is not verified."


class AccountService:
    """Orchestrates the account lifecycle on top of the user store."""

    def __init__(
        self,
        tokens: TokenIssuer,
        mailer: Mailer,
        avatars: AvatarPipeline,
        gravatar_base_url: str = "https://www.gravatar.com/avatar",
    ):
        self.tokens = tokens
        self.mailer = mailer
        self.avatars = avatars
        self.gravatar_base_url = gravatar_base_url.rstrip("/")

    @classmethod
    def from_config(cls, config: Mapping) -> "AccountService":
        return cls(
            TokenIssuer(config["JWT_ACCESS_TOKEN_EXPIRES"]),
            Mailer.from_config(config),
            AvatarPipeline.from_config(config),
            config.get("GRAVATAR_BASE_URL", "https://www.gravatar.com/avatar"),
        )

    # -------------------------------------- helpers --------------------------------------
    @staticmethod
    def _find_by_email(email: str) -> User | None:
        return User.query.filter_by(email=email).first()

    def default_avatar(self, email: str) -> str:
        digest = hashlib.md5(email.strip().lower().encode("utf-8")).hexdigest()
        return f"{self.gravatar_base_url}/{digest}"

    def _dispatch_verification(self, user: User) -> bool:
        # Delivery problems never undo the account; the caller can resend.
        try:
            sent = self.mailer.send_verification(user.email, user.verification_token)
        except Exception:
            current_app.logger.exception("Verification mail dispatch crashed for user %s", user.id)
            return False
        if not sent:
            current_app.logger.warning("Verification mail for user %s was not delivered", user.id)
        return sent

    # -------------------------------------- use cases --------------------------------------
    def register(self, email: str, password: str, subscription: str | None = None) -> User:
        subscription = subscription or "starter"
        if subscription not in SUBSCRIPTION_TIERS:
            raise BadRequest(f"Subscription must be one of: {', '.join(SUBSCRIPTION_TIERS)}.")

        # Fast path only; the unique index on users.email is the real guarantee.
        if self._find_by_email(email) is not None:
            raise Conflict(EMAIL_IN_USE)

        user = User(
            email=email,
            subscription=subscription,
            avatar_url=self.default_avatar(email),
            is_verified=False,
            verification_token=self.tokens.new_verification_token(),
        )
        user.set_password(password)
        db.session.add(user)
        try:
            db.session.commit()
        except IntegrityError:
            db.session.rollback()
            raise Conflict(EMAIL_IN_USE)

        current_app.logger.info("Registered user %s", user.id)
        self._dispatch_verification(user)
        return user

    def verify(self, token: str) -> None:
        updated = User.query.filter_by(verification_token=token, is_verified=False).update(
            {"is_verified": True, "verification_token": None},
            synchronize_session=False,
        )
        db.session.commit()
        if not updated:
            raise NotFound(USER_NOT_FOUND)
        current_app.logger.info("Verified an account by token")

    def resend_verification(self, email: str) -> bool:
        user = self._find_by_email(email)
        # Unknown and already verified addresses look the same to the caller.
        if user is None or user.is_verified:
            raise BadRequest(RESEND_REJECTED)
        return self._dispatch_verification(user)

    def login(self, email: str, password: str) -> tuple[str, User]:
        user = self._find_by_email(email)
        if user is None:
            check_password_hash(_DUMMY_HASH, password)
            raise Unauthorized(INVALID_CREDENTIALS)
        if not user.check_password(password):
            current_app.logger.info("Rejected password for user %s", user.id)
            raise Unauthorized(INVALID_CREDENTIALS)
        if not user.is_verified:
            raise VerificationRequired()

        token = self.tokens.issue_session(user)
        User.query.filter_by(id=user.id).update({"token": token}, synchronize_session=False)
        db.session.commit()
        return token, user

    def logout(self, user_id: int) -> None:
        User.query.filter_by(id=user_id).update({"token": None}, synchronize_session=False)
        db.session.commit()

    def current_user(self, user_id: int) -> User:
        user = db.session.get(User, user_id)
        if user is None:
            raise NotFound(USER_NOT_FOUND)
        return user

    def update_avatar(self, user_id: int, upload) -> str:
        return self.avatars.update_avatar(self.current_user(user_id), upload)

    def is_session_revoked(self, identity: str | int | None, jti: str | None) -> bool:
        """True when a signed token no longer matches the user's stored session."""

        try:
            user_id = int(identity)
        except (TypeError, ValueError):
            return True
        user = db.session.get(User, user_id)
        if user is None:
            # Let the route report the missing account.
            return False
        return self.tokens.jti_of(user.token) != jti
