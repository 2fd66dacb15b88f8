"""User model definition."""

from datetime import datetime

from werkzeug.security import check_password_hash, generate_password_hash

from . import db


SUBSCRIPTION_TIERS = ("starter", "pro", "business")


class User(db.Model):
    """Represents a registered account."""

    __tablename__ = "users"
    __table_args__ = (
        # An unverified account always carries its verification token and a
        # verified one never does.
        db.CheckConstraint(
            "(is_verified = true AND verification_token IS NULL)"
            " OR (is_verified = false AND verification_token IS NOT NULL)",
            name="ck_users_verification_token_state",
        ),
    )

    id = db.Column(db.Integer, primary_key=True)
    email = db.Column(db.String(255), unique=True, nullable=False)
    password_hash = db.Column(db.String(255), nullable=False)
    subscription = db.Column(
        db.Enum(*SUBSCRIPTION_TIERS, name="subscription_tier"),
        nullable=False,
        default="starter",
        server_default=db.text("'starter'"),
    )
    avatar_url = db.Column(db.String(512), nullable=True)
    is_verified = db.Column(db.Boolean, nullable=False, default=False)
    verification_token = db.Column(db.String(128), unique=True, nullable=True)
    token = db.Column(db.Text, nullable=True)
    created_at = db.Column(db.DateTime, nullable=False, default=datetime.utcnow)

    def set_password(self, password: str) -> None:
        """Hash and store the password."""

        self.password_hash = generate_password_hash(password)

    def check_password(self, password: str) -> bool:
        """Verify a password against the stored hash."""

        return check_password_hash(self.password_hash, password)

    def to_public_dict(self) -> dict:
        """Serialize the fields that may be shown to the account owner."""

        return {"email": self.email, "subscription": self.subscription}

    def __repr__(self) -> str:  # pragma: no cover - debugging helper
        return f"<User {self.email}>"
