"""Contact model definition."""

from datetime import datetime

from . import db


CONTACT_FIELDS = ("name", "email", "phone")


class Contact(db.Model):
    """A single address book entry."""

    __tablename__ = "contacts"

    id = db.Column(db.Integer, primary_key=True)
    name = db.Column(db.String(255), nullable=False)
    email = db.Column(db.String(255), nullable=False)
    phone = db.Column(db.String(64), nullable=False)
    created_at = db.Column(db.DateTime, nullable=False, default=datetime.utcnow)

    def __repr__(self) -> str:
        return f"<Contact id={self.id} name={self.name}>"

    def to_dict(self) -> dict:
        """Serialize the contact into a dictionary."""

        return {
            "id": self.id,
            "name": self.name,
            "email": self.email,
            "phone": self.phone,
            "created_at": self.created_at.isoformat() if self.created_at else None,
        }
