"""Contacts blueprint with plain CRUD endpoints."""

from __future__ import annotations

from http import HTTPStatus

from flask import Blueprint, jsonify, request
from werkzeug.exceptions import NotFound

from models import db
from models.contact import CONTACT_FIELDS, Contact
from utils.request_validation import parse_json_request, require_string

contacts_bp = Blueprint("contacts", __name__)


def _get_contact_or_404(contact_id: int) -> Contact:
    contact = db.session.get(Contact, contact_id)
    if contact is None:
        raise NotFound("Not found.")
    return contact


def _contact_fields() -> dict[str, str]:
    payload = parse_json_request(request, required_keys=CONTACT_FIELDS)
    return {field: require_string(payload, field).strip() for field in CONTACT_FIELDS}


@contacts_bp.route("", methods=["GET"])
def list_contacts():
    contacts = Contact.query.order_by(Contact.id.asc()).all()
    return jsonify([contact.to_dict() for contact in contacts])


@contacts_bp.route("/<int:contact_id>", methods=["GET"])
def get_contact(contact_id: int):
    return jsonify(_get_contact_or_404(contact_id).to_dict())


@contacts_bp.route("", methods=["POST"])
def create_contact():
    """Create a contact from a name, email and phone."""

    contact = Contact(**_contact_fields())
    db.session.add(contact)
    db.session.commit()
    return jsonify(contact.to_dict()), HTTPStatus.CREATED


@contacts_bp.route("/<int:contact_id>", methods=["PUT"])
def update_contact(contact_id: int):
    """Replace every field of an existing contact."""

    fields = _contact_fields()
    contact = _get_contact_or_404(contact_id)
    for field, value in fields.items():
        setattr(contact, field, value)
    db.session.commit()
    return jsonify(contact.to_dict())


@contacts_bp.route("/<int:contact_id>", methods=["DELETE"])
def delete_contact(contact_id: int):
    contact = _get_contact_or_404(contact_id)
    db.session.delete(contact)
    db.session.commit()
    return jsonify({"message": "Contact deleted"})
