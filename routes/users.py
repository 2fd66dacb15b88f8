"""Users blueprint: registration, verification, sessions and avatars."""

from __future__ import annotations

from http import HTTPStatus

from flask import Blueprint, current_app, jsonify, request
from flask_jwt_extended import get_jwt_identity, jwt_required

from services.accounts import AccountService
from utils.request_validation import parse_json_request, require_string

users_bp = Blueprint("users", __name__)


def _accounts() -> AccountService:
    return current_app.extensions["accounts"]


def _current_user_id() -> int:
    return int(get_jwt_identity())


@users_bp.route("", methods=["POST"])
@users_bp.route("/signup", methods=["POST"])
def register() -> tuple:
    """Register a new account and send the verification email."""

    payload = parse_json_request(request, required_keys=("email", "password"))
    email = require_string(payload, "email").strip()
    password = require_string(payload, "password")
    user = _accounts().register(email, password, payload.get("subscription"))
    return jsonify(user.to_public_dict()), HTTPStatus.CREATED


@users_bp.route("/login", methods=["POST"])
def login() -> tuple:
    """Exchange verified credentials for a session token."""

    payload = parse_json_request(request, required_keys=("email", "password"))
    email = require_string(payload, "email").strip()
    password = require_string(payload, "password")

    token, user = _accounts().login(email, password)
    return jsonify({"token": token, "user": user.to_public_dict()}), HTTPStatus.OK


@users_bp.route("/logout", methods=["GET"])
@jwt_required()
def logout() -> tuple:
    _accounts().logout(_current_user_id())
    return "", HTTPStatus.NO_CONTENT


@users_bp.route("/current", methods=["GET"])
@jwt_required()
def current() -> tuple:
    user = _accounts().current_user(_current_user_id())
    return jsonify(user.to_public_dict()), HTTPStatus.OK


@users_bp.route("/avatars", methods=["PATCH"])
@jwt_required()
def update_avatar() -> tuple:
    """Replace the caller's avatar with the uploaded ``avatar`` image."""

    avatar_url = _accounts().update_avatar(_current_user_id(), request.files.get("avatar"))
    return jsonify({"avatarURL": avatar_url}), HTTPStatus.OK


@users_bp.route("/verify/<token>", methods=["GET"])
def verify_email(token: str) -> tuple:
    _accounts().verify(token)
    return jsonify({"message": "Verification successful"}), HTTPStatus.OK


@users_bp.route("/verify", methods=["POST"])
def resend_verification() -> tuple:
    """Send the verification email again to an unverified address."""

    payload = parse_json_request(request, required_keys=("email",))
    email = require_string(payload, "email").strip()

    _accounts().resend_verification(email)
    return jsonify({"message": "Verification email sent"}), HTTPStatus.OK
