"""Application factory."""

import json
import os
import uuid
from http import HTTPStatus
from pathlib import Path

from flask import Flask, current_app, g, jsonify, request, send_from_directory
from flask_cors import CORS
from flask_jwt_extended import JWTManager
from flask_migrate import Migrate
from werkzeug.exceptions import HTTPException

from config import Config
from models import db
from routes.contacts import contacts_bp
from routes.users import users_bp
from services.accounts import AccountService

migrate = Migrate()
jwt = JWTManager()


def create_app(config_class: type[Config] = Config) -> Flask:
    """Create and configure the Flask application."""
    app = Flask(__name__)
    app.config.from_object(config_class)

    app.logger.setLevel(app.config.get("LOG_LEVEL", "INFO"))

    # Core subsystems
    db.init_app(app)
    migrate.init_app(app, db)
    jwt.init_app(app)
    _register_jwt_handlers(jwt)

    # CORS
    CORS(
        app,
        resources={r"/*": {"origins": app.config.get("CORS_ORIGINS", "*")}},
        supports_credentials=True,
    )

    # Account services; creates the avatar and temp upload directories
    app.extensions["accounts"] = AccountService.from_config(app.config)

    # Blueprints
    app.register_blueprint(users_bp, url_prefix="/users")
    app.register_blueprint(contacts_bp, url_prefix="/contacts")

    # Stored avatars
    avatar_dir = Path(app.config["AVATAR_DIR"]).resolve()
    avatar_prefix = app.config.get("AVATAR_URL_PREFIX", "avatars").strip("/")

    @app.route(f"/{avatar_prefix}/<path:filename>", methods=["GET"])
    def serve_avatar(filename: str):
        return send_from_directory(avatar_dir, filename)

    # Health
    @app.route("/health", methods=["GET"])
    def health_check():
        return jsonify({"status": "ok"})

    # Errors
    _register_error_handlers(app)

    return app


def _error_response(status: int, error: str, detail: str):
    request_id = g.get("request_id") or str(uuid.uuid4())
    response = jsonify({"error": error, "detail": detail, "request_id": request_id})
    response.status_code = status
    response.headers.setdefault("X-Request-ID", request_id)
    return response


def _register_jwt_handlers(manager: JWTManager) -> None:
    """Route every token failure through the shared JSON error shape."""

    @manager.token_in_blocklist_loader
    def _session_revoked(jwt_header, jwt_payload) -> bool:
        accounts: AccountService = current_app.extensions["accounts"]
        return accounts.is_session_revoked(jwt_payload.get("sub"), jwt_payload.get("jti"))

    @manager.unauthorized_loader
    def _missing_token(reason: str):
        return _error_response(HTTPStatus.UNAUTHORIZED, "Unauthorized", "Not authorized.")

    @manager.invalid_token_loader
    def _invalid_token(reason: str):
        return _error_response(HTTPStatus.UNAUTHORIZED, "Unauthorized", "Not authorized.")

    @manager.expired_token_loader
    def _expired_token(jwt_header, jwt_payload):
        return _error_response(HTTPStatus.UNAUTHORIZED, "Unauthorized", "Session expired.")

    @manager.revoked_token_loader
    def _revoked_token(jwt_header, jwt_payload):
        return _error_response(HTTPStatus.UNAUTHORIZED, "Unauthorized", "Not authorized.")


def _register_error_handlers(app: Flask) -> None:
    """Register JSON error handlers with request IDs."""

    @app.before_request
    def _assign_request_id():  # pragma: no cover
        g.request_id = request.headers.get("X-Request-ID") or str(uuid.uuid4())

    @app.after_request
    def _add_request_id_header(response):  # pragma: no cover
        request_id = g.get("request_id")
        if request_id:
            response.headers.setdefault("X-Request-ID", request_id)
        return response

    @app.errorhandler(HTTPException)
    def _handle_http_exception(error: HTTPException):
        request_id = g.get("request_id") or str(uuid.uuid4())
        response = error.get_response()
        payload = {
            "error": getattr(error, "name", "Error"),
            "detail": error.description,
            "request_id": request_id,
        }
        response.data = json.dumps(payload)
        response.content_type = "application/json"
        response.headers.setdefault("X-Request-ID", request_id)
        return response

    @app.errorhandler(Exception)
    def _handle_unexpected(error: Exception):
        app.logger.exception("Unhandled application error", exc_info=error)
        db.session.rollback()
        return _error_response(
            HTTPStatus.INTERNAL_SERVER_ERROR,
            "Internal Server Error",
            "An unexpected error occurred.",
        )


if __name__ == "__main__":
    application = create_app()
    application.run(host="0.0.0.0", port=int(os.environ.get("PORT", 5000)))
