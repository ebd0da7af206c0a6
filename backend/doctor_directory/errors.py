import logging
from flask import current_app, jsonify
from sqlalchemy.exc import SQLAlchemyError
from werkzeug.exceptions import HTTPException, RequestEntityTooLarge

logger = logging.getLogger(__name__)


class ApiError(Exception):
    """Base class for errors that map onto a JSON error response."""

    status_code = 500
    message = "Internal server error"

    def __init__(self, message=None, errors=None, **extra):
        super().__init__(message or self.message)
        self.message = message or self.message
        self.errors = errors
        self.extra = extra

    def to_dict(self):
        body = {"success": False, "message": self.message}
        if self.errors:
            body["errors"] = list(self.errors)
        body.update(self.extra)
        return body


class ValidationError(ApiError):
    status_code = 400
    message = "Validation failed"


class NotFound(ApiError):
    status_code = 404
    message = "Not found"


class Conflict(ApiError):
    status_code = 409
    message = "Email already registered"


class InvalidSession(ApiError):
    status_code = 400
    message = "Invalid or expired registration session. Please start over."


class InternalError(ApiError):
    status_code = 500


def _internal_error_body(exc):
    body = InternalError().to_dict()
    # Detail only leaks in development mode
    if current_app.debug:
        body["error"] = str(exc)
    return body


def register_error_handlers(app, api):
    """Install JSON error handlers on the Flask app and the RESTX api."""

    @api.errorhandler(ApiError)
    def handle_api_error(error):
        if error.status_code >= 500:
            logger.error("API error: %s", error.message)
        return error.to_dict(), error.status_code

    @api.errorhandler(SQLAlchemyError)
    def handle_database_error(error):
        logger.exception("Database error: %s", error)
        from . import db
        db.session.rollback()
        return _internal_error_body(error), 500

    @api.errorhandler(RequestEntityTooLarge)
    def handle_too_large(error):
        limit_mb = current_app.config["MAX_CONTENT_LENGTH"] // (1024 * 1024)
        return {"success": False, "message": f"File too large (max {limit_mb}MB)"}, 413

    @api.errorhandler(HTTPException)
    def handle_http_error(error):
        return {"success": False, "message": error.description}, error.code

    @api.errorhandler
    def handle_unexpected(error):
        logger.exception("Unhandled error: %s", error)
        return _internal_error_body(error), 500

    @app.errorhandler(404)
    def handle_unknown_route(error):
        return jsonify({"success": False, "message": "API endpoint not found"}), 404

    @app.errorhandler(405)
    def handle_method_not_allowed(error):
        return jsonify({"success": False, "message": "Method not allowed"}), 405

    @app.errorhandler(500)
    def handle_server_error(error):
        return jsonify(_internal_error_body(getattr(error, "original_exception", error))), 500
