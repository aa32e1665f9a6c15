from flask import current_app
from werkzeug.exceptions import HTTPException
from marshmallow import ValidationError
from sqlalchemy.exc import IntegrityError
import logging

from api.responses import error_response
from utils.errors import AppError

logger = logging.getLogger(__name__)


def register_error_handlers(app):
    # Application errors carry their own status
    @app.errorhandler(AppError)
    def handle_app_error(err: AppError):
        if err.status_code >= 500:
            logger.error("%s: %s", err.__class__.__name__, err.message, exc_info=err)
        else:
            logger.debug("%s: %s", err.__class__.__name__, err.message)
        return error_response(err.message, err.status_code, details=err.details or None)

    # Marshmallow validation errors map to 400
    @app.errorhandler(ValidationError)
    def handle_validation_error(err: ValidationError):
        # err.messages contains field-level details
        return error_response("Validation failed", 400, details=err.messages)

    # Unique email raced past the service-level check
    @app.errorhandler(IntegrityError)
    def handle_integrity_error(err: IntegrityError):
        message = str(getattr(err, "orig", err)).lower()
        if "unique" in message:
            return error_response("Email already exists", 409)
        logger.exception("Integrity error", exc_info=err)
        return error_response("Integrity error", 400)

    @app.errorhandler(404)
    def not_found(e):
        return error_response("Route not found", 404)

    @app.errorhandler(405)
    def method_not_allowed(e):
        return error_response("Method not allowed", 405)

    # Werkzeug HTTPExceptions map to their status codes
    @app.errorhandler(HTTPException)
    def handle_http_exception(err: HTTPException):
        return error_response(err.description or err.name, err.code or 400)

    # 500 Internal Error (catch-all)
    @app.errorhandler(Exception)
    def internal_error(err: Exception):
        logger.exception("Unhandled exception", exc_info=err)
        if current_app.config.get("HIDE_INTERNAL_ERRORS"):
            return error_response("Internal server error", 500)
        return error_response(str(err) or "Internal server error", 500)
