from flask import jsonify, request
from werkzeug.exceptions import HTTPException, NotFound
from marshmallow import ValidationError
import logging

from services.errors import NotFoundError, ServiceError, ValidationFailedError

logger = logging.getLogger(__name__)


def error_response(error: str, code: str, status: int, details: dict | None = None):
    payload = {"error": error, "code": code, "status": status}
    if details:
        payload["details"] = details
    return jsonify(payload), status


def register_error_handlers(app):
    # Service-layer errors carry their own status and code
    @app.errorhandler(ServiceError)
    def handle_service_error(err: ServiceError):
        if err.status_code >= 500:
            logger.error("[ERROR] %s %s: %s", request.method, request.path, err.message)
            return error_response("Internal server error", err.error_code, err.status_code)
        return error_response(err.message, err.error_code, err.status_code, details=err.detail)

    # Marshmallow validation errors map to 400
    @app.errorhandler(ValidationError)
    def handle_validation_error(err: ValidationError):
        # err.messages contains field-level details
        return handle_service_error(ValidationFailedError("Validation failed", detail=err.messages))

    @app.errorhandler(NotFound)
    def handle_not_found(err: NotFound):
        return handle_service_error(NotFoundError(err.description))

    # Werkzeug HTTPExceptions map to their status codes
    @app.errorhandler(HTTPException)
    def handle_http_exception(err: HTTPException):
        code = err.name.lower().replace(" ", "_")
        return error_response(err.description, code, err.code or 400)

    # 500 Internal Error (catch-all)
    @app.errorhandler(Exception)
    def internal_error(err: Exception):
        logger.exception("[ERROR] %s %s", request.method, request.path, exc_info=err)
        return error_response("Internal server error", "server_error", 500)
