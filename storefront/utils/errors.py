# --- storefront/utils/errors.py ---
from flask import jsonify
from flask_jwt_extended.exceptions import JWTExtendedException
from jwt.exceptions import PyJWTError
from werkzeug.exceptions import HTTPException

from .api import api_error


class ApiError(Exception):
    status_code = 400
    default_message = "Bad request"

    def __init__(self, message=None, status_code=None, data=None):
        super().__init__(message or self.default_message)
        self.message = message or self.default_message
        if status_code is not None:
            self.status_code = status_code
        self.data = data


class ValidationError(ApiError):
    status_code = 400
    default_message = "Invalid request"


class Unauthenticated(ApiError):
    status_code = 401
    default_message = "Not logged in"


class Forbidden(ApiError):
    status_code = 403
    default_message = "Forbidden"


class NotFound(ApiError):
    status_code = 404
    default_message = "Not found"


def _json_error(message, status_code, data=None):
    r = jsonify(api_error(message, data))
    r.status_code = status_code
    return r


def register_error_handlers(app):
    @app.errorhandler(ApiError)
    def handle_api_error(e):
        return _json_error(e.message, e.status_code, e.data)

    @app.errorhandler(JWTExtendedException)
    @app.errorhandler(PyJWTError)
    def handle_jwt_error(e):
        app.logger.info("rejected session credential: %s", e)
        return _json_error("Not logged in", 401)

    @app.errorhandler(HTTPException)
    def handle_http_error(e):
        return _json_error(e.description or e.name, e.code or 500)

    @app.errorhandler(Exception)
    def handle_unexpected(e):
        app.logger.error("unhandled error: %s", e, exc_info=e)
        return _json_error("Internal server error", 500)
