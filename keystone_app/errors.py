from flask import jsonify, request
from flask_wtf.csrf import CSRFError
from werkzeug.exceptions import HTTPException


class KeystoneError(Exception):
    """Base class for errors that map onto an HTTP response."""

    status_code = 500
    default_message = "Internal server error"

    def __init__(self, message=None, *, details=None):
        super().__init__(message or self.default_message)
        self.message = message or self.default_message
        self.details = details or []

    def to_payload(self):
        payload = {"error": self.message}
        if self.details:
            payload["details"] = self.details
        return payload


class ValidationFailure(KeystoneError):
    status_code = 400
    default_message = "Validation failed"


class ForbiddenError(KeystoneError):
    status_code = 403
    default_message = "Forbidden"


class NotFoundError(KeystoneError):
    status_code = 404
    default_message = "Not found"


class DuplicateContactError(KeystoneError):
    """Raised when a new contact looks like a client the agent already has."""

    status_code = 409
    default_message = "A matching client already exists"

    def __init__(self, duplicate, message=None):
        super().__init__(message)
        self.duplicate = duplicate

    def to_payload(self):
        payload = super().to_payload()
        payload["duplicate"] = self.duplicate.to_dict()
        return payload


class ChecklistConflict(KeystoneError):
    """A checklist for the same (transaction, role) pair was created concurrently."""

    status_code = 409
    default_message = "Checklist already exists"


class DocumentConflict(KeystoneError):
    """A document code was already taken for the transaction."""

    status_code = 409
    default_message = "Document already exists"


def register_error_handlers(app):
    @app.errorhandler(KeystoneError)
    def _handle_keystone_error(exc):
        if exc.status_code >= 500:
            app.logger.error("Request to %s failed: %s", request.path, exc.message)
        return jsonify(exc.to_payload()), exc.status_code

    @app.errorhandler(CSRFError)
    def _handle_csrf_error(exc):
        return jsonify({"error": exc.description}), 400

    @app.errorhandler(HTTPException)
    def _handle_http_error(exc):
        return jsonify({"error": exc.description}), exc.code

    @app.errorhandler(Exception)
    def _handle_unexpected(exc):
        app.logger.exception("Unhandled error on %s %s", request.method, request.path)
        return jsonify({"error": "Internal server error"}), 500
