# backend/invoicehub/errors.py
"""
Domain error taxonomy.

Every error a service raises on purpose derives from InvoiceHubError and
carries the HTTP status and a stable machine code. Routes never translate
these by hand; register_error_handlers() renders them uniformly as
{"error": message, "code": code, "details": {...}}.
"""

from flask import current_app, jsonify
from werkzeug.exceptions import HTTPException


class InvoiceHubError(Exception):
    """Base class for expected, caller-facing failures."""
    status_code = 400
    code = "ERROR"

    def __init__(self, message: str, details: dict | None = None):
        super().__init__(message)
        self.message = message
        self.details = details or {}

    def to_dict(self) -> dict:
        payload = {"error": self.message, "code": self.code}
        if self.details:
            payload["details"] = self.details
        return payload


class NotAuthenticated(InvoiceHubError):
    """No token, or the token is invalid, expired or revoked."""
    status_code = 401
    code = "NOT_AUTHENTICATED"


class InvalidCredentials(InvoiceHubError):
    status_code = 401
    code = "INVALID_CREDENTIALS"


class Unauthorized(InvoiceHubError):
    """Authenticated, but outside the caller's scope."""
    status_code = 403
    code = "UNAUTHORIZED"


class BusinessRequired(InvoiceHubError):
    """Platform accounts have no implicit business to create entities in."""
    status_code = 403
    code = "BUSINESS_REQUIRED"


class NotFound(InvoiceHubError):
    status_code = 404
    code = "NOT_FOUND"


class InvalidReference(InvoiceHubError):
    """Referenced entity is missing or belongs to a different business."""
    status_code = 400
    code = "INVALID_REFERENCE"


class ValidationError(InvoiceHubError):
    """400-level input problem."""
    status_code = 400
    code = "VALIDATION_ERROR"


class PasswordValidationError(ValidationError):
    """Password does not meet strength requirements."""


class InsufficientStock(InvoiceHubError):
    status_code = 409
    code = "INSUFFICIENT_STOCK"


class DuplicateKey(InvoiceHubError):
    """Unique constraint violation (SKU, email, username)."""
    status_code = 409
    code = "DUPLICATE_KEY"


class ReferenceInUse(InvoiceHubError):
    """Delete refused while other records still point at the entity."""
    status_code = 409
    code = "REFERENCE_IN_USE"


def register_error_handlers(app) -> None:
    @app.errorhandler(InvoiceHubError)
    def handle_domain_error(exc: InvoiceHubError):
        return jsonify(exc.to_dict()), exc.status_code

    @app.errorhandler(HTTPException)
    def handle_http_error(exc: HTTPException):
        return jsonify({"error": exc.description, "code": exc.name.upper().replace(" ", "_")}), exc.code

    @app.errorhandler(Exception)
    def handle_unexpected_error(exc: Exception):
        current_app.logger.exception("Unhandled error")
        return jsonify({"error": "Internal server error"}), 500
