"""
Application error taxonomy.

Every business-rule failure is raised as one of the variants below. Each
variant carries a stable ``code`` tag and a default HTTP status; the single
error boundary in ``responses.py`` turns them into the error envelope:

    {"statusCode": 404, "data": null, "message": "...", "success": false, "errors": [...]}

Messages are part of the public contract (the frontend displays them), so
services pass them verbatim.
"""

from __future__ import annotations


class AppError(Exception):
    """Base class for all expected, client-visible failures."""

    code = "APP_ERROR"
    status_code = 500

    def __init__(self, message: str, *, status_code: int | None = None, errors: list | None = None):
        super().__init__(message)
        self.message = message
        if status_code is not None:
            self.status_code = status_code
        self.errors = errors or []

    def to_dict(self) -> dict:
        return {
            "statusCode": self.status_code,
            "data": None,
            "message": self.message,
            "success": False,
            "errors": self.errors,
        }


class ValidationError(AppError):
    """Missing or malformed input."""
    code = "VALIDATION_ERROR"
    status_code = 400


class AuthenticationError(AppError):
    """No valid session for the request."""
    code = "UNAUTHORIZED"
    status_code = 401


class PermissionDeniedError(AppError):
    """Membership or role gate failed."""
    code = "PERMISSION_DENIED"
    status_code = 403


class NotFoundError(AppError):
    """Referenced entity is absent (or belongs to another organization)."""
    code = "NOT_FOUND"
    status_code = 404


class ConflictError(AppError):
    """Uniqueness violation: email, phone, slug, membership."""
    code = "CONFLICT"
    status_code = 409


class InsufficientStockError(AppError):
    """Requested quantity exceeds current stock."""
    code = "INSUFFICIENT_STOCK"
    status_code = 400

    def __init__(self, message: str, *, product_id: int | None = None,
                 requested: int | None = None, available: int | None = None):
        errors = []
        if product_id is not None:
            errors.append({
                "product": product_id,
                "requestedQuantity": requested,
                "available": available,
            })
        super().__init__(message, errors=errors)
        self.product_id = product_id


class UploadError(AppError):
    """Image store failure."""
    code = "UPLOAD_FAILED"
    status_code = 500


class MailError(AppError):
    """Mail sender failure."""
    code = "MAIL_FAILED"
    status_code = 500
