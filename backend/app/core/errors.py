# backend/app/core/errors.py
"""
Error taxonomy shared by services and the HTTP layer.

Services raise these; ``backend.app.api.errors`` renders them as
``{success, kind, message, status_code, path}``. ``kind`` is stable and
machine-readable, ``message`` is for humans and never contains secrets.
"""
from typing import Optional


class AppError(Exception):
    """Base class for every error that maps to an HTTP response."""

    kind = "app_error"
    status_code = 500
    default_message = "Application error"

    def __init__(self, message: Optional[str] = None):
        self.message = message or self.default_message
        super().__init__(self.message)


class ValidationError(AppError):
    kind = "validation_error"
    status_code = 400
    default_message = "Invalid request"


class WeakPasswordError(ValidationError):
    kind = "weak_password"
    default_message = "Password does not meet the password policy"


class AuthError(AppError):
    kind = "auth_error"
    status_code = 401
    default_message = "Authentication required"


class InvalidCredentialsError(AuthError):
    kind = "invalid_credentials"
    default_message = "Invalid username or password"


class InvalidSessionError(AuthError):
    kind = "invalid_session"
    default_message = "Invalid or expired session token"


class ForbiddenError(AppError):
    kind = "forbidden"
    status_code = 403
    default_message = "Access denied"


class NotFoundError(AppError):
    kind = "not_found"
    status_code = 404
    default_message = "Resource not found"


class NoActiveCredentialError(NotFoundError):
    kind = "no_active_credential"
    default_message = "No active 115 credentials configured for this user"


class ConflictError(AppError):
    kind = "conflict"
    status_code = 409
    default_message = "Resource conflict"


class DuplicateUserError(ConflictError):
    kind = "duplicate_user"
    default_message = "Username or email already registered"


class QRLoginFailedError(AppError):
    kind = "login_failed"
    status_code = 400
    default_message = "QR code login failed"


class UpstreamError(AppError):
    kind = "upstream_error"
    status_code = 502
    default_message = "115 drive request failed"


class UpstreamAuthError(UpstreamError):
    kind = "upstream_auth_failed"
    default_message = "115 drive rejected the stored credentials"


class InternalError(AppError):
    kind = "internal_error"
    status_code = 500
    default_message = "Internal server error"
