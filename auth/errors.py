"""
auth/errors.py -- Tagged error variants for the token lifecycle.

Every failure the auth layer reports is one of these classes. Each carries a
machine-readable code and the HTTP status the API layer maps it to, so routes
never translate errors by hand and the original kind is never lost.

Infrastructure errors (SQLAlchemy, OS) are NOT wrapped here -- they propagate
as-is and end up in the generic 500 handler.

Layer rule: no imports from api/ or core/.
"""

from __future__ import annotations


class AuthError(Exception):
    """Base class for all expected authentication failures."""

    code: str = "auth_error"
    status_code: int = 400
    message: str = "Authentication failed."

    def __init__(self, message: str | None = None) -> None:
        super().__init__(message or self.message)
        self.message = message or self.message


class DuplicateEmail(AuthError):
    code = "duplicate_email"
    status_code = 409
    message = "An account with that email already exists."


class InvalidCredentials(AuthError):
    """Unknown email and wrong password share this error to avoid user enumeration."""

    code = "invalid_credentials"
    status_code = 403
    message = "Invalid email or password."


class AccessDenied(AuthError):
    """Refresh rejected: unknown user, logged out, or a rotated-away token."""

    code = "access_denied"
    status_code = 403
    message = "Access denied."


class TokenError(AuthError):
    """Bearer token failed stateless verification."""

    code = "invalid_token"
    status_code = 401
    message = "Invalid token."


class InvalidSignature(TokenError):
    code = "invalid_signature"
    message = "Token signature is invalid."


class TokenExpired(TokenError):
    code = "token_expired"
    message = "Token has expired."
