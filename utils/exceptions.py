"""
Authentication error taxonomy.

Every error carries the HTTP status and the envelope error code that
api.errors uses when one escapes a view.
"""
from __future__ import annotations


class AuthError(Exception):
    status_code = 401
    error = "UNAUTHORIZED"
    default_message = "Authentication failed"

    def __init__(self, message: str | None = None):
        self.message = message or self.default_message
        super().__init__(self.message)


class InvalidToken(AuthError):
    default_message = "Invalid token"


class MalformedToken(InvalidToken):
    default_message = "Malformed token"


class SignatureMismatch(InvalidToken):
    default_message = "Token signature mismatch"


class ExpiredToken(InvalidToken):
    default_message = "Token expired"


class UnknownUser(AuthError):
    default_message = "User not found"


class InvalidRefreshToken(AuthError):
    default_message = "Invalid refresh token"


class DuplicateRefreshRace(AuthError):
    status_code = 409
    error = "CONFLICT"
    default_message = "Concurrent refresh token update did not settle"


class FlowStateAbsent(AuthError):
    status_code = 400
    error = "BAD_REQUEST"
    default_message = "Login flow state is missing or invalid"


class OAuth2LoginError(AuthError):
    status_code = 400
    error = "BAD_REQUEST"
    default_message = "External login failed"

    def __init__(self, message: str | None = None, code: str = "login_failed"):
        super().__init__(message)
        self.code = code
