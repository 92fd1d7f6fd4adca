"""
Auth Service exceptions.

Raised by AuthService and translated to HTTP responses in one place
(see main.register_exception_handlers).
"""
from typing import Optional


class AuthServiceError(Exception):
    """Base exception for all auth service errors."""

    default_message = "Auth service error"

    def __init__(self, message: Optional[str] = None, field: Optional[str] = None):
        self.message = message or self.default_message
        self.field = field
        super().__init__(self.message)


class ValidationError(AuthServiceError):
    """Input is malformed or violates a policy (e.g. short password)."""

    default_message = "Invalid input"


class ConflictError(AuthServiceError):
    """A unique field (email, username) is already taken."""

    default_message = "Email or username already exists"


class AuthError(AuthServiceError):
    """Bad credentials, invalid or expired token, or disabled account."""

    default_message = "Unauthorized"


class NotFoundError(AuthServiceError):
    """The referenced user does not exist or is inactive."""

    default_message = "User not found"
