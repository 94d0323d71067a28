"""
auth/exceptions.py -- Session resolution failures.

Raised by auth.dependencies.resolve_session_token() and turned into HTTP 401
responses by the FastAPI dependencies in the same module. The code attribute
is the machine-readable error code that ends up in the response body.
"""


class AuthenticationError(Exception):
    """Base class for every way a request can fail to prove an identity."""

    code = "unauthenticated"

    def __init__(self, message: str = "Authentication required."):
        super().__init__(message)
        self.message = message


class MissingTokenError(AuthenticationError):
    """No Authorization header, or one that is not a well-formed Bearer token."""

    code = "unauthenticated"


class InvalidTokenError(AuthenticationError):
    """Signature check failed, token expired, or the subject is not a user id."""

    code = "invalid_token"

    def __init__(self, message: str = "Invalid or expired session token."):
        super().__init__(message)
