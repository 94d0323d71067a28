"""
client/exceptions.py -- Errors raised by the Curio client.

Every failure the client can surface derives from ClientError. HTTP error
responses are mapped by their envelope code first ({"error": {"code": ...}})
and by status code when the body carries no recognizable code.
"""

from typing import Optional


class ClientError(Exception):
    """Base class for all client errors."""

    code = "client_error"

    def __init__(self, message: str, status_code: Optional[int] = None, code: Optional[str] = None) -> None:
        super().__init__(message)
        self.message = message
        self.status_code = status_code
        if code:
            self.code = code


class Unauthenticated(ClientError):
    """No session token was sent, or the server could not read it."""

    code = "unauthenticated"


class InvalidToken(ClientError):
    """The session token is expired, forged, or names a user that no longer exists."""

    code = "invalid_token"


class InvalidCredentials(ClientError):
    """Username or password rejected at login."""

    code = "invalid_credentials"


class NotFound(ClientError):
    """The resource does not exist or belongs to another user."""

    code = "not_found"


class BadRequest(ClientError):
    """The server rejected the request body or query."""

    code = "bad_request"


class ApiError(ClientError):
    """Any other non-success response (429, 500, ...)."""

    code = "api_error"


class TransportError(ClientError):
    """The request never produced a response: timeout, refused connection, DNS failure."""

    code = "transport_error"


class MalformedResponse(ClientError):
    """A response body did not match the expected shape."""

    code = "malformed_response"


# Errors that mean "the stored session is no longer usable".
SESSION_ERRORS = (Unauthenticated, InvalidToken)

_ERRORS_BY_CODE: dict[str, type[ClientError]] = {
    "unauthenticated": Unauthenticated,
    "invalid_token": InvalidToken,
    "invalid_credentials": InvalidCredentials,
    "not_found": NotFound,
    "bad_request": BadRequest,
}

_ERRORS_BY_STATUS: dict[int, type[ClientError]] = {
    400: BadRequest,
    401: Unauthenticated,
    404: NotFound,
}


def error_for(status_code: int, code: Optional[str], message: str) -> ClientError:
    """Build the exception matching an HTTP error response."""
    cls = _ERRORS_BY_CODE.get(code or "") or _ERRORS_BY_STATUS.get(status_code, ApiError)
    return cls(message, status_code=status_code, code=code)
