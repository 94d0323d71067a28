"""
auth/dependencies.py -- Session guard and FastAPI Depends() helpers.

Every protected route resolves its caller through get_caller_id(). The id
comes exclusively from the verified token -- request bodies, query strings and
path parameters are never consulted for identity.

resolve_session_token() is the framework-free core: header in, user id out,
or an AuthenticationError subclass. The FastAPI helpers translate those errors
into HTTP 401 with a structured error body.

Layer rule: no imports from api/, catalog/, or client/.
  auth/dependencies.py may import from fastapi (for HTTPException/Request)
  because this module is part of the FastAPI dependency injection system.
"""

from __future__ import annotations

from fastapi import HTTPException, Request

from auth.exceptions import AuthenticationError, InvalidTokenError, MissingTokenError
from auth.models import User
from auth.tokens import decode_access_token

_BEARER_PREFIX = "Bearer "


def resolve_session_token(authorization: str | None) -> int:
    """Resolve an Authorization header value to the caller's user id.

    Raises:
        MissingTokenError: header absent, not a Bearer header, or empty token.
        InvalidTokenError: signature or expiry check failed, or the subject
                           is not a numeric user id.
    """
    if not authorization or not authorization.startswith(_BEARER_PREFIX):
        raise MissingTokenError()
    token = authorization[len(_BEARER_PREFIX) :].strip()
    if not token or " " in token:
        raise MissingTokenError()

    payload = decode_access_token(token)
    if payload is None:
        raise InvalidTokenError()
    try:
        return int(payload["sub"])
    except (TypeError, ValueError) as exc:
        raise InvalidTokenError() from exc


def _unauthorized(exc: AuthenticationError) -> HTTPException:
    return HTTPException(
        status_code=401,
        detail={"code": exc.code, "message": exc.message},
        headers={"WWW-Authenticate": "Bearer"},
    )


def get_caller_id(request: Request) -> int:
    """Require a valid session token. Returns the caller's user id.

    Use as a FastAPI dependency:
        @router.get("/protected")
        def route(caller_id: int = Depends(get_caller_id)): ...
    """
    try:
        return resolve_session_token(request.headers.get("Authorization"))
    except AuthenticationError as exc:
        raise _unauthorized(exc) from exc


def get_current_user(request: Request) -> User:
    """Require a valid session token and load the caller's account.

    A token whose user was removed or deactivated after issuance is treated
    as an invalid token.
    """
    caller_id = get_caller_id(request)
    user = request.app.state.user_store.get_by_id(caller_id)
    if user is None or not user.is_active:
        raise _unauthorized(InvalidTokenError("Session no longer refers to an active account."))
    return user
