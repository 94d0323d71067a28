"""
api/routes/auth.py -- Login, logout, and current-user endpoints.

Routes:
  POST /login   -- password login; returns a signed session token
  POST /logout  -- acknowledgment only; 200
  GET  /me      -- current user info (requires auth)

Security:
  POST /login is rate-limited per client address (LOGIN_RATE_LIMIT).
  authenticate_user() provides timing equalization -- use it, never inline.
  Wrong username and wrong password produce the same 401 body.
  Cache-Control: no-store on login responses so tokens are not cached.

Sessions are stateless JWTs. Logout cannot revoke a token server-side; the
client drops it and the token dies at its expiry.
"""

from __future__ import annotations

import logging

from fastapi import APIRouter, Depends, Request
from fastapi.responses import JSONResponse

from api.limiter import limiter
from api.models import ErrorDetail, ErrorResponse, LoginRequest, LoginResponse, LogoutResponse, MeResponse
from auth.dependencies import get_current_user
from auth.models import User
from auth.store import UserStore
from auth.tokens import authenticate_user, create_access_token
from core.config import get_settings

logger = logging.getLogger("curio.auth")

# Auth policy:
# - POST /login:   public -- login endpoint must be unauthenticated
# - POST /logout:  public -- nothing to clear server-side
# - GET  /me:      requires auth (get_current_user)
router = APIRouter()


@limiter.limit(get_settings().login_rate_limit)  # must be ABOVE @router to preserve FastAPI introspection
@router.post("/login", response_model=LoginResponse)
def login(request: Request, body: LoginRequest) -> JSONResponse:
    """Authenticate with username and password; return a session token.

    Do NOT inline get_by_username() + verify_password() -- that re-introduces
    the username timing oracle authenticate_user() closes.
    """
    user_store: UserStore = request.app.state.user_store
    user = authenticate_user(user_store, body.username, body.password)
    if user is None:
        logger.info("Failed login for '%s'", body.username)
        resp = JSONResponse(
            status_code=401,
            content=ErrorResponse(
                error=ErrorDetail(code="invalid_credentials", message="Invalid username or password.")
            ).model_dump(exclude_none=True),
        )
        resp.headers["Cache-Control"] = "no-store"
        return resp

    user_store.update_last_login(user.id)
    token = create_access_token(user.id)
    resp = JSONResponse(status_code=200, content=LoginResponse(token=token).model_dump())
    resp.headers["Cache-Control"] = "no-store"
    return resp


@router.post("/logout", response_model=LogoutResponse)
async def logout() -> LogoutResponse:
    """Acknowledge logout. The client is responsible for discarding its token."""
    return LogoutResponse(success=True)


@router.get("/me", response_model=MeResponse)
def me(current_user: User = Depends(get_current_user)) -> MeResponse:
    """Return the authenticated user's public profile (never the password hash)."""
    return MeResponse.from_user(current_user)
