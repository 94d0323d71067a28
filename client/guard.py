"""
client/guard.py -- Gate for protected views.

check() never answers from a half-known state: while the identity is
UNRESOLVED it waits on ClientSession.resolve_identity(), which shares one
GET /me between all concurrent callers. Any failure to resolve (rejected
token, no token, server unreachable) sends the user to the login view.
"""

import logging

from client.exceptions import ClientError
from client.models import GuardDecision
from client.session import ClientSession

logger = logging.getLogger("curio.client")

LOGIN_PATH = "/login"


class RouteGuard:
    def __init__(self, session: ClientSession, login_path: str = LOGIN_PATH) -> None:
        self.session = session
        self.login_path = login_path

    def check(self) -> GuardDecision:
        try:
            identity = self.session.resolve_identity()
        except ClientError as exc:
            logger.warning("Identity check failed (%s): %s", exc.code, exc.message)
            return GuardDecision(allowed=False, redirect=self.login_path)
        if identity is None:
            return GuardDecision(allowed=False, redirect=self.login_path)
        return GuardDecision(allowed=True, identity=identity)
