"""
client/session.py -- Client-side identity: login, identity resolution, logout.

identity is an Observable holding one of:
  UNRESOLVED    -- nobody has asked the server yet
  None          -- resolved: not signed in (no token, or the token was rejected)
  UserProfile   -- resolved: signed in

Concurrency:
  resolve_identity() is single-flight. The first caller runs GET /me; every
  caller that arrives while it is in flight waits for that same result
  instead of starting a second request or reading a half-settled state.

  Each resolution is stamped with the generation current when it started.
  login() and logout() bump the generation, so a /me response that lands
  after the user signed out (or in as someone else) is discarded.
"""

import logging
import threading
from typing import Optional, Union

from client.api import CatalogClient
from client.exceptions import SESSION_ERRORS, ClientError
from client.models import UserProfile
from client.observable import Observable
from client.storage import TOKEN_KEY, ClientStorage

logger = logging.getLogger("curio.client")


class _Unresolved:
    def __repr__(self) -> str:
        return "UNRESOLVED"


UNRESOLVED = _Unresolved()

Identity = Union[_Unresolved, None, UserProfile]


class _Resolution:
    """One in-flight GET /me shared by every concurrent caller."""

    def __init__(self, generation: int) -> None:
        self.generation = generation
        self.done = threading.Event()
        self.result: Optional[UserProfile] = None
        self.error: Optional[BaseException] = None


class ClientSession:
    def __init__(self, api: CatalogClient, storage: ClientStorage) -> None:
        self.api = api
        self.storage = storage
        self.identity: Observable[Identity] = Observable(UNRESOLVED)
        self._lock = threading.RLock()
        self._generation = 0
        self._inflight: Optional[_Resolution] = None

    @property
    def has_token(self) -> bool:
        return self.storage.get(TOKEN_KEY) is not None

    def login(self, username: str, password: str) -> UserProfile:
        """Authenticate, persist the token, and resolve the new identity.

        Raises InvalidCredentials on a rejected username/password.
        """
        token = self.api.login(username, password)
        with self._lock:
            self.storage.set(TOKEN_KEY, token)
            self._generation += 1
            self._inflight = None
            self.identity.set(UNRESOLVED)
        profile = self.resolve_identity()
        if profile is None:
            raise ClientError("Login succeeded but the session could not be resolved.")
        logger.info("Signed in as '%s'", profile.username)
        return profile

    def resolve_identity(self) -> Optional[UserProfile]:
        """Return the signed-in user, asking the server at most once per generation.

        A rejected token is cleared and resolves to None. Transport failures
        propagate and leave the identity UNRESOLVED so the next call retries.
        """
        with self._lock:
            current = self.identity.value
            if current is not UNRESOLVED:
                return current
            pending = self._inflight
            owner = pending is None
            if owner:
                pending = _Resolution(self._generation)
                self._inflight = pending

        if not owner:
            pending.done.wait()
            if pending.error is not None:
                raise pending.error
            return pending.result

        rejected = False
        try:
            profile = self.api.me() if self.has_token else None
        except SESSION_ERRORS as exc:
            logger.info("Stored session rejected (%s); signing out locally", exc.code)
            profile = None
            rejected = True
        except BaseException as exc:
            with self._lock:
                if self._inflight is pending:
                    self._inflight = None
            pending.error = exc
            pending.done.set()
            raise

        with self._lock:
            if pending.generation == self._generation:
                if rejected:
                    self.storage.delete(TOKEN_KEY)
                self.identity.set(profile)
                self._inflight = None
                pending.result = profile
            else:
                logger.debug("Discarding identity from generation %d", pending.generation)
        pending.done.set()
        return pending.result

    def clear(self) -> None:
        """Drop the local session without telling the server."""
        with self._lock:
            self._generation += 1
            self._inflight = None
            self.storage.delete(TOKEN_KEY)
            self.identity.set(None)

    def logout(self) -> None:
        """Sign out. Local state is cleared even if the server call fails."""
        self.clear()
        try:
            self.api.logout()
        except ClientError as exc:
            logger.warning("Logout request failed (%s); local session already cleared", exc.code)
