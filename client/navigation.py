"""
client/navigation.py -- Path-based navigation over the client state.

Routes:
  /                   -> redirect to /home
  /login              -- login view (public)
  /home               -- redirect to the selected collection (guarded)
  /collection/{id}    -- one collection and its items (guarded)
  /item               -- new item form for the selected collection (guarded)
  /item/{id}          -- one item (guarded)
  /not-found          -- public
  anything else       -> redirect to /not-found

Error policy on guarded routes:
  Unauthenticated / InvalidToken  -> clear the stored token, go to /login
  NotFound                        -> go to /not-found
Bad credentials on login stay on /login with an inline error.
"""

import logging
import re
from typing import Optional, Union

from catalog.models import Item
from client.exceptions import SESSION_ERRORS, ClientError, InvalidCredentials, NotFound
from client.guard import LOGIN_PATH, RouteGuard
from client.models import Route
from client.observable import Observable
from client.selection import SelectionCache, SelectionState
from client.session import ClientSession

logger = logging.getLogger("curio.client")

HOME_PATH = "/home"
NOT_FOUND_PATH = "/not-found"

_COLLECTION_RE = re.compile(r"^/collection/(\d+)$")
_ITEM_RE = re.compile(r"^/item/(\d+)$")

_MAX_REDIRECTS = 5


class _Redirect:
    def __init__(self, path: str) -> None:
        self.path = path


class Navigator:
    def __init__(self, session: ClientSession, selection: SelectionCache, guard: Optional[RouteGuard] = None) -> None:
        self.session = session
        self.selection = selection
        self.guard = guard or RouteGuard(session)
        self.current: Observable[Optional[Route]] = Observable(None)
        self.item: Observable[Optional[Item]] = Observable(None)

    def navigate(self, path: str) -> Route:
        """Resolve path, following redirects, and publish the resulting route."""
        for _ in range(_MAX_REDIRECTS + 1):
            outcome = self._resolve(_normalize(path))
            if isinstance(outcome, Route):
                self.current.set(outcome)
                return outcome
            logger.debug("Redirect %s -> %s", path, outcome.path)
            path = outcome.path
        raise ClientError(f"Too many redirects while navigating to {path}")

    def login(self, username: str, password: str) -> Route:
        """Sign in and go home. Bad credentials stay on the login view with an error."""
        try:
            self.session.login(username, password)
        except InvalidCredentials as exc:
            route = Route(path=LOGIN_PATH, name="login", error=exc.message)
            self.current.set(route)
            return route
        return self.navigate(HOME_PATH)

    def logout(self) -> Route:
        self.session.logout()
        self.selection.reset()
        self.item.set(None)
        return self.navigate(LOGIN_PATH)

    # ------------------------------------------------------------------
    # Resolution
    # ------------------------------------------------------------------

    def _resolve(self, path: str) -> Union[Route, _Redirect]:
        if path == "/":
            return _Redirect(HOME_PATH)
        if path == LOGIN_PATH:
            return Route(path=path, name="login")
        if path == NOT_FOUND_PATH:
            return Route(path=path, name="not-found")

        collection_match = _COLLECTION_RE.match(path)
        item_match = _ITEM_RE.match(path)
        if path not in (HOME_PATH, "/item") and collection_match is None and item_match is None:
            return _Redirect(NOT_FOUND_PATH)

        decision = self.guard.check()
        if not decision.allowed:
            return _Redirect(decision.redirect)

        try:
            if path == HOME_PATH:
                return self._home()
            if collection_match is not None:
                collection_id = int(collection_match.group(1))
                self.selection.select(collection_id)
                return Route(path=path, name="collection", params=(("id", collection_id),))
            if item_match is not None:
                item_id = int(item_match.group(1))
                self.item.set(self.selection.api.get_item(item_id))
                return Route(path=path, name="item", params=(("id", item_id),))
            self._ensure_selection()
            self.item.set(None)
            return Route(path=path, name="item")
        except SESSION_ERRORS as exc:
            logger.info("Session ended while opening %s (%s)", path, exc.code)
            self.session.clear()
            self.selection.reset()
            return _Redirect(LOGIN_PATH)
        except NotFound:
            return _Redirect(NOT_FOUND_PATH)

    def _ensure_selection(self) -> None:
        if self.selection.state.value is SelectionState.UNINITIALIZED:
            self.selection.initialize()

    def _home(self) -> Union[Route, _Redirect]:
        self._ensure_selection()
        selected_id = self.selection.selected_id
        if selected_id is not None:
            return _Redirect(f"/collection/{selected_id}")
        # No collections at all: home is the empty collection view.
        return Route(path=HOME_PATH, name="collection")


def _normalize(path: str) -> str:
    path = path.strip() or "/"
    if not path.startswith("/"):
        path = "/" + path
    return path.rstrip("/") or "/"
