"""
client/api.py -- HTTP client for every Curio REST operation.

One requests.Session per CatalogClient for connection pooling. Every call
carries a bounded timeout; a request that cannot complete raises
TransportError instead of hanging the caller. The bearer token is read from
ClientStorage on each call, so a login or logout elsewhere in the process is
picked up immediately.

Error mapping: non-2xx responses are turned into the exceptions in
client/exceptions.py by their {"error": {"code", "message"}} envelope.
Successful bodies go through the strict mappers in client/dto.py.

Any object with a requests-compatible request(method, url, json=, params=,
headers=, timeout=) method can stand in for the session, which is how the
tests drive this client against the FastAPI app in-process.
"""

import logging
from typing import Any, Optional

import requests

from catalog.models import Collection, Item, Rarity
from client import dto
from client.config import get_client_settings
from client.exceptions import MalformedResponse, TransportError, error_for
from client.models import UserProfile
from client.storage import TOKEN_KEY, ClientStorage

logger = logging.getLogger("curio.client")


class CatalogClient:
    def __init__(
        self,
        storage: ClientStorage,
        base_url: Optional[str] = None,
        timeout: Optional[float] = None,
        session: Any = None,
    ) -> None:
        if base_url is None or timeout is None:
            settings = get_client_settings()
            base_url = base_url if base_url is not None else settings.base_url
            timeout = timeout if timeout is not None else settings.timeout
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self.storage = storage
        if session is None:
            session = requests.Session()
            # Our own API never redirects more than once.
            session.max_redirects = 3
        self._session = session

    # ------------------------------------------------------------------
    # Transport
    # ------------------------------------------------------------------

    def _request(
        self,
        method: str,
        path: str,
        json: Any = None,
        params: Optional[dict] = None,
    ) -> Any:
        """Send one request and return the decoded JSON body (None for 204)."""
        headers = {}
        token = self.storage.get(TOKEN_KEY)
        if token:
            headers["Authorization"] = f"Bearer {token}"
        try:
            resp = self._session.request(
                method,
                f"{self.base_url}{path}",
                json=json,
                params=params,
                headers=headers,
                timeout=self.timeout,
            )
        except requests.RequestException as e:
            logger.warning("%s %s failed: %s", method, path, e)
            raise TransportError(f"Could not reach {self.base_url}: {e}") from e

        if resp.status_code >= 400:
            raise _error_from_response(resp)
        if resp.status_code == 204 or not resp.content:
            return None
        try:
            return resp.json()
        except ValueError as e:
            raise MalformedResponse(f"{method} {path} returned a non-JSON body") from e

    # ------------------------------------------------------------------
    # Session
    # ------------------------------------------------------------------

    def login(self, username: str, password: str) -> str:
        """Exchange credentials for a session token. Does not store it."""
        return dto.token_from_dto(self._request("POST", "/login", json={"username": username, "password": password}))

    def logout(self) -> None:
        self._request("POST", "/logout")

    def me(self) -> UserProfile:
        return dto.user_from_dto(self._request("GET", "/me"))

    # ------------------------------------------------------------------
    # Collections
    # ------------------------------------------------------------------

    def list_collections(self) -> list[Collection]:
        return dto.collections_from_dto(self._request("GET", "/collections"))

    def get_collection(self, collection_id: int) -> Collection:
        return dto.collection_from_dto(self._request("GET", f"/collections/{collection_id}"))

    def create_collection(self, title: str) -> Collection:
        return dto.collection_from_dto(self._request("POST", "/collections", json={"title": title}))

    def replace_collection(self, collection_id: int, title: str) -> None:
        self._request("PUT", f"/collections/{collection_id}", json={"title": title})

    def update_collection(self, collection_id: int, **fields) -> None:
        """Partial update. Only "title" is writable; an empty call is an ownership check."""
        unknown = set(fields) - {"title"}
        if unknown:
            raise ValueError(f"Unknown collection fields: {sorted(unknown)!r}")
        self._request("PATCH", f"/collections/{collection_id}", json=fields)

    def delete_collection(self, collection_id: int) -> None:
        self._request("DELETE", f"/collections/{collection_id}")

    # ------------------------------------------------------------------
    # Items
    # ------------------------------------------------------------------

    def list_items(self, collection_id: int) -> list[Item]:
        return dto.items_from_dto(self._request("GET", "/items", params={"collectionId": collection_id}))

    def get_item(self, item_id: int) -> Item:
        return dto.item_from_dto(self._request("GET", f"/items/{item_id}"))

    def create_item(
        self,
        collection_id: int,
        name: str,
        description: Optional[str] = None,
        image: Optional[str] = None,
        rarity: Optional[Rarity] = None,
        price: Optional[float] = None,
    ) -> int:
        """Create an item and return its new id."""
        body = {"collectionId": collection_id}
        body.update(
            dto.item_fields_to_dto(
                {"name": name, "description": description, "image": image, "rarity": rarity, "price": price}
            )
        )
        return dto.created_id_from_dto(self._request("POST", "/items", json=body))

    def replace_item(
        self,
        item_id: int,
        name: str,
        description: Optional[str] = None,
        image: Optional[str] = None,
        rarity: Optional[Rarity] = None,
        price: Optional[float] = None,
    ) -> None:
        """Overwrite every field. Optional fields left as None are cleared on the server."""
        body = dto.item_fields_to_dto(
            {"name": name, "description": description, "image": image, "rarity": rarity, "price": price}
        )
        self._request("PUT", f"/items/{item_id}", json=body)

    def update_item(self, item_id: int, **fields) -> None:
        """Write only the given fields (name, description, image, rarity, price)."""
        self._request("PATCH", f"/items/{item_id}", json=dto.item_fields_to_dto(fields))

    def delete_item(self, item_id: int) -> None:
        self._request("DELETE", f"/items/{item_id}")

    def close(self) -> None:
        self._session.close()


def _error_from_response(resp) -> Exception:
    """Map an error response to a client exception, tolerating non-JSON bodies."""
    code = None
    message = f"HTTP {resp.status_code}"
    try:
        body = resp.json()
    except ValueError:
        body = None
    error = body.get("error") if isinstance(body, dict) else None
    if isinstance(error, dict):
        code = error.get("code") if isinstance(error.get("code"), str) else None
        if isinstance(error.get("message"), str):
            message = error["message"]
    return error_for(resp.status_code, code, message)
