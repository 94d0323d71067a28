"""
client/selection.py -- The single "currently selected collection", kept in sync.

State machine:

  UNINITIALIZED --initialize()/select()--> RESOLVING --fetch ok--> READY
  READY --select(other id) / refresh() / any mutation--> RESOLVING --> READY

RESOLVING always starts from a fresh GET /collections. The requested id (or,
on startup, the id persisted under "selectedCollection") is matched against
that list; an id that is not there falls back to the first collection. With
no collections at all the cache is READY with nothing selected and the
persisted id is removed.

Mutations never patch the local snapshot. Each one calls the API and then
re-fetches and republishes, so the displayed data is always server data.

Concurrency: every resolution takes a ticket. Only the newest ticket may
publish, so when navigations overlap the last one requested wins no matter
which response arrives first.
"""

import logging
import threading
from enum import Enum
from typing import Optional

from catalog.models import Collection, Item, Rarity
from client.api import CatalogClient
from client.exceptions import ClientError, NotFound
from client.observable import Derived, Observable
from client.storage import SELECTED_COLLECTION_KEY, ClientStorage

logger = logging.getLogger("curio.client")


class SelectionState(str, Enum):
    UNINITIALIZED = "uninitialized"
    RESOLVING = "resolving"
    READY = "ready"


def filter_items(collection: Optional[Collection], search: str) -> tuple[Item, ...]:
    """Items of collection whose name contains search, ignoring case."""
    if collection is None:
        return ()
    needle = (search or "").lower()
    return tuple(item for item in collection.items if needle in item.name.lower())


class SelectionCache:
    def __init__(self, api: CatalogClient, storage: ClientStorage) -> None:
        self.api = api
        self.storage = storage
        self.state: Observable[SelectionState] = Observable(SelectionState.UNINITIALIZED)
        self.selected: Observable[Optional[Collection]] = Observable(None)
        self.collections: Observable[tuple[Collection, ...]] = Observable(())
        self.search: Observable[str] = Observable("")
        self.displayed_items: Derived[tuple[Item, ...]] = Derived([self.selected, self.search], filter_items)
        self._lock = threading.RLock()
        self._ticket = 0
        self._requested_id: Optional[int] = None

    @property
    def selected_id(self) -> Optional[int]:
        current = self.selected.value
        return current.id if current is not None else None

    def persisted_id(self) -> Optional[int]:
        """The id stored by a previous run, or None if absent or unreadable."""
        raw = self.storage.get(SELECTED_COLLECTION_KEY)
        if raw is None:
            return None
        try:
            return int(raw)
        except ValueError:
            logger.warning("Ignoring unreadable stored collection id %r", raw)
            return None

    # ------------------------------------------------------------------
    # Navigation
    # ------------------------------------------------------------------

    def initialize(self) -> Optional[Collection]:
        """Rehydrate the selection on startup from the persisted id."""
        return self._resolve(None, strict=False)

    def select(self, collection_id: int) -> Optional[Collection]:
        """Make collection_id the selected collection.

        Selecting the collection that is already selected and READY does
        nothing. An id the user does not own selects the fallback collection
        and then raises NotFound.

        Returns the published snapshot, or None when a newer selection
        superseded this one before it finished.
        """
        if self.state.value is SelectionState.READY and self.selected_id == collection_id:
            return self.selected.value
        return self._resolve(collection_id, strict=True)

    def refresh(self) -> Optional[Collection]:
        """Re-fetch and republish the latest requested selection (or the fallback if it is gone).

        While a select() is still in flight its id is the one refreshed, so a
        mutation never drags the selection back to the previous collection.
        """
        with self._lock:
            target_id = self._requested_id if self._requested_id is not None else self.selected_id
        return self._resolve(target_id, strict=False)

    def set_search(self, text: str) -> None:
        self.search.set(text)

    def reset(self) -> None:
        """Forget everything in memory (used on logout). The persisted id is kept as a hint."""
        with self._lock:
            self._ticket += 1
            self._requested_id = None
            self.selected.set(None)
            self.collections.set(())
            self.search.set("")
            self.state.set(SelectionState.UNINITIALIZED)

    def _resolve(self, requested_id: Optional[int], strict: bool) -> Optional[Collection]:
        with self._lock:
            self._ticket += 1
            ticket = self._ticket
            self._requested_id = requested_id
            self.state.set(SelectionState.RESOLVING)

        try:
            collections = self.api.list_collections()
            target_id, matched = self._pick(collections, requested_id)
            collection = self.api.get_collection(target_id) if target_id is not None else None
        except ClientError:
            self._settle_failed(ticket)
            raise

        published = self._publish(ticket, collections, collection)
        if published and strict and requested_id is not None and not matched:
            raise NotFound(f"Collection {requested_id} not found.", status_code=404, code="not_found")
        return collection if published else None

    def _pick(self, collections: list[Collection], requested_id: Optional[int]) -> tuple[Optional[int], bool]:
        """Choose the id to fetch. Returns (id, whether the requested id was found)."""
        owned = {c.id for c in collections}
        if requested_id is not None and requested_id in owned:
            return requested_id, True
        persisted = self.persisted_id()
        if persisted is not None and persisted in owned:
            return persisted, False
        return (collections[0].id if collections else None), False

    def _publish(self, ticket: int, collections: list[Collection], collection: Optional[Collection]) -> bool:
        with self._lock:
            if ticket != self._ticket:
                logger.debug("Discarding superseded selection %s", collection.id if collection else None)
                return False
            self.collections.set(tuple(collections))
            self.selected.set(collection)
            self._requested_id = collection.id if collection is not None else None
            if collection is None:
                self.storage.delete(SELECTED_COLLECTION_KEY)
            else:
                self.storage.set(SELECTED_COLLECTION_KEY, str(collection.id))
            self.state.set(SelectionState.READY)
            return True

    def _settle_failed(self, ticket: int) -> None:
        with self._lock:
            if ticket == self._ticket:
                self._requested_id = self.selected_id
                settled = SelectionState.READY if self.selected.value is not None else SelectionState.UNINITIALIZED
                self.state.set(settled)

    # ------------------------------------------------------------------
    # Mutations -- call the API, then re-fetch
    # ------------------------------------------------------------------

    def _require_selection(self) -> int:
        collection_id = self.selected_id
        if collection_id is None:
            raise ClientError("No collection selected.")
        return collection_id

    def add_item(
        self,
        name: str,
        description: Optional[str] = None,
        image: Optional[str] = None,
        rarity: Optional[Rarity] = None,
        price: Optional[float] = None,
    ) -> int:
        """Create an item in the selected collection and return its id."""
        item_id = self.api.create_item(
            self._require_selection(), name, description=description, image=image, rarity=rarity, price=price
        )
        self.refresh()
        return item_id

    def replace_item(self, item_id: int, name: str, **fields) -> None:
        self.api.replace_item(item_id, name, **fields)
        self.refresh()

    def update_item(self, item_id: int, **fields) -> None:
        self.api.update_item(item_id, **fields)
        self.refresh()

    def delete_item(self, item_id: int) -> None:
        self.api.delete_item(item_id)
        self.refresh()

    def create_collection(self, title: str) -> Optional[Collection]:
        """Create a collection and select it."""
        created = self.api.create_collection(title)
        return self._resolve(created.id, strict=False)

    def rename_collection(self, collection_id: int, title: str) -> None:
        self.api.replace_collection(collection_id, title)
        self.refresh()

    def delete_collection(self, collection_id: int) -> None:
        """Delete a collection. If it was selected, the selection falls back."""
        self.api.delete_collection(collection_id)
        self.refresh()
