"""
tests/test_selection_cache.py -- SelectionCache against an in-process fake API.

Coverage:
  - Startup rehydration from the persisted id, with fallback to the first collection
  - Zero collections: READY with nothing selected and the persisted id cleared
  - select(): same-id no-op, unknown id falls back then raises NotFound
  - Mutations re-fetch instead of patching locally
  - displayed_items filters by search text, case-insensitively
  - Overlapping selections: the last one requested wins
  - A failed fetch settles the state and propagates the error
"""

from __future__ import annotations

import threading
from dataclasses import replace

import pytest

from catalog.models import Collection, Item, Rarity
from client.exceptions import NotFound, TransportError
from client.selection import SelectionCache, SelectionState
from client.storage import SELECTED_COLLECTION_KEY, ClientStorage


class FakeCatalogApi:
    """Dict-backed stand-in for CatalogClient.

    gates[cid] blocks the next get_collection(cid) until the event is set;
    entered[cid] is set as soon as a get_collection(cid) call starts.
    """

    def __init__(self) -> None:
        self.collections: dict[int, Collection] = {}
        self.gates: dict[int, threading.Event] = {}
        self.entered: dict[int, threading.Event] = {}
        self.calls: list[tuple] = []
        self.fail_with: Exception | None = None
        self._next_id = 100

    def add(self, collection_id: int, title: str, *names: str) -> None:
        items = tuple(
            Item(id=collection_id * 10 + n, collection_id=collection_id, name=name) for n, name in enumerate(names)
        )
        self.collections[collection_id] = Collection(id=collection_id, title=title, items_count=len(items), items=items)

    def list_collections(self) -> list[Collection]:
        self.calls.append(("list_collections",))
        if self.fail_with is not None:
            raise self.fail_with
        return [replace(c, items=()) for _, c in sorted(self.collections.items())]

    def get_collection(self, collection_id: int) -> Collection:
        self.calls.append(("get_collection", collection_id))
        self.entered.setdefault(collection_id, threading.Event()).set()
        gate = self.gates.pop(collection_id, None)
        if gate is not None:
            gate.wait(5)
        if collection_id not in self.collections:
            raise NotFound(f"Collection {collection_id} not found.", status_code=404)
        return self.collections[collection_id]

    def create_collection(self, title: str) -> Collection:
        self._next_id += 1
        self.add(self._next_id, title)
        return self.collections[self._next_id]

    def replace_collection(self, collection_id: int, title: str) -> None:
        self.collections[collection_id] = replace(self.collections[collection_id], title=title)

    def delete_collection(self, collection_id: int) -> None:
        del self.collections[collection_id]

    def create_item(self, collection_id: int, name: str, **fields) -> int:
        self._next_id += 1
        current = self.collections[collection_id]
        item = Item(id=self._next_id, collection_id=collection_id, name=name, **fields)
        self.collections[collection_id] = replace(
            current, items=current.items + (item,), items_count=current.items_count + 1
        )
        return item.id

    def update_item(self, item_id: int, **fields) -> None:
        for cid, current in self.collections.items():
            items = tuple(replace(i, **fields) if i.id == item_id else i for i in current.items)
            self.collections[cid] = replace(current, items=items)

    def replace_item(self, item_id: int, name: str, **fields) -> None:
        self.update_item(item_id, name=name, description=None, image=None, rarity=None, price=None, **fields)

    def delete_item(self, item_id: int) -> None:
        for cid, current in self.collections.items():
            items = tuple(i for i in current.items if i.id != item_id)
            self.collections[cid] = replace(current, items=items, items_count=len(items))


@pytest.fixture
def storage(tmp_path):
    s = ClientStorage(tmp_path / "client.db")
    yield s
    s.close()


@pytest.fixture
def api() -> FakeCatalogApi:
    fake = FakeCatalogApi()
    fake.add(1, "Coins", "1972 coin", "Lynx", "coin purse")
    fake.add(2, "Stamps", "1800 stamp")
    return fake


@pytest.fixture
def cache(api, storage) -> SelectionCache:
    return SelectionCache(api, storage)


# ---------------------------------------------------------------------------
# Rehydration
# ---------------------------------------------------------------------------


class TestInitialize:
    def test_starts_uninitialized(self, cache):
        assert cache.state.value is SelectionState.UNINITIALIZED
        assert cache.selected.value is None
        assert cache.displayed_items.value == ()

    def test_without_persisted_id_selects_first(self, cache, storage):
        selected = cache.initialize()
        assert selected.id == 1
        assert cache.state.value is SelectionState.READY
        assert storage.get(SELECTED_COLLECTION_KEY) == "1"
        assert [c.id for c in cache.collections.value] == [1, 2]

    def test_persisted_id_is_restored(self, cache, storage):
        storage.set(SELECTED_COLLECTION_KEY, "2")
        assert cache.initialize().title == "Stamps"

    @pytest.mark.parametrize("stored", ["99", "not-a-number"])
    def test_unmatched_persisted_id_falls_back_to_first(self, cache, storage, stored):
        storage.set(SELECTED_COLLECTION_KEY, stored)
        assert cache.initialize().id == 1
        assert storage.get(SELECTED_COLLECTION_KEY) == "1"

    def test_zero_collections_is_ready_with_nothing_selected(self, api, cache, storage):
        api.collections.clear()
        storage.set(SELECTED_COLLECTION_KEY, "1")
        assert cache.initialize() is None
        assert cache.state.value is SelectionState.READY
        assert cache.selected.value is None
        assert storage.get(SELECTED_COLLECTION_KEY) is None

    def test_states_pass_through_resolving(self, cache):
        states = []
        cache.state.subscribe(states.append)
        cache.initialize()
        assert states == [SelectionState.RESOLVING, SelectionState.READY]


# ---------------------------------------------------------------------------
# Navigation
# ---------------------------------------------------------------------------


class TestSelect:
    def test_select_other_collection_persists_it(self, cache, storage):
        cache.initialize()
        assert cache.select(2).title == "Stamps"
        assert storage.get(SELECTED_COLLECTION_KEY) == "2"

    def test_select_current_collection_is_noop(self, api, cache):
        cache.initialize()
        calls_before = len(api.calls)
        assert cache.select(1).id == 1
        assert len(api.calls) == calls_before

    def test_select_unknown_id_falls_back_then_raises(self, cache, storage):
        cache.initialize()
        cache.select(2)
        with pytest.raises(NotFound):
            cache.select(404)
        assert cache.selected_id == 2
        assert cache.state.value is SelectionState.READY
        assert storage.get(SELECTED_COLLECTION_KEY) == "2"

    def test_failed_fetch_settles_state_and_propagates(self, api, cache):
        cache.initialize()
        api.fail_with = TransportError("down")
        with pytest.raises(TransportError):
            cache.select(2)
        assert cache.state.value is SelectionState.READY
        assert cache.selected_id == 1

    def test_failed_first_fetch_returns_to_uninitialized(self, api, cache):
        api.fail_with = TransportError("down")
        with pytest.raises(TransportError):
            cache.initialize()
        assert cache.state.value is SelectionState.UNINITIALIZED

    def test_last_requested_selection_wins(self, api, cache, storage):
        """A slow fetch for collection 1 finishing after collection 2 must not be applied."""
        gate = api.gates[1] = threading.Event()
        results = {}

        slow = threading.Thread(target=lambda: results.setdefault("slow", cache.select(1)))
        slow.start()
        assert api.entered.setdefault(1, threading.Event()).wait(5)

        assert cache.select(2).id == 2
        gate.set()
        slow.join(5)

        assert not slow.is_alive()
        assert results["slow"] is None
        assert cache.selected_id == 2
        assert cache.state.value is SelectionState.READY
        assert storage.get(SELECTED_COLLECTION_KEY) == "2"

    def test_mutation_during_selection_keeps_requested_collection(self, api, cache, storage):
        """Refreshing after a mutation follows the in-flight select(), not the old selection."""
        cache.initialize()
        gate = api.gates[2] = threading.Event()
        results = {}

        pending = threading.Thread(target=lambda: results.setdefault("select", cache.select(2)))
        pending.start()
        assert api.entered.setdefault(2, threading.Event()).wait(5)

        cache.update_item(10, name="1973 coin")
        gate.set()
        pending.join(5)

        assert not pending.is_alive()
        assert cache.selected_id == 2
        assert cache.state.value is SelectionState.READY
        assert storage.get(SELECTED_COLLECTION_KEY) == "2"
        assert api.collections[1].items[0].name == "1973 coin"

    def test_superseded_unknown_selection_does_not_raise(self, api, cache):
        cache.initialize()
        api.entered.pop(1, None)
        gate = api.gates[1] = threading.Event()
        outcome = {}

        def select_unknown():
            try:
                outcome["result"] = cache.select(404)
            except NotFound as exc:
                outcome["error"] = exc

        stale = threading.Thread(target=select_unknown)
        stale.start()
        assert api.entered.setdefault(1, threading.Event()).wait(5)

        assert cache.select(2).id == 2
        gate.set()
        stale.join(5)

        assert not stale.is_alive()
        assert outcome == {"result": None}
        assert cache.selected_id == 2

    def test_reset_forgets_memory_but_keeps_hint(self, cache, storage):
        cache.initialize()
        cache.select(2)
        cache.set_search("stamp")
        cache.reset()
        assert cache.state.value is SelectionState.UNINITIALIZED
        assert cache.selected.value is None
        assert cache.search.value == ""
        assert storage.get(SELECTED_COLLECTION_KEY) == "2"


# ---------------------------------------------------------------------------
# Derived items and mutations
# ---------------------------------------------------------------------------


class TestDisplayedItems:
    def test_search_filters_case_insensitively(self, cache):
        cache.initialize()
        assert len(cache.displayed_items.value) == 3
        cache.set_search("COIN")
        assert [i.name for i in cache.displayed_items.value] == ["1972 coin", "coin purse"]
        cache.set_search("")
        assert len(cache.displayed_items.value) == 3

    def test_search_applies_to_newly_selected_collection(self, cache):
        cache.initialize()
        cache.set_search("stamp")
        assert cache.displayed_items.value == ()
        cache.select(2)
        assert [i.name for i in cache.displayed_items.value] == ["1800 stamp"]


class TestMutations:
    def test_add_item_refetches(self, api, cache):
        cache.initialize()
        published = []
        cache.selected.subscribe(published.append)

        item_id = cache.add_item("Gold coin", rarity=Rarity.LEGENDARY, price=900)

        assert published, "mutation must republish the selected collection"
        assert cache.selected.value.items_count == 4
        assert cache.selected.value.items[-1].id == item_id
        assert ("get_collection", 1) in api.calls[-2:]

    def test_update_and_delete_item_refetch(self, cache):
        cache.initialize()
        first = cache.selected.value.items[0]
        cache.update_item(first.id, name="1973 coin")
        assert cache.selected.value.items[0].name == "1973 coin"
        cache.replace_item(first.id, "Plain coin")
        assert cache.selected.value.items[0].name == "Plain coin"
        cache.delete_item(first.id)
        assert first.id not in {i.id for i in cache.selected.value.items}

    def test_create_collection_selects_it(self, cache, storage):
        cache.initialize()
        created = cache.create_collection("Cards")
        assert cache.selected.value == created
        assert storage.get(SELECTED_COLLECTION_KEY) == str(created.id)
        assert [c.title for c in cache.collections.value][-1] == "Cards"

    def test_rename_collection_refreshes_titles(self, cache):
        cache.initialize()
        cache.rename_collection(1, "Old coins")
        assert cache.selected.value.title == "Old coins"
        assert cache.collections.value[0].title == "Old coins"

    def test_deleting_selected_collection_falls_back(self, cache, storage):
        cache.initialize()
        cache.delete_collection(1)
        assert cache.selected_id == 2
        assert storage.get(SELECTED_COLLECTION_KEY) == "2"

    def test_deleting_last_collection_clears_selection(self, api, cache, storage):
        api.collections.pop(2)
        cache.initialize()
        cache.delete_collection(1)
        assert cache.selected.value is None
        assert cache.state.value is SelectionState.READY
        assert storage.get(SELECTED_COLLECTION_KEY) is None
        assert cache.displayed_items.value == ()

    def test_add_item_without_selection_fails(self, api, cache):
        api.collections.clear()
        cache.initialize()
        with pytest.raises(Exception, match="No collection selected"):
            cache.add_item("Orphan")
