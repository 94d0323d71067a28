"""
catalog/models.py -- Domain dataclasses for collections and their items.

These are frozen snapshots with zero logic. CatalogStore builds a new instance
for every read, so a caller can never reach into stored state through an
object it was handed. The client package reuses the same types for the
snapshots it materializes from API responses.

Ownership lives on Collection only. An Item knows its parent collection and
nothing else; who may touch it is always derived through that parent.
"""

from dataclasses import dataclass
from enum import Enum
from typing import Optional


class Rarity(str, Enum):
    COMMON = "Common"
    UNCOMMON = "Uncommon"
    RARE = "Rare"
    LEGENDARY = "Legendary"


@dataclass(frozen=True)
class Item:
    """One catalog entry.

    image holds either a URL or an embedded data URI. price is never negative;
    the API layer rejects negative values before they reach the store.

    id is None before the record is written to the database.
    """

    collection_id: int
    name: str
    id: Optional[int] = None
    description: Optional[str] = None
    image: Optional[str] = None
    rarity: Optional[Rarity] = None
    price: Optional[float] = None


@dataclass(frozen=True)
class Collection:
    """A named grouping of items owned by exactly one user.

    items_count is derived by the store (COUNT over the child rows) and is
    present on list results, which leave items empty. Detail reads fill both.

    owner_id is None on client-side snapshots; the API never sends it.
    """

    title: str
    id: Optional[int] = None
    owner_id: Optional[int] = None
    items_count: int = 0
    items: tuple[Item, ...] = ()
