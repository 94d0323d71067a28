"""
catalog/store.py -- SQLAlchemy-backed, ownership-scoped store for collections and items.

Uses SQLAlchemy Core (not ORM) so the frozen dataclasses in catalog/models.py
remain the authoritative domain representation. Swapping SQLite for
PostgreSQL is a connection string change, not a rewrite.

Pattern: Repository + Data Mapper. CatalogStore is the repository. The
_row_to_* functions are the mappers. Route handlers never touch SQL directly.

Ownership rule: every public method takes the caller's owner_id and embeds it
in the WHERE clause of the statement that does the work. There is no
"fetch, then check the owner" step anywhere. Items carry no owner column; a
statement touching items always restricts collection_id to the ids of the
caller's collections. A row that does not exist and a row that belongs to
someone else produce the same result (None / False), so callers cannot tell
them apart.

Security: all queries use bound parameters. No f-strings in SQL.

Usage:
    store = CatalogStore()                               # SQLite default
    store = CatalogStore("postgresql://user:pw@host/db") # PostgreSQL
    stamps = store.create_collection(owner_id, "Stamps")
    store.create_item(owner_id, stamps.id, "1800 stamp", rarity=Rarity.RARE, price=555)
    store.delete_collection(owner_id, stamps.id)         # items go with it
    store.close()
"""

import logging
from datetime import datetime, timezone
from pathlib import Path
from typing import Optional

from sqlalchemy import (
    Column,
    Float,
    ForeignKey,
    Integer,
    MetaData,
    String,
    Table,
    Text,
    create_engine,
    event,
    func,
    select,
)
from sqlalchemy.engine import Engine

from catalog.models import Collection, Item, Rarity

logger = logging.getLogger("curio.catalog")

_DEFAULT_DB_URL = f"sqlite:///{Path(__file__).parent / 'curio_catalog.db'}"

DEFAULT_COLLECTION_TITLE = "Default collection"

# ---------------------------------------------------------------------------
# Schema
# ---------------------------------------------------------------------------

metadata = MetaData()

_collections = Table(
    "collections",
    metadata,
    Column("id", Integer, primary_key=True, autoincrement=True),
    Column("user_id", Integer, nullable=False, index=True),
    Column("title", String(255), nullable=False),
    Column("created_at", String(32), nullable=False),
)

_items = Table(
    "collection_items",
    metadata,
    Column("id", Integer, primary_key=True, autoincrement=True),
    Column(
        "collection_id",
        Integer,
        ForeignKey("collections.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    ),
    Column("name", Text, nullable=False),
    Column("description", Text),
    Column("image", Text),  # URL or data URI
    Column("rarity", String(20)),
    Column("price", Float),
)

_ITEM_FIELDS = ("name", "description", "image", "rarity", "price")
_COLLECTION_FIELDS = ("title",)


# ---------------------------------------------------------------------------
# Connection setup
# ---------------------------------------------------------------------------


def _configure_sqlite(dbapi_conn, connection_record) -> None:
    """Enable WAL and foreign key enforcement on every new SQLite connection.

    SQLite ships with foreign keys off and the setting is per-connection.
    With it on, the ON DELETE CASCADE on collection_items backs up the
    explicit child delete in delete_collection(), and an item insert racing a
    collection delete fails instead of leaving an orphan.
    """
    dbapi_conn.execute("PRAGMA journal_mode=WAL")
    dbapi_conn.execute("PRAGMA foreign_keys=ON")


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def _now_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


def _owned_collection(owner_id: int, collection_id: int):
    """WHERE clause matching one collection only if owner_id owns it."""
    return (_collections.c.id == collection_id) & (_collections.c.user_id == owner_id)


def _owned_collection_ids(owner_id: int):
    """Subquery of every collection id owned by owner_id."""
    return select(_collections.c.id).where(_collections.c.user_id == owner_id)


def _owned_item(owner_id: int, item_id: int):
    """WHERE clause on collection_items matching one item only through an owned parent."""
    return (_items.c.id == item_id) & (_items.c.collection_id.in_(_owned_collection_ids(owner_id)))


def _item_values(fields: dict) -> dict:
    """Convert domain values to column values (Rarity -> its string)."""
    values = dict(fields)
    if isinstance(values.get("rarity"), Rarity):
        values["rarity"] = values["rarity"].value
    return values


def _check_fields(fields: dict, allowed: tuple[str, ...]) -> None:
    unknown = set(fields) - set(allowed)
    if unknown:
        raise ValueError(f"Unknown fields: {sorted(unknown)!r}")


def _collection_summary_query(owner_id: int):
    """Collections owned by owner_id with their item counts."""
    return (
        select(
            _collections.c.id,
            _collections.c.user_id,
            _collections.c.title,
            func.count(_items.c.id).label("items_count"),
        )
        .select_from(_collections.outerjoin(_items, _items.c.collection_id == _collections.c.id))
        .where(_collections.c.user_id == owner_id)
        .group_by(_collections.c.id, _collections.c.user_id, _collections.c.title)
    )


# ---------------------------------------------------------------------------
# Repository
# ---------------------------------------------------------------------------


class CatalogStore:
    """Repository for Collection and Item entities, scoped by owner."""

    def __init__(self, db_url: str = _DEFAULT_DB_URL) -> None:
        connect_args: dict = {}
        if db_url.startswith("sqlite"):
            connect_args["check_same_thread"] = False
        self.engine: Engine = create_engine(db_url, connect_args=connect_args)
        if db_url.startswith("sqlite"):
            event.listen(self.engine, "connect", _configure_sqlite)
        metadata.create_all(self.engine)

    # ------------------------------------------------------------------
    # Collections
    # ------------------------------------------------------------------

    def list_collections(self, owner_id: int) -> list[Collection]:
        """Return the owner's collections ordered by id, items empty, counts filled."""
        with self.engine.connect() as conn:
            rows = conn.execute(_collection_summary_query(owner_id).order_by(_collections.c.id)).fetchall()
        return [_row_to_collection(r) for r in rows]

    def get_collection(self, owner_id: int, collection_id: int) -> Optional[Collection]:
        """Return one owned collection with its items, or None."""
        with self.engine.connect() as conn:
            row = conn.execute(
                _collection_summary_query(owner_id).where(_collections.c.id == collection_id)
            ).fetchone()
            if row is None:
                return None
            item_rows = conn.execute(
                _items.select().where(_items.c.collection_id == row.id).order_by(_items.c.id)
            ).fetchall()
        return _row_to_collection(row, items=tuple(_row_to_item(r) for r in item_rows))

    def create_collection(self, owner_id: int, title: str) -> Collection:
        """Create an empty collection owned by owner_id and return it."""
        with self.engine.connect() as conn:
            result = conn.execute(_collections.insert().values(user_id=owner_id, title=title, created_at=_now_iso()))
            conn.commit()
            collection_id = result.inserted_primary_key[0]
        logger.info("Collection %d created for user %d", collection_id, owner_id)
        return Collection(id=collection_id, title=title, owner_id=owner_id)

    def ensure_default_collection(self, owner_id: int, title: str = DEFAULT_COLLECTION_TITLE) -> Optional[Collection]:
        """Create the default collection if owner_id has none. Returns it, or None if not needed."""
        with self.engine.connect() as conn:
            existing = conn.execute(
                select(_collections.c.id).where(_collections.c.user_id == owner_id).limit(1)
            ).fetchone()
        if existing is not None:
            return None
        return self.create_collection(owner_id, title)

    def replace_collection(self, owner_id: int, collection_id: int, title: str) -> bool:
        """Overwrite every mutable collection field. Returns False if nothing owned matched."""
        return self.update_collection(owner_id, collection_id, title=title)

    def update_collection(self, owner_id: int, collection_id: int, **fields) -> bool:
        """Write only the supplied fields of an owned collection.

        Accepted fields: title. With no fields nothing is written; the return
        value still reports whether the collection exists for this owner.

        Returns True on success, False if the collection is absent or not owned.
        """
        _check_fields(fields, _COLLECTION_FIELDS)
        with self.engine.connect() as conn:
            if not fields:
                row = conn.execute(
                    select(_collections.c.id).where(_owned_collection(owner_id, collection_id))
                ).fetchone()
                return row is not None
            result = conn.execute(
                _collections.update().where(_owned_collection(owner_id, collection_id)).values(**fields)
            )
            conn.commit()
        return result.rowcount > 0

    def delete_collection(self, owner_id: int, collection_id: int) -> bool:
        """Delete an owned collection and all of its items in one transaction.

        Children go first, under the same ownership predicate as the parent, so
        a foreign collection id deletes nothing at either step.

        Returns True if the collection was deleted, False if absent or not owned.
        """
        owned = _owned_collection(owner_id, collection_id)
        with self.engine.begin() as conn:
            items_result = conn.execute(
                _items.delete().where(_items.c.collection_id.in_(select(_collections.c.id).where(owned)))
            )
            result = conn.execute(_collections.delete().where(owned))
        if result.rowcount > 0:
            logger.info(
                "Collection %d deleted for user %d (%d items)", collection_id, owner_id, max(items_result.rowcount, 0)
            )
        return result.rowcount > 0

    # ------------------------------------------------------------------
    # Items
    # ------------------------------------------------------------------

    def list_items(self, owner_id: int, collection_id: int) -> Optional[list[Item]]:
        """Return the items of an owned collection, or None if it is absent or not owned.

        An owned collection with no items returns an empty list.
        """
        with self.engine.connect() as conn:
            owned = conn.execute(select(_collections.c.id).where(_owned_collection(owner_id, collection_id))).fetchone()
            if owned is None:
                return None
            rows = conn.execute(
                _items.select().where(_items.c.collection_id == collection_id).order_by(_items.c.id)
            ).fetchall()
        return [_row_to_item(r) for r in rows]

    def get_item(self, owner_id: int, item_id: int) -> Optional[Item]:
        """Return one item reached through an owned parent collection, or None."""
        stmt = (
            select(_items)
            .select_from(_items.join(_collections, _collections.c.id == _items.c.collection_id))
            .where((_items.c.id == item_id) & (_collections.c.user_id == owner_id))
        )
        with self.engine.connect() as conn:
            row = conn.execute(stmt).fetchone()
        return _row_to_item(row) if row is not None else None

    def create_item(
        self,
        owner_id: int,
        collection_id: int,
        name: str,
        description: Optional[str] = None,
        image: Optional[str] = None,
        rarity: Optional[Rarity] = None,
        price: Optional[float] = None,
    ) -> Optional[Item]:
        """Insert an item under an owned collection.

        The ownership lookup and the insert share one transaction. Returns the
        stored Item, or None if the collection is absent or not owned.
        """
        values = _item_values(
            {"name": name, "description": description, "image": image, "rarity": rarity, "price": price}
        )
        with self.engine.begin() as conn:
            owned = conn.execute(select(_collections.c.id).where(_owned_collection(owner_id, collection_id))).fetchone()
            if owned is None:
                return None
            result = conn.execute(_items.insert().values(collection_id=collection_id, **values))
            item_id = result.inserted_primary_key[0]
        return Item(
            id=item_id,
            collection_id=collection_id,
            name=name,
            description=description,
            image=image,
            rarity=rarity,
            price=price,
        )

    def replace_item(
        self,
        owner_id: int,
        item_id: int,
        name: str,
        description: Optional[str] = None,
        image: Optional[str] = None,
        rarity: Optional[Rarity] = None,
        price: Optional[float] = None,
    ) -> bool:
        """Overwrite every field of an owned item. Omitted optional fields become NULL.

        Returns False if the item is absent or its collection is not owned.
        """
        values = _item_values(
            {"name": name, "description": description, "image": image, "rarity": rarity, "price": price}
        )
        with self.engine.connect() as conn:
            result = conn.execute(_items.update().where(_owned_item(owner_id, item_id)).values(**values))
            conn.commit()
        return result.rowcount > 0

    def update_item(self, owner_id: int, item_id: int, **fields) -> bool:
        """Write only the supplied fields of an owned item.

        Accepted fields: name, description, image, rarity, price. name may not
        be set to None. With no fields nothing is written and the return value
        reports whether the item exists for this owner.
        """
        _check_fields(fields, _ITEM_FIELDS)
        if "name" in fields and fields["name"] is None:
            raise ValueError("name cannot be cleared")
        if not fields:
            return self.get_item(owner_id, item_id) is not None
        with self.engine.connect() as conn:
            result = conn.execute(_items.update().where(_owned_item(owner_id, item_id)).values(**_item_values(fields)))
            conn.commit()
        return result.rowcount > 0

    def delete_item(self, owner_id: int, item_id: int) -> bool:
        """Delete an owned item with a single statement. Returns False if absent or not owned."""
        with self.engine.connect() as conn:
            result = conn.execute(_items.delete().where(_owned_item(owner_id, item_id)))
            conn.commit()
        return result.rowcount > 0

    def close(self) -> None:
        self.engine.dispose()


# ---------------------------------------------------------------------------
# Row mappers (Data Mapper pattern)
# ---------------------------------------------------------------------------


def _row_to_collection(row, items: tuple[Item, ...] = ()) -> Collection:
    return Collection(
        id=row.id,
        owner_id=row.user_id,
        title=row.title,
        items_count=row.items_count,
        items=items,
    )


def _row_to_item(row) -> Item:
    return Item(
        id=row.id,
        collection_id=row.collection_id,
        name=row.name,
        description=row.description,
        image=row.image,
        rarity=Rarity(row.rarity) if row.rarity else None,
        price=row.price,
    )
