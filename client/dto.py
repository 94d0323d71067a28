"""
client/dto.py -- Explicit mapping between API JSON and client snapshots.

Every mapper reads its payload field by field. Anything the client does not
expect (an unknown key, a missing required key, a wrong type, an unknown
rarity) raises MalformedResponse instead of producing a half-filled object.
"""

from typing import Any, Optional

from catalog.models import Collection, Item, Rarity
from client.exceptions import MalformedResponse
from client.models import UserProfile

_ITEM_KEYS = frozenset({"id", "collectionId", "name", "description", "image", "rarity", "price"})
_SUMMARY_KEYS = frozenset({"id", "title", "itemsCount"})
_DETAIL_KEYS = _SUMMARY_KEYS | {"items"}
_USER_KEYS = frozenset({"id", "username", "firstname", "lastname"})

# Item fields a client may write. Wire names match the attribute names.
_ITEM_WRITE_FIELDS = ("name", "description", "image", "rarity", "price")


# ---------------------------------------------------------------------------
# Field readers
# ---------------------------------------------------------------------------


def _object(payload: Any, allowed: frozenset, kind: str) -> dict:
    if not isinstance(payload, dict):
        raise MalformedResponse(f"Expected a {kind} object, got {type(payload).__name__}")
    unknown = set(payload) - allowed
    if unknown:
        raise MalformedResponse(f"Unexpected {kind} fields: {sorted(unknown)!r}")
    return payload


def _int(payload: dict, key: str) -> int:
    value = payload.get(key)
    # bool is an int subclass; true/false is never a valid id or count.
    if not isinstance(value, int) or isinstance(value, bool):
        raise MalformedResponse(f"Field {key!r} must be an integer")
    return value


def _str(payload: dict, key: str) -> str:
    value = payload.get(key)
    if not isinstance(value, str):
        raise MalformedResponse(f"Field {key!r} must be a string")
    return value


def _optional_str(payload: dict, key: str) -> Optional[str]:
    value = payload.get(key)
    if value is not None and not isinstance(value, str):
        raise MalformedResponse(f"Field {key!r} must be a string or null")
    return value


def _optional_price(payload: dict, key: str) -> Optional[float]:
    value = payload.get(key)
    if value is None:
        return None
    if isinstance(value, bool) or not isinstance(value, (int, float)) or value < 0:
        raise MalformedResponse(f"Field {key!r} must be a non-negative number or null")
    return float(value)


def _optional_rarity(payload: dict, key: str) -> Optional[Rarity]:
    value = payload.get(key)
    if value is None:
        return None
    try:
        return Rarity(value)
    except ValueError:
        raise MalformedResponse(f"Unknown rarity {value!r}") from None


def _list(payload: Any, kind: str) -> list:
    if not isinstance(payload, list):
        raise MalformedResponse(f"Expected a list of {kind}, got {type(payload).__name__}")
    return payload


# ---------------------------------------------------------------------------
# Inbound mappers
# ---------------------------------------------------------------------------


def item_from_dto(payload: Any) -> Item:
    data = _object(payload, _ITEM_KEYS, "item")
    return Item(
        id=_int(data, "id"),
        collection_id=_int(data, "collectionId"),
        name=_str(data, "name"),
        description=_optional_str(data, "description"),
        image=_optional_str(data, "image"),
        rarity=_optional_rarity(data, "rarity"),
        price=_optional_price(data, "price"),
    )


def items_from_dto(payload: Any) -> list[Item]:
    return [item_from_dto(entry) for entry in _list(payload, "items")]


def collection_summary_from_dto(payload: Any) -> Collection:
    """One row of GET /collections. items stays empty."""
    data = _object(payload, _SUMMARY_KEYS, "collection")
    return Collection(id=_int(data, "id"), title=_str(data, "title"), items_count=_int(data, "itemsCount"))


def collections_from_dto(payload: Any) -> list[Collection]:
    return [collection_summary_from_dto(entry) for entry in _list(payload, "collections")]


def collection_from_dto(payload: Any) -> Collection:
    """A collection with its items (GET /collections/{id}, POST /collections)."""
    data = _object(payload, _DETAIL_KEYS, "collection")
    if "items" not in data:
        raise MalformedResponse("Collection detail is missing 'items'")
    return Collection(
        id=_int(data, "id"),
        title=_str(data, "title"),
        items_count=_int(data, "itemsCount"),
        items=tuple(items_from_dto(data["items"])),
    )


def user_from_dto(payload: Any) -> UserProfile:
    data = _object(payload, _USER_KEYS, "user")
    return UserProfile(
        id=_int(data, "id"),
        username=_str(data, "username"),
        firstname=_optional_str(data, "firstname"),
        lastname=_optional_str(data, "lastname"),
    )


def token_from_dto(payload: Any) -> str:
    data = _object(payload, frozenset({"token"}), "login")
    token = _str(data, "token")
    if not token:
        raise MalformedResponse("Login returned an empty token")
    return token


def created_id_from_dto(payload: Any) -> int:
    return _int(_object(payload, frozenset({"id"}), "created"), "id")


# ---------------------------------------------------------------------------
# Outbound mappers
# ---------------------------------------------------------------------------


def item_fields_to_dto(fields: dict) -> dict:
    """Map writable item fields (snake_case, Rarity members) to a JSON body.

    Raises ValueError for a field name that is not writable.
    """
    unknown = set(fields) - set(_ITEM_WRITE_FIELDS)
    if unknown:
        raise ValueError(f"Unknown item fields: {sorted(unknown)!r}")
    body = {}
    for key, value in fields.items():
        if isinstance(value, Rarity):
            value = value.value
        body[key] = value
    return body
