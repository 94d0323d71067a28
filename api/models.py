"""
API request and response models for the Curio REST endpoints.

These Pydantic v2 models define the HTTP transport contract. They are
intentionally separate from the dataclasses in catalog/models.py and
auth/models.py, which own the internal domain representation. Route handlers
map between the two via the from_* factory methods colocated here.

Wire format is camelCase (collectionId, itemsCount) to match the browser
client; Python attribute names stay snake_case through an alias generator.

Write bodies forbid unknown keys. A PATCH body can therefore only ever name
real columns, and a typo surfaces as 400 instead of being silently dropped.
"""

from typing import Annotated, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel

from auth.models import User
from catalog.models import Collection, Item, Rarity

# ---------------------------------------------------------------------------
# Shared config
# ---------------------------------------------------------------------------

_RESPONSE_CONFIG = ConfigDict(frozen=True, alias_generator=to_camel, populate_by_name=True)
_WRITE_CONFIG = ConfigDict(
    alias_generator=to_camel,
    populate_by_name=True,
    extra="forbid",
    str_strip_whitespace=True,
)

# Annotated types so the same constraint can be shared across models.
_Title = Annotated[str, Field(min_length=1, max_length=255)]
_Name = Annotated[str, Field(min_length=1, max_length=255)]
_Price = Annotated[float, Field(ge=0, allow_inf_nan=False)]


# ---------------------------------------------------------------------------
# Errors and health
# ---------------------------------------------------------------------------


class ErrorDetail(BaseModel):
    """Machine-readable error payload."""

    model_config = ConfigDict(frozen=True)

    code: str
    message: str
    detail: Optional[str] = None


class ErrorResponse(BaseModel):
    """Top-level error envelope returned on 4xx/5xx responses."""

    model_config = ConfigDict(frozen=True)

    error: ErrorDetail


class HealthResponse(BaseModel):
    """Response for GET /health."""

    model_config = ConfigDict(frozen=True)

    status: str = "ok"
    version: str


# ---------------------------------------------------------------------------
# Auth
# ---------------------------------------------------------------------------


class LoginRequest(BaseModel):
    """Request body for POST /login."""

    username: str = Field(min_length=1, max_length=255)
    password: str = Field(min_length=1, max_length=255)


class LoginResponse(BaseModel):
    model_config = ConfigDict(frozen=True)

    token: str


class LogoutResponse(BaseModel):
    model_config = ConfigDict(frozen=True)

    success: bool = True


class MeResponse(BaseModel):
    """Response for GET /me. Built field by field so the password hash cannot leak."""

    model_config = _RESPONSE_CONFIG

    id: int
    username: str
    firstname: Optional[str] = None
    lastname: Optional[str] = None

    @classmethod
    def from_user(cls, user: User) -> "MeResponse":
        return cls(id=user.id, username=user.username, firstname=user.firstname, lastname=user.lastname)


# ---------------------------------------------------------------------------
# Items
# ---------------------------------------------------------------------------


class ItemResponse(BaseModel):
    """One item as returned by GET /items, GET /items/{id} and collection detail."""

    model_config = _RESPONSE_CONFIG

    id: int
    collection_id: int
    name: str
    description: Optional[str] = None
    image: Optional[str] = None
    rarity: Optional[Rarity] = None
    price: Optional[float] = None

    @classmethod
    def from_item(cls, item: Item) -> "ItemResponse":
        return cls(
            id=item.id,
            collection_id=item.collection_id,
            name=item.name,
            description=item.description,
            image=item.image,
            rarity=item.rarity,
            price=item.price,
        )


class ItemCreatedResponse(BaseModel):
    model_config = ConfigDict(frozen=True)

    id: int


class ItemCreate(BaseModel):
    """Request body for POST /items. collectionId and name are required."""

    model_config = _WRITE_CONFIG

    collection_id: int
    name: _Name
    description: Optional[str] = None
    image: Optional[str] = None
    rarity: Optional[Rarity] = None
    price: Optional[_Price] = None


class ItemReplace(BaseModel):
    """Request body for PUT /items/{id}.

    Full replace: every optional field left out of the body is written as null.
    """

    model_config = _WRITE_CONFIG

    name: _Name
    description: Optional[str] = None
    image: Optional[str] = None
    rarity: Optional[Rarity] = None
    price: Optional[_Price] = None


class ItemPatch(BaseModel):
    """Request body for PATCH /items/{id}.

    Only keys present in the body are written (model_dump(exclude_unset=True)).
    name may be changed but not cleared; the other fields accept explicit null.
    """

    model_config = _WRITE_CONFIG

    name: Optional[_Name] = None
    description: Optional[str] = None
    image: Optional[str] = None
    rarity: Optional[Rarity] = None
    price: Optional[_Price] = None

    @field_validator("name")
    @classmethod
    def name_not_null(cls, value: Optional[str]) -> str:
        """Runs only when the key is present, so an explicit null is rejected."""
        if value is None:
            raise ValueError("name cannot be null")
        return value


# ---------------------------------------------------------------------------
# Collections
# ---------------------------------------------------------------------------


class CollectionSummary(BaseModel):
    """One row of GET /collections -- no item detail."""

    model_config = _RESPONSE_CONFIG

    id: int
    title: str
    items_count: int

    @classmethod
    def from_collection(cls, collection: Collection) -> "CollectionSummary":
        return cls(id=collection.id, title=collection.title, items_count=collection.items_count)


class CollectionDetail(BaseModel):
    """GET /collections/{id} and POST /collections -- summary plus items."""

    model_config = _RESPONSE_CONFIG

    id: int
    title: str
    items_count: int
    items: list[ItemResponse] = Field(default_factory=list)

    @classmethod
    def from_collection(cls, collection: Collection) -> "CollectionDetail":
        return cls(
            id=collection.id,
            title=collection.title,
            items_count=collection.items_count,
            items=[ItemResponse.from_item(i) for i in collection.items],
        )


class CollectionCreate(BaseModel):
    """Request body for POST /collections."""

    model_config = _WRITE_CONFIG

    title: _Title


class CollectionReplace(BaseModel):
    """Request body for PUT /collections/{id}."""

    model_config = _WRITE_CONFIG

    title: _Title


class CollectionPatch(BaseModel):
    """Request body for PATCH /collections/{id}. An empty object is valid."""

    model_config = _WRITE_CONFIG

    title: Optional[_Title] = None

    @field_validator("title")
    @classmethod
    def title_not_null(cls, value: Optional[str]) -> str:
        if value is None:
            raise ValueError("title cannot be null")
        return value
