"""
api/routes/items.py -- Item CRUD, scoped through the parent collection's owner.

Routes:
  GET    /items?collectionId=  -- items of one owned collection
  POST   /items                -- create an item in an owned collection
  GET    /items/{id}           -- one item (includes collectionId)
  PUT    /items/{id}           -- full replace; omitted optional fields become null
  PATCH  /items/{id}           -- write supplied fields only (204 for an empty body)
  DELETE /items/{id}           -- delete one item

Ownership:
  Items have no owner column. The store joins through collections.user_id on
  every statement, so an item under someone else's collection is a 404 just
  like an item that was never created.
"""

from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query, Request, Response

from api.models import ErrorDetail, ItemCreate, ItemCreatedResponse, ItemPatch, ItemReplace, ItemResponse
from auth.dependencies import get_caller_id
from catalog.store import CatalogStore

router = APIRouter()


def _not_found(message: str) -> HTTPException:
    return HTTPException(
        status_code=404,
        detail=ErrorDetail(code="not_found", message=message).model_dump(exclude_none=True),
    )


@router.get("/items", response_model=list[ItemResponse])
def list_items(
    request: Request,
    collection_id: Optional[int] = Query(default=None, alias="collectionId"),
    caller_id: int = Depends(get_caller_id),
) -> list[ItemResponse]:
    """Return the items of the collection named by the collectionId query parameter."""
    if collection_id is None:
        raise HTTPException(
            status_code=400,
            detail=ErrorDetail(code="bad_request", message="collectionId is required.").model_dump(exclude_none=True),
        )
    catalog: CatalogStore = request.app.state.catalog
    items = catalog.list_items(caller_id, collection_id)
    if items is None:
        raise _not_found(f"Collection {collection_id} not found.")
    return [ItemResponse.from_item(i) for i in items]


@router.post("/items", response_model=ItemCreatedResponse)
def create_item(
    request: Request,
    body: ItemCreate,
    caller_id: int = Depends(get_caller_id),
) -> ItemCreatedResponse:
    """Create an item. Missing name or collectionId is rejected as 400 by the body model."""
    catalog: CatalogStore = request.app.state.catalog
    item = catalog.create_item(
        caller_id,
        body.collection_id,
        body.name,
        description=body.description,
        image=body.image,
        rarity=body.rarity,
        price=body.price,
    )
    if item is None:
        raise _not_found(f"Collection {body.collection_id} not found.")
    return ItemCreatedResponse(id=item.id)


@router.get("/items/{item_id}", response_model=ItemResponse)
def get_item(request: Request, item_id: int, caller_id: int = Depends(get_caller_id)) -> ItemResponse:
    catalog: CatalogStore = request.app.state.catalog
    item = catalog.get_item(caller_id, item_id)
    if item is None:
        raise _not_found(f"Item {item_id} not found.")
    return ItemResponse.from_item(item)


@router.put("/items/{item_id}", status_code=204)
def replace_item(
    request: Request,
    item_id: int,
    body: ItemReplace,
    caller_id: int = Depends(get_caller_id),
) -> Response:
    catalog: CatalogStore = request.app.state.catalog
    replaced = catalog.replace_item(
        caller_id,
        item_id,
        body.name,
        description=body.description,
        image=body.image,
        rarity=body.rarity,
        price=body.price,
    )
    if not replaced:
        raise _not_found(f"Item {item_id} not found.")
    return Response(status_code=204)


@router.patch("/items/{item_id}", status_code=204)
def update_item(
    request: Request,
    item_id: int,
    body: ItemPatch,
    caller_id: int = Depends(get_caller_id),
) -> Response:
    catalog: CatalogStore = request.app.state.catalog
    if not catalog.update_item(caller_id, item_id, **body.model_dump(exclude_unset=True)):
        raise _not_found(f"Item {item_id} not found.")
    return Response(status_code=204)


@router.delete("/items/{item_id}", status_code=204)
def delete_item(request: Request, item_id: int, caller_id: int = Depends(get_caller_id)) -> Response:
    catalog: CatalogStore = request.app.state.catalog
    if not catalog.delete_item(caller_id, item_id):
        raise _not_found(f"Item {item_id} not found.")
    return Response(status_code=204)
