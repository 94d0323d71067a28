"""
api/routes/collections.py -- Collection CRUD, scoped to the authenticated caller.

Routes:
  GET    /collections        -- caller's collections with item counts
  POST   /collections        -- create an empty collection
  GET    /collections/{id}   -- one collection with its items
  PUT    /collections/{id}   -- replace the title
  PATCH  /collections/{id}   -- update supplied fields only (204 for an empty body)
  DELETE /collections/{id}   -- delete the collection and all its items

Ownership:
  caller_id comes from get_caller_id() and is passed to every store call. The
  store's WHERE clause requires both the id and the owner to match, so a
  collection that belongs to someone else answers exactly like one that does
  not exist: 404 not_found.
"""

from fastapi import APIRouter, Depends, HTTPException, Request, Response

from api.models import (
    CollectionCreate,
    CollectionDetail,
    CollectionPatch,
    CollectionReplace,
    CollectionSummary,
    ErrorDetail,
)
from auth.dependencies import get_caller_id
from catalog.store import CatalogStore

router = APIRouter()


def _collection_not_found(collection_id: int) -> HTTPException:
    return HTTPException(
        status_code=404,
        detail=ErrorDetail(code="not_found", message=f"Collection {collection_id} not found.").model_dump(
            exclude_none=True
        ),
    )


@router.get("/collections", response_model=list[CollectionSummary])
def list_collections(request: Request, caller_id: int = Depends(get_caller_id)) -> list[CollectionSummary]:
    """Return every collection the caller owns, ordered by id."""
    catalog: CatalogStore = request.app.state.catalog
    return [CollectionSummary.from_collection(c) for c in catalog.list_collections(caller_id)]


@router.post("/collections", response_model=CollectionDetail)
def create_collection(
    request: Request,
    body: CollectionCreate,
    caller_id: int = Depends(get_caller_id),
) -> CollectionDetail:
    """Create a collection owned by the caller. Returns it with an empty item list."""
    catalog: CatalogStore = request.app.state.catalog
    return CollectionDetail.from_collection(catalog.create_collection(caller_id, body.title))


@router.get("/collections/{collection_id}", response_model=CollectionDetail)
def get_collection(
    request: Request,
    collection_id: int,
    caller_id: int = Depends(get_caller_id),
) -> CollectionDetail:
    catalog: CatalogStore = request.app.state.catalog
    collection = catalog.get_collection(caller_id, collection_id)
    if collection is None:
        raise _collection_not_found(collection_id)
    return CollectionDetail.from_collection(collection)


@router.put("/collections/{collection_id}", status_code=204)
def replace_collection(
    request: Request,
    collection_id: int,
    body: CollectionReplace,
    caller_id: int = Depends(get_caller_id),
) -> Response:
    catalog: CatalogStore = request.app.state.catalog
    if not catalog.replace_collection(caller_id, collection_id, body.title):
        raise _collection_not_found(collection_id)
    return Response(status_code=204)


@router.patch("/collections/{collection_id}", status_code=204)
def update_collection(
    request: Request,
    collection_id: int,
    body: CollectionPatch,
    caller_id: int = Depends(get_caller_id),
) -> Response:
    """Write only the keys present in the body.

    An empty body writes nothing but still answers 404 for a collection the
    caller does not own, so PATCH never reveals more than GET does.
    """
    catalog: CatalogStore = request.app.state.catalog
    fields = body.model_dump(exclude_unset=True)
    if not catalog.update_collection(caller_id, collection_id, **fields):
        raise _collection_not_found(collection_id)
    return Response(status_code=204)


@router.delete("/collections/{collection_id}", status_code=204)
def delete_collection(
    request: Request,
    collection_id: int,
    caller_id: int = Depends(get_caller_id),
) -> Response:
    """Delete a collection. Its items are removed in the same transaction."""
    catalog: CatalogStore = request.app.state.catalog
    if not catalog.delete_collection(caller_id, collection_id):
        raise _collection_not_found(collection_id)
    return Response(status_code=204)
