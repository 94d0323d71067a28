"""
tests/test_collections_routes.py -- Integration tests for /collections.

These tests exercise the full stack: FastAPI routing -> session guard ->
CatalogStore ownership predicates -> response model serialization.

Coverage:
  - Every protected route answers 401 without a token
  - Default collection exists after provisioning
  - Create / get / PUT / PATCH / DELETE happy paths and wire shape
  - Another user's collection is a 404 for every verb
  - Empty PATCH is a successful no-op; explicit null title is rejected
  - Delete cascades to the collection's items
  - The "Stamps" end-to-end scenario
"""

from __future__ import annotations

import pytest


def _default_collection_id(api_client, account) -> int:
    resp = api_client.client.get("/collections", headers=account.headers)
    assert resp.status_code == 200, resp.text
    return resp.json()[0]["id"]


def _create_collection(api_client, account, title: str) -> dict:
    resp = api_client.client.post("/collections", json={"title": title}, headers=account.headers)
    assert resp.status_code == 200, resp.text
    return resp.json()


class TestCollectionsAuth:
    @pytest.mark.parametrize(
        "method,path,body",
        [
            ("GET", "/collections", None),
            ("POST", "/collections", {"title": "x"}),
            ("GET", "/collections/1", None),
            ("PUT", "/collections/1", {"title": "x"}),
            ("PATCH", "/collections/1", {}),
            ("DELETE", "/collections/1", None),
        ],
    )
    def test_requires_token(self, api_client, method, path, body):
        resp = api_client.client.request(method, path, json=body)
        assert resp.status_code == 401, f"{method} {path} -> {resp.status_code}"
        assert resp.json()["error"]["code"] == "unauthenticated"

    def test_invalid_token_is_rejected(self, api_client):
        resp = api_client.client.get("/collections", headers={"Authorization": "Bearer garbage.token.value"})
        assert resp.status_code == 401
        assert resp.json()["error"]["code"] == "invalid_token"


class TestCollectionsCrud:
    def test_new_account_has_default_collection(self, api_client):
        resp = api_client.client.get("/collections", headers=api_client.alice.headers)
        assert resp.status_code == 200
        data = resp.json()
        assert len(data) == 1
        assert data[0]["title"] == "Default collection"
        assert data[0]["itemsCount"] == 0
        assert set(data[0]) == {"id", "title", "itemsCount"}

    def test_create_returns_empty_collection(self, api_client):
        created = _create_collection(api_client, api_client.alice, "Coins")
        assert created["title"] == "Coins"
        assert created["itemsCount"] == 0
        assert created["items"] == []

        listed = api_client.client.get("/collections", headers=api_client.alice.headers).json()
        assert [c["title"] for c in listed] == ["Default collection", "Coins"]

    def test_create_requires_title(self, api_client):
        client, headers = api_client.client, api_client.alice.headers
        for body in ({}, {"title": ""}, {"title": None}, {"title": "ok", "owner": 2}):
            resp = client.post("/collections", json=body, headers=headers)
            assert resp.status_code == 400, f"{body!r} -> {resp.status_code}"
            assert resp.json()["error"]["code"] == "bad_request"

    def test_put_replaces_title(self, api_client):
        cid = _default_collection_id(api_client, api_client.alice)
        client, headers = api_client.client, api_client.alice.headers
        resp = client.put(f"/collections/{cid}", json={"title": "Renamed"}, headers=headers)
        assert resp.status_code == 204
        assert client.get(f"/collections/{cid}", headers=headers).json()["title"] == "Renamed"

    def test_put_without_title_is_bad_request(self, api_client):
        cid = _default_collection_id(api_client, api_client.alice)
        resp = api_client.client.put(f"/collections/{cid}", json={}, headers=api_client.alice.headers)
        assert resp.status_code == 400

    def test_patch_writes_supplied_title(self, api_client):
        cid = _default_collection_id(api_client, api_client.alice)
        client, headers = api_client.client, api_client.alice.headers
        assert client.patch(f"/collections/{cid}", json={"title": "Patched"}, headers=headers).status_code == 204
        assert client.get(f"/collections/{cid}", headers=headers).json()["title"] == "Patched"

    def test_empty_patch_succeeds_and_changes_nothing(self, api_client):
        cid = _default_collection_id(api_client, api_client.alice)
        client, headers = api_client.client, api_client.alice.headers
        before = client.get(f"/collections/{cid}", headers=headers).json()
        assert client.patch(f"/collections/{cid}", json={}, headers=headers).status_code == 204
        assert client.get(f"/collections/{cid}", headers=headers).json() == before

    def test_patch_with_null_title_is_bad_request(self, api_client):
        cid = _default_collection_id(api_client, api_client.alice)
        resp = api_client.client.patch(f"/collections/{cid}", json={"title": None}, headers=api_client.alice.headers)
        assert resp.status_code == 400

    def test_get_missing_collection_is_not_found(self, api_client):
        resp = api_client.client.get("/collections/424242", headers=api_client.alice.headers)
        assert resp.status_code == 404
        assert resp.json()["error"]["code"] == "not_found"

    def test_non_integer_id_is_bad_request(self, api_client):
        resp = api_client.client.get("/collections/abc", headers=api_client.alice.headers)
        assert resp.status_code == 400


class TestCollectionOwnership:
    """A collection owned by alice is invisible to bob, whatever the verb."""

    @pytest.mark.parametrize(
        "method,body",
        [("GET", None), ("PUT", {"title": "stolen"}), ("PATCH", {"title": "stolen"}), ("PATCH", {}), ("DELETE", None)],
    )
    def test_other_users_collection_is_not_found(self, api_client, method, body):
        cid = _default_collection_id(api_client, api_client.alice)
        resp = api_client.client.request(method, f"/collections/{cid}", json=body, headers=api_client.bob.headers)
        assert resp.status_code == 404, f"{method} -> {resp.status_code}"
        assert resp.json()["error"]["code"] == "not_found"

        # Untouched for the owner.
        owner_view = api_client.client.get(f"/collections/{cid}", headers=api_client.alice.headers)
        assert owner_view.status_code == 200
        assert owner_view.json()["title"] == "Default collection"

    def test_lists_are_disjoint(self, api_client):
        _create_collection(api_client, api_client.alice, "Alice only")
        bob_titles = [c["title"] for c in api_client.client.get("/collections", headers=api_client.bob.headers).json()]
        assert bob_titles == ["Default collection"]


class TestCollectionDelete:
    def test_delete_cascades_to_items(self, api_client):
        client, headers = api_client.client, api_client.alice.headers
        cid = _create_collection(api_client, api_client.alice, "Temporary")["id"]
        item_ids = [
            client.post("/items", json={"collectionId": cid, "name": f"thing {n}"}, headers=headers).json()["id"]
            for n in range(3)
        ]

        assert client.delete(f"/collections/{cid}", headers=headers).status_code == 204

        assert client.get(f"/collections/{cid}", headers=headers).status_code == 404
        assert client.get("/items", params={"collectionId": cid}, headers=headers).status_code == 404
        for item_id in item_ids:
            assert client.get(f"/items/{item_id}", headers=headers).status_code == 404

    def test_delete_twice_is_not_found(self, api_client):
        client, headers = api_client.client, api_client.alice.headers
        cid = _create_collection(api_client, api_client.alice, "Once")["id"]
        assert client.delete(f"/collections/{cid}", headers=headers).status_code == 204
        assert client.delete(f"/collections/{cid}", headers=headers).status_code == 404

    def test_stamps_scenario(self, api_client):
        """Create Stamps, add a rare stamp, read it back, delete, then 404."""
        client, headers = api_client.client, api_client.alice.headers
        cid = _create_collection(api_client, api_client.alice, "Stamps")["id"]

        resp = client.post(
            "/items",
            json={"collectionId": cid, "name": "1800 stamp", "rarity": "Rare", "price": 555},
            headers=headers,
        )
        assert resp.status_code == 200, resp.text
        item_id = resp.json()["id"]

        detail = client.get(f"/collections/{cid}", headers=headers).json()
        assert detail["itemsCount"] == 1
        assert detail["items"] == [
            {
                "id": item_id,
                "collectionId": cid,
                "name": "1800 stamp",
                "description": None,
                "image": None,
                "rarity": "Rare",
                "price": 555.0,
            }
        ]

        assert client.delete(f"/collections/{cid}", headers=headers).status_code == 204
        assert client.get(f"/collections/{cid}", headers=headers).status_code == 404
