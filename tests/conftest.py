"""
tests/conftest.py -- Shared test fixtures for Curio integration tests.

This module provides:
  - _make_test_stores(): creates isolated in-memory DBs for auth + catalog
  - _patch_lifespan(): wires test stores into app.state, bypassing real startup
  - api_client: ApiContext with a TestClient and two provisioned accounts
  - reset_rate_limits: clears slowapi counters before every test

Design: Named shared-memory SQLite URIs (not plain :memory:) are required
because TestClient runs route handlers in a thread pool. Plain :memory: DBs
are per-connection and would present a blank schema to each worker thread.
The named URI format (file:name?mode=memory&cache=shared&uri=true) shares
one in-memory instance across all connections in the same process. Each
fixture instance gets a fresh name, so tests never see each other's rows.

The DEBUG env var must be set before any auth module import so get_settings()
auto-generates SECRET_KEY in dev mode rather than raising ValueError.
"""

from __future__ import annotations

import itertools
import os
from collections.abc import Generator
from contextlib import asynccontextmanager
from typing import NamedTuple

# CRITICAL: Set DEBUG before any auth/core import so get_settings() can
# auto-generate SECRET_KEY in dev mode instead of raising ValueError.
os.environ.setdefault("DEBUG", "true")

import pytest
from fastapi.testclient import TestClient

from api.accounts import provision_account
from api.limiter import limiter
from api.main import app
from auth.models import User
from auth.store import UserStore
from auth.tokens import create_access_token
from catalog.store import CatalogStore

_db_counter = itertools.count()

ALICE_PASSWORD = "alice-pass-123"
BOB_PASSWORD = "bob-pass-456"


class Account(NamedTuple):
    user: User
    password: str
    token: str

    @property
    def headers(self) -> dict[str, str]:
        return {"Authorization": f"Bearer {self.token}"}


class ApiContext(NamedTuple):
    client: TestClient
    user_store: UserStore
    catalog: CatalogStore
    alice: Account
    bob: Account


# ---------------------------------------------------------------------------
# Store helpers
# ---------------------------------------------------------------------------


def _make_test_stores(db_suffix: str) -> tuple[UserStore, CatalogStore]:
    """Create isolated named shared-memory SQLite stores for test isolation.

    Args:
        db_suffix: Unique string appended to the DB name so fixtures don't
                   share state.
    """
    auth_url = f"sqlite:///file:test_auth_{db_suffix}?mode=memory&cache=shared&uri=true"
    catalog_url = f"sqlite:///file:test_catalog_{db_suffix}?mode=memory&cache=shared&uri=true"
    return UserStore(db_url=auth_url), CatalogStore(db_url=catalog_url)


def _patch_lifespan(user_store: UserStore, catalog: CatalogStore):
    """Return an async context manager that replaces the real lifespan.

    Wires pre-created test stores into app.state so TestClient routes see
    isolated test DBs rather than the default SQLite files. No admin seeding.
    """

    @asynccontextmanager
    async def test_lifespan(app):
        app.state.user_store = user_store
        app.state.catalog = catalog
        yield

    return test_lifespan


def _account(user_store: UserStore, catalog: CatalogStore, username: str, password: str, **names) -> Account:
    user = provision_account(user_store, catalog, username, password, **names)
    return Account(user=user, password=password, token=create_access_token(user.id))


# ---------------------------------------------------------------------------
# Fixtures
# ---------------------------------------------------------------------------


@pytest.fixture(autouse=True)
def reset_rate_limits() -> None:
    """The limiter is process-global and keyed by client address ("testclient")."""
    limiter.reset()


@pytest.fixture
def api_client() -> Generator[ApiContext, None, None]:
    """Yield an ApiContext with two independent accounts.

    Both alice and bob are provisioned through provision_account(), so each
    starts with exactly one "Default collection".
    """
    user_store, catalog = _make_test_stores(f"api_{next(_db_counter)}")
    alice = _account(user_store, catalog, "alice", ALICE_PASSWORD, firstname="Alice", lastname="Liddell")
    bob = _account(user_store, catalog, "bob", BOB_PASSWORD)

    app.router.lifespan_context = _patch_lifespan(user_store, catalog)

    with TestClient(app, raise_server_exceptions=True) as client:
        yield ApiContext(client=client, user_store=user_store, catalog=catalog, alice=alice, bob=bob)

    user_store.close()
    catalog.close()


@pytest.fixture
def catalog_store() -> Generator[CatalogStore, None, None]:
    """Plain in-memory CatalogStore for unit tests (single thread)."""
    store = CatalogStore("sqlite:///:memory:")
    yield store
    store.close()
