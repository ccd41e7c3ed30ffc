"""
tests/conftest.py -- Shared test fixtures for the storefront admin API.

This module provides:
  - make_settings(): a Settings object built from keyword arguments only
  - FakeImageHost: in-process stand-in for media.host.ImageHost
  - _make_test_db_url() / _patch_lifespan(): isolated stores wired into app.state
  - client: TestClient with a fresh database and no session
  - admin_client: client whose cookie jar holds the bootstrap admin's session
  - make_user(): inserts a non-admin user directly through the store

Design: Named shared-memory SQLite URIs (not plain :memory:) are required
because TestClient runs sync route handlers in a thread pool. Plain :memory:
DBs are per-connection and would present a blank schema to each worker
thread. The named URI format (file:name?mode=memory&cache=shared&uri=true)
shares one in-memory instance across all connections in the same process.
Each fixture gets a uuid-suffixed name, so every test starts from an empty
database (registration only succeeds once per database).

Rate limiting is disabled for the whole session; test_auth_routes turns it
back on for the one test that checks it.
"""

from __future__ import annotations

import uuid
from collections.abc import Generator
from contextlib import asynccontextmanager

import pytest
from fastapi.testclient import TestClient

from api.limiter import limiter
from api.main import create_app
from auth.models import User
from auth.store import UserStore
from auth.tokens import hash_password
from catalog.store import CatalogStore
from core.config import Settings
from core.errors import UpstreamError
from media.host import HostedImage, ImageUpload

TEST_SECRET = "test-secret-key-that-is-long-enough-0123456789"

ADMIN = {"name": "A", "email": "a@x.com", "phone": "1", "password": "p"}

limiter.enabled = False


def make_settings(**overrides) -> Settings:
    """Build Settings without reading .env, so the developer's file cannot leak in."""
    values = {"jwt_secret": TEST_SECRET, "environment": "test"}
    values.update(overrides)
    return Settings(_env_file=None, **values)


class FakeImageHost:
    """Records uploads instead of calling Cloudinary.

    Set fail_on to a filename to make upload_all() raise UpstreamError when it
    reaches that file, after discarding the ones already uploaded (same
    contract as ImageHost.upload_all).
    """

    def __init__(self) -> None:
        self.uploaded: list[HostedImage] = []
        self.discarded: list[HostedImage] = []
        self.fail_on: str | None = None

    def upload_all(self, images: list[ImageUpload], folder: str) -> list[HostedImage]:
        batch: list[HostedImage] = []
        for image in images:
            if image.filename == self.fail_on:
                self.discard(batch)
                raise UpstreamError("Failed to upload image")
            hosted = HostedImage(
                url=f"https://img.test/{folder}/{len(self.uploaded)}-{image.filename}",
                public_id=f"{folder}/{len(self.uploaded)}",
            )
            self.uploaded.append(hosted)
            batch.append(hosted)
        return batch

    def discard(self, hosted: list[HostedImage]) -> None:
        self.discarded.extend(hosted)


# ---------------------------------------------------------------------------
# Store helpers
# ---------------------------------------------------------------------------


def _make_test_db_url(tag: str) -> str:
    return f"sqlite:///file:test_{tag}_{uuid.uuid4().hex}?mode=memory&cache=shared&uri=true"


def _patch_lifespan(user_store: UserStore, catalog: CatalogStore, image_host: FakeImageHost):
    """Return an async context manager that replaces the real lifespan.

    Wires pre-created test stores and the fake image host into app.state so
    TestClient routes never touch the configured database or Cloudinary.
    """

    @asynccontextmanager
    async def test_lifespan(app):
        app.state.user_store = user_store
        app.state.catalog = catalog
        app.state.image_host = image_host
        yield

    return test_lifespan


def png(name: str = "photo.png", size: int = 64) -> tuple[str, bytes, str]:
    """A multipart file tuple for TestClient(files=...)."""
    return (name, b"\x89PNG\r\n\x1a\n" + b"\0" * size, "image/png")


# ---------------------------------------------------------------------------
# Fixtures
# ---------------------------------------------------------------------------


@pytest.fixture()
def client() -> Generator[TestClient, None, None]:
    """Yield a TestClient over a fresh database with no users.

    client.app.state.user_store / .catalog / .image_host are the live test
    doubles, so tests can seed or inspect state directly.
    """
    db_url = _make_test_db_url("app")
    user_store = UserStore(db_url)
    catalog = CatalogStore(db_url)
    app = create_app(make_settings(database_url=db_url))
    app.router.lifespan_context = _patch_lifespan(user_store, catalog, FakeImageHost())

    with TestClient(app, raise_server_exceptions=True) as c:
        yield c

    catalog.close()
    user_store.close()


@pytest.fixture()
def admin_client(client: TestClient) -> TestClient:
    """client after registering the bootstrap admin; the session cookie is in its jar."""
    resp = client.post("/api/auth/register", json=ADMIN)
    assert resp.status_code == 201, resp.text
    return client


def make_user(store: UserStore, email: str = "staff@x.com", password: str = "staffpass", is_admin: bool = False) -> User:
    """Insert a user directly through the store and return it with its id."""
    uid = store.create_user(
        User(
            name="Staff",
            email=email,
            phone=f"555-{uuid.uuid4().hex[:6]}",
            hashed_password=hash_password(password),
            is_admin=is_admin,
        )
    )
    return store.get_by_id(uid)
