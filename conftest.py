"""
Pytest configuration and fixtures for vendedor-chat tests.

Provides the built-in canonical dictionary, the sample catalog shipped in
data/, an in-memory session store with a controllable clock, a fully wired
ShoppingAssistant and a Flask test client.
"""

import os

import pytest

from app_config import BASE_DIR
from canon_store import DEFAULT_CANON, CanonStore
from core.session import InMemorySessionStore
from models import CanonicalDictionary, CatalogItem
from pipeline import ShoppingAssistant
from services.catalog_provider import JsonCatalogProvider, StaticCatalogProvider

SAMPLE_CATALOG_PATH = os.path.join(BASE_DIR, "data", "catalog.sample.json")


class FakeClock:
    """Manually advanced time source for session and cache tests."""

    def __init__(self, start: float = 1_700_000_000.0):
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def canon():
    return CanonicalDictionary.from_dict(DEFAULT_CANON)


@pytest.fixture
def canon_store(tmp_path):
    """CanonStore pointed at a not-yet-existing file: serves the built-in dictionary."""
    return CanonStore(str(tmp_path / "canon.json"))


@pytest.fixture(scope="session")
def catalog_items():
    return JsonCatalogProvider(SAMPLE_CATALOG_PATH).load()


@pytest.fixture
def catalog_provider(catalog_items):
    return StaticCatalogProvider(catalog_items)


@pytest.fixture
def session_store(clock):
    return InMemorySessionStore(ttl_seconds=3600, clock=clock)


@pytest.fixture
def assistant(session_store, canon_store, catalog_provider, clock):
    return ShoppingAssistant(
        session_store=session_store,
        canon_store=canon_store,
        catalog_provider=catalog_provider,
        naturalizer=None,
        clock=clock,
    )


@pytest.fixture
def app(assistant):
    from server import create_app

    flask_app = create_app(assistant, admin_token="test-admin-token")
    flask_app.config["TESTING"] = True
    return flask_app


@pytest.fixture
def client(app):
    return app.test_client()


def make_item(item_id, title, price=None, in_stock=True, category="", brand=None, attributes=()):
    """Shorthand CatalogItem builder for executor tests."""
    return CatalogItem(
        id=str(item_id),
        title=title,
        category=category,
        brand=brand,
        price=price,
        in_stock=in_stock,
        attributes=frozenset(attributes),
    )
