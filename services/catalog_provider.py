"""
Catalog Providers — read-only sources of CatalogItem snapshots.

    JsonCatalogProvider    local JSON file (list, or {"items": [...]})
    HttpCatalogProvider    remote JSON endpoint, paginated via X-Total-Pages
    HybridCatalogProvider  several sources merged, first copy of an id wins
    CachedCatalogProvider  TTL cache; serves the stale copy while refreshing

make_catalog_provider() builds the configured chain from CATALOG_SOURCE.
"""

import json
import time
import threading
from typing import Any, Dict, Iterable, List, Optional, Sequence

import requests

from app_config import (
    CATALOG_CACHE_TTL_SECONDS,
    CATALOG_FALLBACK_PATH,
    CATALOG_HEADERS,
    CATALOG_HTTP_TIMEOUT_SECONDS,
    CATALOG_PATH,
    CATALOG_SOURCE,
    CATALOG_URL,
)
from chat_logger import get_logger, sanitize_url
from models import CatalogItem

logger = get_logger()


class CatalogUnavailable(Exception):
    """Raised when a provider cannot produce a snapshot."""


def parse_catalog(raw: Any, source: str = "catalog") -> List[CatalogItem]:
    """Validate raw records; malformed ones are skipped and counted."""
    if isinstance(raw, dict):
        raw = raw.get("items", raw.get("products", []))
    if not isinstance(raw, list):
        raise CatalogUnavailable(f"{source}: expected a list of items")

    items: List[CatalogItem] = []
    rejected = 0
    for record in raw:
        item = CatalogItem.from_dict(record)
        if item is None:
            rejected += 1
            continue
        items.append(item)
    if rejected:
        logger.warning(f"⚠️ {source}: skipped {rejected} malformed item(s)")
    return items


class CatalogProvider:
    """Read contract every provider implements."""

    name = "catalog"

    def load(self) -> List[CatalogItem]:
        raise NotImplementedError


class StaticCatalogProvider(CatalogProvider):
    """Fixed in-memory list (demos and tests)."""

    name = "static"

    def __init__(self, items: Iterable[CatalogItem]):
        self._items = list(items)

    def load(self) -> List[CatalogItem]:
        return list(self._items)


class JsonCatalogProvider(CatalogProvider):
    name = "json"

    def __init__(self, path: str = CATALOG_PATH):
        self.path = path

    def load(self) -> List[CatalogItem]:
        try:
            with open(self.path, "r", encoding="utf-8") as f:
                raw = json.load(f)
        except (OSError, ValueError) as e:
            raise CatalogUnavailable(f"cannot read {self.path}: {e}") from e
        items = parse_catalog(raw, source=self.path)
        logger.info(f"📦 Loaded {len(items)} items from {self.path}")
        return items


class HttpCatalogProvider(CatalogProvider):
    name = "http"

    def __init__(self, url: str = CATALOG_URL, timeout: int = CATALOG_HTTP_TIMEOUT_SECONDS,
                 per_page: int = 200, max_pages: int = 50):
        if not url:
            raise ValueError("CATALOG_URL is required for the http catalog source")
        self.url = url
        self.timeout = timeout
        self.per_page = per_page
        self.max_pages = max_pages

        self.session = requests.Session()
        self.session.headers.update(CATALOG_HEADERS)

    def load(self) -> List[CatalogItem]:
        records: List[Dict] = []
        page = 1
        while page <= self.max_pages:
            try:
                resp = self.session.get(
                    self.url,
                    params={"page": page, "per_page": self.per_page},
                    timeout=self.timeout,
                )
                resp.raise_for_status()
                data = resp.json()
            except requests.exceptions.RequestException as e:
                raise CatalogUnavailable(f"GET {sanitize_url(self.url)} page {page} failed: {e}") from e
            except ValueError as e:
                raise CatalogUnavailable(f"GET {sanitize_url(self.url)} returned invalid JSON") from e

            if isinstance(data, dict):
                data = data.get("items", data.get("products", []))
            if not data:
                break
            records.extend(data)

            total_pages = int(resp.headers.get("X-Total-Pages", 1))
            if page >= total_pages:
                break
            page += 1

        items = parse_catalog(records, source=sanitize_url(self.url))
        logger.info(f"🌐 Loaded {len(items)} items from {sanitize_url(self.url)} ({page} page(s))")
        return items


class HybridCatalogProvider(CatalogProvider):
    """Merge several providers; a failing source is logged and skipped."""

    name = "hybrid"

    def __init__(self, providers: Sequence[CatalogProvider]):
        self.providers = list(providers)

    def load(self) -> List[CatalogItem]:
        merged: List[CatalogItem] = []
        seen_ids = set()
        failures = 0
        for provider in self.providers:
            try:
                items = provider.load()
            except CatalogUnavailable as e:
                failures += 1
                logger.warning(f"⚠️ Catalog source '{provider.name}' unavailable: {e}")
                continue
            for item in items:
                if item.id in seen_ids:
                    continue
                seen_ids.add(item.id)
                merged.append(item)
        if failures == len(self.providers):
            raise CatalogUnavailable("every catalog source failed")
        return merged


class CachedCatalogProvider(CatalogProvider):
    """
    TTL cache in front of another provider.

    The first load is synchronous. Afterwards an expired snapshot is still
    returned immediately while a single background refresh replaces it.
    A failed refresh keeps the stale snapshot.
    """

    name = "cached"

    def __init__(self, inner: CatalogProvider, ttl_seconds: int = CATALOG_CACHE_TTL_SECONDS,
                 clock=time.time, background: bool = True):
        self.inner = inner
        self.ttl_seconds = ttl_seconds
        self.background = background
        self._clock = clock
        self._items: Optional[List[CatalogItem]] = None
        self._loaded_at = 0.0
        self._state_lock = threading.Lock()
        self._load_lock = threading.Lock()
        self._refreshing = False

    def load(self) -> List[CatalogItem]:
        with self._state_lock:
            items, loaded_at = self._items, self._loaded_at

        if items is None:
            return self._load_now()
        if self._clock() - loaded_at >= self.ttl_seconds:
            self._schedule_refresh()
        return items

    def _load_now(self) -> List[CatalogItem]:
        with self._load_lock:
            with self._state_lock:
                if self._items is not None:
                    return self._items
            items = self.inner.load()
            with self._state_lock:
                self._items = items
                self._loaded_at = self._clock()
            return items

    def _schedule_refresh(self) -> None:
        with self._state_lock:
            if self._refreshing:
                return
            self._refreshing = True

        if self.background:
            threading.Thread(target=self._refresh, daemon=True, name="catalog-refresh").start()
        else:
            self._refresh()

    def _refresh(self) -> None:
        try:
            items = self.inner.load()
            with self._state_lock:
                self._items = items
                self._loaded_at = self._clock()
            logger.info(f"🔄 Catalog cache refreshed ({len(items)} items)")
        except CatalogUnavailable as e:
            logger.warning(f"⚠️ Catalog refresh failed, serving stale copy: {e}")
        finally:
            with self._state_lock:
                self._refreshing = False

    def invalidate(self) -> None:
        with self._state_lock:
            self._items = None
            self._loaded_at = 0.0


def make_catalog_provider(source: str = CATALOG_SOURCE) -> CatalogProvider:
    """Build the configured provider chain, always wrapped in the TTL cache."""
    source = (source or "json").lower()
    if source == "json":
        inner: CatalogProvider = JsonCatalogProvider(CATALOG_PATH)
    elif source == "http":
        inner = HttpCatalogProvider(CATALOG_URL)
    elif source == "hybrid":
        inner = HybridCatalogProvider([
            HttpCatalogProvider(CATALOG_URL),
            JsonCatalogProvider(CATALOG_FALLBACK_PATH or CATALOG_PATH),
        ])
    else:
        raise ValueError(f"Unsupported CATALOG_SOURCE: {source}")
    logger.info(f"🗂️ Catalog source: {source} (cache ttl={CATALOG_CACHE_TTL_SECONDS}s)")
    return CachedCatalogProvider(inner, CATALOG_CACHE_TTL_SECONDS)
