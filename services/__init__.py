"""Services package - exports all service modules."""

from .catalog_provider import (
    CatalogProvider,
    CatalogUnavailable,
    StaticCatalogProvider,
    JsonCatalogProvider,
    HttpCatalogProvider,
    HybridCatalogProvider,
    CachedCatalogProvider,
    make_catalog_provider,
    parse_catalog,
)
from .catalog_query import run_query, catalog_stats, active_predicates
from .product_formatter import (
    format_price,
    format_item_line,
    format_listing,
    item_to_dict,
)

__all__ = [
    "CatalogProvider",
    "CatalogUnavailable",
    "StaticCatalogProvider",
    "JsonCatalogProvider",
    "HttpCatalogProvider",
    "HybridCatalogProvider",
    "CachedCatalogProvider",
    "make_catalog_provider",
    "parse_catalog",
    "run_query",
    "catalog_stats",
    "active_predicates",
    "format_price",
    "format_item_line",
    "format_listing",
    "item_to_dict",
]
