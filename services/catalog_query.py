"""
Catalog Query Executor

Filters, sorts and pages an in-memory catalog snapshot against a QuerySignal.
All predicates are conjunctive and accent/case-insensitive; items are never
mutated and ties keep catalog order.
"""

import math
from typing import Callable, Dict, List, Optional, Sequence, Tuple

from app_config import MAX_QUERY_RESULTS
from models import CatalogItem, QuerySignal, SortKey
from text_normalizer import normalize


class _ItemText:
    """Normalized text views of one item, built once per query run."""

    __slots__ = ("title", "category", "brand", "attributes")

    def __init__(self, item: CatalogItem):
        self.title = normalize(item.title)
        self.category = normalize(item.category)
        self.brand = normalize(item.brand or "")
        self.attributes = item.attributes


def _phrase_in(phrase: str, text: str) -> bool:
    return bool(phrase) and f" {phrase} " in f" {text} "


# ═══════════════════════════════════════════
# PREDICATES
# ═══════════════════════════════════════════

def match_product(item: CatalogItem, text: _ItemText, query: QuerySignal) -> bool:
    product = normalize(query.product)
    return (
        product in text.title
        or product in text.category
        or (bool(text.brand) and product in text.brand)
        or any(product in attr for attr in text.attributes)
    )


def match_category(item: CatalogItem, text: _ItemText, query: QuerySignal) -> bool:
    return normalize(query.category) in text.category


def match_brand(item: CatalogItem, text: _ItemText, query: QuerySignal) -> bool:
    brand = normalize(query.brand)
    return text.brand == brand or _phrase_in(brand, text.title)


def match_model(item: CatalogItem, text: _ItemText, query: QuerySignal) -> bool:
    model = normalize(query.model)
    return _phrase_in(model, text.title) or any(_phrase_in(model, attr) for attr in text.attributes)


def match_attributes(item: CatalogItem, text: _ItemText, query: QuerySignal) -> bool:
    for wanted in query.attributes:
        if wanted in text.attributes or _phrase_in(wanted, text.title):
            return True
        if any(_phrase_in(wanted, attr) for attr in text.attributes):
            return True
    return False


def match_price(item: CatalogItem, text: _ItemText, query: QuerySignal) -> bool:
    if item.price is None:
        return False
    if query.price_min is not None and item.price < query.price_min:
        return False
    if query.price_max is not None and item.price > query.price_max:
        return False
    return True


def match_in_stock(item: CatalogItem, text: _ItemText, query: QuerySignal) -> bool:
    return item.in_stock is True


Predicate = Callable[[CatalogItem, _ItemText, QuerySignal], bool]

# (name, applies-to-query, predicate)
PREDICATES: Tuple[Tuple[str, Callable[[QuerySignal], bool], Predicate], ...] = (
    ("product", lambda q: bool(q.product), match_product),
    # Category narrows only when no product is present.
    ("category", lambda q: bool(q.category) and not q.product, match_category),
    ("brand", lambda q: bool(q.brand), match_brand),
    ("model", lambda q: bool(q.model), match_model),
    ("attributes", lambda q: bool(q.attributes), match_attributes),
    ("price", lambda q: q.price_min is not None or q.price_max is not None, match_price),
    ("in_stock", lambda q: q.in_stock_only is True, match_in_stock),
)


def active_predicates(query: QuerySignal) -> List[str]:
    return [name for name, applies, _ in PREDICATES if applies(query)]


# ═══════════════════════════════════════════
# SORTING
# ═══════════════════════════════════════════

def _sort(items: List[CatalogItem], sort: SortKey) -> List[CatalogItem]:
    if sort == SortKey.PRICE_ASC:
        return sorted(items, key=lambda i: i.price if i.price is not None else math.inf)
    if sort == SortKey.PRICE_DESC:
        return sorted(items, key=lambda i: i.price if i.price is not None else 0.0, reverse=True)
    return sorted(
        items,
        key=lambda i: (
            0 if i.in_stock is True else 1,
            i.price if i.price is not None else math.inf,
        ),
    )


def run_query(
    catalog: Sequence[CatalogItem],
    query: QuerySignal,
    limit: int = MAX_QUERY_RESULTS,
) -> List[CatalogItem]:
    """Filter, sort, apply the optional offset and cap the result list."""
    checks = [predicate for _, applies, predicate in PREDICATES if applies(query)]
    matched = []
    for item in catalog:
        text = _ItemText(item)
        if all(check(item, text, query) for check in checks):
            matched.append(item)

    ordered = _sort(matched, query.sort)
    if query.offset:
        ordered = ordered[query.offset:]
    return ordered[:max(0, min(limit, MAX_QUERY_RESULTS))]


def catalog_stats(items: Sequence[CatalogItem]) -> Dict:
    """Summary numbers for the health endpoint."""
    prices = [i.price for i in items if i.price is not None]
    categories: Dict[str, int] = {}
    brands = set()
    for item in items:
        if item.category:
            categories[item.category] = categories.get(item.category, 0) + 1
        if item.brand:
            brands.add(item.brand)
    return {
        "items": len(items),
        "in_stock": sum(1 for i in items if i.in_stock is True),
        "categories": categories,
        "brands": len(brands),
        "price_min": min(prices) if prices else None,
        "price_max": max(prices) if prices else None,
    }
