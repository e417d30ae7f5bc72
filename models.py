"""
Data models for the Vendedor Chat shopping assistant.
"""

import re
from enum import Enum
from dataclasses import dataclass, field
from typing import Optional, List, Dict, FrozenSet, Any

from text_normalizer import normalize


class Intent(Enum):
    # ──── Chit-Chat ────
    SMALL_TALK             = "small_talk"
    HELP                   = "help"
    TIME_QUERY             = "time_query"
    WHOAMI                 = "whoami"

    # Product Discovery
    PRODUCT_SEARCH         = "product_search"

    UNKNOWN                = "unknown"


class SortKey(Enum):
    RELEVANCE              = "relevance"
    PRICE_ASC              = "price_asc"
    PRICE_DESC             = "price_desc"


class ResponseType(Enum):
    RESULTS                = "results"
    NOT_FOUND              = "not_found"
    CLARIFICATION          = "clarification"
    GREETING               = "greeting"


@dataclass
class QuerySignal:
    # Canonical identification
    product: Optional[str] = None
    category: Optional[str] = None
    brand: Optional[str] = None
    model: Optional[str] = None

    # Price
    price_min: Optional[float] = None
    price_max: Optional[float] = None
    sort: SortKey = SortKey.RELEVANCE
    offset: Optional[int] = None

    # Filters
    attributes: List[str] = field(default_factory=list)
    in_stock_only: Optional[bool] = None

    def add_attribute(self, value: str) -> None:
        """Append a normalized attribute, keeping the list free of duplicates."""
        value = normalize(value)
        if value and value not in self.attributes:
            self.attributes.append(value)

    def is_empty(self) -> bool:
        return not any([
            self.product, self.category, self.brand, self.model,
            self.price_min is not None, self.price_max is not None,
            self.attributes,
        ])


@dataclass
class PriceSignals:
    price_min: Optional[float] = None
    price_max: Optional[float] = None
    sort: Optional[SortKey] = None
    offset: Optional[int] = None

    def is_empty(self) -> bool:
        return (
            self.price_min is None and self.price_max is None
            and self.sort is None and self.offset is None
        )


@dataclass
class SlotExtraction:
    model: Optional[str] = None
    brand: Optional[str] = None
    attributes: List[str] = field(default_factory=list)


@dataclass
class ClassifiedResult:
    intent: Intent
    base: QuerySignal = field(default_factory=QuerySignal)
    confidence: float = 0.0
    rule: Optional[str] = None
    price_only_followup: bool = False
    matched_term: Optional[str] = None


@dataclass
class DialogueDecision:
    response_type: ResponseType
    ask_clarification: Optional[str] = None
    cross_sell: List[str] = field(default_factory=list)


@dataclass
class EmotionTag:
    primary: str = "neutral"
    polarity: str = "neutral"  # positive, negative, neutral
    urgency: bool = False
    matched: List[str] = field(default_factory=list)


@dataclass(frozen=True)
class CatalogItem:
    id: str
    title: str
    category: str = ""
    brand: Optional[str] = None
    price: Optional[float] = None
    currency: str = "BRL"
    in_stock: Optional[bool] = None
    attributes: FrozenSet[str] = frozenset()

    @classmethod
    def from_dict(cls, raw: Dict[str, Any]) -> Optional["CatalogItem"]:
        """
        Build a CatalogItem from a loosely-typed provider record.

        Returns None when the record has no usable id or title. A negative or
        unparseable price is dropped instead of rejecting the whole item.
        """
        if not isinstance(raw, dict):
            return None

        item_id = raw.get("id")
        title = raw.get("title") or raw.get("name")
        if item_id is None or str(item_id).strip() == "":
            return None
        if not isinstance(title, str) or not title.strip():
            return None

        price = _coerce_price(raw.get("price"))

        in_stock = raw.get("in_stock", raw.get("inStock"))
        if in_stock is not None and not isinstance(in_stock, bool):
            in_stock = str(in_stock).strip().lower() in ("1", "true", "yes", "sim", "instock")

        attrs = raw.get("attributes", raw.get("attrs")) or []
        if isinstance(attrs, dict):
            attrs = [v for v in attrs.values() if isinstance(v, str)]
        if not isinstance(attrs, (list, tuple, set, frozenset)):
            attrs = []
        attributes = frozenset(
            normalize(a) for a in attrs if isinstance(a, str) and normalize(a)
        )

        brand = raw.get("brand")
        category = raw.get("category")
        return cls(
            id=str(item_id).strip(),
            title=title.strip(),
            category=category.strip() if isinstance(category, str) else "",
            brand=brand.strip() if isinstance(brand, str) and brand.strip() else None,
            price=price,
            currency=str(raw.get("currency") or "BRL").upper(),
            in_stock=in_stock,
            attributes=attributes,
        )


_DOT_THOUSANDS_RE = re.compile(r'^\d{1,3}(\.\d{3})+$')


def _coerce_price(value) -> Optional[float]:
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        return float(value) if value >= 0 else None
    if isinstance(value, str):
        text = value.strip().replace(" ", "")
        if "," in text and "." in text:
            text = text.replace(".", "").replace(",", ".")
        elif "," in text:
            text = text.replace(",", ".")
        elif _DOT_THOUSANDS_RE.match(text):
            # "3.000" is three thousand, as in BRL listings
            text = text.replace(".", "")
        try:
            parsed = float(text)
        except ValueError:
            return None
        return parsed if parsed >= 0 else None
    return None


@dataclass
class CanonicalDictionary:
    product_canon: Dict[str, str] = field(default_factory=dict)
    category_canon: Dict[str, str] = field(default_factory=dict)
    product_to_category: Dict[str, str] = field(default_factory=dict)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "CanonicalDictionary":
        """
        Validated construction from a JSON-shaped dict.

        Accepts camelCase (file format) and snake_case keys. Non-string
        entries are ignored, surface keys are normalized and product to
        category entries pointing at unknown categories are dropped.
        """
        if not isinstance(data, dict):
            raise ValueError("canonical dictionary must be a JSON object")

        def _section(*names) -> Dict[str, str]:
            for name in names:
                raw = data.get(name)
                if isinstance(raw, dict):
                    out = {}
                    for key, value in raw.items():
                        if not isinstance(key, str) or not isinstance(value, str):
                            continue
                        key_n, value_n = normalize(key), normalize(value)
                        if key_n and value_n:
                            out[key_n] = value_n
                    return out
            return {}

        product_canon = _section("productCanon", "product_canon")
        category_canon = _section("categoryCanon", "category_canon")
        known_categories = set(category_canon.values())
        product_to_category = {
            product: category
            for product, category in _section("productToCategory", "product_to_category").items()
            if category in known_categories
        }
        return cls(product_canon, category_canon, product_to_category)

    def to_dict(self) -> Dict[str, Dict[str, str]]:
        return {
            "productCanon": dict(self.product_canon),
            "categoryCanon": dict(self.category_canon),
            "productToCategory": dict(self.product_to_category),
        }

    def merged_with(self, other: "CanonicalDictionary") -> "CanonicalDictionary":
        """Return a copy where entries from *other* override ours."""
        merged = {
            "productCanon": {**self.product_canon, **other.product_canon},
            "categoryCanon": {**self.category_canon, **other.category_canon},
            "productToCategory": {**self.product_to_category, **other.product_to_category},
        }
        return CanonicalDictionary.from_dict(merged)

    def sizes(self) -> Dict[str, int]:
        return {
            "products": len(self.product_canon),
            "categories": len(self.category_canon),
            "product_to_category": len(self.product_to_category),
        }
