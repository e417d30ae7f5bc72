"""
Canonical Dictionary — load/save/resolve product and category vocabulary.

The dictionary lives in a JSON file (CANON_PATH, default data/canon.json):

    {"productCanon": {...}, "categoryCanon": {...}, "productToCategory": {...}}

It is loaded once, cached, and can be replaced or reloaded at runtime by the
admin routes without restarting the process. When the file is missing or
corrupt the built-in DEFAULT_CANON keeps the assistant usable.
"""

import os
import json
import threading
from collections import Counter, defaultdict
from dataclasses import dataclass
from typing import Dict, Iterable, List, Optional, Tuple

from rapidfuzz import fuzz, process

from app_config import CANON_PATH
from chat_logger import get_logger
from models import CanonicalDictionary, CatalogItem
from text_normalizer import normalize, singularize, tokenize

logger = get_logger()


# ═══════════════════════════════════════════
# BUILT-IN DICTIONARY
# ═══════════════════════════════════════════

DEFAULT_CANON = {
    "productCanon": {
        # Celulares
        "iphone": "iphone", "iphones": "iphone", "apple iphone": "iphone",
        "galaxy": "galaxy", "samsung galaxy": "galaxy",
        "xiaomi": "xiaomi", "redmi": "xiaomi", "poco": "xiaomi",
        "celular": "celular", "celulares": "celular", "smartphone": "celular",
        "telefono": "celular", "telefonos": "celular",
        # Drones
        "drone": "drone", "drones": "drone", "dji": "drone", "mavic": "drone",
        # TV
        "tv": "tv", "televisao": "tv", "televisor": "tv", "televisores": "tv",
        "television": "tv", "smart tv": "smart-tv", "smarttv": "smart-tv",
        # Informática
        "notebook": "notebook", "notebooks": "notebook", "laptop": "notebook",
        "macbook": "notebook",
        # Perfumaria
        "perfume": "perfume", "perfumes": "perfume", "fragancia": "perfume",
        "colonia": "perfume", "maquiagem": "maquiagem", "maquillaje": "maquiagem",
        "batom": "batom", "labial": "batom", "base": "base",
        # Roupas
        "blusa": "blusa", "blusas": "blusa", "camiseta": "camiseta",
        "camisetas": "camiseta", "camisa": "camisa", "camisas": "camisa",
        "calca": "calca", "calcas": "calca", "pantalon": "calca",
        "jeans": "jeans", "calca jeans": "jeans", "vestido": "vestido",
        "vestidos": "vestido",
        # Calçados
        "tenis": "tenis", "zapatilla": "tenis", "zapatillas": "tenis",
        "sapato": "sapato", "sapatos": "sapato", "zapato": "sapato",
        "sandalia": "sandalia", "sandalias": "sandalia", "bota": "bota", "botas": "bota",
        # Eletrodomésticos
        "geladeira": "geladeira", "refrigerador": "geladeira", "heladera": "geladeira",
        "fogao": "fogao", "cocina": "fogao", "microondas": "microondas",
        "micro ondas": "microondas", "ar condicionado": "ar-condicionado",
        "aire acondicionado": "ar-condicionado",
        # Fones
        "fone": "fone", "fones": "fone", "fone de ouvido": "fone",
        "fones de ouvido": "fone", "auricular": "fone", "auriculares": "fone",
        "airpods": "fone",
    },
    "categoryCanon": {
        "celular": "celular", "smartphones": "celular", "telefonia": "celular",
        "drone": "drone", "drones": "drone",
        "tv": "tv", "televisores": "tv",
        "perfumaria": "perfumaria", "perfumeria": "perfumaria", "cosmeticos": "perfumaria",
        "roupa": "roupa", "roupas": "roupa", "ropa": "roupa", "vestuario": "roupa",
        "calcado": "calcado", "calcados": "calcado", "calzado": "calcado",
        "informatica": "informatica", "eletronicos": "informatica",
        "eletrodomestico": "eletrodomestico", "eletrodomesticos": "eletrodomestico",
        "electrodomesticos": "eletrodomestico",
        "audio": "audio",
    },
    "productToCategory": {
        "iphone": "celular", "galaxy": "celular", "xiaomi": "celular", "celular": "celular",
        "drone": "drone",
        "tv": "tv", "smart-tv": "tv",
        "notebook": "informatica",
        "perfume": "perfumaria", "maquiagem": "perfumaria", "batom": "perfumaria",
        "base": "perfumaria",
        "blusa": "roupa", "camiseta": "roupa", "camisa": "roupa", "calca": "roupa",
        "jeans": "roupa", "vestido": "roupa",
        "tenis": "calcado", "sapato": "calcado", "sandalia": "calcado", "bota": "calcado",
        "geladeira": "eletrodomestico", "fogao": "eletrodomestico",
        "microondas": "eletrodomestico", "ar-condicionado": "eletrodomestico",
        "fone": "audio",
    },
}

# Tokens that never become a head noun when building from a catalog.
BUILD_STOP_TOKENS = frozenset({
    "de", "da", "do", "para", "com", "sem", "e", "ou", "the", "a", "an", "por",
    "con", "sin", "y", "o", "la", "el", "los", "las", "pro", "max", "ultra",
    "plus", "mini", "air", "studio", "series", "kit", "novo", "nova", "new",
})


# ═══════════════════════════════════════════
# STORE (load / save / cache)
# ═══════════════════════════════════════════

class CanonStore:
    """Thread-safe, file-backed cache of the canonical dictionary."""

    def __init__(self, path: Optional[str] = None):
        self.path = path or CANON_PATH
        self._lock = threading.Lock()
        self._cache: Optional[CanonicalDictionary] = None
        self.source = "unloaded"

    def load(self) -> CanonicalDictionary:
        """Return the cached dictionary, reading the file on first use."""
        with self._lock:
            if self._cache is None:
                self._cache = self._read()
            return self._cache

    def _read(self) -> CanonicalDictionary:
        if not os.path.exists(self.path):
            logger.warning(f"⚠️ Canon file not found at {self.path} — using built-in dictionary")
            self.source = "default"
            return CanonicalDictionary.from_dict(DEFAULT_CANON)

        try:
            with open(self.path, "r", encoding="utf-8") as f:
                canon = CanonicalDictionary.from_dict(json.load(f))
        except (OSError, ValueError) as e:
            logger.error(f"❌ Failed to read canon file {self.path}: {e} — using built-in dictionary")
            self.source = "default"
            return CanonicalDictionary.from_dict(DEFAULT_CANON)

        if not canon.product_canon or not canon.category_canon:
            logger.warning(f"⚠️ Canon file {self.path} has no products or categories — using built-in dictionary")
            self.source = "default"
            return CanonicalDictionary.from_dict(DEFAULT_CANON)

        sizes = canon.sizes()
        logger.info(
            f"✅ Canon loaded from {self.path} | products={sizes['products']} "
            f"categories={sizes['categories']} mappings={sizes['product_to_category']}"
        )
        self.source = "file"
        return canon

    def save(self, canon: CanonicalDictionary) -> CanonicalDictionary:
        """Persist *canon* atomically and make it the active dictionary."""
        folder = os.path.dirname(self.path)
        if folder:
            os.makedirs(folder, exist_ok=True)
        tmp_path = f"{self.path}.tmp"
        with self._lock:
            with open(tmp_path, "w", encoding="utf-8") as f:
                json.dump(canon.to_dict(), f, ensure_ascii=False, indent=2, sort_keys=True)
            os.replace(tmp_path, self.path)
            self._cache = canon
            self.source = "file"
        logger.info(f"💾 Canon saved to {self.path} | {canon.sizes()}")
        return canon

    def clear_cache(self) -> None:
        with self._lock:
            self._cache = None
            self.source = "unloaded"

    def reload(self) -> CanonicalDictionary:
        self.clear_cache()
        return self.load()


# ═══════════════════════════════════════════
# RESOLVER
# ═══════════════════════════════════════════

@dataclass
class Resolution:
    product: Optional[str] = None
    category: Optional[str] = None
    matched: Optional[str] = None
    explicit_category: bool = False


def _keys_by_length(mapping: Dict[str, str]) -> List[str]:
    # Longest phrase first; ties by key for determinism.
    return sorted(mapping, key=lambda k: (-len(k), k))


def _find_phrase(text_n: str, mapping: Dict[str, str]) -> Optional[Tuple[str, str]]:
    """Longest key appearing as a standalone phrase in the normalized text."""
    if not text_n:
        return None
    padded = f" {text_n} "
    for key in _keys_by_length(mapping):
        if f" {key} " in padded:
            return key, mapping[key]
    return None


def _find_token(text_n: str, mapping: Dict[str, str]) -> Optional[Tuple[str, str]]:
    """Per-token fallback: exact token first, then its singular form."""
    for token in text_n.split():
        if token in mapping:
            return token, mapping[token]
        single = singularize(token)
        if single in mapping:
            return token, mapping[single]
    return None


def _lookup(text_n: str, mapping: Dict[str, str]) -> Optional[Tuple[str, str]]:
    return _find_phrase(text_n, mapping) or _find_token(text_n, mapping)


def resolve_product(text: str, canon: CanonicalDictionary) -> Optional[Resolution]:
    found = _lookup(normalize(text), canon.product_canon)
    if not found:
        return None
    matched, product = found
    return Resolution(
        product=product,
        category=canon.product_to_category.get(product),
        matched=matched,
    )


def resolve_category(text: str, canon: CanonicalDictionary) -> Optional[Resolution]:
    found = _lookup(normalize(text), canon.category_canon)
    if not found:
        return None
    matched, category = found
    return Resolution(category=category, matched=matched, explicit_category=True)


def resolve(text: str, canon: CanonicalDictionary) -> Resolution:
    """
    Resolve product and category for a message.

    Product wins over category. A product brings its default category along
    unless the message also names a different category explicitly.
    """
    product_hit = resolve_product(text, canon)
    category_hit = resolve_category(text, canon)

    if product_hit is None:
        return category_hit or Resolution()

    if category_hit and category_hit.matched != product_hit.matched:
        if category_hit.category != product_hit.category:
            product_hit.category = category_hit.category
            product_hit.explicit_category = True
    return product_hit


def related_products(category: Optional[str], canon: CanonicalDictionary,
                     exclude: Optional[str] = None, limit: int = 3) -> List[str]:
    """Canonical products mapped to *category*, excluding *exclude*."""
    if not category:
        return []
    out = [
        product for product, cat in sorted(canon.product_to_category.items())
        if cat == category and product != exclude
    ]
    return out[:limit]


# fuzz.ratio score (0-100) a token needs to count as a misspelling of a product key
SUGGEST_MIN_SCORE = 75


def suggest_products(text: str, canon: CanonicalDictionary, limit: int = 3) -> List[str]:
    """Close spellings of canonical products for tokens that resolved nothing."""
    keys = list(canon.product_canon)
    suggestions: List[str] = []
    for token in normalize(text).split():
        if len(token) < 4:
            continue
        for key, _score, _ in process.extract(token, keys, scorer=fuzz.ratio, limit=2, score_cutoff=SUGGEST_MIN_SCORE):
            canonical = canon.product_canon[key]
            if canonical not in suggestions:
                suggestions.append(canonical)
    return suggestions[:limit]


def unresolved_terms(text: str, canon: CanonicalDictionary, min_length: int = 4) -> List[str]:
    """Content tokens of *text* that no product or category key covers."""
    known = set()
    for key in list(canon.product_canon) + list(canon.category_canon):
        for word in key.split():
            known.add(word)
            known.add(singularize(word))

    terms: List[str] = []
    for token in tokenize(text):
        if len(token) < min_length or any(ch.isdigit() for ch in token):
            continue
        if token not in known and token not in terms:
            terms.append(token)
    return terms


# ═══════════════════════════════════════════
# CORPUS BUILDER
# ═══════════════════════════════════════════

def _head_noun(title: str) -> Optional[str]:
    for token in normalize(title).split():
        if token in BUILD_STOP_TOKENS or any(ch.isdigit() for ch in token) or len(token) < 2:
            continue
        return singularize(token)
    return None


def build_canon_from_catalog(items: Iterable[CatalogItem]) -> CanonicalDictionary:
    """
    Derive a dictionary from catalog titles.

    The head noun of each title (first meaningful token, singularized) is the
    canonical product; every title token maps to it. Each product is assigned
    the category most of its items belong to.
    """
    product_canon: Dict[str, str] = {}
    category_canon: Dict[str, str] = {}
    votes: Dict[str, Counter] = defaultdict(Counter)
    seen = 0

    for item in items:
        seen += 1
        category = singularize(normalize(item.category)) if item.category else ""
        if not category:
            continue
        category_canon[category] = category
        category_canon.setdefault(normalize(item.category), category)

        head = _head_noun(item.title)
        if not head:
            continue
        product_canon.setdefault(head, head)
        for token in normalize(item.title).split():
            if len(token) < 2 or token in BUILD_STOP_TOKENS:
                continue
            if any(ch.isdigit() for ch in token):
                continue
            product_canon.setdefault(token, head)
        votes[head][category] += 1

    product_to_category = {}
    for product, counter in votes.items():
        # most_common keeps first-seen order on ties
        product_to_category[product] = counter.most_common(1)[0][0]

    canon = CanonicalDictionary.from_dict({
        "productCanon": product_canon,
        "categoryCanon": category_canon,
        "productToCategory": product_to_category,
    })
    logger.info(f"🔨 Canon built from {seen} catalog items | {canon.sizes()}")
    return canon
