"""
Tests for the canonical dictionary: validated construction, file store,
resolution precedence, suggestions and the catalog corpus builder.
"""

import json

import pytest

from canon_store import (
    DEFAULT_CANON,
    CanonStore,
    build_canon_from_catalog,
    related_products,
    resolve,
    resolve_category,
    resolve_product,
    suggest_products,
)
from conftest import make_item
from models import CanonicalDictionary


class TestCanonicalDictionary:
    """Validated construction from JSON-shaped dicts."""

    def test_normalizes_keys_and_values(self):
        """Surface keys and canonical values are normalized."""
        canon = CanonicalDictionary.from_dict({
            "productCanon": {"Tênis": "Tênis"},
            "categoryCanon": {"Calçados": "calcado"},
            "productToCategory": {"tenis": "calcado"},
        })
        assert canon.product_canon == {"tenis": "tenis"}
        assert canon.category_canon == {"calcados": "calcado"}
        assert canon.product_to_category == {"tenis": "calcado"}

    def test_accepts_snake_case(self):
        """snake_case section names work too."""
        canon = CanonicalDictionary.from_dict({"product_canon": {"drone": "drone"}})
        assert canon.product_canon == {"drone": "drone"}

    def test_drops_invalid_entries(self):
        """Non-string values and mappings to unknown categories are ignored."""
        canon = CanonicalDictionary.from_dict({
            "productCanon": {"drone": "drone", "bad": 3},
            "categoryCanon": {"drone": "drone"},
            "productToCategory": {"drone": "drone", "iphone": "celular"},
        })
        assert "bad" not in canon.product_canon
        assert canon.product_to_category == {"drone": "drone"}

    def test_rejects_non_object(self):
        """A list is not a dictionary."""
        with pytest.raises(ValueError):
            CanonicalDictionary.from_dict(["iphone"])

    def test_merge_other_wins(self):
        """Entries of the argument override ours."""
        a = CanonicalDictionary.from_dict({"productCanon": {"cel": "celular"}})
        b = CanonicalDictionary.from_dict({"productCanon": {"cel": "iphone", "tv": "tv"}})
        merged = a.merged_with(b)
        assert merged.product_canon == {"cel": "iphone", "tv": "tv"}


class TestCanonStore:
    """File-backed, cached store."""

    def test_missing_file_uses_default(self, tmp_path):
        """No file: the built-in dictionary is served."""
        store = CanonStore(str(tmp_path / "nope.json"))
        canon = store.load()
        assert store.source == "default"
        assert canon.product_canon["iphone"] == "iphone"

    def test_corrupt_file_uses_default(self, tmp_path):
        """Invalid JSON falls back to the built-in dictionary."""
        path = tmp_path / "canon.json"
        path.write_text("{not json", encoding="utf-8")
        store = CanonStore(str(path))
        assert store.load().product_canon == CanonicalDictionary.from_dict(DEFAULT_CANON).product_canon
        assert store.source == "default"

    def test_save_then_reload(self, tmp_path):
        """Saved dictionaries survive a cache clear."""
        path = tmp_path / "canon.json"
        store = CanonStore(str(path))
        canon = CanonicalDictionary.from_dict({
            "productCanon": {"caneca": "caneca"},
            "categoryCanon": {"cozinha": "cozinha"},
            "productToCategory": {"caneca": "cozinha"},
        })
        store.save(canon)

        on_disk = json.loads(path.read_text(encoding="utf-8"))
        assert on_disk["productCanon"] == {"caneca": "caneca"}

        store.clear_cache()
        assert store.source == "unloaded"
        reloaded = store.load()
        assert store.source == "file"
        assert reloaded.product_to_category == {"caneca": "cozinha"}

    def test_load_is_cached(self, tmp_path):
        """The file is read once until reload()."""
        path = tmp_path / "canon.json"
        store = CanonStore(str(path))
        first = store.load()
        path.write_text(json.dumps({
            "productCanon": {"caneca": "caneca"},
            "categoryCanon": {"cozinha": "cozinha"},
        }), encoding="utf-8")
        assert store.load() is first
        assert store.reload().product_canon == {"caneca": "caneca"}


class TestResolve:
    """Product and category resolution precedence."""

    def test_longest_phrase_wins(self, canon):
        """"fone de ouvido" beats the shorter "fone" key."""
        hit = resolve_product("quero um fone de ouvido bluetooth", canon)
        assert hit.product == "fone"
        assert hit.matched == "fone de ouvido"

    def test_multi_word_product(self, canon):
        """"smart tv" resolves to its own canonical product."""
        hit = resolve_product("smart tv 55 polegadas", canon)
        assert hit.product == "smart tv"
        assert hit.category == "tv"

    def test_plural_token_fallback(self, canon):
        """A plural not listed as a key resolves via its singular."""
        hit = resolve_product("duas geladeiras", canon)
        assert hit.product == "geladeira"
        assert hit.matched == "geladeiras"

    def test_product_brings_category(self, canon):
        """The product's default category is attached."""
        result = resolve("tem iphone?", canon)
        assert result.product == "iphone"
        assert result.category == "celular"
        assert result.explicit_category is False

    def test_explicit_category_overrides(self, canon):
        """A different category named in the message wins."""
        result = resolve("perfume na seção de eletronicos", canon)
        assert result.product == "perfume"
        assert result.category == "informatica"
        assert result.explicit_category is True

    def test_category_only(self, canon):
        """No product: the category alone is returned."""
        result = resolve("o que tem de perfumaria", canon)
        assert result.product is None
        assert result.category == "perfumaria"
        assert resolve_category("calzado", canon).category == "calcado"

    def test_nothing(self, canon):
        """Unrelated text resolves to nothing."""
        result = resolve("qual o sentido da vida", canon)
        assert result.product is None and result.category is None


class TestSuggestions:
    """Related products and fuzzy suggestions."""

    def test_related_products_excludes(self, canon):
        """Products of the same category, minus the excluded one."""
        related = related_products("celular", canon, exclude="iphone")
        assert "iphone" not in related
        assert related == sorted(related)
        assert 0 < len(related) <= 3

    def test_related_products_no_category(self, canon):
        assert related_products(None, canon) == []

    def test_fuzzy_suggestion(self, canon):
        """Misspelled product names get close matches."""
        assert "perfume" in suggest_products("perfumr importado", canon)

    def test_short_tokens_ignored(self, canon):
        assert suggest_products("tv", canon) == []

    def test_suggestion_uses_ratio_cutoff(self, canon):
        assert suggest_products("iphne", canon) == ["iphone"]
        assert suggest_products("xyzzy qwrtp", canon) == []

    def test_suggestions_capped(self, canon):
        assert len(suggest_products("perfumr iphne drones celulr", canon, limit=2)) == 2


class TestBuildCanonFromCatalog:
    """Corpus builder: head noun and majority-vote categories."""

    def test_head_noun_and_vote(self):
        items = [
            make_item(1, "Caneca Térmica Inox", category="Cozinha"),
            make_item(2, "Caneca de Porcelana", category="Cozinha"),
            make_item(3, "Caneca Gamer RGB", category="Informatica"),
            make_item(4, "Mochila Executiva 15", category="Informatica"),
        ]
        canon = build_canon_from_catalog(items)
        assert canon.product_canon["caneca"] == "caneca"
        assert canon.product_canon["termica"] == "caneca"
        assert canon.product_to_category["caneca"] == "cozinha"
        assert canon.product_to_category["mochila"] == "informatica"

    def test_skips_digits_and_stop_tokens(self):
        items = [make_item(1, "Kit Pro 128GB Mochila", category="Bolsas")]
        canon = build_canon_from_catalog(items)
        assert "128gb" not in canon.product_canon
        assert "kit" not in canon.product_canon
        assert canon.product_canon["mochila"] == "mochila"
