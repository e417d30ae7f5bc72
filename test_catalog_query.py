"""
Tests for the catalog query executor: predicates, sorting, offset and limits.
"""

from conftest import make_item
from models import QuerySignal, SortKey
from services.catalog_query import active_predicates, catalog_stats, run_query


CATALOG = [
    make_item("a", "iPhone 15 128GB", price=2800, category="celular", brand="Apple", attributes=["128gb", "preto"]),
    make_item("b", "iPhone 15 Pro 256GB", price=3500, category="celular", brand="Apple", attributes=["256gb"]),
    make_item("c", "iPhone 13 128GB", price=2100, in_stock=False, category="celular", brand="Apple"),
    make_item("d", "Galaxy S23", price=3299, category="celular", brand="Samsung"),
    make_item("e", "Capa iPhone 15", price=None, category="acessorios"),
    make_item("f", "Perfume Malbec 100ml", price=189.9, category="perfumaria"),
]


def _ids(items):
    return [i.id for i in items]


class TestPredicates:

    def test_price_bounds_inclusive(self):
        query = QuerySignal(product="iphone", price_min=2100, price_max=2800)
        assert _ids(run_query(CATALOG, query)) == ["a", "c"]

    def test_priceless_items_excluded_when_bounded(self):
        query = QuerySignal(product="iphone", price_max=10_000)
        assert "e" not in _ids(run_query(CATALOG, query))

    def test_priceless_items_kept_without_bounds(self):
        query = QuerySignal(product="iphone")
        assert "e" in _ids(run_query(CATALOG, query))

    def test_model_token_boundary(self):
        """Model "15" must not match "150" or "1500"."""
        catalog = CATALOG + [make_item("x", "Fone 150 BT", price=99)]
        query = QuerySignal(model="15")
        assert set(_ids(run_query(catalog, query))) == {"a", "b", "e"}

    def test_iphone_15_up_to_3000(self):
        query = QuerySignal(product="iphone", model="15", price_max=3000)
        assert _ids(run_query(CATALOG, query)) == ["a"]

    def test_brand(self):
        assert _ids(run_query(CATALOG, QuerySignal(brand="samsung"))) == ["d"]

    def test_attributes_any(self):
        query = QuerySignal(product="iphone", attributes=["256gb", "azul"])
        assert _ids(run_query(CATALOG, query)) == ["b"]

    def test_category_only_without_product(self):
        query = QuerySignal(category="perfumaria")
        assert _ids(run_query(CATALOG, query)) == ["f"]
        assert "category" not in active_predicates(QuerySignal(product="iphone", category="celular"))

    def test_in_stock_only(self):
        query = QuerySignal(product="iphone", in_stock_only=True)
        assert "c" not in _ids(run_query(CATALOG, query))

    def test_accent_insensitive(self):
        catalog = [make_item("t", "Tênis Nike Air", price=500)]
        assert _ids(run_query(catalog, QuerySignal(product="tenis"))) == ["t"]

    def test_items_not_mutated(self):
        before = list(CATALOG)
        run_query(CATALOG, QuerySignal(product="iphone", sort=SortKey.PRICE_DESC))
        assert CATALOG == before


class TestSorting:

    def test_relevance_in_stock_first_then_price(self):
        result = run_query(CATALOG, QuerySignal(product="iphone"))
        assert _ids(result) == ["a", "b", "e", "c"]

    def test_price_asc_missing_last(self):
        result = run_query(CATALOG, QuerySignal(product="iphone", sort=SortKey.PRICE_ASC))
        assert _ids(result) == ["c", "a", "b", "e"]

    def test_price_desc_missing_last(self):
        result = run_query(CATALOG, QuerySignal(product="iphone", sort=SortKey.PRICE_DESC))
        assert _ids(result) == ["b", "a", "c", "e"]

    def test_offset(self):
        query = QuerySignal(product="iphone", sort=SortKey.PRICE_ASC, offset=1)
        assert _ids(run_query(CATALOG, query))[0] == "a"

    def test_offset_past_end(self):
        query = QuerySignal(product="perfume", offset=5)
        assert run_query(CATALOG, query) == []


class TestLimits:

    def test_capped_at_twenty(self):
        catalog = [make_item(i, f"Drone {i}", price=100 + i) for i in range(50)]
        assert len(run_query(catalog, QuerySignal(product="drone"))) == 20

    def test_custom_limit(self):
        catalog = [make_item(i, f"Drone {i}", price=100 + i) for i in range(50)]
        assert len(run_query(catalog, QuerySignal(product="drone"), limit=3)) == 3

    def test_empty_catalog(self):
        assert run_query([], QuerySignal(product="drone")) == []


class TestCatalogStats:

    def test_stats(self):
        stats = catalog_stats(CATALOG)
        assert stats["items"] == 6
        assert stats["in_stock"] == 5
        assert stats["categories"]["celular"] == 4
        assert stats["price_min"] == 189.9
        assert stats["price_max"] == 3500
