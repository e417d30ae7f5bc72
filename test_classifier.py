"""
Tests for intent classification priority: conversational rules, then
product/category resolution, then price-only follow-ups.
"""

import pytest

from classifier import INTENT_RULES, classify, match_rule
from models import Intent


class TestConversationalRules:
    """Named rules are matched on the whole normalized message."""

    @pytest.mark.parametrize("message", ["oi", "Olá!", "bom dia", "hola", "oi, tudo bem?", "e aí"])
    def test_greeting(self, message, canon):
        result = classify(message, canon)
        assert result.intent == Intent.SMALL_TALK
        assert result.rule == "greeting"

    @pytest.mark.parametrize("message", ["obrigado", "valeu!", "muchas gracias", "muito obrigada pela ajuda"])
    def test_thanks(self, message, canon):
        result = classify(message, canon)
        assert result.intent == Intent.SMALL_TALK
        assert result.rule == "thanks"

    def test_time(self, canon):
        assert classify("que horas são?", canon).intent == Intent.TIME_QUERY

    @pytest.mark.parametrize("message", ["ajuda", "como funciona?", "o que você faz"])
    def test_help(self, message, canon):
        assert classify(message, canon).intent == Intent.HELP

    def test_whoami(self, canon):
        assert classify("quem é você?", canon).intent == Intent.WHOAMI

    def test_greeting_with_product_is_a_search(self, canon):
        """A greeting followed by a request goes to product search."""
        result = classify("oi, quero um iphone", canon)
        assert result.intent == Intent.PRODUCT_SEARCH
        assert result.base.product == "iphone"

    def test_help_with_product_is_a_search(self, canon):
        """"me ajuda a achar celular" is a search, not a help request."""
        result = classify("me ajuda a achar um celular", canon)
        assert result.intent == Intent.PRODUCT_SEARCH

    def test_rules_have_unique_names(self):
        names = [rule.name for rule in INTENT_RULES]
        assert len(names) == len(set(names))

    def test_match_rule_none(self):
        assert match_rule("drone dji") is None


class TestProductSearch:
    """Canonical resolution produces a base query."""

    def test_product(self, canon):
        result = classify("iphone 15 até 3000", canon)
        assert result.intent == Intent.PRODUCT_SEARCH
        assert result.rule == "product"
        assert result.base.product == "iphone"
        assert result.base.category == "celular"
        assert result.confidence > 0.8

    def test_category_only(self, canon):
        result = classify("o que tem de perfumaria?", canon)
        assert result.rule == "category"
        assert result.base.product is None
        assert result.base.category == "perfumaria"

    def test_in_stock_phrase(self, canon):
        """Only an explicit stock phrase sets the in-stock filter."""
        assert classify("drone em estoque", canon).base.in_stock_only is True
        assert classify("drone", canon).base.in_stock_only is None


class TestPriceOnly:
    """Price talk without a product is a follow-up."""

    @pytest.mark.parametrize("message", ["mais barato", "até 500", "o mais caro", "tem algo em conta?"])
    def test_price_only_followup(self, message, canon):
        result = classify(message, canon)
        assert result.intent == Intent.PRODUCT_SEARCH
        assert result.price_only_followup is True
        assert result.rule == "price_only"
        assert result.base.product is None

    def test_price_only_never_forces_stock(self, canon):
        assert classify("mais barato", canon).base.in_stock_only is None


class TestUnknown:

    def test_gibberish(self, canon):
        assert classify("asdfgh qwerty", canon).intent == Intent.UNKNOWN

    def test_empty(self, canon):
        assert classify("   ", canon).intent == Intent.UNKNOWN
