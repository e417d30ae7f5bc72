"""
Tests for unknown-term tracking and the unresolved-token helper.
"""

import threading

import pytest

from canon_store import unresolved_terms
from core.unknown_terms import UnknownTermTracker


class TestUnresolvedTerms:

    def test_gibberish_is_unresolved(self, canon):
        assert unresolved_terms("xyzzy plugh", canon) == ["xyzzy", "plugh"]

    def test_known_products_and_categories_skipped(self, canon):
        assert unresolved_terms("quero um iphone de perfumaria", canon) == []

    def test_short_numeric_and_stop_words_skipped(self, canon):
        assert unresolved_terms("o kit 128gb pra mim", canon) == []

    def test_duplicates_collapsed(self, canon):
        assert unresolved_terms("zumbido zumbido", canon) == ["zumbido"]


class TestRecord:

    def test_counts_and_timestamps(self, clock):
        tracker = UnknownTermTracker(clock=clock)
        tracker.record("Xyzzy", "tem xyzzy?")
        first = clock()
        clock.advance(60)
        tracker.record("xyzzy", "e xyzzy azul?")

        [entry] = tracker.top()
        assert entry.term == "xyzzy"
        assert entry.count == 2
        assert entry.first_seen == first
        assert entry.last_seen == first + 60
        assert entry.contexts == ["tem xyzzy?", "e xyzzy azul?"]

    def test_short_terms_ignored(self, clock):
        tracker = UnknownTermTracker(clock=clock)
        tracker.record("ab")
        assert len(tracker) == 0

    def test_contexts_bounded_and_deduplicated(self, clock):
        tracker = UnknownTermTracker(max_contexts=2, clock=clock)
        for context in ("a xyzzy", "b xyzzy", "b xyzzy", "c xyzzy"):
            tracker.record("xyzzy", context)
        [entry] = tracker.top()
        assert entry.count == 4
        assert entry.contexts == ["b xyzzy", "c xyzzy"]

    def test_least_recent_term_evicted(self, clock):
        tracker = UnknownTermTracker(max_terms=2, clock=clock)
        tracker.record("alfa")
        clock.advance(1)
        tracker.record("bravo")
        clock.advance(1)
        tracker.record("alfa")
        clock.advance(1)
        tracker.record("charlie")

        assert len(tracker) == 2
        assert {t.term for t in tracker.top()} == {"alfa", "charlie"}

    def test_top_returns_copies(self, clock):
        tracker = UnknownTermTracker(clock=clock)
        tracker.record("xyzzy", "ctx")
        tracker.top()[0].contexts.append("mutated")
        assert tracker.top()[0].contexts == ["ctx"]

    def test_invalid_bounds(self):
        with pytest.raises(ValueError):
            UnknownTermTracker(max_terms=0)

    def test_concurrent_records(self, clock):
        tracker = UnknownTermTracker(clock=clock)

        def worker():
            for _ in range(200):
                tracker.record("xyzzy")

        threads = [threading.Thread(target=worker) for _ in range(4)]
        for t in threads:
            t.start()
        for t in threads:
            t.join()
        assert tracker.top()[0].count == 800


class TestQueries:

    def test_top_ordered_by_count(self, clock):
        tracker = UnknownTermTracker(clock=clock)
        for term in ("alfa", "bravo", "bravo", "charlie", "charlie", "charlie"):
            tracker.record(term)
        assert [t.term for t in tracker.top(2)] == ["charlie", "bravo"]

    def test_recent(self, clock):
        tracker = UnknownTermTracker(clock=clock)
        tracker.record("antigo")
        clock.advance(48 * 3600)
        tracker.record("recente")
        assert [t.term for t in tracker.recent(hours=24)] == ["recente"]

    def test_clean_older_than(self, clock):
        tracker = UnknownTermTracker(clock=clock)
        tracker.record("antigo")
        clock.advance(40 * 86400)
        tracker.record("recente")
        assert tracker.clean_older_than(days=30) == 1
        assert [t.term for t in tracker.top()] == ["recente"]

    def test_stats(self, clock):
        tracker = UnknownTermTracker(clock=clock)
        assert tracker.stats() == {
            "totalTerms": 0, "totalOccurrences": 0, "avgOccurrencesPerTerm": 0, "mostFrequent": "",
        }
        for term in ("alfa", "bravo", "bravo"):
            tracker.record(term)
        stats = tracker.stats()
        assert stats["totalTerms"] == 2
        assert stats["totalOccurrences"] == 3
        assert stats["avgOccurrencesPerTerm"] == 1.5
        assert stats["mostFrequent"] == "bravo"

    def test_suggest_mappings(self, canon, clock):
        tracker = UnknownTermTracker(clock=clock)
        tracker.record("iphonee")
        tracker.record("iphonee")
        tracker.record("perfumee")  # seen once, not proposed
        suggestions = tracker.suggest_mappings(canon)
        assert [s["unknownTerm"] for s in suggestions] == ["iphonee"]
        assert suggestions[0]["suggestedCanonical"] == "iphone"
        assert 0.6 <= suggestions[0]["confidence"] <= 1.0

    def test_clear(self, clock):
        tracker = UnknownTermTracker(clock=clock)
        tracker.record("xyzzy")
        tracker.clear()
        assert tracker.top() == []
