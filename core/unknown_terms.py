"""
Unknown-term tracking

Words the canonical dictionary could not place are counted here so an
operator can review them through the admin API and extend the canon. The
tracker is bounded: past ``max_terms`` the least recently seen term is
dropped, and each term keeps only its latest ``max_contexts`` messages.
"""

import time
import threading
from dataclasses import dataclass, field
from typing import Dict, List, Optional

from rapidfuzz import fuzz, process

from app_config import UNKNOWN_TERMS_CONTEXTS, UNKNOWN_TERMS_MAX
from chat_logger import get_logger, sanitize_log_string
from models import CanonicalDictionary
from text_normalizer import normalize

logger = get_logger()

# fuzz.ratio score (0-100) for proposing a canonical product
MAPPING_MIN_SCORE = 60
CONTEXT_MAX_LENGTH = 120


@dataclass
class UnknownTerm:
    term: str
    count: int = 0
    first_seen: float = 0.0
    last_seen: float = 0.0
    contexts: List[str] = field(default_factory=list)

    def to_dict(self) -> Dict:
        return {
            "term": self.term,
            "count": self.count,
            "firstSeen": self.first_seen,
            "lastSeen": self.last_seen,
            "contexts": list(self.contexts),
        }


class UnknownTermTracker:
    """Thread-safe, bounded counter of unresolved terms."""

    def __init__(self, max_terms: int = UNKNOWN_TERMS_MAX,
                 max_contexts: int = UNKNOWN_TERMS_CONTEXTS, clock=time.time):
        if max_terms <= 0 or max_contexts <= 0:
            raise ValueError("max_terms and max_contexts must be positive")
        self.max_terms = max_terms
        self.max_contexts = max_contexts
        self._clock = clock
        self._terms: Dict[str, UnknownTerm] = {}
        self._lock = threading.Lock()

    def __len__(self) -> int:
        with self._lock:
            return len(self._terms)

    def record(self, term: str, context: str = "") -> None:
        key = normalize(term)
        if len(key) < 3:
            return
        context = sanitize_log_string(context, CONTEXT_MAX_LENGTH) if context else ""
        now = self._clock()

        with self._lock:
            entry = self._terms.get(key)
            if entry is None:
                if len(self._terms) >= self.max_terms:
                    stale = min(self._terms.values(), key=lambda t: t.last_seen)
                    del self._terms[stale.term]
                entry = UnknownTerm(term=key, first_seen=now)
                self._terms[key] = entry
            entry.count += 1
            entry.last_seen = now
            if context and context not in entry.contexts:
                entry.contexts.append(context)
                del entry.contexts[:-self.max_contexts]

    def record_all(self, terms: List[str], context: str = "") -> None:
        for term in terms:
            self.record(term, context)
        if terms:
            logger.debug(f"🔎 Unknown terms recorded: {terms}")

    def top(self, limit: int = 50) -> List[UnknownTerm]:
        """Most frequent first; ties go to the most recently seen."""
        with self._lock:
            entries = sorted(self._terms.values(), key=lambda t: (-t.count, -t.last_seen, t.term))
            return [UnknownTerm(t.term, t.count, t.first_seen, t.last_seen, list(t.contexts))
                    for t in entries[:limit]]

    def recent(self, hours: float = 24) -> List[UnknownTerm]:
        cutoff = self._clock() - hours * 3600
        with self._lock:
            entries = [t for t in self._terms.values() if t.last_seen > cutoff]
        return sorted(entries, key=lambda t: -t.last_seen)

    def suggest_mappings(self, canon: CanonicalDictionary, min_count: int = 2,
                         limit: int = 50) -> List[Dict]:
        """
        Propose a canonical product for frequent unknown terms.

        Only terms seen at least *min_count* times are considered; each gets
        its closest product key when the ratio clears MAPPING_MIN_SCORE.
        """
        keys = list(canon.product_canon)
        if not keys:
            return []
        suggestions = []
        for entry in self.top(limit):
            if entry.count < min_count:
                continue
            match = process.extractOne(entry.term, keys, scorer=fuzz.ratio, score_cutoff=MAPPING_MIN_SCORE)
            if match is None:
                continue
            key, score, _ = match
            suggestions.append({
                "unknownTerm": entry.term,
                "suggestedCanonical": canon.product_canon[key],
                "confidence": round(score / 100, 2),
            })
        return sorted(suggestions, key=lambda s: -s["confidence"])

    def clean_older_than(self, days: float) -> int:
        """Drop terms not seen for *days*. Returns how many were removed."""
        cutoff = self._clock() - days * 86400
        with self._lock:
            stale = [key for key, t in self._terms.items() if t.last_seen < cutoff]
            for key in stale:
                del self._terms[key]
        if stale:
            logger.info(f"🧹 Removed {len(stale)} stale unknown terms")
        return len(stale)

    def stats(self) -> Dict:
        with self._lock:
            entries = list(self._terms.values())
        total = sum(t.count for t in entries)
        most: Optional[UnknownTerm] = max(entries, key=lambda t: t.count, default=None)
        return {
            "totalTerms": len(entries),
            "totalOccurrences": total,
            "avgOccurrencesPerTerm": round(total / len(entries), 2) if entries else 0,
            "mostFrequent": most.term if most else "",
        }

    def clear(self) -> None:
        with self._lock:
            self._terms.clear()
