"""
Core Helpers

Session id derivation and debug serialization of pipeline records.
"""

import hashlib
from typing import Optional

from models import DialogueDecision, QuerySignal


def derive_session_id(remote_addr: Optional[str], user_agent: Optional[str]) -> str:
    """Stable pseudo-id for clients that did not send a sessionId."""
    fingerprint = f"{remote_addr or 'unknown'}|{user_agent or ''}"
    digest = hashlib.sha1(fingerprint.encode("utf-8")).hexdigest()[:16]
    return f"anon-{digest}"


def query_to_dict(query: Optional[QuerySignal]) -> dict:
    """Convert a query signal to a clean dict for debug metadata."""
    if query is None:
        return {}
    d = {"sort": query.sort.value}
    if query.product:                  d["product"] = query.product
    if query.category:                 d["category"] = query.category
    if query.brand:                    d["brand"] = query.brand
    if query.model:                    d["model"] = query.model
    if query.price_min is not None:    d["price_min"] = query.price_min
    if query.price_max is not None:    d["price_max"] = query.price_max
    if query.attributes:               d["attributes"] = list(query.attributes)
    if query.in_stock_only:            d["in_stock_only"] = True
    if query.offset:                   d["offset"] = query.offset
    return d


def decision_to_dict(decision: Optional[DialogueDecision]) -> dict:
    if decision is None:
        return {}
    d = {"response_type": decision.response_type.value}
    if decision.ask_clarification:
        d["ask_clarification"] = decision.ask_clarification
    if decision.cross_sell:
        d["cross_sell"] = list(decision.cross_sell)
    return d
