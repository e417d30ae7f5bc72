"""
Query Builder — merges classifier output, extracted signals and session
memory into the QuerySignal the catalog executor runs.
"""

from typing import Optional

from core.session import SessionState
from models import CanonicalDictionary, QuerySignal
from signal_extractor import extract_price_signals, extract_slots


def build_query(
    base: QuerySignal,
    text: str,
    session_state: Optional[SessionState],
    canon: Optional[CanonicalDictionary] = None,
    price_only_followup: bool = False,
) -> QuerySignal:
    """
    Merge order: intent product/category → price/sort → model, brand, attributes.

    A price-only follow-up inherits the session focus/category. The in-stock
    flag is only ever copied from *base*; price talk does not imply it.
    """
    query = QuerySignal(
        product=base.product,
        category=base.category,
        in_stock_only=True if base.in_stock_only else None,
    )

    # ─── Step 1: inherit focus for "e mais barato?" style turns ───
    if price_only_followup and session_state and not (query.product or query.category):
        query.product = session_state.focus
        query.category = session_state.category

    # ─── Step 2: price bounds and sort ───
    price = extract_price_signals(text)
    query.price_min = price.price_min
    query.price_max = price.price_max
    if price.sort is not None:
        query.sort = price.sort
    if price.offset:
        query.offset = price.offset

    # ─── Step 3: model / brand / attributes ───
    slots = extract_slots(text)
    query.model = slots.model
    if slots.brand and not (canon and slots.brand in canon.product_canon):
        query.brand = slots.brand
    for attribute in slots.attributes:
        query.add_attribute(attribute)

    return query
