"""
Product Formatter

Converts CatalogItem records to reply lines and to the JSON response format.
"""

from typing import List, Optional

from models import CatalogItem

CURRENCY_SYMBOLS = {
    "BRL": "R$",
    "USD": "US$",
    "PYG": "Gs.",
    "ARS": "AR$",
    "EUR": "€",
}

STOCK_BADGES = {
    "pt": {True: "✅ Em estoque", False: "❌ Fora de estoque", None: "❔ Consultar estoque"},
    "es": {True: "✅ En stock", False: "❌ Sin stock", None: "❔ Consultar stock"},
}


def format_price(value: Optional[float], currency: str = "BRL") -> str:
    """pt-BR style amount: 1234.5 → "R$ 1.234,50". Missing price → "sob consulta"."""
    if value is None:
        return "sob consulta"
    symbol = CURRENCY_SYMBOLS.get((currency or "BRL").upper(), (currency or "").upper())
    if (currency or "").upper() == "PYG":
        body = f"{value:,.0f}".replace(",", ".")
    else:
        body = f"{value:,.2f}".replace(",", "_").replace(".", ",").replace("_", ".")
    return f"{symbol} {body}".strip()


def format_item_line(item: CatalogItem, lang: str = "pt") -> str:
    """Three-line listing block: title/brand, price, stock badge."""
    badges = STOCK_BADGES.get(lang, STOCK_BADGES["pt"])
    title = f"🔹 **{item.title}**"
    if item.brand:
        title += f" - {item.brand}"
    return "\n".join([
        title,
        f"💰 {format_price(item.price, item.currency)}",
        badges[item.in_stock if item.in_stock in (True, False) else None],
    ])


def format_listing(items: List[CatalogItem], lang: str = "pt", limit: int = 5) -> str:
    return "\n\n".join(format_item_line(item, lang) for item in items[:limit])


def item_to_dict(item: CatalogItem) -> dict:
    """Convert a catalog item to the clean response format."""
    return {
        "id": item.id,
        "title": item.title,
        "category": item.category,
        "brand": item.brand,
        "price": item.price,
        "price_formatted": format_price(item.price, item.currency),
        "currency": item.currency,
        "in_stock": item.in_stock,
        "attributes": sorted(item.attributes),
    }
