"""
Signal Extractor — price bounds, sort order, model, brand and attribute slots.

Price rules work on accent-folded text that keeps punctuation so amounts such
as "R$ 1.299,90" survive; slot rules work on fully normalized text.
"""

import re
from typing import Dict, List, Optional, Tuple

from models import PriceSignals, SlotExtraction, SortKey
from text_normalizer import fold, normalize


# ═══════════════════════════════════════════
# MONEY
# ═══════════════════════════════════════════

_CURRENCY_RE = re.compile(r'(r\$|us\$|usd|brl|gs\.?|\$|€)')
_AMOUNT = r'((?:r\$|us\$|usd|gs\.?|\$|€)?\s*\d[\d.,]*(?:\s*(?:k|mil)\b)?)'
_NUMBER_RE = re.compile(r'(\d[\d.,]*)\s*(k|mil)?\b')
_DOT_THOUSANDS_RE = re.compile(r'^\d{1,3}(\.\d{3})+$')
_COMMA_THOUSANDS_RE = re.compile(r'^\d{1,3}(,\d{3}){2,}$')
_SINGLE_COMMA_GROUP_RE = re.compile(r'^\d{1,3},\d{3}$')
_DOLLAR_RE = re.compile(r'(?:us\$|usd|(?<!r)\$)')
_CURRENCY_AMOUNT_RE = re.compile(r'(?:r\$|us\$|usd|gs\.?|\$|€)\s*\d')


def parse_money(text: str) -> Optional[float]:
    """
    Parse a monetary amount: "R$ 1.234,56" → 1234.56, "3.000" → 3000.0,
    "2,5 mil" → 2500.0, "1.5k" → 1500.0. Returns None when nothing sensible
    can be read.
    """
    if not text:
        return None
    folded = fold(text)
    dollars = bool(_DOLLAR_RE.search(folded))
    t = _CURRENCY_RE.sub(" ", folded)
    m = _NUMBER_RE.search(t)
    if not m:
        return None

    raw = m.group(1).rstrip(".,")
    multiplier = 1000.0 if m.group(2) else 1.0

    if "." in raw and "," in raw:
        if raw.rfind(",") > raw.rfind("."):
            raw = raw.replace(".", "").replace(",", ".")
        else:
            raw = raw.replace(",", "")
    elif "," in raw:
        # "$1,000" is a thousand dollars; "1,000" alone stays a decimal
        if _COMMA_THOUSANDS_RE.match(raw) or (dollars and _SINGLE_COMMA_GROUP_RE.match(raw)):
            raw = raw.replace(",", "")
        else:
            raw = raw.replace(",", ".")
    elif "." in raw and _DOT_THOUSANDS_RE.match(raw):
        raw = raw.replace(".", "")

    try:
        value = float(raw) * multiplier
    except ValueError:
        return None
    return value if value >= 0 else None


# ═══════════════════════════════════════════
# PRICE & SORT SIGNALS
# ═══════════════════════════════════════════

ORDINALS = {
    "segundo": 2, "segunda": 2,
    "terceiro": 3, "terceira": 3, "tercero": 3, "tercera": 3,
    "quarto": 4, "quarta": 4, "cuarto": 4, "cuarta": 4,
    "quinto": 5, "quinta": 5,
}

_NTH_RE = re.compile(
    r'\b(' + "|".join(ORDINALS) + r')\s+(?:mais|mas)\s+(barat[oa]s?|economic[oa]s?|car[oa]s?)\b'
)
_CHEAPEST_RE = re.compile(
    r'\b(?:mais|mas)\s+(?:barat|economic)'
    r'|\bem\s+conta\b'
    r'|\bbarat(?:o|a|os|as|inho|inha)\b'
    r'|\bmenor(?:es)?\s+prec'
    r'|\bprecio\s+bajo\b|\bpreco\s+baixo\b'
)
_PRICIEST_RE = re.compile(
    r'\b(?:mais|mas)\s+car[oa]s?\b'
    r'|\bpremium\b'
    r'|\btop\s+de\s+linha\b'
    r'|\bgama\s+alta\b'
    r'|\bmaior(?:es)?\s+prec'
)
_RANGE_RE = re.compile(r'\bentre\s+' + _AMOUNT + r'\s+(?:e|y|a)\s+' + _AMOUNT)
_MAX_RE = re.compile(
    r'\b(?:ate|hasta|por\s+menos\s+de|menos\s+de|abaixo\s+de|no\s+maximo|maximo)\s*(?:de\s+)?' + _AMOUNT
)
_MIN_RE = re.compile(
    r'\b(?:a\s+partir\s+de|desde|no\s+minimo|minimo|acima\s+de|mais\s+de|mas\s+de)\s*' + _AMOUNT
)

PRICE_PHRASE_PATTERNS = (_RANGE_RE, _MAX_RE, _MIN_RE)


def _sort_signal(t: str) -> Tuple[Optional[SortKey], Optional[int]]:
    nth = _NTH_RE.search(t)
    if nth:
        ordinal = ORDINALS[nth.group(1)]
        sort = SortKey.PRICE_DESC if nth.group(2).startswith("car") else SortKey.PRICE_ASC
        return sort, ordinal - 1
    if _CHEAPEST_RE.search(t):
        return SortKey.PRICE_ASC, None
    if _PRICIEST_RE.search(t):
        return SortKey.PRICE_DESC, None
    return None, None


def extract_price_signals(text: str) -> PriceSignals:
    """Price bounds and sort preference. Malformed amounts are skipped."""
    t = fold(text)
    signals = PriceSignals()
    if not t:
        return signals

    signals.sort, signals.offset = _sort_signal(t)

    rng = _RANGE_RE.search(t)
    if rng:
        low, high = parse_money(rng.group(1)), parse_money(rng.group(2))
        if low is not None and high is not None:
            signals.price_min, signals.price_max = low, high

    if signals.price_max is None:
        m = _MAX_RE.search(t)
        if m:
            signals.price_max = parse_money(m.group(1))
    if signals.price_min is None:
        m = _MIN_RE.search(t)
        if m:
            signals.price_min = parse_money(m.group(1))

    if (
        signals.price_min is not None and signals.price_max is not None
        and signals.price_min > signals.price_max
    ):
        signals.price_min, signals.price_max = signals.price_max, signals.price_min
    return signals


def has_price_intent(text: str) -> bool:
    """True when the message talks about price, even without a product."""
    t = fold(text)
    if not t:
        return False
    if not extract_price_signals(t).is_empty():
        return True
    return bool(_CURRENCY_AMOUNT_RE.search(t))


def strip_price_phrases(text: str) -> str:
    """Folded text with every price-bound phrase removed."""
    t = fold(text)
    for pattern in PRICE_PHRASE_PATTERNS:
        t = pattern.sub(" ", t)
    return _CURRENCY_AMOUNT_RE.sub(" ", t)


# ═══════════════════════════════════════════
# STOCK
# ═══════════════════════════════════════════

_IN_STOCK_RE = re.compile(
    r'\b(?:em\s+estoque|no\s+estoque|pronta\s+entrega|disponivel|disponiveis'
    r'|en\s+stock|disponible|disponibles|entrega\s+inmediata)\b'
)


def wants_in_stock(text: str) -> bool:
    return bool(_IN_STOCK_RE.search(normalize(text)))


# ═══════════════════════════════════════════
# SLOTS
# ═══════════════════════════════════════════

# (name, pattern); group 1 is the model string.
BRAND_MODEL_PATTERNS = (
    ("iphone", re.compile(r'\biphone\s+(\d{1,2}(?:\s+(?:pro\s+max|pro|plus|mini))?|se|xr|xs|x)\b')),
    ("galaxy", re.compile(r'\bgalaxy\s+((?:[asmz]\d{1,3}|note\s+\d{1,2})(?:\s+(?:ultra|plus|fe))?|z\s+(?:flip|fold)\s*\d?)\b')),
    ("redmi", re.compile(r'\bredmi\s+(note\s+\d{1,2}(?:\s+pro)?|\d{1,2}[a-z]?)\b')),
    ("moto", re.compile(r'\bmoto\s+([gez]\s?\d{1,3}(?:\s+(?:plus|power|play))?)\b')),
    ("dji", re.compile(r'\b(?:dji\s+)?((?:mavic|mini|air|avata)\s+\d(?:\s+pro)?)\b')),
)

_NUMERIC_MODEL_RE = re.compile(r'\b(\d{2,4})\b(?!\s*(?:gb|tb|mb|v|w|mah|ml|hz|pol|polegadas|pulgadas|kg|cm|mm|l|reais|real|dolares|mil|k)\b)')

KNOWN_BRANDS: Dict[str, str] = {
    "apple": "apple", "samsung": "samsung", "xiaomi": "xiaomi", "motorola": "motorola",
    "lg": "lg", "sony": "sony", "dji": "dji", "nike": "nike", "adidas": "adidas",
    "puma": "puma", "chanel": "chanel", "dior": "dior", "natura": "natura",
    "boticario": "boticario", "o boticario": "boticario", "philips": "philips",
    "brastemp": "brastemp", "electrolux": "electrolux", "consul": "consul",
    "dell": "dell", "lenovo": "lenovo", "asus": "asus", "acer": "acer", "hp": "hp",
    "jbl": "jbl", "havaianas": "havaianas", "zara": "zara", "tcl": "tcl",
}

COLORS: Dict[str, str] = {
    "preto": "preto", "preta": "preto", "negro": "preto", "negra": "preto", "black": "preto",
    "branco": "branco", "branca": "branco", "blanco": "branco", "blanca": "branco", "white": "branco",
    "azul": "azul", "blue": "azul",
    "vermelho": "vermelho", "vermelha": "vermelho", "rojo": "vermelho", "roja": "vermelho", "red": "vermelho",
    "verde": "verde", "green": "verde",
    "rosa": "rosa", "pink": "rosa",
    "cinza": "cinza", "gris": "cinza", "gray": "cinza", "grey": "cinza",
    "dourado": "dourado", "dourada": "dourado", "dorado": "dourado", "gold": "dourado",
    "prata": "prata", "prateado": "prata", "plateado": "prata", "silver": "prata",
    "amarelo": "amarelo", "amarela": "amarelo", "amarillo": "amarelo", "yellow": "amarelo",
    "roxo": "roxo", "roxa": "roxo", "morado": "roxo", "purple": "roxo",
    "bege": "bege", "beige": "bege",
    "marrom": "marrom", "marron": "marrom", "brown": "marrom",
}

GENDERS: Dict[str, str] = {
    "masculino": "masculino", "masculina": "masculino", "hombre": "masculino",
    "feminino": "feminino", "feminina": "feminino", "mujer": "feminino",
    "unissex": "unissex", "unisex": "unissex",
}

_CAPACITY_RE = re.compile(r'\b(\d{1,4})\s*(gb|tb)\b')
_RESOLUTION_RE = re.compile(r'\b(4k|8k|full\s*hd|uhd|qled|oled)\b')
_VOLTAGE_RE = re.compile(r'\b(110|127|220)\s*v\b|\b(bivolt)\b')
_SCREEN_RE = re.compile(r'\b(\d{2})\s*(?:polegadas|pulgadas|pol)\b')
_SIZE_AFTER_WORD_RE = re.compile(r'\b(?:tamanho|talla|tam|numero)\s+(pp|p|m|g|gg|xg|xs|s|l|xl|xxl|\d{2})\b')
_SIZE_CODE_RE = re.compile(r'\b(pp|gg|xg|xxl|xl)\b')


def _find_brand(t: str) -> Optional[str]:
    padded = f" {t} "
    for surface in sorted(KNOWN_BRANDS, key=len, reverse=True):
        if f" {surface} " in padded:
            return KNOWN_BRANDS[surface]
    return None


def extract_attributes(t: str) -> List[str]:
    """Attribute slots from normalized text, in order of discovery."""
    found: List[str] = []

    def _add(value: str):
        value = normalize(value)
        if value and value not in found:
            found.append(value)

    for token in t.split():
        if token in COLORS:
            _add(COLORS[token])
        if token in GENDERS:
            _add(GENDERS[token])

    for m in _CAPACITY_RE.finditer(t):
        _add(f"{m.group(1)}{m.group(2)}")
    for m in _RESOLUTION_RE.finditer(t):
        _add("full hd" if m.group(1).startswith("full") else m.group(1))
    for m in _VOLTAGE_RE.finditer(t):
        _add(m.group(2) or f"{m.group(1)}v")
    for m in _SCREEN_RE.finditer(t):
        _add(f"{m.group(1)} polegadas")
    for m in _SIZE_AFTER_WORD_RE.finditer(t):
        _add(m.group(1))
    for m in _SIZE_CODE_RE.finditer(t):
        _add(m.group(1))
    return found


def extract_model(t: str) -> Optional[str]:
    """Brand-model patterns first, then a bare 2-4 digit model number."""
    for _name, pattern in BRAND_MODEL_PATTERNS:
        m = pattern.search(t)
        if m:
            return m.group(1)
    # Capacity/voltage/resolution numbers are attributes, not models.
    cleaned = _CAPACITY_RE.sub(" ", t)
    cleaned = _VOLTAGE_RE.sub(" ", cleaned)
    cleaned = _SCREEN_RE.sub(" ", cleaned)
    cleaned = _SIZE_AFTER_WORD_RE.sub(" ", cleaned)
    m = _NUMERIC_MODEL_RE.search(cleaned)
    return m.group(1) if m else None


def extract_slots(text: str) -> SlotExtraction:
    """Model, brand and attribute slots. Numbers inside price phrases are ignored."""
    t = normalize(strip_price_phrases(text))
    return SlotExtraction(
        model=extract_model(t),
        brand=_find_brand(t),
        attributes=extract_attributes(t),
    )
