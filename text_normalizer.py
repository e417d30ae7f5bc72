"""
Text normalization helpers shared by every stage of the pipeline.

All functions are pure and never raise: None or empty input yields "" / [].
"""

import re
import unicodedata
from typing import List

_NON_ALNUM_RE = re.compile(r'[\W_]+')
_SPACES_RE = re.compile(r'\s+')

STOP_WORDS = frozenset({
    # Portuguese
    "a", "o", "as", "os", "um", "uma", "uns", "umas", "de", "do", "da", "dos", "das",
    "em", "no", "na", "nos", "nas", "por", "para", "pra", "pro", "com", "sem", "e",
    "ou", "que", "qual", "quais", "me", "mim", "eu", "voce", "vc", "meu", "minha",
    "seu", "sua", "isso", "esse", "essa", "este", "esta", "tem", "ter", "quero",
    "queria", "gostaria", "procuro", "procurando", "busco", "mostra", "mostrar", "ver",
    "algum", "alguma", "mais", "muito", "bem", "ai", "aqui", "tambem",
    # Spanish
    "el", "la", "los", "las", "un", "unos", "unas", "del", "al", "en", "con",
    "y", "cual", "cuales", "yo", "tu", "usted", "mi", "quiero", "buscando", "hay",
    "tienes", "tiene", "muestrame", "algo", "mas", "muy", "aca",
})

# Words whose trailing "s" is not a plural marker.
INVARIANT_WORDS = frozenset({
    "tenis", "lapis", "pires", "onibus", "gratis", "pais", "jeans", "simples",
    "menos", "mais", "depois", "atlas", "virus", "bonus", "oculos",
})

_SPANISH_MARKERS = frozenset({
    "hola", "quiero", "tienes", "hay", "gracias", "cuanto", "cuesta", "hasta",
    "desde", "muestrame", "usted", "el", "los", "las", "una", "con", "mas",
    "precio", "zapatillas", "buenos", "buenas", "telefono", "barata", "caro",
})
_PORTUGUESE_MARKERS = frozenset({
    "oi", "ola", "voce", "quero", "procuro", "tem", "ate", "obrigado", "obrigada",
    "quanto", "custa", "mais", "pra", "os", "as", "um", "uma", "com", "bom", "boa",
    "tenis", "valeu", "nao", "preco", "celular", "caro",
})


def strip_accents(text: str) -> str:
    decomposed = unicodedata.normalize("NFD", text)
    return "".join(ch for ch in decomposed if unicodedata.category(ch) != "Mn")


def normalize(text: str) -> str:
    """
    Canonical form: lowercase, no diacritics, only letters and digits separated by
    single spaces. Idempotent.
    """
    if not text:
        return ""
    folded = strip_accents(str(text).lower())
    return _NON_ALNUM_RE.sub(" ", folded).strip()


def fold(text: str) -> str:
    """Lowercase and strip accents but keep punctuation (used for money parsing)."""
    if not text:
        return ""
    return _SPACES_RE.sub(" ", strip_accents(str(text).lower())).strip()


def singularize(word: str) -> str:
    """
    PT/ES plural heuristic. First rule that applies wins:
    -oes/-aes -> -ao, -is -> -l, -ns -> -m, -es -> "" (len > 4), -s -> "" (len > 3).
    """
    if not word or word in INVARIANT_WORDS:
        return word or ""
    if word.endswith("oes") or word.endswith("aes"):
        return word[:-3] + "ao"
    if word.endswith("is") and len(word) > 3:
        return word[:-2] + "l"
    if word.endswith("ns") and len(word) > 3:
        return word[:-2] + "m"
    if word.endswith("es") and len(word) > 4:
        return word[:-2]
    if word.endswith("s") and len(word) > 3:
        return word[:-1]
    return word


def tokenize(text: str) -> List[str]:
    """Normalized, singularized tokens with PT/ES stop-words removed."""
    tokens = []
    for raw in normalize(text).split():
        single = singularize(raw)
        if raw in STOP_WORDS or single in STOP_WORDS:
            continue
        tokens.append(single)
    return tokens


def detect_language(text: str, default: str = "pt") -> str:
    """Rough pt/es guess by marker vote. Ties go to *default*."""
    words = normalize(text).split()
    if not words:
        return default
    es = sum(1 for w in words if w in _SPANISH_MARKERS and w not in _PORTUGUESE_MARKERS)
    pt = sum(1 for w in words if w in _PORTUGUESE_MARKERS and w not in _SPANISH_MARKERS)
    joined = " ".join(words)
    if "buenos dias" in joined or "buenas tardes" in joined or "buenas noches" in joined:
        es += 2
    if "bom dia" in joined or "boa tarde" in joined or "boa noite" in joined:
        pt += 2
    if es > pt:
        return "es"
    if pt > es:
        return "pt"
    return default
