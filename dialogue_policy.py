"""
Dialogue Policy — decides between showing results, asking one clarifying
question, and offering cross-sell suggestions.
"""

from typing import Dict, List, Optional

from app_config import MAX_CROSS_SELL, REPLY_TONE, SHORT_MESSAGE_CHARS
from emotion import tone_for
from models import DialogueDecision, EmotionTag, QuerySignal, ResponseType
from text_normalizer import normalize

# Product or category → related items, per language.
CROSS_SELL_MAP: Dict[str, Dict[str, List[str]]] = {
    "pt": {
        "celular": ["capas para celular", "carregadores", "fones de ouvido", "películas"],
        "iphone": ["capas para iphone", "carregadores", "fones de ouvido", "películas"],
        "tv": ["soundbars", "suportes de parede", "cabos hdmi"],
        "smart tv": ["soundbars", "suportes de parede", "cabos hdmi"],
        "notebook": ["mouses", "mochilas para notebook", "suportes para notebook"],
        "informatica": ["mouses", "teclados", "hubs usb"],
        "perfume": ["kits presente", "hidratantes", "miniaturas"],
        "perfumaria": ["kits presente", "hidratantes", "maquiagem"],
        "roupa": ["cintos", "bolsas", "acessórios de moda"],
        "drone": ["baterias extras", "hélices sobressalentes", "cartões sd"],
        "calcado": ["meias", "palmilhas", "limpadores de tênis"],
        "eletrodomestico": ["extensões filtradas", "garantia estendida", "utensílios de cozinha"],
        "audio": ["cases para fone", "adaptadores", "caixas de som"],
    },
    "es": {
        "celular": ["fundas para celular", "cargadores", "auriculares", "protectores de pantalla"],
        "iphone": ["fundas para iphone", "cargadores", "auriculares", "protectores de pantalla"],
        "tv": ["barras de sonido", "soportes de pared", "cables hdmi"],
        "smart tv": ["barras de sonido", "soportes de pared", "cables hdmi"],
        "notebook": ["mouses", "mochilas para notebook", "soportes para notebook"],
        "informatica": ["mouses", "teclados", "hubs usb"],
        "perfume": ["kits de regalo", "cremas hidratantes", "miniaturas"],
        "perfumaria": ["kits de regalo", "cremas hidratantes", "maquillaje"],
        "roupa": ["cinturones", "carteras", "accesorios de moda"],
        "drone": ["baterías extra", "hélices de repuesto", "tarjetas sd"],
        "calcado": ["medias", "plantillas", "limpiadores de zapatillas"],
        "eletrodomestico": ["zapatillas eléctricas", "garantía extendida", "utensilios de cocina"],
        "audio": ["estuches para auriculares", "adaptadores", "parlantes"],
    },
}

GENERIC_CROSS_SELL: Dict[str, List[str]] = {
    "pt": ["acessórios", "produtos relacionados", "ofertas especiais"],
    "es": ["accesorios", "productos relacionados", "ofertas especiales"],
}

CLARIFY_QUESTIONS: Dict[str, Dict[str, str]] = {
    "pt": {
        "category": "Qual produto de {category} você procura? Me diz modelo, marca ou faixa de preço.",
        "vague": "Pode me dizer qual produto você procura? Ex.: iPhone 15, perfume, tênis até R$ 300.",
        "followup": "Sobre qual produto você quer ver preços? Me diz o nome que eu busco.",
    },
    "es": {
        "category": "¿Qué producto de {category} buscas? Dime modelo, marca o rango de precio.",
        "vague": "¿Me dices qué producto buscas? Ej.: iPhone 15, perfume, zapatillas hasta 300.",
        "followup": "¿De qué producto quieres ver precios? Dime el nombre y lo busco.",
    },
}


def _lang(lang: Optional[str]) -> str:
    return lang if lang in CLARIFY_QUESTIONS else "pt"


def clarification_question(query: Optional[QuerySignal], lang: str = "pt", reason: Optional[str] = None) -> str:
    questions = CLARIFY_QUESTIONS[_lang(lang)]
    if reason is None:
        reason = "category" if query and query.category and not query.product else "vague"
    return questions[reason].format(category=(query.category if query else "") or "")


def cross_sell_for(query: QuerySignal, lang: str = "pt", limit: int = MAX_CROSS_SELL) -> List[str]:
    """Related items for the product (then category), generic fallback, deduplicated."""
    table = CROSS_SELL_MAP[_lang(lang)]
    candidates: List[str] = []
    for key in (query.product, query.category):
        if key and normalize(key) in table:
            candidates.extend(table[normalize(key)])
    if not candidates:
        candidates = list(GENERIC_CROSS_SELL[_lang(lang)])

    suggestions: List[str] = []
    for suggestion in candidates:
        if suggestion not in suggestions:
            suggestions.append(suggestion)
        if len(suggestions) >= limit:
            break
    return suggestions


def needs_clarification(query: QuerySignal, message: str) -> bool:
    """A miss is ambiguous when it is category-only, too short, or resolved nothing."""
    if query.category and not query.product:
        return True
    if not query.product and len(normalize(message)) < SHORT_MESSAGE_CHARS:
        return True
    return not query.product and not query.category


def decide(
    result_count: int,
    query: QuerySignal,
    last_focus: Optional[str],
    message: str = "",
    lang: str = "pt",
) -> DialogueDecision:
    if result_count <= 0:
        ask = clarification_question(query, lang) if needs_clarification(query, message) else None
        return DialogueDecision(ResponseType.NOT_FOUND, ask_clarification=ask)

    # Same product as the previous turn: the user already saw these suggestions.
    if query.product and last_focus and query.product == last_focus:
        return DialogueDecision(ResponseType.RESULTS)
    return DialogueDecision(ResponseType.RESULTS, cross_sell=cross_sell_for(query, lang))


def greeting_decision() -> DialogueDecision:
    return DialogueDecision(ResponseType.GREETING)


def clarification_decision(lang: str = "pt", reason: str = "vague") -> DialogueDecision:
    return DialogueDecision(
        ResponseType.CLARIFICATION,
        ask_clarification=clarification_question(None, lang, reason=reason),
    )


def decide_tone(decision: DialogueDecision, emotion: Optional[EmotionTag], default: str = REPLY_TONE) -> str:
    return tone_for(emotion, decision.response_type, default)
