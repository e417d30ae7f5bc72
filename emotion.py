"""
Lightweight emotion tagging of a single message (PT/ES).

The tag is stored on the session as last_emotion and only steers the reply
tone; it never changes what is searched.
"""

import re
from typing import Dict, List, Optional, Tuple

from models import EmotionTag, ResponseType
from text_normalizer import fold

# (emotion, polarity weight, patterns) in priority order.
EMOTION_PATTERNS: List[Tuple[str, float, Tuple[re.Pattern, ...]]] = [
    ("frustration", -0.4, (
        re.compile(r'\b(?:nao|no)\s+(?:encontr|ach|consig|funciona|serve)'),
        re.compile(r'\b(?:dificil|complicado|confuso|cansad[oa]|irritad[oa]|horrivel|pessimo)\b'),
    )),
    ("excitement", 0.3, (
        re.compile(r'\b(?:adorei|amei|perfeito|incrivel|otimo|genial|me\s+encanta)\b'),
        re.compile(r'\bque\s+(?:legal|bom|lindo)\b'),
        re.compile(r'!{2,}|\b(?:wow|uau)\b'),
    )),
    ("uncertainty", -0.1, (
        re.compile(r'\b(?:nao\s+sei|no\s+se|talvez|tal\s+vez|acho\s+que|sera\s+que|duvida|quem\s+sabe)\b'),
        re.compile(r'\?{2,}'),
    )),
    ("urgency", 0.0, (
        # bare "agora"/"ja"/"rapido" are too common ("ja tenho", "carregamento rapido")
        re.compile(r'\b(?:urgente|urgencia|pressa|emergencia|hoy\s+mismo|para\s+ontem|rapidinho)\b'),
        re.compile(r'\b(?:preciso|necesito)\s+(?:(?:d[eo]\s+\w+\s+)?(?:agora|ja|hoje|hoy|ya))\b'),
        re.compile(r'\b(?:pra|para)\s+ja\b|\bagora\s+mesmo\b|\bja\s+ja\b|\bahora\s+mismo\b'),
        re.compile(r'\b(?:o\s+quanto|cuanto)\s+antes\b|\bbem\s+rapido\b'),
    )),
    ("price_sensitivity", -0.1, (
        re.compile(r'\b(?:caro|barat[oa]|desconto|descuento|promocao|promocion|oferta|orcamento|presupuesto)\b'),
        re.compile(r'\b(?:mais\s+em\s+conta|economic[oa])\b'),
    )),
    ("satisfaction", 0.3, (
        re.compile(r'\b(?:obrigad[oa]|valeu|gracias|ajudou|util|satisfeit[oa]|recomendo|aprovado)\b'),
    )),
]

# Emotion → naturalization tone
EMOTION_TONES: Dict[str, str] = {
    "frustration": "empatico",
    "excitement": "entusiasmado",
    "uncertainty": "consultivo",
    "urgency": "amigavel",
    "price_sensitivity": "consultivo",
    "satisfaction": "entusiasmado",
}

TONES = ("vendedor_descontraido", "consultivo", "empatico", "entusiasmado", "amigavel")


def detect_emotion(message: str) -> EmotionTag:
    """Tag the strongest emotion in *message*; "neutral" when nothing matches."""
    t = fold(message)
    tag = EmotionTag()
    if not t:
        return tag

    score = 0.0
    for emotion, weight, patterns in EMOTION_PATTERNS:
        if any(p.search(t) for p in patterns):
            tag.matched.append(emotion)
            score += weight
            if emotion == "urgency":
                tag.urgency = True

    if tag.matched:
        tag.primary = tag.matched[0]
    if score > 0.1:
        tag.polarity = "positive"
    elif score < -0.1:
        tag.polarity = "negative"
    return tag


def tone_for(emotion: Optional[EmotionTag], response_type: ResponseType, default: str) -> str:
    """
    Pick the naturalization tone. Emotion wins; otherwise results get an
    enthusiastic tone and misses an empathetic one.
    """
    if emotion and emotion.primary in EMOTION_TONES:
        return EMOTION_TONES[emotion.primary]
    if response_type == ResponseType.RESULTS:
        return "entusiasmado"
    if response_type in (ResponseType.NOT_FOUND, ResponseType.CLARIFICATION):
        return "empatico"
    return default if default in TONES else "vendedor_descontraido"
