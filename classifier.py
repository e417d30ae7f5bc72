"""
Intent Classifier for the Vendedor Chat assistant.

Priority order:
  1. Conversational rules (greeting, thanks, time, help, who-am-i)
  2. Canonical product / category resolution
  3. Price-only follow-up ("mais barato", "até 500")
  4. UNKNOWN
"""

import re
from dataclasses import dataclass
from typing import Optional, Tuple

from canon_store import resolve
from models import CanonicalDictionary, ClassifiedResult, Intent, QuerySignal
from signal_extractor import has_price_intent, wants_in_stock
from text_normalizer import normalize


@dataclass(frozen=True)
class IntentRule:
    """A named, independently testable intent pattern (matched on normalized text)."""
    name: str
    intent: Intent
    pattern: re.Pattern
    confidence: float = 0.99

    def matches(self, text: str) -> bool:
        return bool(self.pattern.search(normalize(text)))


# ═══════════════════════════════════════════
# CONVERSATIONAL RULES (evaluated in order)
# Greeting and thanks must be the whole message so "oi, quero um iphone"
# still goes to product search.
# ═══════════════════════════════════════════

_GREETING_WORDS = (
    r'(?:oi+|ola|ole|hola|hey|hello|hi|e ai|eai|opa|salve|'
    r'bom dia|boa tarde|boa noite|buenos dias|buenas tardes|buenas noches|buenas|'
    r'tudo bem|tudo bom|como vai|como estas|que tal)'
)

INTENT_RULES: Tuple[IntentRule, ...] = (
    IntentRule(
        "greeting",
        Intent.SMALL_TALK,
        re.compile(r'^' + _GREETING_WORDS + r'(?:\s+' + _GREETING_WORDS + r')*(?:\s+(?:amigo|amiga|vendedor|pessoal|tudo bem))?$'),
    ),
    IntentRule(
        "thanks",
        Intent.SMALL_TALK,
        re.compile(r'^(?:muito\s+)?(?:obrigad[oa]|valeu|vlw|brigad[oa]|gracias|muchas gracias|thanks|thank you)(?:\s+\w+){0,2}$'),
    ),
    IntentRule(
        "time_query",
        Intent.TIME_QUERY,
        re.compile(r'\b(?:que horas|qual a hora|que hora es|que hora son|hora atual|horas sao)\b'),
    ),
    IntentRule(
        "help",
        Intent.HELP,
        re.compile(
            r'^(?:ajuda|help|ayuda|socorro|me ajuda|pode me ajudar|preciso de ajuda|'
            r'puedes ayudarme|necesito ayuda)$'
            r'|\b(?:como funciona|o que voce faz|o que vc faz|como usar|'
            r'que puedes hacer|como funcionas)\b'
        ),
    ),
    IntentRule(
        "whoami",
        Intent.WHOAMI,
        re.compile(r'\b(?:quem e voce|quem e vc|quem voce e|voce e um robo|vc e um robo|quien eres|eres un robot|seu nome|como te llamas|qual (?:e )?o seu nome)\b'),
    ),
)

# Confidence for the non-rule outcomes
PRODUCT_CONFIDENCE = 0.9
CATEGORY_CONFIDENCE = 0.75
PRICE_ONLY_CONFIDENCE = 0.6


def match_rule(message: str) -> Optional[IntentRule]:
    text = normalize(message)
    for rule in INTENT_RULES:
        if rule.pattern.search(text):
            return rule
    return None


def classify(message: str, canon: CanonicalDictionary) -> ClassifiedResult:
    """Classify a raw user message into an intent plus a base query signal."""
    text = normalize(message)
    if not text:
        return ClassifiedResult(intent=Intent.UNKNOWN)

    # ─── 1. Conversational rules ───
    rule = match_rule(text)
    if rule:
        return ClassifiedResult(
            intent=rule.intent,
            confidence=rule.confidence,
            rule=rule.name,
        )

    base = QuerySignal()
    if wants_in_stock(message):
        base.in_stock_only = True

    # ─── 2. Product / category resolution ───
    resolution = resolve(text, canon)
    if resolution.product or resolution.category:
        base.product = resolution.product
        base.category = resolution.category
        return ClassifiedResult(
            intent=Intent.PRODUCT_SEARCH,
            base=base,
            confidence=PRODUCT_CONFIDENCE if resolution.product else CATEGORY_CONFIDENCE,
            rule="product" if resolution.product else "category",
            matched_term=resolution.matched,
        )

    # ─── 3. Price-only follow-up ───
    if has_price_intent(message):
        return ClassifiedResult(
            intent=Intent.PRODUCT_SEARCH,
            base=base,
            confidence=PRICE_ONLY_CONFIDENCE,
            rule="price_only",
            price_only_followup=True,
        )

    # ─── 4. Nothing matched ───
    return ClassifiedResult(intent=Intent.UNKNOWN, base=base)
