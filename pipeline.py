"""
Shopping assistant pipeline.

One call to ShoppingAssistant.handle_message() runs one conversational turn:

    normalize → classify → extract signals → build query → run catalog query
    → dialogue policy → assemble reply → (optional) naturalize

The session store is the only shared mutable state. The whole turn runs
inside ``session_store.turn(session_id)`` so concurrent messages for the same
session are serialized and an aborted turn commits nothing.
"""

import time
import threading
from datetime import datetime
from typing import Any, Dict, List, Optional, Tuple
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from app_config import DEFAULT_LANG, MAX_RESPONSE_ITEMS, TIMEZONE
from canon_store import CanonStore, related_products, suggest_products, unresolved_terms
from chat_logger import get_logger, sanitize_log_string
from classifier import classify
from core.helpers import decision_to_dict, query_to_dict
from core.session import SessionState, SessionStore
from core.unknown_terms import UnknownTermTracker
from dialogue_policy import clarification_decision, decide, decide_tone, greeting_decision
from emotion import detect_emotion
from models import CatalogItem, ClassifiedResult, DialogueDecision, Intent, QuerySignal, ResponseType
from naturalizer import NaturalizationInput, Naturalizer, TurnCancelled
from query_builder import build_query
from response_generator import (
    RULE_FAMILIES,
    assemble_clarification_reply,
    assemble_conversational_reply,
    assemble_search_reply,
)
from services.catalog_provider import CatalogProvider
from services.catalog_query import run_query
from services.product_formatter import item_to_dict
from text_normalizer import detect_language, normalize

logger = get_logger()

SUPPORTED_LANGS = ("pt", "es")


class InvalidRequest(ValueError):
    """Client error: the message cannot be processed (empty, missing session)."""


def current_time_text(tz_name: str = TIMEZONE, now: Optional[datetime] = None) -> str:
    """HH:MM in the configured timezone (UTC when the zone is unknown)."""
    try:
        tz = ZoneInfo(tz_name)
    except (ZoneInfoNotFoundError, ValueError):
        logger.warning(f"⚠️ Unknown TIMEZONE '{tz_name}' — using UTC")
        tz = ZoneInfo("UTC")
    moment = now.astimezone(tz) if now else datetime.now(tz)
    return moment.strftime("%H:%M")


class ShoppingAssistant:
    """Wires the pipeline stages to their injected collaborators."""

    def __init__(
        self,
        session_store: SessionStore,
        canon_store: CanonStore,
        catalog_provider: CatalogProvider,
        naturalizer: Optional[Naturalizer] = None,
        unknown_terms: Optional[UnknownTermTracker] = None,
        clock=time.time,
    ):
        self.session_store = session_store
        self.canon_store = canon_store
        self.catalog_provider = catalog_provider
        self.naturalizer = naturalizer
        self.unknown_terms = unknown_terms if unknown_terms is not None else UnknownTermTracker(clock=clock)
        self._clock = clock

    # ─── collaborators ───

    def load_catalog(self) -> Tuple[List[CatalogItem], bool]:
        """Catalog snapshot, or ([], False) when the provider fails."""
        try:
            return self.catalog_provider.load(), True
        except Exception as e:
            logger.error(f"❌ Catalog unavailable: {type(e).__name__}: {e}")
            return [], False

    def _resolve_lang(self, requested: Optional[str], message: str, state: SessionState) -> str:
        if requested in SUPPORTED_LANGS:
            return requested
        fallback = state.lang if state.message_count > 1 else DEFAULT_LANG
        return detect_language(message, default=fallback)

    # ─── main entry point ───

    def handle_message(
        self,
        message: Optional[str],
        session_id: Optional[str],
        lang: Optional[str] = None,
        cancel_event: Optional[threading.Event] = None,
    ) -> Dict[str, Any]:
        """
        Run one turn and return ``{ok, text, items, debug, sessionId}``.

        Raises:
            InvalidRequest: empty message or session id (nothing is touched)
            TurnCancelled: *cancel_event* was set; the session is not committed
        """
        message = (message or "").strip()
        if not message:
            raise InvalidRequest("message is required")
        if not session_id:
            raise InvalidRequest("sessionId is required")

        start_time = time.time()
        canon = self.canon_store.load()

        with self.session_store.turn(session_id) as state:
            # ─── Step 1: session bookkeeping, language and emotion ───
            state.register_message(self._clock())
            turn_lang = self._resolve_lang(lang, message, state)
            state.lang = turn_lang
            emotion = detect_emotion(message)
            state.last_emotion = emotion.primary
            logger.info(
                f"Step 1: session={session_id} | msg#{state.message_count} visit#{state.visit_count} "
                f"| lang={turn_lang} | emotion={emotion.primary}"
            )

            # ─── Step 2: classify ───
            result = classify(message, canon)
            logger.info(
                f"Step 2: intent={result.intent.value} | rule={result.rule} "
                f"| confidence={result.confidence} | matched={result.matched_term}"
            )

            query: Optional[QuerySignal] = None
            items: List[CatalogItem] = []
            catalog_ok: Optional[bool] = None

            if result.rule in RULE_FAMILIES:
                # ─── Step 3a: conversational reply, no catalog access ───
                decision = greeting_decision()
                now_text = current_time_text() if result.intent == Intent.TIME_QUERY else ""
                text = assemble_conversational_reply(state, result.rule, turn_lang, now_text)
                logger.info(f"Step 3: conversational reply ({result.rule})")

            elif result.intent == Intent.UNKNOWN:
                decision = DialogueDecision(ResponseType.CLARIFICATION)
                suggestions = suggest_products(message, canon)
                self.unknown_terms.record_all(unresolved_terms(message, canon), context=message)
                text = assemble_conversational_reply(state, None, turn_lang, suggestions=suggestions)
                logger.info(f"Step 3: unknown intent → fallback | suggestions={suggestions}")

            elif result.price_only_followup and not (state.focus or state.category):
                decision = clarification_decision(turn_lang, reason="followup")
                text = assemble_clarification_reply(state, decision, turn_lang)
                logger.info("Step 3: price-only follow-up without focus → clarification")

            else:
                query, items, catalog_ok, decision, text = self._search_turn(
                    state, result, message, canon, turn_lang
                )

            # ─── Step 8: optional naturalization ───
            tone = decide_tone(decision, emotion)
            if self.naturalizer is not None:
                text = self.naturalizer.naturalize(
                    NaturalizationInput(
                        intent=result.intent.value,
                        draft=text,
                        lang=turn_lang,
                        product=query.product if query else None,
                        category=query.category if query else None,
                        model=query.model if query else None,
                        count=len(items) if query else None,
                        cross=list(decision.cross_sell),
                        ask=decision.ask_clarification,
                        user_message=message,
                    ),
                    tone=tone,
                    cancel_event=cancel_event,
                )

            if cancel_event is not None and cancel_event.is_set():
                raise TurnCancelled()

            elapsed_ms = int((time.time() - start_time) * 1000)
            logger.info(
                f"Step 9: reply ready | type={decision.response_type.value} | items={len(items)} "
                f"| tone={tone} | {elapsed_ms}ms"
            )

            return {
                "ok": True,
                "text": text,
                "items": [item_to_dict(i) for i in items[:MAX_RESPONSE_ITEMS]],
                "debug": {
                    "intent": result.intent.value,
                    "rule": result.rule,
                    "confidence": result.confidence,
                    "lang": turn_lang,
                    "emotion": emotion.primary,
                    "tone": tone,
                    "query": query_to_dict(query),
                    "decision": decision_to_dict(decision),
                    "result_count": len(items),
                    "catalog_available": catalog_ok,
                    "focus": state.focus,
                    "elapsed_ms": elapsed_ms,
                },
                "sessionId": session_id,
            }

    def _search_turn(self, state: SessionState, result: ClassifiedResult, message: str, canon, lang: str):
        # ─── Step 3: build query ───
        query = build_query(
            result.base,
            message,
            state,
            canon=canon,
            price_only_followup=result.price_only_followup,
        )
        logger.info(f"Step 3: query={query_to_dict(query)}")

        # ─── Step 4: catalog snapshot ───
        catalog, catalog_ok = self.load_catalog()
        logger.info(f"Step 4: catalog items={len(catalog)} | available={catalog_ok}")

        # ─── Step 5: filter / sort ───
        items = run_query(catalog, query)
        logger.info(f"Step 5: matched={len(items)}")

        # ─── Step 6: dialogue policy ───
        decision = decide(len(items), query, state.focus, message=message, lang=lang)
        logger.info(f"Step 6: decision={decision_to_dict(decision)}")

        # ─── Step 7: assemble ───
        suggestions = None
        if decision.response_type == ResponseType.NOT_FOUND:
            self.unknown_terms.record_all(unresolved_terms(message, canon), context=message)
            suggestions = suggest_products(message, canon) or related_products(
                query.category, canon, exclude=query.product
            )
        text = assemble_search_reply(state, decision, query, items, lang, suggestions=suggestions)
        logger.info(f'Step 7: draft="{sanitize_log_string(text, 120)}"')

        # Focus moves only when this turn named a product or category.
        if result.base.product or result.base.category:
            state.focus = query.product
            state.category = query.category
        state.last_query = normalize(message)
        return query, items, catalog_ok, decision, text
