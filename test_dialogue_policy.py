"""
Tests for the dialogue policy: not-found, clarification, cross-sell and tone.
"""

from dialogue_policy import (
    clarification_decision,
    cross_sell_for,
    decide,
    decide_tone,
    greeting_decision,
    needs_clarification,
)
from emotion import detect_emotion
from models import DialogueDecision, EmotionTag, QuerySignal, ResponseType


class TestDecide:

    def test_no_results_is_not_found(self):
        decision = decide(0, QuerySignal(product="iphone", model="99"), None, message="iphone 99")
        assert decision.response_type == ResponseType.NOT_FOUND
        assert decision.ask_clarification is None
        assert decision.cross_sell == []

    def test_not_found_category_only_asks(self):
        decision = decide(0, QuerySignal(category="drone"), None, message="algo de drones")
        assert decision.response_type == ResponseType.NOT_FOUND
        assert "drone" in decision.ask_clarification

    def test_not_found_short_message_asks(self):
        decision = decide(0, QuerySignal(price_max=100), None, message="ate")
        assert decision.ask_clarification

    def test_results_with_cross_sell(self):
        decision = decide(3, QuerySignal(product="iphone", category="celular"), None)
        assert decision.response_type == ResponseType.RESULTS
        assert decision.cross_sell == ["capas para iphone", "carregadores", "fones de ouvido"]

    def test_cross_sell_capped_and_unique(self):
        items = cross_sell_for(QuerySignal(product="celular", category="celular"))
        assert len(items) == 3
        assert len(set(items)) == 3

    def test_cross_sell_generic_fallback(self):
        items = cross_sell_for(QuerySignal(product="caneca"))
        assert items == ["acessórios", "produtos relacionados", "ofertas especiais"]

    def test_cross_sell_spanish(self):
        items = cross_sell_for(QuerySignal(product="perfume"), lang="es")
        assert items[0] == "kits de regalo"

    def test_repeat_focus_skips_cross_sell(self):
        decision = decide(2, QuerySignal(product="perfume"), "perfume")
        assert decision.response_type == ResponseType.RESULTS
        assert decision.cross_sell == []


class TestClarification:

    def test_needs_clarification(self):
        assert needs_clarification(QuerySignal(category="tv"), "televisores")
        assert needs_clarification(QuerySignal(), "qualquer coisa")
        assert not needs_clarification(QuerySignal(product="drone"), "drone")

    def test_clarification_decision_followup(self):
        decision = clarification_decision("pt", reason="followup")
        assert decision.response_type == ResponseType.CLARIFICATION
        assert "produto" in decision.ask_clarification

    def test_clarification_decision_spanish(self):
        decision = clarification_decision("es")
        assert decision.ask_clarification.startswith("¿")

    def test_greeting_decision(self):
        assert greeting_decision().response_type == ResponseType.GREETING


class TestTone:

    def test_emotion_drives_tone(self):
        emotion = detect_emotion("que droga, não acho nada")
        assert decide_tone(DialogueDecision(ResponseType.RESULTS), emotion) == "empatico"

    def test_results_without_emotion(self):
        assert decide_tone(DialogueDecision(ResponseType.RESULTS), EmotionTag()) == "entusiasmado"

    def test_not_found_without_emotion(self):
        assert decide_tone(DialogueDecision(ResponseType.NOT_FOUND), None) == "empatico"

    def test_greeting_uses_default(self):
        decision = DialogueDecision(ResponseType.GREETING)
        assert decide_tone(decision, None, default="amigavel") == "amigavel"
        assert decide_tone(decision, None, default="nao-existe") == "vendedor_descontraido"
