"""
Unit tests for the naturalizer.

Covers:
- PII sanitization before text reaches the LLM
- Prompt building and output validation
- LLM client provider handling (HTTP mocked)
- Timeout, failure and cancellation behavior
"""

import threading
import time
from unittest.mock import MagicMock, patch

import pytest
import requests

from naturalizer import (
    LLMClient,
    NaturalizationInput,
    Naturalizer,
    TurnCancelled,
    _sanitize_for_llm,
    build_system_prompt,
    build_user_message,
    is_valid_output,
)

DRAFT = "Encontrei 1 opção(ões) de iPhone 15 pra você 👇\n\n🔹 **iPhone 15 128GB** - Apple\n💰 R$ 2.800,00\n✅ Em estoque"


def _payload(**overrides):
    values = dict(intent="product_search", draft=DRAFT, product="iphone", model="15", count=1)
    values.update(overrides)
    return NaturalizationInput(**values)


class FakeClient:
    """Stands in for LLMClient.chat_completion."""

    def __init__(self, content="", delay=0.0, error=None):
        self.content = content
        self.delay = delay
        self.error = error
        self.calls = []

    def chat_completion(self, system_prompt, user_message):
        self.calls.append((system_prompt, user_message))
        if self.delay:
            time.sleep(self.delay)
        if self.error:
            raise self.error
        return {"content": self.content, "input_tokens": 10, "output_tokens": 20, "latency_ms": 5}


class TestPIISanitization:
    """PII is scrubbed from the user's message."""

    def test_email(self):
        result = _sanitize_for_llm("meu email é joao.silva@example.com")
        assert "[EMAIL]" in result
        assert "joao.silva@example.com" not in result

    def test_cpf(self):
        result = _sanitize_for_llm("cpf 123.456.789-09")
        assert "[CPF]" in result
        assert "123.456.789-09" not in result

    def test_card(self):
        result = _sanitize_for_llm("cartão 1234 5678 9012 3456")
        assert "[CARD]" in result

    def test_phone(self):
        result = _sanitize_for_llm("me liga no (11) 98765-4321")
        assert "[PHONE]" in result
        assert "98765-4321" not in result

    def test_prices_survive(self):
        """Shopping text keeps its numbers."""
        assert _sanitize_for_llm("iphone 15 até 3000") == "iphone 15 até 3000"


class TestPrompts:

    def test_system_prompt_language_and_tone(self):
        prompt = build_system_prompt("empatico", "es")
        assert "espanhol" in prompt
        assert "empático" in prompt

    def test_unknown_tone_uses_default(self):
        assert "descontraído" in build_system_prompt("nao-existe")

    def test_user_message_contains_facts_and_draft(self):
        message = build_user_message(_payload(cross=["capas"], user_message="email a@b.com"))
        assert "produto=iphone" in message
        assert "sugestoes=capas" in message
        assert "[EMAIL]" in message
        assert message.endswith(DRAFT)


class TestValidation:

    def test_too_short(self):
        assert not is_valid_output("ok", DRAFT)

    def test_too_long(self):
        assert not is_valid_output("x" * (3 * len(DRAFT) + 1), DRAFT)

    def test_prompt_echo(self):
        assert not is_valid_output("RASCUNHO: " + DRAFT, DRAFT)

    def test_valid(self):
        assert is_valid_output("Achei o iPhone 15 por R$ 2.800,00, em estoque! 😄", DRAFT)


class TestNaturalizer:

    def test_disabled_returns_draft(self):
        client = FakeClient(content="nunca usado aqui")
        naturalizer = Naturalizer(client=client, enabled=False)
        assert naturalizer.naturalize(_payload()) == DRAFT
        assert client.calls == []

    def test_no_client_is_disabled(self):
        assert Naturalizer(client=None, enabled=True).enabled is False

    def test_rewrite_used(self):
        rewrite = "Olha que achado: iPhone 15 128GB por R$ 2.800,00, em estoque! 👇"
        naturalizer = Naturalizer(client=FakeClient(content=rewrite), enabled=True, timeout=2)
        assert naturalizer.naturalize(_payload(), tone="entusiasmado") == rewrite

    def test_invalid_rewrite_falls_back(self):
        naturalizer = Naturalizer(client=FakeClient(content="ok"), enabled=True, timeout=2)
        assert naturalizer.naturalize(_payload()) == DRAFT

    def test_http_error_falls_back(self):
        client = FakeClient(error=requests.exceptions.ConnectionError("down"))
        naturalizer = Naturalizer(client=client, enabled=True, timeout=2)
        assert naturalizer.naturalize(_payload()) == DRAFT

    @pytest.mark.parametrize("body", [
        {"choices": None},
        ["not", "an", "object"],
        {"choices": [{"message": None}]},
    ])
    @patch("naturalizer.requests.post")
    def test_malformed_provider_body_falls_back(self, mock_post, body):
        response = MagicMock()
        response.json.return_value = body
        mock_post.return_value = response
        naturalizer = Naturalizer(client=LLMClient(provider="openai", api_key="k"), enabled=True, timeout=2)
        assert naturalizer.naturalize(_payload()) == DRAFT

    def test_unexpected_client_error_falls_back(self):
        naturalizer = Naturalizer(client=FakeClient(error=AttributeError("boom")), enabled=True, timeout=2)
        assert naturalizer.naturalize(_payload()) == DRAFT

    def test_timeout_falls_back(self):
        client = FakeClient(content="Resposta que chegou tarde demais", delay=0.5)
        naturalizer = Naturalizer(client=client, enabled=True, timeout=0.1)
        started = time.monotonic()
        assert naturalizer.naturalize(_payload()) == DRAFT
        assert time.monotonic() - started < 0.45

    def test_cancel_before_call(self):
        event = threading.Event()
        event.set()
        client = FakeClient(content="irrelevante")
        naturalizer = Naturalizer(client=client, enabled=True, timeout=2)
        with pytest.raises(TurnCancelled):
            naturalizer.naturalize(_payload(), cancel_event=event)
        assert client.calls == []

    def test_cancel_while_waiting(self):
        event = threading.Event()
        client = FakeClient(content="Resposta que nunca será usada", delay=0.5)
        naturalizer = Naturalizer(client=client, enabled=True, timeout=2)
        threading.Timer(0.05, event.set).start()
        with pytest.raises(TurnCancelled):
            naturalizer.naturalize(_payload(), cancel_event=event)


class TestLLMClient:

    def test_unsupported_provider(self):
        with pytest.raises(ValueError):
            LLMClient(provider="nope", api_key="k")

    def test_azure_requires_base_url(self):
        with pytest.raises(ValueError):
            LLMClient(provider="azure_openai", api_key="k", base_url="")

    @patch("naturalizer.requests.post")
    def test_openai_request(self, mock_post):
        response = MagicMock()
        response.json.return_value = {
            "choices": [{"message": {"content": "Oi!"}}],
            "usage": {"prompt_tokens": 12, "completion_tokens": 3},
        }
        mock_post.return_value = response

        client = LLMClient(provider="openai", api_key="sk-test", model="gpt-4o-mini", timeout=3)
        result = client.chat_completion("system", "user")

        assert result["content"] == "Oi!"
        assert result["input_tokens"] == 12
        _, kwargs = mock_post.call_args
        assert kwargs["headers"]["Authorization"] == "Bearer sk-test"
        assert kwargs["json"]["messages"][0] == {"role": "system", "content": "system"}
        assert kwargs["timeout"] == 3

    @patch("naturalizer.requests.post")
    def test_anthropic_request(self, mock_post):
        response = MagicMock()
        response.json.return_value = {
            "content": [{"text": "Hola!"}],
            "usage": {"input_tokens": 7, "output_tokens": 2},
        }
        mock_post.return_value = response

        client = LLMClient(provider="anthropic", api_key="ak-test", model="test-model")
        result = client.chat_completion("system", "user")

        assert result["content"] == "Hola!"
        _, kwargs = mock_post.call_args
        assert kwargs["headers"]["x-api-key"] == "ak-test"
        assert kwargs["json"]["system"] == "system"
