"""
Naturalizer — optional LLM rewrite of the deterministic draft reply.

Best-effort by contract:
- Disabled unless NATURALIZE_ENABLED=true and a client is configured
- Every call is bounded by LLM_TIMEOUT_SECONDS; on timeout, HTTP error or an
  implausible rewrite the draft is returned unchanged
- A caller-supplied threading.Event cancels the wait and raises TurnCancelled

Privacy-First Design:
- Only the draft and structured search metadata are sent
- The user's message is scrubbed of e-mails, CPF, card and phone numbers
"""

import re
import time
import threading
from concurrent.futures import ThreadPoolExecutor, TimeoutError as FuturesTimeout
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

import requests

from app_config import (
    LLM_API_BASE_URL,
    LLM_API_KEY,
    LLM_MAX_TOKENS,
    LLM_MODEL,
    LLM_PROVIDER,
    LLM_TEMPERATURE,
    LLM_TIMEOUT_SECONDS,
    NATURALIZE_ENABLED,
    REPLY_TONE,
)
from chat_logger import get_logger, mask_secret, sanitize_log_string
from emotion import TONES

logger = get_logger()


class TurnCancelled(Exception):
    """The caller aborted the turn while it was waiting on the LLM."""


@dataclass
class NaturalizationInput:
    intent: str
    draft: str
    lang: str = "pt"
    product: Optional[str] = None
    category: Optional[str] = None
    model: Optional[str] = None
    count: Optional[int] = None
    cross: List[str] = field(default_factory=list)
    ask: Optional[str] = None
    user_message: Optional[str] = None


TONE_PROMPTS: Dict[str, str] = {
    "vendedor_descontraido": "vendedor descontraído e próximo, frases curtas, no máximo um emoji",
    "consultivo": "consultor atencioso que explica as opções com clareza, sem pressionar",
    "empatico": "empático e acolhedor, reconhecendo a dificuldade do cliente",
    "entusiasmado": "animado e positivo, celebrando as boas opções encontradas",
    "amigavel": "amigável e objetivo, direto ao ponto",
}


# ══════════════════════════════════════════════════════════════
# PRIVACY & SANITIZATION
# ══════════════════════════════════════════════════════════════

def _sanitize_for_llm(text: str) -> str:
    """Remove PII from user messages before sending to the LLM."""
    if not text:
        return text
    text = re.sub(r'\b[A-Za-z0-9._%+-]+@[A-Za-z0-9.-]+\.[A-Za-z]{2,}\b', '[EMAIL]', text)
    # CPF 123.456.789-09
    text = re.sub(r'\b\d{3}\.?\d{3}\.?\d{3}-?\d{2}\b', '[CPF]', text)
    text = re.sub(r'\b\d{4}[-\s]?\d{4}[-\s]?\d{4}[-\s]?\d{4}\b', '[CARD]', text)
    # BR/PY phone numbers with area code
    text = re.sub(r'(?:\+\d{2,3}\s?)?\(?\b\d{2}\)?\s?9?\d{4}[-\s]?\d{4}\b', '[PHONE]', text)
    return text


# ══════════════════════════════════════════════════════════════
# PROMPTS & VALIDATION
# ══════════════════════════════════════════════════════════════

PROMPT_ECHO_MARKERS = ("RASCUNHO:", "BORRADOR:", "DADOS:", "TOM:", "Reescreva", "Reescribe")


def build_system_prompt(tone: str, lang: str = "pt") -> str:
    style = TONE_PROMPTS.get(tone, TONE_PROMPTS["vendedor_descontraido"])
    language = "espanhol" if lang == "es" else "português do Brasil"
    return (
        f"Você é um vendedor de uma loja online. Responda em {language}, com tom {style}.\n"
        "Reescreva o rascunho mantendo EXATAMENTE os mesmos produtos, preços, quantidades "
        "e perguntas. Não invente produtos, preços ou promoções. Mantenha a formatação "
        "das listas (linhas com 🔹, 💰, ✅/❌). Responda apenas com o texto final."
    )


def build_user_message(payload: NaturalizationInput) -> str:
    facts = []
    if payload.product:        facts.append(f"produto={payload.product}")
    if payload.model:          facts.append(f"modelo={payload.model}")
    if payload.category:       facts.append(f"categoria={payload.category}")
    if payload.count is not None:
        facts.append(f"resultados={payload.count}")
    if payload.cross:          facts.append(f"sugestoes={', '.join(payload.cross)}")
    if payload.ask:            facts.append(f"pergunta={payload.ask}")
    lines = [f"INTENÇÃO: {payload.intent}", f"DADOS: {'; '.join(facts) or '-'}"]
    if payload.user_message:
        lines.append(f"CLIENTE: {_sanitize_for_llm(payload.user_message)}")
    lines.append(f"RASCUNHO:\n{payload.draft}")
    return "\n".join(lines)


def is_valid_output(text: str, draft: str) -> bool:
    """Reject empty-ish, runaway or prompt-echoing rewrites."""
    if not text or len(text.strip()) < 10:
        return False
    if draft and len(text) > 3 * len(draft):
        return False
    return not any(marker in text for marker in PROMPT_ECHO_MARKERS)


# ══════════════════════════════════════════════════════════════
# LLM CLIENT (Multi-Provider Support)
# ══════════════════════════════════════════════════════════════

class LLMClient:
    """
    Abstraction over LLM providers, configurable via environment variables.

    Supported providers:
    - openai: OpenAI API
    - azure_openai: Azure OpenAI Service (LLM_API_BASE_URL required)
    - anthropic: Anthropic Messages API
    """

    def __init__(self, provider: str = LLM_PROVIDER, api_key: str = LLM_API_KEY,
                 model: str = LLM_MODEL, base_url: str = LLM_API_BASE_URL,
                 timeout: int = LLM_TIMEOUT_SECONDS):
        self.provider = provider.lower()
        self.model = model
        self.api_key = api_key
        self.temperature = LLM_TEMPERATURE
        self.max_tokens = LLM_MAX_TOKENS
        self.timeout = timeout

        if self.provider == "openai":
            self.api_url = base_url or "https://api.openai.com/v1/chat/completions"
        elif self.provider == "anthropic":
            self.api_url = base_url or "https://api.anthropic.com/v1/messages"
        elif self.provider == "azure_openai":
            if not base_url:
                raise ValueError("LLM_API_BASE_URL is required for azure_openai")
            self.api_url = base_url
        else:
            raise ValueError(f"Unsupported LLM provider: {self.provider}")

    def chat_completion(self, system_prompt: str, user_message: str) -> Dict[str, Any]:
        """
        Send a chat completion request to the configured provider.

        Returns:
            Dict with content, input_tokens, output_tokens, model, latency_ms
        """
        start_time = time.time()
        if self.provider == "anthropic":
            result = self._anthropic_completion(system_prompt, user_message)
        else:
            result = self._openai_style_completion(system_prompt, user_message)
        result["latency_ms"] = int((time.time() - start_time) * 1000)
        return result

    def _openai_style_completion(self, system_prompt: str, user_message: str) -> Dict[str, Any]:
        headers = {"Content-Type": "application/json"}
        if self.provider == "azure_openai":
            headers["api-key"] = self.api_key
        else:
            headers["Authorization"] = f"Bearer {self.api_key}"

        payload = {
            "model": self.model,
            "messages": [
                {"role": "system", "content": system_prompt},
                {"role": "user", "content": user_message},
            ],
            "temperature": self.temperature,
            "max_tokens": self.max_tokens,
        }
        response = requests.post(self.api_url, headers=headers, json=payload, timeout=self.timeout)
        response.raise_for_status()

        data = response.json()
        usage = data.get("usage", {})
        return {
            "content": data["choices"][0]["message"]["content"],
            "input_tokens": usage.get("prompt_tokens", 0),
            "output_tokens": usage.get("completion_tokens", 0),
            "model": self.model,
        }

    def _anthropic_completion(self, system_prompt: str, user_message: str) -> Dict[str, Any]:
        headers = {
            "Content-Type": "application/json",
            "x-api-key": self.api_key,
            "anthropic-version": "2023-06-01",
        }
        payload = {
            "model": self.model,
            "system": system_prompt,
            "messages": [{"role": "user", "content": user_message}],
            "temperature": self.temperature,
            "max_tokens": self.max_tokens,
        }
        response = requests.post(self.api_url, headers=headers, json=payload, timeout=self.timeout)
        response.raise_for_status()

        data = response.json()
        usage = data.get("usage", {})
        return {
            "content": data["content"][0]["text"],
            "input_tokens": usage.get("input_tokens", 0),
            "output_tokens": usage.get("output_tokens", 0),
            "model": self.model,
        }


# ══════════════════════════════════════════════════════════════
# NATURALIZER
# ══════════════════════════════════════════════════════════════

class Naturalizer:
    """Runs the LLM call on a worker thread so the wait can time out or be cancelled."""

    POLL_SECONDS = 0.05

    def __init__(self, client: Optional[LLMClient] = None, enabled: bool = NATURALIZE_ENABLED,
                 timeout: float = LLM_TIMEOUT_SECONDS, default_tone: str = REPLY_TONE,
                 max_workers: int = 4):
        self.client = client
        self.enabled = enabled and client is not None
        self.timeout = timeout
        self.default_tone = default_tone if default_tone in TONES else "vendedor_descontraido"
        self._executor = ThreadPoolExecutor(max_workers=max_workers, thread_name_prefix="naturalizer")

    @classmethod
    def from_env(cls) -> "Naturalizer":
        if not NATURALIZE_ENABLED:
            return cls(client=None, enabled=False)
        if not LLM_API_KEY:
            logger.warning("⚠️ NATURALIZE_ENABLED is set but LLM_API_KEY is empty — naturalization off")
            return cls(client=None, enabled=False)
        logger.info(f"✨ Naturalization on | provider={LLM_PROVIDER} model={LLM_MODEL} key={mask_secret(LLM_API_KEY)}")
        return cls(client=LLMClient(), enabled=True)

    def naturalize(self, payload: NaturalizationInput, tone: Optional[str] = None,
                   cancel_event: Optional[threading.Event] = None) -> str:
        """Return the rewritten reply, or the draft when anything goes wrong."""
        if not self.enabled:
            return payload.draft
        if cancel_event is not None and cancel_event.is_set():
            raise TurnCancelled()

        tone = tone if tone in TONES else self.default_tone
        system_prompt = build_system_prompt(tone, payload.lang)
        user_message = build_user_message(payload)
        future = self._executor.submit(self.client.chat_completion, system_prompt, user_message)

        deadline = time.monotonic() + self.timeout
        while True:
            remaining = deadline - time.monotonic()
            if remaining <= 0:
                future.cancel()
                logger.warning(f"⏱️ Naturalization timed out after {self.timeout}s — using draft")
                return payload.draft
            try:
                result = future.result(timeout=min(self.POLL_SECONDS, remaining))
                break
            except FuturesTimeout:
                if cancel_event is not None and cancel_event.is_set():
                    # The HTTP call cannot be interrupted; its result is discarded.
                    future.cancel()
                    logger.info("🛑 Naturalization cancelled by caller")
                    raise TurnCancelled()
            except Exception as e:
                logger.warning(f"⚠️ Naturalization failed ({type(e).__name__}: {e}) — using draft")
                return payload.draft

        text = (result.get("content") or "").strip()
        if not is_valid_output(text, payload.draft):
            logger.warning(f"⚠️ Naturalization rejected: {sanitize_log_string(text[:80])}")
            return payload.draft

        logger.info(
            f"✨ Naturalized | tone={tone} | tokens={result.get('input_tokens', 0)}+"
            f"{result.get('output_tokens', 0)} | latency={result.get('latency_ms', '?')}ms"
        )
        return text

    def shutdown(self) -> None:
        self._executor.shutdown(wait=False)
