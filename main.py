"""
Command-line demo: runs sample utterances through the shopping assistant.

    python main.py              # built-in sample conversation
    python main.py "oi" "tem perfume?" "mais barato"
"""

import json
import sys

from dotenv import load_dotenv

load_dotenv()

from canon_store import CanonStore
from core import InMemorySessionStore
from naturalizer import Naturalizer
from pipeline import ShoppingAssistant
from services import make_catalog_provider


def process(assistant: ShoppingAssistant, utterance: str, session_id: str = "cli-demo"):
    """Run a single utterance and print the reply with its debug summary."""
    response = assistant.handle_message(utterance, session_id)
    debug = response["debug"]

    print(f"\n{'━'*70}")
    print(f"💬  \"{utterance}\"")
    print(f"🎯  Intent:     {debug['intent']} ({debug['rule']})")
    print(f"📊  Confidence: {debug['confidence']:.0%}")
    if debug["query"]:
        print(f"🔎  Query:      {json.dumps(debug['query'], ensure_ascii=False)}")
    print(f"📦  Results:    {debug['result_count']}")
    print()
    print(response["text"])


if __name__ == "__main__":
    assistant = ShoppingAssistant(
        session_store=InMemorySessionStore(),
        canon_store=CanonStore(),
        catalog_provider=make_catalog_provider(),
        naturalizer=Naturalizer.from_env(),
    )

    tests = sys.argv[1:] or [
        # ── Small talk ──
        "oi",
        "que horas são?",

        # ── Product search ──
        "iphone 15 até 3000",
        "tem perfume?",
        "mais barato",
        "o segundo mais caro",
        "tênis nike preto tamanho 42",
        "smart tv 55 polegadas entre 2000 e 4000",

        # ── Category / follow-ups ──
        "quero algo de informática",
        "até 500",

        # ── Spanish ──
        "hola, busco zapatillas baratas",
        "gracias",
    ]

    for t in tests:
        process(assistant, t)
