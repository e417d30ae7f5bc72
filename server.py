"""
Vendedor Chat — Shopping Assistant API Backend
Runs on port 5009 with /chat endpoint.

Usage:
    python server.py

Endpoints:
    POST http://localhost:5009/chat
    Body: {"message": "...", "sessionId": "...", "lang": "pt"}
    GET  http://localhost:5009/health
    GET  http://localhost:5009/session/<id>
    GET|PUT /admin/canon, POST /admin/canon/reload, POST /admin/canon/rebuild
"""

from datetime import datetime, timezone
from typing import Optional

from dotenv import load_dotenv

load_dotenv()

from flask import Flask, current_app, jsonify
from flask_cors import CORS

# ─── Internal imports ───
from app_config import (
    ADMIN_TOKEN,
    CATALOG_SOURCE,
    DEBUG,
    PORT,
    SESSION_EVICTION_INTERVAL_SECONDS,
    SESSION_TTL_SECONDS,
)
from canon_store import CanonStore
from chat_logger import get_logger
from core import InMemorySessionStore, UnknownTermTracker
from naturalizer import Naturalizer
from pipeline import ShoppingAssistant
from routes import admin_bp, chat_bp
from services import catalog_stats, make_catalog_provider

# ─── Initialize logger ───
logger = get_logger()


# ═══════════════════════════════════════════
# ASSISTANT WIRING
# ═══════════════════════════════════════════

def build_assistant() -> ShoppingAssistant:
    """Assemble the pipeline from environment configuration."""
    return ShoppingAssistant(
        session_store=InMemorySessionStore(SESSION_TTL_SECONDS),
        canon_store=CanonStore(),
        catalog_provider=make_catalog_provider(CATALOG_SOURCE),
        naturalizer=Naturalizer.from_env(),
        unknown_terms=UnknownTermTracker(),
    )


# ═══════════════════════════════════════════
# FLASK APP
# ═══════════════════════════════════════════

def create_app(assistant: Optional[ShoppingAssistant] = None, admin_token: Optional[str] = None) -> Flask:
    app = Flask(__name__)
    CORS(app)

    app.config["ASSISTANT"] = assistant or build_assistant()
    app.config["ADMIN_TOKEN"] = ADMIN_TOKEN if admin_token is None else admin_token

    app.register_blueprint(chat_bp)
    app.register_blueprint(admin_bp)

    @app.route("/health", methods=["GET"])
    def health():
        """Health check endpoint."""
        a = current_app.config["ASSISTANT"]
        items, available = a.load_catalog()
        session_stats = a.session_store.stats() if hasattr(a.session_store, "stats") else {}
        canon = a.canon_store.load()
        return jsonify({
            "status": "ok" if available else "degraded",
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "catalog": {"available": available, **catalog_stats(items)},
            "sessions": session_stats,
            "canon": {"source": a.canon_store.source, **canon.sizes()},
            "unknownTerms": a.unknown_terms.stats(),
        })

    @app.route("/session/<session_id>", methods=["GET"])
    def get_session(session_id):
        """Get the session snapshot."""
        store = current_app.config["ASSISTANT"].session_store
        if not store.exists(session_id):
            return jsonify({"ok": False, "error": "Session not found"}), 404
        return jsonify({"ok": True, "sessionId": session_id, "session": store.get(session_id).to_dict()})

    return app


# ═══════════════════════════════════════════
# STARTUP
# ═══════════════════════════════════════════

def initialize(app: Flask) -> None:
    """Warm the canon and catalog caches, then start session eviction."""
    assistant = app.config["ASSISTANT"]
    assistant.canon_store.load()
    items, available = assistant.load_catalog()
    if not available:
        print("⚠️  Catalog could not be loaded at startup.")
        print("   Searches will answer 'not found' until the catalog source recovers.")
    else:
        logger.info(f"✅ Catalog warm | {len(items)} items")
    assistant.session_store.start_eviction_timer(SESSION_EVICTION_INTERVAL_SECONDS)


if __name__ == "__main__":
    print("=" * 60)
    print("  Vendedor Chat — Shopping Assistant API Server")
    print("=" * 60)
    print()

    app = create_app()
    initialize(app)

    print()
    print(f"🚀 Starting server on http://localhost:{PORT}")
    print(f"   POST http://localhost:{PORT}/chat")
    print(f"   GET  http://localhost:{PORT}/health")
    print(f"   GET  http://localhost:{PORT}/session/<id>")
    print()

    app.run(
        host="0.0.0.0",
        port=PORT,
        debug=DEBUG,
    )
