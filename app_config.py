"""
Application configuration module for the Vendedor Chat API.
Contains environment variables, constants, and settings.
"""

import os
from dotenv import load_dotenv

load_dotenv()

BASE_DIR = os.path.dirname(os.path.abspath(__file__))

# ═══════════════════════════════════════════
# ENVIRONMENT VARIABLES
# ═══════════════════════════════════════════

PORT = int(os.getenv("PORT", 5009))
DEBUG = os.getenv("DEBUG", "false").lower() == "true"
LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO")
LOG_DIR = os.getenv("LOG_DIR", "logs")
DEFAULT_LANG = os.getenv("DEFAULT_LANG", "pt")
TIMEZONE = os.getenv("TIMEZONE", "America/Sao_Paulo")

# Admin surface (canon load/save). Disabled when empty.
ADMIN_TOKEN = os.getenv("ADMIN_TOKEN", "")

# ═══════════════════════════════════════════
# CANONICAL DICTIONARY
# ═══════════════════════════════════════════

CANON_PATH = os.getenv("CANON_PATH", os.path.join(BASE_DIR, "data", "canon.json"))

# ═══════════════════════════════════════════
# CATALOG PROVIDER
# ═══════════════════════════════════════════

CATALOG_SOURCE = os.getenv("CATALOG_SOURCE", "json")  # json, http, hybrid
CATALOG_PATH = os.getenv("CATALOG_PATH", os.path.join(BASE_DIR, "data", "catalog.sample.json"))
CATALOG_URL = os.getenv("CATALOG_URL", "")
CATALOG_FALLBACK_PATH = os.getenv("CATALOG_FALLBACK_PATH", "")
CATALOG_CACHE_TTL_SECONDS = int(os.getenv("CATALOG_CACHE_TTL_SECONDS", "300"))
CATALOG_HTTP_TIMEOUT_SECONDS = int(os.getenv("CATALOG_HTTP_TIMEOUT_SECONDS", "15"))

CATALOG_HEADERS = {
    "User-Agent": "vendedor-chat/1.0",
    "Accept": "application/json, text/plain, */*",
    "Accept-Language": "pt-BR,pt;q=0.9,es;q=0.8",
}

# ═══════════════════════════════════════════
# SESSION STORE
# ═══════════════════════════════════════════

SESSION_TTL_SECONDS = int(os.getenv("SESSION_TTL_SECONDS", str(24 * 60 * 60)))
SESSION_EVICTION_INTERVAL_SECONDS = int(os.getenv("SESSION_EVICTION_INTERVAL_SECONDS", "600"))
VISIT_GAP_SECONDS = int(os.getenv("VISIT_GAP_SECONDS", str(30 * 60)))  # idle gap that counts as a new visit

# Unknown-term tracking (admin canon curation)
UNKNOWN_TERMS_MAX = int(os.getenv("UNKNOWN_TERMS_MAX", "500"))
UNKNOWN_TERMS_CONTEXTS = int(os.getenv("UNKNOWN_TERMS_CONTEXTS", "5"))

# Template rotation
TEMPLATE_SKIP_WINDOW = 3
TEMPLATE_HISTORY_SIZE = 8

# ═══════════════════════════════════════════
# PIPELINE LIMITS
# ═══════════════════════════════════════════

MAX_QUERY_RESULTS = 20
MAX_RESPONSE_ITEMS = 10
MAX_LISTED_ITEMS = 5  # items written into the reply text
MAX_CROSS_SELL = 3
SHORT_MESSAGE_CHARS = 5

# ═══════════════════════════════════════════
# NATURALIZATION (LLM) CONFIGURATION
# ═══════════════════════════════════════════

NATURALIZE_ENABLED = os.getenv("NATURALIZE_ENABLED", "false").lower() == "true"
REPLY_TONE = os.getenv("REPLY_TONE", "vendedor_descontraido")

# LLM Provider settings
LLM_PROVIDER = os.getenv("LLM_PROVIDER", "openai")  # openai, anthropic, azure_openai
LLM_MODEL = os.getenv("LLM_MODEL", "gpt-4o-mini")
LLM_API_KEY = os.getenv("LLM_API_KEY", "")
LLM_API_BASE_URL = os.getenv("LLM_API_BASE_URL", "")

# LLM behavior settings
LLM_TEMPERATURE = float(os.getenv("LLM_TEMPERATURE", "0.7"))
LLM_MAX_TOKENS = int(os.getenv("LLM_MAX_TOKENS", "300"))
LLM_TIMEOUT_SECONDS = int(os.getenv("LLM_TIMEOUT_SECONDS", "6"))
