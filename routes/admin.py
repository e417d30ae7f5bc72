"""
Canonical dictionary admin endpoints.

All routes require the ``X-Admin-Token`` header to equal ADMIN_TOKEN. With
no ADMIN_TOKEN configured the whole surface answers 403.
"""

import hmac
from functools import wraps

from flask import Blueprint, current_app, jsonify, request

from canon_store import build_canon_from_catalog
from chat_logger import get_logger
from models import CanonicalDictionary

logger = get_logger()

admin_bp = Blueprint("admin", __name__, url_prefix="/admin")


def require_admin_token(view):
    @wraps(view)
    def wrapper(*args, **kwargs):
        expected = current_app.config.get("ADMIN_TOKEN") or ""
        supplied = request.headers.get("X-Admin-Token", "")
        if not expected or not hmac.compare_digest(supplied, expected):
            logger.warning(f"🔒 Admin access denied | path={request.path} | remote={request.remote_addr}")
            return jsonify({"ok": False, "error": "Forbidden"}), 403
        return view(*args, **kwargs)
    return wrapper


def _assistant():
    return current_app.config["ASSISTANT"]


@admin_bp.route("/canon", methods=["GET"])
@require_admin_token
def get_canon():
    store = _assistant().canon_store
    canon = store.load()
    return jsonify({"ok": True, "source": store.source, "sizes": canon.sizes(), "canon": canon.to_dict()})


@admin_bp.route("/canon", methods=["PUT"])
@require_admin_token
def put_canon():
    body = request.get_json(silent=True)
    try:
        canon = CanonicalDictionary.from_dict(body)
    except ValueError as e:
        return jsonify({"ok": False, "error": str(e)}), 400
    if not canon.product_canon or not canon.category_canon:
        return jsonify({"ok": False, "error": "productCanon and categoryCanon must not be empty"}), 400

    _assistant().canon_store.save(canon)
    logger.info(f"🛠️ Canon replaced via admin API | {canon.sizes()}")
    return jsonify({"ok": True, "sizes": canon.sizes()})


@admin_bp.route("/canon/reload", methods=["POST"])
@require_admin_token
def reload_canon():
    store = _assistant().canon_store
    canon = store.reload()
    return jsonify({"ok": True, "source": store.source, "sizes": canon.sizes()})


@admin_bp.route("/canon/rebuild", methods=["POST"])
@require_admin_token
def rebuild_canon():
    """Build from the current catalog; curated entries win over derived ones."""
    assistant = _assistant()
    items, available = assistant.load_catalog()
    if not available or not items:
        return jsonify({"ok": False, "error": "Catalog unavailable"}), 503

    built = build_canon_from_catalog(items)
    merged = built.merged_with(assistant.canon_store.load())
    assistant.canon_store.save(merged)
    logger.info(f"🛠️ Canon rebuilt from {len(items)} catalog items | {merged.sizes()}")
    return jsonify({"ok": True, "built": built.sizes(), "sizes": merged.sizes()})


@admin_bp.route("/canon/unknown-terms", methods=["GET"])
@require_admin_token
def get_unknown_terms():
    """Most frequent unresolved terms with proposed canonical mappings."""
    assistant = _assistant()
    limit = request.args.get("limit", default=50, type=int)
    if limit is None or limit <= 0:
        return jsonify({"ok": False, "error": "limit must be a positive integer"}), 400

    tracker = assistant.unknown_terms
    terms = tracker.top(limit)
    return jsonify({
        "ok": True,
        "terms": [t.to_dict() for t in terms],
        "suggestions": tracker.suggest_mappings(assistant.canon_store.load()),
        "stats": tracker.stats(),
        "total": len(terms),
    })


@admin_bp.route("/canon/unknown-terms", methods=["DELETE"])
@require_admin_token
def clear_unknown_terms():
    _assistant().unknown_terms.clear()
    logger.info("🛠️ Unknown terms cleared via admin API")
    return jsonify({"ok": True})
