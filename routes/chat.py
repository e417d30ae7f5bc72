"""
Chat endpoint as a Flask Blueprint.
"""

import time

from flask import Blueprint, current_app, jsonify, request

from chat_logger import get_logger, sanitize_log_string
from core.helpers import derive_session_id
from pipeline import InvalidRequest

logger = get_logger()

chat_bp = Blueprint("chat", __name__)


def _error(message: str, status: int, session_id: str = ""):
    body = {"ok": False, "error": message}
    if session_id:
        body["sessionId"] = session_id
    return jsonify(body), status


@chat_bp.route("/chat", methods=["POST"])
def chat():
    """
    Main chat endpoint.

    Request:
        POST /chat
        {"sessionId": "abc", "message": "iphone 15 até 3000", "lang": "pt"}

    Response:
        {
            "ok": true,
            "text": "...",
            "items": [...],
            "debug": {...},
            "sessionId": "abc"
        }
    """
    start_time = time.time()

    # ─── Parse request ───
    body = request.get_json(silent=True)
    if not isinstance(body, dict):
        logger.warning("POST /chat | Invalid JSON body")
        return _error("Invalid request. Send JSON with a 'message' field.", 400)

    message = body.get("message")
    if message is not None and not isinstance(message, str):
        return _error("'message' must be a string", 400)
    message = (message or "").strip()

    session_id = body.get("sessionId") or body.get("session_id") or ""
    if not isinstance(session_id, str):
        session_id = str(session_id)
    if not session_id:
        session_id = derive_session_id(request.remote_addr, request.headers.get("User-Agent"))

    lang = body.get("lang")

    truncated_msg = message[:100] + "..." if len(message) > 100 else message
    logger.info(f'POST /chat | session={session_id} | message="{sanitize_log_string(truncated_msg)}" | lang={lang}')

    assistant = current_app.config["ASSISTANT"]
    try:
        response = assistant.handle_message(message, session_id, lang=lang)
    except InvalidRequest as e:
        logger.warning(f"POST /chat | session={session_id} | {e}")
        return _error(str(e), 400, session_id)
    except Exception as e:
        logger.exception(f"POST /chat | session={session_id} | Unexpected error: {e}")
        return _error("Internal error. Please try again.", 500, session_id)

    elapsed = int((time.time() - start_time) * 1000)
    logger.info(f"POST /chat | session={session_id} | items={len(response['items'])} | {elapsed}ms")
    return jsonify(response), 200
