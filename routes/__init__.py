"""Routes package - Flask blueprints."""

from .chat import chat_bp
from .admin import admin_bp

__all__ = ["chat_bp", "admin_bp"]
