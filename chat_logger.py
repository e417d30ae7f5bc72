"""
chat_logger.py - Centralized logging configuration for vendedor-chat

Sets up Python logging with:
- File handler: logs/YYYY-MM-DD/chat.txt (daily folder)
- Console handler: stdout
- Configurable log level via LOG_LEVEL env variable
- Sanitization of user text and secrets before they reach the log
"""

import os
import re
import logging
from datetime import datetime
from pathlib import Path

LOGGER_NAME = "vendedor_chat"


def sanitize_log_string(text: str, max_length: int = 300) -> str:
    """
    Sanitize string for logging to prevent log injection attacks.
    Removes newlines, carriage returns, and other control characters,
    and truncates very long user input.

    Args:
        text: String to sanitize
        max_length: Maximum number of characters kept

    Returns:
        Sanitized string safe for logging
    """
    if not text:
        return text
    text = text.replace('\n', ' ').replace('\r', ' ').replace('\t', ' ')
    text = ''.join(char if ord(char) >= 32 else ' ' for char in text)
    if len(text) > max_length:
        text = text[:max_length] + "…"
    return text


def mask_secret(value: str) -> str:
    """Keep only the first 4 characters of a token or API key."""
    if not value:
        return ""
    return value[:4] + "***"


def sanitize_url(url: str) -> str:
    """Remove credentials from catalog URLs (query tokens and user:pass@)."""
    if not url:
        return url
    url = re.sub(r'(token|key|secret|api_key)=[^&]*', r'\1=***', url, flags=re.IGNORECASE)
    url = re.sub(r'//[^/@]+@', '//***@', url)
    return url


class MillisecondFormatter(logging.Formatter):
    def formatTime(self, record, datefmt=None):
        if datefmt:
            s = datetime.fromtimestamp(record.created).strftime(datefmt)
            ms = int((record.created - int(record.created)) * 1000)
            return f"{s}.{ms:03d}"
        return super().formatTime(record, datefmt)


def setup_logger(name: str = LOGGER_NAME, log_level: str = "INFO", log_dir: str = None) -> logging.Logger:
    """
    Configure and return a logger with file and console handlers.

    Args:
        name: Logger name
        log_level: Log level string (DEBUG, INFO, WARNING, ERROR, CRITICAL)
        log_dir: Root folder for the daily log folders (LOG_DIR env, default "logs")

    Returns:
        Configured logger instance
    """
    logger = logging.getLogger(name)
    logger.setLevel(getattr(logging, log_level.upper(), logging.INFO))

    # Prevent duplicate handlers if setup is called multiple times
    if logger.handlers:
        return logger

    formatter = MillisecondFormatter(
        fmt="[%(asctime)s] [%(levelname)s] %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S"
    )

    # ─── File Handler (one folder per day) ───
    today = datetime.now().strftime("%Y-%m-%d")
    folder = Path(log_dir or os.getenv("LOG_DIR", "logs")) / today
    folder.mkdir(parents=True, exist_ok=True)

    file_handler = logging.FileHandler(folder / "chat.txt", encoding="utf-8")
    file_handler.setLevel(logging.DEBUG)
    file_handler.setFormatter(formatter)
    logger.addHandler(file_handler)

    # ─── Console Handler ───
    console_handler = logging.StreamHandler()
    console_handler.setLevel(getattr(logging, log_level.upper(), logging.INFO))
    console_handler.setFormatter(formatter)
    logger.addHandler(console_handler)

    return logger


def get_logger(name: str = LOGGER_NAME) -> logging.Logger:
    """
    Get the configured logger instance.
    If logger doesn't exist, create it with default settings.
    """
    logger = logging.getLogger(name)
    if not logger.handlers:
        setup_logger(name, os.getenv("LOG_LEVEL", "INFO"))
    return logger
