"""Shared utility functions.

Key modules:
    - logging: Logging configuration and token redaction
"""

from .logging import configure_logging, get_logger, sanitize_text

__all__ = [
    "configure_logging",
    "get_logger",
    "sanitize_text",
]
