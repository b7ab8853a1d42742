"""
Common utilities and helper functions for the DEX arbitrage scanner.

This module provides centralized helpers for duration formatting, JSON
serialization, percent formatting and structured logging.
"""

import json
import logging
from dataclasses import asdict, is_dataclass
from datetime import datetime
from enum import Enum
from typing import Any, Union


# Duration utilities
def format_duration(seconds: float) -> str:
    """Format duration in seconds to human-readable string."""
    if seconds < 1:
        return f"{seconds * 1000:.0f}ms"
    elif seconds < 60:
        return f"{seconds:.2f}s"
    elif seconds < 3600:
        minutes = seconds / 60
        return f"{minutes:.1f}m"
    else:
        hours = seconds / 3600
        return f"{hours:.1f}h"


# JSON utilities
def safe_json_dump(data: Any, **kwargs) -> str:
    """
    Safely serialize data to JSON with sensible defaults.

    Args:
        data: Data to serialize
        **kwargs: Additional arguments to json.dumps

    Returns:
        JSON string
    """
    defaults = {"ensure_ascii": False, "indent": 2, "default": _json_default_handler}
    defaults.update(kwargs)
    return json.dumps(data, **defaults)


def _json_default_handler(obj: Any) -> Any:
    """Default JSON serialization handler for custom types."""
    if isinstance(obj, datetime):
        return obj.isoformat()
    elif isinstance(obj, Enum):
        return obj.value
    elif isinstance(obj, (set, frozenset)):
        return sorted(obj)
    elif is_dataclass(obj) and not isinstance(obj, type):
        return asdict(obj)
    elif hasattr(obj, "__dict__"):
        return obj.__dict__
    else:
        return str(obj)


# Formatting utilities
def format_percent(percent: float) -> str:
    """Format a percent value with a sign prefix.

    Examples:
        >>> format_percent(1.234)
        '+1.23%'
        >>> format_percent(-0.5)
        '-0.50%'
    """
    if percent >= 0:
        return f"+{percent:.2f}%"
    return f"{percent:.2f}%"


# Logging utilities
def get_logger(name: str, level: Union[str, int] = logging.INFO) -> logging.Logger:
    """
    Get a logger with consistent formatting.

    Args:
        name: Logger name (typically __name__)
        level: Logging level

    Returns:
        Configured logger
    """
    logger = logging.getLogger(name)

    if logger.level == logging.NOTSET:
        logger.setLevel(level)

    if not logger.handlers:
        handler = logging.StreamHandler()
        formatter = logging.Formatter(
            "%(asctime)s | %(levelname)-8s | %(name)s:%(lineno)d | %(message)s",
            datefmt="%H:%M:%S",
        )
        handler.setFormatter(formatter)
        logger.addHandler(handler)

    return logger
