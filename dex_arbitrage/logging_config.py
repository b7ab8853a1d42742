"""
Logging configuration for cleaner output.

Usage:
    from dex_arbitrage import logging_config
    logging_config.setup()
"""

import logging
import sys


def setup(level=logging.INFO):
    """
    Configure logging for cleaner, more readable output.

    - Suppresses per-request logs from the aiohttp metrics server
    - Uses shorter timestamp format (HH:MM:SS instead of full datetime)
    """
    if isinstance(level, str):
        level = logging.getLevelName(level.upper())

    # Root logger - minimal format
    root = logging.getLogger()
    root.setLevel(level)

    # Clear existing handlers
    root.handlers.clear()

    console = logging.StreamHandler(sys.stdout)
    console.setLevel(level)
    formatter = logging.Formatter(
        fmt="%(asctime)s | %(levelname)-7s | %(message)s", datefmt="%H:%M:%S"
    )
    console.setFormatter(formatter)
    root.addHandler(console)

    # Suppress noisy loggers
    logging.getLogger("aiohttp.access").setLevel(logging.WARNING)
    logging.getLogger("aiosqlite").setLevel(logging.WARNING)

    # Module loggers from get_logger carry their own handler and level;
    # hand both over to the root configuration
    for name, logger in logging.root.manager.loggerDict.items():
        if name.startswith("dex_arbitrage.") and isinstance(logger, logging.Logger):
            logger.handlers.clear()
            logger.setLevel(logging.NOTSET)
    logging.getLogger("dex_arbitrage").setLevel(level)


def setup_minimal():
    """
    Only warnings and errors.
    Good for scripted runs that parse the output.
    """
    setup(level=logging.WARNING)


def setup_debug():
    """
    Verbose logging for debugging, including HTTP access logs.
    """
    setup(level=logging.DEBUG)
    logging.getLogger("aiohttp.access").setLevel(logging.INFO)
