import logging
import sys

LOG_FORMAT = '%(asctime)s - %(levelname)s - %(message)s'


def configure_logging(level: str = "INFO") -> logging.Logger:
    """Send package logs to stderr; stdout carries the stdio JSON-RPC stream."""
    log_level = getattr(logging, level.upper(), logging.INFO)

    logger = logging.getLogger("salesforce_mcp")
    logger.setLevel(log_level)

    # Clear old handlers to avoid duplicate logs
    if logger.hasHandlers():
        logger.handlers.clear()

    handler = logging.StreamHandler(sys.stderr)
    handler.setFormatter(logging.Formatter(LOG_FORMAT))
    logger.addHandler(handler)
    logger.propagate = False

    logging.getLogger().setLevel(log_level)
    return logger
