"""
Structured logging configuration.

Every log line is a single JSON object so that ledger events
(transfers, retries, subscription failures) can be filtered
by field instead of by grepping free text.
"""

import json
import logging
from datetime import datetime, timezone


ROOT_LOGGER = "chronos"


class JSONFormatter(logging.Formatter):
    """Render a LogRecord as one JSON line."""

    def format(self, record):
        log_entry = {
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
            "banco_id": getattr(record, "banco_id", None),
            "movimiento_id": getattr(record, "movimiento_id", None),
            "transferencia_id": getattr(record, "transferencia_id", None),
            "action": getattr(record, "action", None),
        }

        # Drop fields the caller did not set
        log_entry = {k: v for k, v in log_entry.items() if v is not None}

        if record.exc_info:
            log_entry["exception"] = self.formatException(record.exc_info)

        return json.dumps(log_entry, default=str)


def setup_logging(level: str = "INFO") -> logging.Logger:
    """
    Configure the "chronos" logger hierarchy.

    Safe to call more than once: existing handlers are replaced
    rather than duplicated.
    """
    logger = logging.getLogger(ROOT_LOGGER)

    for handler in logger.handlers[:]:
        logger.removeHandler(handler)

    handler = logging.StreamHandler()
    handler.setFormatter(JSONFormatter())
    logger.addHandler(handler)
    logger.setLevel(getattr(logging, level.upper(), logging.INFO))

    # Keep records out of the root logger to avoid duplicates
    logger.propagate = False

    return logger


def get_logger(name: str) -> logging.Logger:
    """Return a child of the chronos logger, e.g. get_logger("ledger")."""
    return logging.getLogger(f"{ROOT_LOGGER}.{name}")
