"""
Structured logging configuration.

Emits one JSON object per record so ledger activity can be shipped to a log
pipeline without parsing free text.
"""

import json
import logging
from datetime import datetime, timezone

STRUCTURED_FIELDS = ("user_id", "action", "resource", "account_number", "attempt")


class JSONFormatter(logging.Formatter):
    """JSON formatter for structured logging"""

    def format(self, record):
        log_entry = {
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }
        for field in STRUCTURED_FIELDS:
            value = getattr(record, field, None)
            if value is not None:
                log_entry[field] = value

        if record.exc_info:
            log_entry["exception"] = self.formatException(record.exc_info)

        return json.dumps(log_entry, default=str)


def setup_logging(level: str = "INFO", logger_name: str = "banking") -> logging.Logger:
    """
    Attach a JSON console handler to the package logger.

    Args:
        level: Log level name (DEBUG, INFO, WARNING, ERROR, CRITICAL)
        logger_name: Root of the logger hierarchy to configure

    Returns:
        The configured logger
    """
    logger = logging.getLogger(logger_name)

    # Re-running setup (e.g. app reload) must not stack handlers
    for handler in logger.handlers[:]:
        logger.removeHandler(handler)

    handler = logging.StreamHandler()
    handler.setFormatter(JSONFormatter())
    logger.addHandler(handler)
    logger.setLevel(getattr(logging, level.upper()))
    logger.propagate = False

    return logger
