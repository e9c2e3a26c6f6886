"""
Logging configuration for adminkit.

Human-readable console output by default; JSON lines when structured
output is requested. Loggers live under the "adminkit" namespace:
- adminkit.client: HTTP requests and failures
- adminkit.forms: Form state transitions
- adminkit.pages: List/view page loads
- adminkit.linked_records: Linked-record searches
"""

import json
import logging
from datetime import datetime, timezone


class JSONFormatter(logging.Formatter):
    """
    Formatter that outputs each record as one JSON object.

    Extra fields passed as logger.info("msg", extra={"extra_fields": {...}})
    are merged into the object.
    """

    def format(self, record: logging.LogRecord) -> str:
        log_data = {
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
            "module": record.module,
            "function": record.funcName,
            "line": record.lineno,
        }

        if record.exc_info:
            log_data["exception"] = self.formatException(record.exc_info)

        if hasattr(record, "extra_fields"):
            log_data.update(record.extra_fields)

        return json.dumps(log_data, default=str)


def setup_logging(level: str = "INFO", json_format: bool = False) -> logging.Logger:
    """
    Setup logging for adminkit.

    Args:
        level: Logging level (DEBUG, INFO, WARNING, ERROR)
        json_format: Emit JSON lines instead of console text

    Returns:
        The root adminkit logger
    """
    handler = logging.StreamHandler()
    if json_format:
        handler.setFormatter(JSONFormatter())
    else:
        handler.setFormatter(
            logging.Formatter(
                fmt="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
                datefmt="%Y-%m-%d %H:%M:%S",
            )
        )

    logger = logging.getLogger("adminkit")
    logger.handlers.clear()
    logger.addHandler(handler)
    logger.setLevel(getattr(logging, level.upper(), logging.INFO))
    logger.propagate = False
    return logger
