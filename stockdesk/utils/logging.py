"""
Structured JSON logging for the backtesting engine.

Every record becomes one JSON object per line, carrying the service name and
any fields passed through ``extra=``. Modules keep using
``logging.getLogger(__name__)``; ``setup_logger`` installs the JSON handler on
the ``stockdesk`` package logger so all of them share it.
"""

import json
import logging
import os
from datetime import datetime, timezone
from typing import Any, Dict, Optional

PACKAGE_LOGGER = "stockdesk"


class JSONFormatter(logging.Formatter):
    """
    Logging formatter that renders records as single-line JSON.

    Fields:
    - timestamp: ISO 8601 UTC timestamp with millisecond precision
    - service: Name of the service producing the log
    - level: Log level name
    - logger: Name of the emitting logger
    - message: The formatted log message
    - exception: Formatted traceback, when the record carries exc_info
    - any additional fields from ``extra``

    Example:
        >>> handler = logging.StreamHandler()
        >>> handler.setFormatter(JSONFormatter(service_name="backtesting"))
        >>> logger = logging.getLogger("stockdesk.service")
        >>> logger.addHandler(handler)
        >>> logger.info("Backtest completed", extra={"backtest_id": "abc"})
    """

    # Attributes every LogRecord carries; anything else came from ``extra``
    _RESERVED_ATTRS = frozenset(
        vars(logging.LogRecord("", logging.NOTSET, "", 0, "", (), None))
    ) | {"message", "asctime"}

    def __init__(self, service_name: str) -> None:
        """
        Initialize the JSON formatter.

        Args:
            service_name: Service name written into every entry.
        """
        super().__init__()
        self.service_name = service_name

    def format(self, record: logging.LogRecord) -> str:
        """
        Format a log record as a JSON string.

        Args:
            record: The log record to format.

        Returns:
            JSON-encoded log entry.
        """
        entry: Dict[str, Any] = {
            "timestamp": self._format_timestamp(record.created),
            "service": self.service_name,
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }

        if record.exc_info:
            entry["exception"] = self.formatException(record.exc_info)

        for key, value in record.__dict__.items():
            if key not in self._RESERVED_ATTRS and not key.startswith("_"):
                entry[key] = self._serialize_value(value)

        return json.dumps(entry, ensure_ascii=False)

    def _format_timestamp(self, created: float) -> str:
        """Render a Unix timestamp as ``YYYY-MM-DDTHH:MM:SS.mmmZ``."""
        dt = datetime.fromtimestamp(created, tz=timezone.utc)
        return dt.strftime("%Y-%m-%dT%H:%M:%S.") + f"{dt.microsecond // 1000:03d}Z"

    def _serialize_value(self, value: Any) -> Any:
        """Return a JSON-safe representation of an ``extra`` value."""
        if isinstance(value, (str, int, float, bool, type(None))):
            return value
        if isinstance(value, (list, tuple)):
            return [self._serialize_value(v) for v in value]
        if isinstance(value, dict):
            return {str(k): self._serialize_value(v) for k, v in value.items()}
        if isinstance(value, datetime):
            return value.isoformat()
        return str(value)


def setup_logger(
    service_name: str,
    level: Optional[str] = None,
    logger_name: str = PACKAGE_LOGGER,
) -> logging.Logger:
    """
    Configure a logger to emit JSON lines to stderr.

    Args:
        service_name: Value of the ``service`` field in every entry.
        level: Log level name. Falls back to the LOG_LEVEL environment
               variable, then INFO.
        logger_name: Logger to configure. Defaults to the package logger so
                     that every ``stockdesk.*`` module logger inherits it.

    Returns:
        The configured logger.

    Note:
        Existing handlers are replaced and propagation to the root logger is
        disabled to avoid duplicate lines.
    """
    if level is None:
        level = os.getenv("LOG_LEVEL", "INFO")

    numeric_level = getattr(logging, level.upper(), logging.INFO)

    logger = logging.getLogger(logger_name)
    logger.setLevel(numeric_level)
    logger.handlers.clear()

    handler = logging.StreamHandler()
    handler.setLevel(numeric_level)
    handler.setFormatter(JSONFormatter(service_name=service_name))
    logger.addHandler(handler)

    logger.propagate = False

    return logger
