"""Logging setup for the company service.

Two output modes: one JSON object per line for log aggregation (production,
or ``LOG_JSON=true``) and a plain text line for local work. Request and
company context travels on records through ``extra`` or a bound
``ContextLogger``.
"""
import logging
import json
import sys
from datetime import datetime, timezone
from typing import Any, Dict, Optional, Union
import traceback

SERVICE_NAME = "company-service"

# Attributes passed through ``extra`` that are copied into JSON output
CONTEXT_FIELDS = (
    "request_id",
    "principal",
    "method",
    "path",
    "status_code",
    "duration_ms",
    "operation",
    "company_id",
    "event_type",
    "error_type",
)

TEXT_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"


class JSONFormatter(logging.Formatter):
    """Render a record as a single JSON line.

    Context attributes listed in ``CONTEXT_FIELDS`` are emitted only when
    present on the record.
    """

    def format(self, record: logging.LogRecord) -> str:
        entry: Dict[str, Any] = {
            "timestamp": datetime.fromtimestamp(record.created, tz=timezone.utc).isoformat(),
            "service": SERVICE_NAME,
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
            "location": f"{record.module}.{record.funcName}:{record.lineno}",
        }

        entry.update({
            name: getattr(record, name)
            for name in CONTEXT_FIELDS
            if hasattr(record, name)
        })

        if record.exc_info:
            exc_type, exc_value, exc_tb = record.exc_info
            entry["exception"] = {
                "type": exc_type.__name__,
                "message": str(exc_value),
                "traceback": traceback.format_exception(exc_type, exc_value, exc_tb),
            }

        return json.dumps(entry, default=str)


class ContextLogger(logging.LoggerAdapter):
    """Logger with fixed context merged into every record.

    Per-call ``extra`` values are kept; bound context wins on a clash.

    Example:
        >>> request_logger = ContextLogger(logger, {"request_id": "abc123"})
        >>> request_logger.info("Request started", extra={"path": "/companies"})
    """

    def process(self, msg: str, kwargs: Dict[str, Any]) -> tuple:
        kwargs["extra"] = {**kwargs.get("extra", {}), **self.extra}
        return msg, kwargs


def setup_logging(level: str = "INFO", json_format: bool = True) -> logging.Logger:
    """Install a single stdout handler on the root logger.

    Args:
        level: Log level name (DEBUG, INFO, WARNING, ERROR, CRITICAL)
        json_format: JSON lines when True, plain text otherwise

    Returns:
        The root logger
    """
    numeric_level = getattr(logging, level.upper())

    handler = logging.StreamHandler(sys.stdout)
    handler.setLevel(numeric_level)
    handler.setFormatter(JSONFormatter() if json_format else logging.Formatter(TEXT_FORMAT))

    root_logger = logging.getLogger()
    root_logger.setLevel(numeric_level)
    root_logger.handlers.clear()
    root_logger.addHandler(handler)

    # aiokafka is chatty at INFO about metadata refreshes
    logging.getLogger("aiokafka").setLevel(logging.WARNING)

    return root_logger


def get_logger(
    name: str,
    context: Optional[Dict[str, Any]] = None,
) -> Union[logging.Logger, ContextLogger]:
    """Module logger, bound to ``context`` when one is given.

    Example:
        >>> request_logger = get_logger(__name__, {"request_id": request_id})
    """
    logger = logging.getLogger(name)
    return ContextLogger(logger, context) if context else logger


class LogTimer:
    """Log how long a block took.

    A block that raises is logged at INFO with the error type; reporting the
    exception itself is left to whoever handles it.

    Example:
        >>> with LogTimer(logger, "create_company"):
        ...     await service.create(candidate)
        # Logs: "create_company completed in 12.5ms"
    """

    def __init__(self, logger: logging.Logger, operation: str):
        self.logger = logger
        self.operation = operation
        self.start_time: Optional[datetime] = None

    def __enter__(self):
        self.start_time = datetime.now(timezone.utc)
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        duration = (datetime.now(timezone.utc) - self.start_time).total_seconds() * 1000
        context = {"operation": self.operation, "duration_ms": round(duration, 2)}

        if exc_type:
            context["error_type"] = exc_type.__name__
            self.logger.info(f"{self.operation} failed after {duration:.1f}ms", extra=context)
        else:
            self.logger.info(f"{self.operation} completed in {duration:.1f}ms", extra=context)


# Default until main.py reconfigures from settings
setup_logging(level="INFO", json_format=False)
