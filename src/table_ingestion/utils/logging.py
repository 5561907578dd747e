# ============================================================================
# src/table_ingestion/utils/logging.py
# ============================================================================
"""
Logging setup for the table ingestion engine.

Records emitted while a job is running carry its id (see JobLogAdapter);
both the plain-text and JSON formats print it.
"""

import json
import logging
import sys
import time
from datetime import datetime, timezone
from functools import wraps
from pathlib import Path
from typing import Iterable, Optional

TEXT_FORMAT = '%(asctime)s - %(name)s - %(levelname)s - [%(job_id)s] %(message)s'
DATE_FORMAT = '%Y-%m-%d %H:%M:%S'

# PDF parsing libraries that flood DEBUG output with per-object messages
NOISY_LOGGERS = ("pdfminer", "pdfplumber", "PIL", "multipart")

CONTEXT_FIELDS = ("job_id", "table_id", "source")


class JobContextFilter(logging.Filter):
    """Give every record a job_id so TEXT_FORMAT never fails."""

    def filter(self, record: logging.LogRecord) -> bool:
        if not hasattr(record, "job_id"):
            record.job_id = "-"
        return True


class JsonFormatter(logging.Formatter):
    """One JSON object per line, with any job context attached."""

    def format(self, record: logging.LogRecord) -> str:
        entry = {
            'timestamp': datetime.fromtimestamp(record.created, tz=timezone.utc).isoformat(),
            'level': record.levelname,
            'logger': record.name,
            'message': record.getMessage(),
            'function': record.funcName,
            'line': record.lineno,
        }

        for name in CONTEXT_FIELDS:
            value = getattr(record, name, None)
            if value not in (None, "-"):
                entry[name] = value

        if record.exc_info:
            entry['exception'] = self.formatException(record.exc_info)

        return json.dumps(entry, ensure_ascii=False)


def setup_logging(
    level: str = "INFO",
    log_file: Optional[Path] = None,
    format_json: bool = False,
    quiet_loggers: Iterable[str] = NOISY_LOGGERS,
) -> None:
    """
    Configure the root logger.

    Args:
        level: Logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
        log_file: Also write to this file
        format_json: JSON lines instead of plain text
        quiet_loggers: Third-party loggers capped at WARNING
    """
    formatter = JsonFormatter() if format_json else logging.Formatter(TEXT_FORMAT, datefmt=DATE_FORMAT)
    context = JobContextFilter()

    handlers = [logging.StreamHandler(sys.stdout)]
    if log_file:
        log_file = Path(log_file)
        log_file.parent.mkdir(parents=True, exist_ok=True)
        handlers.append(logging.FileHandler(log_file, encoding="utf-8"))

    for handler in handlers:
        handler.setFormatter(formatter)
        handler.addFilter(context)

    logging.basicConfig(level=getattr(logging, level.upper()), handlers=handlers, force=True)

    for name in quiet_loggers:
        logging.getLogger(name).setLevel(logging.WARNING)


def setup_logging_from_settings() -> None:
    """Configure logging from LOG_LEVEL / LOG_FILE / LOG_JSON."""
    from ..config import logging_settings

    setup_logging(
        level=logging_settings.LOG_LEVEL,
        log_file=logging_settings.LOG_FILE,
        format_json=logging_settings.LOG_JSON,
    )


def log_performance(logger: logging.Logger, operation: str, level: int = logging.INFO):
    """
    Decorator logging how long `operation` took, or how long it ran before failing.
    """
    def decorator(func):
        @wraps(func)
        def wrapper(*args, **kwargs):
            started = time.perf_counter()
            try:
                result = func(*args, **kwargs)
            except Exception as e:
                logger.error(f"{operation} failed after {time.perf_counter() - started:.3f}s: {e}")
                raise
            logger.log(level, f"{operation} completed in {time.perf_counter() - started:.3f}s")
            return result

        return wrapper
    return decorator


class JobLogAdapter(logging.LoggerAdapter):
    """Attaches a job id (and optional source file) to every record."""

    def __init__(self, logger: logging.Logger, job_id: str, source: Optional[str] = None):
        extra = {"job_id": job_id}
        if source:
            extra["source"] = source
        super().__init__(logger, extra)

    def process(self, msg, kwargs):
        kwargs['extra'] = {**self.extra, **kwargs.get('extra', {})}
        return msg, kwargs
