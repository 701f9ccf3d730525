"""
Structured logging for the analyzer.

- Development: readable colored lines tagged with run / extractor context
- Testing: same format, WARNING and above
- Production: one JSON object per line
- Level: LOG_LEVEL env variable overrides the per-environment default

Engine code passes run/extractor context through ``extra=``:

    logger.info("Table read table=%s rows=%d", table, n,
                extra={"run_id": run_id, "extractor_id": eid, "table": table})
"""

import json
import logging
import os
import sys
from datetime import datetime, timezone

# LogRecord extras carried as top-level JSON keys
CONTEXT_FIELDS = ("run_id", "extractor_id", "table", "operation", "tier", "duration_ms")

_NOISY_LOGGERS = ("urllib3", "werkzeug", "sqlalchemy.engine", "openpyxl", "alembic")


def _context(record: logging.LogRecord) -> dict:
    return {k: getattr(record, k) for k in CONTEXT_FIELDS if getattr(record, k, None) is not None}


class JSONFormatter(logging.Formatter):
    """One JSON document per record, for log shippers."""

    def format(self, record: logging.LogRecord) -> str:
        entry = {
            "timestamp": datetime.fromtimestamp(record.created, timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
            "thread": record.threadName,
            **_context(record),
        }
        if record.exc_info and record.exc_info[0] is not None:
            entry["exception"] = self.formatException(record.exc_info)
        return json.dumps(entry, ensure_ascii=False, default=str)


class ReadableFormatter(logging.Formatter):
    """Colored single-line format for a terminal."""

    COLORS = {
        "DEBUG": "\033[36m",
        "INFO": "\033[32m",
        "WARNING": "\033[33m",
        "ERROR": "\033[31m",
        "CRITICAL": "\033[35m",
    }
    RESET = "\033[0m"

    def format(self, record: logging.LogRecord) -> str:
        ctx = _context(record)
        tags = []
        if "run_id" in ctx:
            tags.append(f"run {str(ctx['run_id'])[:8]}")
        if "extractor_id" in ctx:
            tags.append(ctx["extractor_id"])
        if "operation" in ctx:
            tags.append(f"{ctx['operation']} t{ctx.get('tier', '?')}")
        tag = f" [{' | '.join(tags)}]" if tags else ""
        took = f" ({ctx['duration_ms']:.0f}ms)" if "duration_ms" in ctx else ""
        ts = datetime.fromtimestamp(record.created).strftime("%H:%M:%S")
        color = self.COLORS.get(record.levelname, "")
        line = f"{color}{ts} {record.levelname:<8}{self.RESET} {record.name}{tag}: {record.getMessage()}{took}"
        if record.exc_info and record.exc_info[0] is not None:
            line += "\n" + self.formatException(record.exc_info)
        return line


def configure_logging(app):
    """Install a single stderr handler on the root logger for *app*'s environment."""
    testing = app.config.get("TESTING", False)
    production = not app.config.get("DEBUG", False) and not testing

    if production:
        default_level = "INFO"
    elif testing:
        default_level = "WARNING"
    else:
        default_level = "DEBUG"
    level_name = os.getenv("LOG_LEVEL", default_level).upper()
    level = getattr(logging, level_name, logging.INFO)

    handler = logging.StreamHandler(sys.stderr)
    handler.setFormatter(JSONFormatter() if production else ReadableFormatter())
    handler.setLevel(level)

    # Replaced, not appended, so repeated create_app calls do not duplicate lines
    root = logging.getLogger()
    root.handlers[:] = [handler]
    root.setLevel(level)
    for name in _NOISY_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)
    app.logger.setLevel(level)

    if not testing:
        app.logger.info("Logging configured level=%s format=%s", level_name, "json" if production else "readable")
