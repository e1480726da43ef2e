"""
FlexReviews logging setup.

Text lines for local runs, JSON lines (LOG_JSON=true) for log shipping.
Source adapters tag their records with `extra={"source": ..., "count": ...}`
so fallbacks can be searched for by source.
"""

import json
import logging
import logging.handlers
import sys
from datetime import datetime, timezone
from pathlib import Path
from typing import Optional

# Extra attributes copied into JSON log lines when set via `extra=`
EXTRA_FIELDS = ("source", "listing_id", "review_id", "duration", "count")

TEXT_FORMAT = "%(asctime)s [%(levelname)-8s] %(name)-30s | %(message)s"

LOG_FILE_MAX_BYTES = 5 * 1024 * 1024
LOG_FILE_BACKUPS = 3

QUIET_LOGGERS = ("urllib3", "httpx")


class JSONFormatter(logging.Formatter):
    """One JSON object per record: ts, level, logger, msg, plus tagged extras."""

    def format(self, record: logging.LogRecord) -> str:
        entry = {
            "ts": datetime.fromtimestamp(record.created, timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "msg": record.getMessage(),
        }
        entry.update(
            (key, getattr(record, key))
            for key in EXTRA_FIELDS
            if getattr(record, key, None) is not None
        )
        if record.exc_info and record.exc_info[0] is not None:
            entry["exception"] = self.formatException(record.exc_info)
        return json.dumps(entry, default=str)


def _formatter(json_output: bool, fmt: Optional[str]) -> logging.Formatter:
    if json_output:
        return JSONFormatter()
    return logging.Formatter(fmt or TEXT_FORMAT, datefmt="%Y-%m-%d %H:%M:%S")


def setup_logging(
    level: str = "INFO",
    json_output: bool = False,
    log_file: Optional[str] = None,
    fmt: Optional[str] = None,
):
    """
    Replace the root handlers with a stdout handler and, when `log_file` is
    set, a size-rotated file handler. `fmt` only applies to text output.
    """
    formatter = _formatter(json_output, fmt)
    handlers = [logging.StreamHandler(sys.stdout)]

    if log_file:
        path = Path(log_file)
        path.parent.mkdir(parents=True, exist_ok=True)
        handlers.append(logging.handlers.RotatingFileHandler(
            path,
            maxBytes=LOG_FILE_MAX_BYTES,
            backupCount=LOG_FILE_BACKUPS,
            encoding="utf-8",
        ))

    root = logging.getLogger()
    root.handlers.clear()
    root.setLevel(getattr(logging, level.upper(), logging.INFO))
    for handler in handlers:
        handler.setFormatter(formatter)
        root.addHandler(handler)

    for name in QUIET_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)

    logging.getLogger(__name__).debug(
        f"Logging ready (level={level}, json={json_output}, file={log_file or 'none'})"
    )


def setup_logging_from_settings():
    """Configure logging from the LOG_* settings."""
    from .data.config import get_settings

    cfg = get_settings().logging
    setup_logging(level=cfg.level, json_output=cfg.json_logs, log_file=cfg.log_file, fmt=cfg.format)
