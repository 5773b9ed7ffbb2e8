"""
Shopsignal Logging Configuration
================================

Console (and optional rotating file) logging for the API, the CLI and the
scheduler.

Two formats:
    - human-readable lines for development
    - JSON lines for production, carrying the scoring context passed
      through `extra=` (run_id, product_id, score, event_type, duration)

Usage:
    from shopsignal.orchestrator.logging_config import setup_logging

    setup_logging(level="DEBUG", json_output=True, log_file="logs/shopsignal.log")
"""

import json
import logging
import logging.handlers
import os
import sys
from datetime import datetime, timezone
from typing import Optional

from ..data.config import LoggingConfig

CONTEXT_FIELDS = ("run_id", "product_id", "score", "event_type", "duration")


class JSONFormatter(logging.Formatter):
    """
    One JSON object per record.

    Output format:
        {"ts": "2026-...", "level": "INFO", "logger": "shopsignal...", "msg": "...", "run_id": "..."}
    """

    def format(self, record: logging.LogRecord) -> str:
        entry = {
            "ts": datetime.now(timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "msg": record.getMessage(),
        }

        if record.exc_info and record.exc_info[0] is not None:
            entry["exception"] = self.formatException(record.exc_info)

        for key in CONTEXT_FIELDS:
            val = getattr(record, key, None)
            if val is not None:
                entry[key] = val

        return json.dumps(entry, default=str)


def setup_logging(
    level: str = "INFO",
    json_output: bool = False,
    log_file: Optional[str] = None,
    max_bytes: int = 10 * 1024 * 1024,
    backup_count: int = 5,
):
    """
    Configure the root logger.

    Args:
        level: Root log level (DEBUG, INFO, WARNING, ERROR)
        json_output: Emit JSON lines instead of text
        log_file: Also write to this file, rotated at max_bytes
        max_bytes: Rotation size
        backup_count: Rotated files kept
    """
    root = logging.getLogger()
    root.setLevel(getattr(logging, level.upper(), logging.INFO))
    root.handlers.clear()

    if json_output:
        formatter = JSONFormatter()
    else:
        formatter = logging.Formatter(
            "%(asctime)s [%(levelname)-8s] %(name)-40s | %(message)s",
            datefmt="%Y-%m-%d %H:%M:%S",
        )

    console = logging.StreamHandler(sys.stdout)
    console.setFormatter(formatter)
    root.addHandler(console)

    if log_file:
        os.makedirs(os.path.dirname(log_file) or ".", exist_ok=True)
        file_handler = logging.handlers.RotatingFileHandler(
            log_file,
            maxBytes=max_bytes,
            backupCount=backup_count,
        )
        file_handler.setFormatter(formatter)
        root.addHandler(file_handler)

    # Quiet noisy libraries
    logging.getLogger("apscheduler").setLevel(logging.WARNING)
    logging.getLogger("httpx").setLevel(logging.WARNING)

    root.info(
        "Logging configured: level=%s json=%s file=%s",
        level, json_output, log_file or "none",
    )


def setup_logging_from_config(config: LoggingConfig, level: Optional[str] = None):
    """setup_logging() driven by LOG_LEVEL / LOG_JSON / LOG_FILE."""
    setup_logging(
        level=level or config.level,
        json_output=config.json_logs,
        log_file=config.log_file,
    )
