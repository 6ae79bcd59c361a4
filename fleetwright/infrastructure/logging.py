"""
Centralized Logging

Architectural Intent:
- One configuration point for the `fleetwright` logger hierarchy
- Operator output stays on stdout via print(); logs go to stderr
- Level follows the CLI flags (--verbose, --debug) or the config file
- An optional log file on the node keeps the full DEBUG history of a run,
  including the payload of every published domain event
"""

import json
import logging
import sys
from datetime import datetime, UTC
from typing import Optional

LOGGER_NAME = "fleetwright"
HUMAN_FORMAT = "%(asctime)s [%(levelname)s] %(name)s: %(message)s"


class JSONFormatter(logging.Formatter):
    """One JSON object per record. Records logged with extra={"event": ...} carry it along."""

    def format(self, record: logging.LogRecord) -> str:
        entry = {
            "timestamp": datetime.fromtimestamp(record.created, UTC).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }
        event = getattr(record, "event", None)
        if event is not None:
            entry["event"] = event
        if record.exc_info and record.exc_info[1]:
            entry["exception"] = self.formatException(record.exc_info)
        return json.dumps(entry, default=str)


def _handler(handler: logging.Handler, level: int, json_format: bool) -> logging.Handler:
    handler.setLevel(level)
    handler.setFormatter(JSONFormatter() if json_format else logging.Formatter(HUMAN_FORMAT))
    return handler


def configure_logging(
    level: int = logging.INFO,
    json_format: bool = False,
    log_file: Optional[str] = None,
) -> None:
    """Configure logging for the Fleetwright application.

    Args:
        level: Level for the stderr handler (DEBUG, INFO, WARNING, etc.)
        json_format: If True, use JSON structured output. Otherwise human-readable.
        log_file: If set, also append records at DEBUG and above to this file.
            A file that cannot be opened is reported and skipped.
    """
    logger = logging.getLogger(LOGGER_NAME)
    logger.setLevel(min(level, logging.DEBUG) if log_file else level)

    for existing in list(logger.handlers):
        logger.removeHandler(existing)
        existing.close()

    logger.addHandler(_handler(logging.StreamHandler(sys.stderr), level, json_format))

    if not log_file:
        return
    try:
        file_handler = logging.FileHandler(log_file, encoding="utf-8")
    except OSError as e:
        logger.warning("Cannot open log file %s: %s", log_file, e)
        return
    logger.addHandler(_handler(file_handler, logging.DEBUG, json_format))
