"""Logging setup: readable console output plus one JSONL file per crawl run."""

import json
import logging
import sys
from datetime import datetime
from pathlib import Path
from typing import Any

CONSOLE_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"

# Attributes every LogRecord has; anything else came in through ``extra``
_RECORD_ATTRS = set(vars(logging.makeLogRecord({}))) | {"message", "asctime"}


class JSONLFormatter(logging.Formatter):
    """Formats a record as one JSON object, structured fields included."""

    def format(self, record: logging.LogRecord) -> str:
        entry = {
            "timestamp": datetime.fromtimestamp(record.created).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
            "module": record.module,
            "function": record.funcName,
            "line": record.lineno,
        }
        for key, value in vars(record).items():
            if key not in _RECORD_ATTRS:
                entry[key] = value
        if record.exc_info:
            entry["exception"] = self.formatException(record.exc_info)
        return json.dumps(entry, default=str)


class JSONLFileHandler(logging.FileHandler):
    """Appends JSONL records to a run's log file, creating its directory."""

    def __init__(self, filepath: Path):
        filepath = Path(filepath)
        filepath.parent.mkdir(parents=True, exist_ok=True)
        super().__init__(filepath, mode="a", encoding="utf-8", delay=True)
        self.filepath = filepath
        self.setFormatter(JSONLFormatter())


def get_logger(
    name: str,
    log_file: Path | None = None,
    level: str | int = logging.INFO,
) -> logging.Logger:
    """
    Get a logger that prints to stdout and optionally writes JSONL.

    The console handler is set up the first time a name is requested. Each new
    ``log_file`` passed for that name adds its own file handler, so that every
    crawl run gets its own ``crawler.jsonl``.

    Args:
        name: Logger name (usually __name__)
        log_file: Optional path to JSONL log file
        level: Logging level for the logger and its handlers

    Returns:
        Configured logger instance
    """
    logger = logging.getLogger(name)

    if not logger.handlers:
        logger.setLevel(level)
        console = logging.StreamHandler(sys.stdout)
        console.setLevel(level)
        console.setFormatter(logging.Formatter(CONSOLE_FORMAT, datefmt="%Y-%m-%d %H:%M:%S"))
        logger.addHandler(console)

    if log_file and not any(
        isinstance(h, JSONLFileHandler) and h.filepath == Path(log_file)
        for h in logger.handlers
    ):
        file_handler = JSONLFileHandler(log_file)
        file_handler.setLevel(level)
        logger.addHandler(file_handler)

    return logger


def log_event(
    logger: logging.Logger,
    event_type: str,
    message: str,
    level: int = logging.INFO,
    **fields: Any,
) -> None:
    """
    Log a message tagged with an event type and structured fields.

    The fields only show up in JSONL output; the console gets the message.

    Args:
        logger: Logger instance
        event_type: Event name (e.g. "unit_done", "unit_timeout")
        message: Human-readable message
        level: Logging level of the event
        **fields: Extra fields for the JSONL entry (e.g. url, error)
    """
    clashing = _RECORD_ATTRS.intersection(fields)
    if clashing:
        raise ValueError(f"Reserved log record fields: {sorted(clashing)}")
    logger.log(level, message, extra={"event_type": event_type, **fields})
