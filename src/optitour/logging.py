"""Structured JSON logging for the OptiTour field client.

Provides audit-friendly logging with contextual fields for queue events,
replay attempts and photo upload state changes. Tokens and photo bytes are
never logged.

Usage:
    from optitour.logging import setup_logging, get_logger

    setup_logging("INFO")
    log = get_logger("optitour.sync")
    log.info("replay_pass", extra={"items": 3})
"""

from __future__ import annotations

import logging
import sys
from datetime import datetime, timezone
from functools import lru_cache
from logging.handlers import RotatingFileHandler
from pathlib import Path

from pythonjsonlogger import jsonlogger

from optitour import __version__

# Device identifier added to every record once known
_device_id: str | None = None


class OptiTourJsonFormatter(jsonlogger.JsonFormatter):
    """JSON formatter that adds client context to all log records."""

    def add_fields(
        self,
        log_record: dict,
        record: logging.LogRecord,
        message_dict: dict,
    ) -> None:
        """Add standard fields to every log record."""
        super().add_fields(log_record, record, message_dict)

        log_record["timestamp"] = self.formatTime(record)
        log_record["level"] = record.levelname
        log_record["logger"] = record.name

        log_record["client_version"] = __version__
        if _device_id:
            log_record["device_id"] = _device_id

        if "message" not in log_record and record.getMessage():
            log_record["message"] = record.getMessage()

    def formatTime(self, record: logging.LogRecord, datefmt: str | None = None) -> str:
        """Format time as ISO 8601."""
        dt = datetime.fromtimestamp(record.created, tz=timezone.utc)
        return dt.isoformat()


def setup_logging(
    level: str = "INFO",
    log_file: Path | None = None,
    device_id: str | None = None,
    max_bytes: int = 10_000_000,  # 10MB
    backup_count: int = 5,
) -> None:
    """Configure root logger with JSON formatting.

    Args:
        level: Log level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
        log_file: Optional path for rotating file handler
        device_id: Identifier of this device, added to every record
        max_bytes: Max size per log file for rotation
        backup_count: Number of backup files to keep
    """
    global _device_id
    if device_id:
        _device_id = device_id

    formatter = OptiTourJsonFormatter()

    root_logger = logging.getLogger()
    root_logger.setLevel(level.upper())

    for handler in root_logger.handlers[:]:
        root_logger.removeHandler(handler)

    # JSON to stderr so stdout stays clean for CLI output
    console_handler = logging.StreamHandler(sys.stderr)
    console_handler.setFormatter(formatter)
    root_logger.addHandler(console_handler)

    if log_file:
        log_file = Path(log_file)
        log_file.parent.mkdir(parents=True, exist_ok=True)
        file_handler = RotatingFileHandler(
            log_file,
            maxBytes=max_bytes,
            backupCount=backup_count,
        )
        file_handler.setFormatter(formatter)
        root_logger.addHandler(file_handler)

    # httpx logs every request at INFO
    logging.getLogger("httpx").setLevel(logging.WARNING)


@lru_cache(maxsize=32)
def get_logger(name: str) -> logging.Logger:
    """Get a named logger.

    Args:
        name: Logger name (e.g., 'optitour.sync', 'optitour.photos')

    Returns:
        Configured logger instance
    """
    return logging.getLogger(name)


# --- Audit Event Functions ---


def log_queue_enqueued(
    logger: logging.Logger,
    item_id: str,
    item_type: str,
    queue_size: int,
) -> None:
    """Log an action captured into the offline queue.

    Args:
        logger: Logger instance
        item_id: Queue item identifier
        item_type: Queue item type tag
        queue_size: Queue length after the enqueue
    """
    logger.info(
        "Action queued",
        extra={
            "event": "queue_enqueued",
            "item_id": item_id,
            "item_type": item_type,
            "queue_size": queue_size,
        },
    )


def log_replay_success(
    logger: logging.Logger,
    item_id: str,
    item_type: str,
    response_time_ms: float,
) -> None:
    """Log a queue item successfully replayed against the backend."""
    logger.info(
        "Replay successful",
        extra={
            "event": "replay_success",
            "item_id": item_id,
            "item_type": item_type,
            "response_time_ms": response_time_ms,
        },
    )


def log_replay_failed(
    logger: logging.Logger,
    item_id: str,
    error: str,
    retries: int,
) -> None:
    """Log a failed replay attempt.

    Args:
        logger: Logger instance
        item_id: Queue item identifier
        error: Error message (sanitized - no tokens)
        retries: Retry count after this failure
    """
    logger.warning(
        "Replay failed",
        extra={
            "event": "replay_failed",
            "item_id": item_id,
            "error": error,
            "retries": retries,
        },
    )


def log_dead_lettered(
    logger: logging.Logger,
    item_id: str,
    item_type: str,
    retries: int,
) -> None:
    """Log a queue item moved to the dead-letter queue."""
    logger.warning(
        "Item dead-lettered",
        extra={
            "event": "dead_lettered",
            "item_id": item_id,
            "item_type": item_type,
            "retries": retries,
        },
    )


def log_photo_status(
    logger: logging.Logger,
    photo_id: str,
    old_status: str,
    new_status: str,
    error: str | None = None,
) -> None:
    """Log a photo upload state transition."""
    extra = {
        "event": "photo_status",
        "photo_id": photo_id,
        "old_status": old_status,
        "new_status": new_status,
    }
    if error:
        extra["error"] = error
        logger.warning("Photo status changed", extra=extra)
    else:
        logger.info("Photo status changed", extra=extra)
