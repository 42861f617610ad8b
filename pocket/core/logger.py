"""JSON-lines loggers, one file per category (classifier, groq, phases...)."""

import json
import logging
from logging.handlers import TimedRotatingFileHandler
from pathlib import Path

from pocket.core.config import get_settings
from pocket.core.trace import get_cycle_id

# attributes passed through ``extra=`` that end up in the JSON record
CONTEXT_FIELDS = ("item_type", "action", "tier", "endpoint", "phase")


class JsonFormatter(logging.Formatter):
    def format(self, record: logging.LogRecord) -> str:  # type: ignore[override]
        entry = {
            "timestamp": self.formatTime(record, self.datefmt),
            "level": record.levelname,
            "category": record.name,
            "message": record.getMessage(),
            "cycle_id": get_cycle_id(),
        }
        for key in CONTEXT_FIELDS:
            value = getattr(record, key, None)
            if value is not None:
                entry[key] = value
        if record.exc_info:
            entry["exception"] = self.formatException(record.exc_info)
        return json.dumps(entry, ensure_ascii=False, default=str)


class SizeAndTimeRotatingFileHandler(TimedRotatingFileHandler):
    """Rolls over at midnight or once the file would exceed ``max_bytes``."""

    def __init__(self, filename: str | Path, max_bytes: int = 0, backup_count: int = 0) -> None:
        self.max_bytes = max_bytes
        super().__init__(
            str(filename),
            when="midnight",
            backupCount=backup_count,
            encoding="utf-8",
            delay=True,
        )

    def shouldRollover(self, record: logging.LogRecord) -> bool:  # type: ignore[override]
        if self.max_bytes > 0:
            if self.stream is None:
                self.stream = self._open()
            size = len(f"{self.format(record)}\n".encode("utf-8"))
            if self.stream.tell() + size >= self.max_bytes:
                return True
        return super().shouldRollover(record)


def log_dir() -> Path:
    """Directory receiving the JSONL log files."""
    configured = get_settings().log_dir
    path = Path(configured) if configured else Path(__file__).resolve().parent.parent / "logs"
    path.mkdir(parents=True, exist_ok=True)
    return path


def _build_logger(name: str, file_path: Path | None = None) -> logging.Logger:
    logger = logging.getLogger(f"pocket.{name}")
    if logger.handlers:
        return logger

    settings = get_settings()
    handler = SizeAndTimeRotatingFileHandler(
        file_path or log_dir() / f"{name}.jsonl",
        max_bytes=settings.log_rotate_mb * 1024 * 1024,
        backup_count=settings.log_retention_days,
    )
    handler.setFormatter(JsonFormatter())
    logger.setLevel(getattr(logging, settings.log_level.upper(), logging.INFO))
    logger.addHandler(handler)
    return logger


_LOGGERS: dict[str, logging.Logger] = {}


def get_logger(name: str) -> logging.Logger:
    """Return the category logger, creating it on first use."""
    if name not in _LOGGERS:
        _LOGGERS[name] = _build_logger(name)
    return _LOGGERS[name]
