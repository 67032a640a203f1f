"""Logging configuration.

Every log line emitted during a sync carries the job's dimensions (job id,
datasource id, sync type) so a single job can be followed across workers.
"""

import json
import logging
import sys
from datetime import datetime, timezone
from typing import Any, Dict, MutableMapping, Optional, Tuple

from relsync.core.config import settings

_RESERVED_RECORD_ATTRS = set(vars(logging.makeLogRecord({})).keys()) | {"message", "asctime"}


class JSONFormatter(logging.Formatter):
    """Render records as single-line JSON with dimensions flattened in."""

    def format(self, record: logging.LogRecord) -> str:
        """Format the record as JSON."""
        entry: Dict[str, Any] = {
            "timestamp": datetime.fromtimestamp(record.created, tz=timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }
        for key, value in record.__dict__.items():
            if key not in _RESERVED_RECORD_ATTRS and not key.startswith("_"):
                entry[key] = value
        if record.exc_info:
            entry["exc_info"] = self.formatException(record.exc_info)
        return json.dumps(entry, default=str)


class ContextualLogger(logging.LoggerAdapter):
    """Logger adapter that attaches a fixed set of dimensions to every record."""

    def __init__(self, logger: logging.Logger, dimensions: Optional[Dict[str, Any]] = None):
        """Initialize with the wrapped logger and its dimensions."""
        super().__init__(logger, {})
        self.dimensions: Dict[str, Any] = dict(dimensions or {})

    def process(self, msg: Any, kwargs: MutableMapping[str, Any]) -> Tuple[Any, MutableMapping]:
        """Merge dimensions into the record's `extra`."""
        extra = dict(self.dimensions)
        extra.update(kwargs.get("extra") or {})
        kwargs["extra"] = extra
        return msg, kwargs

    def with_context(self, **dimensions: Any) -> "ContextualLogger":
        """Return a child logger with additional dimensions."""
        merged = {**self.dimensions, **{k: v for k, v in dimensions.items() if v is not None}}
        return ContextualLogger(self.logger, merged)


class _TextFormatter(logging.Formatter):
    """Plain text formatter that appends dimensions in brackets."""

    def format(self, record: logging.LogRecord) -> str:
        base = super().format(record)
        dims = {
            k: v
            for k, v in record.__dict__.items()
            if k not in _RESERVED_RECORD_ATTRS and not k.startswith("_")
        }
        if not dims:
            return base
        rendered = " ".join(f"{k}={v}" for k, v in dims.items())
        return f"{base} [{rendered}]"


class LoggerConfigurator:
    """Creates loggers with the project's handler and formatter."""

    _configured_names: set = set()

    @classmethod
    def _handler(cls) -> logging.Handler:
        handler = logging.StreamHandler(sys.stdout)
        if settings.LOCAL_DEVELOPMENT or settings.TESTING:
            handler.setFormatter(
                _TextFormatter("%(asctime)s - %(name)s - %(levelname)s - %(message)s")
            )
        else:
            handler.setFormatter(JSONFormatter())
        return handler

    @classmethod
    def configure_logger(
        cls, name: str, dimensions: Optional[Dict[str, Any]] = None
    ) -> ContextualLogger:
        """Return a contextual logger for `name`.

        Args:
            name: Logger name (dotted module path)
            dimensions: Key/value pairs attached to every record

        Returns:
            ContextualLogger wrapping the named stdlib logger
        """
        base = logging.getLogger(name)
        if name not in cls._configured_names:
            base.setLevel(settings.LOG_LEVEL.upper())
            if not base.handlers:
                base.addHandler(cls._handler())
            base.propagate = False
            cls._configured_names.add(name)
        return ContextualLogger(base, dimensions)


logger = LoggerConfigurator.configure_logger("relsync")
