"""
Structured JSON Logging Module.

One JSON object per line, written to stdout and to a size-rotated file.
Sync cycles run on worker and listener threads, so every line records
the thread that emitted it alongside the logger name.
"""

import json
import logging
import sys
from datetime import datetime, timezone
from logging.handlers import RotatingFileHandler
from pathlib import Path
from typing import Optional, TextIO

# Attributes every LogRecord carries; anything else arrived via ``extra=``.
_RESERVED_RECORD_ATTRS: frozenset[str] = frozenset(
    vars(logging.makeLogRecord({})).keys()
) | {"message", "asctime"}


class JSONFormatter(logging.Formatter):
    """Render a record as a single-line JSON object.

    Keys: ``ts`` (ISO-8601 UTC), ``level``, ``logger``, ``thread``,
    ``msg``, then ``ctx`` for caller-supplied ``extra`` fields and
    ``exc`` for a formatted traceback.
    """

    def format(self, record: logging.LogRecord) -> str:
        payload: dict[str, object] = {
            "ts": datetime.fromtimestamp(record.created, tz=timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "thread": record.threadName,
            "msg": record.getMessage(),
        }

        context = {
            key: value
            for key, value in vars(record).items()
            if key not in _RESERVED_RECORD_ATTRS
        }
        if context:
            payload["ctx"] = context

        if record.exc_info:
            payload["exc"] = self.formatException(record.exc_info)

        return json.dumps(payload, ensure_ascii=False, default=str)


class StructuredLogger:
    """Injectable wrapper around a JSON-configured ``logging.Logger``.

    Build one per component and hand it to constructors::

        engine = SyncEngine(cache, remote, logger=StructuredLogger("sync"))

    Handlers are attached only the first time a given *name* is seen, so
    constructing the same logger twice does not duplicate output.
    """

    def __init__(
        self,
        name: str = "gym_manager",
        level: int = logging.INFO,
        stream: Optional[TextIO] = None,
        log_file: Optional[str] = None,
        max_bytes: Optional[int] = None,
        backup_count: Optional[int] = None,
    ) -> None:
        # Imported here: config itself logs during validation.
        from gym_manager.config import get_config

        cfg = get_config()
        self._logger: logging.Logger = logging.getLogger(name)
        self._logger.setLevel(level)

        if not self._logger.handlers:
            formatter = JSONFormatter()
            for handler in self._build_handlers(
                stream=stream,
                log_file=log_file or cfg.LOG_FILE,
                max_bytes=cfg.LOG_MAX_BYTES if max_bytes is None else max_bytes,
                backup_count=cfg.LOG_BACKUP_COUNT if backup_count is None else backup_count,
            ):
                handler.setLevel(level)
                handler.setFormatter(formatter)
                self._logger.addHandler(handler)

    def _build_handlers(
        self,
        stream: Optional[TextIO],
        log_file: str,
        max_bytes: int,
        backup_count: int,
    ) -> list[logging.Handler]:
        handlers: list[logging.Handler] = [logging.StreamHandler(stream or sys.stdout)]
        try:
            path = Path(log_file)
            path.parent.mkdir(parents=True, exist_ok=True)
            handlers.append(
                RotatingFileHandler(
                    filename=str(path),
                    maxBytes=max_bytes,
                    backupCount=backup_count,
                    encoding="utf-8",
                )
            )
        except OSError as exc:
            # Console-only; the cache must still open on a read-only install.
            self._logger.warning(
                "Log file '%s' unavailable (%s); logging to console only.", log_file, exc
            )
        return handlers

    @property
    def logger(self) -> logging.Logger:
        """The underlying ``logging.Logger``."""
        return self._logger

    def debug(self, msg: str, *args: object, **kwargs: object) -> None:
        self._logger.debug(msg, *args, **kwargs)

    def info(self, msg: str, *args: object, **kwargs: object) -> None:
        self._logger.info(msg, *args, **kwargs)

    def warning(self, msg: str, *args: object, **kwargs: object) -> None:
        self._logger.warning(msg, *args, **kwargs)

    def error(self, msg: str, *args: object, **kwargs: object) -> None:
        self._logger.error(msg, *args, **kwargs)

    def critical(self, msg: str, *args: object, **kwargs: object) -> None:
        self._logger.critical(msg, *args, **kwargs)


def get_logger(name: str = "gym_manager") -> StructuredLogger:
    """Return a ``StructuredLogger`` for *name* with configured defaults."""
    return StructuredLogger(name=name)
