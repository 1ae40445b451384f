"""Process-wide logging setup.

The root logger gets a single ``QueueHandler``; the real sinks (console,
rotating JSONL file) hang off a ``QueueListener`` thread so formatting and
file I/O never run on the event loop.
"""

from __future__ import annotations

import atexit
import copy
import logging
import logging.config
from logging.handlers import QueueHandler, QueueListener, RotatingFileHandler
from pathlib import Path
from queue import SimpleQueue
from typing import TYPE_CHECKING, Any

from auction_worker.infra.logging.formatters import JSONFormatter

if TYPE_CHECKING:
    from collections.abc import Mapping

    from auction_worker.core.settings.logs import LoggingSettings

logger = logging.getLogger(__name__)

TEXT_FORMAT = "%(asctime)s %(levelname)-8s %(name)s: %(message)s"
DATE_FORMAT = "%Y-%m-%dT%H:%M:%S"
JSON_KEYS = {"level": "levelname", "logger": "name", "message": "message"}

_listener: QueueListener | None = None
_root_handler: QueueHandler | None = None
_configured = False
_TRACEBACKS = logging.Formatter()


class _RecordQueueHandler(QueueHandler):
    """Queue handler that keeps the traceback out of ``message``.

    The stock ``prepare`` folds the formatted traceback into the message; the
    JSON formatter wants it in its own field, so only ``exc_text`` is filled.
    """

    def prepare(self, record: logging.LogRecord) -> logging.LogRecord:
        record = copy.copy(record)
        record.message = record.getMessage()
        record.msg, record.args = record.message, None
        if record.exc_info:
            record.exc_text = _TRACEBACKS.formatException(record.exc_info)
            record.exc_info = None
        return record


def shutdown() -> None:
    """Flush queued records and detach the queue handler. Idempotent."""
    global _listener, _root_handler

    listener, _listener = _listener, None
    if listener is not None:
        listener.stop()
    handler, _root_handler = _root_handler, None
    if handler is not None:
        logging.getLogger().removeHandler(handler)


atexit.register(shutdown)


def setup_logging(log_settings: LoggingSettings | None = None, *, force: bool = False) -> None:
    """Configure logging from ``LoggingSettings`` once per process.

    Later calls are no-ops unless ``force`` is set.
    """
    global _configured

    if _configured and not force:
        return
    if log_settings is None:
        from auction_worker.core.settings import get_logging_settings

        log_settings = get_logging_settings()

    configure_logging(
        log_level=log_settings.level,
        service_name=log_settings.service_name,
        json_logs=log_settings.json_logs,
        console_enabled=log_settings.console_enabled,
        file_path=log_settings.effective_file_path,
        file_max_bytes=log_settings.file_max_bytes,
        file_backup_count=log_settings.file_backup_count,
        capture_warnings=log_settings.capture_warnings,
        logger_levels=log_settings.noisy_loggers,
    )
    _configured = True


def configure_logging(
    log_level: str = "INFO",
    service_name: str = "item-service",
    json_logs: bool = True,
    console_enabled: bool = True,
    file_path: str | Path | None = None,
    file_max_bytes: int = 10 * 1024 * 1024,
    file_backup_count: int = 5,
    capture_warnings: bool = True,
    logger_levels: Mapping[str, str] | None = None,
) -> None:
    """(Re)build the logging tree.

        configure_logging(log_level="DEBUG", json_logs=False)
    """
    shutdown()
    logging.captureWarnings(capture_warnings)

    # Levels only; handlers are attached below so they all share one queue.
    logging.config.dictConfig(
        {
            "version": 1,
            "disable_existing_loggers": False,
            "root": {"level": log_level.upper(), "handlers": []},
            "loggers": {
                name: {"level": level.upper()} for name, level in (logger_levels or {}).items()
            },
        }
    )

    sinks = _build_sinks(
        formatter=_formatter(json_logs, service_name),
        console_enabled=console_enabled,
        file_path=Path(file_path) if file_path else None,
        file_max_bytes=file_max_bytes,
        file_backup_count=file_backup_count,
    )
    _install_queue(sinks)
    logger.debug("Logging configured", extra={"json_logs": json_logs, "level": log_level})


def _formatter(json_logs: bool, service_name: str) -> logging.Formatter:
    if json_logs:
        return JSONFormatter(fmt_keys=dict(JSON_KEYS), static={"service": service_name})
    return logging.Formatter(fmt=TEXT_FORMAT, datefmt=DATE_FORMAT)


def _build_sinks(
    *,
    formatter: logging.Formatter,
    console_enabled: bool,
    file_path: Path | None,
    file_max_bytes: int,
    file_backup_count: int,
) -> list[logging.Handler]:
    sinks: list[logging.Handler] = []
    if console_enabled:
        sinks.append(logging.StreamHandler())
    if file_path is not None:
        file_path.parent.mkdir(parents=True, exist_ok=True)
        sinks.append(
            RotatingFileHandler(
                file_path,
                maxBytes=file_max_bytes,
                backupCount=file_backup_count,
                encoding="utf-8",
            )
        )
    for sink in sinks:
        sink.setFormatter(formatter)
    return sinks


def _install_queue(sinks: list[logging.Handler]) -> None:
    global _listener, _root_handler

    queue: SimpleQueue[logging.LogRecord] = SimpleQueue()
    if sinks:
        _listener = QueueListener(queue, *sinks, respect_handler_level=True)
        _listener.start()
    _root_handler = _RecordQueueHandler(queue)
    logging.getLogger().addHandler(_root_handler)
