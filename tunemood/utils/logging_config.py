"""
TuneMood Logging Configuration

structlog over the standard logging module. Everything at the configured
level goes to ``tunemood.log`` as JSON lines, ERROR and above is also
copied to ``errors.log``, and a coloured console renderer is used for
development. Per-request fields (request id, user id, path) are carried
in contextvars and merged into every record.
"""

import logging
import logging.handlers
import sys
from pathlib import Path
from typing import List, Optional

import structlog
from structlog.contextvars import bind_contextvars, clear_contextvars

# Third-party loggers kept at WARNING unless debugging
NOISY_MODULES = ("aiohttp.access", "aiohttp.client", "diskcache", "uvicorn.access")

MAX_LOG_BYTES = 10 * 1024 * 1024
LOG_BACKUPS = 5


class TuneMoodLogger:
    """
    Owns the root logger handlers for the process.

    Created once by ``setup_logging``; creating another replaces the
    handlers of the previous one.
    """

    def __init__(
        self,
        log_dir: str = "logs",
        log_level: str = "INFO",
        enable_console: bool = True,
        max_file_size: int = MAX_LOG_BYTES,
        backup_count: int = LOG_BACKUPS
    ):
        self.log_dir = Path(log_dir)
        self.level = logging.getLevelName(log_level.upper())
        if not isinstance(self.level, int):
            self.level = logging.INFO
        self.enable_console = enable_console
        self.max_file_size = max_file_size
        self.backup_count = backup_count

        self.log_dir.mkdir(parents=True, exist_ok=True)
        self.configure()

    @staticmethod
    def shared_processors() -> List:
        return [
            structlog.contextvars.merge_contextvars,
            structlog.stdlib.add_log_level,
            structlog.stdlib.add_logger_name,
            structlog.processors.TimeStamper(fmt="iso", utc=True),
            structlog.processors.StackInfoRenderer(),
            structlog.processors.format_exc_info,
        ]

    def configure(self) -> None:
        structlog.configure(
            processors=self.shared_processors() + [
                structlog.stdlib.ProcessorFormatter.wrap_for_formatter,
            ],
            logger_factory=structlog.stdlib.LoggerFactory(),
            wrapper_class=structlog.stdlib.BoundLogger,
            cache_logger_on_first_use=True,
        )

        handlers = [
            self._file_handler("tunemood.log", self.level),
            self._file_handler("errors.log", logging.ERROR),
        ]
        if self.enable_console:
            console = logging.StreamHandler(sys.stdout)
            console.setLevel(self.level)
            console.setFormatter(self._formatter(structlog.dev.ConsoleRenderer(colors=True)))
            handlers.append(console)

        root = logging.getLogger()
        root.handlers.clear()
        for handler in handlers:
            root.addHandler(handler)
        root.setLevel(self.level)

        quiet = logging.DEBUG if self.level <= logging.DEBUG else logging.WARNING
        for module in NOISY_MODULES:
            logging.getLogger(module).setLevel(quiet)

    def _formatter(self, renderer) -> structlog.stdlib.ProcessorFormatter:
        # Records from plain stdlib loggers (uvicorn, aiohttp) get the same fields
        return structlog.stdlib.ProcessorFormatter(
            processor=renderer,
            foreign_pre_chain=self.shared_processors(),
        )

    def _file_handler(self, filename: str, level: int) -> logging.Handler:
        handler = logging.handlers.RotatingFileHandler(
            self.log_dir / filename,
            maxBytes=self.max_file_size,
            backupCount=self.backup_count,
            encoding="utf-8"
        )
        handler.setLevel(level)
        handler.setFormatter(self._formatter(structlog.processors.JSONRenderer()))
        return handler


_logger_instance: Optional[TuneMoodLogger] = None


def setup_logging(
    log_dir: str = "logs",
    log_level: str = "INFO",
    enable_console: bool = True,
    **kwargs
) -> TuneMoodLogger:
    """
    Configure process-wide logging.

    Args:
        log_dir: Directory for ``tunemood.log`` and ``errors.log``
        log_level: Level name, e.g. ``"DEBUG"``
        enable_console: Also log to stdout
        **kwargs: ``max_file_size`` / ``backup_count`` for rotation

    Returns:
        The active TuneMoodLogger
    """
    global _logger_instance
    _logger_instance = TuneMoodLogger(log_dir, log_level, enable_console, **kwargs)
    return _logger_instance


def get_logger(name: str) -> structlog.stdlib.BoundLogger:
    """Structured logger for a component; usable before ``setup_logging``."""
    return structlog.get_logger(name)


def bind_request_context(request_id: str, path: str, user_id: Optional[str] = None) -> None:
    """Attach request fields to every record logged while handling it."""
    clear_contextvars()
    bind_contextvars(request_id=request_id, path=path, user_id=user_id)


def clear_request_context() -> None:
    clear_contextvars()
