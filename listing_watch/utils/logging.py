"""
Structured logging utilities for the Listing Watch system.

Component loggers emit one JSON object per message under the
``listing_watch`` logger hierarchy. ``setup_logging`` attaches a console
handler and, when a log directory is configured, rotating files for the
whole run, for errors only and for each pipeline component.
"""

import json
import logging
import logging.handlers
import sys
from datetime import datetime
from pathlib import Path
from typing import Any, Dict, Optional

ROOT_LOGGER_NAME = "listing_watch"

# Component name to the logger its module writes through.
COMPONENTS = {
    "fetcher": f"{ROOT_LOGGER_NAME}.components.listing_fetcher",
    "snapshot.store": f"{ROOT_LOGGER_NAME}.components.snapshot_store",
    "differencer": f"{ROOT_LOGGER_NAME}.components.differencer",
    "notifier": f"{ROOT_LOGGER_NAME}.components.notifier",
    "orchestrator": f"{ROOT_LOGGER_NAME}.orchestrator",
}

LINE_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"

MB = 1024 * 1024


def component_logger_name(component_name: str) -> str:
    """Name of the stdlib logger a component writes to."""
    return COMPONENTS.get(component_name, f"{ROOT_LOGGER_NAME}.{component_name}")


class ComponentLogger:
    """
    Structured logger for one pipeline component.

    Context given at construction (or added with ``bind``) is merged into
    every message.
    """

    def __init__(
        self, component_name: str, extra_context: Optional[Dict[str, Any]] = None
    ):
        """
        Initialize component logger.

        Args:
            component_name: Name of the component (e.g., 'fetcher', 'orchestrator')
            extra_context: Additional context to include in all log messages
        """
        self.component_name = component_name
        self.extra_context = extra_context or {}
        self.logger = logging.getLogger(component_logger_name(component_name))

    def bind(self, **context: Any) -> "ComponentLogger":
        """Return a logger for the same component with additional context."""
        return ComponentLogger(self.component_name, {**self.extra_context, **context})

    def _format_message(
        self, message: str, extra: Optional[Dict[str, Any]] = None
    ) -> Dict[str, Any]:
        log_data = {
            "timestamp": datetime.now().isoformat(),
            "component": self.component_name,
            "message": message,
            **self.extra_context,
        }
        if extra:
            log_data.update(extra)
        return log_data

    def _log(
        self,
        level: int,
        message: str,
        extra: Optional[Dict[str, Any]] = None,
        exc_info: bool = False,
    ):
        if not self.logger.isEnabledFor(level):
            return

        log_data = self._format_message(message, extra)
        if exc_info:
            log_data["exception"] = True
        self.logger.log(level, json.dumps(log_data, default=str), exc_info=exc_info)

    def debug(self, message: str, extra: Optional[Dict[str, Any]] = None):
        self._log(logging.DEBUG, message, extra)

    def info(self, message: str, extra: Optional[Dict[str, Any]] = None):
        self._log(logging.INFO, message, extra)

    def warning(self, message: str, extra: Optional[Dict[str, Any]] = None):
        self._log(logging.WARNING, message, extra)

    def error(
        self,
        message: str,
        extra: Optional[Dict[str, Any]] = None,
        exc_info: bool = False,
    ):
        self._log(logging.ERROR, message, extra, exc_info)

    def critical(
        self,
        message: str,
        extra: Optional[Dict[str, Any]] = None,
        exc_info: bool = False,
    ):
        self._log(logging.CRITICAL, message, extra, exc_info)


def _reset_handlers(logger: logging.Logger):
    for handler in list(logger.handlers):
        logger.removeHandler(handler)
        handler.close()


class LoggingManager:
    """
    Owns the handlers of the ``listing_watch`` logger hierarchy.

    With ``log_dir=None`` only the console handler is installed, which
    suits containers and schedulers that collect stdout.
    """

    def __init__(self, log_dir: Optional[str] = "logs", log_level: str = "INFO"):
        """
        Initialize logging manager.

        Args:
            log_dir: Directory for log files, or None for console output only
            log_level: Default log level
        """
        self.log_dir = Path(log_dir) if log_dir else None
        self.log_level = getattr(logging, log_level.upper())
        self.component_loggers: Dict[str, ComponentLogger] = {}

        if self.log_dir is not None:
            self.log_dir.mkdir(parents=True, exist_ok=True)

        self._setup_logging()

    def _rotating_handler(
        self, filename: str, level: int, max_bytes: int, backup_count: int, fmt: str
    ) -> logging.Handler:
        handler = logging.handlers.RotatingFileHandler(
            self.log_dir / filename,
            maxBytes=max_bytes,
            backupCount=backup_count,
            encoding="utf-8",
        )
        handler.setLevel(level)
        handler.setFormatter(logging.Formatter(fmt))
        return handler

    def _setup_logging(self):
        root_logger = logging.getLogger(ROOT_LOGGER_NAME)
        root_logger.setLevel(self.log_level)
        _reset_handlers(root_logger)

        console_handler = logging.StreamHandler(sys.stdout)
        console_handler.setLevel(self.log_level)
        console_handler.setFormatter(logging.Formatter(LINE_FORMAT))
        root_logger.addHandler(console_handler)

        for logger_name in COMPONENTS.values():
            _reset_handlers(logging.getLogger(logger_name))

        if self.log_dir is None:
            return

        root_logger.addHandler(
            self._rotating_handler(
                "listing_watch.log", self.log_level, 10 * MB, 5, LINE_FORMAT
            )
        )
        root_logger.addHandler(
            self._rotating_handler("errors.log", logging.ERROR, 5 * MB, 3, LINE_FORMAT)
        )

        # Component files repeat their component's records; the root handlers
        # still receive them through propagation.
        for component, logger_name in COMPONENTS.items():
            logging.getLogger(logger_name).addHandler(
                self._rotating_handler(
                    f"{component.replace('.', '_')}.log",
                    self.log_level,
                    5 * MB,
                    2,
                    "%(asctime)s - %(levelname)s - %(message)s",
                )
            )

    def get_component_logger(
        self, component_name: str, extra_context: Optional[Dict[str, Any]] = None
    ) -> ComponentLogger:
        """
        Get or create a component logger.

        Loggers are cached per component and context.
        """
        context_key = json.dumps(extra_context or {}, sort_keys=True, default=str)
        cache_key = f"{component_name}:{context_key}"

        if cache_key not in self.component_loggers:
            self.component_loggers[cache_key] = ComponentLogger(
                component_name, extra_context
            )

        return self.component_loggers[cache_key]


# Global logging manager instance
_logging_manager: Optional[LoggingManager] = None


def setup_logging(
    log_dir: Optional[str] = "logs", log_level: str = "INFO"
) -> LoggingManager:
    """
    Configure logging for the process.

    Safe to call more than once; each call replaces the previous handlers.
    """
    global _logging_manager
    _logging_manager = LoggingManager(log_dir, log_level)
    return _logging_manager


def get_logger(
    component_name: str, extra_context: Optional[Dict[str, Any]] = None
) -> ComponentLogger:
    """
    Get a component logger.

    Works before setup_logging() has been called; messages then go through
    whatever handlers the host application configured.
    """
    if _logging_manager is None:
        return ComponentLogger(component_name, extra_context)

    return _logging_manager.get_component_logger(component_name, extra_context)
