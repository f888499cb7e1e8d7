"""Logging utilities for the managed index client.

Logging is structured with structlog. Console output uses column rendering,
while logs written to file or emitted in JSON mode are rendered as JSON.
"""

from __future__ import annotations

import logging
from collections.abc import Callable
from typing import Any

import structlog
from structlog.dev import Column
from structlog.processors import CallsiteParameter, CallsiteParameterAdder

# Keep the library silent until setup_logging installs handlers
logging.getLogger().addHandler(logging.NullHandler())

LogCallback = Callable[[str, str, str], None]

# HTTP client chatter is only interesting when debugging
NOISY_LOGGERS = ("httpx", "httpcore", "openai")


class CloudIndexLogger:
    """Logger adapter that tags every record with a subsystem."""

    def __init__(self, base_logger: logging.Logger) -> None:
        self._base_logger = base_logger

    def log(
        self,
        level: int,
        msg: str,
        *args: Any,
        subsystem: str = "cloudindex",
        **kwargs: Any,
    ) -> None:
        """Log a message with optional subsystem context."""
        extra = kwargs.pop("extra", {})
        extra["subsystem"] = subsystem
        stacklevel = kwargs.pop("stacklevel", 1)
        self._base_logger.log(
            level,
            msg,
            *args,
            extra=extra,
            stacklevel=stacklevel + 1,
            **kwargs,
        )

    def debug(self, msg: str, *args: Any, **kwargs: Any) -> None:
        self.log(logging.DEBUG, msg, *args, stacklevel=2, **kwargs)

    def info(self, msg: str, *args: Any, **kwargs: Any) -> None:
        self.log(logging.INFO, msg, *args, stacklevel=2, **kwargs)

    def warning(self, msg: str, *args: Any, **kwargs: Any) -> None:
        self.log(logging.WARNING, msg, *args, stacklevel=2, **kwargs)

    def error(self, msg: str, *args: Any, **kwargs: Any) -> None:
        self.log(logging.ERROR, msg, *args, stacklevel=2, **kwargs)

    def exception(self, msg: str, *args: Any, **kwargs: Any) -> None:
        """Delegate ``ERROR`` messages with exception info."""
        kwargs.setdefault("exc_info", True)
        self.error(msg, *args, **kwargs)

    def __getattr__(self, name: str) -> Any:
        return getattr(self._base_logger, name)


_base_logger: logging.Logger = logging.getLogger("cloudindex")

logger: CloudIndexLogger = CloudIndexLogger(_base_logger)


def uppercase_level(
    _logger: logging.Logger, _name: str, event_dict: dict[str, Any]
) -> dict[str, Any]:
    """Ensure the ``level`` field is uppercase."""
    level = event_dict.get("level")
    if level is not None:
        event_dict["level"] = str(level).upper()
    return event_dict


def insert_subsystem(
    _logger: logging.Logger, _name: str, event_dict: dict[str, Any]
) -> dict[str, Any]:
    """Render the subsystem in place of the logger name when present."""
    subsystem = event_dict.pop("subsystem", None)
    logger_name = event_dict.pop("logger", None)
    if subsystem or logger_name:
        event_dict["logger_name"] = subsystem or logger_name
    return event_dict


def format_location(
    _logger: logging.Logger, _name: str, event_dict: dict[str, Any]
) -> dict[str, Any]:
    """Format filename and line number as (file.py:123)."""
    filename = event_dict.pop("filename", None)
    lineno = event_dict.pop("lineno", None)
    if filename and lineno:
        event_dict["location"] = f"({filename}:{lineno})"
    return event_dict


LEVEL_STYLES: dict[str, str] = {
    "CRITICAL": "\033[1;31m",
    "ERROR": "\033[31m",
    "WARNING": "\033[33m",
    "INFO": "\033[36m",
    "DEBUG": "\033[32m",
}


def _level_formatter(_key: str, value: Any) -> str:
    if not value:
        return ""
    level_str = str(value)
    color_code = LEVEL_STYLES.get(level_str, "")
    reset_code = "\033[0m" if color_code else ""
    return f"[{color_code}{level_str}{reset_code}]"


def _dim_formatter(_key: str, value: Any) -> str:
    return f"\033[90m{value}\033[0m" if value else ""


def _logger_name_formatter(_key: str, value: Any) -> str:
    return f"[\033[94m{value}\033[0m]" if value else ""


def _plain_formatter(_key: str, value: Any) -> str:
    return str(value) if value is not None else ""


def _console_renderer() -> structlog.dev.ConsoleRenderer:
    columns = [
        Column("timestamp", _dim_formatter),
        Column("level", _level_formatter),
        Column("logger_name", _logger_name_formatter),
        Column("event", _plain_formatter),
        Column("location", _dim_formatter),
        Column(
            "",
            structlog.dev.KeyValueColumnFormatter(
                key_style=None, value_style="", reset_style="", value_repr=str
            ),
        ),
    ]
    return structlog.dev.ConsoleRenderer(colors=True, sort_keys=False, columns=columns)


class DemoteFilter(logging.Filter):
    """Report INFO records of the HTTP client loggers as DEBUG.

    Handler levels are checked before filters run, so the filter also drops
    records that end up below the configured level.
    """

    def __init__(self, threshold: int) -> None:
        super().__init__()
        self.threshold = threshold

    def filter(self, record: logging.LogRecord) -> bool:
        if record.name.split(".")[0] in NOISY_LOGGERS and record.levelno == logging.INFO:
            record.levelno = logging.DEBUG
            record.levelname = "DEBUG"
        return record.levelno >= self.threshold


def setup_logging(
    log_file: str | None = None,
    log_level: int = logging.INFO,
    json_logs: bool = False,
) -> None:
    """Configure structlog and standard logging.

    Args:
        log_file: Optional path to the log file. If ``None`` logs are written
            to ``stderr``.
        log_level: Logging level.
        json_logs: Emit JSON logs to the console if True.
    """
    root_logger = logging.getLogger()
    root_logger.setLevel(log_level)
    root_logger.handlers = []

    for name in NOISY_LOGGERS:
        logging.getLogger(name).setLevel(logging.NOTSET)
    demote = DemoteFilter(log_level)

    pre_chain = [
        structlog.stdlib.add_log_level,
        uppercase_level,
        structlog.stdlib.add_logger_name,
        structlog.stdlib.ExtraAdder(allow=["subsystem"]),
        structlog.processors.TimeStamper(fmt="%Y-%m-%d %H:%M:%S"),
        CallsiteParameterAdder(
            [CallsiteParameter.FILENAME, CallsiteParameter.LINENO],
            additional_ignores=["cloudindex.utils.logging_utils"],
        ),
        insert_subsystem,
        format_location,
    ]

    def _handler(handler: logging.Handler, as_json: bool) -> logging.Handler:
        processor = (
            structlog.processors.JSONRenderer() if as_json else _console_renderer()
        )
        handler.setFormatter(
            structlog.stdlib.ProcessorFormatter(
                processor=processor,
                foreign_pre_chain=pre_chain,
            )
        )
        handler.addFilter(demote)
        return handler

    if log_file:
        # Files always get JSON so they can be parsed later
        root_logger.addHandler(_handler(logging.FileHandler(log_file), True))
    root_logger.addHandler(_handler(logging.StreamHandler(), json_logs))

    structlog.configure(
        processors=[
            structlog.stdlib.filter_by_level,
            *pre_chain,
            structlog.processors.StackInfoRenderer(),
            structlog.processors.format_exc_info,
            structlog.stdlib.ProcessorFormatter.wrap_for_formatter,
        ],
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.make_filtering_bound_logger(log_level),
        cache_logger_on_first_use=True,
    )


def get_logger() -> CloudIndexLogger:
    """Get the package logger."""
    return logger


def log_message(
    level: str,
    message: str,
    subsystem: str = "cloudindex",
    callback: LogCallback | None = None,
) -> None:
    """Log a message and optionally forward it to a callback."""
    log_level = getattr(logging, level.upper(), logging.INFO)
    logger.log(log_level, message, subsystem=subsystem, stacklevel=3)

    if callback:
        try:
            callback(level, message, subsystem)
        except (TypeError, ValueError, KeyError) as exc:
            logger.warning(f"Failed to send log to callback: {exc}")
