"""
Application Logger

Logging setup for Assessly. Every module logger hangs off the ``assessly``
application logger, so one ``configure_logger`` call decides handlers and
format for the whole service. Attempt lifecycle events carry the attempt,
test and principal they concern through ``LoggerAdapter`` context, which
the JSON formatter emits as top-level fields.
"""

import os
import sys
import json
import time
import logging
import datetime
import functools
import asyncio
from typing import Dict, Any, Optional, Union, Callable, TypeVar

APP_LOGGER_NAME = "assessly"

DEFAULT_LOG_FORMAT = "%(asctime)s | %(levelname)-8s | %(name)-30s | %(message)s"
DEFAULT_DATE_FORMAT = "%Y-%m-%d %H:%M:%S"

F = TypeVar('F', bound=Callable[..., Any])

__all__ = [
    'configure_logger',
    'get_logger',
    'LoggerAdapter',
    'JsonFormatter',
    'with_context',
    'attempt_logger',
    'app_logger',
    'log_execution_time'
]


class JsonFormatter(logging.Formatter):
    """
    Render records as one JSON object per line.

    Context added through ``LoggerAdapter`` (``attempt_id``, ``user_id``
    and so on) is merged into the object so log pipelines can filter on it.
    """

    def __init__(self, *, indent: Optional[int] = None):
        super().__init__()
        self.indent = indent

    def format(self, record: logging.LogRecord) -> str:
        entry = {
            "timestamp": datetime.datetime.fromtimestamp(record.created).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
            "module": record.module,
            "line": record.lineno
        }

        context = getattr(record, "context", None)
        if isinstance(context, dict):
            entry.update(context)

        if record.exc_info:
            exc_type, exc_value, _ = record.exc_info
            entry["exception"] = {
                "type": exc_type.__name__ if exc_type else None,
                "message": str(exc_value),
                "traceback": self.formatException(record.exc_info)
            }

        return json.dumps(entry, indent=self.indent, default=str)


def _build_handlers(formatter: logging.Formatter, log_file: Optional[str], console_output: bool) -> list:
    handlers = []
    if console_output:
        handlers.append(logging.StreamHandler(sys.stdout))
    if log_file:
        directory = os.path.dirname(log_file)
        try:
            if directory:
                os.makedirs(directory, exist_ok=True)
            handlers.append(logging.FileHandler(log_file))
        except OSError as e:
            logging.getLogger("fallback").warning(f"Could not open log file {log_file}: {e}")
    for handler in handlers:
        handler.setFormatter(formatter)
    return handlers


def configure_logger(
    name: str = APP_LOGGER_NAME,
    level: Union[str, int] = logging.INFO,
    format_string: str = DEFAULT_LOG_FORMAT,
    date_format: str = DEFAULT_DATE_FORMAT,
    use_json: bool = False,
    log_file: Optional[str] = None,
    console_output: bool = True
) -> logging.Logger:
    """
    Configure a logger's level, format and handlers, replacing any existing ones.

    Args:
        name: Logger name
        level: Level name or number
        format_string: Text format (ignored when ``use_json`` is set)
        date_format: Date format for the text format
        use_json: Emit JSON lines instead of text
        log_file: Also write to this file
        console_output: Write to stdout

    Returns:
        The configured logger
    """
    if isinstance(level, str):
        level = getattr(logging, level.upper())

    formatter = JsonFormatter() if use_json else logging.Formatter(format_string, date_format)

    logger = logging.getLogger(name)
    logger.setLevel(level)
    logger.handlers = _build_handlers(formatter, log_file, console_output)
    return logger


def get_logger(name: str, parent: Optional[logging.Logger] = None) -> logging.Logger:
    """
    Get a module logger under the application logger.

    ``get_logger("assessments.engine")`` returns ``assessly.assessments.engine``.
    Names already rooted at ``assessly`` are used as given.
    """
    if parent:
        return parent.getChild(name)
    if name == APP_LOGGER_NAME or name.startswith(APP_LOGGER_NAME + "."):
        return logging.getLogger(name)
    return app_logger.getChild(name)


class LoggerAdapter(logging.LoggerAdapter):
    """
    Adapter that stamps records with fixed context.

    The context is appended to the text message as ``key=value`` pairs and
    attached to the record as ``context`` for the JSON formatter.
    """

    def __init__(self, logger: logging.Logger, context: Optional[Dict[str, Any]] = None):
        super().__init__(logger, dict(context or {}))

    def process(self, msg: str, kwargs: Dict[str, Any]) -> tuple:
        if not self.extra:
            return msg, kwargs
        kwargs = dict(kwargs)
        extra = dict(kwargs.get('extra') or {})
        extra['context'] = {**extra.get('context', {}), **self.extra}
        kwargs['extra'] = extra
        pairs = " ".join(f"{key}={value}" for key, value in self.extra.items())
        return f"{msg} [{pairs}]", kwargs

    def with_context(self, **context) -> 'LoggerAdapter':
        """Return a new adapter with ``context`` added to this one's."""
        return LoggerAdapter(self.logger, {**self.extra, **context})


def with_context(name: Optional[str] = None, **context) -> LoggerAdapter:
    """Create an adapter over ``get_logger(name)`` (or the app logger) with context."""
    logger = get_logger(name) if name else app_logger
    return LoggerAdapter(logger, context)


def attempt_logger(name: str, attempt: Any, **context) -> LoggerAdapter:
    """
    Adapter carrying the identifiers of one attempt.

    Args:
        name: Module logger name
        attempt: Any object with ``attempt_id``, ``test_id`` and ``user_id``
        **context: Extra fields
    """
    return with_context(
        name,
        attempt_id=attempt.attempt_id,
        test_id=attempt.test_id,
        user_id=attempt.user_id,
        **context
    )


def _app_logger() -> logging.Logger:
    logger = logging.getLogger(APP_LOGGER_NAME)
    if logger.handlers:
        return logger
    return configure_logger(
        level=os.environ.get("LOG_LEVEL", "INFO"),
        use_json=os.environ.get("LOG_JSON", "false").lower() == "true",
        log_file=os.environ.get("LOG_FILE")
    )


app_logger = _app_logger()


def log_execution_time(logger: Optional[logging.Logger] = None) -> Callable[[F], F]:
    """
    Log how long the wrapped function or coroutine took, at DEBUG.

    Args:
        logger: Logger to write to (the app logger by default)
    """
    def report(func: Callable, started: float) -> None:
        (logger or app_logger).debug(f"{func.__name__} finished in {time.perf_counter() - started:.3f} seconds")

    def decorator(func: F) -> F:
        if asyncio.iscoroutinefunction(func):
            @functools.wraps(func)
            async def async_wrapper(*args: Any, **kwargs: Any) -> Any:
                started = time.perf_counter()
                try:
                    return await func(*args, **kwargs)
                finally:
                    report(func, started)
            return async_wrapper

        @functools.wraps(func)
        def wrapper(*args: Any, **kwargs: Any) -> Any:
            started = time.perf_counter()
            try:
                return func(*args, **kwargs)
            finally:
                report(func, started)
        return wrapper
    return decorator
