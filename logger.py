"""
Logging Framework for the Contingency Table Engine

This module provides logging infrastructure with:
- Multiple output targets (file, console)
- Configurable log levels and formats
- Automatic log rotation
- Performance tracking
- Context tracking for debugging

Usage:
    from logger import get_logger

    logger = get_logger(__name__)
    logger.info("Table build started")

    # Performance tracking
    with logger.track_time("build_table"):
        matrix = build_table(...)
"""

import logging
import logging.handlers
import sys
import threading
import time
from contextlib import contextmanager
from pathlib import Path
from typing import Any, ClassVar, Dict, Optional

from config import CONFIG


class PerformanceLogger:
    """
    Track and log performance metrics.
    """

    def __init__(self, logger: logging.Logger):
        self.logger = logger
        self.timings: Dict[str, list] = {}
        self._lock = threading.Lock()

    @contextmanager
    def track_time(self, operation: str, log_level: str = "DEBUG"):
        """
        Context manager that measures and logs the elapsed time of a named operation.

        If CONFIG['logging.log_performance'] is falsy, the context yields without measuring or logging. When enabled, the elapsed time is appended to self.timings[operation] and a message is emitted on the wrapped logger at the requested log level.

        Parameters:
            operation (str): Name of the operation to record and log.
            log_level (str): Name of the logger method to call (e.g., "DEBUG", "INFO"); falls back to debug if unavailable.
        """
        if not CONFIG.get('logging.log_performance'):
            yield
            return

        start_time = time.perf_counter()
        try:
            yield
        finally:
            elapsed = time.perf_counter() - start_time

            with self._lock:
                self.timings.setdefault(operation, []).append(elapsed)

            log_method = getattr(self.logger, log_level.lower(), self.logger.debug)
            log_method(f"{operation} completed in {elapsed:.3f}s")

    def get_timings(self, operation: Optional[str] = None) -> Dict[str, list]:
        """
        Return recorded performance timings.

        If `operation` is provided, return a dict containing only that operation mapped to its list of timings (empty list if none were recorded). Otherwise return the full timings mapping.
        """
        if operation:
            return {operation: self.timings.get(operation, [])}
        return self.timings

    def print_summary(self) -> None:
        """Log the average, minimum, maximum and count of every tracked operation."""
        if not self.timings:
            return

        self.logger.info("Performance Summary")
        for operation, times in self.timings.items():
            if times:
                avg = sum(times) / len(times)
                self.logger.info(
                    f"  {operation}: "
                    f"avg={avg:.3f}s, min={min(times):.3f}s, max={max(times):.3f}s (n={len(times)})"
                )


class ContextFilter(logging.Filter):
    """
    Add context information to log records.
    """

    def __init__(self):
        super().__init__()
        self.context: Dict[str, Any] = {}

    def filter(self, record: logging.LogRecord) -> bool:
        """Attach stored context key/value pairs as attributes on the given LogRecord."""
        for key, value in self.context.items():
            setattr(record, key, value)
        return True

    def set_context(self, **kwargs) -> None:
        self.context.update(kwargs)

    def clear_context(self) -> None:
        self.context.clear()


class LoggerFactory:
    """
    Factory for creating and managing loggers.
    """

    _loggers: ClassVar[Dict[str, 'Logger']] = {}
    _context_filter: Optional[ContextFilter] = None
    _perf_logger: Optional[PerformanceLogger] = None
    _configured = False
    _lock: ClassVar[threading.Lock] = threading.Lock()

    @classmethod
    def configure(cls) -> None:
        """
        Perform one-time configuration of the logging system using values from CONFIG.

        Reads logging settings (level, format, date format) and sets up the package logger, a shared ContextFilter, and the enabled handlers (file/console). If CONFIG disables logging, the package logger is silenced. The method is idempotent. On error it prints a warning to stderr and marks configuration as complete to avoid repeated attempts.
        """
        if cls._configured:
            return

        cls._context_filter = ContextFilter()

        try:
            base_logger = logging.getLogger("ctable")

            if not CONFIG.get('logging.enabled'):
                base_logger.addHandler(logging.NullHandler())
                base_logger.propagate = False
                base_logger.setLevel(logging.CRITICAL + 1)
                cls._configured = True
                return

            log_level = CONFIG.get('logging.level', 'INFO')
            formatter = logging.Formatter(
                CONFIG.get('logging.format'), datefmt=CONFIG.get('logging.date_format')
            )

            numeric_level = getattr(logging, str(log_level).upper(), None)
            if not isinstance(numeric_level, int):
                print(f"[WARNING] Invalid log level '{log_level}', defaulting to INFO", file=sys.stderr)
                numeric_level = logging.INFO
            base_logger.setLevel(numeric_level)

            if CONFIG.get('logging.file_enabled'):
                cls._setup_file_logging(base_logger, formatter)

            if CONFIG.get('logging.console_enabled'):
                cls._setup_console_logging(base_logger, formatter)

            cls._configured = True

        except Exception as e:
            print(f"[WARNING] Logging configuration failed: {e}", file=sys.stderr)
            cls._configured = True

    @classmethod
    def _setup_file_logging(cls, base_logger: logging.Logger, formatter: logging.Formatter) -> None:
        """
        Attach a RotatingFileHandler to `base_logger`.

        Uses CONFIG keys 'logging.log_dir', 'logging.log_file', 'logging.max_log_size' and 'logging.backup_count'. On setup error a warning is printed to stderr and the function returns without raising.
        """
        try:
            log_dir = Path(CONFIG.get('logging.log_dir', 'logs'))
            log_dir.mkdir(exist_ok=True, parents=True)

            handler = logging.handlers.RotatingFileHandler(
                log_dir / CONFIG.get('logging.log_file', 'ctable.log'),
                maxBytes=CONFIG.get('logging.max_log_size', 10485760),
                backupCount=CONFIG.get('logging.backup_count', 5),
            )
            handler.setFormatter(formatter)
            handler.addFilter(cls._context_filter)
            base_logger.addHandler(handler)

        except OSError as e:
            print(f"[WARNING] Failed to setup file logging: {e}", file=sys.stderr)

    @classmethod
    def _setup_console_logging(cls, base_logger: logging.Logger, formatter: logging.Formatter) -> None:
        """Attach a stderr StreamHandler at CONFIG['logging.console_level'] to `base_logger`."""
        console_handler = logging.StreamHandler(sys.stderr)
        console_level = CONFIG.get('logging.console_level', 'WARNING')
        console_handler.setLevel(getattr(logging, str(console_level).upper(), logging.WARNING))
        console_handler.setFormatter(formatter)
        console_handler.addFilter(cls._context_filter)
        base_logger.addHandler(console_handler)

    @classmethod
    def get_logger(cls, name: str) -> 'Logger':
        """
        Retrieve a cached Logger by name, configuring the logging system on first use.

        Names outside the ``ctable`` namespace are nested under it so that every
        engine logger shares the configured handlers.
        """
        if not cls._configured:
            cls.configure()

        with cls._lock:
            if name not in cls._loggers:
                qualified = name if name == "ctable" or name.startswith("ctable.") else f"ctable.{name}"
                cls._loggers[name] = Logger(logging.getLogger(qualified), cls._context_filter)
            return cls._loggers[name]

    @classmethod
    def get_performance_logger(cls) -> PerformanceLogger:
        """Return the shared PerformanceLogger, creating it on first access."""
        if cls._perf_logger is None:
            cls._perf_logger = PerformanceLogger(logging.getLogger('ctable.performance'))
        return cls._perf_logger


class Logger:
    """
    Wrapper around standard logger with additional features.
    """

    def __init__(self, standard_logger: logging.Logger, context_filter: Optional[ContextFilter] = None):
        self._logger = standard_logger
        self._context_filter = context_filter
        self._perf_logger = LoggerFactory.get_performance_logger()

    @property
    def name(self) -> str:
        return self._logger.name

    def debug(self, msg: str, *args, **kwargs) -> None:
        """Log debug message."""
        self._logger.debug(msg, *args, **kwargs)

    def info(self, msg: str, *args, **kwargs) -> None:
        self._logger.info(msg, *args, **kwargs)

    def warning(self, msg: str, *args, **kwargs) -> None:
        self._logger.warning(msg, *args, **kwargs)

    def error(self, msg: str, *args, **kwargs) -> None:
        self._logger.error(msg, *args, **kwargs)

    def critical(self, msg: str, *args, **kwargs) -> None:
        self._logger.critical(msg, *args, **kwargs)

    def exception(self, msg: str, *args, **kwargs) -> None:
        """Log a message and include the current exception traceback."""
        self._logger.exception(msg, *args, **kwargs)

    def log_operation(self, operation: str, status: str = "started", **details) -> None:
        """
        Log an operation event with optional details.

        Builds a single-line message containing the operation name in brackets, an uppercase status, and any key=value pairs provided in `details`. Uses the ERROR level when `status` is "failed" (case-insensitive) and INFO level otherwise.
        """
        msg_parts = [f"[{operation}]"]

        if status:
            msg_parts.append(status.upper())

        if details:
            msg_parts.append(" | ".join(f"{k}={v}" for k, v in details.items()))

        msg = " ".join(msg_parts)

        if status.lower() == "failed":
            self.error(msg)
        else:
            self.info(msg)

    def log_data_summary(self, df_name: str, shape: tuple, dtypes: Dict[str, str]) -> None:
        """
        Log a concise summary of a DataFrame's size and column type composition.

        Emitted only when CONFIG['logging.log_data_operations'] is truthy.
        """
        if CONFIG.get('logging.log_data_operations'):
            self.info(
                f"{df_name}: shape={shape}, "
                f"categorical={sum(1 for t in dtypes.values() if t == 'category')}, "
                f"numeric={sum(1 for t in dtypes.values() if 'int' in t.lower() or 'float' in t.lower())}"
            )

    def log_analysis(self, analysis_type: str, outcome: str, n_vars: int, n_samples: int) -> None:
        """
        Log a concise summary of an estimation run.

        Emitted only when the `logging.log_analysis_operations` configuration flag is enabled.
        """
        if CONFIG.get('logging.log_analysis_operations'):
            self.info(
                f"{analysis_type}: outcome='{outcome}', "
                f"predictors={n_vars}, n={n_samples}"
            )

    @contextmanager
    def track_time(self, operation: str, log_level: str = "DEBUG"):
        """Record elapsed time for the named operation and log it at `log_level`."""
        with self._perf_logger.track_time(operation, log_level):
            yield

    def get_timings(self) -> Dict[str, list]:
        return self._perf_logger.get_timings()

    def set_context(self, **kwargs) -> None:
        """Attach key-value context that will be included on subsequent log records."""
        if self._context_filter:
            self._context_filter.set_context(**kwargs)

    def clear_context(self) -> None:
        if self._context_filter:
            self._context_filter.clear_context()


def get_logger(name: str) -> Logger:
    """
    Obtain a configured logger for the given name.

    Parameters:
        name (str): The logger name, typically `__name__`.
    """
    return LoggerFactory.get_logger(name)
