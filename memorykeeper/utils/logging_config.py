"""
Logging Configuration

Routes the standard library logging tree for Memory Keeper. Every module
logs through ``logging.getLogger(__name__)``; this module only decides where
records go and how they look.

Background image and speech legs log from worker threads, so debug output
and the log file carry the thread name next to the logger name.
"""

import logging
import logging.handlers
import sys
import time
from contextlib import contextmanager
from pathlib import Path
from typing import Any, Dict, Iterator, Optional


LEVELS = {
    "debug": logging.DEBUG,
    "info": logging.INFO,
    "warning": logging.WARNING,
    "error": logging.ERROR,
}

SENSITIVE_MARKERS = ("key", "token", "secret", "password")

# HTTP and AWS client libraries log every request at debug level
QUIET_LOGGERS = ("urllib3", "botocore", "boto3", "s3transfer")

FILE_FORMAT = "%(asctime)s - %(name)s - %(threadName)s - %(levelname)s - %(message)s"


class LoggingConfig:
    """
    Process-wide logging setup for the CLI and library callers.

    The first ``configure_logging`` call wins; later calls are ignored until
    ``reset`` so that handlers never stack.
    """

    def __init__(self):
        self._configured = False
        self._handlers = []

    @property
    def configured(self) -> bool:
        return self._configured

    def configure_logging(
        self,
        level: str = "info",
        log_file: Optional[str] = None,
        include_timestamps: bool = True,
        max_bytes: int = 10 * 1024 * 1024,
        backup_count: int = 5
    ) -> None:
        """
        Install a stderr handler and, optionally, a rotating log file.

        Args:
            level: debug, info, warning or error (unknown values mean info)
            log_file: Path of a log file rotated at ``max_bytes``
            include_timestamps: Prefix console lines with the time
            max_bytes: Log file size that triggers rotation
            backup_count: Rotated log files kept next to ``log_file``
        """
        if self._configured:
            return

        numeric_level = LEVELS.get(level.lower(), logging.INFO)
        verbose = numeric_level == logging.DEBUG

        root = logging.getLogger()
        root.handlers.clear()
        root.setLevel(numeric_level)

        console = logging.StreamHandler(sys.stderr)
        console.setLevel(numeric_level)
        console.setFormatter(self._console_formatter(include_timestamps, verbose))
        self._attach(console)

        if log_file:
            self._attach_file(log_file, numeric_level, max_bytes, backup_count)

        for name in QUIET_LOGGERS:
            logging.getLogger(name).setLevel(max(numeric_level, logging.WARNING))

        self._configured = True
        logging.getLogger(__name__).debug(f"Logging configured: level={level}, file={log_file}")

    def reset(self) -> None:
        """Remove the handlers this instance installed."""
        root = logging.getLogger()
        for handler in self._handlers:
            root.removeHandler(handler)
            handler.close()
        self._handlers = []
        self._configured = False

    def _attach(self, handler: logging.Handler) -> None:
        logging.getLogger().addHandler(handler)
        self._handlers.append(handler)

    @staticmethod
    def _console_formatter(include_timestamps: bool, verbose: bool) -> logging.Formatter:
        fields = []
        if include_timestamps:
            fields.append("%(asctime)s")
        if verbose:
            fields.extend(["%(name)s", "%(threadName)s"])
        fields.extend(["%(levelname)s", "%(message)s"])
        return logging.Formatter(
            " - ".join(fields),
            datefmt="%Y-%m-%d %H:%M:%S" if verbose else "%H:%M:%S"
        )

    def _attach_file(self, log_file: str, level: int, max_bytes: int, backup_count: int) -> None:
        try:
            Path(log_file).parent.mkdir(parents=True, exist_ok=True)
            handler = logging.handlers.RotatingFileHandler(
                log_file, maxBytes=max_bytes, backupCount=backup_count, encoding='utf-8'
            )
        except OSError as e:
            # console output still works
            logging.getLogger(__name__).warning(f"Cannot open log file {log_file}: {e}")
            return
        handler.setLevel(level)
        handler.setFormatter(logging.Formatter(FILE_FORMAT, datefmt="%Y-%m-%d %H:%M:%S"))
        self._attach(handler)

    def log_configuration_details(self, section: str, config: Dict[str, Any]) -> None:
        """Dump one configuration section at debug level, credentials masked."""
        logger = logging.getLogger(__name__)
        if not logger.isEnabledFor(logging.DEBUG):
            return

        rendered = ", ".join(f"{key}={mask_value(key, value)}" for key, value in config.items())
        logger.debug(f"[{section}] {rendered}")

    @contextmanager
    def timed_operation(self, operation: str) -> Iterator[None]:
        """
        Log how long the wrapped block took, also when it raises.

        Sub-second operations log at debug, slower ones at info.

        Usage:
            with logging_config.timed_operation("Step 2/7 (narrative)"):
                gateway.invoke(request)
        """
        logger = logging.getLogger(__name__)
        started = time.monotonic()
        try:
            yield
        finally:
            elapsed = time.monotonic() - started
            if elapsed < 1.0:
                logger.debug(f"{operation} completed in {elapsed * 1000:.0f}ms")
            else:
                logger.info(f"{operation} completed in {elapsed:.1f}s")

    def is_debug_enabled(self) -> bool:
        return logging.getLogger().isEnabledFor(logging.DEBUG)


def mask_value(key: str, value: Any) -> Any:
    """Return a display-safe version of a configuration value."""
    if any(marker in key.lower() for marker in SENSITIVE_MARKERS):
        return "***MASKED***" if value else None
    return value


logging_config = LoggingConfig()


def configure_logging(level: str = "info", log_file: Optional[str] = None) -> None:
    """Configure the shared ``logging_config`` instance."""
    logging_config.configure_logging(level=level, log_file=log_file)
