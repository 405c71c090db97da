"""Logging configuration using structlog for structured logging."""

import logging
import sys
import threading
import time
from collections import deque
from collections.abc import Callable, Mapping, MutableMapping
from dataclasses import dataclass
from logging.handlers import RotatingFileHandler
from pathlib import Path
from typing import Any

import structlog
from structlog.dev import ConsoleRenderer
from structlog.processors import JSONRenderer
from structlog.stdlib import LoggerFactory, add_log_level, add_logger_name

_LOG_LEVELS = {
    "DEBUG": logging.DEBUG,
    "INFO": logging.INFO,
    "WARNING": logging.WARNING,
    "ERROR": logging.ERROR,
    "CRITICAL": logging.CRITICAL,
}

LOG_FILE_NAME = "ai-nexus.log"


def _get_level_no(level_name: str) -> int:
    """Get numeric log level from name."""
    return _LOG_LEVELS.get(level_name.upper(), logging.INFO)


@dataclass(slots=True)
class HighVolumeEventPolicy:
    """
    Rate-limiting policy for high-frequency log events.

    Attributes:
        max_occurrences: Maximum number of events allowed within the window.
        window_seconds: Sliding window size in seconds for counting events.
    """

    max_occurrences: int
    window_seconds: float


class ConsoleNoiseFilterProcessor:
    """
    Structlog processor that drops bursts of per-chunk events on the console.

    Indexing and streaming emit one event per chunk; the file log keeps all
    of them while the console only shows a handful per window.
    """

    def __init__(
        self,
        high_volume_policies: Mapping[str, HighVolumeEventPolicy] | None = None,
        time_func: Callable[[], float] | None = None,
    ) -> None:
        self.high_volume_policies = dict(high_volume_policies or {})
        self._event_windows: dict[str, deque[float]] = {
            event: deque() for event in self.high_volume_policies
        }
        self._lock = threading.Lock()
        self._time_func = time_func or time.monotonic

    def __call__(
        self, logger: Any, method_name: str, event_dict: MutableMapping[str, Any]
    ) -> MutableMapping[str, Any]:
        """Apply rate limits to a log event."""
        message = event_dict.get("event", "")
        policy = (
            self.high_volume_policies.get(message) if isinstance(message, str) else None
        )
        if policy:
            now = self._time_func()
            with self._lock:
                window = self._event_windows.setdefault(str(message), deque())
                while window and now - window[0] > policy.window_seconds:
                    window.popleft()
                if len(window) >= policy.max_occurrences:
                    raise structlog.DropEvent
                window.append(now)

        return event_dict


DEFAULT_HIGH_VOLUME_EVENTS: dict[str, HighVolumeEventPolicy] = {
    "chunk_embedded": HighVolumeEventPolicy(5, 10.0),
    "stream_chunk_parse_failed": HighVolumeEventPolicy(3, 10.0),
    "image_job_polled": HighVolumeEventPolicy(3, 30.0),
}

_configured = False
_handlers: list[logging.Handler] = []


def _shared_pre_chain() -> list[structlog.typing.Processor]:
    return [
        structlog.contextvars.merge_contextvars,
        add_log_level,
        add_logger_name,
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.format_exc_info,
    ]


def configure_logging(
    log_level: str = "INFO",
    log_dir: Path | None = None,
    verbose: bool = False,
    enable_console_noise_filter: bool = True,
) -> None:
    """Configure structlog logging.

    Console output is human-readable with colors. When ``log_dir`` is given,
    a rotating JSON log file is written there as well at DEBUG level.

    Args:
        log_level: Minimum console log level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
        log_dir: Directory for the JSON log file (no file logging if None)
        verbose: If True, console shows DEBUG regardless of log_level
        enable_console_noise_filter: Toggle console-side burst suppression
    """
    global _configured

    root_logger = logging.getLogger()
    root_logger.setLevel(logging.DEBUG)
    for handler in _handlers:
        root_logger.removeHandler(handler)
        handler.close()
    _handlers.clear()

    structlog.configure(
        processors=[
            *_shared_pre_chain(),
            structlog.stdlib.ProcessorFormatter.wrap_for_formatter,
        ],
        context_class=dict,
        wrapper_class=structlog.stdlib.BoundLogger,
        logger_factory=LoggerFactory(),
        cache_logger_on_first_use=True,
    )

    console_level = logging.DEBUG if verbose else _get_level_no(log_level)
    console_handler = logging.StreamHandler(sys.stderr)
    console_handler.setLevel(console_level)

    console_processors: list[structlog.typing.Processor] = [
        structlog.stdlib.ProcessorFormatter.remove_processors_meta,
    ]
    if enable_console_noise_filter and not verbose:
        console_processors.insert(
            0, ConsoleNoiseFilterProcessor(DEFAULT_HIGH_VOLUME_EVENTS)
        )
    console_processors.append(
        ConsoleRenderer(colors=True, exception_formatter=structlog.dev.plain_traceback)
    )
    console_handler.setFormatter(
        structlog.stdlib.ProcessorFormatter(
            processors=console_processors,
            foreign_pre_chain=_shared_pre_chain(),
        )
    )
    root_logger.addHandler(console_handler)
    _handlers.append(console_handler)

    log_path: Path | None = None
    if log_dir is not None:
        log_dir.mkdir(exist_ok=True, parents=True)
        log_path = log_dir / LOG_FILE_NAME
        # 10MB per file, 5 backups
        file_handler = RotatingFileHandler(
            filename=str(log_path),
            maxBytes=10 * 1024 * 1024,
            backupCount=5,
            encoding="utf-8",
        )
        file_handler.setLevel(logging.DEBUG)
        file_handler.setFormatter(
            structlog.stdlib.ProcessorFormatter(
                processors=[
                    structlog.stdlib.ProcessorFormatter.remove_processors_meta,
                    JSONRenderer(),
                ],
                foreign_pre_chain=_shared_pre_chain(),
            )
        )
        root_logger.addHandler(file_handler)
        _handlers.append(file_handler)

    # httpx logs every request at INFO
    logging.getLogger("httpx").setLevel(logging.WARNING)

    _configured = True

    get_logger(__name__).debug(
        "logging_configured",
        console_level=logging.getLevelName(console_level),
        log_file=str(log_path) if log_path else None,
        verbose=verbose,
    )


def get_logger(name: str) -> Any:
    """Get a logger instance.

    Args:
        name: Logger name (typically __name__)

    Returns:
        Structlog logger bound to the given name
    """
    if not _configured:
        configure_logging()

    return structlog.get_logger(name)
