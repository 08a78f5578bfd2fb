"""
Provides structured logging with log levels.

This module provides a structured logging system with UTC timestamps, log levels,
and key-value pair formatting so that every line can be traced back to the file
and step that produced it. Lines are written through tqdm so they do not tear
the progress bar shown while a batch runs.
"""
import threading
from datetime import datetime, timezone
from enum import Enum
from typing import Dict, Any

from tqdm import tqdm

# Re-entrant: the interrupt handler logs from the main thread, possibly while
# the main flow is already holding the lock.
_print_lock = threading.RLock()
_separator = " | "


class LogLevel(Enum):
    """Log level enumeration."""
    TRACE = 0
    DEBUG = 1
    INFO = 2
    WARN = 3
    ERROR = 4


_current_level = LogLevel.INFO


def set_log_level(level: LogLevel) -> None:
    """Set the current log level."""
    global _current_level
    _current_level = level


def parse_log_level(name: str, default: LogLevel = LogLevel.INFO) -> LogLevel:
    """Map a level name such as ``"debug"`` or ``"WARNING"`` to a LogLevel."""
    key = (name or "").strip().upper()
    if key == "WARNING":
        key = "WARN"
    try:
        return LogLevel[key]
    except KeyError:
        return default


def _format_kv(data: Dict[str, Any]) -> str:
    """Format key-value pairs for logging."""
    parts = []
    for key, value in data.items():
        if isinstance(value, str):
            # Escape quotes and newlines to keep log entries single-line.
            escaped = value.replace("\r", "\\r").replace("\n", "\\n")
            escaped = escaped.replace('"', '\\"')
            parts.append(f'{key}="{escaped}"')
        elif value is None:
            parts.append(f'{key}=null')
        elif isinstance(value, bool):
            parts.append(f'{key}={str(value).lower()}')
        else:
            parts.append(f'{key}={value}')
    return _separator.join(parts)


def _write_line(text: str) -> None:
    try:
        tqdm.write(text)
    except (OSError, ValueError):
        print(text, flush=True)


def _should_log(level: LogLevel) -> bool:
    """Check if a message at the given level should be logged."""
    return level.value >= _current_level.value


def log(event: str, level: LogLevel = LogLevel.INFO, **kwargs) -> None:
    """
    Structured logging function.

    Args:
        event: Event name (e.g., 'file.start', 'transcode.complete')
        level: Log level (TRACE, DEBUG, INFO, WARN, ERROR)
        **kwargs: Key-value pairs to log
    """
    if not _should_log(level):
        return
    _emit(event, level, kwargs)


def always(event: str, **kwargs) -> None:
    """Log at INFO regardless of the current threshold (run summaries)."""
    _emit(event, LogLevel.INFO, kwargs)


def _emit(event: str, level: LogLevel, kwargs: Dict[str, Any]) -> None:
    with _print_lock:
        timestamp = datetime.now(timezone.utc).strftime("%Y-%m-%d %H:%M:%S")
        level_str = level.name
        kv_str = _format_kv(kwargs) if kwargs else ""
        header = f"{timestamp}{_separator}[{level_str}]{_separator}{event}"

        if kv_str:
            _write_line(f"{header}{_separator}{kv_str}")
        else:
            _write_line(header)


def safe_print(*args, **kwargs) -> None:
    """
    Print under the log lock.
    Use log() for structured logging instead.
    """
    with _print_lock:
        print(*args, **kwargs, flush=True)
