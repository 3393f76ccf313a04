"""Structured logging, trace ids and in-process metrics for the league stats backend."""

import logging
import sys
import threading
import time
import uuid
from collections import defaultdict, deque
from contextvars import ContextVar
from functools import wraps
from typing import Any, Callable, Dict, Optional

import structlog
from structlog.stdlib import LoggerFactory

from .config import AppSettings, LogFormat, get_settings

# Context variables for per-command tracking
trace_id_var: ContextVar[Optional[str]] = ContextVar("trace_id", default=None)
command_start_time: ContextVar[Optional[float]] = ContextVar("command_start_time", default=None)


class MetricsCollector:
    """Thread-safe in-memory metrics collector."""

    def __init__(self):
        self._lock = threading.Lock()
        self._counters: Dict[str, int] = defaultdict(int)
        self._timers: Dict[str, deque] = defaultdict(lambda: deque(maxlen=1000))

    def increment(self, metric_name: str, value: int = 1, tags: Optional[Dict[str, str]] = None):
        """Increment a counter metric."""
        with self._lock:
            key = self._format_metric_key(metric_name, tags)
            self._counters[key] += value

    def timer(self, metric_name: str, duration: float, tags: Optional[Dict[str, str]] = None):
        """Record a timing metric."""
        with self._lock:
            key = self._format_metric_key(metric_name, tags)
            self._timers[key].append(duration)

    def counter(self, metric_name: str, tags: Optional[Dict[str, str]] = None) -> int:
        """Current value of a counter."""
        with self._lock:
            return self._counters.get(self._format_metric_key(metric_name, tags), 0)

    def get_metrics(self) -> Dict[str, Any]:
        """Get all collected metrics."""
        with self._lock:
            return {
                'counters': dict(self._counters),
                'timers': {k: list(v) for k, v in self._timers.items()}
            }

    def reset(self) -> None:
        with self._lock:
            self._counters.clear()
            self._timers.clear()

    def _format_metric_key(self, metric_name: str, tags: Optional[Dict[str, str]]) -> str:
        """Format metric key with tags."""
        if not tags:
            return metric_name
        tag_string = ','.join(f"{k}={v}" for k, v in sorted(tags.items()))
        return f"{metric_name},{tag_string}"


# Global metrics collector
metrics = MetricsCollector()


def get_trace_id() -> str:
    """Get or generate a trace ID for request tracking."""
    trace_id = trace_id_var.get()
    if trace_id is None:
        trace_id = str(uuid.uuid4())[:8]
        trace_id_var.set(trace_id)
    return trace_id


def set_trace_id(trace_id: str) -> None:
    """Set the trace ID for the current context."""
    trace_id_var.set(trace_id)


def clear_trace_id() -> None:
    """Clear the trace ID and command timer from the current context."""
    trace_id_var.set(None)
    command_start_time.set(None)


def start_command_timer() -> None:
    """Start timing a CLI command."""
    command_start_time.set(time.time())


def add_trace_id(logger: Any, method_name: str, event_dict: Dict[str, Any]) -> Dict[str, Any]:
    """Add trace ID and timing info to log events."""
    event_dict["trace_id"] = get_trace_id()

    start_time = command_start_time.get()
    if start_time:
        event_dict["command_duration_ms"] = round((time.time() - start_time) * 1000, 2)

    return event_dict


def configure_logging(settings: Optional[AppSettings] = None) -> None:
    """Configure structured logging."""
    settings = settings or get_settings()

    processors = [
        structlog.contextvars.merge_contextvars,
        add_trace_id,
        structlog.stdlib.filter_by_level,
        structlog.stdlib.add_logger_name,
        structlog.stdlib.add_log_level,
        structlog.stdlib.PositionalArgumentsFormatter(),
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.format_exc_info,
        structlog.processors.UnicodeDecoder(),
    ]

    if settings.LOG_FORMAT == LogFormat.JSON:
        processors.append(structlog.processors.JSONRenderer())
    elif settings.LOG_FORMAT == LogFormat.STRUCTURED:
        processors.append(structlog.dev.ConsoleRenderer(colors=True))
    else:
        processors.append(structlog.dev.ConsoleRenderer(colors=False))

    structlog.configure(
        processors=processors,
        logger_factory=LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=True,
    )

    logging.basicConfig(
        format="%(message)s",
        stream=sys.stdout,
        level=getattr(logging, settings.LOG_LEVEL),
    )

    # Silence noisy third-party loggers
    logging.getLogger("sqlalchemy.engine").setLevel(logging.WARNING)
    logging.getLogger("aiosqlite").setLevel(logging.WARNING)
    logging.getLogger("asyncio").setLevel(logging.WARNING)


def get_logger(name: str) -> structlog.stdlib.BoundLogger:
    """Get a structured logger instance."""
    return structlog.get_logger(name)


def monitor_operation(metric_name: Optional[str] = None) -> Callable:
    """Decorator recording call counts and durations of an async operation."""
    def decorator(func: Callable) -> Callable:
        function_name = metric_name or f"{func.__module__}.{func.__qualname__}"

        @wraps(func)
        async def wrapper(*args, **kwargs):
            start_time = time.time()
            logger = get_logger(func.__module__)
            try:
                result = await func(*args, **kwargs)
            except Exception:
                metrics.increment(f"{function_name}.calls", tags={"status": "error"})
                metrics.timer(f"{function_name}.duration", time.time() - start_time,
                              tags={"status": "error"})
                raise

            duration = time.time() - start_time
            metrics.increment(f"{function_name}.calls", tags={"status": "success"})
            metrics.timer(f"{function_name}.duration", duration)
            logger.debug(
                f"Operation {function_name} completed",
                duration_ms=round(duration * 1000, 2),
                function=function_name
            )
            return result
        return wrapper
    return decorator
