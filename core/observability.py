"""
Logging, request correlation and in-process metrics for Opsboard.

Every log line carries the correlation id of the request that produced it
(set by web.middleware.RequestLoggingMiddleware). Output is either one JSON
object per line (LOG_FORMAT=json) or a single human-readable line.

    setup_logging(level="INFO", json_format=False)
    logger = get_logger(__name__)
    logger.info("Record created", extra={"table": "sales_records"})
"""
import json
import logging
import statistics
import time
import uuid
from collections import Counter, deque
from contextvars import ContextVar
from datetime import datetime, timezone
from typing import Any, Deque, Dict, Optional

_correlation_id: ContextVar[Optional[str]] = ContextVar("correlation_id", default=None)

# Attributes every LogRecord has; anything else came in through `extra=`
_RESERVED = frozenset(vars(logging.LogRecord("", 0, "", 0, "", (), None))) | {"message", "asctime"}

NOISY_LOGGERS = ("httpx", "httpcore", "anthropic", "uvicorn.access")


def get_correlation_id() -> Optional[str]:
    return _correlation_id.get()


def set_correlation_id(correlation_id: str) -> None:
    _correlation_id.set(correlation_id)


def generate_correlation_id() -> str:
    """Short random id for one request."""
    return uuid.uuid4().hex[:8]


class _ContextFormatter(logging.Formatter):
    """Shared pieces of both output formats."""

    @staticmethod
    def extras(record: logging.LogRecord) -> Dict[str, Any]:
        return {
            key: value for key, value in vars(record).items()
            if key not in _RESERVED and not key.startswith("_")
        }

    @staticmethod
    def utc_now() -> datetime:
        return datetime.now(timezone.utc)


class StructuredFormatter(_ContextFormatter):
    """JSON lines: timestamp, level, logger, message, correlation_id, extras."""

    def format(self, record: logging.LogRecord) -> str:
        entry: Dict[str, Any] = {
            "timestamp": self.utc_now().strftime("%Y-%m-%dT%H:%M:%S.%fZ"),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }
        cid = get_correlation_id()
        if cid:
            entry["correlation_id"] = cid
        entry.update(self.extras(record))
        if record.exc_info:
            entry["exception"] = self.formatException(record.exc_info)
        return json.dumps(entry, default=str)


class HumanReadableFormatter(_ContextFormatter):
    """TIMESTAMP - LEVEL - LOGGER [CORRELATION_ID] - MESSAGE | extras"""

    def format(self, record: logging.LogRecord) -> str:
        cid = get_correlation_id()
        parts = [
            self.utc_now().strftime("%Y-%m-%d %H:%M:%S"),
            f"{record.levelname:8}",
            f"{record.name} [{cid}]" if cid else record.name,
            record.getMessage(),
        ]
        line = " - ".join(parts)

        extras = self.extras(record)
        if extras:
            line = f"{line} | {extras}"
        if record.exc_info:
            line = f"{line}\n{self.formatException(record.exc_info)}"
        return line


def setup_logging(level: str = "INFO", json_format: bool = False) -> None:
    """
    Install a single stderr handler on the root logger.

    Calling it again replaces the previous handler, so app factories and
    scripts can each configure logging without duplicating output.
    """
    handler = logging.StreamHandler()
    handler.setFormatter(StructuredFormatter() if json_format else HumanReadableFormatter())

    logging.basicConfig(
        level=getattr(logging, level.upper(), logging.INFO),
        handlers=[handler],
        force=True,
    )

    for name in NOISY_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)


def get_logger(name: str) -> logging.Logger:
    return logging.getLogger(name)


# ═══════════════════════════════════════════════════════════════════════════════
# TIMING
# ═══════════════════════════════════════════════════════════════════════════════

class Timer:
    """
    Measure a block in milliseconds, optionally logging the result.

    The log line is DEBUG, or WARNING once the block takes longer than
    `slow_ms`.

        with Timer("health_check_db", logger) as timer:
            await store.now()
        timer.elapsed_ms
    """

    def __init__(self, name: str, logger: Optional[logging.Logger] = None, slow_ms: float = 1000.0):
        self.name = name
        self.logger = logger
        self.slow_ms = slow_ms
        self.elapsed_ms = 0.0
        self._started = 0.0

    def __enter__(self) -> "Timer":
        self._started = time.perf_counter()
        return self

    def __exit__(self, *exc_info) -> None:
        self.elapsed_ms = (time.perf_counter() - self._started) * 1000
        if self.logger is None:
            return
        self.logger.log(
            logging.WARNING if self.elapsed_ms > self.slow_ms else logging.DEBUG,
            f"{self.name} completed",
            extra={"duration_ms": round(self.elapsed_ms, 2)}
        )


# ═══════════════════════════════════════════════════════════════════════════════
# METRICS
# ═══════════════════════════════════════════════════════════════════════════════

class MetricsCollector:
    """
    Request counters and latency samples, kept in memory per app instance.

    Only the latest `max_samples` timings per endpoint are kept; counters
    grow until reset() or restart.
    """

    def __init__(self, max_samples: int = 100):
        self.max_samples = max_samples
        self._requests: Counter = Counter()
        self._errors: Counter = Counter()
        self._timings: Dict[str, Deque[float]] = {}

    def record_request(self, endpoint: str) -> None:
        self._requests[endpoint] += 1

    def record_error(self, error_type: str) -> None:
        self._errors[error_type] += 1

    def record_timing(self, operation: str, duration_ms: float) -> None:
        if operation not in self._timings:
            self._timings[operation] = deque(maxlen=self.max_samples)
        self._timings[operation].append(duration_ms)

    @staticmethod
    def _summarize(samples: Deque[float]) -> Dict[str, float]:
        return {
            "count": len(samples),
            "avg_ms": round(statistics.fmean(samples), 2),
            "min_ms": round(min(samples), 2),
            "max_ms": round(max(samples), 2),
            "p50_ms": round(statistics.median_high(samples), 2),
        }

    def get_stats(self) -> Dict[str, Any]:
        return {
            "requests": dict(self._requests),
            "errors": dict(self._errors),
            "timing": {
                operation: self._summarize(samples)
                for operation, samples in self._timings.items()
                if samples
            },
        }

    def reset(self) -> None:
        self._requests.clear()
        self._errors.clear()
        self._timings.clear()
