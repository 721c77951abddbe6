"""
Integration tests for core/observability.py and web/middleware.py

Tests structured logging, correlation IDs, metrics collection and the
request middleware.
"""
import asyncio
import json
import logging
import sys
import pytest

from fastapi import FastAPI
from fastapi.testclient import TestClient

from core.observability import (
    HumanReadableFormatter,
    MetricsCollector,
    StructuredFormatter,
    Timer,
    generate_correlation_id,
    get_correlation_id,
    set_correlation_id,
    setup_logging,
)
from web.middleware import RequestLoggingMiddleware, RequestTimeoutMiddleware


def _record(msg: str = "Record created", **extra) -> logging.LogRecord:
    record = logging.LogRecord(
        name="opsboard.test",
        level=logging.INFO,
        pathname="test.py",
        lineno=1,
        msg=msg,
        args=(),
        exc_info=None,
    )
    for key, value in extra.items():
        setattr(record, key, value)
    return record


class TestCorrelationId:
    """Tests for correlation ID management."""

    def test_generated_ids_are_short_and_unique(self):
        ids = {generate_correlation_id() for _ in range(50)}
        assert len(ids) == 50
        assert all(len(cid) == 8 for cid in ids)

    def test_set_and_get(self):
        set_correlation_id("req-42")
        assert get_correlation_id() == "req-42"


class TestFormatters:
    """Tests for the JSON and human-readable log formatters."""

    def test_json_fields(self):
        set_correlation_id("json-1")
        parsed = json.loads(StructuredFormatter().format(_record(table="sales_records")))

        assert parsed["message"] == "Record created"
        assert parsed["level"] == "INFO"
        assert parsed["logger"] == "opsboard.test"
        assert parsed["correlation_id"] == "json-1"
        assert parsed["table"] == "sales_records"
        assert parsed["timestamp"].endswith("Z")

    def test_json_exception(self):
        try:
            raise RuntimeError("disk full")
        except RuntimeError:
            record = _record()
            record.exc_info = sys.exc_info()

        parsed = json.loads(StructuredFormatter().format(record))
        assert "disk full" in parsed["exception"]

    def test_human_readable(self):
        set_correlation_id("human-1")
        output = HumanReadableFormatter().format(_record(duration_ms=12.5))

        assert "INFO" in output
        assert "[human-1]" in output
        assert "Record created" in output
        assert "'duration_ms': 12.5" in output


class TestSetupLogging:
    """Tests for setup_logging function."""

    def test_json_handler(self):
        setup_logging(level="DEBUG", json_format=True)
        root = logging.getLogger()

        assert root.level == logging.DEBUG
        assert len(root.handlers) == 1
        assert isinstance(root.handlers[0].formatter, StructuredFormatter)
        assert logging.getLogger("anthropic").level == logging.WARNING

    def test_unknown_level_falls_back_to_info(self):
        setup_logging(level="chatty")
        assert logging.getLogger().level == logging.INFO
        assert isinstance(logging.getLogger().handlers[0].formatter, HumanReadableFormatter)


class TestTimer:
    """Tests for Timer context manager."""

    def test_measures_elapsed_time(self):
        with Timer("derive_view") as timer:
            sum(range(10000))
        assert timer.elapsed_ms > 0
        assert timer.name == "derive_view"

    def test_logs_when_given_logger(self, caplog):
        logger = logging.getLogger("opsboard.timer")
        with caplog.at_level(logging.DEBUG, logger="opsboard.timer"):
            with Timer("health_check_db", logger):
                pass
        assert "health_check_db completed" in caplog.text


class TestMetricsCollector:
    """Tests for MetricsCollector class."""

    def test_requests_and_errors(self):
        metrics = MetricsCollector()
        metrics.record_request("GET /api/sales")
        metrics.record_request("GET /api/sales")
        metrics.record_error("HTTP_400")

        stats = metrics.get_stats()
        assert stats["requests"] == {"GET /api/sales": 2}
        assert stats["errors"] == {"HTTP_400": 1}

    def test_timing_summary(self):
        metrics = MetricsCollector()
        for value in (100.0, 200.0, 150.0):
            metrics.record_timing("POST /api/chat", value)

        timing = metrics.get_stats()["timing"]["POST /api/chat"]
        assert timing == {
            "count": 3,
            "avg_ms": 150.0,
            "min_ms": 100.0,
            "max_ms": 200.0,
            "p50_ms": 150.0,
        }

    def test_keeps_last_samples_only(self):
        metrics = MetricsCollector(max_samples=3)
        for value in (1.0, 2.0, 3.0, 4.0, 5.0):
            metrics.record_timing("op", value)

        timing = metrics.get_stats()["timing"]["op"]
        assert timing["count"] == 3
        assert timing["min_ms"] == 3.0

    def test_reset(self):
        metrics = MetricsCollector()
        metrics.record_request("GET /health")
        metrics.record_timing("GET /health", 1.0)
        metrics.reset()
        assert metrics.get_stats() == {"requests": {}, "errors": {}, "timing": {}}


class TestMiddleware:
    """Tests for request logging and timeout middleware."""

    @pytest.fixture
    def metrics(self):
        return MetricsCollector()

    @pytest.fixture
    def app(self, metrics):
        app = FastAPI()

        @app.get("/health")
        async def health():
            return {"status": "healthy"}

        @app.get("/api/slow")
        async def slow():
            await asyncio.sleep(0.5)
            return {"done": True}

        @app.get("/api/missing")
        async def missing():
            from fastapi import HTTPException
            raise HTTPException(status_code=404)

        app.add_middleware(RequestTimeoutMiddleware, timeout=0.1, slow_timeout=2.0)
        app.add_middleware(RequestLoggingMiddleware, metrics=metrics)
        return app

    def test_generates_request_id(self, app):
        response = TestClient(app).get("/health")
        assert len(response.headers["X-Request-ID"]) == 8

    def test_records_metrics_and_errors(self, app, metrics):
        client = TestClient(app)
        client.get("/health")
        client.get("/api/missing")

        stats = metrics.get_stats()
        assert stats["requests"]["GET /health"] == 1
        assert stats["errors"]["HTTP_404"] == 1
        assert "GET /api/missing" in stats["timing"]

    def test_timeout_returns_504(self, app):
        response = TestClient(app).get("/api/slow", headers={"X-Request-ID": "slow-1"})

        assert response.status_code == 504
        body = response.json()
        assert body["success"] is False
        assert "0.1s" in body["error"]
        assert body["correlation_id"] == "slow-1"

    def test_slow_path_gets_longer_timeout(self, metrics):
        app = FastAPI()

        @app.post("/api/chat")
        async def chat():
            await asyncio.sleep(0.2)
            return {"answer": "ok"}

        app.add_middleware(RequestTimeoutMiddleware, timeout=0.05, slow_timeout=2.0)
        app.add_middleware(RequestLoggingMiddleware, metrics=metrics)

        assert TestClient(app).post("/api/chat").status_code == 200
