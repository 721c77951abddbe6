"""
Pytest configuration and shared fixtures.
"""
import pytest
from datetime import datetime, timedelta, timezone
from typing import Any, Dict, List, Optional

from fastapi.testclient import TestClient

from core.config import AppConfig, ChatConfig, DatabaseConfig
from web.main import create_app
from web.routes.api._deps import limiter


# Fixed reference time for analytics tests
NOW = datetime(2026, 3, 15, 12, 0, tzinfo=timezone.utc)


class FakeLLM:
    """Stands in for LLMClient; records every prompt it is sent."""

    def __init__(self, answer: str = "Production is on track.", available: bool = True):
        self.answer = answer
        self.available = available
        self.prompts: List[str] = []
        self.error: Optional[Exception] = None

    @property
    def is_available(self) -> bool:
        return self.available

    async def generate(self, prompt: str, max_tokens: Optional[int] = None) -> str:
        self.prompts.append(prompt)
        if self.error:
            raise self.error
        return self.answer


def make_config(**chat_overrides) -> AppConfig:
    """In-memory store configuration for tests."""
    return AppConfig(
        database=DatabaseConfig(url=":memory:", pool_size=2),
        chat=ChatConfig(**chat_overrides),
    )


@pytest.fixture(autouse=True)
def reset_rate_limits():
    """Rate limit counters are shared by every app instance."""
    limiter.reset()
    yield
    limiter.reset()


@pytest.fixture
def config() -> AppConfig:
    return make_config()


@pytest.fixture
def fake_llm() -> FakeLLM:
    return FakeLLM()


@pytest.fixture
def client(config, fake_llm):
    """Test client for an app with a fresh in-memory store and a fake LLM."""
    app = create_app(config=config, llm=fake_llm)
    with TestClient(app) as test_client:
        yield test_client


def at(days_ago: float, hour: int = 10) -> str:
    """ISO timestamp `days_ago` days before NOW."""
    moment = NOW.replace(hour=hour) - timedelta(days=days_ago)
    return moment.isoformat()


@pytest.fixture
def manufacturing_payload() -> Dict[str, Any]:
    return {
        "production_count": 100,
        "scrap_count": 40,
        "shift": "morning",
        "machine_id": "M-101",
    }


@pytest.fixture
def sales_payload() -> Dict[str, Any]:
    return {
        "order_id": "SO-5001",
        "customer_name": "Acme Corp",
        "quantity": 3,
        "dispatch_date": "2026-03-20",
        "payment_status": "paid",
    }


@pytest.fixture
def manufacturing_records() -> List[Dict[str, Any]]:
    """Two shifts, two machines; efficiency over the set is 60%."""
    return [
        {"id": 1, "production_count": 100, "scrap_count": 40, "shift": "morning",
         "machine_id": "M-101", "created_at": at(1)},
        {"id": 2, "production_count": 50, "scrap_count": 20, "shift": "night",
         "machine_id": "M-102", "created_at": at(2)},
    ]


@pytest.fixture
def testing_records() -> List[Dict[str, Any]]:
    return [
        {"id": 1, "batch_id": "B-1", "passed": 90, "failed": 10, "defect_type": "scratch",
         "created_at": at(0)},
        {"id": 2, "batch_id": "B-2", "passed": 40, "failed": 0, "defect_type": "none",
         "created_at": at(1)},
        {"id": 3, "batch_id": "B-1", "passed": 70, "failed": 5, "defect_type": "scratch",
         "created_at": at(3)},
    ]


@pytest.fixture
def field_records() -> List[Dict[str, Any]]:
    return [
        {"id": 1, "customer_issue": "Screen broken after drop", "solution_given": "Replaced screen",
         "technician_name": "Ava Patel", "created_at": at(0)},
        {"id": 2, "customer_issue": "Device slow and throws error", "solution_given": "Cleared cache",
         "technician_name": "Liam Chen", "created_at": at(0, hour=15)},
        {"id": 3, "customer_issue": "Error on boot", "solution_given": "Firmware update",
         "technician_name": "Ava Patel", "created_at": at(5)},
    ]


@pytest.fixture
def sales_records() -> List[Dict[str, Any]]:
    return [
        {"id": 1, "order_id": "SO-1", "customer_name": "Acme Corp", "quantity": 5,
         "dispatch_date": "2026-03-01", "payment_status": "paid", "created_at": at(2)},
        {"id": 2, "order_id": "SO-2", "customer_name": "Globex", "quantity": 2,
         "dispatch_date": "2026-02-10", "payment_status": "pending", "created_at": at(4)},
        {"id": 3, "order_id": "SO-3", "customer_name": "Acme Corp", "quantity": 1,
         "dispatch_date": "2026-03-05", "payment_status": "paid", "created_at": at(4, hour=16)},
    ]
