"""Shared dependencies for API route modules."""
import time
from typing import Optional

from fastapi import Request
from slowapi import Limiter
from slowapi.util import get_remote_address

from core.config import AppConfig
from core.exceptions import StoreError
from core.observability import MetricsCollector
from core.store import RecordStore
from web.services.assistant import AssistantBridge

# Shared limiter instance
limiter = Limiter(key_func=get_remote_address)

# Dashboards poll every list endpoint every 5 seconds
RECORDS_RATE_LIMIT = "240/minute"
CHAT_RATE_LIMIT = "10/minute"

# Track startup time for uptime calculation
START_TIME = time.time()


def get_config(request: Request) -> AppConfig:
    return request.app.state.config


def get_metrics(request: Request) -> MetricsCollector:
    return request.app.state.metrics


def get_store_or_none(request: Request) -> Optional[RecordStore]:
    store = request.app.state.store
    if store is None or not store.is_connected:
        return None
    return store


def get_store(request: Request) -> RecordStore:
    """Record store created at startup."""
    store = get_store_or_none(request)
    if store is None:
        raise StoreError("Store is not connected")
    return store


def get_assistant(request: Request) -> AssistantBridge:
    return request.app.state.assistant
