"""
Tests for web.services.assistant module.
"""
import json
import pytest
from datetime import datetime, timezone
from unittest.mock import AsyncMock

from core.exceptions import (
    ChatConfigurationError,
    ProviderError,
    StoreError,
    ValidationError,
)
from core.models import Domain
from web.services.assistant import (
    FAILED_MESSAGE,
    NO_ANSWER,
    PROMPT_PREAMBLE,
    AssistantBridge,
)

from tests.conftest import FakeLLM


def _store(records_by_domain=None):
    """Store double returning fixed records per domain."""
    records_by_domain = records_by_domain or {}
    store = AsyncMock()

    async def list_recent(domain, limit=None):
        return records_by_domain.get(domain, [])

    store.list_recent = AsyncMock(side_effect=list_recent)
    return store


class TestAssistantBridge:
    """Tests for AssistantBridge class."""

    @pytest.mark.asyncio
    async def test_answer(self):
        llm = FakeLLM(answer="Two records so far.")
        bridge = AssistantBridge(_store(), llm)

        assert await bridge.answer("How many records?") == "Two records so far."
        assert len(llm.prompts) == 1

    @pytest.mark.asyncio
    async def test_fetches_each_table_with_context_rows(self):
        store = _store()
        bridge = AssistantBridge(store, FakeLLM(), context_rows=12)

        await bridge.answer("Anything unusual?")

        called = {call.args[0]: call.args[1] for call in store.list_recent.call_args_list}
        assert called == {domain: 12 for domain in Domain}

    @pytest.mark.asyncio
    async def test_prompt_contains_data_and_question(self):
        created = datetime(2026, 3, 14, 9, 0, tzinfo=timezone.utc)
        store = _store({
            Domain.SALES: [{"id": 1, "order_id": "SO-1", "quantity": 4, "created_at": created}],
        })
        llm = FakeLLM()
        await AssistantBridge(store, llm).answer("Which orders shipped?")

        prompt = llm.prompts[0]
        assert prompt.startswith(PROMPT_PREAMBLE)
        assert prompt.endswith("User question:\nWhich orders shipped?")
        for domain in Domain:
            assert domain.table in prompt

        snapshot = json.loads(prompt[len(PROMPT_PREAMBLE):prompt.index("\n\nUser question:")])
        assert snapshot["sales_records"][0]["order_id"] == "SO-1"
        assert snapshot["sales_records"][0]["created_at"] == "2026-03-14T09:00:00+00:00"
        assert snapshot["testing_records"] == []

    @pytest.mark.asyncio
    async def test_empty_answer_falls_back(self):
        bridge = AssistantBridge(_store(), FakeLLM(answer=""))
        assert await bridge.answer("Hello?") == NO_ANSWER

    @pytest.mark.asyncio
    async def test_blank_question(self):
        store = _store()
        llm = FakeLLM()
        with pytest.raises(ValidationError):
            await AssistantBridge(store, llm).answer("   ")
        store.list_recent.assert_not_called()
        assert llm.prompts == []

    @pytest.mark.asyncio
    async def test_no_credential_makes_no_calls(self):
        """Without a credential neither the store nor the model is called."""
        store = _store()
        llm = FakeLLM(available=False)

        with pytest.raises(ChatConfigurationError):
            await AssistantBridge(store, llm).answer("How is production?")

        store.list_recent.assert_not_called()
        assert llm.prompts == []

    @pytest.mark.asyncio
    async def test_provider_failure_is_generic(self):
        llm = FakeLLM()
        llm.error = ProviderError("Anthropic API error", "overloaded")

        with pytest.raises(ProviderError) as exc_info:
            await AssistantBridge(_store(), llm).answer("Status?")

        assert exc_info.value.message == FAILED_MESSAGE
        assert "overloaded" in exc_info.value.details

    @pytest.mark.asyncio
    async def test_store_failure_is_generic(self):
        store = _store()
        store.list_recent = AsyncMock(side_effect=StoreError("Database error", "disk I/O"))
        llm = FakeLLM()

        with pytest.raises(ProviderError) as exc_info:
            await AssistantBridge(store, llm).answer("Status?")

        assert exc_info.value.message == FAILED_MESSAGE
        assert llm.prompts == []

    def test_is_available_follows_llm(self):
        assert AssistantBridge(_store(), FakeLLM()).is_available is True
        assert AssistantBridge(_store(), FakeLLM(available=False)).is_available is False
