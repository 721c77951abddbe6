"""
Assistant bridge: answers questions about recent operations data.

Each call fetches a recent window from all four record tables, embeds it
as JSON in a prompt together with the user's question and forwards the
prompt to the LLM. Calls are independent; nothing is remembered between
them.
"""
import asyncio
import json
from typing import Any, Dict, List

from core.exceptions import (
    ChatConfigurationError,
    ProviderError,
    StoreError,
    ValidationError,
)
from core.llm_client import LLMClient
from core.models import Domain, record_to_json
from core.observability import get_logger
from core.store import RecordStore

logger = get_logger(__name__)

PROMPT_PREAMBLE = (
    "You are an operations assistant. Answer questions using ONLY the data provided "
    "from these database tables: "
    + ", ".join(domain.table for domain in Domain)
    + ".\n\n"
    "Here is the latest data in JSON format:\n"
)

NO_ANSWER = "No answer generated."
FAILED_MESSAGE = "Failed to generate chat response"


class AssistantBridge:
    """Augments a question with a data snapshot and relays it to the LLM."""

    def __init__(self, store: RecordStore, llm: LLMClient, context_rows: int = 30):
        self.store = store
        self.llm = llm
        self.context_rows = context_rows

    @property
    def is_available(self) -> bool:
        return self.llm.is_available

    async def gather_context(self) -> Dict[str, List[Dict[str, Any]]]:
        """
        Fetch the most recent records of every table concurrently.

        Any failing fetch fails the whole snapshot.
        """
        domains = list(Domain)
        results = await asyncio.gather(
            *(self.store.list_recent(domain, self.context_rows) for domain in domains)
        )
        return {
            domain.table: [record_to_json(r) for r in records]
            for domain, records in zip(domains, results)
        }

    @staticmethod
    def build_prompt(context: Dict[str, List[Dict[str, Any]]], question: str) -> str:
        return (
            PROMPT_PREAMBLE
            + json.dumps(context, indent=2, default=str)
            + "\n\nUser question:\n"
            + question
        )

    async def answer(self, question: str) -> str:
        """
        Answer a question about the latest records.

        Raises:
            ValidationError: If the question is empty
            ChatConfigurationError: If no model credential is configured
                (raised before any store query or network call)
            ProviderError: If fetching data or the model call fails
        """
        if not isinstance(question, str) or not question.strip():
            raise ValidationError("message", "Message is required")

        if not self.llm.is_available:
            raise ChatConfigurationError("Chat assistant is not configured. Please set ANTHROPIC_API_KEY.")

        try:
            context = await self.gather_context()
            prompt = self.build_prompt(context, question)
            text = await self.llm.generate(prompt)
        except (StoreError, ProviderError) as e:
            logger.error(f"Assistant request failed: {e}", exc_info=True)
            raise ProviderError(FAILED_MESSAGE, str(e))

        logger.info(
            "Assistant answered",
            extra={
                "question_chars": len(question),
                "context_rows": sum(len(rows) for rows in context.values()),
            }
        )
        return text or NO_ANSWER
