"""
Assistant chat API routes.

    POST /api/chat          {message} -> {answer}
    GET  /api/chat/status   -> {available, model}
"""
from fastapi import APIRouter, Depends, Request

from core.config import AppConfig
from core.observability import get_logger
from web.routes.api._deps import CHAT_RATE_LIMIT, get_assistant, get_config, limiter
from web.schemas import ChatRequest, ChatResponse
from web.services.assistant import AssistantBridge

logger = get_logger(__name__)

router = APIRouter(tags=["chat"])


@router.post("/chat", response_model=ChatResponse)
@limiter.limit(CHAT_RATE_LIMIT)
async def chat(
    request: Request,
    body: ChatRequest,
    assistant: AssistantBridge = Depends(get_assistant),
):
    """
    Ask the assistant a question about recent operations data.

    The latest records of every table are sent along with the question;
    the model's answer is returned verbatim. Each call is independent.
    """
    answer = await assistant.answer(body.message)
    return ChatResponse(answer=answer)


@router.get("/chat/status")
async def chat_status(
    assistant: AssistantBridge = Depends(get_assistant),
    config: AppConfig = Depends(get_config),
):
    """Whether the assistant has a model credential configured."""
    return {
        "available": assistant is not None and assistant.is_available,
        "model": config.chat.model,
    }
