"""
Chat Relay Endpoint.
Forwards one chat turn to the language model provider.
"""

import logging
from typing import Optional

from fastapi import APIRouter, Request
from pydantic import BaseModel, Field

from voice_relay.core.exceptions import MessageRequiredException

logger = logging.getLogger(__name__)

router = APIRouter()


class ChatRequest(BaseModel):
    """Request model for a chat turn."""
    message: Optional[str] = None
    system_prompt: Optional[str] = Field(default=None, alias="systemPrompt")

    model_config = {"populate_by_name": True}


class ChatResponse(BaseModel):
    """Response model for a chat turn."""
    response: str


@router.post("/chat", response_model=ChatResponse)
async def chat(request: Request, body: ChatRequest):
    """
    Relay a message to the language model and return its reply.
    Provider failures are raised as LLMException and mirrored by the
    application's exception handlers.
    """
    if not body.message or not body.message.strip():
        raise MessageRequiredException()

    llm_service = request.app.state.llm_service

    result = await llm_service.complete(body.message, body.system_prompt)

    logger.info(
        f"Chat turn relayed ({len(body.message)} chars in, "
        f"{len(result.content)} chars out, {result.processing_time_ms:.0f}ms)"
    )

    return ChatResponse(response=result.content)
