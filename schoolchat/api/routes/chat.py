"""
Chat Routes

The map assistant: one POST per user message. The response carries the
assistant's text and the UI flags the frontend should apply.
"""

import logging

from fastapi import APIRouter, Depends, HTTPException, status
from pydantic import BaseModel

from schoolchat.api.deps import get_chat_agent
from schoolchat.chat.agent import ChatTurnResult, MapChatAgent
from schoolchat.models.api import ChatRequest

logger = logging.getLogger(__name__)

router = APIRouter()


class ChatResponse(BaseModel):
    response: ChatTurnResult


@router.post("/chat", response_model=ChatResponse)
async def chat(
    chat_request: ChatRequest, agent: MapChatAgent = Depends(get_chat_agent)
) -> ChatResponse:
    """
    Run one chat turn.

    Raises:
        HTTPException: 502 if the completion service keeps failing
    """
    logger.info(f"Chat request received: {chat_request.messages[-1].content[:100]}...")
    try:
        result = await agent.run_turn(
            [message.model_dump() for message in chat_request.messages],
            user_id=chat_request.user_id,
        )
    except Exception as e:
        logger.error(f"Chat turn failed: {e}")
        raise HTTPException(
            status_code=status.HTTP_502_BAD_GATEWAY,
            detail=f"Chat failed: {e}",
        ) from e
    return ChatResponse(response=result)
