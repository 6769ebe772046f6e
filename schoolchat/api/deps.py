"""Shared application state and the FastAPI dependencies that read it."""

from fastapi import HTTPException, status

from schoolchat.chat.agent import MapChatAgent
from schoolchat.pipeline.orchestrator import AnalysisPipeline

# Filled by the lifespan handler in schoolchat.api.main
app_state: dict = {
    "pipeline": None,
    "chat_agent": None,
}


def get_pipeline() -> AnalysisPipeline:
    """Get the initialized pipeline instance."""
    if app_state["pipeline"] is None:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Analysis pipeline is not initialized. Check the LLM and database settings.",
        )
    return app_state["pipeline"]


def get_chat_agent() -> MapChatAgent:
    """Get the initialized chat agent."""
    if app_state["chat_agent"] is None:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Chat agent is not initialized. Check the LLM settings.",
        )
    return app_state["chat_agent"]
