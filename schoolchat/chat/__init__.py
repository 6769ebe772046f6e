"""Conversational map agent."""

from schoolchat.chat.agent import ChatTurnResult, MapChatAgent, ToolCallRecord

__all__ = ["ChatTurnResult", "MapChatAgent", "ToolCallRecord"]
