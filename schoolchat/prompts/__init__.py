"""Packaged prompt templates."""

from schoolchat.prompts.loader import PromptLoader

__all__ = ["PromptLoader"]
