"""
Pipeline package for SchoolChat.

Contains the LangGraph orchestrator that connects generation, validation,
execution, visualization and summary into one analysis run.
"""

from schoolchat.pipeline.orchestrator import AnalysisPipeline, create_pipeline

__all__ = ["AnalysisPipeline", "create_pipeline"]
