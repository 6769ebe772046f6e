"""Fixtures for API tests: a mocked pipeline and chat agent in app_state."""

from datetime import UTC, datetime
from unittest.mock import AsyncMock, MagicMock

import pytest
from fastapi.testclient import TestClient

from schoolchat.api.main import app, app_state
from schoolchat.chat.agent import MapChatAgent
from schoolchat.models.query import ConnectionCheck, TableListResult
from schoolchat.models.visualization import VisualizationFile
from schoolchat.pipeline.orchestrator import AnalysisPipeline


@pytest.fixture
def mock_pipeline():
    pipeline = MagicMock(spec=AnalysisPipeline)
    pipeline.executor = MagicMock()
    pipeline.executor.mode = "local"
    pipeline.test_connection = AsyncMock(
        return_value=ConnectionCheck(success=True, message="Local database connection successful")
    )
    pipeline.get_available_tables = AsyncMock(
        return_value=TableListResult(success=True, tables=["schools", "catchments"])
    )
    pipeline.list_visualizations = MagicMock(
        return_value=[
            VisualizationFile(
                filename="plot_1700000000000.html",
                url="/visualizations/plot_1700000000000.html",
                created=datetime(2024, 1, 1, tzinfo=UTC),
                size_bytes=2048,
            )
        ]
    )
    return pipeline


@pytest.fixture
def mock_chat_agent():
    return MagicMock(spec=MapChatAgent)


@pytest.fixture
def client(mock_pipeline, mock_chat_agent):
    """Test client with mocked collaborators; lifespan is not run."""
    app_state["pipeline"] = mock_pipeline
    app_state["chat_agent"] = mock_chat_agent
    try:
        yield TestClient(app)
    finally:
        app_state["pipeline"] = None
        app_state["chat_agent"] = None
