"""
Pytest configuration and shared fixtures.

This module provides fixtures and configuration used across all tests.
"""

import logging
import os
from unittest.mock import AsyncMock

import pytest

# schoolchat.api.main reads settings at import time, which happens during
# collection before any fixture runs; give it the same fake key the
# mock_openai_api_key fixture uses.
os.environ.setdefault("LLM_OPENAI_API_KEY", "sk-test-key-1234567890-abcdefghijklmnop")

# ============================================================================
# Pytest Configuration
# ============================================================================


def pytest_addoption(parser):
    """Add custom command line options."""
    parser.addoption(
        "--run-integration",
        action="store_true",
        default=False,
        help="Run integration tests (requires a database and API keys)",
    )


def pytest_configure(config):
    """Configure pytest with custom markers and settings."""
    config.addinivalue_line(
        "markers", "integration: mark test as integration test (may require external services)"
    )
    config.addinivalue_line("markers", "slow: mark test as slow (takes more than 1 second)")
    config.addinivalue_line("markers", "unit: mark test as unit test (default)")


def pytest_collection_modifyitems(config, items):
    """Skip integration tests unless explicitly enabled."""
    if config.getoption("--run-integration"):
        return
    skip_integration = pytest.mark.skip(
        reason="Integration tests disabled (use --run-integration to enable)."
    )
    for item in items:
        if "integration" in item.keywords:
            item.add_marker(skip_integration)


# ============================================================================
# Logging Configuration
# ============================================================================


@pytest.fixture(autouse=True)
def configure_test_logging(caplog):
    """Capture everything down to DEBUG for every test."""
    caplog.set_level(logging.DEBUG)
    yield


# ============================================================================
# Environment and Configuration
# ============================================================================


@pytest.fixture(autouse=True)
def mock_openai_api_key(request, monkeypatch):
    """
    Provide a fake OpenAI API key and a clean settings cache.

    Runs automatically so no unit test reads a developer's real .env values.
    Integration tests keep the real environment.
    """
    from schoolchat.config import clear_settings_cache

    clear_settings_cache()
    if "integration" in request.keywords:
        yield None
        clear_settings_cache()
        return

    for name in ("DATABASE_URL", "DATABASE_MODE", "QUERY_PROXY_BASE_URL", "LLM_DEFAULT_PROVIDER"):
        monkeypatch.delenv(name, raising=False)

    test_key = "sk-test-key-1234567890-abcdefghijklmnop"
    monkeypatch.setenv("LLM_OPENAI_API_KEY", test_key)
    yield test_key

    clear_settings_cache()


@pytest.fixture
def visualization_dir(tmp_path, monkeypatch):
    """Point VISUALIZATION_OUTPUT_DIR at a temporary directory."""
    output_dir = tmp_path / "visualizations"
    monkeypatch.setenv("VISUALIZATION_OUTPUT_DIR", str(output_dir))
    return output_dir


# ============================================================================
# Common Test Data
# ============================================================================


@pytest.fixture
def sample_query() -> str:
    """Sample user question for testing."""
    return "Show me the five largest schools by capacity"


@pytest.fixture
def school_rows() -> list[dict]:
    """Small result set shaped like the schools table."""
    return [
        {"school_id": "SCH-001", "school_name": "Hillside Primary", "school_type": "Primary", "capacity": 420},
        {"school_id": "SCH-002", "school_name": "Riverside Academy", "school_type": "Secondary", "capacity": 1100},
        {"school_id": "SCH-003", "school_name": "Oakfield Primary", "school_type": "Primary", "capacity": 315},
        {"school_id": "SCH-004", "school_name": "Northgate High", "school_type": "Secondary", "capacity": 980},
    ]


# ============================================================================
# Mock LLM Provider
# ============================================================================


@pytest.fixture
def mock_llm_provider():
    """
    Mock LLM provider for testing agents.

    generate() is an AsyncMock; complete() goes through it like the real
    provider does.

    Usage:
        def test_agent(mock_llm_provider):
            mock_llm_provider.set_response("SELECT 1")
            result = await agent.generate(...)
    """
    from schoolchat.llm.base import BaseLLMProvider
    from schoolchat.llm.models import LLMResponse, LLMUsage

    def _response(content: str = "", tool_calls=None) -> LLMResponse:
        return LLMResponse(
            content=content,
            model="mock-model",
            usage=LLMUsage(prompt_tokens=1, completion_tokens=1, total_tokens=2),
            finish_reason="tool_calls" if tool_calls else "stop",
            provider="mock",
            tool_calls=tool_calls or [],
        )

    class MockLLMProvider(BaseLLMProvider):
        def __init__(self):
            super().__init__(provider_name="mock", model="mock-model")
            self.generate = AsyncMock(return_value=_response("mock response"))
            self.stream = AsyncMock()

        async def generate(self, request):  # pragma: no cover - replaced per instance
            raise NotImplementedError

        async def stream(self, request):  # pragma: no cover - replaced per instance
            raise NotImplementedError

        def set_response(self, response: str):
            """Set the response that generate() will return."""
            self.generate.side_effect = None
            self.generate.return_value = _response(response)

        def set_responses(self, responses: list):
            """Queue responses; str items become text, responses and exceptions pass through."""
            self.generate.side_effect = [
                item if isinstance(item, (LLMResponse, BaseException)) else _response(item)
                for item in responses
            ]

        @staticmethod
        def tool_response(tool_calls, content: str = "") -> LLMResponse:
            return _response(content, tool_calls)

        def last_prompt(self) -> str:
            request = self.generate.await_args.args[0]
            return request.messages[-1].content

    return MockLLMProvider()
