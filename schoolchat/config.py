"""
Application Configuration

Pydantic-based settings management using environment variables.
Supports nested configuration, validation, and caching.

Usage:
    from schoolchat.config import get_settings

    settings = get_settings()
    print(settings.llm.default_provider)
    print(settings.database.mode)
"""

import logging
import os
from functools import lru_cache
from pathlib import Path
from typing import Literal
from urllib.parse import urlparse

from dotenv import load_dotenv
from pydantic import AnyUrl, Field, field_validator, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

ProviderName = Literal["openai", "anthropic"]


class LLMSettings(BaseSettings):
    """LLM provider configuration."""

    # Provider selection
    default_provider: ProviderName = Field(default="openai", description="Default LLM provider")
    sql_provider: ProviderName | None = Field(
        None, description="Provider for SQL generation (defaults to default_provider)"
    )
    summary_provider: ProviderName | None = Field(
        None, description="Provider for result summaries (defaults to default_provider)"
    )
    chat_provider: ProviderName | None = Field(
        None, description="Provider for the map chat agent (defaults to default_provider)"
    )

    # OpenAI configuration
    openai_api_key: str | None = Field(
        None,
        description="OpenAI API key",
        min_length=20,
    )
    openai_model: str = Field(default="gpt-4o", description="OpenAI model for complex tasks")
    openai_model_mini: str = Field(default="gpt-4o-mini", description="OpenAI lightweight model")

    # Anthropic configuration
    anthropic_api_key: str | None = Field(
        None,
        description="Anthropic API key",
        min_length=20,
    )
    anthropic_model: str = Field(
        default="claude-3-5-sonnet-20241022", description="Anthropic model for complex tasks"
    )
    anthropic_model_mini: str = Field(
        default="claude-3-5-haiku-20241022", description="Anthropic lightweight model"
    )

    # Common settings
    temperature: float = Field(
        default=0.0,
        ge=0.0,
        le=2.0,
        description="Temperature for SQL generation (0.0 = deterministic)",
    )
    summary_temperature: float = Field(
        default=0.3,
        ge=0.0,
        le=2.0,
        description="Temperature for narrative summaries",
    )
    max_tokens: int = Field(
        default=2000,
        gt=0,
        le=16000,
        description="Maximum tokens per LLM response",
    )
    timeout: int = Field(
        default=30,
        gt=0,
        description="Request timeout in seconds",
    )

    model_config = SettingsConfigDict(
        env_prefix="LLM_",
        env_file=".env",
        extra="ignore",
    )

    @field_validator("openai_api_key")
    @classmethod
    def validate_openai_key(cls, v: str | None) -> str | None:
        """Validate OpenAI API key format."""
        if v and not v.startswith("sk-"):
            raise ValueError("OpenAI API key must start with 'sk-'")
        return v

    @field_validator("anthropic_api_key")
    @classmethod
    def validate_anthropic_key(cls, v: str | None) -> str | None:
        """Validate Anthropic API key format."""
        if v and not v.startswith("sk-ant-"):
            raise ValueError("Anthropic API key must start with 'sk-ant-'")
        return v

    @model_validator(mode="after")
    def validate_provider_keys(self) -> "LLMSettings":
        """Ensure API key is set for selected providers."""
        provider_key_map = {
            "openai": self.openai_api_key,
            "anthropic": self.anthropic_api_key,
        }

        selected_providers = {
            self.default_provider,
            self.sql_provider,
            self.summary_provider,
            self.chat_provider,
        }

        for provider in selected_providers:
            if provider in provider_key_map and not provider_key_map[provider]:
                raise ValueError(
                    f"API key required for {provider} provider. Set LLM_{provider.upper()}_API_KEY"
                )

        return self

    def provider_for(self, role: Literal["sql", "summary", "chat"]) -> ProviderName:
        """Resolve the provider used for a role, falling back to the default."""
        override = {
            "sql": self.sql_provider,
            "summary": self.summary_provider,
            "chat": self.chat_provider,
        }[role]
        return override or self.default_provider

    def provider_config(self, provider: ProviderName) -> dict:
        """Build the config dict handed to LLMProviderFactory."""
        if provider == "anthropic":
            return {
                "api_key": self.anthropic_api_key,
                "model": self.anthropic_model,
                "model_mini": self.anthropic_model_mini,
                "temperature": self.temperature,
                "max_tokens": self.max_tokens,
                "timeout": self.timeout,
            }
        return {
            "api_key": self.openai_api_key,
            "model": self.openai_model,
            "model_mini": self.openai_model_mini,
            "temperature": self.temperature,
            "max_tokens": self.max_tokens,
            "timeout": self.timeout,
        }


class DatabaseSettings(BaseSettings):
    """Target database configuration."""

    mode: Literal["local", "cloud"] = Field(
        default="local",
        description=(
            "Deployment mode. 'local' talks to MySQL directly, "
            "'cloud' forwards queries to the HTTP query proxy."
        ),
    )
    url: AnyUrl | None = Field(
        None,
        description="MySQL connection URL used in local mode",
    )
    timeout_seconds: int = Field(
        default=30,
        gt=0,
        description="Connection timeout in seconds",
    )

    model_config = SettingsConfigDict(
        env_prefix="DATABASE_",
        env_file=".env",
        extra="ignore",
    )

    @field_validator("url", mode="before")
    @classmethod
    def normalize_url(cls, v: str | AnyUrl | None) -> str | AnyUrl | None:
        """Treat empty strings as missing."""
        if v == "":
            return None
        return v

    @field_validator("url")
    @classmethod
    def validate_url(cls, v: AnyUrl | None) -> AnyUrl | None:
        """Validate supported database URL schemes."""
        if v is None:
            return v
        parsed = urlparse(str(v))
        scheme = parsed.scheme.split("+")[0].lower() if parsed.scheme else ""
        if scheme != "mysql":
            raise ValueError("DATABASE_URL must use the mysql scheme.")
        if not parsed.hostname:
            raise ValueError("DATABASE_URL must include a host.")
        return v


class QueryProxySettings(BaseSettings):
    """Remote query proxy used in cloud mode."""

    base_url: str | None = Field(
        None,
        description="Base URL of the query proxy service (POST {base_url}/query)",
    )
    project_id: str | None = Field(None, description="Cloud project id sent with each query")
    dataset_id: str = Field(default="schools", description="Dataset id sent with each query")
    metadata_url: str = Field(
        default=(
            "http://metadata.google.internal/computeMetadata/v1/"
            "instance/service-accounts/default/identity"
        ),
        description="Identity token endpoint; the proxy base URL is passed as audience",
    )
    timeout_seconds: float = Field(default=30.0, gt=0, description="HTTP timeout in seconds")
    health_table: str = Field(
        default="catchments",
        description="Table probed by the connection test in cloud mode",
    )

    model_config = SettingsConfigDict(
        env_prefix="QUERY_PROXY_",
        env_file=".env",
        extra="ignore",
    )

    @field_validator("base_url")
    @classmethod
    def strip_trailing_slash(cls, v: str | None) -> str | None:
        """Normalize the base URL so paths can be appended."""
        if not v:
            return None
        return v.rstrip("/")


class VisualizationSettings(BaseSettings):
    """Chart output configuration."""

    output_dir: Path = Field(
        default=Path("./visualizations"),
        description="Directory where generated charts are written",
    )
    url_prefix: str = Field(
        default="/visualizations",
        description="URL prefix under which generated charts are served",
    )
    default_library: Literal["plotly", "chartjs"] = Field(
        default="plotly", description="Chart dialect used when the caller does not pick one"
    )
    width: int = Field(default=800, gt=0, description="Default chart width in pixels")
    height: int = Field(default=600, gt=0, description="Default chart height in pixels")
    image_format: Literal["png", "jpeg"] = Field(
        default="png", description="Raster format for chartjs-dialect images"
    )

    model_config = SettingsConfigDict(
        env_prefix="VISUALIZATION_",
        env_file=".env",
        extra="ignore",
    )


class PipelineSettings(BaseSettings):
    """Analysis pipeline defaults."""

    max_rows: int = Field(
        default=10000,
        gt=0,
        description="Row cap appended as LIMIT when a query has none",
    )
    timeout_ms: int = Field(
        default=30000,
        gt=0,
        description="Query timeout passed to the executor",
    )
    include_visualization: bool = Field(
        default=True, description="Build a chart unless the caller opts out"
    )
    include_summary: bool = Field(
        default=True, description="Narrate results unless the caller opts out"
    )
    include_live_schema: bool = Field(
        default=False,
        description="Describe live tables in the SQL prompt when no schema is supplied",
    )

    model_config = SettingsConfigDict(
        env_prefix="PIPELINE_",
        env_file=".env",
        extra="ignore",
    )


class ChatSettings(BaseSettings):
    """Map chat agent configuration."""

    max_tool_rounds: int = Field(
        default=5,
        ge=1,
        le=20,
        description="Maximum model/tool round trips per chat turn",
    )
    max_retries: int = Field(
        default=3,
        ge=0,
        le=10,
        description="Retries on rate-limit or overload errors",
    )
    initial_retry_delay: float = Field(
        default=1.0, gt=0, description="First backoff delay in seconds"
    )
    backoff_factor: float = Field(default=2.0, ge=1.0, description="Backoff multiplier")
    data_tools_enabled: bool = Field(
        default=True,
        description="Offer list_tables, describe_table and run_analysis to the chat model",
    )
    tool_policy_path: Path | None = Field(
        default=None, description="YAML file overriding tool policies"
    )

    model_config = SettingsConfigDict(
        env_prefix="CHAT_",
        env_file=".env",
        extra="ignore",
    )


class LoggingSettings(BaseSettings):
    """Logging configuration."""

    level: Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"] = Field(
        default="INFO",
        description="Application log level",
    )
    format: str = Field(
        default="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
        description="Log message format",
    )
    date_format: str = Field(
        default="%Y-%m-%d %H:%M:%S",
        description="Log timestamp format",
    )
    file: Path | None = Field(
        default=None,
        description="Optional log file path (None = stdout only)",
    )

    model_config = SettingsConfigDict(
        env_prefix="LOG_",
        env_file=".env",
        extra="ignore",
    )

    def configure(self) -> None:
        """Configure Python logging with these settings."""
        handlers: list[logging.Handler] = [logging.StreamHandler()]

        if self.file:
            self.file.parent.mkdir(parents=True, exist_ok=True)
            handlers.append(logging.FileHandler(self.file))

        logging.basicConfig(
            level=getattr(logging, self.level),
            format=self.format,
            datefmt=self.date_format,
            handlers=handlers,
            force=True,  # Override any existing configuration
        )


class Settings(BaseSettings):
    """
    Main application settings.

    Loads configuration from environment variables and .env file.
    Settings are nested by domain (llm, database, query_proxy, visualization,
    pipeline, chat, logging).

    Environment Variables:
        ENVIRONMENT: Deployment environment (development, staging, production)
        APP_NAME: Application name for logging
        DEBUG: Enable debug mode
        API_HOST: API server host
        API_PORT: API server port
        LLM_*: LLM provider configuration (see LLMSettings)
        DATABASE_*: Target database configuration (see DatabaseSettings)
        QUERY_PROXY_*: Remote query proxy (see QueryProxySettings)
        VISUALIZATION_*: Chart output (see VisualizationSettings)
        PIPELINE_*: Pipeline defaults (see PipelineSettings)
        CHAT_*: Chat agent loop (see ChatSettings)
        LOG_*: Logging configuration (see LoggingSettings)

    Example:
        >>> settings = get_settings()
        >>> settings.database.mode
        'local'
        >>> settings.is_cloud
        False
    """

    # Application settings
    environment: Literal["development", "staging", "production"] = Field(
        default="development",
        description="Deployment environment",
    )
    app_name: str = Field(
        default="SchoolChat",
        description="Application name",
    )
    debug: bool = Field(
        default=False,
        description="Enable debug mode",
    )
    api_host: str = Field(
        default="0.0.0.0",
        description="API server host",
    )
    api_port: int = Field(
        default=8000,
        gt=0,
        le=65535,
        description="API server port",
    )

    # Nested settings
    llm: LLMSettings = Field(default_factory=LLMSettings)
    database: DatabaseSettings = Field(default_factory=DatabaseSettings)
    query_proxy: QueryProxySettings = Field(default_factory=QueryProxySettings)
    visualization: VisualizationSettings = Field(default_factory=VisualizationSettings)
    pipeline: PipelineSettings = Field(default_factory=PipelineSettings)
    chat: ChatSettings = Field(default_factory=ChatSettings)
    logging: LoggingSettings = Field(default_factory=LoggingSettings)

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    @property
    def is_cloud(self) -> bool:
        """True when queries go through the remote proxy."""
        return self.database.mode == "cloud"

    @model_validator(mode="after")
    def validate_cloud_mode(self) -> "Settings":
        """Cloud mode needs a proxy to talk to."""
        if self.database.mode == "cloud" and not self.query_proxy.base_url:
            raise ValueError("QUERY_PROXY_BASE_URL is required when DATABASE_MODE=cloud")
        return self

    def model_post_init(self, __context) -> None:
        """Log configuration on initialization."""
        logger = logging.getLogger(__name__)
        logger.info(
            f"Settings loaded for {self.app_name} ({self.environment})",
            extra={
                "environment": self.environment,
                "debug": self.debug,
                "llm_provider": self.llm.default_provider,
                "database_mode": self.database.mode,
            },
        )


_DOTENV_PATH = Path(__file__).resolve().parents[1] / ".env"


def _apply_dotenv_precedence() -> None:
    env_source = os.getenv("SCHOOLCHAT_ENV_SOURCE", "dotenv").lower()
    if env_source not in {"dotenv", "envfile", "file"}:
        return
    if _DOTENV_PATH.exists():
        load_dotenv(_DOTENV_PATH, override=True)


@lru_cache
def get_settings() -> Settings:
    """Load settings once per process. A project-root .env wins over the environment."""
    _apply_dotenv_precedence()
    return Settings()


def clear_settings_cache() -> None:
    """Forget the cached settings so the next get_settings() re-reads the environment."""
    get_settings.cache_clear()
