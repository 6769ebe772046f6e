"""
FastAPI Application

Main FastAPI application for SchoolChat with:
- Lifespan management for pipeline and chat agent
- CORS middleware for the map frontend
- Static hosting of generated visualizations
- Global exception handler for pipeline component errors

Usage:
    uvicorn schoolchat.api.main:app --reload --port 8000
"""

import logging
import os
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request, status
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from fastapi.staticfiles import StaticFiles

from schoolchat import __version__
from schoolchat.api.deps import app_state
from schoolchat.api.routes import analysis, chat, database, health, summaries, visualizations
from schoolchat.chat.agent import MapChatAgent
from schoolchat.config import get_settings
from schoolchat.models.errors import SchoolChatError
from schoolchat.pipeline.orchestrator import create_pipeline

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    """
    Lifespan context manager for startup and shutdown.

    Initializes:
    - Analysis pipeline (generator, validator, executor, visualizer, summarizer)
    - Map chat agent
    """
    config = get_settings()
    config.logging.configure()
    logger.info(f"Starting SchoolChat API server ({config.database.mode} mode)...")

    try:
        logger.info("Initializing analysis pipeline...")
        try:
            app_state["pipeline"] = create_pipeline(config)
        except Exception as e:
            logger.warning(f"Pipeline not initialized: {e}")
            app_state["pipeline"] = None

        logger.info("Initializing chat agent...")
        try:
            app_state["chat_agent"] = MapChatAgent(pipeline=app_state["pipeline"], settings=config)
        except Exception as e:
            logger.warning(f"Chat agent not initialized: {e}")
            app_state["chat_agent"] = None

        logger.info("SchoolChat API server started successfully")

        yield  # Application runs here

    finally:
        logger.info("Shutting down SchoolChat API server...")
        app_state["pipeline"] = None
        app_state["chat_agent"] = None
        logger.info("SchoolChat API server shut down complete")


# Create FastAPI app
app = FastAPI(
    title="SchoolChat API",
    description="Natural-language analytics over school and catchment data",
    version=__version__,
    lifespan=lifespan,
)

# CORS middleware for frontend
config = get_settings()
cors_origins_env = os.getenv("CORS_ORIGINS", "")
cors_origins = (
    [origin.strip() for origin in cors_origins_env.split(",") if origin.strip()]
    if cors_origins_env
    else ["http://localhost:3000", "http://localhost:5173"]
)
app.add_middleware(
    CORSMiddleware,
    allow_origins=cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


# Exception handlers
@app.exception_handler(SchoolChatError)
async def schoolchat_error_handler(request: Request, exc: SchoolChatError) -> JSONResponse:
    """Handle component errors with context."""
    logger.error(
        f"{exc.component} error: {exc}",
        extra={"component": exc.component, "recoverable": exc.recoverable},
    )
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content={
            "error": exc.__class__.__name__,
            "message": str(exc),
            "component": exc.component,
        },
    )


# Include routers
app.include_router(health.router, prefix="/api/v1", tags=["health"])
app.include_router(analysis.router, prefix="/api/v1", tags=["analysis"])
app.include_router(visualizations.router, prefix="/api/v1", tags=["visualizations"])
app.include_router(summaries.router, prefix="/api/v1", tags=["summaries"])
app.include_router(database.router, prefix="/api/v1", tags=["database"])
app.include_router(chat.router, prefix="/api/v1", tags=["chat"])

# Generated charts, served straight from the output directory
app.mount(
    config.visualization.url_prefix,
    StaticFiles(directory=config.visualization.output_dir, check_dir=False),
    name="visualizations",
)


# Root endpoint
@app.get("/")
async def root() -> dict[str, str]:
    """Root endpoint with API information."""
    return {
        "name": "SchoolChat API",
        "version": __version__,
        "description": "Natural-language analytics over school and catchment data",
        "docs": "/docs",
    }

