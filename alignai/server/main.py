"""AlignAI HTTP server entry point.

Serves the REST API under /api/v1 and a /health probe.  The lifespan builds
the embedding and completion providers at startup so a misconfigured provider
shows up in the logs before the first request, and disposes the database
engine on shutdown.

Entry point:
    uvicorn alignai.server.main:app --host 0.0.0.0 --port 8000
"""

from __future__ import annotations

import logging
from contextlib import asynccontextmanager
from typing import AsyncIterator

from fastapi import FastAPI
from fastapi.responses import JSONResponse
from fastapi.routing import APIRoute

from alignai import __version__
from alignai.api.router import api_router
from alignai.config import settings
from alignai.db.session import engine
from alignai.pipeline.completion import get_completion_provider
from alignai.pipeline.embedder import get_embedder

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    logger.info("AlignAI server starting up...")

    embedder = get_embedder()
    logger.info("Embedding provider ready: %s (dims=%d)", embedder.model_id, embedder.dimensions)
    if settings.embedding_provider != "sentence-transformers" and not settings.openai_api_key:
        logger.warning("ALIGNAI_OPENAI_API_KEY is not set; submissions will be stored without embeddings.")

    get_completion_provider()
    logger.info("Completion provider ready: %s", settings.llm_model)
    if not settings.anthropic_api_key:
        logger.warning("ALIGNAI_ANTHROPIC_API_KEY is not set; LLM endpoints will return provider errors.")

    yield

    logger.info("AlignAI server shutting down, disposing database engine...")
    await engine.dispose()
    logger.info("Database engine disposed.")


def custom_generate_unique_id(route: APIRoute) -> str:
    """Generate deterministic, SDK-friendly operation IDs for REST routes."""
    if route.tags:
        return f"{route.tags[0]}-{route.name}"
    return route.name


app = FastAPI(
    title="AlignAI",
    description="Team alignment on product discovery, with semantic conflict detection and PRD export",
    version=__version__,
    lifespan=lifespan,
    generate_unique_id_function=custom_generate_unique_id,
)


@app.get("/health")
async def health() -> JSONResponse:
    """Simple health check endpoint for load balancers and readiness probes."""
    return JSONResponse({"status": "ok", "service": "alignai"})


app.include_router(api_router)
