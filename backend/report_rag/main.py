"""FastAPI application entry point."""

from __future__ import annotations

import logging
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

from fastapi import FastAPI
from rich.logging import RichHandler

from report_rag.config import settings
from report_rag.context import build_context
from report_rag.routers.analysis import router as analysis_router
from report_rag.services.ingestion import ingest_configured_reports

logging.basicConfig(
    level=logging.INFO,
    format="%(name)s - %(message)s",
    datefmt="%H:%M:%S",
    handlers=[RichHandler(rich_tracebacks=True, markup=False)],
    force=True,
)
logging.getLogger("httpx").setLevel(logging.WARNING)
logging.getLogger("httpcore").setLevel(logging.WARNING)
# Our app loggers: show DEBUG when debug=True, keep third-party libs at INFO
if settings.debug:
    for name in ("report_rag.agents", "report_rag.services", "report_rag.routers"):
        logging.getLogger(name).setLevel(logging.DEBUG)

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    context = build_context(settings)
    try:
        if settings.ingest_on_startup:
            ingest_configured_reports(
                context.pipeline, context.gateway, settings.reports_glob
            )
        else:
            logger.info("Startup ingestion disabled")
        app.state.context = context
        yield
    finally:
        context.close()


app = FastAPI(
    title="Medical Report RAG",
    description="Patient-scoped question answering over medical PDF reports",
    version="0.1.0",
    lifespan=lifespan,
)

app.include_router(analysis_router)


@app.get("/health")
async def health_check() -> dict[str, str]:
    """Health check endpoint."""
    return {"status": "healthy"}
