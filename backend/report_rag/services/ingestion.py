"""Startup ingestion: read every configured report, then index the full chunk list once."""

from __future__ import annotations

import logging
from collections.abc import Sequence

from report_rag.models.rag import SourceFile
from report_rag.services.document_reader import (
    ReportIngestionPipeline,
    discover_source_files,
)
from report_rag.services.vector_store import VectorStoreGateway

logger = logging.getLogger(__name__)


def run_ingestion(
    pipeline: ReportIngestionPipeline,
    gateway: VectorStoreGateway,
    source_files: Sequence[SourceFile],
) -> int:
    """Chunk all files, then store them. Returns the number of chunks stored.

    ``IngestionError`` propagates before anything is written to the store.
    """
    logger.info("Starting report ingestion")
    chunks = pipeline.ingest(source_files)
    logger.info("Finished report ingestion")

    gateway.ensure_collection()
    gateway.index(chunks)
    logger.info("Finished vector store ingestion")
    return len(chunks)


def ingest_configured_reports(
    pipeline: ReportIngestionPipeline, gateway: VectorStoreGateway, pattern: str
) -> int:
    return run_ingestion(pipeline, gateway, discover_source_files(pattern))
