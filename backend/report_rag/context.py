"""Process-wide service context, built once at startup and passed explicitly."""

from __future__ import annotations

from dataclasses import dataclass

from qdrant_client import QdrantClient

from report_rag.agents.chat_client import ChatClient
from report_rag.config import Settings
from report_rag.services.analysis_service import MedicalAnalysisService
from report_rag.services.document_reader import (
    PdfTextExtractor,
    ReportIngestionPipeline,
    TokenTextSplitter,
)
from report_rag.services.embedding import Embedder
from report_rag.services.retrieval import RetrievalStrategist
from report_rag.services.vector_store import VectorStoreGateway


@dataclass
class AppContext:
    settings: Settings
    qdrant_client: QdrantClient
    gateway: VectorStoreGateway
    pipeline: ReportIngestionPipeline
    analysis_service: MedicalAnalysisService

    def close(self) -> None:
        self.qdrant_client.close()


def _qdrant_kwargs(settings: Settings) -> dict:
    """Build kwargs for Qdrant client, including api_key if set."""
    kwargs: dict = {"url": settings.qdrant_url}
    if settings.qdrant_api_key:
        kwargs["api_key"] = settings.qdrant_api_key
    return kwargs


def build_splitter(settings: Settings) -> TokenTextSplitter:
    return TokenTextSplitter(
        chunk_size=settings.chunk_size_tokens,
        min_chunk_size_chars=settings.min_chunk_size_chars,
        min_chunk_length_to_embed=settings.min_chunk_length_to_embed,
        max_num_chunks=settings.max_num_chunks,
        keep_separator=settings.keep_separator,
    )


def build_context(
    settings: Settings, qdrant_client: QdrantClient | None = None
) -> AppContext:
    """Wire every service from settings."""
    client = qdrant_client or QdrantClient(**_qdrant_kwargs(settings))
    gateway = VectorStoreGateway(
        client, Embedder(settings), settings.qdrant_collection
    )
    pipeline = ReportIngestionPipeline(PdfTextExtractor(), build_splitter(settings))
    analysis_service = MedicalAnalysisService(
        RetrievalStrategist(gateway), ChatClient(model=settings.ai_model)
    )
    return AppContext(
        settings=settings,
        qdrant_client=client,
        gateway=gateway,
        pipeline=pipeline,
        analysis_service=analysis_service,
    )
