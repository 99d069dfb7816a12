"""Test fixtures and configuration."""

from __future__ import annotations

from collections.abc import AsyncIterator
from types import SimpleNamespace
from unittest.mock import AsyncMock

import pytest
from httpx import ASGITransport, AsyncClient
from qdrant_client import QdrantClient

from report_rag.main import app
from report_rag.routers.analysis import get_context
from report_rag.services.vector_store import VectorStoreGateway

EMBEDDING_DIM = 8


class FakeEmbedder:
    """Deterministic embedder: every document gets the same vector."""

    dimensions = EMBEDDING_DIM

    def __init__(self, query_vector: list[float] | None = None) -> None:
        self.query_vector = query_vector or [0.1] * EMBEDDING_DIM
        self.document_calls: list[list[str]] = []

    def embed_query(self, text: str) -> list[float]:
        return list(self.query_vector)

    def embed_documents(self, texts: list[str]) -> list[list[float]]:
        self.document_calls.append(list(texts))
        return [[0.1] * EMBEDDING_DIM for _ in texts]


@pytest.fixture
def in_memory_qdrant() -> QdrantClient:
    """Use in-memory Qdrant for tests."""
    return QdrantClient(":memory:")


@pytest.fixture
def fake_embedder() -> FakeEmbedder:
    return FakeEmbedder()


@pytest.fixture
def gateway(
    in_memory_qdrant: QdrantClient, fake_embedder: FakeEmbedder
) -> VectorStoreGateway:
    gw = VectorStoreGateway(in_memory_qdrant, fake_embedder, "test_reports")
    gw.ensure_collection()
    return gw


@pytest.fixture
def analysis_service() -> SimpleNamespace:
    return SimpleNamespace(analyze=AsyncMock(return_value="Key findings: none."))


@pytest.fixture
async def client(analysis_service: SimpleNamespace) -> AsyncIterator[AsyncClient]:
    context = SimpleNamespace(analysis_service=analysis_service)
    app.dependency_overrides[get_context] = lambda: context
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac
    app.dependency_overrides.clear()
