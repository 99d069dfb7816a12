"""Vector store gateway: Qdrant collection management, indexing and filtered similarity search."""

from __future__ import annotations

import logging
from collections import Counter
from typing import Protocol

from qdrant_client import QdrantClient
from qdrant_client.models import (
    Distance,
    FieldCondition,
    Filter,
    MatchValue,
    PayloadSchemaType,
    PointStruct,
    VectorParams,
)

from report_rag.models.rag import (
    PATIENT_ID_KEY,
    SOURCE_KEY,
    FilterExpression,
    ReportChunk,
    SearchResult,
)

logger = logging.getLogger(__name__)

TEXT_KEY = "text"


class RetrievalError(Exception):
    """Raised when a similarity search against the vector store fails."""

    def __init__(self, code: str, message: str) -> None:
        self.code = code
        self.message = message
        super().__init__(message)


class SupportsEmbedding(Protocol):
    dimensions: int

    def embed_query(self, text: str) -> list[float]: ...

    def embed_documents(self, texts: list[str]) -> list[list[float]]: ...


# --- Filter serialization ---


def render_filter_expression(expression: FilterExpression) -> str:
    """Render a filter in the textual form ``field == 'value'``.

    Embedded single quotes are doubled so the value cannot close the literal.
    """
    escaped = expression.value.replace("'", "''")
    return f"{expression.field} {expression.operator} '{escaped}'"


def to_qdrant_filter(expression: FilterExpression | None) -> Filter | None:
    """Translate a filter expression into a Qdrant payload filter."""
    if expression is None:
        return None
    return Filter(
        must=[
            FieldCondition(
                key=expression.field, match=MatchValue(value=expression.value)
            )
        ]
    )


# --- Gateway ---


class VectorStoreGateway:
    """Persistence boundary for report chunks in a Qdrant collection."""

    def __init__(
        self, client: QdrantClient, embedder: SupportsEmbedding, collection: str
    ) -> None:
        self._client = client
        self._embedder = embedder
        self._collection = collection

    def ensure_collection(self) -> None:
        """Create the Qdrant collection if it doesn't exist."""
        collections = [c.name for c in self._client.get_collections().collections]
        if self._collection in collections:
            logger.info("Qdrant collection '%s' already exists", self._collection)
            return

        self._client.create_collection(
            collection_name=self._collection,
            vectors_config=VectorParams(
                size=self._embedder.dimensions,
                distance=Distance.COSINE,
            ),
        )
        for field in (PATIENT_ID_KEY, SOURCE_KEY):
            self._client.create_payload_index(
                collection_name=self._collection,
                field_name=field,
                field_schema=PayloadSchemaType.KEYWORD,
            )
        logger.info("Created Qdrant collection '%s'", self._collection)

    def index(self, chunks: list[ReportChunk]) -> None:
        """Embed and upsert all chunks in a single call, in the given order."""
        logger.info("Storing %d chunks in vector store", len(chunks))
        patient_counts = Counter(
            chunk.patient_id for chunk in chunks if chunk.patient_id is not None
        )
        for patient_id, count in patient_counts.items():
            logger.info("Patient %s: %d chunks", patient_id, count)

        if not chunks:
            return

        vectors = self._embedder.embed_documents([c.text for c in chunks])
        points = [
            PointStruct(
                id=chunk.id,
                vector=vector,
                payload={**chunk.metadata, TEXT_KEY: chunk.text},
            )
            for chunk, vector in zip(chunks, vectors, strict=True)
        ]
        self._client.upsert(collection_name=self._collection, points=points)
        logger.info(
            "Upserted %d chunks into '%s'", len(points), self._collection
        )

    def search(
        self,
        query: str,
        filter_expression: FilterExpression | None,
        top_k: int,
        similarity_threshold: float,
    ) -> list[SearchResult]:
        """Embed the query and return hits ordered by descending score."""
        logger.debug(
            "Searching collection=%r filter=%s top_k=%d threshold=%.2f",
            self._collection,
            render_filter_expression(filter_expression) if filter_expression else None,
            top_k,
            similarity_threshold,
        )
        try:
            query_vector = self._embedder.embed_query(query)
            response = self._client.query_points(
                collection_name=self._collection,
                query=query_vector,
                query_filter=to_qdrant_filter(filter_expression),
                score_threshold=similarity_threshold,
                limit=top_k,
                with_payload=True,
            )
        except Exception as e:
            raise RetrievalError(
                code="SEARCH_FAILED",
                message=f"Similarity search failed: {e}",
            ) from e

        results = []
        for point in response.points:
            payload = dict(point.payload or {})
            text = payload.pop(TEXT_KEY, "")
            chunk = ReportChunk(id=str(point.id), text=text, metadata=payload)
            results.append(SearchResult(chunk=chunk, score=point.score))

        logger.debug("Qdrant returned %d points", len(results))
        return results
