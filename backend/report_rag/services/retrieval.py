"""Patient-scoped retrieval with a single unfiltered fallback."""

from __future__ import annotations

import logging
from typing import Protocol

from report_rag.models.rag import PATIENT_ID_KEY, FilterExpression, SearchResult
from report_rag.models.schemas import AnalysisQuery
from report_rag.services.vector_store import render_filter_expression

logger = logging.getLogger(__name__)

TOP_K = 10
SIMILARITY_THRESHOLD = 0.5


class SupportsSearch(Protocol):
    def search(
        self,
        query: str,
        filter_expression: FilterExpression | None,
        top_k: int,
        similarity_threshold: float,
    ) -> list[SearchResult]: ...


def build_patient_filter(patient_id: str | None) -> FilterExpression | None:
    """Build an equality filter on ``patientId``, or None for a blank id."""
    if patient_id is None or not patient_id.strip():
        return None
    return FilterExpression(field=PATIENT_ID_KEY, value=patient_id)


class RetrievalStrategist:
    """Runs a patient-scoped search and retries once without the filter if it finds nothing."""

    def __init__(self, gateway: SupportsSearch) -> None:
        self._gateway = gateway

    def retrieve(self, query: AnalysisQuery) -> list[SearchResult]:
        filter_expression = build_patient_filter(query.patient_id)
        filter_applied = filter_expression is not None
        if filter_applied:
            logger.debug(
                "Constructed filter expression: %s",
                render_filter_expression(filter_expression),
            )

        results = self._gateway.search(
            query.query, filter_expression, TOP_K, SIMILARITY_THRESHOLD
        )
        logger.info("Retrieved %d chunks for query: %r", len(results), query.query)

        if not results and filter_applied:
            logger.info(
                "No chunks found for patient %s. Trying again without patient filter.",
                query.patient_id,
            )
            results = self._gateway.search(
                query.query, None, TOP_K, SIMILARITY_THRESHOLD
            )
            logger.info(
                "Retrieved %d chunks without filter for query: %r",
                len(results),
                query.query,
            )

        for r in results:
            logger.info(
                "  score=%.3f source=%r text=%r",
                r.score,
                r.chunk.source,
                r.chunk.text[:100] + ("..." if len(r.chunk.text) > 100 else ""),
            )
            if r.chunk.patient_id is None:
                logger.warning("Chunk %s has no patientId metadata", r.chunk.id)

        return results
