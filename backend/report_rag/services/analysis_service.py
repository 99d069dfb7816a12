"""Medical analysis: retrieve report context, build the prompt, ask the model."""

from __future__ import annotations

import asyncio
import logging
from typing import Protocol

from report_rag.models.rag import SearchResult
from report_rag.models.schemas import AnalysisQuery

logger = logging.getLogger(__name__)

INSUFFICIENT_CONTEXT_ANSWER = "Insufficient information in the provided context."
ERROR_RESPONSE = (
    "An error occurred while processing your request. Please try again later."
)

ANALYSIS_PROMPT_TEMPLATE = """\
Based on the following medical report context, analyze the patient's condition.
Context:
---------------------
{context}
---------------------

Provide:
1. Key findings from the report.
2. Recommendations for treatment or next steps.
3. Step-by-step reasoning for your recommendations.

If the context is empty or unrelated to the query, respond: "{insufficient}"

Query: {query}
"""


class SupportsRetrieval(Protocol):
    def retrieve(self, query: AnalysisQuery) -> list[SearchResult]: ...


class SupportsGeneration(Protocol):
    async def generate(self, prompt: str) -> str: ...


def format_context(results: list[SearchResult]) -> str:
    """Concatenate retrieved chunk texts, one per line, in retrieval order."""
    return "\n".join(r.chunk.text for r in results)


def build_prompt(context: str, query: str) -> str:
    return ANALYSIS_PROMPT_TEMPLATE.format(
        context=context,
        insufficient=INSUFFICIENT_CONTEXT_ANSWER,
        query=query,
    )


class MedicalAnalysisService:
    """Answers a query about a patient's reports; never raises."""

    def __init__(
        self, strategist: SupportsRetrieval, chat_client: SupportsGeneration
    ) -> None:
        self._strategist = strategist
        self._chat_client = chat_client

    async def analyze(self, query: AnalysisQuery) -> str:
        try:
            logger.info("Received query: %r", query.query)
            logger.info("Patient ID: %s", query.patient_id)

            # Embedding and Qdrant calls block; keep them off the event loop
            results = await asyncio.to_thread(self._strategist.retrieve, query)
            prompt = build_prompt(format_context(results), query.query)
            logger.debug("Prompt (%d chars):\n%s", len(prompt), prompt)

            response = await self._chat_client.generate(prompt)
            logger.info("RAG response: %s", response)
            return response
        except Exception:
            logger.exception("Medical analysis failed for query %r", query.query)
            return ERROR_RESPONSE
