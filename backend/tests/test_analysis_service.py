"""Unit tests for analysis_service: prompt assembly and failure handling."""

from __future__ import annotations

import asyncio
import time
from unittest.mock import AsyncMock, MagicMock

from report_rag.agents.chat_client import GenerationError
from report_rag.models.rag import ReportChunk, SearchResult
from report_rag.models.schemas import AnalysisQuery
from report_rag.services.analysis_service import (
    ERROR_RESPONSE,
    INSUFFICIENT_CONTEXT_ANSWER,
    MedicalAnalysisService,
    build_prompt,
    format_context,
)
from report_rag.services.retrieval import RetrievalStrategist
from report_rag.services.vector_store import RetrievalError


def _result(text: str) -> SearchResult:
    return SearchResult(
        chunk=ReportChunk(text=text, metadata={"patientId": "JD123"}), score=0.9
    )


def _service(results=None, reply: str = "Key findings: fever.") -> tuple:
    strategist = MagicMock()
    strategist.retrieve.return_value = results or []
    chat_client = MagicMock()
    chat_client.generate = AsyncMock(return_value=reply)
    return MedicalAnalysisService(strategist, chat_client), strategist, chat_client


class TestBuildPrompt:
    def test_contains_required_sections(self) -> None:
        prompt = build_prompt("CRP elevated.", "fever symptoms")
        assert "1. Key findings from the report." in prompt
        assert "2. Recommendations for treatment or next steps." in prompt
        assert "3. Step-by-step reasoning for your recommendations." in prompt

    def test_insufficient_information_instruction(self) -> None:
        prompt = build_prompt("", "fever symptoms")
        assert (
            'If the context is empty or unrelated to the query, respond: '
            '"Insufficient information in the provided context."'
        ) in prompt
        assert INSUFFICIENT_CONTEXT_ANSWER == "Insufficient information in the provided context."

    def test_slots_filled(self) -> None:
        prompt = build_prompt("CRP elevated.", "fever symptoms")
        assert "---------------------\nCRP elevated.\n---------------------" in prompt
        assert prompt.rstrip().endswith("Query: fever symptoms")

    def test_braces_in_context_are_literal(self) -> None:
        prompt = build_prompt("glucose {fasting}", "what about {query}?")
        assert "glucose {fasting}" in prompt
        assert "Query: what about {query}?" in prompt


class TestFormatContext:
    def test_joins_in_order(self) -> None:
        assert format_context([_result("one"), _result("two")]) == "one\ntwo"

    def test_empty(self) -> None:
        assert format_context([]) == ""


class TestAnalyze:
    async def test_returns_model_text(self) -> None:
        service, strategist, chat_client = _service([_result("Fever 39C.")])
        query = AnalysisQuery(query="fever symptoms", patientId="JD123")

        response = await service.analyze(query)

        assert response == "Key findings: fever."
        strategist.retrieve.assert_called_once_with(query)
        prompt = chat_client.generate.call_args.args[0]
        assert "Fever 39C." in prompt
        assert "Query: fever symptoms" in prompt

    async def test_empty_context_still_reaches_model(self) -> None:
        service, _, chat_client = _service([])
        await service.analyze(AnalysisQuery(query="fever symptoms"))

        chat_client.generate.assert_awaited_once()
        prompt = chat_client.generate.call_args.args[0]
        assert "---------------------\n\n---------------------" in prompt
        assert INSUFFICIENT_CONTEXT_ANSWER in prompt

    async def test_retrieval_error_returns_apology(self) -> None:
        service, strategist, chat_client = _service()
        strategist.retrieve.side_effect = RetrievalError("SEARCH_FAILED", "down")

        response = await service.analyze(AnalysisQuery(query="q"))

        assert response == ERROR_RESPONSE
        chat_client.generate.assert_not_called()

    async def test_generation_error_returns_apology(self) -> None:
        service, _, chat_client = _service([_result("x")])
        chat_client.generate.side_effect = GenerationError("CLI_NOT_FOUND", "missing")

        assert await service.analyze(AnalysisQuery(query="q")) == ERROR_RESPONSE

    async def test_unexpected_error_returns_apology(self) -> None:
        service, strategist, _ = _service()
        strategist.retrieve.side_effect = KeyError("boom")

        response = await service.analyze(AnalysisQuery(query="q"))

        assert response == (
            "An error occurred while processing your request. Please try again later."
        )

    async def test_fallback_results_used_as_context(self) -> None:
        gateway = MagicMock()
        gateway.search.side_effect = [
            [],
            [_result("Patient reports fever."), _result("Chills overnight.")],
        ]
        chat_client = MagicMock()
        chat_client.generate = AsyncMock(return_value="ok")
        service = MedicalAnalysisService(RetrievalStrategist(gateway), chat_client)

        response = await service.analyze(
            AnalysisQuery(query="fever symptoms", patientId="JD123")
        )

        assert response == "ok"
        assert gateway.search.call_count == 2
        prompt = chat_client.generate.call_args.args[0]
        assert "Patient reports fever.\nChills overnight." in prompt


class SlowGateway:
    """Gateway whose search blocks like a real embed + Qdrant round trip."""

    def __init__(self, delay: float) -> None:
        self.delay = delay

    def search(self, query, filter_expression, top_k, similarity_threshold):
        time.sleep(self.delay)
        return [_result(f"context for {query}")]


class TestAnalyzeConcurrency:
    async def test_blocking_retrieval_does_not_stall_other_requests(self) -> None:
        chat_client = MagicMock()
        chat_client.generate = AsyncMock(return_value="ok")
        service = MedicalAnalysisService(
            RetrievalStrategist(SlowGateway(delay=0.5)), chat_client
        )

        start = time.perf_counter()
        responses = await asyncio.gather(
            *(service.analyze(AnalysisQuery(query=f"q{i}")) for i in range(4))
        )
        elapsed = time.perf_counter() - start

        assert responses == ["ok"] * 4
        assert elapsed < 1.5
