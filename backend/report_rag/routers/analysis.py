"""Medical analysis API endpoint."""

from __future__ import annotations

import logging

from fastapi import APIRouter, Depends, Request
from fastapi.responses import PlainTextResponse

from report_rag.context import AppContext
from report_rag.models.schemas import AnalysisQuery

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api", tags=["analysis"])


def get_context(request: Request) -> AppContext:
    """Dependency for routes to get the process-wide service context."""
    return request.app.state.context


@router.post("/medical-analysis", response_class=PlainTextResponse)
async def analyze_medical_report(
    body: AnalysisQuery,
    context: AppContext = Depends(get_context),
) -> str:
    return await context.analysis_service.analyze(body)
