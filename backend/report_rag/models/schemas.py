"""Pydantic request schemas."""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict, Field


class AnalysisQuery(BaseModel):
    """Body of a medical analysis request."""

    model_config = ConfigDict(populate_by_name=True)

    query: str
    patient_id: str | None = Field(default=None, alias="patientId")
