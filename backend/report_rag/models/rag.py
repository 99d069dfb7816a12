"""Pydantic models for RAG: source files, report chunks, filters and search results."""

from __future__ import annotations

import uuid
from typing import Any, Literal

from pydantic import BaseModel, Field

PATIENT_ID_KEY = "patientId"
SOURCE_KEY = "source"


class SourceFile(BaseModel):
    """A report file handle: its name and raw bytes."""

    name: str
    content: bytes


class ReportChunk(BaseModel):
    """A bounded span of report text with metadata for vector storage."""

    id: str = Field(default_factory=lambda: str(uuid.uuid4()))
    text: str
    metadata: dict[str, Any] = Field(default_factory=dict)

    @property
    def patient_id(self) -> str | None:
        return self.metadata.get(PATIENT_ID_KEY)

    @property
    def source(self) -> str | None:
        return self.metadata.get(SOURCE_KEY)


class FilterExpression(BaseModel):
    """Equality predicate over a chunk metadata field."""

    field: str
    operator: Literal["=="] = "=="
    value: str


class SearchResult(BaseModel):
    """A search hit from Qdrant with its similarity score."""

    chunk: ReportChunk
    score: float
