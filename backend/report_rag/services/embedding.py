"""Text embedding via Google GenAI (Vertex AI ADC) or the Vertex REST API with an API key."""

from __future__ import annotations

import logging

import httpx
from google import genai
from google.genai import types

from report_rag.config import Settings

logger = logging.getLogger(__name__)

_VERTEX_PREDICT_URL = (
    "https://{location}-aiplatform.googleapis.com/v1/projects/{project}"
    "/locations/{location}/publishers/google/models/{model}:predict"
)


class Embedder:
    """Embeds report chunks at index time and queries at search time."""

    def __init__(self, settings: Settings, client: genai.Client | None = None) -> None:
        self._settings = settings
        self._client = client

    @property
    def dimensions(self) -> int:
        return self._settings.embedding_dimensions

    def _get_client(self) -> genai.Client:
        """Get or create the Google GenAI client (Vertex AI via ADC)."""
        if self._client is None:
            self._client = genai.Client(
                vertexai=True,
                project=self._settings.gcp_project_id,
                location=self._settings.gcp_location,
            )
        return self._client

    def _embed_via_api_key(self, texts: list[str], task_type: str) -> list[list[float]]:
        """Call Vertex AI embedding endpoint directly using GCP API key."""
        url = _VERTEX_PREDICT_URL.format(
            location=self._settings.gcp_location,
            project=self._settings.gcp_project_id,
            model=self._settings.embedding_model,
        )
        body = {
            "instances": [{"content": t, "task_type": task_type} for t in texts],
            "parameters": {"outputDimensionality": self._settings.embedding_dimensions},
        }
        resp = httpx.post(
            url, params={"key": self._settings.google_api_key}, json=body, timeout=30
        )
        resp.raise_for_status()
        return [p["embeddings"]["values"] for p in resp.json()["predictions"]]

    def _embed(self, texts: list[str], task_type: str) -> list[list[float]]:
        if self._settings.google_api_key:
            return self._embed_via_api_key(texts, task_type)
        response = self._get_client().models.embed_content(
            model=self._settings.embedding_model,
            contents=texts,
            config=types.EmbedContentConfig(
                output_dimensionality=self._settings.embedding_dimensions,
                task_type=task_type,
            ),
        )
        return [list(e.values) for e in response.embeddings]

    def embed_query(self, text: str) -> list[float]:
        """Embed a single query string for search."""
        logger.debug(
            "Embedding query (%d chars): %r",
            len(text),
            text[:100] + ("..." if len(text) > 100 else ""),
        )
        vector = self._embed([text], "RETRIEVAL_QUERY")[0]
        logger.debug("Embedded query -> %d-dim vector", len(vector))
        return vector

    def embed_documents(self, texts: list[str]) -> list[list[float]]:
        """Embed chunk texts for indexing, in batches, preserving order."""
        logger.info(
            "Embedding %d texts (model=%s, dims=%d)",
            len(texts),
            self._settings.embedding_model,
            self._settings.embedding_dimensions,
        )
        batch_size = self._settings.embedding_batch_size
        vectors: list[list[float]] = []
        for start in range(0, len(texts), batch_size):
            vectors.extend(
                self._embed(texts[start : start + batch_size], "RETRIEVAL_DOCUMENT")
            )
        logger.info("Embedded %d texts -> %d vectors", len(texts), len(vectors))
        return vectors
