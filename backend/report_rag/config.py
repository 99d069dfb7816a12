"""Application configuration via environment variables."""

from __future__ import annotations

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(env_file=".env")

    anthropic_api_key: str = ""
    ai_model: str = "claude-sonnet-4-5"
    debug: bool = False

    # Qdrant
    qdrant_url: str = "http://localhost:6333"
    qdrant_collection: str = "medical_reports"
    qdrant_api_key: str = ""

    # Google AI Embeddings
    # Set GOOGLE_API_KEY for API key auth, otherwise uses Vertex AI ADC.
    google_api_key: str = ""
    gcp_project_id: str = ""
    gcp_location: str = "us-central1"
    embedding_model: str = "text-embedding-005"
    embedding_dimensions: int = 768
    embedding_batch_size: int = Field(default=100, gt=0)

    # Report ingestion
    reports_glob: str = "data/reports/report_*.pdf"
    ingest_on_startup: bool = True

    # Token splitter
    chunk_size_tokens: int = Field(default=800, gt=0)
    min_chunk_size_chars: int = 350
    min_chunk_length_to_embed: int = 5
    max_num_chunks: int = Field(default=10000, gt=0)
    keep_separator: bool = True


settings = Settings()
