"""Report ingestion: PDF text extraction, token-bounded splitting and patient tagging."""

from __future__ import annotations

import io
import logging
from collections.abc import Callable, Sequence
from glob import glob
from pathlib import Path

from pypdf import PdfReader

from report_rag.models.rag import PATIENT_ID_KEY, SOURCE_KEY, ReportChunk, SourceFile

logger = logging.getLogger(__name__)

REPORT_PREFIX = "report_"
REPORT_SUFFIX = ".pdf"

# Rough token estimate: ~4 characters per token.
CHARS_PER_TOKEN = 4

TextExtractor = Callable[[SourceFile], list[str]]


class IngestionError(Exception):
    """Raised when a source file cannot be extracted or split."""

    def __init__(self, code: str, message: str, source: str) -> None:
        self.code = code
        self.message = message
        self.source = source
        super().__init__(message)


# --- Chunk tagging ---


def extract_patient_id(file_name: str) -> str:
    """Derive the patient id from a report file name.

    ``report_JD123.pdf`` -> ``JD123``. Names that do not follow the pattern
    are returned with whichever of the two literals they contain removed.
    """
    return file_name.replace(REPORT_PREFIX, "").replace(REPORT_SUFFIX, "")


def tag_chunks(
    chunks: list[ReportChunk], patient_id: str, source_name: str
) -> list[ReportChunk]:
    """Stamp patient id and source file name onto every chunk in place."""
    for chunk in chunks:
        chunk.metadata[PATIENT_ID_KEY] = patient_id
        chunk.metadata[SOURCE_KEY] = source_name
        logger.debug("Added metadata to chunk: %s", chunk.metadata)
    return chunks


# --- Text extraction ---


class PdfTextExtractor:
    """Extracts the text of a PDF report as a single document."""

    def __call__(self, source_file: SourceFile) -> list[str]:
        reader = PdfReader(io.BytesIO(source_file.content))
        pages = [(page.extract_text() or "").strip() for page in reader.pages]
        text = "\n".join(p for p in pages if p)
        logger.debug(
            "Extracted %d chars from %d pages of %s",
            len(text),
            len(reader.pages),
            source_file.name,
        )
        return [text]


# --- Splitting ---


class TokenTextSplitter:
    """Splits text into chunks of roughly ``chunk_size`` tokens.

    Each window is cut back to its last sentence-ending punctuation or newline
    when that lies past ``min_chunk_size_chars``, so chunks tend to end on a
    sentence boundary.
    """

    def __init__(
        self,
        chunk_size: int = 800,
        min_chunk_size_chars: int = 350,
        min_chunk_length_to_embed: int = 5,
        max_num_chunks: int = 10000,
        keep_separator: bool = True,
    ) -> None:
        if chunk_size <= 0:
            raise ValueError(f"chunk_size must be positive, got {chunk_size}")
        if max_num_chunks <= 0:
            raise ValueError(f"max_num_chunks must be positive, got {max_num_chunks}")
        self.chunk_size = chunk_size
        self.min_chunk_size_chars = min_chunk_size_chars
        self.min_chunk_length_to_embed = min_chunk_length_to_embed
        self.max_num_chunks = max_num_chunks
        self.keep_separator = keep_separator

    def split(self, texts: Sequence[str]) -> list[str]:
        """Split each text in order and return the concatenated chunks."""
        chunks: list[str] = []
        for text in texts:
            chunks.extend(self.split_text(text))
        return chunks

    def split_text(self, text: str) -> list[str]:
        if not text or not text.strip():
            return []

        window = self.chunk_size * CHARS_PER_TOKEN
        remaining = text
        chunks: list[str] = []
        num_windows = 0

        while remaining and num_windows < self.max_num_chunks:
            chunk_text = remaining[:window]
            if not chunk_text.strip():
                remaining = remaining[len(chunk_text) :]
                continue

            last_punctuation = max(
                chunk_text.rfind("."),
                chunk_text.rfind("?"),
                chunk_text.rfind("!"),
                chunk_text.rfind("\n"),
            )
            if last_punctuation > self.min_chunk_size_chars:
                chunk_text = chunk_text[: last_punctuation + 1]

            cleaned = self._clean(chunk_text)
            if len(cleaned) > self.min_chunk_length_to_embed:
                chunks.append(cleaned)
            remaining = remaining[len(chunk_text) :]
            num_windows += 1

        if remaining and remaining.strip():
            chunks.append(self._clean(remaining))

        return chunks

    def _clean(self, chunk_text: str) -> str:
        if self.keep_separator:
            return chunk_text.strip()
        return chunk_text.replace("\n", " ").strip()


# --- Pipeline ---


def read_source_file(path: Path) -> SourceFile:
    """Read one report file as-is; the path is never treated as a pattern."""
    return SourceFile(name=path.name, content=path.read_bytes())


def discover_source_files(pattern: str) -> list[SourceFile]:
    """Resolve a glob pattern to report files, sorted by path."""
    paths = sorted(Path(p) for p in glob(pattern) if Path(p).is_file())
    if not paths:
        logger.warning("No report files found for pattern %r", pattern)
        return []
    logger.info("Found %d report files for pattern %r", len(paths), pattern)
    return [read_source_file(p) for p in paths]


class ReportIngestionPipeline:
    """Turns report files into patient-tagged chunks, one file at a time."""

    def __init__(self, extractor: TextExtractor, splitter: TokenTextSplitter) -> None:
        self._extractor = extractor
        self._splitter = splitter

    def ingest(self, source_files: Sequence[SourceFile]) -> list[ReportChunk]:
        """Extract, split and tag every file in order.

        Fails fast: the first file that cannot be extracted or split raises
        ``IngestionError`` and no chunks are returned.
        """
        if not source_files:
            logger.warning("No source files supplied for ingestion")
            return []

        logger.info("Ingesting %d report files", len(source_files))
        chunks: list[ReportChunk] = []
        for source_file in source_files:
            chunks.extend(self._ingest_file(source_file))

        logger.info(
            "Ingestion produced %d chunks from %d files",
            len(chunks),
            len(source_files),
        )
        return chunks

    def _ingest_file(self, source_file: SourceFile) -> list[ReportChunk]:
        patient_id = extract_patient_id(source_file.name)
        logger.info(
            "Processing file: %s, extracted patientId: %s",
            source_file.name,
            patient_id,
        )

        try:
            documents = self._extractor(source_file)
        except Exception as e:
            raise IngestionError(
                code="EXTRACTION_FAILED",
                message=f"Failed to extract text from {source_file.name}: {e}",
                source=source_file.name,
            ) from e
        logger.info(
            "Processing file: %s, extracted %d documents",
            source_file.name,
            len(documents),
        )

        try:
            texts = self._splitter.split(documents)
        except Exception as e:
            raise IngestionError(
                code="SPLIT_FAILED",
                message=f"Failed to split text of {source_file.name}: {e}",
                source=source_file.name,
            ) from e

        chunks = tag_chunks(
            [ReportChunk(text=t) for t in texts], patient_id, source_file.name
        )
        logger.info(
            "Created %d chunks with patientId %s for file %s",
            len(chunks),
            patient_id,
            source_file.name,
        )
        return chunks
