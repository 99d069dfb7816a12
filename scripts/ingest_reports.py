"""CLI script to ingest medical PDF reports into Qdrant.

Usage:
    uv run python scripts/ingest_reports.py --directory data/reports/
    uv run python scripts/ingest_reports.py --file data/reports/report_JD123.pdf
"""

from __future__ import annotations

import argparse
import sys
from pathlib import Path

from report_rag.config import settings
from report_rag.context import build_context
from report_rag.services.document_reader import (
    IngestionError,
    discover_source_files,
    read_source_file,
)
from report_rag.services.ingestion import run_ingestion


def main() -> None:
    parser = argparse.ArgumentParser(description="Ingest medical PDF reports into Qdrant")
    group = parser.add_mutually_exclusive_group(required=True)
    group.add_argument("--directory", type=Path, help="Directory of report_*.pdf files to ingest")
    group.add_argument("--file", type=Path, help="Single report file to ingest")
    args = parser.parse_args()

    if args.file:
        if not args.file.exists():
            print(f"Error: File not found: {args.file}")
            sys.exit(1)
        source_files = [read_source_file(args.file)]
    else:
        if not args.directory.exists():
            print(f"Error: Directory not found: {args.directory}")
            sys.exit(1)
        pattern = str(args.directory / "*.pdf")
        source_files = discover_source_files(pattern)
        if not source_files:
            print(f"No reports found for {pattern}")
            sys.exit(1)
    print(f"Found {len(source_files)} report files")

    context = build_context(settings)
    try:
        total_chunks = run_ingestion(context.pipeline, context.gateway, source_files)
    except IngestionError as e:
        print(f"Error [{e.code}] in {e.source}: {e.message}")
        sys.exit(1)
    finally:
        context.close()

    print(f"\nDone! Ingested {total_chunks} total chunks into '{settings.qdrant_collection}'.")


if __name__ == "__main__":
    main()
