"""Bulk-ingest a directory of .txt/.md subtitle transcripts through the ingestion pipeline."""

import argparse
import asyncio
import sys
from pathlib import Path

# Add project root to path
sys.path.insert(0, str(Path(__file__).parent.parent))

from transcript_search.config import get_settings
from transcript_search.context import AppContext
from transcript_search.ingestion.models import IngestReport
from transcript_search.ingestion.parsers import is_supported_transcript
from transcript_search.ingestion.pipeline import ingest_transcript
from transcript_search.logging_config import configure_logging


async def ingest_directory(directory: Path, limit: int | None = None) -> list[IngestReport]:
    """Ingest every supported transcript under *directory*, one file at a time."""
    files = sorted(p for p in directory.rglob("*") if p.is_file() and is_supported_transcript(p.name))
    if limit:
        files = files[:limit]

    if not files:
        print(f"No .txt/.md transcripts found in {directory}")
        return []

    context = await AppContext.create(get_settings())
    reports: list[IngestReport] = []
    try:
        for i, path in enumerate(files, 1):
            content = path.read_text(encoding="utf-8-sig")
            report = await ingest_transcript(
                content,
                path.name,
                context.embedder,
                context.store,
                max_chunk_words=context.settings.chunk_max_words,
            )
            reports.append(report)
            status = "OK" if not report.failed else f"{report.failed} FAILED"
            print(f"  [{i}/{len(files)}] {path.name}: {report.successful}/{report.total} segments ({status})")
    finally:
        await context.aclose()

    stored = sum(r.successful for r in reports)
    failed = sum(r.failed for r in reports)
    print(f"\nDone! {stored} segments stored, {failed} failed across {len(reports)} files.")
    return reports


def main() -> None:
    parser = argparse.ArgumentParser(description=__doc__)
    parser.add_argument("directory", type=Path, help="Directory containing .txt/.md transcripts")
    parser.add_argument("--limit", type=int, default=None, help="Ingest at most this many files")
    args = parser.parse_args()

    if not args.directory.is_dir():
        parser.error(f"{args.directory} is not a directory")

    configure_logging()
    asyncio.run(ingest_directory(args.directory, args.limit))


if __name__ == "__main__":
    main()
