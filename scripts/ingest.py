#!/usr/bin/env python
"""Ingest local policy documents for the query pipeline.

Usage:
    python scripts/ingest.py policy.pdf               # Ingest one file
    python scripts/ingest.py docs/*.pdf docs/*.docx   # Ingest several files
    python scripts/ingest.py --verbose policy.pdf     # Show detailed progress
"""
import argparse
import sys
from datetime import datetime
from pathlib import Path

# Add parent directory to path for imports
sys.path.insert(0, str(Path(__file__).parent.parent))

import structlog

from policyqa import config
from policyqa.db import ChunkStore
from policyqa.extractor import TextExtractor
from policyqa.llm_client import OllamaClient
from policyqa.log_setup import configure_logging
from policyqa.rag.chunker import TextChunker
from policyqa.rag.codec import EmbeddingCodec
from policyqa.rag.ingest import IngestPipeline

logger = structlog.get_logger()


class ProgressReporter:
    """Simple progress reporter for CLI."""

    def __init__(self, verbose: bool = False):
        self.verbose = verbose
        self.start_time = None

    def start(self, message: str):
        self.start_time = datetime.now()
        print(f"\n{'=' * 60}")
        print(f"  {message}")
        print(f"{'=' * 60}\n")

    def update(self, current: int, total: int, file_path: Path):
        percentage = (current / total) * 100 if total > 0 else 0
        bar_length = 40
        filled = int(bar_length * current / total) if total > 0 else 0
        bar = "█" * filled + "░" * (bar_length - filled)

        print(
            f"\r  [{bar}] {percentage:5.1f}% ({current}/{total}) {file_path.name[:30]:<30}",
            end="",
            flush=True,
        )

        if self.verbose:
            print()

    def finish(self, stats: dict):
        print("\n")
        elapsed_seconds = (datetime.now() - self.start_time).total_seconds()

        print(f"{'=' * 60}")
        print("  Ingestion Complete!")
        print(f"{'=' * 60}\n")
        print(f"  Files processed:      {stats['files_processed']}")
        print(f"  Files failed:         {stats['files_failed']}")
        print(f"  Chunks created:       {stats['chunks_created']}")
        print(f"  Time elapsed:         {elapsed_seconds:.1f}s")
        print(f"\n{'=' * 60}\n")

        if stats["files_failed"] > 0:
            print(f"Warning: {stats['files_failed']} file(s) failed to ingest.")
            print("   Check logs for details.\n")

        if stats["files_processed"] > 0:
            print(f"Database at: {config.DB_PATH}\n")


def main():
    """Main entry point for the ingest script."""
    parser = argparse.ArgumentParser(
        description="Ingest policy documents (PDF, DOCX, TXT) into the chunk store",
    )
    parser.add_argument("paths", nargs="+", type=Path, help="Files to ingest")
    parser.add_argument(
        "--chunk-size",
        type=int,
        default=None,
        help=f"Chunk size in characters (default: {config.CHUNK_SIZE})",
    )
    parser.add_argument(
        "--verbose",
        "-v",
        action="store_true",
        help="Show verbose progress output and debug logs",
    )
    args = parser.parse_args()

    configure_logging("DEBUG" if args.verbose else "WARNING")
    progress = ProgressReporter(verbose=args.verbose)

    print("\nConfiguration:")
    print(f"   Database:         {config.DB_PATH}")
    print(f"   Embedding model:  {config.EMBEDDING_MODEL}")
    print(f"   Chunk size:       {args.chunk_size or config.CHUNK_SIZE} chars")
    print(f"   Vector width:     {config.VECTOR_ELEMENT_WIDTH} bytes")

    codec = EmbeddingCodec(OllamaClient())
    store = ChunkStore(codec=codec)
    store.init_database()
    pipeline = IngestPipeline(
        store=store,
        codec=codec,
        extractor=TextExtractor(),
        chunker=TextChunker(chunk_size=args.chunk_size),
    )

    stats = {"files_processed": 0, "files_failed": 0, "chunks_created": 0}
    progress.start("Ingesting Documents")

    try:
        for idx, path in enumerate(args.paths, 1):
            progress.update(idx, len(args.paths), path)

            if not path.is_file():
                logger.error("file_not_found", path=str(path))
                stats["files_failed"] += 1
                continue

            try:
                result = pipeline.ingest_file(path)
            except Exception as e:
                logger.error("file_ingestion_failed", path=str(path), error=str(e))
                stats["files_failed"] += 1
                continue

            stats["files_processed"] += 1
            stats["chunks_created"] += result["chunks_created"]

    except KeyboardInterrupt:
        print("\n\nIngestion cancelled by user.\n")
        sys.exit(1)

    progress.finish(stats)

    if stats["files_failed"] > 0:
        sys.exit(1)


if __name__ == "__main__":
    main()
