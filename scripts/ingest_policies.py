#!/usr/bin/env python3
"""Batch-ingest policy PDFs into the knowledge base.

Run with: uv run python scripts/ingest_policies.py [directory]
"""

import argparse
import asyncio

from policy_rag.core.config import get_settings
from policy_rag.core.logging import configure_logging
from policy_rag.db.database import close_db, init_db
from policy_rag.rag.processor import create_processor, ingest_directory


async def ingest_policies(directory: str, pattern: str) -> int:
    """Ingest every matching file in *directory* and print a summary."""
    settings = get_settings()
    await init_db()

    try:
        stats = await ingest_directory(create_processor(settings), directory, pattern)
    finally:
        await close_db()

    print("=" * 60)
    print("INGESTION SUMMARY")
    print("=" * 60)
    print(f"Total files processed: {stats.total_files}")
    print(f"Successful ingestions: {stats.successful}")
    print(f"Failed ingestions: {stats.failed}")
    print(f"Success rate: {stats.success_rate}%")

    if stats.errors:
        print("\nERRORS:")
        for filename, error in stats.errors:
            print(f"  - {filename}: {error}")

    print("=" * 60)
    return 1 if stats.failed else 0


def main() -> None:
    parser = argparse.ArgumentParser(description=__doc__.splitlines()[0])
    parser.add_argument("directory", nargs="?", default="pdfbase", help="Folder of policy documents")
    parser.add_argument("--pattern", default="*.pdf", help="Glob for files to ingest")
    args = parser.parse_args()

    configure_logging(get_settings().log_level)
    raise SystemExit(asyncio.run(ingest_policies(args.directory, args.pattern)))


if __name__ == "__main__":
    main()
