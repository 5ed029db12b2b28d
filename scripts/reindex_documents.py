"""Script to rebuild the vector index from the document store."""

import argparse
import asyncio
import logging
import sys
from pathlib import Path
from typing import Optional

sys.path.insert(0, str(Path(__file__).parent.parent))

from docqa.core.dependencies import services

logging.basicConfig(level=logging.INFO)
logger = logging.getLogger(__name__)

PAGE_SIZE = 100


async def reindex(category_id: Optional[int] = None) -> None:
    """Re-ingest every document, optionally limited to one category."""
    await services.initialize()
    pipeline = services.build_ingestion_pipeline()

    total_documents = 0
    total_chunks = 0
    offset = 0
    try:
        while True:
            documents = await services.database.get_documents(
                category_id=category_id, limit=PAGE_SIZE, offset=offset
            )
            if not documents:
                break
            for document in documents:
                stored = await pipeline.ingest(document)
                total_documents += 1
                total_chunks += stored
                print(f"{document.file_name}: {stored} chunks")
            offset += PAGE_SIZE
    finally:
        await services.shutdown()

    print(f"\nReindexed {total_documents} documents, {total_chunks} chunks")


if __name__ == "__main__":
    parser = argparse.ArgumentParser(description=__doc__)
    parser.add_argument("--category", type=int, default=None, help="Only this category id")
    args = parser.parse_args()
    asyncio.run(reindex(args.category))
