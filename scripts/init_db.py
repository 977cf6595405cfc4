"""Create the pgvector extension, segments table and similarity index (idempotent)."""

import asyncio
import sys
from pathlib import Path

# Add project root to path
sys.path.insert(0, str(Path(__file__).parent.parent))

from transcript_search.config import get_settings
from transcript_search.ingestion.storage import SegmentStore
from transcript_search.logging_config import configure_logging


async def init_db() -> int:
    settings = get_settings()
    store = SegmentStore(
        settings.database_url,
        dimensions=settings.embedding_dimensions,
        min_pool_size=1,
        max_pool_size=1,
    )
    await store.connect()
    try:
        await store.init_schema()
        count = await store.count()
    finally:
        await store.close()
    print(f"Schema ready. transcript_segments currently holds {count} segments.")
    return count


if __name__ == "__main__":
    configure_logging()
    asyncio.run(init_db())
