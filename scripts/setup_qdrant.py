#!/usr/bin/env python3
"""Script to initialize the Qdrant collection for tenant documents."""

import argparse
import asyncio
import sys
from pathlib import Path

# Add parent directory to path
sys.path.insert(0, str(Path(__file__).parent.parent))

from neowhat.core.config import settings
from neowhat.services.rag.embeddings import EmbeddingService
from neowhat.services.rag.vectorstore import QdrantDocumentStore


async def setup_collection(recreate: bool) -> None:
    """Create the collection sized for the configured embedding model."""
    target = settings.qdrant_url or f"{settings.qdrant_host}:{settings.qdrant_port}"
    print(f"Connecting to Qdrant at {target}")

    vector_size = EmbeddingService().vector_size
    store = QdrantDocumentStore(vector_size=vector_size)
    client = await store._get_client()

    if recreate and await client.collection_exists(store.collection):
        print(f"Deleting collection '{store.collection}'...")
        await client.delete_collection(store.collection)

    if await store.ensure_collection():
        print(f"Collection '{store.collection}' created (vector size {vector_size})")
    else:
        print(f"Collection '{store.collection}' already exists, use --recreate to rebuild it")

    info = await client.get_collection(store.collection)
    print("\nCollection info:")
    print(f"  - Points count: {info.points_count}")
    print(f"  - Vector size: {info.config.params.vectors.size}")
    print(f"  - Distance: {info.config.params.vectors.distance}")


if __name__ == "__main__":
    parser = argparse.ArgumentParser(description="Create the Qdrant documents collection")
    parser.add_argument("--recreate", action="store_true", help="Drop and recreate the collection")
    args = parser.parse_args()
    asyncio.run(setup_collection(args.recreate))
