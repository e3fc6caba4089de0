#!/usr/bin/env python3
"""Script to load a document into a tenant's knowledge base.

Text files go through the same chunking as the admin API. JSON files are
read as FAQ lists and stored one question/answer pair per document.
Either way the tenant's previous knowledge base is replaced.
"""

import argparse
import asyncio
import json
import sys
from pathlib import Path

# Add parent directory to path
sys.path.insert(0, str(Path(__file__).parent.parent))

from neowhat.models import StoredDocument
from neowhat.services.rag.embeddings import EmbeddingService
from neowhat.services.rag.ingestion import KnowledgeIngestor
from neowhat.services.rag.vectorstore import QdrantDocumentStore


async def ingest_text_file(file_path: Path, tenant_id: str, ingestor: KnowledgeIngestor) -> int:
    print(f"Processing: {file_path}")
    report = await ingestor.ingest_text(
        tenant_id,
        file_path.read_text(encoding="utf-8"),
        source=file_path.name,
    )
    if report.warning:
        print(f"  Warning: {report.warning}")
    if report.failed_chunks:
        print(f"  Failed chunks: {report.failed_chunks}")
    print(f"  Stored {report.chunks_stored}/{report.chunks_created} chunks")
    return report.chunks_stored


async def ingest_json_faqs(
    file_path: Path,
    tenant_id: str,
    store: QdrantDocumentStore,
    embeddings: EmbeddingService,
) -> int:
    """Ingest FAQ-style JSON file.

    Expected format:
    [
        {"question": "...", "answer": "..."},
        ...
    ]
    """
    print(f"Processing FAQs: {file_path}")

    with open(file_path, "r", encoding="utf-8") as f:
        faqs = json.load(f)

    pairs = [
        (i, faq["question"], faq["answer"])
        for i, faq in enumerate(faqs)
        if faq.get("question") and faq.get("answer")
    ]
    if not pairs:
        print("  No FAQs to ingest")
        return 0

    contents = [f"Question: {q}\n\nRéponse: {a}" for _, q, a in pairs]
    vectors = await embeddings.embed_texts(contents)

    documents = [
        StoredDocument(
            tenant_id=tenant_id,
            content=content,
            embedding=vector,
            metadata={
                "source": file_path.name,
                "type": "faq",
                "chunk_index": n,
                "total_chunks": len(pairs),
                "faq_index": i,
            },
        )
        for n, ((i, _, _), content, vector) in enumerate(zip(pairs, contents, vectors))
    ]

    await store.delete_by_tenant(tenant_id)
    ids = await store.add_documents(documents)
    print(f"  Ingested {len(ids)} FAQs")
    return len(ids)


async def main():
    parser = argparse.ArgumentParser(description="Replace a tenant's knowledge base with a document")
    parser.add_argument("tenant_id", help="Tenant ID")
    parser.add_argument("path", help="Text, Markdown or FAQ JSON file")

    args = parser.parse_args()

    path = Path(args.path)
    if not path.is_file():
        print(f"Error: File does not exist: {path}")
        sys.exit(1)

    embeddings = EmbeddingService()
    store = QdrantDocumentStore(vector_size=embeddings.vector_size)
    await store.ensure_collection()

    if path.suffix == ".json":
        total = await ingest_json_faqs(path, args.tenant_id, store, embeddings)
    else:
        ingestor = KnowledgeIngestor(document_store=store, embedding_service=embeddings)
        total = await ingest_text_file(path, args.tenant_id, ingestor)

    print(f"\nTotal documents stored: {total}")


if __name__ == "__main__":
    asyncio.run(main())
