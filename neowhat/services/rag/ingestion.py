"""Knowledge ingestion: chunk, embed and store a tenant's document text."""

import asyncio
from dataclasses import dataclass, field

import structlog

from neowhat.models import StoredDocument
from neowhat.services.rag.chunking import chunk_text_by_tokens, clean_text
from neowhat.services.rag.embeddings import BaseEmbeddingService
from neowhat.services.rag.vectorstore import DocumentStore

logger = structlog.get_logger()

SINGLE_CHUNK_WARNING = (
    "Un seul chunk créé - le document est peut-être trop court pour une recherche optimale"
)


@dataclass
class IngestionReport:
    """Summary returned to the admin caller."""

    tenant_id: str
    source: str
    chunks_created: int
    chunks_stored: int
    replaced: int
    total_words: int
    total_chars: int
    failed_chunks: list[int] = field(default_factory=list)
    warning: str | None = None


class KnowledgeIngestor:
    """Replaces a tenant's knowledge base with freshly embedded chunks.

    Embeddings are requested one chunk at a time with a short pause every
    `batch_size` chunks to stay under provider rate limits.
    """

    def __init__(
        self,
        document_store: DocumentStore,
        embedding_service: BaseEmbeddingService,
        batch_size: int = 10,
        batch_pause_seconds: float = 1.0,
    ) -> None:
        self.document_store = document_store
        self.embedding_service = embedding_service
        self.batch_size = batch_size
        self.batch_pause_seconds = batch_pause_seconds

    async def ingest_text(self, tenant_id: str, text: str, source: str) -> IngestionReport:
        cleaned = clean_text(text)
        if not cleaned:
            raise ValueError("Document contains no extractable text")

        chunks = chunk_text_by_tokens(cleaned)
        warning = None
        if len(chunks) == 1:
            warning = SINGLE_CHUNK_WARNING
            logger.warning(
                "Only one chunk created",
                tenant_id=tenant_id,
                source=source,
                preview=cleaned[:500],
            )
        else:
            logger.info("Document chunked", tenant_id=tenant_id, source=source, chunks=len(chunks))

        # New upload replaces the whole knowledge base
        replaced = await self.document_store.delete_by_tenant(tenant_id)

        documents: list[StoredDocument] = []
        failed: list[int] = []
        for chunk in chunks:
            try:
                embedding = await self.embedding_service.embed_for_storage(chunk.text)
            except Exception as e:
                logger.error("Chunk embedding failed", tenant_id=tenant_id, chunk=chunk.index, error=str(e))
                failed.append(chunk.index)
                continue

            documents.append(
                StoredDocument(
                    tenant_id=tenant_id,
                    content=chunk.text,
                    embedding=embedding,
                    metadata={
                        "source": source,
                        "chunk_index": chunk.index,
                        "total_chunks": len(chunks),
                    },
                )
            )

            if chunk.index > 0 and chunk.index % self.batch_size == 0:
                await asyncio.sleep(self.batch_pause_seconds)

        if documents:
            await self.document_store.add_documents(documents)

        logger.info(
            "Knowledge ingested",
            tenant_id=tenant_id,
            source=source,
            stored=len(documents),
            failed=len(failed),
            replaced=replaced,
        )

        return IngestionReport(
            tenant_id=tenant_id,
            source=source,
            chunks_created=len(chunks),
            chunks_stored=len(documents),
            replaced=replaced,
            total_words=len(cleaned.split()),
            total_chars=len(cleaned),
            failed_chunks=failed,
            warning=warning,
        )
