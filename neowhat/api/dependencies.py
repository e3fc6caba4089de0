"""FastAPI dependencies for dependency injection."""

from typing import Annotated

from fastapi import Depends, HTTPException, status

from neowhat.core.config import settings
from neowhat.models import Tenant
from neowhat.services.channels.base import ChannelAdapter
from neowhat.services.channels.whatsapp import get_whatsapp_adapter
from neowhat.services.conversation.engine import ConversationEngine
from neowhat.services.conversation.ledger import IdempotencyLedger
from neowhat.services.conversation.memory import ConversationMemory
from neowhat.services.conversation.prompt import PromptAssembler
from neowhat.services.conversation.responder import Responder
from neowhat.services.llm.provider import LLMProvider, get_llm_provider
from neowhat.services.rag.embeddings import BaseEmbeddingService, get_embedding_service
from neowhat.services.rag.ingestion import KnowledgeIngestor
from neowhat.services.rag.retriever import ContextRetriever
from neowhat.services.rag.vectorstore import DocumentStore
from neowhat.services.tenants.resolver import TenantResolver
from neowhat.storage.base import StorageBackend
from neowhat.storage.memory import InMemoryStorage


# Storage singleton
_storage: StorageBackend | None = None

# Document store singleton
_document_store: DocumentStore | None = None


def get_storage() -> StorageBackend:
    """Get the storage backend singleton.

    Uses in-memory storage unless Firestore is configured.
    """
    global _storage
    if _storage is None:
        if settings.storage_backend == "firestore":
            from neowhat.storage.firestore import FirestoreStorage
            _storage = FirestoreStorage(project_id=settings.gcp_project_id or None)
        else:
            _storage = InMemoryStorage()
    return _storage


def get_document_store() -> DocumentStore:
    """Get the knowledge document store singleton."""
    global _document_store
    if _document_store is None:
        if settings.document_store == "qdrant":
            from neowhat.services.rag.vectorstore import QdrantDocumentStore
            _document_store = QdrantDocumentStore(vector_size=get_embedding_service().vector_size)
        else:
            from neowhat.services.rag.memory_store import InMemoryDocumentStore
            _document_store = InMemoryDocumentStore()
    return _document_store


# Type aliases for cleaner dependency injection
StorageDep = Annotated[StorageBackend, Depends(get_storage)]
DocumentStoreDep = Annotated[DocumentStore, Depends(get_document_store)]
EmbeddingDep = Annotated[BaseEmbeddingService, Depends(get_embedding_service)]
LLMDep = Annotated[LLMProvider, Depends(get_llm_provider)]
WhatsAppDep = Annotated[ChannelAdapter, Depends(get_whatsapp_adapter)]


def get_retriever(documents: DocumentStoreDep, embeddings: EmbeddingDep) -> ContextRetriever:
    return ContextRetriever(document_store=documents, embedding_service=embeddings)


def get_ingestor(documents: DocumentStoreDep, embeddings: EmbeddingDep) -> KnowledgeIngestor:
    return KnowledgeIngestor(document_store=documents, embedding_service=embeddings)


RetrieverDep = Annotated[ContextRetriever, Depends(get_retriever)]
IngestorDep = Annotated[KnowledgeIngestor, Depends(get_ingestor)]


def get_engine(
    storage: StorageDep,
    retriever: RetrieverDep,
    llm: LLMDep,
    whatsapp: WhatsAppDep,
) -> ConversationEngine:
    """Wire the webhook pipeline from the injected services."""
    return ConversationEngine(
        channel=whatsapp,
        ledger=IdempotencyLedger(storage),
        resolver=TenantResolver(storage),
        retriever=retriever,
        memory=ConversationMemory(storage),
        assembler=PromptAssembler(),
        responder=Responder(storage=storage, llm_provider=llm, channel=whatsapp),
    )


EngineDep = Annotated[ConversationEngine, Depends(get_engine)]


async def get_tenant_from_path(
    tenant_id: str,
    storage: StorageDep,
) -> Tenant:
    """Get tenant from path parameter."""
    tenant = await storage.get_tenant(tenant_id)
    if not tenant:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=f"Tenant not found: {tenant_id}",
        )
    return tenant


TenantDep = Annotated[Tenant, Depends(get_tenant_from_path)]
