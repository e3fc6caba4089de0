"""RAG service - tenant knowledge retrieval and ingestion."""

from neowhat.services.rag.embeddings import EmbeddingService, get_embedding_service
from neowhat.services.rag.ingestion import IngestionReport, KnowledgeIngestor
from neowhat.services.rag.memory_store import InMemoryDocumentStore
from neowhat.services.rag.retriever import ContextRetriever, RetrievalResult, RetrievalStrategy
from neowhat.services.rag.vectorstore import DocumentStore, QdrantDocumentStore

__all__ = [
    "EmbeddingService",
    "get_embedding_service",
    "DocumentStore",
    "QdrantDocumentStore",
    "InMemoryDocumentStore",
    "ContextRetriever",
    "RetrievalResult",
    "RetrievalStrategy",
    "KnowledgeIngestor",
    "IngestionReport",
]
