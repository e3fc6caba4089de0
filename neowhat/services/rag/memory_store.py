"""In-memory document store for development and testing."""

import math

from neowhat.models import RetrievedPassage, StoredDocument
from neowhat.services.rag.vectorstore import DocumentStore


def cosine_similarity(a: list[float], b: list[float]) -> float:
    dot = sum(x * y for x, y in zip(a, b))
    norm_a = math.sqrt(sum(x * x for x in a))
    norm_b = math.sqrt(sum(y * y for y in b))
    if not norm_a or not norm_b:
        return 0.0
    return dot / (norm_a * norm_b)


class InMemoryDocumentStore(DocumentStore):
    """Keeps documents in a dict and scores them in process."""

    def __init__(self) -> None:
        self._documents: dict[str, StoredDocument] = {}

    def _for_tenant(self, tenant_id: str) -> list[StoredDocument]:
        return [d for d in self._documents.values() if d.tenant_id == tenant_id]

    async def count_embedded(self, tenant_id: str) -> int:
        return sum(1 for d in self._for_tenant(tenant_id) if d.embedding)

    async def match_documents(
        self,
        embedding: list[float],
        tenant_id: str,
        threshold: float,
        count: int,
    ) -> list[RetrievedPassage]:
        scored = [
            (cosine_similarity(embedding, d.embedding), d)
            for d in self._for_tenant(tenant_id)
            if d.embedding
        ]
        scored = [(s, d) for s, d in scored if s >= threshold]
        scored.sort(key=lambda item: item[0], reverse=True)
        return [
            RetrievedPassage(content=d.content, similarity=s, metadata=d.metadata)
            for s, d in scored[:count]
        ]

    async def search_text(self, tenant_id: str, term: str, limit: int) -> list[RetrievedPassage]:
        needle = term.lower()
        matches = [
            RetrievedPassage(content=d.content, metadata=d.metadata)
            for d in self._for_tenant(tenant_id)
            if needle in d.content.lower()
        ]
        return matches[:limit]

    async def add_documents(self, documents: list[StoredDocument]) -> list[str]:
        for doc in documents:
            self._documents[doc.id] = doc
        return [doc.id for doc in documents]

    async def delete_by_tenant(self, tenant_id: str) -> int:
        ids = [d.id for d in self._for_tenant(tenant_id)]
        for doc_id in ids:
            del self._documents[doc_id]
        return len(ids)

    async def health_check(self) -> bool:
        return True
