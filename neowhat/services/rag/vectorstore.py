"""Document stores for tenant knowledge: interface and Qdrant implementation."""

from abc import ABC, abstractmethod

import structlog
from qdrant_client import AsyncQdrantClient, models
from tenacity import retry, stop_after_attempt, wait_exponential

from neowhat.core.config import settings
from neowhat.core.exceptions import VectorStoreError
from neowhat.models import RetrievedPassage, StoredDocument

logger = structlog.get_logger()


class DocumentStore(ABC):
    """Tenant-scoped knowledge storage with vector and substring search.

    Every query takes a tenant id; implementations must never return another
    tenant's passages.
    """

    @abstractmethod
    async def count_embedded(self, tenant_id: str) -> int:
        """Count the tenant's documents that carry an embedding."""
        ...

    @abstractmethod
    async def match_documents(
        self,
        embedding: list[float],
        tenant_id: str,
        threshold: float,
        count: int,
    ) -> list[RetrievedPassage]:
        """Return up to `count` passages with cosine similarity >= threshold."""
        ...

    @abstractmethod
    async def search_text(self, tenant_id: str, term: str, limit: int) -> list[RetrievedPassage]:
        """Case-insensitive substring search over passage content."""
        ...

    @abstractmethod
    async def add_documents(self, documents: list[StoredDocument]) -> list[str]:
        ...

    @abstractmethod
    async def delete_by_tenant(self, tenant_id: str) -> int:
        ...

    @abstractmethod
    async def health_check(self) -> bool:
        ...


def _tenant_filter(tenant_id: str) -> models.Filter:
    return models.Filter(
        must=[
            models.FieldCondition(
                key="tenant_id",
                match=models.MatchValue(value=tenant_id),
            )
        ]
    )


class QdrantDocumentStore(DocumentStore):
    """Qdrant-backed store; tenants share one collection, isolated by payload filter."""

    def __init__(
        self,
        vector_size: int = 1536,
        collection_name: str | None = None,
        client: AsyncQdrantClient | None = None,
        scroll_page_size: int = 256,
    ) -> None:
        self.vector_size = vector_size
        self.collection = collection_name or settings.qdrant_collection_name
        self.scroll_page_size = scroll_page_size
        self._client = client

    async def _get_client(self) -> AsyncQdrantClient:
        """Get or create the Qdrant client."""
        if self._client is None:
            if settings.qdrant_url:
                # Cloud/Remote Qdrant
                self._client = AsyncQdrantClient(
                    url=settings.qdrant_url,
                    api_key=settings.qdrant_api_key or None,
                )
            else:
                # Local Qdrant
                self._client = AsyncQdrantClient(
                    host=settings.qdrant_host,
                    port=settings.qdrant_port,
                )
            logger.info("Qdrant client initialized", collection=self.collection)
        return self._client

    async def ensure_collection(self) -> bool:
        """Create the collection and its tenant index if missing.

        Returns True when the collection was created.
        """
        client = await self._get_client()
        try:
            if await client.collection_exists(self.collection):
                logger.debug("Collection already exists", collection=self.collection)
                return False

            await client.create_collection(
                collection_name=self.collection,
                vectors_config=models.VectorParams(
                    size=self.vector_size,
                    distance=models.Distance.COSINE,
                ),
            )
            await client.create_payload_index(
                collection_name=self.collection,
                field_name="tenant_id",
                field_schema=models.PayloadSchemaType.KEYWORD,
            )
            logger.info("Created Qdrant collection", collection=self.collection)
            return True
        except Exception as e:
            logger.error("Failed to ensure collection", collection=self.collection, error=str(e))
            raise VectorStoreError(
                f"Failed to ensure collection: {e}", operation="ensure_collection"
            ) from e

    async def count_embedded(self, tenant_id: str) -> int:
        client = await self._get_client()
        try:
            result = await client.count(
                collection_name=self.collection,
                count_filter=_tenant_filter(tenant_id),
                exact=True,
            )
        except Exception as e:
            raise VectorStoreError(f"Count failed: {e}", operation="count") from e
        return result.count

    async def match_documents(
        self,
        embedding: list[float],
        tenant_id: str,
        threshold: float,
        count: int,
    ) -> list[RetrievedPassage]:
        client = await self._get_client()
        try:
            response = await client.query_points(
                collection_name=self.collection,
                query=embedding,
                query_filter=_tenant_filter(tenant_id),
                limit=count,
                score_threshold=threshold,
                with_payload=True,
            )
        except Exception as e:
            logger.error("Vector search failed", error=str(e), threshold=threshold)
            raise VectorStoreError(f"Search failed: {e}", operation="match_documents") from e

        return [
            RetrievedPassage(
                content=(point.payload or {}).get("content", ""),
                similarity=point.score,
                metadata=(point.payload or {}).get("metadata"),
            )
            for point in response.points
        ]

    async def search_text(self, tenant_id: str, term: str, limit: int) -> list[RetrievedPassage]:
        # Qdrant full-text matching is token based, so substring search walks the
        # tenant's points page by page.
        client = await self._get_client()
        needle = term.lower()
        found: list[RetrievedPassage] = []
        offset = None

        try:
            while len(found) < limit:
                points, offset = await client.scroll(
                    collection_name=self.collection,
                    scroll_filter=_tenant_filter(tenant_id),
                    limit=self.scroll_page_size,
                    offset=offset,
                    with_payload=True,
                    with_vectors=False,
                )
                for point in points:
                    content = (point.payload or {}).get("content", "")
                    if needle in content.lower():
                        found.append(
                            RetrievedPassage(
                                content=content,
                                metadata=(point.payload or {}).get("metadata"),
                            )
                        )
                        if len(found) >= limit:
                            break
                if offset is None:
                    break
        except Exception as e:
            raise VectorStoreError(f"Text search failed: {e}", operation="search_text") from e

        return found

    @retry(
        stop=stop_after_attempt(3),
        wait=wait_exponential(multiplier=1, min=1, max=10),
        reraise=True,
    )
    async def add_documents(self, documents: list[StoredDocument]) -> list[str]:
        if not documents:
            return []

        client = await self._get_client()
        await self.ensure_collection()

        points = [
            models.PointStruct(
                id=doc.id,
                vector=doc.embedding,
                payload={
                    "content": doc.content,
                    "tenant_id": doc.tenant_id,
                    "metadata": doc.metadata,
                },
            )
            for doc in documents
            if doc.embedding
        ]
        await client.upsert(collection_name=self.collection, points=points)

        logger.info(
            "Added documents to vector store",
            count=len(points),
            tenant_id=documents[0].tenant_id,
            collection=self.collection,
        )
        return [str(p.id) for p in points]

    async def delete_by_tenant(self, tenant_id: str) -> int:
        """Delete all documents for a tenant and return how many were removed."""
        client = await self._get_client()
        if not await client.collection_exists(self.collection):
            return 0

        existing = await self.count_embedded(tenant_id)
        await client.delete(
            collection_name=self.collection,
            points_selector=models.FilterSelector(filter=_tenant_filter(tenant_id)),
        )
        logger.info("Deleted tenant documents", tenant_id=tenant_id, count=existing)
        return existing

    async def health_check(self) -> bool:
        """Check if Qdrant is healthy."""
        try:
            client = await self._get_client()
            await client.get_collections()
            return True
        except Exception as e:
            logger.error("Qdrant health check failed", error=str(e))
            return False
