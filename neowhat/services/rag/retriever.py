"""Tenant-scoped context retrieval with threshold back-off and keyword rescue."""

from dataclasses import dataclass, field
from enum import Enum

import structlog

from neowhat.core.config import settings
from neowhat.models import RetrievedPassage
from neowhat.services.rag import keywords
from neowhat.services.rag.embeddings import BaseEmbeddingService
from neowhat.services.rag.vectorstore import DocumentStore

logger = structlog.get_logger()

SEPARATOR = "\n\n"


class RetrievalStrategy(str, Enum):
    """How the final context was obtained."""

    NO_KNOWLEDGE_BASE = "no_knowledge_base"
    VECTOR = "vector"
    VECTOR_WITH_TEXT = "vector_with_text"
    TEXT_FALLBACK = "text_fallback"
    NONE = "none"


@dataclass
class RetrievalResult:
    """Context handed to the prompt assembler."""

    context: str
    document_count: int
    is_factual: bool
    strategy: RetrievalStrategy
    passages: list[RetrievedPassage] = field(default_factory=list)
    threshold: float | None = None

    @property
    def has_context(self) -> bool:
        return bool(self.context)


class ContextRetriever:
    """Finds the passages of one tenant's knowledge base relevant to a question.

    Steps:
    1. Skip everything if the tenant has no embedded documents
    2. Vector search with decreasing similarity thresholds
    3. Substring search to enrich factual questions or rescue empty results
    """

    def __init__(
        self,
        document_store: DocumentStore,
        embedding_service: BaseEmbeddingService,
        thresholds: list[float] | None = None,
        match_count: int | None = None,
        top_k: int | None = None,
        text_search_limit: int | None = None,
    ) -> None:
        self.document_store = document_store
        self.embedding_service = embedding_service
        self.thresholds = thresholds or settings.retrieval_thresholds
        self.match_count = match_count or settings.retrieval_match_count
        self.top_k = top_k or settings.retrieval_top_k
        self.text_search_limit = text_search_limit or settings.text_search_limit

    async def retrieve(self, question: str, tenant_id: str) -> RetrievalResult:
        is_factual = keywords.is_factual_question(question)

        document_count = await self._count_documents(tenant_id)
        if document_count == 0:
            logger.info("No embedded documents for tenant", tenant_id=tenant_id)
            return RetrievalResult(
                context="",
                document_count=0,
                is_factual=is_factual,
                strategy=RetrievalStrategy.NO_KNOWLEDGE_BASE,
            )

        matches, threshold = await self._vector_search(question, tenant_id)

        if matches:
            matches.sort(key=lambda p: p.similarity or 0.0, reverse=True)
            top = matches[: self.top_k]
            context = SEPARATOR.join(p.content for p in top)
            strategy = RetrievalStrategy.VECTOR

            if is_factual:
                extra = await self._enrich_factual(question, context, tenant_id)
                if extra:
                    context = context + SEPARATOR + SEPARATOR.join(p.content for p in extra)
                    top = top + extra
                    strategy = RetrievalStrategy.VECTOR_WITH_TEXT

            logger.info(
                "Context retrieved",
                tenant_id=tenant_id,
                strategy=strategy.value,
                threshold=threshold,
                passages=len(top),
                context_length=len(context),
            )
            return RetrievalResult(
                context=context,
                document_count=document_count,
                is_factual=is_factual,
                strategy=strategy,
                passages=top,
                threshold=threshold,
            )

        logger.warning("No vector match for question", tenant_id=tenant_id)
        rescued = await self._text_fallback(question, tenant_id)
        if rescued:
            return RetrievalResult(
                context=SEPARATOR.join(p.content for p in rescued),
                document_count=document_count,
                is_factual=is_factual,
                strategy=RetrievalStrategy.TEXT_FALLBACK,
                passages=rescued,
            )

        return RetrievalResult(
            context="",
            document_count=document_count,
            is_factual=is_factual,
            strategy=RetrievalStrategy.NONE,
        )

    async def _count_documents(self, tenant_id: str) -> int:
        try:
            return await self.document_store.count_embedded(tenant_id)
        except Exception as e:
            logger.error("Document count failed", tenant_id=tenant_id, error=str(e))
            return 0

    async def _vector_search(
        self,
        question: str,
        tenant_id: str,
    ) -> tuple[list[RetrievedPassage], float | None]:
        try:
            embedding = await self.embedding_service.embed_for_search(question)
        except Exception as e:
            logger.error("Question embedding failed", tenant_id=tenant_id, error=str(e))
            return [], None

        for threshold in self.thresholds:
            try:
                matches = await self.document_store.match_documents(
                    embedding=embedding,
                    tenant_id=tenant_id,
                    threshold=threshold,
                    count=self.match_count,
                )
            except Exception as e:
                # A failing store will not do better at a lower threshold
                logger.error(
                    "Vector search failed", tenant_id=tenant_id, threshold=threshold, error=str(e)
                )
                return [], None

            if matches:
                return list(matches), threshold
            logger.debug("No match at threshold", tenant_id=tenant_id, threshold=threshold)

        return [], None

    async def _search_terms(self, tenant_id: str, terms: list[str]) -> list[RetrievedPassage]:
        found: list[RetrievedPassage] = []
        for term in terms:
            try:
                found.extend(
                    await self.document_store.search_text(tenant_id, term, self.text_search_limit)
                )
            except Exception as e:
                logger.error("Text search failed", tenant_id=tenant_id, term=term, error=str(e))
        return found

    async def _enrich_factual(
        self,
        question: str,
        context: str,
        tenant_id: str,
    ) -> list[RetrievedPassage]:
        words = keywords.enrichment_keywords(question)
        if not words:
            return []

        context_lower = context.lower()
        question_lower = question.lower()
        covered = any(word in context_lower for word in words)
        if covered and "formule" not in question_lower and "express" not in question_lower:
            return []

        terms = words[:3]
        found = await self._search_terms(tenant_id, terms)
        unique = keywords.dedupe_by_prefix(found, 100)
        relevant = [p for p in unique if any(term in p.content.lower() for term in terms)]

        logger.info(
            "Factual enrichment",
            tenant_id=tenant_id,
            terms=terms,
            unique=len(unique),
            relevant=len(relevant),
        )
        return relevant[: self.top_k]

    async def _text_fallback(self, question: str, tenant_id: str) -> list[RetrievedPassage]:
        if not keywords.contains_any(question, keywords.FALLBACK_KEYWORDS):
            return []

        terms = keywords.fallback_keywords(question)[:2] or ["formule"]
        found = await self._search_terms(tenant_id, terms)
        unique = keywords.dedupe_by_prefix(found, 50)

        logger.info("Text fallback search", tenant_id=tenant_id, terms=terms, found=len(unique))
        return unique[: self.top_k]

