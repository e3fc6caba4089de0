"""Embedding service with multi-provider support (OpenAI, Google)."""

import asyncio
from abc import ABC, abstractmethod
from enum import Enum
from typing import Any

import litellm
import structlog
from tenacity import retry, stop_after_attempt, wait_exponential

from neowhat.core.config import settings
from neowhat.core.exceptions import ConfigurationError

logger = structlog.get_logger()


class EmbeddingProvider(str, Enum):
    """Supported embedding providers."""

    OPENAI = "openai"
    GOOGLE = "google"


class BaseEmbeddingService(ABC):
    """Abstract base class for embedding services."""

    @property
    @abstractmethod
    def vector_size(self) -> int:
        """Get the vector size for this embedding model."""
        pass

    @property
    @abstractmethod
    def provider_name(self) -> str:
        pass

    @abstractmethod
    async def embed_texts(self, texts: list[str]) -> list[list[float]]:
        """Generate embeddings for multiple texts."""
        pass

    async def embed_text(self, text: str) -> list[float]:
        embeddings = await self.embed_texts([text])
        return embeddings[0]

    async def embed_for_search(self, query: str) -> list[float]:
        """Generate embedding for a user question."""
        return await self.embed_text(query)

    async def embed_for_storage(self, document: str) -> list[float]:
        """Generate embedding for a knowledge chunk."""
        return await self.embed_text(document)


class OpenAIEmbeddingService(BaseEmbeddingService):
    """OpenAI embeddings through LiteLLM.

    The stored knowledge base is indexed with text-embedding-3-small, so
    questions must be embedded with the same model to be comparable.
    """

    _model_dimensions = {
        "text-embedding-3-small": 1536,
        "text-embedding-3-large": 3072,
        "text-embedding-ada-002": 1536,
    }

    def __init__(
        self,
        model: str = "text-embedding-3-small",
        api_key: str | None = None,
        dimensions: int | None = None,
    ) -> None:
        self.model = model
        self.api_key = api_key if api_key is not None else settings.openai_api_key
        self.dimensions = dimensions

        logger.info("OpenAI Embedding service initialized", model=self.model)

    @property
    def vector_size(self) -> int:
        if self.dimensions:
            return self.dimensions
        return self._model_dimensions.get(self.model, 1536)

    @property
    def provider_name(self) -> str:
        return "openai"

    @retry(
        stop=stop_after_attempt(3),
        wait=wait_exponential(multiplier=1, min=1, max=10),
        reraise=True,
    )
    async def embed_texts(self, texts: list[str]) -> list[list[float]]:
        if not texts:
            return []

        kwargs: dict[str, Any] = {}
        if self.api_key:
            kwargs["api_key"] = self.api_key
        if self.dimensions and "text-embedding-3" in self.model:
            kwargs["dimensions"] = self.dimensions

        try:
            response = await litellm.aembedding(model=self.model, input=texts, **kwargs)
        except Exception as e:
            logger.error("Failed to generate OpenAI embeddings", error=str(e))
            raise

        embeddings = [item["embedding"] for item in response.data]

        logger.debug(
            "Generated OpenAI embeddings",
            count=len(texts),
            model=self.model,
            dimensions=len(embeddings[0]) if embeddings else 0,
        )
        return embeddings


class GoogleEmbeddingService(BaseEmbeddingService):
    """Google AI embeddings using text-embedding-004 (768 dimensions)."""

    _model_dimensions = {
        "text-embedding-004": 768,
        "embedding-001": 768,
    }

    def __init__(
        self,
        model: str = "text-embedding-004",
        api_key: str | None = None,
    ) -> None:
        self.model = model
        self.api_key = api_key if api_key is not None else settings.google_api_key
        self._initialized = False

        logger.info("Google Embedding service initialized", model=self.model)

    def _ensure_initialized(self) -> None:
        """Lazy initialization of Google AI client."""
        if self._initialized:
            return

        import google.generativeai as genai

        if not self.api_key:
            raise ConfigurationError("GOOGLE_API_KEY is required for Google embeddings")

        genai.configure(api_key=self.api_key)
        self._initialized = True
        logger.info("Google AI client initialized for embeddings")

    @property
    def vector_size(self) -> int:
        return self._model_dimensions.get(self.model, 768)

    @property
    def provider_name(self) -> str:
        return "google"

    @retry(
        stop=stop_after_attempt(3),
        wait=wait_exponential(multiplier=1, min=1, max=10),
        reraise=True,
    )
    async def _embed(self, texts: list[str], task_type: str) -> list[list[float]]:
        if not texts:
            return []

        self._ensure_initialized()

        import google.generativeai as genai

        # embed_content is sync, run it off the event loop
        def _embed_batch() -> list[list[float]]:
            return [
                genai.embed_content(
                    model=f"models/{self.model}",
                    content=text,
                    task_type=task_type,
                )["embedding"]
                for text in texts
            ]

        try:
            embeddings = await asyncio.to_thread(_embed_batch)
        except Exception as e:
            logger.error("Failed to generate Google embeddings", error=str(e))
            raise

        logger.debug("Generated Google embeddings", count=len(texts), model=self.model)
        return embeddings

    async def embed_texts(self, texts: list[str]) -> list[list[float]]:
        return await self._embed(texts, "RETRIEVAL_DOCUMENT")

    async def embed_for_search(self, query: str) -> list[float]:
        embeddings = await self._embed([query], "RETRIEVAL_QUERY")
        return embeddings[0]


class EmbeddingService(BaseEmbeddingService):
    """Delegates to the configured provider, with an optional fallback provider."""

    def __init__(
        self,
        provider: EmbeddingProvider | str | None = None,
        model: str | None = None,
        fallback_provider: EmbeddingProvider | str | None = None,
    ) -> None:
        if provider is None:
            provider = settings.embedding_provider
        if isinstance(provider, str):
            provider = EmbeddingProvider(provider.lower())

        if fallback_provider is None and settings.embedding_fallback_provider:
            fallback_provider = settings.embedding_fallback_provider
        if isinstance(fallback_provider, str):
            fallback_provider = EmbeddingProvider(fallback_provider.lower())

        self._provider_type = provider
        self._fallback_provider_type = fallback_provider

        self._service = self._create_provider(provider, model)
        self._fallback_service = (
            self._create_provider(fallback_provider) if fallback_provider else None
        )
        if self._fallback_service and self._fallback_service.vector_size != self._service.vector_size:
            # Vectors of another size cannot be compared with the stored ones
            logger.warning(
                "Embedding fallback disabled: vector size mismatch",
                primary=provider.value,
                primary_size=self._service.vector_size,
                fallback=fallback_provider.value,
                fallback_size=self._fallback_service.vector_size,
            )
            self._fallback_service = None
            fallback_provider = None
            self._fallback_provider_type = None

        logger.info(
            "Embedding service initialized",
            provider=provider.value,
            fallback=fallback_provider.value if fallback_provider else None,
            vector_size=self.vector_size,
        )

    def _create_provider(
        self,
        provider: EmbeddingProvider,
        model: str | None = None,
    ) -> BaseEmbeddingService:
        if provider == EmbeddingProvider.OPENAI:
            return OpenAIEmbeddingService(
                model=model or settings.openai_embedding_model,
                dimensions=settings.openai_embedding_dimensions,
            )
        elif provider == EmbeddingProvider.GOOGLE:
            return GoogleEmbeddingService(model=model or settings.google_embedding_model)
        else:
            raise ValueError(f"Unknown embedding provider: {provider}")

    @property
    def vector_size(self) -> int:
        return self._service.vector_size

    @property
    def provider_name(self) -> str:
        return self._service.provider_name

    def _log_fallback(self, error: Exception) -> None:
        logger.warning(
            "Primary embedding failed, using fallback",
            primary=self._provider_type.value,
            fallback=self._fallback_provider_type.value,
            error=str(error),
        )

    async def embed_texts(self, texts: list[str]) -> list[list[float]]:
        try:
            return await self._service.embed_texts(texts)
        except Exception as e:
            if self._fallback_service is None:
                raise
            self._log_fallback(e)
            return await self._fallback_service.embed_texts(texts)

    async def embed_for_search(self, query: str) -> list[float]:
        try:
            return await self._service.embed_for_search(query)
        except Exception as e:
            if self._fallback_service is None:
                raise
            self._log_fallback(e)
            return await self._fallback_service.embed_for_search(query)


# Singleton instance
_embedding_service: EmbeddingService | None = None


def get_embedding_service() -> EmbeddingService:
    """Get or create the embedding service singleton."""
    global _embedding_service
    if _embedding_service is None:
        _embedding_service = EmbeddingService()
    return _embedding_service


def reset_embedding_service() -> None:
    """Reset the embedding service singleton (for testing or reconfiguration)."""
    global _embedding_service
    _embedding_service = None
